"""Allow ``python -m drs_sync``."""
import sys

from drs_sync.cli import main

if __name__ == "__main__":
    sys.exit(main())
