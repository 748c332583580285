"""Record schemas shared across the pipeline."""

from .canonical import CanonicalRecord

__all__ = ["CanonicalRecord"]
