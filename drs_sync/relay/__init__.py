"""CORS relay for the DRS JSON order API."""

from .app import create_app
from .upstream import DRSUpstream, pick_array

__all__ = [
    "create_app",
    "DRSUpstream",
    "pick_array",
]
