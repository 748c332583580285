"""General utility helper functions."""
from typing import Any, Dict, List
import logging
from datetime import datetime, timezone

logger = logging.getLogger(__name__)


def flatten_leaf_keys(obj: Any, out: Dict[str, Any] = None) -> Dict[str, Any]:
    """
    Flatten a nested dictionary into a single level keyed by leaf name.

    Nested objects are descended into and lose their own key; lists are
    kept as leaf values and never expanded. Keys are lowercased. When two
    leaves share a name, the one visited last wins.

    Args:
        obj: Dictionary (or any JSON value) to flatten
        out: Accumulator, used by the recursion

    Returns:
        Flattened dictionary, e.g. {'customer': {'name': 'A'}} -> {'name': 'A'}
    """
    if out is None:
        out = {}
    if not isinstance(obj, dict):
        return out

    for key, value in obj.items():
        if isinstance(value, dict):
            flatten_leaf_keys(value, out)
        else:
            out[str(key).lower()] = value
    return out


def chunk_list(lst: List[Any], chunk_size: int) -> List[List[Any]]:
    """
    Split a list into chunks.

    Args:
        lst: List to chunk
        chunk_size: Size of each chunk

    Returns:
        List of chunks
    """
    return [lst[i:i + chunk_size] for i in range(0, len(lst), chunk_size)]


def today_utc() -> str:
    """Today's date in UTC as YYYY-MM-DD."""
    return datetime.now(timezone.utc).strftime('%Y-%m-%d')


def today_local() -> str:
    """Today's date in local time as YYYY-MM-DD."""
    return datetime.now().strftime('%Y-%m-%d')
