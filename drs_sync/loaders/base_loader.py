"""Base loader class for record stores."""
from abc import ABC, abstractmethod
from typing import Any, Dict, List
import logging

from drs_sync.schemas.canonical import CanonicalRecord

logger = logging.getLogger(__name__)


class BaseLoader(ABC):
    """
    Abstract base class for stores that receive canonical records.

    Subclasses upsert and keep three counters per load: records created,
    records updated, and duplicates merged away before writing.
    """

    def __init__(self, name: str):
        """
        Initialize the loader.

        Args:
            name: Name of the store (for logging)
        """
        self.name = name
        self.logger = logging.getLogger(f'{__name__}.{name}')
        self.reset_stats()

    def reset_stats(self) -> None:
        self.created = 0
        self.updated = 0
        self.merged = 0

    @abstractmethod
    def load(self, data: List[CanonicalRecord], **kwargs) -> bool:
        """
        Write records to the store.

        Args:
            data: Canonical records, blanks already removed

        Returns:
            True when every record was written
        """

    def validate_load(self, record_count: int) -> bool:
        """True when created + updated + merged accounts for every record."""
        accounted = self.created + self.updated + self.merged
        if accounted != record_count:
            self.logger.warning(f'Load accounted for {accounted} of {record_count} records')
            return False
        return True

    def get_load_stats(self) -> Dict[str, Any]:
        """Get statistics about the last load."""
        return {
            'loader': self.name,
            'created': self.created,
            'updated': self.updated,
            'merged': self.merged,
        }
