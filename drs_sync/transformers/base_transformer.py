"""Base transformer class for mapping source rows onto canonical records."""
from abc import ABC, abstractmethod
from typing import Any, List, Mapping
import logging

from drs_sync.schemas.canonical import CanonicalRecord

logger = logging.getLogger(__name__)


class BaseTransformer(ABC):
    """
    Abstract base class for transformers producing CanonicalRecords.

    Tracks how many input items the last transform() call dropped.
    """

    def __init__(self, name: str):
        """
        Initialize the transformer.

        Args:
            name: Name of the transformer (for logging)
        """
        self.name = name
        self.logger = logging.getLogger(f'{__name__}.{name}')
        self.dropped = 0

    @abstractmethod
    def transform(self, data: List[Mapping[str, Any]], **kwargs) -> List[CanonicalRecord]:
        """
        Map source items to canonical records.

        Args:
            data: Source rows or objects

        Returns:
            Records that passed filtering, input order kept
        """

    def log_transform(self, source: str, received: int, kept: int) -> None:
        self.logger.info(f'Normalized {received} {source} rows: kept {kept}, dropped {self.dropped}')
