"""Base extractor class for all order sources."""
from abc import ABC, abstractmethod
from typing import Any, List, Dict, Optional
import logging
from datetime import datetime

from drs_sync.utils.diagnostics import DiagnosticSink, NullDiagnosticSink

logger = logging.getLogger(__name__)

RAW_ARTIFACT = 'orders.json'


class BaseExtractor(ABC):
    """
    Abstract base class for order extractors (browser scrape, CSV export,
    relay pull). Each returns raw, un-normalized order rows.
    """

    def __init__(self, name: str, diagnostics: Optional[DiagnosticSink] = None):
        """
        Initialize the extractor.

        Args:
            name: Name of the extractor (for logging)
            diagnostics: Sink for the raw payload dump and snapshots
        """
        self.name = name
        self.diagnostics = diagnostics or NullDiagnosticSink()
        self.logger = logging.getLogger(f'{__name__}.{name}')
        self.extracted_at = None
        self.record_count = 0

    @abstractmethod
    def extract(self, **kwargs) -> List[Dict[str, Any]]:
        """
        Extract raw order rows from the source.

        Returns:
            List of dictionaries, one per source row/order
        """

    def dump_raw(self, payload: Any) -> None:
        """Hand the unmodified source payload to the diagnostics sink."""
        self.diagnostics.dump_payload(RAW_ARTIFACT, payload)

    def log_extraction(self, record_count: int) -> None:
        """Log extraction completion details."""
        self.extracted_at = datetime.now()
        self.record_count = record_count
        self.logger.info(
            f'Extraction completed: {record_count} records extracted at '
            f'{self.extracted_at.isoformat()}'
        )

