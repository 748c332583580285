"""
Diagnostic artifacts for operator inspection.

Components never write diagnostic files themselves. They report events to a
DiagnosticSink (screenshot + page source snapshots, payload dumps, error
text); the sink decides where those go. Artifacts never feed back into the
pipeline.
"""
from abc import ABC, abstractmethod
from typing import Any, Optional, Set
import json
import logging
from pathlib import Path

logger = logging.getLogger(__name__)


class DiagnosticSink(ABC):
    """Receives diagnostic events from pipeline components."""

    @abstractmethod
    def snapshot(
        self,
        tag: str,
        screenshot: Optional[bytes] = None,
        page_source: Optional[str] = None,
    ) -> None:
        """Record a browser snapshot (``<tag>.png`` / ``<tag>.html``)."""

    @abstractmethod
    def dump_payload(self, name: str, payload: Any) -> None:
        """Record a JSON-serializable payload (e.g. ``orders.json``)."""

    @abstractmethod
    def dump_text(self, name: str, text: str) -> None:
        """Record a plain text artifact (e.g. ``airtable-error.txt``)."""


class NullDiagnosticSink(DiagnosticSink):
    """Discards every event."""

    def snapshot(self, tag, screenshot=None, page_source=None) -> None:
        logger.debug(f'Diagnostics disabled, dropping snapshot {tag}')

    def dump_payload(self, name, payload) -> None:
        logger.debug(f'Diagnostics disabled, dropping payload {name}')

    def dump_text(self, name, text) -> None:
        logger.debug(f'Diagnostics disabled, dropping text {name}')


class FileDiagnosticSink(DiagnosticSink):
    """
    Writes diagnostic artifacts under a directory.

    Each artifact name is written at most once per sink instance, so a
    failure point that fires repeatedly within a run keeps its first capture.
    """

    def __init__(self, directory: Path):
        self.directory = Path(directory)
        self.written: Set[str] = set()

    def _path(self, name: str) -> Optional[Path]:
        if name in self.written:
            logger.debug(f'Diagnostic artifact {name} already written, skipping')
            return None
        self.directory.mkdir(parents=True, exist_ok=True)
        self.written.add(name)
        return self.directory / name

    def snapshot(
        self,
        tag: str,
        screenshot: Optional[bytes] = None,
        page_source: Optional[str] = None,
    ) -> None:
        if screenshot is not None:
            path = self._path(f'{tag}.png')
            if path:
                path.write_bytes(screenshot)
                logger.info(f'Screenshot saved to {path}')
        if page_source is not None:
            path = self._path(f'{tag}.html')
            if path:
                path.write_text(page_source, encoding='utf-8')
                logger.info(f'Page source saved to {path}')

    def dump_payload(self, name: str, payload: Any) -> None:
        path = self._path(name)
        if path:
            with open(path, 'w', encoding='utf-8') as f:
                json.dump(payload, f, indent=2, default=str)
            logger.info(f'Payload saved to {path}')

    def dump_text(self, name: str, text: str) -> None:
        path = self._path(name)
        if path:
            path.write_text(text, encoding='utf-8')
            logger.info(f'Diagnostic text saved to {path}')
