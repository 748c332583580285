"""Shared shape for the DRS site, relay, and Airtable connections."""
from abc import ABC, abstractmethod
import logging

logger = logging.getLogger(__name__)


class BaseConnector(ABC):
    """
    A named connection with setup in authenticate() and teardown in close().

    Use as a context manager; close() runs even when the body raises.
    """

    def __init__(self, name: str, timeout: int = 30):
        self.name = name
        self.timeout = timeout
        self.logger = logging.getLogger(f'{__name__}.{name}')

    @abstractmethod
    def authenticate(self) -> bool:
        """Attach credentials or start the browser. False when not ready."""

    @abstractmethod
    def close(self) -> None:
        """Release the session, browser, or socket pool."""

    def __enter__(self):
        self.authenticate()
        return self

    def __exit__(self, exc_type, exc_val, exc_tb):
        if exc_type is not None:
            self.logger.debug(f'Closing {self.name} after {exc_type.__name__}')
        self.close()
