"""Extractor for DRS daily orders via browser scraping."""
from typing import Any, List, Dict, Optional
import logging

from drs_sync.config.settings import Settings
from drs_sync.connectors.web_scraper import WebScraperConnector
from drs_sync.exceptions import DRSSyncError
from drs_sync.extractors.base_extractor import BaseExtractor
from drs_sync.extractors.session_navigator import SessionNavigator
from drs_sync.utils.diagnostics import DiagnosticSink

logger = logging.getLogger(__name__)


class DRSScrapeExtractor(BaseExtractor):
    """
    Scrapes the DRS orders page.

    Owns the browser for exactly one run: it is started in extract() and
    closed when extract() returns or raises.
    """

    def __init__(
        self,
        settings: Settings,
        diagnostics: Optional[DiagnosticSink] = None,
        connector: Optional[WebScraperConnector] = None,
    ):
        super().__init__('drs_scrape', diagnostics)
        self.settings = settings
        self.connector = connector or WebScraperConnector(
            name='DRS',
            base_url=settings.drs_base,
            timeout=settings.timeout,
            headless=settings.headless,
        )
        self.headers: List[str] = []

    def _navigator(self) -> SessionNavigator:
        return SessionNavigator(
            browser=self.connector,
            username=self.settings.drs_username,
            password=self.settings.drs_password,
            login_urls=self.settings.login_candidates(),
            diagnostics=self.diagnostics,
        )

    def extract(self, start: str = '', end: str = '', **kwargs) -> List[Dict[str, Any]]:
        """
        Scrape order rows for a date range.

        Keyword Args:
            start: First date (YYYY-MM-DD)
            end: Last date (YYYY-MM-DD), defaults to start

        Returns:
            RawRows (Title Cased header -> cell text)
        """
        end = end or start
        try:
            if not self.connector.authenticate():
                raise DRSSyncError('Failed to start browser for DRS')
            table = self._navigator().scrape_orders(self.settings.drs_orders_url, start, end)
            self.headers = table.headers
            self.dump_raw({
                'start': start, 'end': end, 'headers': table.headers, 'rows': table.rows,
            })
            self.log_extraction(len(table.rows))
            return table.rows
        except Exception as e:
            self.logger.error(f'Extraction failed: {str(e)}')
            raise
        finally:
            self.connector.close()
