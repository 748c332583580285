"""Extractor for the DRS daily report CSV export."""
from pathlib import Path
from typing import Any, List, Dict, Optional
import logging

import pandas as pd

from drs_sync.config.settings import Settings
from drs_sync.connectors.web_scraper import WebScraperConnector
from drs_sync.exceptions import DRSSyncError
from drs_sync.extractors.base_extractor import BaseExtractor
from drs_sync.extractors.session_navigator import SessionNavigator
from drs_sync.extractors.table_extractor import clean_text, title_case
from drs_sync.utils.diagnostics import DiagnosticSink

logger = logging.getLogger(__name__)

EXPORT_PREFIX = 'DRS-Daily'


def export_filename(date: str, prefix: str = EXPORT_PREFIX) -> str:
    """File name of a daily export, e.g. ``DRS-Daily-2025-01-15.csv``."""
    return f'{prefix}-{date}.csv'


def read_export_rows(path: Path) -> List[Dict[str, str]]:
    """
    Read an exported CSV into RawRows.

    Headers get the same Title Case treatment as scraped tables so the
    same synonym lists apply; unnamed columns become ``col<N>``.
    Rows with no content are dropped.
    """
    df = pd.read_csv(path, dtype=str, keep_default_na=False, skip_blank_lines=True)
    labels = []
    for i, column in enumerate(df.columns):
        header = clean_text(str(column))
        if not header or header.lower().startswith('unnamed:'):
            labels.append(f'col{i + 1}')
        else:
            labels.append(title_case(header))
    df.columns = labels

    rows = []
    for record in df.to_dict('records'):
        row = {k: clean_text(v) for k, v in record.items()}
        if any(row.values()):
            rows.append(row)
    return rows


class DRSExportExtractor(BaseExtractor):
    """Logs in, opens the daily report and downloads it as CSV."""

    def __init__(
        self,
        settings: Settings,
        diagnostics: Optional[DiagnosticSink] = None,
        connector: Optional[WebScraperConnector] = None,
    ):
        super().__init__('drs_export', diagnostics)
        self.settings = settings
        self.connector = connector or WebScraperConnector(
            name='DRS',
            base_url=settings.drs_base,
            timeout=settings.timeout,
            headless=settings.headless,
        )
        self.file_path: Optional[Path] = None

    def download(self, date: str, out_dir: Optional[Path] = None) -> Path:
        """
        Export the daily report for ``date``.

        Returns:
            Path of the saved CSV
        """
        target = Path(out_dir or self.settings.out_dir) / export_filename(date)
        try:
            if not self.connector.authenticate():
                raise DRSSyncError('Failed to start browser for DRS')
            navigator = SessionNavigator(
                browser=self.connector,
                username=self.settings.drs_username,
                password=self.settings.drs_password,
                login_urls=self.settings.login_candidates(),
                diagnostics=self.diagnostics,
            )
            self.file_path = navigator.export_daily(
                self.settings.drs_reports_url,
                date,
                target,
                timeout=self.settings.download_timeout,
            )
            return self.file_path
        finally:
            self.connector.close()

    def extract(self, date: str = '', out_dir: Optional[Path] = None, **kwargs) -> List[Dict[str, Any]]:
        """
        Export the daily CSV and read it back as RawRows.

        Keyword Args:
            date: Report date (YYYY-MM-DD)
            out_dir: Directory for the CSV (defaults to settings.out_dir)
        """
        path = self.download(date, out_dir)
        rows = read_export_rows(path)
        self.log_extraction(len(rows))
        return rows
