"""
Drive one authenticated DRS browser session.

Login walks an explicit state machine over candidate login URLs:

    UNAUTHENTICATED -> ATTEMPTING(url_1) -> AUTHENTICATED
                                         -> ATTEMPTING(url_2) -> ...
                                         -> FAILED

A candidate page without a password field counts as already authenticated.
FAILED is terminal: a snapshot is captured and AuthenticationError raised.
Everything after login (date filters, filter button, report selection) is
best effort and only degrades to a diagnostics snapshot.
"""
from enum import Enum
from pathlib import Path
from typing import List, Optional, Sequence, Tuple
import csv
import io
import logging
import re

from drs_sync.connectors.dom import ElementInfo
from drs_sync.exceptions import AuthenticationError, ExportError
from drs_sync.extractors.login_resolver import Heuristic, LoginResolver, first_match
from drs_sync.extractors.table_extractor import ExtractedTable, TableExtractor
from drs_sync.utils.diagnostics import DiagnosticSink, NullDiagnosticSink

logger = logging.getLogger(__name__)


class AuthState(Enum):
    UNAUTHENTICATED = 'unauthenticated'
    ATTEMPTING = 'attempting'
    AUTHENTICATED = 'authenticated'
    FAILED = 'failed'


START_DATE_SELECTORS: Tuple[str, ...] = (
    'input[name="start"]',
    'input[name="from"]',
    'input#start_date',
    'input[name="date"]',
    'input#date',
    'input[type="date"]',
)

END_DATE_SELECTORS: Tuple[str, ...] = (
    'input[name="end"]',
    'input[name="to"]',
    'input#end_date',
)

CLICKABLE_SELECTOR = 'a, button, input[type="submit"], input[type="button"], [role="button"], [role="tab"], [aria-label]'
REPORT_SELECT_SELECTOR = 'select'


def _caption(tags: Sequence[str], pattern: str) -> Heuristic:
    regex = re.compile(pattern, re.I)
    return (
        f'{"/".join(tags)}~{pattern}',
        lambda e: e.tag in tags and bool(regex.search(e.caption)),
    )


def _aria(pattern: str) -> Heuristic:
    regex = re.compile(pattern, re.I)
    return f'aria-label~{pattern}', lambda e: bool(regex.search(e.aria_label))


FILTER_HEURISTICS: List[Heuristic] = [
    _caption(('button',), 'filter'),
    _caption(('button',), 'apply'),
    _caption(('button',), 'search'),
    ('input[type=submit]', lambda e: e.tag == 'input' and e.type == 'submit'),
]

REPORTS_MENU_HEURISTICS: List[Heuristic] = [
    _caption(('a',), r'\breports?\b'),
    _caption(('button',), r'\breports?\b'),
]

DAILY_REPORT_HEURISTICS: List[Heuristic] = [
    _caption(('a',), r'\bdaily\b'),
    _caption(('button',), r'\bdaily\b'),
    ('[role=tab]~daily', lambda e: e.role == 'tab' and 'daily' in e.caption.lower()),
]

EXPORT_HEURISTICS: List[Heuristic] = [
    _caption(('button',), 'export'),
    _caption(('button',), 'csv'),
    _caption(('a',), 'export'),
    _caption(('a',), 'csv'),
    _aria('export'),
    _aria('csv'),
    _caption(('a', 'button', 'input', 'span', 'div'), r'export.*csv'),
]


def find_inline_csv(text: str, min_rows: int = 2) -> Optional[str]:
    """
    Pull a CSV-looking block out of page text.

    A block is a run of consecutive lines that parse to the same number
    (at least two) of comma-separated fields; the longest such run with at
    least ``min_rows`` lines wins.

    Returns:
        The CSV text, or None if the page holds nothing CSV-like
    """
    best: List[str] = []
    run: List[str] = []
    run_width = 0

    for line in (text or '').splitlines():
        stripped = line.strip()
        width = len(next(csv.reader(io.StringIO(stripped)), [])) if stripped else 0
        if width >= 2 and (not run or width == run_width):
            run.append(stripped)
            run_width = width
        else:
            if len(run) > len(best):
                best = run
            run = [stripped] if width >= 2 else []
            run_width = width if width >= 2 else 0
    if len(run) > len(best):
        best = run

    if len(best) < min_rows:
        return None
    return '\n'.join(best) + '\n'


class SessionNavigator:
    """
    Sequences login, navigation, filtering and extraction in one browser.

    The browser is any object exposing the WebScraperConnector capability
    set; diagnostics go to a DiagnosticSink instead of the filesystem.
    """

    def __init__(
        self,
        browser,
        username: str,
        password: str,
        login_urls: Sequence[str],
        resolver: Optional[LoginResolver] = None,
        table_extractor: Optional[TableExtractor] = None,
        diagnostics: Optional[DiagnosticSink] = None,
    ):
        self.browser = browser
        self.username = username
        self.password = password
        self.login_urls = list(login_urls)
        self.resolver = resolver or LoginResolver()
        self.table_extractor = table_extractor or TableExtractor()
        self.diagnostics = diagnostics or NullDiagnosticSink()
        self.state = AuthState.UNAUTHENTICATED
        self.attempts: List[Tuple[str, str]] = []
        self.logger = logging.getLogger(f'{__name__}.SessionNavigator')

    # ------------------------------------------------------------------
    # Diagnostics
    # ------------------------------------------------------------------

    def snapshot(self, tag: str) -> None:
        """Report the current page (screenshot + source) to the sink."""
        self.diagnostics.snapshot(
            tag,
            screenshot=self.browser.capture_screenshot(),
            page_source=self.browser.get_page_content(),
        )

    # ------------------------------------------------------------------
    # Login state machine
    # ------------------------------------------------------------------

    def _attempt(self, url: str) -> str:
        """Run one ATTEMPTING(url) state; return its outcome label."""
        if not self.browser.navigate_to(url):
            return 'unreachable'
        if not self.resolver.login_form_present(self.browser):
            return 'no-login-form'
        if self.resolver.resolve(self.browser, self.username, self.password):
            return 'logged-in'
        return 'rejected'

    def authenticate(self) -> str:
        """
        Log in, trying each candidate URL until one yields a session.

        Returns:
            The URL that produced the session

        Raises:
            AuthenticationError: every candidate was exhausted
        """
        for url in self.login_urls:
            self.state = AuthState.ATTEMPTING
            self.logger.info(f'Trying login at {url}')
            outcome = self._attempt(url)
            self.attempts.append((url, outcome))

            if outcome in ('logged-in', 'no-login-form'):
                self.state = AuthState.AUTHENTICATED
                self.logger.info(f'Authenticated at {url} ({outcome})')
                return url
            self.logger.warning(f'Login attempt at {url} failed: {outcome}')

        self.state = AuthState.FAILED
        self.snapshot('login-failed')
        raise AuthenticationError(
            f'Login failed at every candidate URL: {self.attempts}',
            attempted=[url for url, _ in self.attempts],
        )

    # ------------------------------------------------------------------
    # Best-effort page interactions
    # ------------------------------------------------------------------

    def _clickables(self) -> List[ElementInfo]:
        return [e for e in self.browser.describe_elements(CLICKABLE_SELECTOR) if e.visible]

    def click_first(self, heuristics: Sequence[Heuristic], what: str) -> bool:
        """Click the first control matching the heuristics; False if none."""
        match = first_match(heuristics, self._clickables())
        if match is None:
            self.logger.info(f'No {what} control found')
            return False
        self.logger.info(f'Clicking {what} via {match[0]}')
        return self.browser.click(match[1])

    def _fill_first(self, selectors: Sequence[str], value: str) -> Optional[str]:
        for selector in selectors:
            element = self.browser.query(selector)
            if element is not None and self.browser.fill(element, value):
                return selector
        return None

    def apply_date_filter(self, start: str, end: str) -> bool:
        """
        Fill start/end date inputs if the page has them.

        Missing inputs are not an error.

        Returns:
            True if at least one input was filled
        """
        start_sel = self._fill_first(START_DATE_SELECTORS, start)
        end_sel = self._fill_first(END_DATE_SELECTORS, end)
        if start_sel or end_sel:
            self.logger.info(f'Date filter set (start={start_sel}, end={end_sel})')
            return True
        self.logger.info('No date filter inputs on page')
        return False

    def submit_filter(self) -> bool:
        """Click a Filter/Apply/Search control if one exists."""
        if self.click_first(FILTER_HEURISTICS, 'filter'):
            self.browser.wait_for_load('domcontentloaded')
            return True
        return False

    # ------------------------------------------------------------------
    # Table scrape path
    # ------------------------------------------------------------------

    def extract_table(self) -> ExtractedTable:
        """Run the table extractor; snapshot the page when nothing qualifies."""
        table = self.table_extractor.extract(self.browser.read_tables())
        if not table.rows:
            self.logger.warning('No order rows found on page')
            self.snapshot('no-rows')
        return table

    def scrape_orders(self, orders_url: str, start: str, end: str) -> ExtractedTable:
        """
        Log in, open the orders page, filter by date and read the table.

        Returns:
            The extracted table (possibly empty)
        """
        self.authenticate()

        if not self.browser.navigate_to(orders_url):
            self.logger.error(f'Could not open orders page {orders_url}')
        self.apply_date_filter(start, end)
        self.submit_filter()
        return self.extract_table()

    # ------------------------------------------------------------------
    # CSV export path
    # ------------------------------------------------------------------

    def open_reports(self, reports_url: str = '') -> None:
        """Open the reports page directly, or through a Reports menu."""
        if reports_url:
            self.browser.navigate_to(reports_url)
        else:
            self.click_first(REPORTS_MENU_HEURISTICS, 'reports menu')
        self.browser.wait_for_load('domcontentloaded')

    def select_daily_report(self) -> bool:
        """Switch to the daily report via a tab/link or a report <select>."""
        if self.click_first(DAILY_REPORT_HEURISTICS, 'daily report'):
            self.browser.wait_for_load('domcontentloaded')
            return True

        for element in self.browser.describe_elements(REPORT_SELECT_SELECTOR):
            if 'report' not in f'{element.name} {element.id}'.lower():
                continue
            for value, text in self.browser.select_options(element):
                if re.search(r'daily', text, re.I):
                    self.logger.info(f'Selecting report option {text.strip()!r}')
                    return self.browser.select_option(element, value)
        self.logger.info('No daily report control found')
        return False

    def export_csv(self, target: Path, timeout: int) -> Path:
        """
        Trigger the CSV export and save it to ``target``.

        Falls back once to CSV-like text rendered inline in the page.

        Raises:
            ExportError: neither a download nor inline CSV was found
        """
        saved = self.browser.download(
            lambda: self.click_first(EXPORT_HEURISTICS, 'export'),
            target,
            timeout=timeout,
        )
        if saved is not None:
            return saved

        self.logger.warning('No download captured, looking for inline CSV')
        inline = find_inline_csv(self.browser.body_text())
        if inline:
            target.parent.mkdir(parents=True, exist_ok=True)
            target.write_text(inline, encoding='utf-8')
            self.logger.info(f'Inline CSV saved to {target}')
            return target

        self.snapshot('export-failed')
        raise ExportError(f'No CSV download within {timeout}s and no inline CSV on page')

    def export_daily(self, reports_url: str, date: str, target: Path, timeout: int) -> Path:
        """Log in, open the daily report for ``date`` and export it as CSV."""
        self.authenticate()
        self.open_reports(reports_url)
        self.select_daily_report()
        self.apply_date_filter(date, date)
        return self.export_csv(target, timeout)
