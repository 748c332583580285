"""Web scraper connector for the DRS site using Playwright."""
from typing import Any, Callable, List, Optional, Tuple, Union
import logging
from pathlib import Path
from playwright.sync_api import sync_playwright
from playwright.sync_api import Error as PlaywrightError
from playwright.sync_api import TimeoutError as PlaywrightTimeoutError

from .base_connector import BaseConnector
from .dom import ElementInfo, TableSnapshot

logger = logging.getLogger(__name__)

# Collects identifying attributes of one element.
_DESCRIBE_JS = """
el => ({
    tag: (el.tagName || '').toLowerCase(),
    type: (el.type || el.getAttribute('type') || '').toLowerCase(),
    name: el.getAttribute('name') || '',
    id: el.id || '',
    placeholder: el.getAttribute('placeholder') || '',
    text: (el.innerText || el.textContent || '').replace(/\\s+/g, ' ').trim(),
    value: (el.tagName === 'INPUT' ? (el.value || '') : ''),
    aria_label: el.getAttribute('aria-label') || '',
    role: el.getAttribute('role') || '',
})
"""

# Reads every table as {header_cells, rows}; text is left raw.
_TABLES_JS = """
tables => tables.map(t => {
    const text = c => c.textContent || '';
    const allRows = Array.from(t.querySelectorAll('tr'));
    let headerRow = null;
    if (t.tHead && t.tHead.rows.length) {
        headerRow = t.tHead.rows[t.tHead.rows.length - 1];
    } else {
        headerRow = allRows.find(tr =>
            tr.cells.length > 0 &&
            Array.from(tr.cells).every(c => c.tagName === 'TH')) || null;
    }
    const headerCells = headerRow ? Array.from(headerRow.cells).map(text) : [];
    const rows = allRows
        .filter(tr => tr !== headerRow && !(t.tHead && t.tHead.contains(tr)))
        .map(tr => Array.from(tr.cells).map(text));
    return { header_cells: headerCells, rows: rows };
})
"""

ElementRef = Union[ElementInfo, Any]


class WebScraperConnector(BaseConnector):
    """
    Connector for browser automation using Playwright.

    Exposes the capability set the pipeline relies on: navigate, find,
    describe, fill, click, press, wait, read tables, screenshot, page source
    and file download. Optional interactions return False / None on failure
    and log a warning; callers decide whether that is fatal.
    """

    def __init__(
        self,
        name: str,
        base_url: str = '',
        timeout: int = 30,
        headless: bool = True,
    ):
        """
        Initialize web scraper connector.

        Args:
            name: Name of the website/service
            base_url: Base URL used to resolve relative URLs
            timeout: Playwright wait timeout in seconds
            headless: Whether to run browser in headless mode
        """
        super().__init__(name, timeout)
        self.base_url = base_url.rstrip('/')
        self.headless = headless
        self.timeout_ms = timeout * 1000

        # Playwright objects
        self.playwright = None
        self.browser = None
        self.context = None
        self.page = None

    def authenticate(self) -> bool:
        """
        Launch the browser and open a fresh page.

        Every run starts from an empty context; login happens one level up.
        """
        try:
            self.playwright = sync_playwright().start()

            # Browser args for container stability
            browser_args = [
                '--disable-dev-shm-usage',  # Overcome limited resource problems
                '--disable-blink-features=AutomationControlled',  # Avoid detection
                '--no-sandbox',  # Required for container environments
                '--disable-setuid-sandbox',
                '--disable-gpu',  # Disable GPU hardware acceleration
            ]

            self.browser = self.playwright.chromium.launch(
                headless=self.headless,
                args=browser_args
            )
            self.context = self.browser.new_context(
                viewport={'width': 1280, 'height': 900},
                ignore_https_errors=True,
                accept_downloads=True,
            )
            self.page = self.context.new_page()
            self.page.set_default_navigation_timeout(self.timeout_ms)
            self.page.set_default_timeout(self.timeout_ms)
            self.logger.info(f'Playwright browser initialized for {self.name}')
            return True

        except PlaywrightError as e:
            self.logger.error(f'Failed to start browser: {str(e)}')
            self.close()
            return False

    def navigate_to(self, url: str, wait_until: str = 'domcontentloaded') -> bool:
        """
        Navigate to a URL.

        Args:
            url: URL to navigate to (absolute or relative to base_url)
            wait_until: Playwright load state to wait for

        Returns:
            True if successful, False otherwise
        """
        try:
            if not url.startswith('http'):
                url = f'{self.base_url}{url}'
            self.page.goto(url, wait_until=wait_until)
            return True
        except PlaywrightError as e:
            self.logger.error(f'Failed to navigate to {url}: {str(e)}')
            return False

    def wait_for_load(self, state: str = 'domcontentloaded', timeout: Optional[int] = None) -> bool:
        """
        Wait for the page to reach a load state.

        Returns:
            True if reached, False on timeout
        """
        try:
            self.page.wait_for_load_state(state, timeout=timeout or self.timeout_ms)
            return True
        except PlaywrightError as e:
            self.logger.warning(f'Timeout waiting for load state {state}: {str(e)}')
            return False

    def query(self, selector: str) -> Optional[Any]:
        """
        Find the first element matching a CSS selector, without waiting.

        Returns:
            Element handle if found, None otherwise
        """
        try:
            return self.page.query_selector(selector)
        except PlaywrightError as e:
            self.logger.warning(f'Failed to query {selector}: {str(e)}')
            return None

    def describe_elements(self, selector: str) -> List[ElementInfo]:
        """
        Describe every element matching a CSS selector, in DOM order.

        Args:
            selector: CSS selector

        Returns:
            ElementInfo per element, each carrying its handle
        """
        described = []
        try:
            handles = self.page.query_selector_all(selector)
        except PlaywrightError as e:
            self.logger.warning(f'Failed to find elements {selector}: {str(e)}')
            return described

        for handle in handles:
            try:
                attrs = handle.evaluate(_DESCRIBE_JS)
                visible = handle.is_visible()
            except PlaywrightError as e:
                # Detached while we were looking at it
                self.logger.debug(f'Skipping element: {str(e)}')
                continue
            described.append(ElementInfo(visible=visible, handle=handle, **attrs))
        return described

    @staticmethod
    def _handle(element: ElementRef) -> Any:
        return element.handle if isinstance(element, ElementInfo) else element

    def fill(self, element: ElementRef, text: str) -> bool:
        """Fill an input element. Returns True if successful."""
        try:
            self._handle(element).fill(text)
            return True
        except PlaywrightError as e:
            self.logger.error(f'Failed to fill element: {str(e)}')
            return False

    def click(self, element: ElementRef) -> bool:
        """Click an element. Returns True if successful."""
        try:
            self._handle(element).click()
            return True
        except PlaywrightError as e:
            self.logger.error(f'Failed to click element: {str(e)}')
            return False

    def press(self, element: ElementRef, key: str) -> bool:
        """Press a key with focus on element."""
        try:
            self._handle(element).press(key)
            return True
        except PlaywrightError as e:
            self.logger.error(f'Failed to press {key}: {str(e)}')
            return False

    def select_options(self, element: ElementRef) -> List[Tuple[str, str]]:
        """(value, text) of every <option> of a <select> element."""
        try:
            return [
                (o['value'], o['text'])
                for o in self._handle(element).evaluate(
                    "el => Array.from(el.options || []).map("
                    "o => ({value: o.value, text: o.textContent || ''}))"
                )
            ]
        except PlaywrightError as e:
            self.logger.warning(f'Failed to read options: {str(e)}')
            return []

    def select_option(self, element: ElementRef, value: str) -> bool:
        """Choose an option of a <select> by value."""
        try:
            self._handle(element).select_option(value)
            return True
        except PlaywrightError as e:
            self.logger.warning(f'Failed to select option {value}: {str(e)}')
            return False

    def read_tables(self) -> List[TableSnapshot]:
        """Raw text of every <table> on the page, in DOM order."""
        try:
            raw = self.page.eval_on_selector_all('table', _TABLES_JS)
        except PlaywrightError as e:
            self.logger.warning(f'Failed to read tables: {str(e)}')
            return []
        return [
            TableSnapshot(header_cells=t.get('header_cells', []), rows=t.get('rows', []))
            for t in raw
        ]

    def body_text(self) -> str:
        """Visible text of the page body."""
        try:
            return self.page.inner_text('body')
        except PlaywrightError as e:
            self.logger.warning(f'Failed to read body text: {str(e)}')
            return ''

    def get_page_content(self) -> str:
        """Get the current page's HTML content."""
        try:
            return self.page.content() if self.page else ''
        except PlaywrightError as e:
            self.logger.warning(f'Failed to get page content: {str(e)}')
            return ''

    def capture_screenshot(self) -> Optional[bytes]:
        """Full-page PNG screenshot, or None if it cannot be taken."""
        try:
            return self.page.screenshot(full_page=True) if self.page else None
        except PlaywrightError as e:
            self.logger.error(f'Failed to take screenshot: {str(e)}')
            return None

    def download(
        self,
        trigger: Callable[[], bool],
        target: Path,
        timeout: Optional[int] = None,
    ) -> Optional[Path]:
        """
        Run ``trigger`` and save the download it starts.

        Args:
            trigger: Callable performing the click; returns False if it
                could not click anything
            target: Path to save the file to
            timeout: Seconds to wait for the download

        Returns:
            Saved path, or None if no download arrived in time or it failed
        """
        timeout_ms = (timeout or self.timeout) * 1000
        try:
            with self.page.expect_download(timeout=timeout_ms) as download_info:
                if not trigger():
                    raise PlaywrightTimeoutError('No export control to click')
            download = download_info.value
            target.parent.mkdir(parents=True, exist_ok=True)
            download.save_as(str(target))
            self.logger.info(f'Download saved to {target}')
            return target
        except PlaywrightError as e:
            self.logger.warning(f'No download captured: {str(e)}')
            return None

    def close(self) -> None:
        """Close the browser and Playwright resources."""
        try:
            if self.page:
                self.page.close()
            if self.context:
                self.context.close()
            if self.browser:
                self.browser.close()
            if self.playwright:
                self.playwright.stop()
            self.logger.info(f'Closed connection to {self.name}')
        except PlaywrightError as e:
            self.logger.warning(f'Error closing browser: {str(e)}')
        finally:
            self.page = self.context = self.browser = self.playwright = None
