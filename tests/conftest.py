"""Pytest configuration and fixtures."""
import re
from pathlib import Path
from typing import Any, Dict, List, Optional

import pytest
from unittest.mock import MagicMock

from drs_sync.config.settings import Settings
from drs_sync.connectors.dom import ElementInfo, TableSnapshot
from drs_sync.utils.diagnostics import DiagnosticSink


class RecordingDiagnosticSink(DiagnosticSink):
    """Captures diagnostic events instead of writing files."""

    def __init__(self):
        self.snapshots: List[str] = []
        self.payloads: Dict[str, Any] = {}
        self.texts: Dict[str, str] = {}

    def snapshot(self, tag, screenshot=None, page_source=None):
        self.snapshots.append(tag)

    def dump_payload(self, name, payload):
        self.payloads[name] = payload

    def dump_text(self, name, text):
        self.texts[name] = text


class FakePage:
    """One page of the fake DRS site."""

    def __init__(
        self,
        inputs: Optional[List[ElementInfo]] = None,
        controls: Optional[List[ElementInfo]] = None,
        selects: Optional[List[ElementInfo]] = None,
        options: Optional[Dict[str, List]] = None,
        tables: Optional[List[TableSnapshot]] = None,
        fields: Optional[Dict[str, ElementInfo]] = None,
        body: str = '',
        download: Optional[str] = None,
        credentials: Optional[tuple] = None,
        on_login: Optional['FakePage'] = None,
        on_click: Optional[Dict[str, 'FakePage']] = None,
    ):
        self.inputs = inputs or []
        self.controls = controls or []
        self.selects = selects or []
        self.options = options or {}
        self.tables = tables or []
        self.fields = fields or {}
        self.body = body
        self.download = download
        self.credentials = credentials
        self.on_login = on_login
        self.on_click = on_click or {}


class FakeBrowser:
    """In-memory stand-in for WebScraperConnector."""

    def __init__(self, pages: Dict[str, FakePage]):
        self.pages = pages
        self.page: Optional[FakePage] = None
        self.visited: List[str] = []
        self.filled: Dict[str, str] = {}
        self.clicked: List[str] = []
        self.pressed: List[str] = []
        self.selected: List[str] = []
        self.started = False
        self.closed = False

    # lifecycle
    def authenticate(self):
        self.started = True
        return True

    def close(self):
        self.closed = True

    # navigation
    def navigate_to(self, url, wait_until='domcontentloaded'):
        self.visited.append(url)
        if url not in self.pages:
            return False
        self.page = self.pages[url]
        self.filled = {}
        return True

    def wait_for_load(self, state='domcontentloaded', timeout=None):
        return True

    # DOM
    def describe_elements(self, selector):
        if self.page is None:
            return []
        if selector == 'input':
            return list(self.page.inputs)
        if selector == 'select':
            return list(self.page.selects)
        return list(self.page.controls)

    def query(self, selector):
        if self.page is None:
            return None
        return self.page.fields.get(selector)

    @staticmethod
    def _key(element):
        return element.name or element.id or element.placeholder or element.caption or element.type

    def fill(self, element, text):
        self.filled[self._key(element)] = text
        return True

    def _submit(self):
        page = self.page
        if page.credentials is None or page.on_login is None:
            return
        username, password = page.credentials
        if username in self.filled.values() and password in self.filled.values():
            self.page = page.on_login

    def click(self, element):
        self.clicked.append(element.caption)
        target = self.page.on_click.get(element.caption)
        if target is not None:
            self.page = target
        elif element.type == 'submit' or re.search(r'sign|log', element.caption, re.I):
            self._submit()
        return True

    def press(self, element, key):
        self.pressed.append(key)
        if key == 'Enter':
            self._submit()
        return True

    def select_options(self, element):
        return self.page.options.get(element.name or element.id, [])

    def select_option(self, element, value):
        self.selected.append(value)
        return True

    def read_tables(self):
        return list(self.page.tables) if self.page else []

    def body_text(self):
        return self.page.body if self.page else ''

    def capture_screenshot(self):
        return b'\x89PNG'

    def get_page_content(self):
        return '<html></html>'

    def download(self, trigger, target: Path, timeout=None):
        clicked = trigger()
        if clicked and self.page.download is not None:
            target.parent.mkdir(parents=True, exist_ok=True)
            target.write_text(self.page.download, encoding='utf-8')
            return target
        return None


class FakeAirtable:
    """In-memory Airtable table with the AirtableConnector surface."""

    _CLAUSE = re.compile(r"\{([^}]*)\}='((?:[^'\\]|\\.)*)'")

    def __init__(self):
        self.records: Dict[str, Dict[str, Any]] = {}
        self.create_calls: List[List[Dict[str, Any]]] = []
        self.update_calls: List[List[Dict[str, Any]]] = []
        self.queries: List[str] = []
        self.close = MagicMock()

    def find_record_id(self, formula):
        self.queries.append(formula)
        criteria = {
            field: value.replace("\\'", "'").replace('\\\\', '\\')
            for field, value in self._CLAUSE.findall(formula)
        }
        for record_id, fields in self.records.items():
            if all(str(fields.get(k, '')) == v for k, v in criteria.items()):
                return record_id
        return None

    def create_records(self, fields_list):
        self.create_calls.append(list(fields_list))
        ids = []
        for fields in fields_list:
            record_id = f'rec{len(self.records) + 1:05d}'
            self.records[record_id] = dict(fields)
            ids.append(record_id)
        return ids

    def update_records(self, updates):
        self.update_calls.append(list(updates))
        for update in updates:
            self.records[update['id']].update(update['fields'])
        return [u['id'] for u in updates]


def text_input(name='', type='text', id='', placeholder='', visible=True):
    return ElementInfo(tag='input', type=type, name=name, id=id, placeholder=placeholder, visible=visible)


def button(text, type='submit', tag='button', aria_label='', role=''):
    return ElementInfo(tag=tag, type=type, text=text, aria_label=aria_label, role=role)


@pytest.fixture
def diagnostics() -> RecordingDiagnosticSink:
    """Diagnostic sink that records events in memory."""
    return RecordingDiagnosticSink()


@pytest.fixture
def fake_airtable() -> FakeAirtable:
    """Empty in-memory Airtable table."""
    return FakeAirtable()


@pytest.fixture
def element():
    """Factories for ElementInfo fixtures: element.input(...), element.button(...)."""
    factory = MagicMock()
    factory.input.side_effect = text_input
    factory.button.side_effect = button
    return factory


@pytest.fixture
def fake_page():
    """FakePage class."""
    return FakePage


@pytest.fixture
def fake_browser():
    """FakeBrowser class."""
    return FakeBrowser


@pytest.fixture
def login_page():
    """A typical DRS login page: username, password, Sign in button."""
    return FakePage(
        inputs=[
            text_input(type='hidden', name='csrf'),
            text_input(placeholder='Username', name='user'),
            text_input(type='password', name='password', placeholder='Password'),
        ],
        controls=[button('Forgot password?', type='button', tag='a'), button('Sign in')],
        credentials=('ashley', 's3cret'),
    )


@pytest.fixture
def orders_table() -> TableSnapshot:
    """The order listing as DRS renders it."""
    return TableSnapshot(
        header_cells=['Order ID', 'Customer', 'Delivery  Address', 'Phone', 'Size', 'Status'],
        rows=[
            ['#1001', ' Acme Roofing ', '1 Main St\n  Springfield', '555-0100', '20 yd', 'Scheduled'],
            ['#1002', 'Jane Doe', '9 Elm Rd', '555-0101', '10 yd', 'Delivered'],
            ['', ' ', '', '', '', ''],
        ],
    )


@pytest.fixture
def settings() -> Settings:
    """Settings with every value a full run needs."""
    return Settings.from_env({
        'DRS_BASE': 'https://drs.example.com/',
        'DRS_USERNAME': 'ashley',
        'DRS_PASSWORD': 's3cret',
        'DRS_ORDERS_URL': 'https://drs.example.com/orders',
        'DRS_DEV_KEY': 'dev',
        'DRS_API_TOKEN': 'tok',
        'WORKER_URL': 'https://relay.example.workers.dev',
        'AIRTABLE_API_KEY': 'pat123',
        'AIRTABLE_BASE_ID': 'appBASE',
        'AIRTABLE_TABLE': 'Dumpsters',
    })
