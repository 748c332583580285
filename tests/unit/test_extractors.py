"""Tests for the scrape and relay extractors."""
from unittest.mock import MagicMock, patch

import pytest
from playwright.sync_api import Error as PlaywrightError

from drs_sync.exceptions import AuthenticationError, DRSSyncError, UpstreamError
from drs_sync.extractors.drs_scrape_extractor import DRSScrapeExtractor
from drs_sync.extractors.relay_extractor import RelayExtractor

LOGIN_URL = 'https://drs.example.com/cp/autoforward'


def relay_response(status=200, payload=None, text=''):
    mock = MagicMock(status_code=status, ok=200 <= status < 300, text=text or str(payload))
    if payload is None:
        mock.json.side_effect = ValueError('not json')
    else:
        mock.json.return_value = payload
    return mock


@pytest.fixture
def relay_connector():
    connector = MagicMock()
    connector.__enter__.return_value = connector
    connector.__exit__.return_value = False
    return connector


class TestDRSScrapeExtractor:
    """Tests for DRSScrapeExtractor."""

    def test_extract(self, settings, login_page, fake_page, fake_browser, orders_table, diagnostics):
        login_page.on_login = fake_page()
        browser = fake_browser({
            LOGIN_URL: login_page,
            settings.drs_orders_url: fake_page(tables=[orders_table]),
        })
        extractor = DRSScrapeExtractor(settings, diagnostics, connector=browser)

        rows = extractor.extract(start='2025-01-15')

        assert [r['Order Id'] for r in rows] == ['#1001', '#1002']
        assert extractor.headers[0] == 'Order Id'
        assert diagnostics.payloads['orders.json']['rows'] == rows
        assert diagnostics.payloads['orders.json']['end'] == '2025-01-15'
        assert browser.closed

    def test_login_failure_closes_browser(self, settings, login_page, fake_browser, diagnostics):
        browser = fake_browser({LOGIN_URL: login_page})
        extractor = DRSScrapeExtractor(settings, diagnostics, connector=browser)

        with pytest.raises(AuthenticationError):
            extractor.extract(start='2025-01-15')

        assert browser.closed
        assert diagnostics.snapshots == ['login-failed']

    def test_browser_start_failure_closes(self, settings, diagnostics):
        connector = MagicMock()
        connector.authenticate.return_value = False

        with pytest.raises(DRSSyncError):
            DRSScrapeExtractor(settings, diagnostics, connector=connector).extract(start='2025-01-15')

        connector.close.assert_called_once()

    def test_launch_error_stops_playwright(self, settings, diagnostics):
        with patch('drs_sync.connectors.web_scraper.sync_playwright') as factory:
            driver = factory.return_value.start.return_value
            driver.chromium.launch.side_effect = PlaywrightError('browser executable missing')

            with pytest.raises(DRSSyncError):
                DRSScrapeExtractor(settings, diagnostics).extract(start='2025-01-15')

        driver.stop.assert_called_once()


class TestRelayExtractor:
    """Tests for RelayExtractor."""

    def test_single_date(self, settings, relay_connector, diagnostics):
        relay_connector.request.return_value = relay_response(payload={'orders': [{'id': 1}], 'source': 'post-form'})
        extractor = RelayExtractor(settings, diagnostics, connector=relay_connector)

        orders = extractor.extract(date='2025-01-15')

        assert orders == [{'id': 1}]
        assert extractor.source == 'post-form'
        assert relay_connector.request.call_args.kwargs['params'] == {'date': '2025-01-15'}
        assert diagnostics.payloads['orders.json'] == {'orders': [{'id': 1}], 'source': 'post-form'}

    def test_range(self, settings, relay_connector, diagnostics):
        relay_connector.request.return_value = relay_response(payload={'orders': []})
        extractor = RelayExtractor(settings, diagnostics, connector=relay_connector)

        assert extractor.extract(start='2025-01-10', end='2025-01-15') == []
        assert relay_connector.request.call_args.kwargs['params'] == {'start': '2025-01-10', 'end': '2025-01-15'}

    def test_half_open_range(self, settings, relay_connector, diagnostics):
        relay_connector.request.return_value = relay_response(payload={'orders': []})
        RelayExtractor(settings, diagnostics, connector=relay_connector).extract(start='2025-01-10')

        assert relay_connector.request.call_args.kwargs['params'] == {'start': '2025-01-10', 'end': '2025-01-10'}

    @pytest.mark.parametrize('reply', [
        relay_response(status=500, payload={'error': 'Relay missing DRS_BASE'}),
        relay_response(text='<html>Bad gateway</html>'),
        relay_response(payload={'orders': 'none'}),
        relay_response(payload=[{'id': 1}]),
    ])
    def test_unusable_reply(self, settings, relay_connector, diagnostics, reply):
        relay_connector.request.return_value = reply

        with pytest.raises(UpstreamError) as exc_info:
            RelayExtractor(settings, diagnostics, connector=relay_connector).extract(date='2025-01-15')

        assert exc_info.value.diagnostics['status'] == reply.status_code
        assert 'orders.json' not in diagnostics.payloads
