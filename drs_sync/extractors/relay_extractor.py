"""Extractor for orders served as JSON by the DRS relay."""
from typing import Any, List, Dict, Optional
import logging

from drs_sync.config.settings import Settings
from drs_sync.connectors.api_connector import APIConnector
from drs_sync.exceptions import UpstreamError
from drs_sync.extractors.base_extractor import BaseExtractor
from drs_sync.utils.diagnostics import DiagnosticSink

logger = logging.getLogger(__name__)


class RelayExtractor(BaseExtractor):
    """
    Pulls ``{orders: [...]}`` from the relay for a date or date range.

    The relay answers 200 with an empty list when it finds nothing, so an
    empty result is normal; anything that is not a JSON object with an
    ``orders`` list is an UpstreamError.
    """

    def __init__(
        self,
        settings: Settings,
        diagnostics: Optional[DiagnosticSink] = None,
        connector: Optional[APIConnector] = None,
    ):
        super().__init__('relay', diagnostics)
        self.settings = settings
        self.connector = connector or APIConnector(
            name='Relay',
            base_url=settings.worker_url,
            timeout=settings.timeout,
        )
        self.source = ''

    def extract(
        self,
        date: str = '',
        start: str = '',
        end: str = '',
        **kwargs,
    ) -> List[Dict[str, Any]]:
        """
        Fetch orders from the relay.

        Keyword Args:
            date: Single date (used when neither start nor end is given)
            start: Range start (YYYY-MM-DD)
            end: Range end (YYYY-MM-DD)

        Returns:
            The relay's order objects, unmodified
        """
        if start or end:
            params = {'start': start or end, 'end': end or start}
        else:
            params = {'date': date}

        with self.connector:
            response = self.connector.request(
                'GET', '', params=params, headers={'Accept': 'application/json'},
            )

        body = response.text
        try:
            data = response.json()
        except ValueError:
            data = None

        if not response.ok or not isinstance(data, dict) or not isinstance(data.get('orders'), list):
            self.logger.error(f'Relay failed: {response.status_code} {body[:500]}')
            raise UpstreamError(
                f'Relay failed: {response.status_code} {body[:500]}',
                diagnostics={
                    'status': response.status_code,
                    'head': body[:500],
                    'body': data if isinstance(data, dict) else None,
                },
            )

        orders = data['orders']
        self.source = str(data.get('source', ''))
        self.dump_raw(data)
        self.log_extraction(len(orders))
        return orders
