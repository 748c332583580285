"""
Discover DRS's own JSON order API.

The DRS API accepts credentials in more than one way and its endpoint name
varies between installs, so each request walks a small fixed sequence:
two endpoint paths x three transports, stopping at the first response that
parses as JSON and holds a non-empty order array. State is per call.
"""
from dataclasses import dataclass, field
from typing import Any, Dict, List, Optional, Tuple
import logging

import requests

from drs_sync.connectors.api_connector import APIConnector

logger = logging.getLogger(__name__)

ENDPOINT_TEMPLATES: Tuple[str, ...] = (
    '/api/read/order/{start}/{end}/',
    '/api/read/orders/{start}/{end}/',
)

TRANSPORTS: Tuple[str, ...] = ('post-form', 'post-headers', 'get-headers')

# Keys checked directly on the top-level object before the deep search.
ARRAY_KEYS: Tuple[str, ...] = (
    'orders', 'order', 'rows', 'data', 'results', 'baskets', 'basket', 'list', 'items',
)

HEAD_LENGTH = 500


def _first_nonempty_list(node: Any, seen: set) -> Optional[list]:
    if isinstance(node, list):
        return node if node else None
    if not isinstance(node, dict) or id(node) in seen:
        return None
    seen.add(id(node))
    for value in node.values():
        found = _first_nonempty_list(value, seen)
        if found is not None:
            return found
    return None


def pick_array(root: Any) -> list:
    """
    Find the order array in an arbitrary JSON document.

    A top-level list is returned as is. Otherwise the well-known keys are
    checked in order, then a depth-first search returns the first non-empty
    list (lists are not descended into). Returns [] when nothing is found.

    >>> pick_array({'data': {'nested': {'orders': [{'id': 1}]}}})
    [{'id': 1}]
    """
    if isinstance(root, list):
        return root
    if isinstance(root, dict):
        for key in ARRAY_KEYS:
            value = root.get(key)
            if isinstance(value, list):
                return value
    return _first_nonempty_list(root, set()) or []


@dataclass
class RelayResult:
    """Outcome of one discovery run."""

    orders: List[Any] = field(default_factory=list)
    source: str = ''
    diagnostics: Dict[str, Any] = field(default_factory=dict)
    attempts: int = 0


class DRSUpstream(APIConnector):
    """One-shot client for the DRS JSON API, created per relay request."""

    def __init__(self, base_url: str, dev_key: str, api_token: str, timeout: int = 30):
        # Retries would multiply the fixed attempt sequence, so none here
        super().__init__(
            name='DRSUpstream',
            base_url=base_url,
            timeout=timeout,
            retry_attempts=0,
        )
        self.dev_key = dev_key
        self.api_token = api_token

    def authenticate(self) -> bool:
        self.session.headers.update({
            'Accept': 'application/json',
            'X-Requested-With': 'XMLHttpRequest',
            'User-Agent': self.USER_AGENT,
        })
        return True

    def _credential_headers(self) -> Dict[str, str]:
        return {'ERS-DEV-KEY': self.dev_key, 'ERS-API-TOKEN': self.api_token}

    def send(self, url: str, mode: str) -> requests.Response:
        """Issue one upstream call using the given transport."""
        if mode == 'post-form':
            return self.request(
                'POST', url,
                data={'key': self.dev_key, 'token': self.api_token},
                headers={'Content-Type': 'application/x-www-form-urlencoded; charset=utf-8'},
            )
        if mode == 'post-headers':
            return self.request('POST', url, headers=self._credential_headers())
        if mode == 'get-headers':
            return self.request('GET', url, headers=self._credential_headers())
        raise ValueError(f'Unknown transport: {mode}')

    def attempts(self, start: str, end: str) -> List[Tuple[str, str]]:
        """Ordered (url, transport) pairs for a date range."""
        urls = [self.url_for(t.format(start=start, end=end)) for t in ENDPOINT_TEMPLATES]
        return [(url, mode) for url in urls for mode in TRANSPORTS]

    def fetch_orders(self, start: str, end: str) -> RelayResult:
        """
        Walk the attempt sequence until a non-empty order array appears.

        Returns:
            RelayResult; ``orders`` empty and ``diagnostics`` describing the
            last attempt when nothing usable was found
        """
        result = RelayResult()
        for url, mode in self.attempts(start, end):
            result.attempts += 1
            try:
                response = self.send(url, mode)
            except requests.RequestException as e:
                self.logger.warning(f'{mode} {url} failed: {str(e)}')
                result.diagnostics = {
                    'status': 0, 'ct': '', 'len': 0, 'head': str(e)[:HEAD_LENGTH],
                    'url': url, 'mode': mode, 'keys': [],
                }
                continue

            text = response.text
            try:
                parsed = response.json()
            except ValueError:
                parsed = None

            result.diagnostics = {
                'status': response.status_code,
                'ct': response.headers.get('content-type', '').lower(),
                'len': len(text),
                'head': text[:HEAD_LENGTH],
                'url': url,
                'mode': mode,
                'keys': list(parsed.keys()) if isinstance(parsed, dict) else [],
            }

            if response.ok and parsed is not None:
                orders = pick_array(parsed)
                if orders:
                    self.logger.info(f'{len(orders)} orders via {mode} {url}')
                    result.orders = orders
                    result.source = mode
                    return result
                self.logger.info(f'{mode} {url}: JSON without orders')
            else:
                self.logger.info(f'{mode} {url}: status {response.status_code}, json={parsed is not None}')

        return result
