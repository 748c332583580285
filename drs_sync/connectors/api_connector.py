"""API connector for HTTP-based APIs."""
import requests
from typing import Iterable, Optional
from requests.adapters import HTTPAdapter
from urllib3.util.retry import Retry
import logging

from .base_connector import BaseConnector

logger = logging.getLogger(__name__)


class APIConnector(BaseConnector):
    """
    requests.Session wrapper for the relay and Airtable REST endpoints.
    Retries go through urllib3 and only cover the methods listed in
    retry_methods, so non-idempotent POSTs are sent once.
    """

    USER_AGENT = 'drs-sync/1.0'

    def __init__(
        self,
        name: str,
        base_url: str,
        api_key: Optional[str] = None,
        timeout: int = 30,
        retry_attempts: int = 3,
        retry_delay: float = 1,
        retry_methods: Iterable[str] = ('GET', 'PATCH'),
    ):
        """
        Initialize API connector.

        Args:
            name: Name of the API service
            base_url: Base URL for the API
            api_key: Optional API key, sent as a Bearer token
            timeout: Request timeout in seconds
            retry_attempts: Number of retry attempts (0 disables retries)
            retry_delay: Backoff factor between retries in seconds
            retry_methods: HTTP methods that are safe to retry
        """
        super().__init__(name, timeout)
        self.base_url = base_url.rstrip('/')
        self.api_key = api_key
        self.retry_attempts = retry_attempts
        self.retry_delay = retry_delay
        self.retry_methods = list(retry_methods)
        self.session = requests.Session()
        self._setup_retry_strategy()

    def _setup_retry_strategy(self) -> None:
        """Configure retry strategy for the session."""
        retry_strategy = Retry(
            total=self.retry_attempts,
            backoff_factor=self.retry_delay,
            status_forcelist=[429, 500, 502, 503, 504],
            allowed_methods=self.retry_methods,
            raise_on_status=False,
        )
        adapter = HTTPAdapter(max_retries=retry_strategy)
        self.session.mount('http://', adapter)
        self.session.mount('https://', adapter)

    def authenticate(self) -> bool:
        """Set the User-Agent and, when an API key is configured, the Bearer header."""
        self.session.headers.update({'User-Agent': self.USER_AGENT})
        if self.api_key:
            self.session.headers.update({'Authorization': f'Bearer {self.api_key}'})
        self.logger.info(f'Authenticated with {self.name}')
        return True

    def url_for(self, endpoint: str = '') -> str:
        """Absolute URL for an endpoint relative to base_url."""
        if endpoint.startswith('http'):
            return endpoint
        if not endpoint:
            return self.base_url
        return f'{self.base_url}/{endpoint.lstrip("/")}'

    def request(self, method: str, endpoint: str = '', **kwargs) -> requests.Response:
        """
        Send a request and return the raw response without status checks.

        Args:
            method: HTTP method
            endpoint: Endpoint relative to base_url, or an absolute URL
            **kwargs: Passed to requests (params, data, json, headers, ...)

        Returns:
            The response object
        """
        kwargs.setdefault('timeout', self.timeout)
        url = self.url_for(endpoint)
        self.logger.debug(f'{method} {url}')
        return self.session.request(method, url, **kwargs)

    def close(self) -> None:
        """Close the session."""
        self.session.close()
        self.logger.info(f'Closed connection to {self.name}')
