"""Airtable REST connector (query by formula, batch create, batch update)."""
from typing import Any, Dict, List, Optional
from urllib.parse import quote
import logging

from .api_connector import APIConnector
from drs_sync.exceptions import StoreWriteError

logger = logging.getLogger(__name__)

AIRTABLE_API_URL = 'https://api.airtable.com/v0'

# Airtable accepts at most 10 records per create/update request.
MAX_RECORDS_PER_REQUEST = 10


def escape_formula_value(value: str) -> str:
    """Escape a value for use inside a single-quoted formula string."""
    return str(value).replace('\\', '\\\\').replace("'", "\\'")


def match_formula(criteria: Dict[str, str]) -> str:
    """
    Build an exact-equality filterByFormula expression.

    >>> match_formula({'Date': '2025-01-15', 'Order #': '7'})
    "AND({Date}='2025-01-15', {Order #}='7')"
    """
    clauses = [
        f"{{{field}}}='{escape_formula_value(value)}'"
        for field, value in criteria.items()
    ]
    if len(clauses) == 1:
        return clauses[0]
    return f'AND({", ".join(clauses)})'


class AirtableConnector(APIConnector):
    """Connector for one Airtable table."""

    def __init__(
        self,
        api_key: str,
        base_id: str,
        table: str,
        timeout: int = 30,
        typecast: bool = False,
        api_url: str = AIRTABLE_API_URL,
    ):
        """
        Initialize Airtable connector.

        Args:
            api_key: Personal access token (data.records:read/write)
            base_id: Base identifier (appXXXXXXXXXXXXXX)
            table: Table name or identifier
            timeout: Request timeout in seconds
            typecast: Let Airtable coerce string values into field types
            api_url: REST root, overridable for tests
        """
        super().__init__(
            name='Airtable',
            base_url=f'{api_url}/{base_id}/{quote(table, safe="")}',
            api_key=api_key,
            timeout=timeout,
        )
        self.table = table
        self.typecast = typecast

    def _send(self, method: str, action: str, **kwargs) -> Dict[str, Any]:
        response = self.request(method, '', **kwargs)
        if not response.ok:
            body = response.text
            self.logger.error(f'Airtable {action} failed {response.status_code}: {body[:500]}')
            raise StoreWriteError(
                f'Airtable {action} failed {response.status_code}: {body}',
                status=response.status_code,
                body=body,
            )
        return response.json()

    def find_record_id(self, formula: str) -> Optional[str]:
        """
        Return the id of the first record matching a formula, if any.

        Args:
            formula: filterByFormula expression

        Returns:
            Record id or None
        """
        data = self._send(
            'GET',
            'query',
            params={'maxRecords': 1, 'filterByFormula': formula},
        )
        records = data.get('records') or []
        if records and records[0].get('id'):
            return records[0]['id']
        return None

    def create_records(self, fields_list: List[Dict[str, Any]]) -> List[str]:
        """
        Create up to 10 records in one request.

        Returns:
            Ids of the created records
        """
        self._check_size(fields_list)
        payload: Dict[str, Any] = {'records': [{'fields': f} for f in fields_list]}
        if self.typecast:
            payload['typecast'] = True
        data = self._send('POST', 'create', json=payload)
        return [r.get('id') for r in data.get('records', [])]

    def update_records(self, updates: List[Dict[str, Any]]) -> List[str]:
        """
        Update up to 10 records in one request.

        Args:
            updates: ``[{'id': ..., 'fields': {...}}, ...]``

        Returns:
            Ids of the updated records
        """
        self._check_size(updates)
        payload: Dict[str, Any] = {
            'records': [{'id': u['id'], 'fields': u['fields']} for u in updates]
        }
        if self.typecast:
            payload['typecast'] = True
        data = self._send('PATCH', 'update', json=payload)
        return [r.get('id') for r in data.get('records', [])]

    @staticmethod
    def _check_size(records: List[Any]) -> None:
        if len(records) > MAX_RECORDS_PER_REQUEST:
            raise ValueError(
                f'At most {MAX_RECORDS_PER_REQUEST} records per request, got {len(records)}'
            )
