"""Map heterogeneous DRS rows onto the canonical order schema."""
from typing import Any, List, Dict, Mapping, Sequence
import logging

from drs_sync.config.settings import FieldMapping
from drs_sync.schemas.canonical import CanonicalRecord
from drs_sync.transformers.base_transformer import BaseTransformer
from drs_sync.utils.helpers import flatten_leaf_keys

logger = logging.getLogger(__name__)

SOURCE_TABLE = 'table'
SOURCE_JSON = 'json'

MAPPED_FIELDS = ('customer', 'address', 'phone', 'size', 'order_number', 'status')


def pick(row: Mapping[str, Any], candidates: Sequence[str]) -> Any:
    """Value of the first candidate key whose value is not blank."""
    for key in candidates:
        value = row.get(key)
        if value is not None and str(value).strip():
            return value
    return ''


class FieldNormalizer(BaseTransformer):
    """
    Resolve canonical fields from scraped rows or relay JSON.

    Table rows: synonyms in order against the row's (Title Cased) headers,
    then the configured column index (``col<N>``), then ''.
    JSON orders: flattened to lowercase leaf keys first, then the JSON
    synonym lists.
    Records with no customer, address or order number are dropped.
    """

    def __init__(self, mapping: FieldMapping = None):
        super().__init__('field_normalizer')
        self.mapping = mapping or FieldMapping()

    def normalize_row(self, row: Mapping[str, Any], date: str) -> CanonicalRecord:
        """Map one table row (header -> cell text) to a CanonicalRecord."""
        values = {}
        for name in MAPPED_FIELDS:
            value = pick(row, self.mapping.table_synonyms.get(name, ()))
            if value == '' and name in self.mapping.column_overrides:
                value = row.get(f'col{self.mapping.column_overrides[name]}', '')
            values[name] = value
        return CanonicalRecord(date=date, **values)

    def normalize_json(self, order: Mapping[str, Any], date: str) -> CanonicalRecord:
        """Map one relay order object (any nesting) to a CanonicalRecord."""
        flat = flatten_leaf_keys(dict(order))
        values = {
            name: pick(flat, self.mapping.json_synonyms.get(name, ()))
            for name in MAPPED_FIELDS
        }
        return CanonicalRecord(date=date, raw=dict(order), **values)

    def transform(
        self,
        data: List[Dict[str, Any]],
        date: str = '',
        source: str = SOURCE_TABLE,
        **kwargs,
    ) -> List[CanonicalRecord]:
        """
        Normalize rows and drop blank records.

        Args:
            data: RawRows (source='table') or order objects (source='json')
            date: Target date stamped on every record
            source: 'table' or 'json'

        Returns:
            CanonicalRecords, blanks removed, input order kept
        """
        if source not in (SOURCE_TABLE, SOURCE_JSON):
            raise ValueError(f'Unknown source: {source}')

        normalize = self.normalize_json if source == SOURCE_JSON else self.normalize_row
        records = []
        self.dropped = 0
        for item in data:
            if not isinstance(item, Mapping):
                self.logger.warning(f'Skipping non-object {source} item: {item!r}')
                self.dropped += 1
                continue
            record = normalize(item, date)
            if record.is_blank():
                self.dropped += 1
                continue
            records.append(record)

        self.log_transform(source, len(data), len(records))
        return records
