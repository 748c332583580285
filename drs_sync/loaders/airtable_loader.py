"""Upsert canonical records into Airtable, keyed by (date, order number)."""
from typing import Any, List, Dict, Optional
import logging

from drs_sync.config.settings import FieldNames
from drs_sync.connectors.airtable_connector import (
    AirtableConnector,
    MAX_RECORDS_PER_REQUEST,
    match_formula,
)
from drs_sync.exceptions import StoreWriteError
from drs_sync.loaders.base_loader import BaseLoader
from drs_sync.schemas.canonical import CanonicalRecord
from drs_sync.utils.diagnostics import DiagnosticSink, NullDiagnosticSink
from drs_sync.utils.helpers import chunk_list

logger = logging.getLogger(__name__)

ERROR_ARTIFACT = 'airtable-error.txt'


class AirtableLoader(BaseLoader):
    """
    Create-or-update records in one Airtable table.

    For each record with an order number, the table is queried for an
    existing row with the same date and order number; a hit is updated,
    a miss is created. Records without an order number cannot be matched
    and are always created. Writes go out in batches of 10, sequentially.
    A rejected batch is written to ``airtable-error.txt`` and the
    StoreWriteError is re-raised; counts of batches already written stay
    in the stats.
    """

    def __init__(
        self,
        connector: AirtableConnector,
        field_names: Optional[FieldNames] = None,
        diagnostics: Optional[DiagnosticSink] = None,
        batch_size: int = MAX_RECORDS_PER_REQUEST,
    ):
        super().__init__('airtable')
        self.connector = connector
        self.field_names = field_names or FieldNames()
        self.diagnostics = diagnostics or NullDiagnosticSink()
        self.batch_size = min(batch_size, MAX_RECORDS_PER_REQUEST)

    def _dedupe(self, records: List[CanonicalRecord]) -> List[CanonicalRecord]:
        """Collapse records sharing (date, order number); the last one wins."""
        by_key: Dict[tuple, int] = {}
        unique: List[Optional[CanonicalRecord]] = []
        for record in records:
            if not record.order_number:
                unique.append(record)
                continue
            key = (record.date, record.order_number)
            if key in by_key:
                unique[by_key[key]] = None
                self.merged += 1
            by_key[key] = len(unique)
            unique.append(record)
        return [r for r in unique if r is not None]

    def find_existing(self, record: CanonicalRecord) -> Optional[str]:
        """Id of the stored row for (date, order number), if there is one."""
        if not record.order_number:
            return None
        formula = match_formula({
            self.field_names.date: record.date,
            self.field_names.order_number: record.order_number,
        })
        return self.connector.find_record_id(formula)

    def _write(self, action: str, batch: List[Dict[str, Any]]) -> None:
        try:
            if action == 'create':
                self.connector.create_records(batch)
                self.created += len(batch)
            else:
                self.connector.update_records(batch)
                self.updated += len(batch)
        except StoreWriteError as e:
            self.diagnostics.dump_text(
                ERROR_ARTIFACT,
                f'{action} batch of {len(batch)} failed\n'
                f'status: {e.status}\n'
                f'body: {e.body}\n'
                f'records: {batch}\n',
            )
            raise

    def load(self, data: List[CanonicalRecord], **kwargs) -> bool:
        """
        Upsert records.

        Args:
            data: CanonicalRecords (already filtered for blanks)

        Returns:
            True when every record was written

        Raises:
            StoreWriteError: a query or batch was rejected
        """
        self.reset_stats()
        if not data:
            self.logger.warning('No data to load')
            return True

        records = self._dedupe(list(data))
        if self.merged:
            self.logger.info(f'Merged {self.merged} duplicate order numbers within this run')

        creates: List[Dict[str, Any]] = []
        updates: List[Dict[str, Any]] = []
        try:
            for record in records:
                fields = record.to_fields(self.field_names)
                record_id = self.find_existing(record)
                if record_id:
                    updates.append({'id': record_id, 'fields': fields})
                else:
                    creates.append(fields)
        except StoreWriteError as e:
            self.diagnostics.dump_text(
                ERROR_ARTIFACT,
                f'lookup failed\nstatus: {e.status}\nbody: {e.body}\n',
            )
            raise

        self.logger.info(f'Upserting {len(creates)} new and {len(updates)} existing records')
        for batch in chunk_list(updates, self.batch_size):
            self._write('update', batch)
        for batch in chunk_list(creates, self.batch_size):
            self._write('create', batch)

        self.logger.info(f'Airtable upsert done: created={self.created} updated={self.updated}')
        return True
