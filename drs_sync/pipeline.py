"""
End-to-end runs: extract -> normalize -> upsert.

Three sources feed the same normalizer and loader:
    scrape  - browser login + orders table
    pull    - relay JSON
    export  - daily report CSV download (optionally synced)
"""
from pathlib import Path
from typing import Any, Dict, List, Optional
import logging

from drs_sync.config.settings import Settings
from drs_sync.connectors.airtable_connector import AirtableConnector
from drs_sync.extractors.drs_export_extractor import DRSExportExtractor, read_export_rows
from drs_sync.extractors.drs_scrape_extractor import DRSScrapeExtractor
from drs_sync.extractors.relay_extractor import RelayExtractor
from drs_sync.loaders.airtable_loader import AirtableLoader
from drs_sync.schemas.canonical import CanonicalRecord
from drs_sync.transformers.field_normalizer import SOURCE_JSON, SOURCE_TABLE, FieldNormalizer
from drs_sync.utils.diagnostics import DiagnosticSink, NullDiagnosticSink

logger = logging.getLogger(__name__)

AIRTABLE_SETTINGS = ('airtable_api_key', 'airtable_base_id', 'airtable_table')


def build_loader(settings: Settings, diagnostics: DiagnosticSink) -> AirtableLoader:
    connector = AirtableConnector(
        api_key=settings.airtable_api_key,
        base_id=settings.airtable_base_id,
        table=settings.airtable_table,
        timeout=settings.timeout,
        typecast=settings.airtable_typecast,
    )
    connector.authenticate()
    return AirtableLoader(connector, settings.field_names, diagnostics)


def sync_records(
    records: List[CanonicalRecord],
    settings: Settings,
    diagnostics: DiagnosticSink,
    loader: Optional[AirtableLoader] = None,
    dry_run: bool = False,
) -> Dict[str, int]:
    """Upsert records; returns created/updated counts (zeros on dry run)."""
    if dry_run:
        logger.info(f'Dry run: {len(records)} records not written')
        return {'created': 0, 'updated': 0}

    loader = loader or build_loader(settings, diagnostics)
    try:
        loader.load(records)
    finally:
        loader.connector.close()
    stats = loader.get_load_stats()
    return {'created': stats['created'], 'updated': stats['updated']}


def _summary(
    fetched: int,
    records: List[CanonicalRecord],
    counts: Dict[str, int],
    settings: Settings,
    **extra: Any,
) -> Dict[str, Any]:
    summary = dict(extra)
    summary.update({
        'fetched': fetched,
        'kept': len(records),
        'created': counts['created'],
        'updated': counts['updated'],
        'fields': settings.field_names.as_dict(),
    })
    return summary


def run_scrape(
    settings: Settings,
    date: str,
    diagnostics: Optional[DiagnosticSink] = None,
    extractor: Optional[DRSScrapeExtractor] = None,
    loader: Optional[AirtableLoader] = None,
    dry_run: bool = False,
) -> Dict[str, Any]:
    """Scrape the orders table for ``date`` and upsert it."""
    diagnostics = diagnostics or NullDiagnosticSink()
    extractor = extractor or DRSScrapeExtractor(settings, diagnostics)

    rows = extractor.extract(start=date, end=date)
    records = FieldNormalizer(settings.field_mapping).transform(rows, date=date, source=SOURCE_TABLE)
    counts = sync_records(records, settings, diagnostics, loader, dry_run)
    return _summary(len(rows), records, counts, settings, date=date)


def run_pull(
    settings: Settings,
    date: str = '',
    start: str = '',
    end: str = '',
    diagnostics: Optional[DiagnosticSink] = None,
    extractor: Optional[RelayExtractor] = None,
    loader: Optional[AirtableLoader] = None,
    dry_run: bool = False,
) -> Dict[str, Any]:
    """
    Pull orders from the relay and upsert them.

    Records are stamped with the range start (or ``date``).
    """
    diagnostics = diagnostics or NullDiagnosticSink()
    extractor = extractor or RelayExtractor(settings, diagnostics)

    ranged = bool(start or end)
    if ranged:
        start, end = start or end, end or start
    else:
        start = end = date

    orders = extractor.extract(date=date, start=start if ranged else '', end=end if ranged else '')
    records = FieldNormalizer(settings.field_mapping).transform(orders, date=start, source=SOURCE_JSON)
    counts = sync_records(records, settings, diagnostics, loader, dry_run)

    scope = {'dateRange': {'start': start, 'end': end}} if ranged else {'date': date}
    return _summary(len(orders), records, counts, settings, **scope)


def run_export(
    settings: Settings,
    date: str,
    out_dir: Optional[Path] = None,
    diagnostics: Optional[DiagnosticSink] = None,
    extractor: Optional[DRSExportExtractor] = None,
    loader: Optional[AirtableLoader] = None,
    sync: bool = False,
) -> Dict[str, Any]:
    """Download the daily CSV; with ``sync`` also normalize and upsert it."""
    diagnostics = diagnostics or NullDiagnosticSink()
    extractor = extractor or DRSExportExtractor(settings, diagnostics)

    path = extractor.download(date, out_dir)
    summary: Dict[str, Any] = {'date': date, 'saved': str(path)}
    if not sync:
        return summary

    rows = read_export_rows(path)
    records = FieldNormalizer(settings.field_mapping).transform(rows, date=date, source=SOURCE_TABLE)
    counts = sync_records(records, settings, diagnostics, loader)
    summary.update(_summary(len(rows), records, counts, settings))
    return summary
