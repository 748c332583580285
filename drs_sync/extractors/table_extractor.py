"""
Pick the order table out of a page full of tables.

DRS pages carry layout tables, filter tables and the actual order listing,
with no stable id on any of them. Each candidate is scored by how many of
its headers mention an order keyword; the best-scoring table (ties broken
by row count, then DOM order) becomes a list of header -> cell mappings.
"""
from dataclasses import dataclass, field
from typing import Dict, List, Sequence, Tuple
import logging
import re

from drs_sync.connectors.dom import TableSnapshot

logger = logging.getLogger(__name__)

SCHEMA_KEYWORDS: Tuple[str, ...] = ('customer', 'address', 'phone', 'size', 'order', 'status')

# Share of first-row cells that must mention a keyword for that row to be
# promoted to headers when the table has no explicit header cells.
HEADER_ROW_THRESHOLD = 0.5

_WHITESPACE = re.compile(r'\s+')
_SYNTHETIC_LABEL = re.compile(r'^col\d+$')

RawRow = Dict[str, str]


@dataclass
class ExtractedTable:
    """Headers and rows of the selected table (both empty when none qualified)."""

    headers: List[str] = field(default_factory=list)
    rows: List[RawRow] = field(default_factory=list)

    def __bool__(self) -> bool:
        return bool(self.rows)


@dataclass
class _Candidate:
    headers: List[str]
    body: List[List[str]]
    score: int


def clean_text(value: str) -> str:
    """Collapse internal whitespace to single spaces and trim."""
    return _WHITESPACE.sub(' ', value or '').strip()


def title_case(label: str) -> str:
    """Capitalize each word; synthesized ``col<N>`` labels pass through."""
    if _SYNTHETIC_LABEL.match(label):
        return label
    return ' '.join(word[:1].upper() + word[1:].lower() for word in label.split(' '))


def mentions_keyword(text: str, keywords: Sequence[str] = SCHEMA_KEYWORDS) -> bool:
    lowered = text.lower()
    return any(k in lowered for k in keywords)


class TableExtractor:
    """Select the most order-like table and convert it to RawRows."""

    def __init__(self, keywords: Sequence[str] = SCHEMA_KEYWORDS):
        self.keywords = tuple(k.lower() for k in keywords)
        self.logger = logging.getLogger(f'{__name__}.TableExtractor')

    def _looks_like_header(self, cells: List[str]) -> bool:
        filled = [c for c in cells if c]
        if not filled:
            return False
        hits = sum(1 for c in filled if mentions_keyword(c, self.keywords))
        return hits > 0 and hits / len(filled) >= HEADER_ROW_THRESHOLD

    def _candidate(self, table: TableSnapshot) -> _Candidate:
        headers = [clean_text(h) for h in table.header_cells]
        body = [[clean_text(c) for c in row] for row in table.rows]

        if not any(headers):
            headers = []
            if body and self._looks_like_header(body[0]):
                headers, body = body[0], body[1:]

        # Rows with no content at all never become RawRows
        body = [row for row in body if any(row)]

        if not headers:
            width = max((len(row) for row in body), default=0)
            headers = [f'col{i + 1}' for i in range(width)]

        score = sum(1 for h in headers if mentions_keyword(h, self.keywords))
        return _Candidate(headers=headers, body=body, score=score)

    @staticmethod
    def _label(header: str, index: int) -> str:
        return title_case(header) if header else f'col{index + 1}'

    def _to_rows(self, candidate: _Candidate) -> List[RawRow]:
        labels = [self._label(h, i) for i, h in enumerate(candidate.headers)]
        rows = []
        for cells in candidate.body:
            row: RawRow = {}
            for i, label in enumerate(labels):
                row[label] = cells[i] if i < len(cells) else ''
            rows.append(row)
        return rows

    def extract(self, tables: Sequence[TableSnapshot]) -> ExtractedTable:
        """
        Select the best table and return its headers and rows.

        Args:
            tables: Every table on the page, in DOM order

        Returns:
            ExtractedTable; empty when there are no tables or the winner
            has no rows
        """
        if not tables:
            self.logger.warning('No tables on page')
            return ExtractedTable()

        candidates = [self._candidate(t) for t in tables]
        # sorted() is stable, so equal (score, rows) keep DOM order
        ranked = sorted(candidates, key=lambda c: (-c.score, -len(c.body)))
        best = ranked[0]

        self.logger.info(
            f'Scored {len(candidates)} tables; best score={best.score} '
            f'rows={len(best.body)} headers={best.headers}'
        )
        if not best.body:
            return ExtractedTable()

        return ExtractedTable(
            headers=[self._label(h, i) for i, h in enumerate(best.headers)],
            rows=self._to_rows(best),
        )
