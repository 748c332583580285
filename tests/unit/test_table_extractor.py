"""Tests for order table selection and row construction."""
import pytest

from drs_sync.connectors.dom import TableSnapshot
from drs_sync.extractors.table_extractor import (
    ExtractedTable,
    TableExtractor,
    clean_text,
    title_case,
)


@pytest.fixture
def extractor():
    return TableExtractor()


class TestHelpers:
    """Tests for text helpers."""

    def test_clean_text_collapses_whitespace(self):
        """Internal runs of whitespace become one space; ends are trimmed."""
        assert clean_text('  1 Main St\n\t Springfield  ') == '1 Main St Springfield'

    def test_clean_text_none(self):
        """None cleans to an empty string."""
        assert clean_text(None) == ''

    def test_title_case(self):
        """Each word is capitalized."""
        assert title_case('ORDER id') == 'Order Id'
        assert title_case('dumpster size') == 'Dumpster Size'

    def test_title_case_keeps_synthetic_labels(self):
        """col<N> labels are left alone."""
        assert title_case('col3') == 'col3'


class TestTableExtractor:
    """Tests for TableExtractor.extract."""

    def test_no_tables(self, extractor):
        """Zero tables gives empty headers and rows."""
        result = extractor.extract([])
        assert result == ExtractedTable(headers=[], rows=[])
        assert not result

    def test_orders_table(self, extractor, orders_table):
        """Headers are Title Cased and cells cleaned; blank rows dropped."""
        result = extractor.extract([orders_table])

        assert result.headers == ['Order Id', 'Customer', 'Delivery Address', 'Phone', 'Size', 'Status']
        assert len(result.rows) == 2
        assert result.rows[0] == {
            'Order Id': '#1001',
            'Customer': 'Acme Roofing',
            'Delivery Address': '1 Main St Springfield',
            'Phone': '555-0100',
            'Size': '20 yd',
            'Status': 'Scheduled',
        }

    def test_higher_score_wins_regardless_of_order(self, extractor):
        """A score-2 table beats a score-1 table with more rows."""
        weak = TableSnapshot(['Customer', 'Notes'], [['a', 'b']] * 5)
        strong = TableSnapshot(['Customer', 'Status'], [['Acme', 'Open']])

        assert extractor.extract([weak, strong]).rows == [{'Customer': 'Acme', 'Status': 'Open'}]
        assert extractor.extract([strong, weak]).rows == [{'Customer': 'Acme', 'Status': 'Open'}]

    def test_equal_score_more_rows_wins(self, extractor):
        """Ties on score go to the table with more rows."""
        small = TableSnapshot(['Customer'], [['A']])
        large = TableSnapshot(['Customer'], [['B'], ['C']])

        result = extractor.extract([small, large])
        assert [r['Customer'] for r in result.rows] == ['B', 'C']

    def test_full_tie_keeps_dom_order(self, extractor):
        """Identical score and row count picks the first table."""
        first = TableSnapshot(['Customer'], [['first']])
        second = TableSnapshot(['Customer'], [['second']])

        assert extractor.extract([first, second]).rows == [{'Customer': 'first'}]

    def test_headerless_table_gets_synthetic_columns(self, extractor):
        """Without headers or a keyword first row, keys are col1..colN."""
        table = TableSnapshot([], [['1001', 'Acme'], ['1002', 'Jane', 'extra']])
        result = extractor.extract([table])

        assert result.headers == ['col1', 'col2', 'col3']
        assert result.rows[0] == {'col1': '1001', 'col2': 'Acme', 'col3': ''}
        assert result.rows[1] == {'col1': '1002', 'col2': 'Jane', 'col3': 'extra'}

    def test_keyword_first_row_promoted(self, extractor):
        """A first row that reads like headers becomes the header row."""
        table = TableSnapshot([], [['Customer', 'Address', 'Phone'], ['Acme', '1 Main', '555']])
        result = extractor.extract([table])

        assert result.headers == ['Customer', 'Address', 'Phone']
        assert result.rows == [{'Customer': 'Acme', 'Address': '1 Main', 'Phone': '555'}]

    def test_first_row_below_threshold_not_promoted(self, extractor):
        """One keyword cell out of three is not enough to promote."""
        table = TableSnapshot([], [['Customer', 'foo', 'bar'], ['Acme', 'x', 'y']])
        result = extractor.extract([table])

        assert result.headers == ['col1', 'col2', 'col3']
        assert len(result.rows) == 2

    def test_empty_header_cell_labelled_by_position(self, extractor):
        """A blank explicit header becomes col<index>."""
        table = TableSnapshot(['Customer', ' '], [['Acme', 'x']])
        result = extractor.extract([table])

        assert result.headers == ['Customer', 'col2']
        assert result.rows == [{'Customer': 'Acme', 'col2': 'x'}]

    def test_extra_cells_ignored(self, extractor):
        """Cells beyond the header count are dropped."""
        table = TableSnapshot(['Customer'], [['Acme', 'overflow']])
        assert extractor.extract([table]).rows == [{'Customer': 'Acme'}]

    def test_winner_without_rows_is_empty(self, extractor):
        """A best table whose rows are all blank yields an empty result."""
        table = TableSnapshot(['Customer', 'Status'], [[' ', '\n']])
        result = extractor.extract([table])

        assert result.headers == []
        assert result.rows == []
