"""Tests for canonical records and field normalization."""
import json

import pytest

from drs_sync.config.settings import FieldMapping, FieldNames
from drs_sync.schemas.canonical import CanonicalRecord
from drs_sync.transformers.field_normalizer import (
    SOURCE_JSON,
    SOURCE_TABLE,
    FieldNormalizer,
    pick,
)
from drs_sync.utils.helpers import flatten_leaf_keys


class TestCanonicalRecord:
    """Tests for CanonicalRecord."""

    def test_defaults_are_empty(self):
        record = CanonicalRecord(date='2025-01-15')
        assert record.customer == ''
        assert record.order_number == ''
        assert record.is_blank()

    def test_leading_hash_stripped_once(self):
        """Only a single leading '#' is removed."""
        assert CanonicalRecord(date='d', order_number='#42').order_number == '42'
        assert CanonicalRecord(date='d', order_number='##42').order_number == '#42'
        assert CanonicalRecord(date='d', order_number=' #42 ').order_number == '42'

    def test_alias(self):
        """orderNumber is accepted as an alias."""
        assert CanonicalRecord(date='d', orderNumber='7').order_number == '7'

    def test_values_coerced_to_text(self):
        record = CanonicalRecord(date='d', order_number=1001, phone=5550100, status=None)
        assert record.order_number == '1001'
        assert record.phone == '5550100'
        assert record.status == ''

    def test_status_alone_is_blank(self):
        """Status does not identify an order."""
        assert CanonicalRecord(date='d', status='Done', phone='555').is_blank()

    def test_to_fields_uses_display_names(self):
        record = CanonicalRecord(date='2025-01-15', customer='Acme', order_number='7')
        fields = record.to_fields(FieldNames(order_number='Order No'))

        assert fields['Date'] == '2025-01-15'
        assert fields['Customer'] == 'Acme'
        assert fields['Order No'] == '7'
        assert 'Order #' not in fields

    def test_raw_column(self):
        """The raw source object is written only when a raw column is named."""
        record = CanonicalRecord(date='d', customer='Acme', raw={'id': 7})

        assert 'Raw' not in record.to_fields(FieldNames())
        assert json.loads(record.to_fields(FieldNames(raw='Raw'))['Raw']) == {'id': 7}


class TestHelpers:
    """Tests for pick and flatten_leaf_keys."""

    def test_pick_first_non_empty(self):
        assert pick({'Customer': '', 'Name': 'Jane'}, ('Customer', 'Name')) == 'Jane'

    def test_pick_skips_whitespace(self):
        assert pick({'Customer': '   ', 'Name': 'Jane'}, ('Customer', 'Name')) == 'Jane'

    def test_pick_keeps_zero(self):
        assert pick({'Phone': 0}, ('Phone',)) == 0

    def test_pick_order(self):
        assert pick({'Name': 'B', 'Customer': 'A'}, ('Customer', 'Name')) == 'A'

    def test_pick_none(self):
        assert pick({'Other': 'x'}, ('Customer',)) == ''

    def test_flatten_leaf_keys(self):
        """Nested keys are lost, lists are leaves and keys lowercased."""
        flat = flatten_leaf_keys({
            'ID': 1,
            'customer': {'Name': 'Acme', 'contact': {'phone': '555'}},
            'lines': [{'sku': 'x'}],
        })
        assert flat == {'id': 1, 'name': 'Acme', 'phone': '555', 'lines': [{'sku': 'x'}]}

    def test_flatten_last_wins(self):
        flat = flatten_leaf_keys({'name': 'order', 'customer': {'name': 'Acme'}})
        assert flat['name'] == 'Acme'


class TestFieldNormalizer:
    """Tests for FieldNormalizer."""

    def test_table_row(self):
        """Synonyms resolve Title Cased headers; '#' is stripped."""
        records = FieldNormalizer().transform(
            [{'Customer': 'Acme', 'Order': '#42'}], date='2025-01-15', source=SOURCE_TABLE,
        )
        assert len(records) == 1
        assert records[0].customer == 'Acme'
        assert records[0].order_number == '42'
        assert records[0].date == '2025-01-15'

    def test_scraped_headers(self):
        row = {
            'Order Id': '#1001', 'Customer': 'Acme Roofing', 'Delivery Address': '1 Main St',
            'Phone': '555-0100', 'Size': '20 yd', 'Status': 'Scheduled',
        }
        record = FieldNormalizer().normalize_row(row, '2025-01-15')

        assert record.model_dump(by_alias=True) == {
            'date': '2025-01-15',
            'customer': 'Acme Roofing',
            'address': '1 Main St',
            'phone': '555-0100',
            'size': '20 yd',
            'orderNumber': '1001',
            'status': 'Scheduled',
        }

    def test_column_override(self):
        """With no synonym hit, the configured column index is read."""
        normalizer = FieldNormalizer(FieldMapping(column_overrides={'customer': 2, 'order_number': 1}))
        record = normalizer.normalize_row({'col1': '#9', 'col2': 'Jane', 'col3': 'x'}, 'd')

        assert record.customer == 'Jane'
        assert record.order_number == '9'
        assert record.address == ''

    def test_synonym_beats_override(self):
        normalizer = FieldNormalizer(FieldMapping(column_overrides={'customer': 2}))
        record = normalizer.normalize_row({'Customer': 'Acme', 'col2': 'other'}, 'd')
        assert record.customer == 'Acme'

    def test_blank_rows_dropped(self):
        """A row with only status and phone never reaches the output."""
        normalizer = FieldNormalizer()
        records = normalizer.transform(
            [{'Status': 'Done', 'Phone': '555'}, {'Address': '1 Main'}], date='d',
        )

        assert [r.address for r in records] == ['1 Main']
        assert normalizer.dropped == 1

    def test_json_order(self):
        """Relay orders are flattened before synonym lookup."""
        order = {
            'order_id': '7',
            'customer_name': 'Jane Doe',
            'address': '1 Main St',
        }
        records = FieldNormalizer().transform([order], date='2025-01-15', source=SOURCE_JSON)

        assert records[0].model_dump(by_alias=True) == {
            'date': '2025-01-15',
            'customer': 'Jane Doe',
            'address': '1 Main St',
            'phone': '',
            'size': '',
            'orderNumber': '7',
            'status': '',
        }
        assert records[0].raw == order

    def test_nested_json_order(self):
        order = {'id': 42, 'customer': {'name': 'Acme', 'phone': '555'}, 'dumpster_size': '20yd'}
        record = FieldNormalizer().normalize_json(order, 'd')

        assert record.customer == 'Acme'
        assert record.phone == '555'
        assert record.size == '20yd'
        assert record.order_number == '42'

    def test_non_object_items_skipped(self):
        normalizer = FieldNormalizer()
        records = normalizer.transform(['junk', {'id': 1}], date='d', source=SOURCE_JSON)

        assert len(records) == 1
        assert normalizer.dropped == 1

    def test_unknown_source(self):
        with pytest.raises(ValueError):
            FieldNormalizer().transform([], source='xml')
