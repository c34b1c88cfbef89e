"""
Unit tests for line-item normalization (pure, no database).
"""
from decimal import Decimal

from tunik.services.line_items import (
    LineItem, merge_items, normalize_order_items, normalize_quote_items,
    normalize_appointment_items
)


class TestNormalizeOrderItems:
    """Tests for order line normalization."""

    def test_synonym_field_names(self):
        """Every accepted product id / quantity name maps to the same item."""
        raw = [
            {'idproductos': 1, 'cantidad': 2},
            {'producto_id': '2', 'qty': '3'},
            {'productId': 3, 'quantity': 4},
            {'idProducto': 4, 'cant': 5},
        ]
        assert normalize_order_items(raw) == [
            LineItem(1, 2), LineItem(2, 3), LineItem(3, 4), LineItem(4, 5)
        ]

    def test_duplicate_ids_last_wins(self):
        """A later descriptor replaces an earlier one with the same id."""
        raw = [{'producto_id': 7, 'cantidad': 2}, {'idproducto': 7, 'qty': 5}]

        assert normalize_order_items(raw) == [LineItem(7, 5)]

    def test_invalid_ids_are_dropped(self):
        raw = [{'idproductos': 0}, {'idproductos': 'abc'}, {'cantidad': 3}, 'junk', None, {'product_id': -1}]
        assert normalize_order_items(raw) == []

    def test_invalid_quantity_defaults_to_one(self):
        raw = [
            {'product_id': 1, 'qty': 'x'},
            {'product_id': 2, 'qty': 0},
            {'product_id': 3, 'qty': -2},
            {'product_id': 4, 'qty': 1.5},
            {'product_id': 5},
        ]
        assert [item.quantity for item in normalize_order_items(raw)] == [1, 1, 1, 1, 1]

    def test_non_list_input_is_empty(self):
        assert normalize_order_items(None) == []
        assert normalize_order_items({'product_id': 1}) == []
        assert normalize_order_items('1,2') == []

    def test_price_override(self):
        items = normalize_order_items([{'product_id': 1, 'qty': 2, 'precio': '7.25'}])
        assert items[0].unit_price == Decimal('7.25')

    def test_unparseable_price_is_ignored(self):
        items = normalize_order_items([{'product_id': 1, 'precio': 'gratis'}])
        assert items[0].unit_price is None

    def test_out_of_range_ids_are_dropped(self):
        """Ids that no INTEGER column can hold never reach the database."""
        raw = [
            {'productId': '1e1000000', 'qty': 1},
            {'productId': 2 ** 63, 'qty': 1},
            {'productId': str(2 ** 31), 'qty': 1},
        ]
        assert normalize_order_items(raw) == []

    def test_out_of_range_quantity_defaults_to_one(self):
        raw = [{'product_id': 1, 'qty': '1e1000000'}, {'product_id': 2, 'qty': 2 ** 40}]
        assert [item.quantity for item in normalize_order_items(raw)] == [1, 1]

    def test_out_of_range_price_is_ignored(self):
        items = normalize_order_items([
            {'product_id': 1, 'precio': '-3'},
            {'product_id': 2, 'precio': '1e1000000'},
        ])
        assert [item.unit_price for item in items] == [None, None]


class TestNormalizeServiceItems:
    """Tests for quote and appointment line normalization."""

    def test_quote_price_synonyms_in_lookup_order(self):
        items = normalize_quote_items([{'idservicios': 3, 'preciochange': '99', 'precio': 10}])
        assert items == [LineItem(3, 1, Decimal('99'))]

    def test_quote_ignores_quantity(self):
        items = normalize_quote_items([{'servicio_id': 3, 'cantidad': 4}])
        assert items[0].quantity == 1

    def test_appointment_reads_quantity_and_price(self):
        items = normalize_appointment_items([{'serviceId': 2, 'cantidad': '3', 'precio_unitario': 40}])
        assert items == [LineItem(2, 3, Decimal('40'))]

    def test_appointment_duplicates_last_wins(self):
        items = normalize_appointment_items([
            {'idservicio': 2, 'qty': 1, 'precio': 40},
            {'service_id': 2, 'qty': 2},
        ])
        assert items == [LineItem(2, 2, None)]


class TestMergeItems:
    """Tests for merging appointment lines with quote lines."""

    def test_later_group_overrides_same_id(self):
        appointment_items = [LineItem(1, unit_price=Decimal('10'))]
        quote_items = [LineItem(1, unit_price=Decimal('99'))]

        assert merge_items(appointment_items, quote_items) == [LineItem(1, unit_price=Decimal('99'))]

    def test_union_keeps_all_ids(self):
        merged = merge_items([LineItem(1), LineItem(2)], [LineItem(3)])
        assert [item.catalog_id for item in merged] == [1, 2, 3]

    def test_empty_groups(self):
        assert merge_items([], []) == []
