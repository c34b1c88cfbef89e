"""
Unit tests for the order service (master-detail writes and stock reconciliation).
"""
import pytest
from decimal import Decimal

from tunik.exceptions import (
    ValidationError, InvalidReferenceError, EmptyDetailError,
    InvalidOperationError, StockViolationError, NotFoundError
)
from tunik.models import Order, OrderLine, Product
from tunik.services import order_service


def _stock(session, product_id):
    return session.get(Product, product_id).on_hand_qty


def _lines(session, order_id):
    return {
        line.product_id: (line.qty, line.unit_price)
        for line in session.query(OrderLine).filter(OrderLine.order_id == order_id).all()
    }


class TestCreateOrder:
    """Tests for create_order."""

    def test_create_increments_stock(self, session, supplier, product, product2, order_date):
        order = order_service.create_order(
            session, supplier_id=supplier.id, order_date=order_date,
            items=[{'idproductos': product.id, 'cantidad': 3}, {'productId': product2.id, 'qty': 1}]
        )

        assert order.id is not None
        assert order.status == 'Pendiente'
        assert _stock(session, product.id) == 13
        assert _stock(session, product2.id) == 21
        assert _lines(session, order.id) == {
            product.id: (3, Decimal('5.00')),
            product2.id: (1, Decimal('12.50')),
        }

    def test_price_override_is_snapshotted(self, session, supplier, product, order_date):
        order = order_service.create_order(
            session, supplier_id=supplier.id, order_date=order_date,
            items=[{'product_id': product.id, 'qty': 2, 'precio': '4.00'}]
        )

        assert _lines(session, order.id)[product.id] == (2, Decimal('4.00'))

    def test_duplicate_items_last_wins(self, session, supplier, product, order_date):
        order = order_service.create_order(
            session, supplier_id=supplier.id, order_date=order_date,
            items=[{'producto_id': product.id, 'cantidad': 2}, {'idproducto': product.id, 'cantidad': 5}]
        )

        assert _lines(session, order.id) == {product.id: (5, Decimal('5.00'))}
        assert _stock(session, product.id) == 15

    def test_empty_items_rejected(self, session, supplier, order_date):
        with pytest.raises(EmptyDetailError):
            order_service.create_order(session, supplier_id=supplier.id, order_date=order_date, items=[])

        assert session.query(Order).count() == 0

    def test_items_without_valid_ids_rejected(self, session, supplier, order_date):
        with pytest.raises(EmptyDetailError):
            order_service.create_order(
                session, supplier_id=supplier.id, order_date=order_date, items=[{'idproductos': 'x'}]
            )

    def test_out_of_range_product_id_rejected(self, session, supplier, order_date):
        """An id no INTEGER column can hold is an empty detail, not a storage error."""
        with pytest.raises((InvalidReferenceError, EmptyDetailError)):
            order_service.create_order(
                session, supplier_id=supplier.id, order_date=order_date,
                items=[{'productId': 2 ** 63, 'qty': 1}]
            )

        assert session.query(Order).count() == 0

    def test_out_of_range_product_id_dropped_beside_valid_one(self, session, supplier, product, order_date):
        order = order_service.create_order(
            session, supplier_id=supplier.id, order_date=order_date,
            items=[{'productId': 2 ** 63, 'qty': 1}, {'productId': product.id, 'qty': 2}]
        )

        assert list(_lines(session, order.id)) == [product.id]
        assert _stock(session, product.id) == 12

    def test_missing_supplier_field(self, session, order_date):
        with pytest.raises(ValidationError):
            order_service.create_order(session, order_date=order_date, items=[{'product_id': 1}])

    def test_missing_date(self, session, supplier, product):
        with pytest.raises(ValidationError):
            order_service.create_order(session, supplier_id=supplier.id, items=[{'product_id': product.id}])

    def test_unknown_supplier(self, session, order_date):
        with pytest.raises(InvalidReferenceError):
            order_service.create_order(session, supplier_id=999, order_date=order_date, items=[{'product_id': 1}])

    def test_product_of_other_supplier_rolls_back(self, session, supplier, product, other_product, order_date):
        """Nothing is written when one line is invalid (no partial writes)."""
        with pytest.raises(InvalidReferenceError):
            order_service.create_order(
                session, supplier_id=supplier.id, order_date=order_date,
                items=[{'product_id': product.id, 'qty': 2}, {'product_id': other_product.id, 'qty': 1}]
            )

        assert session.query(Order).count() == 0
        assert session.query(OrderLine).count() == 0
        assert _stock(session, product.id) == 10
        assert _stock(session, other_product.id) == 4

    def test_unknown_product(self, session, supplier, order_date):
        with pytest.raises(InvalidReferenceError):
            order_service.create_order(
                session, supplier_id=supplier.id, order_date=order_date, items=[{'product_id': 999}]
            )


class TestUpdateOrder:
    """Tests for update_order."""

    @pytest.fixture
    def order_id(self, session, supplier, product, order_date):
        """Order receiving 3 units of product (stock 10 -> 13)."""
        order = order_service.create_order(
            session, supplier_id=supplier.id, order_date=order_date,
            items=[{'product_id': product.id, 'qty': 3}]
        )
        return order.id

    def test_replace_items_reconciles_stock(self, session, order_id, product, product2):
        order_service.update_order(order_id, session, items=[
            {'product_id': product.id, 'qty': 1},
            {'product_id': product2.id, 'qty': 2},
        ])

        assert _stock(session, product.id) == 11
        assert _stock(session, product2.id) == 22
        assert _lines(session, order_id) == {
            product.id: (1, Decimal('5.00')),
            product2.id: (2, Decimal('12.50')),
        }

    def test_same_items_are_idempotent(self, session, order_id, product):
        """Re-sending the current detail set leaves stock unchanged."""
        order_service.update_order(order_id, session, items=[{'product_id': product.id, 'qty': 3}])
        order_service.update_order(order_id, session, items=[{'product_id': product.id, 'qty': 3}])

        assert _stock(session, product.id) == 13
        assert _lines(session, order_id) == {product.id: (3, Decimal('5.00'))}

    def test_header_only(self, session, order_id, product):
        order_service.update_order(order_id, session, status='Recibido')

        updated = session.get(Order, order_id)
        assert updated.status == 'Recibido'
        assert _stock(session, product.id) == 13
        assert _lines(session, order_id) == {product.id: (3, Decimal('5.00'))}

    def test_reversal_below_zero_rolls_back(self, session, order_id, product, product2):
        """Stock consumed after receiving makes the reversal impossible."""
        session.get(Product, product.id).on_hand_qty = 2
        session.commit()

        with pytest.raises(StockViolationError):
            order_service.update_order(order_id, session, items=[{'product_id': product2.id, 'qty': 1}])

        assert _stock(session, product.id) == 2
        assert _stock(session, product2.id) == 20
        assert _lines(session, order_id) == {product.id: (3, Decimal('5.00'))}

    def test_empty_items_rejected(self, session, order_id, product):
        with pytest.raises(EmptyDetailError):
            order_service.update_order(order_id, session, items=[])

        assert _stock(session, product.id) == 13

    def test_supplier_change_requires_items(self, session, order_id, other_supplier):
        with pytest.raises(InvalidOperationError):
            order_service.update_order(order_id, session, supplier_id=other_supplier.id)

    def test_supplier_change_with_items(self, session, order_id, product, other_supplier, other_product):
        order_service.update_order(
            order_id, session, supplier_id=other_supplier.id,
            items=[{'product_id': other_product.id, 'qty': 2}]
        )

        updated = session.get(Order, order_id)
        assert updated.supplier_id == other_supplier.id
        assert _stock(session, product.id) == 10
        assert _stock(session, other_product.id) == 6
        assert _lines(session, order_id) == {other_product.id: (2, Decimal('25.00'))}

    def test_items_must_match_target_supplier(self, session, order_id, other_product):
        with pytest.raises(InvalidReferenceError):
            order_service.update_order(order_id, session, items=[{'product_id': other_product.id}])

    def test_not_found(self, session):
        with pytest.raises(NotFoundError):
            order_service.update_order(999, session, status='Recibido')


class TestDeleteOrder:
    """Tests for delete_order."""

    def test_delete_reverses_stock(self, session, supplier, product, product2, order_date):
        order = order_service.create_order(
            session, supplier_id=supplier.id, order_date=order_date,
            items=[{'product_id': product.id, 'qty': 3}, {'product_id': product2.id, 'qty': 4}]
        )
        order_id = order.id

        result = order_service.delete_order(order_id, session)

        assert result['order_id'] == order_id
        assert {'product_id': product.id, 'qty': 3, 'old_stock': 13, 'new_stock': 10} in result['reversed_products']
        assert session.get(Order, order_id) is None
        assert session.query(OrderLine).count() == 0
        assert _stock(session, product.id) == 10
        assert _stock(session, product2.id) == 20

    def test_delete_rejected_when_stock_consumed(self, session, supplier, product, order_date):
        order = order_service.create_order(
            session, supplier_id=supplier.id, order_date=order_date,
            items=[{'product_id': product.id, 'qty': 3}]
        )
        order_id = order.id
        session.get(Product, product.id).on_hand_qty = 1
        session.commit()

        with pytest.raises(StockViolationError):
            order_service.delete_order(order_id, session)

        assert session.get(Order, order_id) is not None
        assert _lines(session, order_id) == {product.id: (3, Decimal('5.00'))}
        assert _stock(session, product.id) == 1

    def test_not_found(self, session):
        with pytest.raises(NotFoundError):
            order_service.delete_order(999, session)


class TestReadOrders:
    """Tests for list_orders / get_order."""

    def test_get_order_with_lines_and_total(self, session, supplier, product, order_date):
        order = order_service.create_order(
            session, supplier_id=supplier.id, order_date=order_date,
            items=[{'product_id': product.id, 'qty': 2}]
        )

        data = order_service.get_order(order.id, session)

        assert data['total'] == 10.0
        assert data['order_date'] == '2025-03-01'
        assert data['supplier']['name'] == 'Repuestos Norte'
        assert data['lines'] == [{
            'product_id': product.id,
            'product_name': 'Filtro de aceite',
            'qty': 2,
            'unit_price': 5.0,
            'line_total': 10.0
        }]

    def test_list_includes_zero_totals(self, session, supplier, other_supplier, order_date):
        session.add(Order(supplier_id=supplier.id, order_date=order_date))
        session.add(Order(supplier_id=other_supplier.id, order_date=order_date))
        session.commit()

        orders = order_service.list_orders(session)
        assert [o['total'] for o in orders] == [0.0, 0.0]

        filtered = order_service.list_orders(session, supplier_id=supplier.id)
        assert len(filtered) == 1
        assert filtered[0]['supplier_id'] == supplier.id

    def test_get_not_found(self, session):
        with pytest.raises(NotFoundError):
            order_service.get_order(999, session)
