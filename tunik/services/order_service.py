"""
Purchase order service (pedidos) with stock reconciliation.

Receiving an order adds each line's quantity to the product's on-hand
counter. Updating the lines reverses the previous quantities before applying
the new ones, and deleting an order reverses them for good. Every operation
runs in a single transaction: any failure rolls back the order, its lines
and all stock adjustments together.
"""
import logging
from typing import Any, Dict, List, Optional

from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.orm import Session

from tunik.database import storage_error
from tunik.models import Order, OrderLine, Product
from tunik.exceptions import (
    TunikError, ValidationError, InvalidReferenceError, EmptyDetailError,
    InvalidOperationError, NotFoundError
)
from tunik.services.line_items import LineItem, normalize_order_items
from tunik.services.references import require_supplier, resolve_price
from tunik.services.stock_service import adjust_stock
from tunik.services.totals_service import order_totals
from tunik.utils.parsing import money

logger = logging.getLogger(__name__)

DEFAULT_STATUS = 'Pendiente'


def _validate_products(session: Session, items: List[LineItem], supplier_id: int) -> Dict[int, Product]:
    """Every product must exist and belong to the order's supplier."""
    products = {}
    for item in items:
        product = session.get(Product, item.catalog_id)
        if not product:
            raise InvalidReferenceError(f'Producto {item.catalog_id} no existe')
        if product.supplier_id != supplier_id:
            raise InvalidReferenceError(
                f'El producto {item.catalog_id} no pertenece al proveedor seleccionado'
            )
        products[item.catalog_id] = product
    return products


def _insert_lines(session: Session, order: Order, items: List[LineItem], products: Dict[int, Product]) -> None:
    for item in items:
        session.add(OrderLine(
            order_id=order.id,
            supplier_id=order.supplier_id,
            product_id=item.catalog_id,
            qty=item.quantity,
            unit_price=resolve_price(item, products[item.catalog_id].price)
        ))
    session.flush()


def _get_locked_order(session: Session, order_id: int) -> Order:
    order = session.query(Order).filter(Order.id == order_id).with_for_update().first()
    if not order:
        raise NotFoundError(f'Pedido {order_id} no encontrado')
    return order


def _reverse_lines(session: Session, lines: List[OrderLine]) -> List[Dict[str, Any]]:
    """Take previously received quantities back out of stock."""
    reversed_products = []
    for line in lines:
        product = adjust_stock(session, line.product_id, -line.qty)
        reversed_products.append({
            'product_id': line.product_id,
            'qty': line.qty,
            'old_stock': product.on_hand_qty + line.qty,
            'new_stock': product.on_hand_qty
        })
    return reversed_products


def _apply_header(order: Order, changes: dict, supplier_id: int, status: Optional[str]) -> None:
    order.supplier_id = supplier_id
    if 'order_date' in changes:
        order.order_date = changes['order_date']
    if status:
        order.status = status


def _delete_lines(session: Session, lines: List[OrderLine]) -> None:
    for line in lines:
        session.delete(line)
    session.flush()


def create_order(session: Session, supplier_id: Optional[int] = None, order_date=None,
                 status: Optional[str] = None, items: Any = None) -> Order:
    """
    Create an order with its lines and add the quantities to stock.

    Steps:
    1. Validate required fields (supplier, date)
    2. Normalize items (last descriptor wins per product)
    3. Validate the supplier exists
    4. Reject an empty detail set
    5. Validate each product exists and belongs to the supplier
    6. Insert order, then lines (price defaults to the product price)
    7. Increment stock for every line
    8. Commit

    Raises:
        ValidationError, InvalidReferenceError, EmptyDetailError,
        StockViolationError, InternalError
    """
    try:
        if supplier_id is None:
            raise ValidationError('El proveedor es obligatorio')
        if order_date is None:
            raise ValidationError('La fecha de pedido es obligatoria')

        lines = normalize_order_items(items)

        require_supplier(session, supplier_id)

        if not lines:
            raise EmptyDetailError('Agrega al menos 1 producto al pedido')

        products = _validate_products(session, lines, supplier_id)

        order = Order(
            supplier_id=supplier_id,
            order_date=order_date,
            status=(status or '').strip() or DEFAULT_STATUS
        )
        session.add(order)
        session.flush()

        _insert_lines(session, order, lines, products)

        for item in lines:
            adjust_stock(session, item.catalog_id, item.quantity)

        session.commit()
        logger.info("Order %s created with %s lines", order.id, len(lines))
        return order

    except TunikError:
        session.rollback()
        raise
    except SQLAlchemyError as e:
        session.rollback()
        logger.exception("Error creating order: %s", e)
        raise storage_error(e, 'crear el pedido') from e


def update_order(order_id: int, session: Session, **changes) -> Order:
    """
    Update an order. Only keys present in ``changes`` are applied.

    Accepted keys: supplier_id, order_date, status, items.

    Without ``items`` only the header changes, and the supplier cannot change
    (lines are bound to the order's supplier). With ``items`` the detail set
    is replaced in this order:
    1. Validate new products against the target supplier
    2. Reverse stock of the previous lines (never below zero)
    3. Delete previous lines
    4. Save header changes
    5. Insert new lines
    6. Apply new stock

    Raises:
        NotFoundError, ValidationError, InvalidReferenceError, EmptyDetailError,
        InvalidOperationError, StockViolationError, InternalError
    """
    try:
        order = _get_locked_order(session, order_id)

        next_supplier = order.supplier_id
        if 'supplier_id' in changes:
            if changes['supplier_id'] is None:
                raise ValidationError('Proveedor inválido')
            next_supplier = changes['supplier_id']

        if 'order_date' in changes and changes['order_date'] is None:
            raise ValidationError('La fecha de pedido es obligatoria')

        next_status = None
        if 'status' in changes:
            next_status = (changes['status'] or '').strip()
            if not next_status:
                raise ValidationError('Estado inválido')

        supplier_changed = next_supplier != order.supplier_id
        if supplier_changed and 'items' not in changes:
            raise InvalidOperationError(
                "Para cambiar el proveedor debes enviar 'items' (se recrea el detalle)."
            )
        if supplier_changed:
            require_supplier(session, next_supplier)

        if 'items' not in changes:
            _apply_header(order, changes, next_supplier, next_status)
            session.commit()
            return order

        lines = normalize_order_items(changes['items'])
        if not lines:
            raise EmptyDetailError('items no puede estar vacío')

        products = _validate_products(session, lines, next_supplier)

        old_lines = session.query(OrderLine).filter(OrderLine.order_id == order_id).all()
        _reverse_lines(session, old_lines)
        _delete_lines(session, old_lines)

        # Header after the old lines are gone: (id, supplier_id) is their FK target
        _apply_header(order, changes, next_supplier, next_status)
        session.flush()

        _insert_lines(session, order, lines, products)

        for item in lines:
            adjust_stock(session, item.catalog_id, item.quantity)

        session.commit()
        logger.info("Order %s updated, detail replaced with %s lines", order_id, len(lines))
        return order

    except TunikError:
        session.rollback()
        raise
    except SQLAlchemyError as e:
        session.rollback()
        logger.exception("Error updating order %s: %s", order_id, e)
        raise storage_error(e, 'actualizar el pedido') from e


def delete_order(order_id: int, session: Session) -> dict:
    """
    Delete an order, taking its quantities back out of stock.

    If any product would end below zero the whole delete is rejected and the
    order stays intact.

    Returns:
        dict with the order id and per-product stock before/after
    """
    try:
        order = _get_locked_order(session, order_id)

        lines = session.query(OrderLine).filter(OrderLine.order_id == order_id).all()
        reversed_products = _reverse_lines(session, lines)
        _delete_lines(session, lines)

        session.delete(order)
        session.flush()

        session.commit()

        logger.info("Order %s deleted, stock reversed for %s products", order_id, len(reversed_products))
        return {
            'order_id': order_id,
            'reversed_products': reversed_products
        }

    except TunikError:
        session.rollback()
        raise
    except SQLAlchemyError as e:
        session.rollback()
        logger.exception("Error deleting order %s: %s", order_id, e)
        raise storage_error(e, 'eliminar el pedido') from e


def _order_to_dict(order: Order, total, with_lines: bool = False) -> dict:
    data = {
        'id': order.id,
        'supplier_id': order.supplier_id,
        'supplier': {'id': order.supplier.id, 'name': order.supplier.name} if order.supplier else None,
        'order_date': order.order_date.isoformat() if order.order_date else None,
        'status': order.status,
        'total': money(total)
    }
    if with_lines:
        data['lines'] = [
            {
                'product_id': line.product_id,
                'product_name': line.product.name if line.product else None,
                'qty': line.qty,
                'unit_price': money(line.unit_price),
                'line_total': money(line.qty * line.unit_price)
            }
            for line in order.lines
        ]
    return data


def list_orders(session: Session, supplier_id: Optional[int] = None) -> List[dict]:
    """List orders, newest first, each with its derived total."""
    query = session.query(Order)
    if supplier_id:
        query = query.filter(Order.supplier_id == supplier_id)
    orders = query.order_by(Order.id.desc()).all()

    totals = order_totals(session, [o.id for o in orders])
    return [_order_to_dict(o, totals[o.id]) for o in orders]


def get_order(order_id: int, session: Session) -> dict:
    """Order header, lines and derived total."""
    order = session.get(Order, order_id)
    if not order:
        raise NotFoundError(f'Pedido {order_id} no encontrado')

    totals = order_totals(session, [order.id])
    return _order_to_dict(order, totals[order.id], with_lines=True)
