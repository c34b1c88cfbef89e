"""Stock ledger adjustments for products (orders only)."""
import logging

from sqlalchemy.orm import Session

from tunik.models import Product
from tunik.exceptions import InvalidReferenceError, StockViolationError

logger = logging.getLogger(__name__)


def lock_product(session: Session, product_id: int) -> Product:
    """
    Load a product with a row lock held until the surrounding transaction ends.

    populate_existing() refreshes an instance already in the identity map so
    the check below always sees the committed/flushed counter.
    """
    product = session.query(Product).filter(
        Product.id == product_id
    ).with_for_update().populate_existing().first()

    if not product:
        raise InvalidReferenceError(f'Producto {product_id} no existe')
    return product


def adjust_stock(session: Session, product_id: int, delta: int) -> Product:
    """
    Apply a signed quantity delta to a product's on-hand counter.

    Must be called inside the caller's transaction (never commits). The
    product row is locked first; if current + delta would be negative nothing
    is written and StockViolationError is raised.

    Args:
        session: SQLAlchemy session (must be in transaction)
        product_id: Product to adjust
        delta: Positive when receiving goods, negative when reversing

    Returns:
        The updated Product

    Raises:
        InvalidReferenceError: product does not exist
        StockViolationError: the counter would go below zero
    """
    product = lock_product(session, product_id)

    current = product.on_hand_qty or 0
    if current + delta < 0:
        logger.warning(
            "Stock violation on product %s: on_hand=%s delta=%s", product_id, current, delta
        )
        raise StockViolationError(product_id, current, delta)

    product.on_hand_qty = current + delta
    session.flush()
    return product
