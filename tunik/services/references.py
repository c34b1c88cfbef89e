"""Existence checks for entities referenced by master-detail records."""
from decimal import Decimal
from typing import Dict, Iterable, Optional

from sqlalchemy.orm import Session

from tunik.models import Supplier, Vehicle, PaymentMethod, Service
from tunik.exceptions import InvalidReferenceError, ValidationError
from tunik.services.line_items import LineItem
from tunik.utils.parsing import MAX_PRICE, to_price


def require_supplier(session: Session, supplier_id: int) -> Supplier:
    supplier = session.get(Supplier, supplier_id)
    if not supplier:
        raise InvalidReferenceError(f'El proveedor {supplier_id} no existe')
    return supplier


def require_vehicle(session: Session, plate: str) -> Vehicle:
    vehicle = session.get(Vehicle, plate)
    if not vehicle:
        raise InvalidReferenceError(f'La placa {plate} no existe')
    return vehicle


def require_payment_method(session: Session, payment_method_id: int) -> PaymentMethod:
    method = session.get(PaymentMethod, payment_method_id)
    if not method:
        raise InvalidReferenceError('Método de pago no válido')
    return method


def require_services(session: Session, items: Iterable[LineItem]) -> Dict[int, Service]:
    """
    Look up the service behind every line, one at a time.

    The first missing id in iteration order is the one reported.
    """
    services = {}
    for item in items:
        service = session.get(Service, item.catalog_id)
        if not service:
            raise InvalidReferenceError(f'El servicio {item.catalog_id} no existe')
        services[item.catalog_id] = service
    return services


def resolve_price(item: LineItem, canonical_price: Optional[Decimal]) -> Decimal:
    """Price written on a detail line: the client's override, else the catalog price."""
    if item.unit_price is not None:
        return item.unit_price
    return canonical_price if canonical_price is not None else Decimal('0.00')


def line_price(value, label: str) -> Optional[Decimal]:
    """
    Price sent for a single detail line: None when not sent.

    Raises:
        ValidationError: not a number, negative or too large for the column
    """
    if value is None:
        return None
    price = to_price(value)
    if price is None:
        raise ValidationError(f'{label} debe ser un número entre 0 y {MAX_PRICE}')
    return price
