"""
Line-item normalization for master-detail payloads.

Clients send detail lines with loosely named fields (``idproductos``,
``producto_id``, ``productId``...). Each entity family declares which names
it accepts; ``normalize_items`` folds a raw list into canonical ``LineItem``
values keyed by catalog id, the last descriptor winning on duplicates.

Pure functions: no I/O, no session access.
"""
from dataclasses import dataclass
from decimal import Decimal
from typing import Any, Dict, Iterable, List, Optional, Sequence

from tunik.utils.parsing import to_price, to_positive_int


@dataclass(frozen=True)
class LineItem:
    """Canonical detail line: catalog id, quantity and optional price override."""
    catalog_id: int
    quantity: int = 1
    unit_price: Optional[Decimal] = None


@dataclass(frozen=True)
class ItemFields:
    """Accepted field names (synonyms) for one entity family, in lookup order."""
    catalog_id: Sequence[str]
    quantity: Sequence[str] = ()
    unit_price: Sequence[str] = ()


ORDER_ITEM_FIELDS = ItemFields(
    catalog_id=('idproductos', 'idproducto', 'idProducto', 'producto_id', 'product_id', 'productId'),
    quantity=('cantidad', 'qty', 'cant', 'quantity'),
    unit_price=('precio', 'precio_unitario', 'precioUnitario', 'unit_price', 'unitPrice'),
)

QUOTE_ITEM_FIELDS = ItemFields(
    catalog_id=('idservicios', 'idservicio', 'servicio_id', 'idServicio', 'service_id', 'serviceId'),
    unit_price=(
        'preciochange', 'precio', 'precioFinal', 'precioChange',
        'precio_unitario', 'precioUnitario', 'unit_price', 'unitPrice',
    ),
)

APPOINTMENT_ITEM_FIELDS = ItemFields(
    catalog_id=('idservicios', 'idservicio', 'servicio_id', 'idServicio', 'service_id', 'serviceId'),
    quantity=('cantidad', 'qty', 'quantity'),
    unit_price=('precio_unitario', 'precioUnitario', 'precio', 'unit_price', 'unitPrice'),
)


def _first_present(descriptor: Dict[str, Any], names: Sequence[str]):
    """Value of the first name whose value is not None."""
    for name in names:
        value = descriptor.get(name)
        if value is not None:
            return value
    return None


def coerce_item(descriptor: Any, fields: ItemFields) -> Optional[LineItem]:
    """
    Coerce one raw descriptor into a LineItem.

    Returns None when the descriptor has no positive integer catalog id.
    Quantity falls back to 1 when missing, non-positive or not a whole number;
    unit_price stays None when missing, unparseable or out of range.
    """
    if isinstance(descriptor, LineItem):
        return descriptor
    if not isinstance(descriptor, dict):
        return None

    catalog_id = to_positive_int(_first_present(descriptor, fields.catalog_id))
    if catalog_id is None:
        return None

    quantity = to_positive_int(_first_present(descriptor, fields.quantity)) or 1
    unit_price = to_price(_first_present(descriptor, fields.unit_price))

    return LineItem(catalog_id=catalog_id, quantity=quantity, unit_price=unit_price)


def normalize_items(items: Any, fields: ItemFields) -> List[LineItem]:
    """
    Fold raw descriptors into a deduplicated list of LineItem.

    Anything that is not a list is treated as an empty list. When two
    descriptors resolve to the same catalog id the later one replaces the
    earlier one (no merging of quantities); first-seen position is kept.
    """
    if not isinstance(items, (list, tuple)):
        return []

    by_id: Dict[int, LineItem] = {}
    for descriptor in items:
        item = coerce_item(descriptor, fields)
        if item is not None:
            by_id[item.catalog_id] = item
    return list(by_id.values())


def merge_items(*groups: Iterable[LineItem]) -> List[LineItem]:
    """
    Merge already-normalized groups; later groups override earlier ones by id.

    merge_items(appointment_items, quote_items) keeps every appointment
    service and lets the quote's own lines replace those with the same id.
    """
    by_id: Dict[int, LineItem] = {}
    for group in groups:
        for item in group:
            by_id[item.catalog_id] = item
    return list(by_id.values())


def normalize_order_items(items: Any) -> List[LineItem]:
    """Normalize product lines of a purchase order."""
    return normalize_items(items, ORDER_ITEM_FIELDS)


def normalize_quote_items(items: Any) -> List[LineItem]:
    """Normalize service lines of a quote (quantity is not used by quotes)."""
    return normalize_items(items, QUOTE_ITEM_FIELDS)


def normalize_appointment_items(items: Any) -> List[LineItem]:
    """Normalize service lines of an appointment."""
    return normalize_items(items, APPOINTMENT_ITEM_FIELDS)
