"""
Request payload readers, one per entity family.

Each reader maps the synonym field names accepted from clients onto the
canonical keyword arguments of the matching service. Only keys present in
the body are returned, so update services can tell "not sent" from "sent
empty". Values are coerced but not validated against the database.
"""
from typing import Any, Dict, Optional, Sequence

from tunik.exceptions import ValidationError
from tunik.utils.parsing import to_positive_int, parse_date, parse_datetime, normalize_plate

ITEM_KEYS = ('items', 'detalles', 'servicios', 'lines')


def _lookup(body: Dict[str, Any], names: Sequence[str]):
    """
    Return (present, value) for the first name present in body.

    A name counts as present even when its value is null, mirroring how
    clients clear optional fields.
    """
    for name in names:
        if name in body:
            return True, body[name]
    return False, None


def _require_mapping(body: Any) -> Dict[str, Any]:
    if body is None:
        return {}
    if not isinstance(body, dict):
        raise ValidationError('El cuerpo de la petición debe ser un objeto JSON')
    return body


def _read_items(body: Dict[str, Any], names: Sequence[str], out: Dict[str, Any]) -> None:
    present, value = _lookup(body, names)
    if present:
        out['items'] = value if value is not None else []


def _read_status(body: Dict[str, Any], out: Dict[str, Any]) -> None:
    present, value = _lookup(body, ('estado', 'status'))
    if present:
        out['status'] = None if value is None else str(value).strip()


def _read_date(value, label: str, with_time: bool = False):
    if value is None or (isinstance(value, str) and not value.strip()):
        return None
    try:
        return parse_datetime(value) if with_time else parse_date(value)
    except ValueError:
        raise ValidationError(f'{label} inválida')


def _read_id(value, label: str):
    """A blank id means "none"; anything else must be a valid id."""
    if value is None or (isinstance(value, str) and not value.strip()):
        return None
    number = to_positive_int(value)
    if number is None:
        raise ValidationError(f'{label} inválido')
    return number


def read_order_payload(body: Optional[Dict[str, Any]]) -> Dict[str, Any]:
    """Canonical kwargs for order_service.create_order / update_order."""
    body = _require_mapping(body)
    out: Dict[str, Any] = {}

    present, value = _lookup(body, ('idproveedor', 'idProveedor', 'supplier_id', 'supplierId'))
    if present:
        out['supplier_id'] = _read_id(value, 'Proveedor')

    present, value = _lookup(body, ('fechaPedido', 'fecha_pedido', 'order_date', 'orderDate'))
    if present:
        out['order_date'] = _read_date(value, 'Fecha de pedido')

    _read_status(body, out)
    _read_items(body, ('items',), out)
    return out


def read_quote_payload(body: Optional[Dict[str, Any]]) -> Dict[str, Any]:
    """Canonical kwargs for quote_service.create_quote / update_quote."""
    body = _require_mapping(body)
    out: Dict[str, Any] = {}

    present, value = _lookup(
        body, ('idagendacitas', 'idAgendaCitas', 'idagenda', 'appointment_id', 'appointmentId')
    )
    if present:
        out['appointment_id'] = _read_id(value, 'Id de agenda')

    present, value = _lookup(body, ('placa', 'plate'))
    if present:
        out['plate'] = normalize_plate(value) or None

    present, value = _lookup(body, ('idmpago', 'idMetodoPago', 'payment_method_id', 'paymentMethodId'))
    if present:
        out['payment_method_id'] = _read_id(value, 'Método de pago')

    present, value = _lookup(body, ('fecha', 'quote_date', 'date'))
    if present:
        out['quote_date'] = _read_date(value, 'Fecha')

    _read_status(body, out)
    _read_items(body, ITEM_KEYS, out)
    return out


def read_appointment_payload(body: Optional[Dict[str, Any]]) -> Dict[str, Any]:
    """Canonical kwargs for appointment_service.create_appointment / update_appointment."""
    body = _require_mapping(body)
    out: Dict[str, Any] = {}

    present, value = _lookup(body, ('placa', 'plate'))
    if present:
        out['plate'] = normalize_plate(value) or None

    present, value = _lookup(body, ('fecha', 'scheduled_at', 'date'))
    if present:
        out['scheduled_at'] = _read_date(value, 'Fecha', with_time=True)

    _read_status(body, out)
    _read_items(body, ITEM_KEYS, out)
    return out


def read_line_payload(body: Optional[Dict[str, Any]]) -> Dict[str, Any]:
    """Canonical kwargs for single detail-line maintenance (quotes and appointments)."""
    body = _require_mapping(body)
    out: Dict[str, Any] = {}

    present, value = _lookup(body, ('idservicios', 'idservicio', 'servicio_id', 'service_id', 'serviceId'))
    if present:
        out['service_id'] = _read_id(value, 'Servicio')

    present, value = _lookup(body, ('cantidad', 'qty', 'quantity'))
    if present:
        out['qty'] = value

    present, value = _lookup(
        body, ('preciochange', 'precio_unitario', 'precioUnitario', 'precio', 'unit_price', 'unitPrice')
    )
    if present:
        out['unit_price'] = value

    return out
