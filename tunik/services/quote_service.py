"""
Quote service (cotizaciones).

A quote may be linked to an appointment. Its detail set is then the union of
the appointment's service lines and the quote's own lines, the quote's lines
taking precedence for the same service.
"""
import logging
from datetime import date
from decimal import Decimal
from typing import Any, Dict, List, Optional

from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.orm import Session

from tunik.database import storage_error
from tunik.models import Quote, QuoteLine, QuoteStatus, Appointment, AppointmentLine, Vehicle
from tunik.exceptions import (
    TunikError, ValidationError, InvalidReferenceError, EmptyDetailError,
    ConflictError, NotFoundError
)
from tunik.services.line_items import LineItem, normalize_quote_items, merge_items
from tunik.services.references import (
    require_vehicle, require_payment_method, require_services, resolve_price, line_price
)
from tunik.services.totals_service import quote_totals
from tunik.utils.parsing import money

logger = logging.getLogger(__name__)


def normalize_status(value) -> Optional[str]:
    """Map a client status to one of the QuoteStatus values (case-insensitive)."""
    text = str(value or '').strip().lower()
    for status in QuoteStatus:
        if status.value.lower() == text:
            return status.value
    return None


def _require_status(value) -> str:
    status = normalize_status(value)
    if not status:
        raise ValidationError('Estado inválido. Usa: Aprobado, Cancelado o Pendiente')
    return status


def _get_appointment(session: Session, appointment_id: int) -> Appointment:
    appointment = session.get(Appointment, appointment_id)
    if not appointment:
        raise NotFoundError(f'La agenda {appointment_id} no existe')
    return appointment


def _appointment_items(session: Session, appointment_id: Optional[int]) -> List[LineItem]:
    """Service lines of an appointment, carried over with their unit price."""
    if not appointment_id:
        return []
    rows = session.query(AppointmentLine).filter(
        AppointmentLine.appointment_id == appointment_id
    ).order_by(AppointmentLine.service_id).all()
    return [LineItem(catalog_id=row.service_id, unit_price=row.unit_price) for row in rows]


def _current_items(session: Session, quote_id: int) -> List[LineItem]:
    rows = session.query(QuoteLine).filter(
        QuoteLine.quote_id == quote_id
    ).order_by(QuoteLine.service_id).all()
    return [LineItem(catalog_id=row.service_id, unit_price=row.unit_price) for row in rows]


def _replace_lines(session: Session, quote_id: int, items: List[LineItem]) -> None:
    """Delete every line of the quote and insert ``items`` (validated first)."""
    services = require_services(session, items)

    for line in session.query(QuoteLine).filter(QuoteLine.quote_id == quote_id).all():
        session.delete(line)
    session.flush()

    for item in items:
        session.add(QuoteLine(
            quote_id=quote_id,
            service_id=item.catalog_id,
            unit_price=resolve_price(item, services[item.catalog_id].unit_price)
        ))
    session.flush()


def _get_locked_quote(session: Session, quote_id: int) -> Quote:
    quote = session.query(Quote).filter(Quote.id == quote_id).with_for_update().first()
    if not quote:
        raise NotFoundError(f'Cotización {quote_id} no encontrada')
    return quote


def create_quote(session: Session, plate: Optional[str] = None, payment_method_id: Optional[int] = None,
                 status: Optional[str] = None, quote_date: Optional[date] = None,
                 appointment_id: Optional[int] = None, items: Any = None) -> Quote:
    """
    Create a quote, optionally generated from an appointment.

    ``items`` is None when the client did not send any; a list (even empty)
    means the client expects a detail set.

    Steps:
    1. If linked, load the appointment (NotFound) and check its plate (Conflict);
       a missing plate is taken from the appointment
    2. Merge appointment lines with the quote's own lines (own lines win)
    3. Validate plate and payment method
    4. Reject an empty detail set when items were sent or an appointment is linked
    5. Validate each service exists
    6. Insert quote and lines (price defaults to the service price)
    7. Commit
    """
    try:
        appointment = None
        if appointment_id:
            appointment = _get_appointment(session, appointment_id)
            if plate and plate != appointment.plate:
                raise ConflictError('La placa de la cotización no coincide con la placa de la agenda')
            plate = plate or appointment.plate

        status_value = _require_status(status if status is not None else QuoteStatus.PENDING.value)

        own_items = normalize_quote_items(items)
        merged = merge_items(_appointment_items(session, appointment_id), own_items)

        if not plate or not payment_method_id:
            raise ValidationError('Placa e idmpago son obligatorios')

        require_vehicle(session, plate)
        require_payment_method(session, payment_method_id)

        detail_required = appointment is not None or items is not None
        if detail_required and not merged:
            raise EmptyDetailError('La agenda no tiene servicios y tampoco agregaste servicios manuales')

        services = require_services(session, merged)

        quote = Quote(
            plate=plate,
            payment_method_id=payment_method_id,
            status=status_value,
            quote_date=quote_date or date.today(),
            appointment_id=appointment.id if appointment else None
        )
        session.add(quote)
        session.flush()

        for item in merged:
            session.add(QuoteLine(
                quote_id=quote.id,
                service_id=item.catalog_id,
                unit_price=resolve_price(item, services[item.catalog_id].unit_price)
            ))

        session.commit()
        logger.info("Quote %s created with %s lines", quote.id, len(merged))
        return quote

    except TunikError:
        session.rollback()
        raise
    except SQLAlchemyError as e:
        session.rollback()
        logger.exception("Error creating quote: %s", e)
        raise storage_error(e, 'crear la cotización') from e


def update_quote(quote_id: int, session: Session, **changes) -> Quote:
    """
    Update a quote. Only keys present in ``changes`` are applied.

    Accepted keys: status, appointment_id, plate, payment_method_id,
    quote_date, items.

    The detail set is rebuilt when ``items`` or ``appointment_id`` is sent:
    - with items: appointment lines + sent items (sent items win)
    - link only: appointment lines + current lines (current lines win)
    Linking an appointment aligns the quote's plate with it.
    """
    try:
        quote = _get_locked_quote(session, quote_id)

        if 'status' in changes:
            quote.status = _require_status(changes['status'])

        link_sent = 'appointment_id' in changes
        linking = link_sent and bool(changes['appointment_id'])
        if link_sent:
            new_appointment_id = changes['appointment_id']
            if linking:
                appointment = _get_appointment(session, new_appointment_id)
                if changes.get('plate') and changes['plate'] != appointment.plate:
                    raise ConflictError('La placa enviada no coincide con la placa de la agenda')
                quote.plate = appointment.plate
                quote.appointment_id = appointment.id
            else:
                quote.appointment_id = None

        if 'plate' in changes and not linking:
            if not changes['plate']:
                raise ValidationError('Placa inválida')
            if quote.appointment_id and changes['plate'] != quote.plate:
                raise ConflictError('La placa enviada no coincide con la placa de la agenda')
            require_vehicle(session, changes['plate'])
            quote.plate = changes['plate']

        if 'payment_method_id' in changes:
            if not changes['payment_method_id']:
                raise ValidationError('Método de pago inválido')
            require_payment_method(session, changes['payment_method_id'])
            quote.payment_method_id = changes['payment_method_id']

        if 'quote_date' in changes:
            if changes['quote_date'] is None:
                raise ValidationError('Fecha inválida')
            quote.quote_date = changes['quote_date']

        items_sent = 'items' in changes
        if items_sent or link_sent:
            appointment_items = _appointment_items(session, quote.appointment_id)
            if items_sent:
                merged = merge_items(appointment_items, normalize_quote_items(changes['items']))
            else:
                merged = merge_items(appointment_items, _current_items(session, quote_id))

            if not merged:
                raise EmptyDetailError('Agrega al menos 1 servicio para actualizar el detalle')

            _replace_lines(session, quote_id, merged)

        session.commit()
        return quote

    except TunikError:
        session.rollback()
        raise
    except SQLAlchemyError as e:
        session.rollback()
        logger.exception("Error updating quote %s: %s", quote_id, e)
        raise storage_error(e, 'actualizar la cotización') from e


def delete_quote(quote_id: int, session: Session) -> dict:
    """Delete a quote and its lines."""
    try:
        quote = _get_locked_quote(session, quote_id)

        for line in session.query(QuoteLine).filter(QuoteLine.quote_id == quote_id).all():
            session.delete(line)
        session.flush()

        session.delete(quote)
        session.commit()
        return {'quote_id': quote_id}

    except TunikError:
        session.rollback()
        raise
    except SQLAlchemyError as e:
        session.rollback()
        logger.exception("Error deleting quote %s: %s", quote_id, e)
        raise storage_error(e, 'eliminar la cotización') from e


# Single detail lines

def _line_to_dict(line: QuoteLine) -> dict:
    return {
        'quote_id': line.quote_id,
        'service_id': line.service_id,
        'service_name': line.service.name if line.service else None,
        'unit_price': money(line.unit_price)
    }


def add_quote_line(quote_id: int, session: Session, service_id: Optional[int] = None,
                   unit_price: Any = None, **_ignored) -> dict:
    """
    Add one service line to an existing quote.

    Raises:
        ValidationError: service id missing or price negative or too large
        InvalidReferenceError: quote or service does not exist
        ConflictError: the quote already has a line for that service
    """
    try:
        if not service_id:
            raise ValidationError('idservicios e idcotizaciones son obligatorios')
        price = line_price(unit_price, 'preciochange')

        if not session.get(Quote, quote_id):
            raise InvalidReferenceError('La cotización indicada no existe')

        service = require_services(session, [LineItem(catalog_id=service_id)])[service_id]

        if session.get(QuoteLine, (quote_id, service_id)):
            raise ConflictError('Ya existe un detalle con ese servicio para esta cotización')

        line = QuoteLine(
            quote_id=quote_id,
            service_id=service_id,
            unit_price=resolve_price(LineItem(service_id, unit_price=price), service.unit_price)
        )
        session.add(line)
        session.commit()
        return _line_to_dict(line)

    except TunikError:
        session.rollback()
        raise
    except SQLAlchemyError as e:
        session.rollback()
        logger.exception("Error adding line to quote %s: %s", quote_id, e)
        raise storage_error(e, 'agregar el detalle') from e


def update_quote_line(quote_id: int, service_id: int, session: Session, unit_price: Any = None, **_ignored) -> dict:
    """Change the price of one quote line."""
    try:
        line = session.get(QuoteLine, (quote_id, service_id))
        if not line:
            raise NotFoundError('No se encontró el detalle para actualizar')

        if unit_price is None:
            raise ValidationError('preciochange es obligatorio')
        price = line_price(unit_price, 'preciochange')

        line.unit_price = price
        session.commit()
        return _line_to_dict(line)

    except TunikError:
        session.rollback()
        raise
    except SQLAlchemyError as e:
        session.rollback()
        logger.exception("Error updating line %s of quote %s: %s", service_id, quote_id, e)
        raise storage_error(e, 'actualizar el detalle') from e


def delete_quote_line(quote_id: int, service_id: int, session: Session) -> None:
    """Remove one line from a quote."""
    try:
        line = session.get(QuoteLine, (quote_id, service_id))
        if not line:
            raise NotFoundError('No se encontró el detalle para eliminar')
        session.delete(line)
        session.commit()

    except TunikError:
        session.rollback()
        raise
    except SQLAlchemyError as e:
        session.rollback()
        logger.exception("Error deleting line %s of quote %s: %s", service_id, quote_id, e)
        raise storage_error(e, 'eliminar el detalle') from e


def list_quote_lines(quote_id: int, session: Session) -> List[dict]:
    if not session.get(Quote, quote_id):
        raise NotFoundError(f'Cotización {quote_id} no encontrada')
    lines = session.query(QuoteLine).filter(
        QuoteLine.quote_id == quote_id
    ).order_by(QuoteLine.service_id).all()
    return [_line_to_dict(line) for line in lines]


def get_quote_total(quote_id: int, session: Session) -> Decimal:
    """Derived total of one quote (0 when it has no lines)."""
    return quote_totals(session, [quote_id])[quote_id]


# Read paths

def _quote_to_dict(quote: Quote, total, with_lines: bool = False) -> Dict[str, Any]:
    data = {
        'id': quote.id,
        'plate': quote.plate,
        'vehicle': {
            'plate': quote.vehicle.plate,
            'model': quote.vehicle.model,
            'color': quote.vehicle.color,
            'owner_document': quote.vehicle.owner_document
        } if quote.vehicle else None,
        'payment_method_id': quote.payment_method_id,
        'payment_method': quote.payment_method.name if quote.payment_method else None,
        'status': quote.status,
        'quote_date': quote.quote_date.isoformat() if quote.quote_date else None,
        'appointment_id': quote.appointment_id,
        'total': money(total)
    }
    if with_lines:
        data['lines'] = [_line_to_dict(line) for line in quote.lines]
    return data


def list_quotes(session: Session, plate: Optional[str] = None, owner_document: Optional[str] = None) -> List[dict]:
    """List quotes, newest first, each with its derived total."""
    query = session.query(Quote)
    if plate:
        query = query.filter(Quote.plate == plate)
    if owner_document:
        query = query.join(Vehicle, Vehicle.plate == Quote.plate).filter(
            Vehicle.owner_document == owner_document
        )
    quotes = query.order_by(Quote.id.desc()).all()

    totals = quote_totals(session, [q.id for q in quotes])
    return [_quote_to_dict(q, totals[q.id]) for q in quotes]


def get_quote(quote_id: int, session: Session) -> dict:
    """Quote header, lines and derived total."""
    quote = session.get(Quote, quote_id)
    if not quote:
        raise NotFoundError(f'Cotización {quote_id} no encontrada')

    totals = quote_totals(session, [quote.id])
    return _quote_to_dict(quote, totals[quote.id], with_lines=True)
