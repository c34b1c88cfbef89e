"""Appointment service (agenda de citas) with its booked service lines."""
import logging
from decimal import Decimal
from typing import Any, Dict, List, Optional

from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.orm import Session

from tunik.database import storage_error
from tunik.models import Appointment, AppointmentLine, Quote, Vehicle
from tunik.exceptions import (
    TunikError, ValidationError, InvalidReferenceError, EmptyDetailError,
    ConflictError, NotFoundError
)
from tunik.services.line_items import LineItem, normalize_appointment_items
from tunik.services.references import require_vehicle, require_services, resolve_price, line_price
from tunik.services.totals_service import appointment_totals
from tunik.utils.parsing import to_positive_int, money

logger = logging.getLogger(__name__)

DEFAULT_STATUS = 'Pendiente'


def _insert_lines(session: Session, appointment_id: int, items: List[LineItem]) -> None:
    services = require_services(session, items)
    for item in items:
        session.add(AppointmentLine(
            appointment_id=appointment_id,
            service_id=item.catalog_id,
            qty=item.quantity,
            unit_price=resolve_price(item, services[item.catalog_id].unit_price)
        ))
    session.flush()


def _delete_lines(session: Session, appointment_id: int) -> None:
    for line in session.query(AppointmentLine).filter(
        AppointmentLine.appointment_id == appointment_id
    ).all():
        session.delete(line)
    session.flush()


def _get_locked_appointment(session: Session, appointment_id: int) -> Appointment:
    appointment = session.query(Appointment).filter(
        Appointment.id == appointment_id
    ).with_for_update().first()
    if not appointment:
        raise NotFoundError(f'Agenda {appointment_id} no encontrada')
    return appointment


def create_appointment(session: Session, plate: Optional[str] = None, scheduled_at=None,
                       status: Optional[str] = None, items: Any = None) -> Appointment:
    """
    Create an appointment with its service lines.

    The detail set is optional, but an items payload that normalizes to
    nothing is rejected with EmptyDetailError.
    """
    try:
        if not plate:
            raise ValidationError('Placa es obligatoria')
        if scheduled_at is None:
            raise ValidationError('Fecha es obligatoria')

        lines = normalize_appointment_items(items)

        require_vehicle(session, plate)

        if items is not None and not lines:
            raise EmptyDetailError('Agrega al menos 1 servicio a la agenda')

        appointment = Appointment(
            plate=plate,
            scheduled_at=scheduled_at,
            status=(status or '').strip() or DEFAULT_STATUS
        )
        session.add(appointment)
        session.flush()

        _insert_lines(session, appointment.id, lines)

        session.commit()
        logger.info("Appointment %s created with %s lines", appointment.id, len(lines))
        return appointment

    except TunikError:
        session.rollback()
        raise
    except SQLAlchemyError as e:
        session.rollback()
        logger.exception("Error creating appointment: %s", e)
        raise storage_error(e, 'crear la agenda') from e


def update_appointment(appointment_id: int, session: Session, **changes) -> Appointment:
    """
    Update an appointment. Only keys present in ``changes`` are applied.

    Accepted keys: plate, scheduled_at, status, items. Sending ``items``
    replaces the whole detail set. The plate cannot move away from the plate
    of quotes already generated from this appointment.
    """
    try:
        appointment = _get_locked_appointment(session, appointment_id)

        if 'plate' in changes:
            plate = changes['plate']
            if not plate:
                raise ValidationError('Placa inválida')
            if plate != appointment.plate:
                require_vehicle(session, plate)
                linked = session.query(Quote).filter(
                    Quote.appointment_id == appointment_id,
                    Quote.plate != plate
                ).first()
                if linked:
                    raise ConflictError(
                        f'La cotización {linked.id} generada desde esta agenda tiene otra placa'
                    )
                appointment.plate = plate

        if 'scheduled_at' in changes:
            if changes['scheduled_at'] is None:
                raise ValidationError('Fecha inválida')
            appointment.scheduled_at = changes['scheduled_at']

        if 'status' in changes:
            status = (changes['status'] or '').strip()
            if not status:
                raise ValidationError('Estado inválido')
            appointment.status = status

        if 'items' in changes:
            lines = normalize_appointment_items(changes['items'])
            if not lines:
                raise EmptyDetailError('Agrega al menos 1 servicio para actualizar el detalle')

            require_services(session, lines)
            _delete_lines(session, appointment_id)
            _insert_lines(session, appointment_id, lines)

        session.commit()
        return appointment

    except TunikError:
        session.rollback()
        raise
    except SQLAlchemyError as e:
        session.rollback()
        logger.exception("Error updating appointment %s: %s", appointment_id, e)
        raise storage_error(e, 'actualizar la agenda') from e


def delete_appointment(appointment_id: int, session: Session) -> dict:
    """
    Delete an appointment and its lines.

    Raises:
        NotFoundError: appointment does not exist
        ReferentialConstraintError: quotes still reference it (nothing is deleted)
    """
    try:
        appointment = _get_locked_appointment(session, appointment_id)

        _delete_lines(session, appointment_id)
        session.delete(appointment)
        session.flush()

        session.commit()
        logger.info("Appointment %s deleted", appointment_id)
        return {'appointment_id': appointment_id}

    except TunikError:
        session.rollback()
        raise
    except SQLAlchemyError as e:
        session.rollback()
        logger.exception("Error deleting appointment %s: %s", appointment_id, e)
        raise storage_error(e, 'eliminar la agenda') from e


# Single detail lines

def _line_to_dict(line: AppointmentLine) -> dict:
    return {
        'appointment_id': line.appointment_id,
        'service_id': line.service_id,
        'service_name': line.service.name if line.service else None,
        'qty': line.qty,
        'unit_price': money(line.unit_price),
        'line_total': money(line.qty * line.unit_price)
    }


def add_appointment_line(appointment_id: int, session: Session, service_id: Optional[int] = None,
                         qty: Any = None, unit_price: Any = None) -> dict:
    """
    Add one service line to an existing appointment.

    Quantity defaults to 1 and the price to the service's current price.
    """
    try:
        if not service_id:
            raise ValidationError('idservicios es obligatorio')
        price = line_price(unit_price, 'precio_unitario')

        if not session.get(Appointment, appointment_id):
            raise InvalidReferenceError('La agenda indicada no existe')

        service = require_services(session, [LineItem(catalog_id=service_id)])[service_id]

        if session.get(AppointmentLine, (appointment_id, service_id)):
            raise ConflictError('Ya existe un detalle con ese servicio para esta agenda')

        quantity = 1
        if qty is not None:
            quantity = to_positive_int(qty)
            if quantity is None:
                raise ValidationError('cantidad debe ser un entero positivo')

        line = AppointmentLine(
            appointment_id=appointment_id,
            service_id=service_id,
            qty=quantity,
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
        logger.exception("Error adding line to appointment %s: %s", appointment_id, e)
        raise storage_error(e, 'agregar el detalle') from e


def update_appointment_line(appointment_id: int, service_id: int, session: Session,
                            qty: Any = None, unit_price: Any = None) -> dict:
    """Change quantity and/or price of one appointment line."""
    try:
        line = session.get(AppointmentLine, (appointment_id, service_id))
        if not line:
            raise NotFoundError('No se encontró el detalle para actualizar')

        if qty is None and unit_price is None:
            raise ValidationError('Envía cantidad o precio_unitario')

        if qty is not None:
            quantity = to_positive_int(qty)
            if quantity is None:
                raise ValidationError('cantidad debe ser un entero positivo')
            line.qty = quantity

        if unit_price is not None:
            line.unit_price = line_price(unit_price, 'precio_unitario')

        session.commit()
        return _line_to_dict(line)

    except TunikError:
        session.rollback()
        raise
    except SQLAlchemyError as e:
        session.rollback()
        logger.exception("Error updating line %s of appointment %s: %s", service_id, appointment_id, e)
        raise storage_error(e, 'actualizar el detalle') from e


def delete_appointment_line(appointment_id: int, service_id: int, session: Session) -> None:
    try:
        line = session.get(AppointmentLine, (appointment_id, service_id))
        if not line:
            raise NotFoundError('No se encontró el detalle para eliminar')
        session.delete(line)
        session.commit()

    except TunikError:
        session.rollback()
        raise
    except SQLAlchemyError as e:
        session.rollback()
        logger.exception("Error deleting line %s of appointment %s: %s", service_id, appointment_id, e)
        raise storage_error(e, 'eliminar el detalle') from e


def list_appointment_lines(appointment_id: int, session: Session) -> List[dict]:
    if not session.get(Appointment, appointment_id):
        raise NotFoundError(f'Agenda {appointment_id} no encontrada')
    lines = session.query(AppointmentLine).filter(
        AppointmentLine.appointment_id == appointment_id
    ).order_by(AppointmentLine.service_id).all()
    return [_line_to_dict(line) for line in lines]


def get_appointment_total(appointment_id: int, session: Session) -> Decimal:
    return appointment_totals(session, [appointment_id])[appointment_id]


# Read paths

def _appointment_to_dict(appointment: Appointment, total, with_lines: bool = False) -> Dict[str, Any]:
    data = {
        'id': appointment.id,
        'plate': appointment.plate,
        'owner_document': appointment.vehicle.owner_document if appointment.vehicle else None,
        'scheduled_at': appointment.scheduled_at.isoformat() if appointment.scheduled_at else None,
        'status': appointment.status,
        'total': money(total)
    }
    if with_lines:
        data['lines'] = [_line_to_dict(line) for line in appointment.lines]
    return data


def list_appointments(session: Session, plate: Optional[str] = None, status: Optional[str] = None,
                      owner_document: Optional[str] = None) -> List[dict]:
    """List appointments, most recent schedule first, with derived totals."""
    query = session.query(Appointment)
    if plate:
        query = query.filter(Appointment.plate == plate)
    if status:
        query = query.filter(Appointment.status == status)
    if owner_document:
        query = query.join(Vehicle, Vehicle.plate == Appointment.plate).filter(
            Vehicle.owner_document == owner_document
        )
    appointments = query.order_by(Appointment.scheduled_at.desc(), Appointment.id.desc()).all()

    totals = appointment_totals(session, [a.id for a in appointments])
    return [_appointment_to_dict(a, totals[a.id]) for a in appointments]


def get_appointment(appointment_id: int, session: Session) -> dict:
    appointment = session.get(Appointment, appointment_id)
    if not appointment:
        raise NotFoundError(f'Agenda {appointment_id} no encontrada')

    totals = appointment_totals(session, [appointment.id])
    return _appointment_to_dict(appointment, totals[appointment.id], with_lines=True)
