"""Derived totals for master-detail records (computed at read time, never stored)."""
from decimal import Decimal
from typing import Dict, Iterable

from sqlalchemy import func
from sqlalchemy.orm import Session

from tunik.models import OrderLine, QuoteLine, AppointmentLine

ZERO = Decimal('0.00')


def _grouped_totals(session: Session, parent_column, amount_expr, parent_ids: Iterable[int]) -> Dict[int, Decimal]:
    ids = list(dict.fromkeys(parent_ids))
    totals = {parent_id: ZERO for parent_id in ids}
    if not ids:
        return totals

    rows = session.query(
        parent_column,
        func.sum(amount_expr)
    ).filter(
        parent_column.in_(ids)
    ).group_by(parent_column).all()

    for parent_id, total in rows:
        totals[parent_id] = Decimal(str(total)) if total is not None else ZERO
    return totals


def order_totals(session: Session, order_ids: Iterable[int]) -> Dict[int, Decimal]:
    """Sum of qty * unit_price per order. Orders without lines map to 0."""
    return _grouped_totals(
        session, OrderLine.order_id, OrderLine.qty * OrderLine.unit_price, order_ids
    )


def quote_totals(session: Session, quote_ids: Iterable[int]) -> Dict[int, Decimal]:
    """Sum of unit_price per quote. Quotes without lines map to 0."""
    return _grouped_totals(session, QuoteLine.quote_id, QuoteLine.unit_price, quote_ids)


def appointment_totals(session: Session, appointment_ids: Iterable[int]) -> Dict[int, Decimal]:
    """Sum of qty * unit_price per appointment. Appointments without lines map to 0."""
    return _grouped_totals(
        session, AppointmentLine.appointment_id,
        AppointmentLine.qty * AppointmentLine.unit_price, appointment_ids
    )
