"""Lenient parsing of client-supplied values (ids, quantities, money, dates)."""
import re
from datetime import date, datetime
from decimal import Decimal, InvalidOperation

_WHITESPACE = re.compile(r'\s+')

# Largest value an INTEGER column holds (ids, quantities)
MAX_INT = 2 ** 31 - 1

# Largest amount a NUMERIC(10, 2) column holds
MAX_PRICE = Decimal('99999999.99')


def to_int(value):
    """
    Coerce a value to int when it represents a whole number.

    Accepts ints, integral floats/Decimals and numeric strings ("7", " 7 ",
    "7.0"). Returns None for anything else, including booleans and values
    outside the INTEGER column range.
    """
    if value is None or isinstance(value, bool):
        return None
    if isinstance(value, int):
        return value if abs(value) <= MAX_INT else None
    number = to_decimal(value)
    # adjusted() is the base-10 exponent: reject before int() expands it
    if number is None or number.adjusted() > 9:
        return None
    if number != number.to_integral_value():
        return None
    number = int(number)
    return number if abs(number) <= MAX_INT else None


def to_decimal(value):
    """Coerce a value to a finite Decimal, or None when it is absent or unparseable."""
    if value is None or isinstance(value, bool):
        return None
    if isinstance(value, str):
        value = value.strip()
        if not value:
            return None
    try:
        number = Decimal(str(value))
    except (InvalidOperation, ValueError):
        return None
    if not number.is_finite():
        return None
    return number


def to_price(value):
    """Coerce to a Decimal price in [0, MAX_PRICE], or None."""
    number = to_decimal(value)
    if number is None or number < 0 or number > MAX_PRICE:
        return None
    return number


def to_positive_int(value):
    """Coerce to a strictly positive int or None."""
    number = to_int(value)
    if number is None or number <= 0:
        return None
    return number


def parse_date(value):
    """
    Parse an ISO date (or datetime) into a date.

    Raises:
        ValueError: if the value is empty or not ISO formatted.
    """
    if isinstance(value, datetime):
        return value.date()
    if isinstance(value, date):
        return value
    text = str(value or '').strip()
    if not text:
        raise ValueError('Fecha vacía')
    if len(text) == 10:
        return date.fromisoformat(text)
    return parse_datetime(text).date()


def parse_datetime(value):
    """
    Parse an ISO datetime ("2025-03-01T10:30", "2025-03-01 10:30:00", "2025-03-01").

    A trailing "Z" is accepted and the result is returned naive (UTC wall time).

    Raises:
        ValueError: if the value is empty or not ISO formatted.
    """
    if isinstance(value, datetime):
        return value.replace(tzinfo=None)
    if isinstance(value, date):
        return datetime(value.year, value.month, value.day)
    text = str(value or '').strip()
    if not text:
        raise ValueError('Fecha vacía')
    if text.endswith('Z'):
        text = text[:-1] + '+00:00'
    return datetime.fromisoformat(text).replace(tzinfo=None)


def normalize_plate(value):
    """Upper-case a plate and strip all whitespace ("abc 123" -> "ABC123")."""
    return _WHITESPACE.sub('', str(value or '')).upper()


def money(value):
    """Serialize a Decimal amount for JSON (None stays None)."""
    if value is None:
        return None
    return float(value)
