# app/utils/decimal_utils.py
from decimal import Decimal, InvalidOperation, ROUND_HALF_UP

TWOPLACES = Decimal("0.01")
ZERO = Decimal("0")


def to_decimal(value) -> Decimal:
    """Quantize to money precision (used for persisted snapshots only)."""
    if value is None:
        return Decimal("0.00")
    if isinstance(value, Decimal):
        return value.quantize(TWOPLACES, rounding=ROUND_HALF_UP)
    return Decimal(str(value)).quantize(TWOPLACES, rounding=ROUND_HALF_UP)


def parse_decimal(value) -> Decimal:
    """Lenient parse: anything missing, unparsable or non-finite becomes 0."""
    if value is None or isinstance(value, bool):
        return ZERO
    if isinstance(value, Decimal):
        parsed = value
    else:
        text = str(value).strip()
        if not text:
            return ZERO
        try:
            parsed = Decimal(text)
        except (InvalidOperation, ValueError):
            return ZERO
    if not parsed.is_finite():
        return ZERO
    return parsed
