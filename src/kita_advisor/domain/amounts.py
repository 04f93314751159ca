from decimal import ROUND_HALF_UP, Decimal, InvalidOperation
from typing import Any

from kita_advisor.logger import get_logger

logger = get_logger(__name__)

ZERO = Decimal("0")
# Largest accepted magnitude is below 10**(MAX_AMOUNT_EXPONENT + 1)
MAX_AMOUNT_EXPONENT = 15


def parse_amount(value: Any) -> Decimal:
    """Parse a raw amount to Decimal; anything unparseable counts as zero."""
    if value is None or isinstance(value, bool):
        return ZERO
    if isinstance(value, Decimal):
        parsed = value
    else:
        raw = str(value).strip().replace(",", "")
        if not raw:
            return ZERO
        try:
            parsed = Decimal(raw)
        except InvalidOperation:
            logger.debug("Unparseable amount %r treated as zero.", value)
            return ZERO
    if not parsed.is_finite():
        logger.debug("Non-finite amount %r treated as zero.", value)
        return ZERO
    if parsed and parsed.adjusted() > MAX_AMOUNT_EXPONENT:
        logger.debug("Out-of-range amount %r treated as zero.", value)
        return ZERO
    return parsed


def percent_of(part: Decimal, whole: Decimal) -> int:
    if whole == 0:
        return 0
    return int((part / whole * 100).quantize(Decimal("1"), rounding=ROUND_HALF_UP))
