from decimal import Decimal, ROUND_HALF_UP

QUANTITY_STEP = Decimal("0.001")
# Numeric(18, 3) column
MAX_QUANTITY = Decimal("999999999999999.999")


def quantize_qty(value: Decimal | float | int | str | None) -> Decimal | None:
    if value is None:
        return None
    return Decimal(str(value)).quantize(QUANTITY_STEP, rounding=ROUND_HALF_UP)
