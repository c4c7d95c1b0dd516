from decimal import Decimal

CENTS = Decimal("0.01")
# Numeric(14, 2) holds at most 12 integer digits
MAX_AMOUNT = Decimal("999999999999.99")


def fits_money_column(amount: Decimal) -> bool:
    """
    True when ``amount`` is stored without rounding or overflow.

    At most two decimal places and no more than MAX_AMOUNT in magnitude.
    """
    if not amount.is_finite() or abs(amount) > MAX_AMOUNT:
        return False
    return amount == amount.quantize(CENTS)
