from decimal import Decimal, ROUND_HALF_UP, InvalidOperation

CENTS = Decimal("0.01")


def to_money(value) -> Decimal:
    """
    Coerce a numeric value to a two-place Decimal.

    Floats go through ``str`` first so 19.99 stays 19.99 instead of
    picking up binary representation noise.
    """
    if isinstance(value, Decimal):
        amount = value
    elif isinstance(value, float):
        amount = Decimal(str(value))
    else:
        try:
            amount = Decimal(value)
        except (InvalidOperation, TypeError) as e:
            raise ValueError(f"Invalid monetary amount: {value!r}") from e
    return amount.quantize(CENTS, rounding=ROUND_HALF_UP)
