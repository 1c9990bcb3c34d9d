"""Amount conversion and bounded integer arithmetic.

Amounts are stored as integers in base units. Every intermediate value must fit
an unsigned 256-bit word; anything outside that range raises
``ArithmeticOverflow`` rather than wrapping.
"""

from __future__ import annotations

from decimal import ROUND_DOWN, Decimal, InvalidOperation, localcontext

from auction.errors import ArithmeticOverflow, InvalidInput

MAX_UINT256 = 2**256 - 1

# enough digits for any uint256 (78 digits) at any supported scale
DECIMAL_PRECISION = 100


def checked(value: int) -> int:
    if value < 0:
        raise ArithmeticOverflow(f"underflow: {value} < 0")
    if value > MAX_UINT256:
        raise ArithmeticOverflow("overflow: value exceeds 256 bits")
    return value


def checked_add(a: int, b: int) -> int:
    return checked(checked(a) + checked(b))


def checked_sub(a: int, b: int) -> int:
    return checked(checked(a) - checked(b))


def checked_mul(a: int, b: int) -> int:
    return checked(checked(a) * checked(b))


def mul_div(amount: int, numerator: int, denominator: int) -> int:
    """Return ``amount * numerator // denominator`` with the product bounds-checked."""
    if denominator <= 0:
        raise ArithmeticOverflow("division by zero")
    return checked_mul(amount, numerator) // denominator


def to_base_units(amount: Decimal | str | int, decimals: int = 18) -> int:
    """Convert a human amount (e.g. ``Decimal("1.2")``) to integer base units.

    Digits beyond ``decimals`` are truncated.
    """
    with localcontext() as ctx:
        ctx.prec = DECIMAL_PRECISION
        try:
            value = Decimal(str(amount))
            if not value.is_finite():
                raise InvalidInput(f"not a finite amount: {amount!r}")
            scaled = value.scaleb(decimals).to_integral_value(rounding=ROUND_DOWN)
        except InvalidOperation as exc:
            raise InvalidInput(f"not a valid amount: {amount!r}") from exc
    return checked(int(scaled))


def from_base_units(amount: int, decimals: int = 18) -> Decimal:
    """Convert integer base units back to a ``Decimal`` amount, exactly."""
    with localcontext() as ctx:
        ctx.prec = DECIMAL_PRECISION
        value = Decimal(amount).scaleb(-decimals).normalize()
        if value.as_tuple().exponent > 0:
            value = value.quantize(Decimal(1))
        return value
