"""
Fixed-precision money helpers.

Amounts are Decimals quantized to the currency's fraction digits with
ROUND_HALF_UP. Floats are only accepted on ingress and converted through str().
"""
from dataclasses import dataclass
from decimal import Decimal, InvalidOperation, ROUND_HALF_UP
from typing import Any, Dict

from invoicer.exceptions import ValidationError

ZERO = Decimal("0")
HUNDRED = Decimal("100")
DEFAULT_PRECISION = 2


@dataclass(frozen=True)
class Currency:
    code: str
    symbol: str
    precision: int = DEFAULT_PRECISION


CURRENCIES: Dict[str, Currency] = {
    "USD": Currency("USD", "$"),
    "EUR": Currency("EUR", "€"),
    "GBP": Currency("GBP", "£"),
    "INR": Currency("INR", "₹"),
    "CAD": Currency("CAD", "C$"),
    "AUD": Currency("AUD", "A$"),
    "JPY": Currency("JPY", "¥", 0),
    "CHF": Currency("CHF", "Fr"),
    "SEK": Currency("SEK", "kr"),
    "NOK": Currency("NOK", "kr"),
    "DKK": Currency("DKK", "kr"),
}


def get_currency(code: str) -> Currency:
    """
    Resolve a currency code to its display symbol and precision.

    Unknown codes are never an error: the raw code is used as the symbol.
    """
    normalized = (code or "").strip().upper()
    known = CURRENCIES.get(normalized)
    if known:
        return known
    return Currency(normalized or code, normalized or code)


def to_decimal(value: Any, field: str = "value") -> Decimal:
    """Convert user input (str, int, float, Decimal) to a finite Decimal"""
    if isinstance(value, Decimal):
        result = value
    elif isinstance(value, bool) or value is None:
        raise ValidationError(f"{field} must be a number")
    else:
        try:
            result = Decimal(str(value).strip())
        except (InvalidOperation, ValueError):
            raise ValidationError(f"{field} must be a number, got {value!r}")
    if not result.is_finite():
        raise ValidationError(f"{field} must be a finite number")
    return result


def quantum(precision: int = DEFAULT_PRECISION) -> Decimal:
    return Decimal(1).scaleb(-precision)


def round_money(value: Any, precision: int = DEFAULT_PRECISION) -> Decimal:
    """Round to currency precision, half-up"""
    return to_decimal(value).quantize(quantum(precision), rounding=ROUND_HALF_UP)


def format_money(amount: Decimal, currency: Currency) -> str:
    """Format for display, e.g. $1,234.50 or ¥1,200"""
    rounded = round_money(amount, currency.precision)
    return f"{currency.symbol}{rounded:,.{currency.precision}f}"


def format_decimal(value: Decimal) -> str:
    """Render a quantity or rate without trailing zeros (2.50 -> 2.5)"""
    value = to_decimal(value)
    if value == value.to_integral_value():
        return str(value.quantize(Decimal(1)))
    return format(value.normalize(), "f")
