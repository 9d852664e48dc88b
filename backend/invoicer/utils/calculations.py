"""
Invoice arithmetic: line amounts, invoice totals and due dates.

All functions are pure. Rounding is ROUND_HALF_UP to the currency precision.
"""
from dataclasses import dataclass
from datetime import date, timedelta
from decimal import Decimal
from typing import Any, Iterable, Union

from invoicer.exceptions import ValidationError
from invoicer.schemas.enums import DiscountType, PaymentTerms
from invoicer.utils.money import DEFAULT_PRECISION, HUNDRED, ZERO, round_money, to_decimal

PAYMENT_TERM_DAYS = {
    PaymentTerms.NET7: 7,
    PaymentTerms.NET15: 15,
    PaymentTerms.NET30: 30,
    PaymentTerms.NET45: 45,
    PaymentTerms.NET60: 60,
    PaymentTerms.DUE_ON_RECEIPT: 0,
}


@dataclass(frozen=True)
class InvoiceTotals:
    subtotal: Decimal
    tax_amount: Decimal
    total: Decimal


def coerce_discount_type(value: Union[DiscountType, str]) -> DiscountType:
    try:
        return DiscountType(value)
    except ValueError:
        raise ValidationError(f"Unsupported discount type: {value!r}")


def coerce_payment_terms(value: Union[PaymentTerms, str]) -> PaymentTerms:
    try:
        return PaymentTerms(value)
    except ValueError:
        raise ValidationError(f"Unsupported payment terms: {value!r}")


def compute_amount(
    quantity: Any,
    rate: Any,
    discount_type: Union[DiscountType, str],
    discount_value: Any,
    precision: int = DEFAULT_PRECISION,
) -> Decimal:
    """
    Compute a line item's amount.

    Percentage discounts must lie in [0, 100]. Amount discounts larger than
    quantity x rate floor the line at zero instead of failing.

    Args:
        quantity: Positive quantity
        rate: Non-negative unit rate
        discount_type: percentage or amount
        discount_value: Non-negative discount
        precision: Currency fraction digits

    Returns:
        Amount rounded to currency precision
    """
    quantity = to_decimal(quantity, "quantity")
    rate = to_decimal(rate, "rate")
    discount_value = to_decimal(discount_value, "discount_value")
    discount_type = coerce_discount_type(discount_type)

    if quantity <= ZERO:
        raise ValidationError("Quantity must be greater than 0")
    if rate < ZERO:
        raise ValidationError("Rate must be non-negative")
    if discount_value < ZERO:
        raise ValidationError("Discount must be non-negative")

    base = quantity * rate
    if discount_type is DiscountType.PERCENTAGE:
        if discount_value > HUNDRED:
            raise ValidationError("Percentage discount must be between 0 and 100")
        amount = base * (1 - discount_value / HUNDRED)
    else:
        amount = max(ZERO, base - discount_value)

    return round_money(amount, precision)


def compute_item_amount(item: Any, precision: int = DEFAULT_PRECISION) -> Decimal:
    """compute_amount for anything carrying quantity/rate/discount_type/discount_value"""
    return compute_amount(
        item.quantity,
        item.rate,
        item.discount_type,
        item.discount_value,
        precision,
    )


def compute_totals(
    items: Iterable[Any],
    tax_rate: Any,
    shipping_cost: Any,
    precision: int = DEFAULT_PRECISION,
) -> InvoiceTotals:
    """
    Aggregate line items into subtotal, tax and total.

    Each item's amount is recomputed, never read from the item. tax_rate and
    shipping_cost are trusted to be validated non-negative. The total is
    rounded once from the unrounded tax, which equals
    subtotal + tax_amount + shipping_cost since the other terms are whole cents.
    """
    subtotal = ZERO
    for item in items:
        subtotal += compute_item_amount(item, precision)
    subtotal = round_money(subtotal, precision)

    tax_rate = to_decimal(tax_rate, "tax_rate")
    shipping_cost = to_decimal(shipping_cost, "shipping_cost")

    raw_tax = subtotal * tax_rate / HUNDRED
    return InvoiceTotals(
        subtotal=subtotal,
        tax_amount=round_money(raw_tax, precision),
        total=round_money(subtotal + raw_tax + shipping_cost, precision),
    )


def resolve_due_date(issue_date: date, terms: Union[PaymentTerms, str]) -> date:
    """Due date is issue date plus the terms' calendar days"""
    terms = coerce_payment_terms(terms)
    return issue_date + timedelta(days=PAYMENT_TERM_DAYS[terms])
