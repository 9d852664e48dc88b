"""
Invoice Engine - immutable invoice value objects and the edit operations on them.

Every edit returns a new PricedInvoice built through the aggregator, so derived
fields (item amounts, subtotal, tax, total, due date) are never stale.
"""
import logging
import uuid
from dataclasses import dataclass, field, replace
from datetime import date
from decimal import Decimal
from typing import Any, Iterable, List, Mapping, Optional, Tuple, Union

from invoicer.exceptions import NotFoundError, ValidationError
from invoicer.schemas.enums import DiscountType, InvoiceStatus, PaymentTerms
from invoicer.utils.calculations import (
    coerce_discount_type,
    coerce_payment_terms,
    compute_amount,
    compute_totals,
    resolve_due_date,
)
from invoicer.utils.money import ZERO, Currency, get_currency, round_money, to_decimal

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class Party:
    """Business (invoice from) or client (bill to) details"""
    name: Optional[str] = None
    address: Optional[str] = None
    phone: Optional[str] = None
    email: Optional[str] = None
    tax_id: Optional[str] = None

    def lines(self) -> List[str]:
        """Non-empty display lines; multi-line addresses are split"""
        result = []
        for value in (self.name, self.address, self.phone, self.email):
            if value and value.strip():
                result.extend(line.strip() for line in value.strip().splitlines() if line.strip())
        if self.tax_id and self.tax_id.strip():
            result.append(f"Tax ID: {self.tax_id.strip()}")
        return result


@dataclass(frozen=True)
class LineItem:
    id: str
    description: str
    quantity: Decimal
    rate: Decimal
    discount_type: DiscountType
    discount_value: Decimal
    amount: Decimal


@dataclass(frozen=True)
class PricedInvoice:
    invoice_number: str
    payment_terms: PaymentTerms
    issue_date: date
    due_date: date
    currency: str
    items: Tuple[LineItem, ...]
    tax_rate: Decimal
    shipping_cost: Decimal
    subtotal: Decimal
    tax_amount: Decimal
    total: Decimal
    business: Party = field(default_factory=Party)
    client: Party = field(default_factory=Party)
    status: InvoiceStatus = InvoiceStatus.DRAFT
    logo_url: Optional[str] = None

    @property
    def currency_info(self) -> Currency:
        return get_currency(self.currency)


ItemInput = Union[LineItem, Mapping[str, Any], Any]

EDITABLE_ITEM_FIELDS = {"description", "quantity", "rate", "discount_type", "discount_value"}


def make_line_item(
    description: str,
    quantity: Any,
    rate: Any,
    discount_type: Union[DiscountType, str] = DiscountType.PERCENTAGE,
    discount_value: Any = 0,
    item_id: Optional[str] = None,
    precision: int = 2,
) -> LineItem:
    """
    Validate raw item input and compute its amount.

    Any externally supplied amount is ignored; it is always derived here.
    """
    description = (description or "").strip()
    if not description:
        raise ValidationError("Item description is required")

    discount_type = coerce_discount_type(discount_type)
    quantity = to_decimal(quantity, "quantity")
    rate = to_decimal(rate, "rate")
    discount_value = to_decimal(discount_value, "discount_value")

    amount = compute_amount(quantity, rate, discount_type, discount_value, precision)
    return LineItem(
        id=item_id or str(uuid.uuid4()),
        description=description,
        quantity=quantity,
        rate=rate,
        discount_type=discount_type,
        discount_value=discount_value,
        amount=amount,
    )


def _field(source: Any, name: str, default: Any = None) -> Any:
    if isinstance(source, Mapping):
        return source.get(name, default)
    return getattr(source, name, default)


def _coerce_item(source: ItemInput, precision: int) -> LineItem:
    return make_line_item(
        description=_field(source, "description"),
        quantity=_field(source, "quantity"),
        rate=_field(source, "rate"),
        discount_type=_field(source, "discount_type") or DiscountType.PERCENTAGE,
        discount_value=_field(source, "discount_value", 0) or 0,
        item_id=_field(source, "id"),
        precision=precision,
    )


def _coerce_party(source: Any) -> Party:
    if source is None:
        return Party()
    if isinstance(source, Party):
        return source
    return Party(
        name=_field(source, "name"),
        address=_field(source, "address"),
        phone=_field(source, "phone"),
        email=_field(source, "email"),
        tax_id=_field(source, "tax_id"),
    )


def build_invoice(
    invoice_number: str,
    payment_terms: Union[PaymentTerms, str],
    issue_date: date,
    items: Iterable[ItemInput] = (),
    currency: str = "USD",
    tax_rate: Any = 0,
    shipping_cost: Any = 0,
    due_date: Optional[date] = None,
    business: Any = None,
    client: Any = None,
    status: Union[InvoiceStatus, str] = InvoiceStatus.DRAFT,
    logo_url: Optional[str] = None,
) -> PricedInvoice:
    """
    Validate invoice input and price it.

    Args:
        invoice_number: Caller-chosen, non-empty
        payment_terms: Closed PaymentTerms value
        issue_date: Calendar issue date
        items: LineItems, mappings or objects with item fields, in display order
        currency: Currency code; unknown codes are kept as-is
        tax_rate: Non-negative percentage
        shipping_cost: Non-negative amount
        due_date: Explicit override; derived from the terms when omitted
        business: Party or party-like object
        client: Party or party-like object
        status: Lifecycle tag
        logo_url: Reference to an uploaded logo

    Returns:
        PricedInvoice with every derived field computed
    """
    invoice_number = (invoice_number or "").strip()
    if not invoice_number:
        raise ValidationError("Invoice number is required")
    if issue_date is None:
        raise ValidationError("Issue date is required")

    payment_terms = coerce_payment_terms(payment_terms)
    try:
        status = InvoiceStatus(status)
    except ValueError:
        raise ValidationError(f"Unsupported invoice status: {status!r}")

    currency = (currency or "").strip().upper()
    if not currency:
        raise ValidationError("Currency is required")
    precision = get_currency(currency).precision

    tax_rate = to_decimal(tax_rate, "tax_rate")
    if tax_rate < ZERO:
        raise ValidationError("Tax rate must be non-negative")
    shipping_cost = to_decimal(shipping_cost, "shipping_cost")
    if shipping_cost < ZERO:
        raise ValidationError("Shipping cost must be non-negative")
    shipping_cost = round_money(shipping_cost, precision)

    if items is None:
        raise ValidationError("Items must be a list (send [] to clear them)")
    priced_items = tuple(_coerce_item(item, precision) for item in items)
    seen = set()
    for item in priced_items:
        if item.id in seen:
            raise ValidationError(f"Duplicate item id: {item.id}")
        seen.add(item.id)

    totals = compute_totals(priced_items, tax_rate, shipping_cost, precision)

    return PricedInvoice(
        invoice_number=invoice_number,
        payment_terms=payment_terms,
        issue_date=issue_date,
        due_date=due_date or resolve_due_date(issue_date, payment_terms),
        currency=currency,
        items=priced_items,
        tax_rate=tax_rate,
        shipping_cost=shipping_cost,
        subtotal=totals.subtotal,
        tax_amount=totals.tax_amount,
        total=totals.total,
        business=_coerce_party(business),
        client=_coerce_party(client),
        status=status,
        logo_url=logo_url,
    )


def reprice(invoice: PricedInvoice, **changes: Any) -> PricedInvoice:
    """
    Return a new invoice with the given input fields replaced and totals recomputed.

    Changing issue_date or payment_terms re-derives the due date unless an
    explicit due_date is passed along with them.
    """
    derived = {"subtotal", "tax_amount", "total"}
    bad = derived.intersection(changes)
    if bad:
        raise ValidationError(f"Derived fields cannot be set: {', '.join(sorted(bad))}")

    due_date = invoice.due_date
    if "due_date" in changes:
        due_date = changes.pop("due_date")
    elif "issue_date" in changes or "payment_terms" in changes:
        due_date = None

    inputs = {
        "invoice_number": invoice.invoice_number,
        "payment_terms": invoice.payment_terms,
        "issue_date": invoice.issue_date,
        "items": invoice.items,
        "currency": invoice.currency,
        "tax_rate": invoice.tax_rate,
        "shipping_cost": invoice.shipping_cost,
        "business": invoice.business,
        "client": invoice.client,
        "status": invoice.status,
        "logo_url": invoice.logo_url,
    }
    unknown = set(changes) - set(inputs)
    if unknown:
        raise ValidationError(f"Unknown invoice fields: {', '.join(sorted(unknown))}")
    inputs.update(changes)
    repriced = build_invoice(due_date=due_date, **inputs)
    logger.debug(
        f"Repriced invoice {repriced.invoice_number} ({', '.join(sorted(changes)) or 'no changes'}): "
        f"total {invoice.total} -> {repriced.total}"
    )
    return repriced


def add_item(invoice: PricedInvoice, item: ItemInput) -> PricedInvoice:
    return reprice(invoice, items=invoice.items + (item,))


def remove_item(invoice: PricedInvoice, item_id: str) -> PricedInvoice:
    remaining = tuple(item for item in invoice.items if item.id != item_id)
    if len(remaining) == len(invoice.items):
        raise NotFoundError(f"Item {item_id} not found on invoice {invoice.invoice_number}")
    return reprice(invoice, items=remaining)


def update_item(invoice: PricedInvoice, item_id: str, **changes: Any) -> PricedInvoice:
    """Replace fields of one item in place (order preserved) and reprice"""
    changes.pop("amount", None)
    unknown = set(changes) - EDITABLE_ITEM_FIELDS
    if unknown:
        raise ValidationError(f"Unknown item fields: {', '.join(sorted(unknown))}")
    items = []
    found = False
    for item in invoice.items:
        if item.id == item_id:
            item = replace(item, **changes)
            found = True
        items.append(item)
    if not found:
        raise NotFoundError(f"Item {item_id} not found on invoice {invoice.invoice_number}")
    return reprice(invoice, items=tuple(items))
