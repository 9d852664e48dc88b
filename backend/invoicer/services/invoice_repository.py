"""
Invoice Repository - persistence of priced invoices.

Records are always written from a PricedInvoice, so stored item amounts and
totals are whatever the invoice engine derived, never client input.
"""
import logging
from dataclasses import replace
from typing import Any, Dict, List, Optional

from sqlalchemy.exc import IntegrityError, SQLAlchemyError
from sqlalchemy.orm import Session

from invoicer.exceptions import NotFoundError, PersistenceError, ValidationError
from invoicer.models.invoice import Invoice
from invoicer.models.invoice_item import InvoiceItem
from invoicer.schemas.enums import InvoiceStatus
from invoicer.services.invoice_engine import LineItem, Party, PricedInvoice, build_invoice, reprice

logger = logging.getLogger(__name__)

PARTY_FIELDS = ("name", "address", "phone", "email", "tax_id")


def _party_from_record(record: Invoice, prefix: str) -> Party:
    return Party(**{name: getattr(record, f"{prefix}_{name}") for name in PARTY_FIELDS})


def record_to_priced(record: Invoice) -> PricedInvoice:
    """Rebuild the engine's view of a stored invoice (amounts are recomputed)"""
    return build_invoice(
        invoice_number=record.invoice_number,
        payment_terms=record.payment_terms,
        issue_date=record.issue_date,
        due_date=record.due_date,
        items=[
            {
                "id": item.item_id,
                "description": item.description,
                "quantity": item.quantity,
                "rate": item.rate,
                "discount_type": item.discount_type,
                "discount_value": item.discount_value,
            }
            for item in record.items
        ],
        currency=record.currency,
        tax_rate=record.tax_rate,
        shipping_cost=record.shipping_cost,
        business=_party_from_record(record, "business"),
        client=_party_from_record(record, "client"),
        status=record.status,
        logo_url=record.logo_url,
    )


def _item_record(item: LineItem, position: int) -> InvoiceItem:
    return InvoiceItem(
        item_id=item.id,
        position=position,
        description=item.description,
        quantity=item.quantity,
        rate=item.rate,
        discount_type=item.discount_type.value,
        discount_value=item.discount_value,
        amount=item.amount,
    )


def _apply_priced(record: Invoice, priced: PricedInvoice):
    record.invoice_number = priced.invoice_number
    record.payment_terms = priced.payment_terms.value
    record.issue_date = priced.issue_date
    record.due_date = priced.due_date
    record.currency = priced.currency
    record.logo_url = priced.logo_url
    record.status = priced.status.value
    for prefix, party in (("business", priced.business), ("client", priced.client)):
        for name in PARTY_FIELDS:
            setattr(record, f"{prefix}_{name}", getattr(party, name))
    record.tax_rate = priced.tax_rate
    record.shipping_cost = priced.shipping_cost
    record.subtotal = priced.subtotal
    record.tax_amount = priced.tax_amount
    record.total = priced.total


class InvoiceRepository:
    """create / get / get_by_number / update / list_all over a SQLAlchemy session"""

    def __init__(self, db: Session):
        self.db = db

    def _commit(self, record: Invoice) -> Invoice:
        invoice_number = record.invoice_number
        try:
            self.db.commit()
        except IntegrityError as e:
            self.db.rollback()
            logger.info(f"Integrity error saving invoice {invoice_number}: {str(e.orig)}")
            raise ValidationError(f"Invoice number {invoice_number} already exists") from e
        except SQLAlchemyError as e:
            self.db.rollback()
            logger.error(f"Failed to save invoice {invoice_number}: {str(e)}", exc_info=True)
            raise PersistenceError(f"Failed to save invoice: {str(e)}") from e
        self.db.refresh(record)
        return record

    def create(self, priced: PricedInvoice) -> Invoice:
        """
        Persist a new invoice

        Args:
            priced: Invoice priced by the engine

        Returns:
            Stored record with assigned id and timestamps
        """
        record = Invoice()
        _apply_priced(record, priced)
        record.items = [_item_record(item, position) for position, item in enumerate(priced.items)]
        self.db.add(record)
        record = self._commit(record)
        logger.info(f"Created invoice {record.invoice_number} (ID: {record.id}, total: {record.total})")
        return record

    def get(self, invoice_id: str) -> Invoice:
        try:
            record = self.db.query(Invoice).filter(Invoice.id == invoice_id).first()
        except SQLAlchemyError as e:
            raise PersistenceError(f"Failed to load invoice: {str(e)}") from e
        if not record:
            raise NotFoundError("Invoice not found")
        return record

    def get_by_number(self, invoice_number: str) -> Invoice:
        try:
            record = self.db.query(Invoice).filter(Invoice.invoice_number == invoice_number).first()
        except SQLAlchemyError as e:
            raise PersistenceError(f"Failed to load invoice: {str(e)}") from e
        if not record:
            raise NotFoundError("Invoice not found")
        return record

    def list_all(self, status: Optional[str] = None) -> List[Invoice]:
        """List invoices, newest first"""
        try:
            query = self.db.query(Invoice)
            if status:
                query = query.filter(Invoice.status == status)
            return query.order_by(Invoice.created_at.desc(), Invoice.invoice_number).all()
        except SQLAlchemyError as e:
            raise PersistenceError(f"Failed to list invoices: {str(e)}") from e

    def update(self, invoice_id: str, changes: Dict[str, Any]) -> Invoice:
        """
        Apply a partial update and re-price the invoice

        Args:
            invoice_id: Invoice ID
            changes: Input fields to replace; parties are merged field by field

        Returns:
            Updated record
        """
        record = self.get(invoice_id)
        current = record_to_priced(record)

        if current.status == InvoiceStatus.FINALIZED and changes:
            raise ValidationError("Finalized invoices cannot be modified")

        changes = dict(changes)
        for party_field in ("business", "client"):
            if party_field in changes:
                provided = changes[party_field] or {}
                changes[party_field] = replace(getattr(current, party_field), **provided)

        updated = reprice(current, **changes)

        if "items" in changes:
            # flush the removals first so re-used item ids don't collide
            record.items.clear()
            try:
                self.db.flush()
            except SQLAlchemyError as e:
                self.db.rollback()
                raise PersistenceError(f"Failed to replace invoice items: {str(e)}") from e
            record.items.extend(_item_record(item, position) for position, item in enumerate(updated.items))
        else:
            # a currency change alters line precision, so stored amounts are re-derived too
            for row, item in zip(record.items, updated.items):
                row.amount = item.amount

        _apply_priced(record, updated)

        record = self._commit(record)
        logger.info(f"Updated invoice {record.invoice_number} (ID: {record.id}, total: {record.total})")
        return record

    def finalize(self, invoice_id: str) -> Invoice:
        """Move a draft to finalized; finalizing twice is a no-op"""
        record = self.get(invoice_id)
        if record.status == InvoiceStatus.FINALIZED.value:
            return record
        record.status = InvoiceStatus.FINALIZED.value
        record = self._commit(record)
        logger.info(f"Finalized invoice {record.invoice_number} (ID: {record.id})")
        return record
