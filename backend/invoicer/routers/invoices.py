from fastapi import APIRouter, Depends, Query, Response
from sqlalchemy.orm import Session
from typing import List, Optional
from datetime import date
import logging

from invoicer.database import get_db
from invoicer.models.invoice import Invoice
from invoicer.schemas.enums import InvoiceStatus, PaymentTerms
from invoicer.schemas.invoice import (
    PartyDetails,
    LineItemResponse,
    InvoiceCreate,
    InvoiceUpdate,
    InvoiceResponse,
    InvoiceListResponse,
    InvoiceDraft,
    InvoiceCalculation,
    DueDateResponse,
)
from invoicer.services.invoice_engine import build_invoice
from invoicer.services.invoice_pdf_service import content_disposition, render_invoice_pdf
from invoicer.services.invoice_repository import InvoiceRepository, record_to_priced
from invoicer.services.storage_service import StorageService, get_storage_service
from invoicer.utils.calculations import resolve_due_date
from invoicer.utils.money import get_currency

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/api/invoices", tags=["invoices"])


def _party(record: Invoice, prefix: str) -> PartyDetails:
    return PartyDetails(
        name=getattr(record, f"{prefix}_name"),
        address=getattr(record, f"{prefix}_address"),
        phone=getattr(record, f"{prefix}_phone"),
        email=getattr(record, f"{prefix}_email"),
        tax_id=getattr(record, f"{prefix}_tax_id"),
    )


def invoice_to_response(record: Invoice) -> InvoiceResponse:
    return InvoiceResponse(
        id=record.id,
        invoice_number=record.invoice_number,
        payment_terms=record.payment_terms,
        issue_date=record.issue_date,
        due_date=record.due_date,
        currency=record.currency,
        currency_symbol=get_currency(record.currency).symbol,
        logo_url=record.logo_url,
        status=record.status,
        business=_party(record, "business"),
        client=_party(record, "client"),
        items=[
            LineItemResponse(
                id=item.item_id,
                description=item.description,
                quantity=item.quantity,
                rate=item.rate,
                discount_type=item.discount_type,
                discount_value=item.discount_value,
                amount=item.amount,
            )
            for item in record.items
        ],
        tax_rate=record.tax_rate,
        shipping_cost=record.shipping_cost,
        subtotal=record.subtotal,
        tax_amount=record.tax_amount,
        total=record.total,
        created_at=record.created_at,
        updated_at=record.updated_at,
    )


@router.post("", response_model=InvoiceResponse, status_code=201)
def create_invoice(payload: InvoiceCreate, db: Session = Depends(get_db)):
    """Create an invoice; item amounts and totals are computed server-side"""
    data = payload.model_dump()
    priced = build_invoice(**data)
    record = InvoiceRepository(db).create(priced)
    return invoice_to_response(record)


@router.get("", response_model=List[InvoiceListResponse])
def list_invoices(
    status: Optional[InvoiceStatus] = Query(None, description="Filter by status"),
    db: Session = Depends(get_db)
):
    """List invoices, newest first"""
    records = InvoiceRepository(db).list_all(status=status.value if status else None)
    return records


@router.post("/calculate", response_model=InvoiceCalculation)
def calculate_invoice(payload: InvoiceDraft):
    """Price an unsaved draft: item amounts, subtotal, tax, total and due date"""
    priced = build_invoice(invoice_number="draft", **payload.model_dump())
    return InvoiceCalculation(
        items=[
            LineItemResponse(
                id=item.id,
                description=item.description,
                quantity=item.quantity,
                rate=item.rate,
                discount_type=item.discount_type,
                discount_value=item.discount_value,
                amount=item.amount,
            )
            for item in priced.items
        ],
        subtotal=priced.subtotal,
        tax_amount=priced.tax_amount,
        total=priced.total,
        due_date=priced.due_date,
        currency=priced.currency,
        currency_symbol=priced.currency_info.symbol,
    )


@router.get("/due-date", response_model=DueDateResponse)
def get_due_date(
    issue_date: date = Query(..., description="Issue date (YYYY-MM-DD)"),
    payment_terms: PaymentTerms = Query(..., description="Payment terms code"),
):
    """Resolve the due date for an issue date and payment terms"""
    return DueDateResponse(
        issue_date=issue_date,
        payment_terms=payment_terms,
        due_date=resolve_due_date(issue_date, payment_terms),
    )


@router.get("/number/{invoice_number}", response_model=InvoiceResponse)
def get_invoice_by_number(invoice_number: str, db: Session = Depends(get_db)):
    """Get an invoice by its invoice number"""
    return invoice_to_response(InvoiceRepository(db).get_by_number(invoice_number))


@router.get("/{invoice_id}", response_model=InvoiceResponse)
def get_invoice(invoice_id: str, db: Session = Depends(get_db)):
    """Get invoice detail with items"""
    return invoice_to_response(InvoiceRepository(db).get(invoice_id))


@router.patch("/{invoice_id}", response_model=InvoiceResponse)
def update_invoice(invoice_id: str, payload: InvoiceUpdate, db: Session = Depends(get_db)):
    """Partially update an invoice and recompute its totals"""
    changes = payload.model_dump(exclude_unset=True)
    if "business" in changes and changes["business"] is not None:
        changes["business"] = payload.business.model_dump(exclude_unset=True)
    if "client" in changes and changes["client"] is not None:
        changes["client"] = payload.client.model_dump(exclude_unset=True)
    record = InvoiceRepository(db).update(invoice_id, changes)
    return invoice_to_response(record)


@router.post("/{invoice_id}/finalize", response_model=InvoiceResponse)
def finalize_invoice(invoice_id: str, db: Session = Depends(get_db)):
    """Finalize an invoice; finalized invoices can no longer be edited"""
    return invoice_to_response(InvoiceRepository(db).finalize(invoice_id))


@router.get("/{invoice_id}/pdf")
def download_invoice_pdf(
    invoice_id: str,
    db: Session = Depends(get_db),
    storage: StorageService = Depends(get_storage_service),
):
    """Render the invoice as an A4 PDF"""
    record = InvoiceRepository(db).get(invoice_id)
    rendered = render_invoice_pdf(record_to_priced(record), storage=storage)

    headers = {"Content-Disposition": content_disposition(rendered.filename)}
    if rendered.degraded:
        headers["X-Rendering-Degraded"] = ",".join(rendered.degraded)
    return Response(content=rendered.content, media_type="application/pdf", headers=headers)
