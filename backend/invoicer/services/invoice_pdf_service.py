"""
Invoice PDF Service - layout, logo loading and rendering in one call.
"""
import logging
import re
import unicodedata
from dataclasses import dataclass, field
from typing import List, Optional
from urllib.parse import quote

import httpx

from invoicer.exceptions import RenderingDegraded
from invoicer.services.document_builder import build_layout
from invoicer.services.invoice_engine import PricedInvoice
from invoicer.services.logo_service import load_logo
from invoicer.services.pdf_renderer import render
from invoicer.services.storage_service import StorageService

logger = logging.getLogger(__name__)


@dataclass
class RenderedInvoice:
    content: bytes
    filename: str
    page_count: int
    degraded: List[str] = field(default_factory=list)


def pdf_filename(invoice_number: str) -> str:
    safe = re.sub(r'[\\/*?:"<>|\s]', "_", invoice_number or "").strip("_")
    return f"Invoice_{safe or 'draft'}.pdf"


def content_disposition(filename: str) -> str:
    """
    Attachment header for a possibly non-ASCII filename.

    HTTP headers are latin-1, so the plain filename= is ASCII-folded and the
    exact name travels in the RFC 5987 filename* parameter.
    """
    folded = unicodedata.normalize("NFKD", filename).encode("ascii", "ignore").decode("ascii")
    folded = re.sub(r'[^\w.\-]', "_", folded).strip("_") or "invoice.pdf"
    return f"attachment; filename=\"{folded}\"; filename*=UTF-8''{quote(filename, safe='')}"


def render_invoice_pdf(
    invoice: PricedInvoice,
    storage: Optional[StorageService] = None,
    client: Optional[httpx.Client] = None,
) -> RenderedInvoice:
    """
    Render a priced invoice to PDF.

    A missing or broken logo never fails the render; it is logged and listed
    in RenderedInvoice.degraded.
    """
    degraded = []
    logo = None
    if invoice.logo_url:
        try:
            logo = load_logo(invoice.logo_url, storage=storage, client=client)
        except RenderingDegraded as e:
            logger.warning(f"Invoice {invoice.invoice_number}: rendering without logo ({str(e)})")
            degraded.append("logo-unavailable")

    model = build_layout(invoice, show_logo=logo is not None)
    content = render(model, logo=logo)
    return RenderedInvoice(
        content=content,
        filename=pdf_filename(invoice.invoice_number),
        page_count=len(model.pages),
        degraded=degraded,
    )
