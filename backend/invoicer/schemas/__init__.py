from invoicer.schemas.enums import DiscountType, InvoiceStatus, PaymentTerms
from invoicer.schemas.invoice import (
    PartyDetails,
    LineItemInput,
    LineItemResponse,
    InvoiceCreate,
    InvoiceUpdate,
    InvoiceResponse,
    InvoiceListResponse,
    InvoiceDraft,
    InvoiceCalculation,
    DueDateResponse,
    LogoUploadResponse,
)

__all__ = [
    "DiscountType",
    "InvoiceStatus",
    "PaymentTerms",
    "PartyDetails",
    "LineItemInput",
    "LineItemResponse",
    "InvoiceCreate",
    "InvoiceUpdate",
    "InvoiceResponse",
    "InvoiceListResponse",
    "InvoiceDraft",
    "InvoiceCalculation",
    "DueDateResponse",
    "LogoUploadResponse",
]
