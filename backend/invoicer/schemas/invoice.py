from pydantic import BaseModel, Field, field_validator, model_validator
from typing import Optional, List
from datetime import date, datetime
from decimal import Decimal
from invoicer.config import settings
from invoicer.schemas.enums import DiscountType, InvoiceStatus, PaymentTerms


class PartyDetails(BaseModel):
    name: Optional[str] = None
    address: Optional[str] = None
    phone: Optional[str] = None
    email: Optional[str] = None
    tax_id: Optional[str] = None


class LineItemInput(BaseModel):
    id: Optional[str] = None
    description: str = Field(..., min_length=1)
    quantity: Decimal = Field(..., gt=0, decimal_places=4)
    rate: Decimal = Field(..., ge=0, decimal_places=4)
    discount_type: DiscountType = DiscountType.PERCENTAGE
    discount_value: Decimal = Field(Decimal("0"), ge=0, decimal_places=4)
    amount: Optional[Decimal] = None  # ignored, always recomputed

    @field_validator("description")
    @classmethod
    def description_not_blank(cls, value: str) -> str:
        if not value.strip():
            raise ValueError("Item description is required")
        return value.strip()

    @model_validator(mode="after")
    def percentage_in_range(self) -> "LineItemInput":
        if self.discount_type == DiscountType.PERCENTAGE and self.discount_value > 100:
            raise ValueError("Percentage discount must be between 0 and 100")
        return self


class LineItemResponse(BaseModel):
    id: str
    description: str
    quantity: Decimal
    rate: Decimal
    discount_type: DiscountType
    discount_value: Decimal
    amount: Decimal

    class Config:
        from_attributes = True


class InvoiceCreate(BaseModel):
    invoice_number: str = Field(..., min_length=1)
    payment_terms: PaymentTerms
    issue_date: date
    due_date: Optional[date] = None  # derived from payment terms when omitted
    currency: str = Field(default_factory=lambda: settings.default_currency, min_length=1, max_length=10)
    logo_url: Optional[str] = None
    status: InvoiceStatus = InvoiceStatus.DRAFT
    business: PartyDetails = Field(default_factory=PartyDetails)
    client: PartyDetails = Field(default_factory=PartyDetails)
    items: List[LineItemInput] = []
    tax_rate: Decimal = Field(Decimal("0"), ge=0, decimal_places=3)
    shipping_cost: Decimal = Field(Decimal("0"), ge=0)

    @field_validator("invoice_number")
    @classmethod
    def invoice_number_not_blank(cls, value: str) -> str:
        if not value.strip():
            raise ValueError("Invoice number is required")
        return value.strip()


class InvoiceUpdate(BaseModel):
    invoice_number: Optional[str] = Field(None, min_length=1)
    payment_terms: Optional[PaymentTerms] = None
    issue_date: Optional[date] = None
    due_date: Optional[date] = None
    currency: Optional[str] = Field(None, min_length=1, max_length=10)
    logo_url: Optional[str] = None
    business: Optional[PartyDetails] = None
    client: Optional[PartyDetails] = None
    items: Optional[List[LineItemInput]] = None
    tax_rate: Optional[Decimal] = Field(None, ge=0, decimal_places=3)
    shipping_cost: Optional[Decimal] = Field(None, ge=0)


class InvoiceResponse(BaseModel):
    id: str
    invoice_number: str
    payment_terms: PaymentTerms
    issue_date: date
    due_date: date
    currency: str
    currency_symbol: str
    logo_url: Optional[str]
    status: InvoiceStatus
    business: PartyDetails
    client: PartyDetails
    items: List[LineItemResponse] = []
    tax_rate: Decimal
    shipping_cost: Decimal
    subtotal: Decimal
    tax_amount: Decimal
    total: Decimal
    created_at: datetime
    updated_at: datetime


class InvoiceListResponse(BaseModel):
    id: str
    invoice_number: str
    client_name: Optional[str] = None
    issue_date: date
    due_date: date
    currency: str
    total: Decimal
    status: InvoiceStatus
    created_at: datetime

    class Config:
        from_attributes = True


class InvoiceDraft(BaseModel):
    """Unsaved invoice input for live pricing"""
    payment_terms: PaymentTerms = PaymentTerms.NET30
    issue_date: date
    due_date: Optional[date] = None
    currency: str = Field(default_factory=lambda: settings.default_currency, min_length=1, max_length=10)
    items: List[LineItemInput] = []
    tax_rate: Decimal = Field(Decimal("0"), ge=0, decimal_places=3)
    shipping_cost: Decimal = Field(Decimal("0"), ge=0)


class InvoiceCalculation(BaseModel):
    """Live pricing of an unsaved draft"""
    items: List[LineItemResponse]
    subtotal: Decimal
    tax_amount: Decimal
    total: Decimal
    due_date: date
    currency: str
    currency_symbol: str


class DueDateResponse(BaseModel):
    issue_date: date
    payment_terms: PaymentTerms
    due_date: date


class LogoUploadResponse(BaseModel):
    logo_url: str
