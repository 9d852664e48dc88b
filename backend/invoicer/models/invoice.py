import uuid
from sqlalchemy import Column, String, Numeric, Date, DateTime, Text
from sqlalchemy.orm import relationship
from sqlalchemy.sql import func
from invoicer.database import Base


def _new_id() -> str:
    return str(uuid.uuid4())


class Invoice(Base):
    __tablename__ = "invoices"

    id = Column(String(36), primary_key=True, default=_new_id)
    invoice_number = Column(String, nullable=False, unique=True, index=True)
    payment_terms = Column(String, nullable=False)  # NET7, NET15, NET30, NET45, NET60, DUE_ON_RECEIPT
    issue_date = Column(Date, nullable=False)
    due_date = Column(Date, nullable=False)
    currency = Column(String, nullable=False, default="USD")
    logo_url = Column(String, nullable=True)
    status = Column(String, nullable=False, default="draft", index=True)  # draft, finalized

    # Invoice From (business details)
    business_name = Column(String, nullable=True)
    business_address = Column(Text, nullable=True)
    business_phone = Column(String, nullable=True)
    business_email = Column(String, nullable=True)
    business_tax_id = Column(String, nullable=True)

    # Bill To (client details)
    client_name = Column(String, nullable=True)
    client_address = Column(Text, nullable=True)
    client_phone = Column(String, nullable=True)
    client_email = Column(String, nullable=True)
    client_tax_id = Column(String, nullable=True)

    # Rates are inputs, money columns are derived by the invoice engine
    tax_rate = Column(Numeric(7, 3), nullable=False, default=0)
    shipping_cost = Column(Numeric(12, 2), nullable=False, default=0)
    subtotal = Column(Numeric(12, 2), nullable=False, default=0)
    tax_amount = Column(Numeric(12, 2), nullable=False, default=0)
    total = Column(Numeric(12, 2), nullable=False, default=0)

    created_at = Column(DateTime(timezone=True), server_default=func.now())
    updated_at = Column(DateTime(timezone=True), server_default=func.now(), onupdate=func.now())

    # Relationships
    items = relationship(
        "InvoiceItem",
        back_populates="invoice",
        cascade="all, delete-orphan",
        order_by="InvoiceItem.position",
    )
