from sqlalchemy import Column, Integer, String, Numeric, ForeignKey, UniqueConstraint
from sqlalchemy.orm import relationship
from invoicer.database import Base


class InvoiceItem(Base):
    __tablename__ = "invoice_items"
    __table_args__ = (UniqueConstraint("invoice_id", "item_id", name="uq_invoice_items_invoice_item"),)

    id = Column(Integer, primary_key=True, index=True)
    invoice_id = Column(String(36), ForeignKey("invoices.id", ondelete="CASCADE"), nullable=False, index=True)
    item_id = Column(String, nullable=False)  # caller-facing id, unique within the invoice
    position = Column(Integer, nullable=False)  # display order
    description = Column(String, nullable=False)
    quantity = Column(Numeric(12, 4), nullable=False)
    rate = Column(Numeric(12, 4), nullable=False)
    discount_type = Column(String, nullable=False, default="percentage")  # percentage, amount
    discount_value = Column(Numeric(12, 4), nullable=False, default=0)
    amount = Column(Numeric(12, 2), nullable=False)

    # Relationships
    invoice = relationship("Invoice", back_populates="items")
