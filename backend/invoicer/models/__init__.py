from invoicer.models.invoice import Invoice
from invoicer.models.invoice_item import InvoiceItem

__all__ = ["Invoice", "InvoiceItem"]
