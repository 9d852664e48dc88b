from enum import Enum


class DiscountType(str, Enum):
    PERCENTAGE = "percentage"
    AMOUNT = "amount"


class PaymentTerms(str, Enum):
    NET7 = "NET7"
    NET15 = "NET15"
    NET30 = "NET30"
    NET45 = "NET45"
    NET60 = "NET60"
    DUE_ON_RECEIPT = "DUE_ON_RECEIPT"


class InvoiceStatus(str, Enum):
    DRAFT = "draft"
    FINALIZED = "finalized"
