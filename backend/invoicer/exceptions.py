"""
Domain exceptions raised by the invoice engine, repository and rendering services.
The HTTP layer maps them to status codes in main.py.
"""


class InvoiceError(Exception):
    """Base class for invoice errors"""


class ValidationError(InvoiceError, ValueError):
    """Malformed or out-of-range input (400)"""


class NotFoundError(InvoiceError, LookupError):
    """Lookup by id or invoice number missed (404)"""


class RenderingDegraded(InvoiceError):
    """Non-fatal rendering problem, e.g. the logo could not be loaded"""


class PersistenceError(InvoiceError):
    """Opaque failure from the storage layer; the original error is chained"""
