from .auth import User, SessionToken
from .customers import Customer
from .documents import (
    DocumentSequence,
    Quote,
    QuoteLine,
    Invoice,
    InvoiceActivity,
    PaymentReceived,
    PaymentApplication,
)
from .catalog import ItemRequest, Item

__all__ = [
    'User', 'SessionToken',
    'Customer',
    'DocumentSequence', 'Quote', 'QuoteLine',
    'Invoice', 'InvoiceActivity',
    'PaymentReceived', 'PaymentApplication',
    'ItemRequest', 'Item',
]
