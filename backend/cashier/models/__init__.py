from .catalog import Product
from .sales import Sale, SaleItem
from .settings import Setting
from .invoices import Invoice

__all__ = [
    'Product',
    'Sale', 'SaleItem',
    'Setting',
    'Invoice',
]
