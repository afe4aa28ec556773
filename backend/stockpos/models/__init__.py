from .catalog import Warehouse, Product, Customer
from .auth import User
from .inventory import InventoryBatch, StockMovement
from .sales import Transaction, TransactionItem, TransactionItemAllocation
from .documents import StockTransfer, StockOpname, DocumentSequence

__all__ = [
    'Warehouse', 'Product', 'Customer',
    'User',
    'InventoryBatch', 'StockMovement',
    'Transaction', 'TransactionItem', 'TransactionItemAllocation',
    'StockTransfer', 'StockOpname', 'DocumentSequence',
]
