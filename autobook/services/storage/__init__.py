from .bill_store_base import BillStoreBase
from .bills import BillStore
from .bills_sqlite import SQLiteBillStore

__all__ = ["BillStoreBase", "BillStore", "SQLiteBillStore"]
