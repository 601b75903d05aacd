"""
In-memory bill storage (for demo and tests).
For persistent storage use SQLiteBillStore.
"""
from datetime import datetime
from itertools import count
from threading import Lock
from typing import Dict, Optional

from ...models.bill import BillRecord, StoredBill
from .bill_store_base import BillStoreBase


class BillStore(BillStoreBase):
    def __init__(self):
        self._bills: Dict[int, StoredBill] = {}
        self._ids = count(1)
        self._lock = Lock()

    def insert_all(self, bills: list[BillRecord]) -> list[int]:
        """Store bills and return their new IDs"""
        recorded_at = datetime.now()
        ids = []
        with self._lock:
            for record in bills:
                bill_id = next(self._ids)
                self._bills[bill_id] = StoredBill.from_record(bill_id, record, recorded_at)
                ids.append(bill_id)
        return ids

    def get_bill(self, bill_id: int) -> Optional[StoredBill]:
        """Get bill by ID"""
        return self._bills.get(bill_id)

    def update_bill(self, bill: StoredBill) -> bool:
        """Replace a stored bill"""
        with self._lock:
            if bill.id not in self._bills:
                return False
            self._bills[bill.id] = bill
        return True

    def delete_bill(self, bill_id: int) -> bool:
        """Delete a bill"""
        with self._lock:
            return self._bills.pop(bill_id, None) is not None

    def list_all(self) -> list[StoredBill]:
        """List all bills, newest first"""
        with self._lock:
            bills = list(self._bills.values())
        return sorted(bills, key=lambda b: (b.timestamp, b.id), reverse=True)

    def count(self) -> int:
        return len(self._bills)
