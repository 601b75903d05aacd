"""
Abstract base class for bill storage implementations.

Defines the interface every bill store implements so the recognition
pipeline and the API can be wired to in-memory or SQLite storage.
"""

from abc import ABC, abstractmethod
from typing import Optional

from ...models.bill import BillRecord, StoredBill


class BillStoreBase(ABC):
    """
    Abstract base class for bill persistence.

    Implementations can use:
    - In-memory storage (for testing/demo)
    - SQLite (for single-device deployments)
    """

    @abstractmethod
    def insert_all(self, bills: list[BillRecord]) -> list[int]:
        """
        Store extracted bills, in the given order.

        Bills without a resolved timestamp are stamped with the insert time.

        Args:
            bills: Bills produced by the parser or the LLM fallback

        Returns:
            IDs of the new rows, in the same order
        """
        pass

    @abstractmethod
    def get_bill(self, bill_id: int) -> Optional[StoredBill]:
        """
        Get a bill by ID.

        Returns:
            The stored bill, or None if not found
        """
        pass

    @abstractmethod
    def update_bill(self, bill: StoredBill) -> bool:
        """
        Replace a stored bill (matched by its id).

        Returns:
            True if successful, False if the bill was not found
        """
        pass

    @abstractmethod
    def delete_bill(self, bill_id: int) -> bool:
        """
        Delete a bill.

        Returns:
            True if successful, False if the bill was not found
        """
        pass

    @abstractmethod
    def list_all(self) -> list[StoredBill]:
        """
        List all bills, newest timestamp first.
        """
        pass

    @abstractmethod
    def count(self) -> int:
        """Number of stored bills"""
        pass
