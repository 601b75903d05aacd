"""
SQLite-based bill storage.

Provides persistent storage of recognised bills with simple queries for the
summary views.
"""

import sqlite3
from datetime import datetime
from decimal import Decimal
from typing import Optional

from ...models.bill import BillRecord, StoredBill
from .bill_store_base import BillStoreBase

_COLUMNS = "id, amount, merchant, date_label, timestamp, type, category, source_is_ai"


class SQLiteBillStore(BillStoreBase):
    """
    SQLite-backed bill store.

    Amounts are stored as text so the two fraction digits survive exactly;
    timestamps are ISO strings so ORDER BY sorts chronologically.
    """

    def __init__(self, db_path: str = "bills.db"):
        """
        Initialize store with database path.

        Args:
            db_path: Path to SQLite database file (default: bills.db)
        """
        self.db_path = db_path
        self._init_database()

    def _init_database(self):
        """Create bills table if it doesn't exist"""
        conn = sqlite3.connect(self.db_path)
        cursor = conn.cursor()

        cursor.execute("""
            CREATE TABLE IF NOT EXISTS bills (
                id INTEGER PRIMARY KEY AUTOINCREMENT,
                amount TEXT NOT NULL,
                merchant TEXT NOT NULL,
                date_label TEXT NOT NULL DEFAULT '',
                timestamp TEXT NOT NULL,
                type TEXT NOT NULL,
                category TEXT NOT NULL DEFAULT '未分类',
                source_is_ai INTEGER NOT NULL DEFAULT 0
            )
        """)

        cursor.execute("""
            CREATE INDEX IF NOT EXISTS idx_bills_timestamp
            ON bills(timestamp)
        """)

        conn.commit()
        conn.close()

    def _get_connection(self) -> sqlite3.Connection:
        """Get database connection with row factory"""
        conn = sqlite3.connect(self.db_path)
        conn.row_factory = sqlite3.Row
        return conn

    @staticmethod
    def _row_to_bill(row: sqlite3.Row) -> StoredBill:
        return StoredBill(
            id=row["id"],
            amount=Decimal(row["amount"]),
            merchant=row["merchant"],
            date_label=row["date_label"],
            timestamp=datetime.fromisoformat(row["timestamp"]),
            type=row["type"],
            category=row["category"],
            source_is_ai=bool(row["source_is_ai"]),
        )

    def _query(self, sql: str, params: tuple = ()) -> list[StoredBill]:
        conn = self._get_connection()
        cursor = conn.cursor()
        cursor.execute(sql, params)
        rows = cursor.fetchall()
        conn.close()
        return [self._row_to_bill(row) for row in rows]

    def insert_all(self, bills: list[BillRecord]) -> list[int]:
        """
        Store bills in one transaction.

        Returns:
            New row IDs, in input order
        """
        recorded_at = datetime.now()
        conn = self._get_connection()
        cursor = conn.cursor()

        ids = []
        for record in bills:
            timestamp = record.timestamp or recorded_at
            cursor.execute("""
                INSERT INTO bills (amount, merchant, date_label, timestamp, type, category, source_is_ai)
                VALUES (?, ?, ?, ?, ?, ?, ?)
            """, (
                str(record.amount),
                record.merchant,
                record.date_label,
                timestamp.isoformat(),
                record.type,
                record.category,
                int(record.source_is_ai),
            ))
            ids.append(cursor.lastrowid)

        conn.commit()
        conn.close()

        return ids

    def get_bill(self, bill_id: int) -> Optional[StoredBill]:
        bills = self._query(f"SELECT {_COLUMNS} FROM bills WHERE id = ?", (bill_id,))
        return bills[0] if bills else None

    def update_bill(self, bill: StoredBill) -> bool:
        conn = self._get_connection()
        cursor = conn.cursor()

        cursor.execute("""
            UPDATE bills
            SET amount = ?, merchant = ?, date_label = ?, timestamp = ?,
                type = ?, category = ?, source_is_ai = ?
            WHERE id = ?
        """, (
            str(bill.amount),
            bill.merchant,
            bill.date_label,
            bill.timestamp.isoformat(),
            bill.type,
            bill.category,
            int(bill.source_is_ai),
            bill.id,
        ))

        rows_affected = cursor.rowcount
        conn.commit()
        conn.close()

        return rows_affected > 0

    def delete_bill(self, bill_id: int) -> bool:
        conn = self._get_connection()
        cursor = conn.cursor()
        cursor.execute("DELETE FROM bills WHERE id = ?", (bill_id,))
        rows_affected = cursor.rowcount
        conn.commit()
        conn.close()
        return rows_affected > 0

    def list_all(self) -> list[StoredBill]:
        """List all bills (newest timestamp first)"""
        return self._query(f"SELECT {_COLUMNS} FROM bills ORDER BY timestamp DESC, id DESC")

    def count(self) -> int:
        conn = self._get_connection()
        cursor = conn.cursor()
        cursor.execute("SELECT COUNT(*) FROM bills")
        (total,) = cursor.fetchone()
        conn.close()
        return total

    def query_by_type(self, bill_type: str) -> list[StoredBill]:
        """
        Query bills by type.

        Args:
            bill_type: e.g. '支出' or '自动提取'
        """
        return self._query(
            f"SELECT {_COLUMNS} FROM bills WHERE type = ? ORDER BY timestamp DESC, id DESC",
            (bill_type,),
        )

    def query_between(self, start: datetime, end: datetime) -> list[StoredBill]:
        """
        Query bills whose timestamp falls in [start, end].

        Useful for the monthly and weekly summary views.
        """
        return self._query(
            f"SELECT {_COLUMNS} FROM bills WHERE timestamp >= ? AND timestamp <= ? "
            "ORDER BY timestamp DESC, id DESC",
            (start.isoformat(), end.isoformat()),
        )
