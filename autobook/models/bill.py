
from datetime import datetime
from decimal import Decimal

from pydantic import BaseModel, ConfigDict, Field

UNKNOWN_MERCHANT = "未知商户"
RULE_TYPE = "自动提取"
EXPENSE_TYPE = "支出"
DEFAULT_CATEGORY = "未分类"
AI_CATEGORY = "AI识别"


class TransactionBlock(BaseModel):
    """Lines of one transaction, starting with its date/time anchor line"""
    model_config = ConfigDict(frozen=True)

    lines: tuple[str, ...]

    @property
    def anchor(self) -> str:
        return self.lines[0]

    def __len__(self) -> int:
        return len(self.lines)


class BillRecord(BaseModel):
    """A bill extracted from one screenshot, by the rules or by the LLM"""
    model_config = ConfigDict(frozen=True)

    amount: Decimal = Field(gt=0)
    merchant: str = Field(default=UNKNOWN_MERCHANT, min_length=1)
    date_label: str = ""
    type: str = RULE_TYPE
    source_is_ai: bool = False
    timestamp: datetime | None = None  # resolved by the AI path or at insert time
    category: str = DEFAULT_CATEGORY


class StoredBill(BaseModel):
    """A persisted bill row"""
    id: int
    amount: Decimal
    merchant: str
    date_label: str
    timestamp: datetime
    type: str
    category: str = DEFAULT_CATEGORY
    source_is_ai: bool = False

    @classmethod
    def from_record(cls, bill_id: int, record: BillRecord, recorded_at: datetime) -> "StoredBill":
        return cls(
            id=bill_id,
            amount=record.amount,
            merchant=record.merchant,
            date_label=record.date_label,
            timestamp=record.timestamp or recorded_at,
            type=record.type,
            category=record.category,
            source_is_ai=record.source_is_ai,
        )
