
from decimal import Decimal
from functools import lru_cache

from fastapi import Depends
from pydantic import BaseModel, Field

from ..core.config import settings
from ..models.bill import BillRecord
from ..services.extraction import BillTextParser, create_bill_parser
from ..services.recognition import RecognitionService, create_recognition_service
from ..services.storage import BillStoreBase, SQLiteBillStore


class ParseRequest(BaseModel):
    text: str = ""


class ParseResponse(BaseModel):
    bills: list[BillRecord]
    count: int


class RecognizeResponse(BaseModel):
    bills: list[BillRecord]
    bill_ids: list[int]
    source: str


class BillUpdate(BaseModel):
    amount: Decimal | None = Field(default=None, gt=0)
    merchant: str | None = Field(default=None, min_length=1)
    type: str | None = None
    category: str | None = None


@lru_cache
def get_bill_store() -> BillStoreBase:
    return SQLiteBillStore(settings.bills_db_path)


@lru_cache
def get_bill_parser() -> BillTextParser:
    """Rules are read once; a bad rules file fails here, at startup"""
    return create_bill_parser()


def get_recognition_service(
    parser: BillTextParser = Depends(get_bill_parser),
    store: BillStoreBase = Depends(get_bill_store),
) -> RecognitionService:
    return create_recognition_service(store, parser)
