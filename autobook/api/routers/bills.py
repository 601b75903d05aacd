from fastapi import APIRouter, Depends, File, HTTPException, Request, UploadFile
from loguru import logger

from ..deps import (
    BillUpdate,
    ParseRequest,
    ParseResponse,
    RecognizeResponse,
    get_bill_parser,
    get_bill_store,
    get_recognition_service,
)
from ...core.errors import ImageDecodeError, OcrError
from ...models.bill import StoredBill
from ...services.extraction import BillTextParser
from ...services.recognition import RecognitionService
from ...services.storage import BillStoreBase
from ...services.summary import BillSummary, summarize

router = APIRouter(prefix="/bills", tags=["bills"])


@router.post("/parse", response_model=ParseResponse)
async def parse(req: ParseRequest, parser: BillTextParser = Depends(get_bill_parser)):
    """
    Run the rule-based parser on OCR text. Nothing is stored and the LLM
    fallback is not used.

    Example request:
    {"text": "10月25日 14:30\\n罗森便利店\\n原价30.00\\n25.50\\n支付成功"}
    """
    bills = parser.parse(req.text)
    return ParseResponse(bills=bills, count=len(bills))


@router.post("/ingest", response_model=RecognizeResponse)
async def ingest(req: ParseRequest, service: RecognitionService = Depends(get_recognition_service)):
    """Parse OCR text (LLM fallback if the rules find nothing) and store the bills"""
    outcome = await service.recognize_text(req.text)
    return RecognizeResponse(bills=outcome.bills, bill_ids=outcome.bill_ids, source=outcome.source)


@router.post("/recognize", response_model=RecognizeResponse)
async def recognize(
    request: Request,
    file: UploadFile = File(None),
    service: RecognitionService = Depends(get_recognition_service),
):
    """
    OCR a screenshot and store the bills found on it.

    Accepts either multipart/form-data (file upload) or a raw image body.
    """
    if file:
        content = await file.read()
    else:
        content = await request.body()
        if not content:
            raise HTTPException(status_code=422, detail="No image provided (either multipart or raw body)")

    try:
        outcome = await service.recognize_image_bytes(content)
    except ImageDecodeError as e:
        raise HTTPException(status_code=422, detail=str(e))
    except OcrError as e:
        logger.error(f"Recognition failed: {e}")
        raise HTTPException(status_code=502, detail=str(e))

    return RecognizeResponse(bills=outcome.bills, bill_ids=outcome.bill_ids, source=outcome.source)


@router.get("/summary", response_model=BillSummary)
async def summary(store: BillStoreBase = Depends(get_bill_store)):
    """Current month expense and the 7-day trend"""
    return summarize(store.list_all())


@router.get("")
async def list_bills(store: BillStoreBase = Depends(get_bill_store)):
    """List all bills, newest first"""
    bills = store.list_all()
    return {"total": len(bills), "bills": bills}


@router.put("/{bill_id}", response_model=StoredBill)
async def update_bill(bill_id: int, req: BillUpdate, store: BillStoreBase = Depends(get_bill_store)):
    bill = store.get_bill(bill_id)
    if bill is None:
        raise HTTPException(status_code=404, detail="Bill not found")

    changes = req.model_dump(exclude_none=True)
    updated = bill.model_copy(update=changes)
    store.update_bill(updated)
    logger.info("Bill updated", bill_id=bill_id, fields=sorted(changes))
    return updated


@router.delete("/{bill_id}")
async def delete_bill(bill_id: int, store: BillStoreBase = Depends(get_bill_store)):
    if not store.delete_bill(bill_id):
        raise HTTPException(status_code=404, detail="Bill not found")
    return {"deleted": bill_id}
