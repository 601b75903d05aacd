"""
Recognition pipeline around the bill parser.

    image -> OCR -> rule-based parser -> (LLM fallback if empty) -> bill store

RecognitionWorker maps one run to SUCCESS / FAILURE / RETRY, and
RecognitionQueue runs workers on a small thread pool and owns the retry
policy. The parser and the LLM client never retry on their own.
"""

import asyncio
import time
from concurrent.futures import Future, ThreadPoolExecutor
from enum import Enum
from pathlib import Path
from typing import Callable, Literal

from loguru import logger
from pydantic import BaseModel

from ..core.errors import ImageDecodeError, OcrError
from ..models.bill import BillRecord
from .ai_fallback import SmartBillParser, resolve_bills
from .extraction import BillTextParser
from .ocr import OcrResult, extract_text
from .storage import BillStoreBase


class RecognitionOutcome(BaseModel):
    bills: list[BillRecord] = []
    bill_ids: list[int] = []
    source: Literal["rules", "ai", "none"] = "none"


class RecognitionService:
    """
    Args:
        parser: Rule-based bill parser
        smart_parser: LLM fallback (may be disabled)
        store: Where recognised bills are written
        ocr: Callable turning image bytes into an OcrResult
    """

    def __init__(
        self,
        parser: BillTextParser,
        smart_parser: SmartBillParser,
        store: BillStoreBase,
        ocr: Callable[[bytes], OcrResult] = extract_text,
    ):
        self.parser = parser
        self.smart_parser = smart_parser
        self.store = store
        self.ocr = ocr

    async def recognize_text(self, raw_text: str) -> RecognitionOutcome:
        """Parse OCR text, falling back to the LLM when the rules find nothing, and store the result"""
        rule_bills = self.parser.parse(raw_text)

        ai_bill = None
        if not rule_bills:
            logger.warning("Rule-based parser found no bill - trying LLM fallback")
            ai_bill = await self.smart_parser.parse_ocr_text(raw_text)

        bills = resolve_bills(rule_bills, ai_bill)
        if rule_bills:
            source = "rules"
        elif bills:
            source = "ai"
        else:
            source = "none"

        bill_ids = self.store.insert_all(bills) if bills else []

        logger.info(
            "Recognition finished",
            source=source,
            bills=len(bills),
            amounts=[str(b.amount) for b in bills],
        )
        return RecognitionOutcome(bills=bills, bill_ids=bill_ids, source=source)

    async def recognize_image_bytes(self, file_bytes: bytes) -> RecognitionOutcome:
        ocr_result = self.ocr(file_bytes)
        logger.debug("OCR text", content=ocr_result.content)
        return await self.recognize_text(ocr_result.content)

    async def recognize_image(self, path: str | Path) -> RecognitionOutcome:
        """
        Raises:
            ImageDecodeError: file missing or unreadable
            OcrError: OCR failed
        """
        path = Path(path)
        try:
            file_bytes = path.read_bytes()
        except OSError as e:
            raise ImageDecodeError(f"Cannot read image {path}: {e}") from e
        return await self.recognize_image_bytes(file_bytes)


class WorkResult(str, Enum):
    SUCCESS = "success"
    FAILURE = "failure"
    RETRY = "retry"


class RecognitionWorker:
    """Runs the pipeline for one image and classifies the outcome for the queue"""

    def __init__(self, service: RecognitionService):
        self.service = service

    def do_work(self, image_path: str | Path) -> WorkResult:
        logger.info("Recognition job started", image=str(image_path))
        try:
            outcome = asyncio.run(self.service.recognize_image(image_path))
        except ImageDecodeError as e:
            logger.error(f"Image could not be loaded: {e}")
            return WorkResult.FAILURE
        except OcrError as e:
            logger.error(f"OCR failed, will retry: {e}")
            return WorkResult.RETRY
        except Exception as e:
            logger.exception(f"Recognition crashed: {e}")
            return WorkResult.RETRY

        if not outcome.bills:
            logger.warning("No bill found in screenshot", image=str(image_path))
        return WorkResult.SUCCESS


class RecognitionQueue:
    """
    Bounded thread pool running one RecognitionWorker job per image.

    RETRY results are re-run up to max_retries times, waiting retry_delay
    seconds between attempts.
    """

    def __init__(
        self,
        worker: RecognitionWorker,
        max_workers: int = 2,
        max_retries: int = 3,
        retry_delay: float = 1.0,
    ):
        self.worker = worker
        self.max_retries = max_retries
        self.retry_delay = retry_delay
        self._executor = ThreadPoolExecutor(max_workers=max(1, max_workers), thread_name_prefix="recognition")

    def submit(self, image_path: str | Path) -> Future:
        """Schedule an image; the future resolves to its final WorkResult"""
        return self._executor.submit(self._run, image_path)

    def _run(self, image_path: str | Path) -> WorkResult:
        attempt = 0
        while True:
            result = self.worker.do_work(image_path)
            if result is not WorkResult.RETRY or attempt >= self.max_retries:
                if result is WorkResult.RETRY:
                    logger.error("Giving up after retries", image=str(image_path), attempts=attempt + 1)
                return result
            attempt += 1
            logger.info("Retrying recognition", image=str(image_path), attempt=attempt)
            if self.retry_delay:
                time.sleep(self.retry_delay)

    def shutdown(self, wait: bool = True) -> None:
        self._executor.shutdown(wait=wait)


def create_recognition_service(store: BillStoreBase, parser: BillTextParser = None) -> RecognitionService:
    """Service wired from settings: rules file (unless a parser is given), LLM endpoint and OCR backend"""
    from .ai_fallback import create_smart_parser
    from .extraction import create_bill_parser

    return RecognitionService(parser or create_bill_parser(), create_smart_parser(), store)
