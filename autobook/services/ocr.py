"""
OCR adapter: image bytes in, raw recognised text out.

Uses the Azure Document Intelligence read model when configured, otherwise
returns a fixed sample screenshot text so the pipeline runs locally.
"""

from loguru import logger
from azure.ai.documentintelligence import DocumentIntelligenceClient
from azure.core.credentials import AzureKeyCredential
from pydantic import BaseModel

from ..core.config import settings
from ..core.errors import ImageDecodeError, OcrError

MOCK_SCREENSHOT_TEXT = "10月25日 14:30\n罗森便利店\n原价30.00\n25.50\n支付成功"


class OcrResult(BaseModel):
    content: str = ""
    confidence: float = 0.0
    image_bytes: int = 0


def _average_word_confidence(result) -> float:
    confidences = [
        word.confidence
        for page in (getattr(result, "pages", None) or [])
        for word in (getattr(page, "words", None) or [])
        if getattr(word, "confidence", None) is not None
    ]
    if not confidences:
        return 0.0
    return sum(confidences) / len(confidences)


def extract_text(file_bytes: bytes) -> OcrResult:
    """
    Run OCR over one image.

    Raises:
        ImageDecodeError: empty input
        OcrError: the OCR engine failed
    """
    if not file_bytes:
        raise ImageDecodeError("Empty image")

    # Check if Azure Document Intelligence is configured
    if settings.az_di_endpoint and settings.az_di_api_key:
        logger.info(
            "Using Azure Document Intelligence read model",
            endpoint=settings.az_di_endpoint[:50] + "..." if len(settings.az_di_endpoint) > 50 else settings.az_di_endpoint
        )

        try:
            client = DocumentIntelligenceClient(
                endpoint=settings.az_di_endpoint,
                credential=AzureKeyCredential(settings.az_di_api_key)
            )

            logger.info(f"Analyzing image of size {len(file_bytes)} bytes")

            poller = client.begin_analyze_document(
                "prebuilt-read",
                body=file_bytes,
                content_type="application/octet-stream"
            )
            result = poller.result()
        except Exception as e:
            logger.error(f"Azure DI OCR failed: {str(e)}")
            raise OcrError(f"OCR failed: {str(e)}") from e

        content = getattr(result, "content", None) or ""
        confidence = _average_word_confidence(result)

        logger.info("OCR finished", chars=len(content), confidence=confidence)

        return OcrResult(content=content, confidence=confidence, image_bytes=len(file_bytes))

    logger.warning(
        "Azure Document Intelligence not configured - using MOCK OCR text. "
        "Set AZ_DI_ENDPOINT and AZ_DI_API_KEY to use real OCR."
    )

    return OcrResult(content=MOCK_SCREENSHOT_TEXT, confidence=0.92, image_bytes=len(file_bytes))
