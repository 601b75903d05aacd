"""
LLM fallback for screenshots the rule-based parser cannot read.

Only consulted when the rules find no bill. The LLM gets the raw OCR text and
a fixed instruction describing the JSON it must return; whatever comes back
is treated as a best-effort guess. A reply that cannot be parsed, or that has
no positive amount, means "no bill", never an error for the caller.

The call is made once with a bounded timeout. Retrying belongs to the work
queue that runs the recognition job, not to this module.
"""

import json
from datetime import datetime
from decimal import Decimal, InvalidOperation, ROUND_HALF_UP
from typing import Callable

import httpx
from loguru import logger
from pydantic import ValidationError

from ..core.config import settings
from ..core.errors import LLMError
from ..models.bill import AI_CATEGORY, EXPENSE_TYPE, UNKNOWN_MERCHANT, BillRecord
from ..models.llm import ChatMessage, ChatRequest, ChatResponse

TIME_FORMAT = "%Y-%m-%d %H:%M:%S"

BILL_EXTRACTION_PROMPT = """
你是一个专业的账单解析助手。请从用户提供的 OCR 识别文本中提取以下关键信息：
1. 商户名称 (merchant): 消费的店名、品牌名。如果找不到，根据内容推断（如看到"红烧肉"推断为"餐饮"）。
2. 金额 (amount): 纯数字，保留两位小数。
3. 时间 (time): 格式为 yyyy-MM-dd HH:mm:ss。如果文本中只有时间没有日期，默认为今天；完全没有时间则使用当前时间。
4. 类型 (type): 默认为 "支出"。

严格要求：
- 请直接返回标准的 JSON 格式字符串。
- 不要包含 Markdown 标记（如 ```json ... ```）。
- 如果完全无法识别为账单，请返回 null。

JSON 示例:
{
  "merchant": "罗森便利店",
  "amount": 25.50,
  "time": "2023-10-25 14:30:00",
  "type": "支出"
}
""".strip()


class LLMClient:
    """
    Minimal OpenAI-compatible chat completions client (DeepSeek, Moonshot, ...).

    Args:
        base_url: API base, e.g. https://api.deepseek.com/v1
        api_key: Bearer token
        model: Model name sent with every request
        timeout: Seconds for connect and read
        transport: Optional httpx transport (tests)
    """

    def __init__(
        self,
        base_url: str,
        api_key: str,
        model: str = "deepseek-chat",
        timeout: float = 60.0,
        temperature: float = 0.1,
        transport: httpx.AsyncBaseTransport | None = None,
    ):
        self.base_url = base_url.rstrip("/")
        self.api_key = api_key
        self.model = model
        self.timeout = timeout
        self.temperature = temperature
        self._transport = transport

    @property
    def completions_url(self) -> str:
        return f"{self.base_url}/chat/completions"

    async def chat(self, messages: list[ChatMessage]) -> str | None:
        """
        Send one chat completion request and return the first choice's content.

        Raises:
            httpx.HTTPError: network failure, timeout or non-2xx status
            LLMError: response body is not a chat completion
        """
        request = ChatRequest(model=self.model, messages=messages, temperature=self.temperature)
        headers = {"Authorization": f"Bearer {self.api_key}"}

        async with httpx.AsyncClient(timeout=self.timeout, transport=self._transport) as client:
            r = await client.post(self.completions_url, json=request.model_dump(), headers=headers)
            r.raise_for_status()

        try:
            response = ChatResponse.model_validate(r.json())
        except (ValueError, ValidationError) as e:
            raise LLMError(f"Unexpected chat completion body: {e}") from e

        if not response.choices:
            return None
        return response.choices[0].message.content


def create_llm_client() -> LLMClient | None:
    """LLM client from settings, or None when the fallback is disabled or not configured"""
    if not settings.ai_fallback_enabled:
        return None
    if not (settings.llm_base_url and settings.llm_api_key):
        return None
    return LLMClient(
        base_url=settings.llm_base_url,
        api_key=settings.llm_api_key,
        model=settings.llm_model,
        timeout=settings.llm_timeout_seconds,
        temperature=settings.llm_temperature,
    )


def strip_code_fence(content: str) -> str:
    return content.replace("```json", "").replace("```", "").strip()


def _parse_amount(value) -> Decimal:
    if value is None or isinstance(value, bool):
        return Decimal("0")
    try:
        amount = Decimal(str(value).strip().lstrip("￥¥"))
        if not amount.is_finite():
            return Decimal("0")
        return amount.quantize(Decimal("0.01"), rounding=ROUND_HALF_UP)
    except (InvalidOperation, ValueError):
        return Decimal("0")


def _parse_time(value, now: datetime) -> datetime:
    if not isinstance(value, str):
        return now
    try:
        return datetime.strptime(value.strip(), TIME_FORMAT)
    except ValueError:
        return now


def _text(value, default: str) -> str:
    if value is None:
        return default
    text = str(value).strip()
    return text or default


def parse_llm_reply(content: str | None, now: datetime | None = None) -> BillRecord | None:
    """
    Apply the trust policy to an LLM reply.

    Missing fields fall back to defaults (unknown merchant, zero amount, now,
    expense). An explicit null, unparseable JSON, or a non-positive amount
    means no bill.
    """
    if not content or not content.strip():
        return None

    now = now or datetime.now()
    body = strip_code_fence(content)

    try:
        data = json.loads(body)
    except json.JSONDecodeError:
        logger.warning("LLM reply is not JSON", reply=body[:200])
        return None

    if not isinstance(data, dict):
        return None

    amount = _parse_amount(data.get("amount"))
    if amount <= 0:
        logger.info("LLM reply has no positive amount", amount=str(amount))
        return None

    timestamp = _parse_time(data.get("time"), now)

    return BillRecord(
        amount=amount,
        merchant=_text(data.get("merchant"), UNKNOWN_MERCHANT),
        date_label=timestamp.strftime(TIME_FORMAT),
        type=_text(data.get("type"), EXPENSE_TYPE),
        source_is_ai=True,
        timestamp=timestamp,
        category=AI_CATEGORY,
    )


class SmartBillParser:
    """Asks the LLM for a bill when the rules found none"""

    def __init__(self, client: LLMClient | None = None, clock: Callable[[], datetime] = datetime.now):
        self.client = client
        self.clock = clock

    @property
    def enabled(self) -> bool:
        return self.client is not None

    async def parse_ocr_text(self, raw_text: str) -> BillRecord | None:
        if self.client is None:
            logger.debug("LLM fallback not configured - skipping")
            return None
        if not raw_text or not raw_text.strip():
            return None

        logger.info("Requesting LLM bill extraction", chars=len(raw_text))
        logger.debug("LLM input preview", preview=raw_text[:20])
        messages = [
            ChatMessage(role="system", content=BILL_EXTRACTION_PROMPT),
            ChatMessage(role="user", content=raw_text),
        ]

        try:
            content = await self.client.chat(messages)
        except (httpx.HTTPError, LLMError) as e:
            logger.error(f"LLM bill extraction failed: {e}")
            return None

        if not content:
            logger.warning("LLM returned empty content")
            return None

        logger.debug("LLM raw reply", reply=content)
        return parse_llm_reply(content, now=self.clock())


def resolve_bills(rule_bills: list[BillRecord], ai_bill: BillRecord | None) -> list[BillRecord]:
    """
    Merge policy: rule-based bills are trusted over the LLM. The LLM guess is
    only used when the rules produced nothing.
    """
    if rule_bills:
        return list(rule_bills)
    if ai_bill is not None and ai_bill.amount > 0:
        return [ai_bill]
    return []


def create_smart_parser() -> SmartBillParser:
    return SmartBillParser(create_llm_client())
