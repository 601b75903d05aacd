"""
Tests for the LLM fallback: reply trust policy, HTTP client and merge policy.
"""

import asyncio
import json
from datetime import datetime
from decimal import Decimal

import httpx
import pytest
import respx
from loguru import logger

from autobook.core.config import settings
from autobook.models.bill import BillRecord
from autobook.services.ai_fallback import (
    BILL_EXTRACTION_PROMPT,
    LLMClient,
    SmartBillParser,
    create_llm_client,
    parse_llm_reply,
    resolve_bills,
)

NOW = datetime(2026, 10, 19, 9, 30, 0)
LLM_URL = "https://llm.example.com/v1/chat/completions"


def completion(content):
    return {
        "id": "chatcmpl-1",
        "choices": [{"index": 0, "message": {"role": "assistant", "content": content}}],
    }


@pytest.fixture
def smart_parser():
    client = LLMClient(base_url="https://llm.example.com/v1", api_key="sk-test", timeout=5)
    return SmartBillParser(client, clock=lambda: NOW)


class TestParseLLMReply:

    def test_full_reply(self):
        reply = '{"merchant": "罗森便利店", "amount": 25.5, "time": "2023-10-25 14:30:00", "type": "支出"}'
        bill = parse_llm_reply(reply, now=NOW)

        assert bill.merchant == "罗森便利店"
        assert bill.amount == Decimal("25.50")
        assert str(bill.amount) == "25.50"
        assert bill.timestamp == datetime(2023, 10, 25, 14, 30, 0)
        assert bill.date_label == "2023-10-25 14:30:00"
        assert bill.type == "支出"
        assert bill.source_is_ai is True
        assert bill.category == "AI识别"

    def test_code_fence_is_stripped(self):
        reply = '```json\n{"merchant": "星巴克", "amount": "32.00"}\n```'
        bill = parse_llm_reply(reply, now=NOW)

        assert bill.merchant == "星巴克"
        assert bill.amount == Decimal("32.00")

    def test_missing_fields_use_defaults(self):
        bill = parse_llm_reply('{"amount": 12}', now=NOW)

        assert bill.merchant == "未知商户"
        assert bill.type == "支出"
        assert bill.timestamp == NOW
        assert bill.date_label == "2026-10-19 09:30:00"

    def test_bad_time_falls_back_to_now(self):
        bill = parse_llm_reply('{"amount": 8.8, "time": "昨天下午"}', now=NOW)
        assert bill.timestamp == NOW

    @pytest.mark.parametrize(
        "reply",
        [
            None,
            "",
            "   ",
            "null",
            "```json\nnull\n```",
            "这不是账单",
            "[1, 2]",
            '{"merchant": "罗森"}',
            '{"amount": 0}',
            '{"amount": -5}',
            '{"amount": "abc"}',
            '{"amount": null}',
        ],
    )
    def test_no_bill(self, reply):
        assert parse_llm_reply(reply, now=NOW) is None


class TestSmartBillParser:

    def test_successful_call(self, smart_parser):
        with respx.mock:
            route = respx.post(LLM_URL).mock(
                return_value=httpx.Response(200, json=completion('{"merchant": "滴滴出行", "amount": 18.6}'))
            )

            bill = asyncio.run(smart_parser.parse_ocr_text("行程 18.6元 滴滴"))

            assert bill.merchant == "滴滴出行"
            assert bill.amount == Decimal("18.60")

            request = route.calls.last.request
            assert request.headers["Authorization"] == "Bearer sk-test"
            body = json.loads(request.content)
            assert body["model"] == "deepseek-chat"
            assert body["temperature"] == 0.1
            assert body["messages"][0] == {"role": "system", "content": BILL_EXTRACTION_PROMPT}
            assert body["messages"][1] == {"role": "user", "content": "行程 18.6元 滴滴"}

    def test_single_attempt_on_server_error(self, smart_parser):
        with respx.mock:
            route = respx.post(LLM_URL).mock(return_value=httpx.Response(500))

            assert asyncio.run(smart_parser.parse_ocr_text("some text")) is None
            assert route.call_count == 1

    def test_timeout_is_no_bill(self, smart_parser):
        with respx.mock:
            respx.post(LLM_URL).mock(side_effect=httpx.ConnectTimeout("timed out"))
            assert asyncio.run(smart_parser.parse_ocr_text("some text")) is None

    def test_non_json_body_is_no_bill(self, smart_parser):
        with respx.mock:
            respx.post(LLM_URL).mock(return_value=httpx.Response(200, text="<html>gateway</html>"))
            assert asyncio.run(smart_parser.parse_ocr_text("some text")) is None

    def test_empty_choices_is_no_bill(self, smart_parser):
        with respx.mock:
            respx.post(LLM_URL).mock(return_value=httpx.Response(200, json={"id": "x", "choices": []}))
            assert asyncio.run(smart_parser.parse_ocr_text("some text")) is None

    def test_null_reply_is_no_bill(self, smart_parser):
        with respx.mock:
            respx.post(LLM_URL).mock(return_value=httpx.Response(200, json=completion("null")))
            assert asyncio.run(smart_parser.parse_ocr_text("some text")) is None

    def test_disabled_without_client(self):
        parser = SmartBillParser(None)
        assert parser.enabled is False
        assert asyncio.run(parser.parse_ocr_text("10月25日 罗森 25.50")) is None

    def test_blank_text_skips_call(self, smart_parser):
        with respx.mock:
            route = respx.post(LLM_URL).mock(return_value=httpx.Response(200, json=completion("null")))
            assert asyncio.run(smart_parser.parse_ocr_text("  ")) is None
            assert route.call_count == 0

    def test_ocr_text_stays_out_of_info_logs(self, smart_parser):
        raw_text = "行程单 滴滴快车 18.6元"
        lines = []
        handler_id = logger.add(lambda message: lines.append(str(message)), level="INFO", format="{message} {extra}")
        try:
            with respx.mock:
                respx.post(LLM_URL).mock(
                    return_value=httpx.Response(200, json=completion('{"merchant": "滴滴出行", "amount": 18.6}'))
                )
                assert asyncio.run(smart_parser.parse_ocr_text(raw_text)) is not None
        finally:
            logger.remove(handler_id)

        assert any("Requesting LLM bill extraction" in line for line in lines)
        assert not any(raw_text[:6] in line for line in lines)


def test_create_llm_client_requires_configuration():
    original = (settings.llm_base_url, settings.llm_api_key, settings.ai_fallback_enabled)
    try:
        settings.llm_base_url = None
        settings.llm_api_key = None
        assert create_llm_client() is None

        settings.llm_base_url = "https://api.deepseek.com/v1"
        settings.llm_api_key = "sk-test"
        settings.ai_fallback_enabled = True
        client = create_llm_client()
        assert client.completions_url == "https://api.deepseek.com/v1/chat/completions"

        settings.ai_fallback_enabled = False
        assert create_llm_client() is None
    finally:
        settings.llm_base_url, settings.llm_api_key, settings.ai_fallback_enabled = original


class TestResolveBills:

    rule_bill = BillRecord(amount=Decimal("25.50"), merchant="罗森便利店", date_label="10月25日")
    ai_bill = BillRecord(amount=Decimal("30.00"), merchant="罗森", source_is_ai=True, type="支出")

    def test_rules_win(self):
        assert resolve_bills([self.rule_bill], self.ai_bill) == [self.rule_bill]

    def test_ai_used_when_rules_empty(self):
        assert resolve_bills([], self.ai_bill) == [self.ai_bill]

    def test_nothing(self):
        assert resolve_bills([], None) == []
