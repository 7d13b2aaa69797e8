"""
Tests for single-image extraction against a mocked Gemini endpoint.
"""

import asyncio
import json
import httpx
import pytest
import respx
from receipt_scanner.services.errors import (
    EmptyResponseError,
    ModelNotConfiguredError,
    ModelRequestError,
    ReceiptSchemaError,
    ResponseParseError,
    UnsupportedModelError,
)
from receipt_scanner.services.gemini_client import GeminiClient, extract_text
from receipt_scanner.services.receipt_extractor import RECEIPT_PROMPT, ReceiptExtractor

BASE_URL = "https://generativelanguage.googleapis.com"


def _extract(image_b64="aGVsbG8=", mime_type="image/jpeg", model="gemini-2.5-flash", api_key="test-key"):
    async def run():
        client = GeminiClient(api_key=api_key, base_url=BASE_URL, timeout=5)
        try:
            return await ReceiptExtractor(client).extract(image_b64, mime_type, model)
        finally:
            await client.aclose()
    return asyncio.run(run())


@respx.mock
def test_extract_fenced_response(gemini_url, gemini_reply):
    route = respx.post(gemini_url()).mock(
        return_value=gemini_reply('```json\n{"storeName": "Shop", "total": "9.50", "items": []}\n```')
    )

    receipt = _extract()

    assert route.call_count == 1
    assert receipt.store_name == "Shop"
    assert receipt.total == 9.5
    assert receipt.items == []


@respx.mock
def test_request_carries_image_prompt_and_key(gemini_url, gemini_reply):
    route = respx.post(gemini_url("gemini-2.0-flash")).mock(return_value=gemini_reply('{"total": 1}'))

    _extract(image_b64="QUJD", mime_type="image/jpeg", model="gemini-2.0-flash")

    request = route.calls.last.request
    assert request.headers["x-goog-api-key"] == "test-key"
    body = json.loads(request.content)
    parts = body["contents"][0]["parts"]
    assert parts[0] == {"inline_data": {"mime_type": "image/jpeg", "data": "QUJD"}}
    assert parts[1] == {"text": RECEIPT_PROMPT}


def test_prompt_covers_output_contract():
    for phrase in ["storeName", "YYYY-MM-DD", "quantity", "subtotal", "tax", "total",
                   "empty items array", "no markdown", "default to 1", "without currency symbols"]:
        assert phrase in RECEIPT_PROMPT
    for category in ["Food", "Health", "Transport", "Utilities", "Bills",
                     "Shopping", "Entertainment", "Education", "Other"]:
        assert category in RECEIPT_PROMPT


@respx.mock
@pytest.mark.parametrize("text", ["", "   \n", None])
def test_empty_response_is_reported(gemini_url, gemini_reply, text):
    respx.post(gemini_url()).mock(return_value=gemini_reply(text))

    with pytest.raises(EmptyResponseError) as exc_info:
        _extract()
    assert str(exc_info.value) == "No response from model"


@respx.mock
def test_invalid_json_response_propagates_parse_error(gemini_url, gemini_reply):
    respx.post(gemini_url()).mock(return_value=gemini_reply("The total is $9.50"))
    with pytest.raises(ResponseParseError):
        _extract()


@respx.mock
def test_schema_violation_propagates(gemini_url, gemini_reply):
    respx.post(gemini_url()).mock(return_value=gemini_reply('{"storeName": "Shop"}'))
    with pytest.raises(ReceiptSchemaError):
        _extract()


def test_unsupported_model_rejected_before_call():
    with respx.mock(assert_all_called=False) as respx_mock:
        route = respx_mock.post(url__regex=r".*generateContent").mock(return_value=httpx.Response(200))
        with pytest.raises(UnsupportedModelError) as exc_info:
            _extract(model="gpt-4o")

    assert "gpt-4o" in str(exc_info.value)
    assert route.call_count == 0


def test_missing_api_key_fails_without_call():
    with respx.mock(assert_all_called=False) as respx_mock:
        route = respx_mock.post(url__regex=r".*generateContent").mock(return_value=httpx.Response(200))
        with pytest.raises(ModelNotConfiguredError):
            _extract(api_key=None)
    assert route.call_count == 0


@respx.mock
def test_provider_error_status_is_model_request_error(gemini_url):
    respx.post(gemini_url()).mock(return_value=httpx.Response(429, json={"error": {"message": "quota"}}))

    with pytest.raises(ModelRequestError) as exc_info:
        _extract()
    assert "429" in str(exc_info.value)


@respx.mock
def test_timeout_is_model_request_error(gemini_url):
    respx.post(gemini_url()).mock(side_effect=httpx.ReadTimeout("slow"))

    with pytest.raises(ModelRequestError) as exc_info:
        _extract()
    assert "timed out" in str(exc_info.value)


@respx.mock
def test_single_call_no_retry(gemini_url):
    route = respx.post(gemini_url()).mock(return_value=httpx.Response(503))

    with pytest.raises(ModelRequestError):
        _extract()
    assert route.call_count == 1


def test_extract_text_joins_parts_of_first_candidate():
    payload = {
        "candidates": [
            {"content": {"parts": [{"text": '{"total": '}, {"text": "1}"}]}},
            {"content": {"parts": [{"text": "ignored"}]}},
        ]
    }
    assert extract_text(payload) == '{"total": 1}'


def test_extract_text_handles_missing_content():
    assert extract_text({}) is None
    assert extract_text({"candidates": [{"finishReason": "SAFETY"}]}) is None
