"""
Normalization of raw model text into ReceiptData.

Models often wrap JSON in markdown code fences even when told not to, so
fences are stripped leniently: an opening fence, a closing fence, both or
neither are all accepted.
"""

import json
import re
from typing import Any
from loguru import logger
from pydantic import ValidationError
from ..models.receipt import ReceiptData
from .errors import ReceiptSchemaError, ResponseParseError

_OPENING_FENCE = re.compile(r"^```(?:json)?[ \t]*\n?", re.IGNORECASE)
_CLOSING_FENCE = re.compile(r"\n?[ \t]*```$")


def strip_code_fences(text: str) -> str:
    cleaned = text.strip()
    cleaned = _OPENING_FENCE.sub("", cleaned, count=1)
    cleaned = _CLOSING_FENCE.sub("", cleaned, count=1)
    return cleaned.strip()


def _format_validation_errors(exc: ValidationError) -> str:
    parts = []
    for err in exc.errors():
        loc = ".".join(str(p) for p in err["loc"]) or "receipt"
        parts.append(f"{loc}: {err['msg']}")
    return "; ".join(parts)


def validate_receipt(value: Any) -> ReceiptData:
    """Run a parsed value through the receipt contract."""
    try:
        return ReceiptData.model_validate(value)
    except ValidationError as e:
        details = _format_validation_errors(e)
        logger.warning("Model response failed receipt schema", errors=details)
        raise ReceiptSchemaError(f"Model response did not match the receipt schema: {details}") from e


def normalize_response(text: str) -> ReceiptData:
    cleaned = strip_code_fences(text)
    try:
        parsed = json.loads(cleaned)
    except json.JSONDecodeError as e:
        logger.warning("Model response is not valid JSON", error=str(e), preview=cleaned[:200])
        raise ResponseParseError(f"Model response was not valid JSON: {e.msg}") from e
    return validate_receipt(parsed)
