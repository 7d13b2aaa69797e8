import base64
import binascii
import re
from datetime import datetime
from typing import Literal, Union
from pydantic import BaseModel, ConfigDict, field_validator
from pydantic.alias_generators import to_camel
from .receipt import ReceiptData
from ..services.gemini_models import DEFAULT_MODEL

_DATA_URL_PREFIX = re.compile(r"^data:[^;,]+;base64,")


class ScanSuccess(BaseModel):
    model_config = ConfigDict(frozen=True)

    success: Literal[True] = True
    data: ReceiptData


class ScanFailure(BaseModel):
    model_config = ConfigDict(frozen=True)

    success: Literal[False] = False
    error: str


ScanOutcome = Union[ScanSuccess, ScanFailure]


class ScanEntry(BaseModel):
    """One image in a scan request, base64-encoded"""
    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True)

    image: bytes
    mime_type: str
    captured_at: datetime | None = None

    @field_validator("image", mode="before")
    @classmethod
    def decode_base64(cls, v):
        if isinstance(v, bytes):
            return v
        if not isinstance(v, str):
            raise ValueError("image must be a base64 string")
        # Accept data: URLs as produced by browser canvases
        payload = _DATA_URL_PREFIX.sub("", v.strip(), count=1)
        try:
            return base64.b64decode(payload, validate=True)
        except (binascii.Error, ValueError) as e:
            raise ValueError("image is not valid base64") from e


class ScanRequest(BaseModel):
    images: list[ScanEntry]
    model: str = DEFAULT_MODEL


class ScanResponse(BaseModel):
    model: str
    results: list[ScanOutcome]
