"""
Batch receipt scanning.

Images in a batch are processed strictly one after another: image i+1 is not
sent to the model until image i has finished, successfully or not. This keeps
request volume under the provider's rate limits. Running the loop in parallel
would change request ordering and timing, so any relaxation of this must go
through the loop in BatchScanner.scan.
"""

import base64
from dataclasses import dataclass
from datetime import datetime
from typing import Awaitable, Callable, Sequence
from loguru import logger
from ..core.config import Settings
from ..models.receipt import ReceiptData
from ..models.scan import ScanFailure, ScanOutcome, ScanSuccess
from .errors import (
    BatchTooLargeError,
    EmptyBatchError,
    ImageTooLargeError,
    ScanCancelledError,
    ScanError,
    UnsupportedModelError,
)
from .gemini_models import DEFAULT_MODEL, is_supported_model
from .image_compressor import DEFAULT_MAX_WIDTH, DEFAULT_QUALITY, compress_image
from .receipt_extractor import ReceiptExtractor

GENERIC_FAILURE_MESSAGE = "Failed to scan receipt"


@dataclass(frozen=True)
class UploadEntry:
    image_bytes: bytes
    mime_type: str
    captured_at: datetime | None = None


def apply_capture_date(receipt: ReceiptData, captured_at: datetime | None) -> ReceiptData:
    """Fill a missing receipt date from the photo capture time. Never overwrites."""
    if receipt.date or captured_at is None:
        return receipt
    return receipt.model_copy(update={"date": captured_at.date().isoformat()})


class BatchScanner:
    def __init__(
        self,
        extractor: ReceiptExtractor,
        max_images: int = 3,
        max_image_bytes: int | None = None,
        compress: bool = True,
        max_width: int = DEFAULT_MAX_WIDTH,
        quality: int = DEFAULT_QUALITY,
    ):
        self.extractor = extractor
        self.max_images = max_images
        self.max_image_bytes = max_image_bytes
        self.compress = compress
        self.max_width = max_width
        self.quality = quality

    @classmethod
    def from_settings(cls, extractor: ReceiptExtractor, settings: Settings) -> "BatchScanner":
        return cls(
            extractor,
            max_images=settings.max_upload_images,
            max_image_bytes=settings.max_image_bytes,
            compress=settings.compress_images,
            max_width=settings.image_max_width,
            quality=settings.image_jpeg_quality,
        )

    def check_count(self, count: int) -> None:
        """Reject an empty or over-limit submission from its image count alone."""
        if count == 0:
            raise EmptyBatchError()
        if count > self.max_images:
            raise BatchTooLargeError(count, self.max_images)

    def validate_batch(self, entries: Sequence[UploadEntry]) -> None:
        """
        Reject a submission before any image is processed.

        Raises:
            EmptyBatchError: No entries
            BatchTooLargeError: More entries than max_images (carries the dropped count)
            ImageTooLargeError: An entry exceeds max_image_bytes
        """
        self.check_count(len(entries))
        if self.max_image_bytes is not None:
            for i, entry in enumerate(entries):
                if len(entry.image_bytes) > self.max_image_bytes:
                    raise ImageTooLargeError(i, len(entry.image_bytes), self.max_image_bytes)

    async def scan(
        self,
        entries: Sequence[UploadEntry],
        model: str = DEFAULT_MODEL,
        is_cancelled: Callable[[], Awaitable[bool]] | None = None,
    ) -> list[ScanOutcome]:
        """
        Scan every entry in order and return one outcome per entry.

        A failing image becomes a ScanFailure and never stops the images after it.

        Args:
            entries: Images to scan, in submission order
            model: Gemini model identifier
            is_cancelled: Checked before each image; when it returns True the
                remaining images are not started

        Raises:
            BatchRequestError: The submission is rejected as a whole (see validate_batch)
            ScanCancelledError: is_cancelled reported the caller has gone away
        """
        self.validate_batch(entries)
        if not is_supported_model(model):
            # No image work at all for a model that can never be called
            error = UnsupportedModelError(model)
            logger.warning("Receipt batch requested unsupported model", model=model, images=len(entries))
            return [ScanFailure(error=str(error)) for _ in entries]

        logger.info("Starting receipt batch", images=len(entries), model=model)

        outcomes: list[ScanOutcome] = []
        for index, entry in enumerate(entries):
            if is_cancelled is not None and await is_cancelled():
                logger.warning("Receipt batch cancelled by caller", completed=index, total=len(entries))
                raise ScanCancelledError(index, len(entries))
            # Awaited one at a time on purpose; see module docstring
            outcomes.append(await self.scan_one(index, entry, model))

        succeeded = sum(1 for o in outcomes if o.success)
        logger.info("Receipt batch finished", images=len(entries), succeeded=succeeded)
        return outcomes

    async def scan_one(self, index: int, entry: UploadEntry, model: str) -> ScanOutcome:
        try:
            receipt = await self._extract(entry, model)
        except ScanError as e:
            logger.warning("Receipt scan failed", index=index, error_type=type(e).__name__, error=str(e))
            return ScanFailure(error=str(e))
        except Exception:
            logger.exception("Unexpected error while scanning receipt", index=index)
            return ScanFailure(error=GENERIC_FAILURE_MESSAGE)
        return ScanSuccess(data=receipt)

    async def _extract(self, entry: UploadEntry, model: str) -> ReceiptData:
        captured_at = entry.captured_at
        if self.compress:
            compressed = compress_image(entry.image_bytes, self.max_width, self.quality)
            image_b64, mime_type = compressed.base64_data, compressed.mime_type
            captured_at = captured_at or compressed.captured_at
        else:
            image_b64 = base64.b64encode(entry.image_bytes).decode("ascii")
            mime_type = entry.mime_type

        receipt = await self.extractor.extract(image_b64, mime_type, model)
        return apply_capture_date(receipt, captured_at)
