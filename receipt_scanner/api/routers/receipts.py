from fastapi import APIRouter, Depends, File, Form, HTTPException, Request, Response, UploadFile
from loguru import logger
from ..deps import get_batch_scanner
from ...models.receipt import RECEIPT_CATEGORIES
from ...models.scan import ScanRequest, ScanResponse
from ...services.batch_scanner import BatchScanner, UploadEntry
from ...services.errors import BatchRequestError, BatchTooLargeError, ScanCancelledError
from ...services.gemini_models import DEFAULT_MODEL, GEMINI_MODELS

router = APIRouter(prefix="/receipts", tags=["receipts"])

# Non-standard "client closed request" status; nobody is listening for the body
CLIENT_CLOSED_REQUEST = 499


def _reject(e: BatchRequestError) -> HTTPException:
    if isinstance(e, BatchTooLargeError):
        logger.warning("Scan rejected: too many images", submitted=e.submitted, max_images=e.max_images)
        return HTTPException(
            status_code=400,
            detail={"message": str(e), "max_images": e.max_images, "dropped": e.dropped},
        )
    logger.warning("Scan rejected", reason=str(e))
    return HTTPException(status_code=400, detail=str(e))


async def _run_batch(
    scanner: BatchScanner,
    entries: list[UploadEntry],
    model: str,
    request: Request,
) -> ScanResponse | Response:
    try:
        outcomes = await scanner.scan(entries, model, is_cancelled=request.is_disconnected)
    except BatchRequestError as e:
        raise _reject(e)
    except ScanCancelledError:
        return Response(status_code=CLIENT_CLOSED_REQUEST)

    return ScanResponse(model=model, results=outcomes)


@router.post("/scan", response_model=ScanResponse)
async def scan_receipts(
    req: ScanRequest,
    request: Request,
    scanner: BatchScanner = Depends(get_batch_scanner),
):
    """
    Scan one or more base64-encoded receipt images.

    Example request:
    {
        "images": [
            {"image": "<base64>", "mimeType": "image/jpeg", "capturedAt": "2024-05-01T12:30:00"}
        ],
        "model": "gemini-2.5-flash"
    }

    Returns one result per image, in submission order. A failed extraction is
    reported inline as {"success": false, "error": "..."} with status 200;
    a malformed or over-limit submission is rejected with 400/422.
    """
    entries = [
        UploadEntry(image_bytes=e.image, mime_type=e.mime_type, captured_at=e.captured_at)
        for e in req.images
    ]
    return await _run_batch(scanner, entries, req.model, request)


@router.post("/scan/upload", response_model=ScanResponse)
async def scan_receipt_uploads(
    request: Request,
    files: list[UploadFile] = File(...),
    model: str = Form(DEFAULT_MODEL),
    scanner: BatchScanner = Depends(get_batch_scanner),
):
    """
    Multipart variant of /receipts/scan.

    The capture date used when the model finds no date on the receipt is read
    from the image's EXIF data.
    """
    # Count is known before any upload is read into memory
    try:
        scanner.check_count(len(files))
    except BatchRequestError as e:
        raise _reject(e)

    entries = [
        UploadEntry(image_bytes=await f.read(), mime_type=f.content_type or "application/octet-stream")
        for f in files
    ]
    return await _run_batch(scanner, entries, model, request)


@router.get("/models")
async def list_models():
    """List the Gemini models a scan may request"""
    return {
        "default": DEFAULT_MODEL,
        "models": [
            {"id": m.id, "label": m.label, "default": m.id == DEFAULT_MODEL}
            for m in GEMINI_MODELS
        ],
    }


@router.get("/categories")
async def list_categories():
    return {"categories": RECEIPT_CATEGORIES}
