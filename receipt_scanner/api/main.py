from contextlib import asynccontextmanager
from fastapi import FastAPI, Request, status
from fastapi.middleware.cors import CORSMiddleware
from fastapi.exceptions import RequestValidationError
from fastapi.responses import JSONResponse
from ..core.logging import setup_logging
from ..core.config import settings
from ..services.gemini_client import GeminiClient
from ..services.receipt_extractor import ReceiptExtractor
from ..services.batch_scanner import BatchScanner
from .routers import health, receipts

logger = setup_logging()


@asynccontextmanager
async def lifespan(app: FastAPI):
    # One model client for the whole process, shared by every request
    client = GeminiClient.from_settings(settings)
    if not client.configured:
        logger.warning("GEMINI_API_KEY not set - receipt scans will fail until it is configured")
    app.state.batch_scanner = BatchScanner.from_settings(ReceiptExtractor(client), settings)
    try:
        yield
    finally:
        await client.aclose()


app = FastAPI(title="Receipt Scanner", lifespan=lifespan)


@app.exception_handler(RequestValidationError)
async def validation_exception_handler(request: Request, exc: RequestValidationError):
    # Field errors only; the body may hold megabytes of base64
    logger.warning("Validation error", path=request.url.path, errors=[e["msg"] for e in exc.errors()])
    return JSONResponse(
        status_code=status.HTTP_422_UNPROCESSABLE_ENTITY,
        content={"detail": [
            {"loc": list(e["loc"]), "msg": e["msg"], "type": e["type"]} for e in exc.errors()
        ]},
    )


# CORS_ORIGINS can be set in .env as comma-separated list
allowed_origins = [origin.strip() for origin in settings.cors_origins.split(",")]

app.add_middleware(
    CORSMiddleware,
    allow_origins=allowed_origins,
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)

app.include_router(health.router)
app.include_router(receipts.router)
