"""
Pytest configuration and shared fixtures.

This file registers custom pytest markers and command-line options.
"""

import io
import httpx
import pytest
from fastapi.testclient import TestClient
from PIL import Image
from receipt_scanner.api.main import app
from receipt_scanner.core.config import settings
from receipt_scanner.services.gemini_models import DEFAULT_MODEL

GEMINI_BASE_URL = "https://generativelanguage.googleapis.com"


def pytest_addoption(parser):
    """Add custom command-line options"""
    parser.addoption(
        "--run-integration",
        action="store_true",
        default=False,
        help="Run integration tests against the real Gemini API"
    )


def pytest_configure(config):
    """Register custom markers"""
    config.addinivalue_line(
        "markers",
        "integration: mark test as integration test requiring a real Gemini API key"
    )


def pytest_collection_modifyitems(config, items):
    """Skip integration tests unless --run-integration is specified"""
    if config.getoption("--run-integration"):
        return

    skip_integration = pytest.mark.skip(reason="need --run-integration option to run")
    for item in items:
        if "integration" in item.keywords:
            item.add_marker(skip_integration)


@pytest.fixture
def make_image():
    """Build an in-memory image of the given size and format"""
    def _make(width=640, height=480, fmt="PNG", mode="RGB", exif_datetime=None):
        img = Image.new(mode, (width, height), color="white")
        buffer = io.BytesIO()
        if exif_datetime:
            exif = Image.Exif()
            exif[306] = exif_datetime  # DateTime
            img.save(buffer, format=fmt, exif=exif)
        else:
            img.save(buffer, format=fmt)
        return buffer.getvalue()
    return _make


@pytest.fixture
def gemini_url():
    def _url(model=DEFAULT_MODEL):
        return f"{GEMINI_BASE_URL}/v1beta/models/{model}:generateContent"
    return _url


@pytest.fixture
def gemini_reply():
    """Build a generateContent response carrying the given text"""
    def _reply(text):
        if text is None:
            return httpx.Response(200, json={"candidates": []})
        return httpx.Response(
            200,
            json={"candidates": [{"content": {"role": "model", "parts": [{"text": text}]}}]},
        )
    return _reply


@pytest.fixture
def client():
    """TestClient with the app lifespan running and a dummy Gemini key"""
    original_key = settings.gemini_api_key
    original_base_url = settings.gemini_base_url
    settings.gemini_api_key = "test-key"
    settings.gemini_base_url = GEMINI_BASE_URL

    try:
        with TestClient(app) as c:
            yield c
    finally:
        settings.gemini_api_key = original_key
        settings.gemini_base_url = original_base_url
