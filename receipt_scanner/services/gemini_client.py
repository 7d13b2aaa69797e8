"""
Thin async client for the Gemini generateContent REST endpoint.

One instance (and one underlying httpx.AsyncClient) is created at startup
and shared by every request.
"""

import httpx
from loguru import logger
from ..core.config import Settings
from .errors import ModelNotConfiguredError, ModelRequestError


class GeminiClient:
    def __init__(
        self,
        api_key: str | None,
        base_url: str = "https://generativelanguage.googleapis.com",
        timeout: float = 60.0,
        http_client: httpx.AsyncClient | None = None,
    ):
        self.api_key = api_key
        self.base_url = base_url.rstrip("/")
        self._http = http_client or httpx.AsyncClient(timeout=timeout)

    @classmethod
    def from_settings(cls, settings: Settings) -> "GeminiClient":
        return cls(
            api_key=settings.gemini_api_key,
            base_url=settings.gemini_base_url,
            timeout=settings.gemini_timeout_seconds,
        )

    @property
    def configured(self) -> bool:
        return bool(self.api_key)

    async def aclose(self) -> None:
        await self._http.aclose()

    async def generate(self, model: str, image_b64: str, mime_type: str, prompt: str) -> str | None:
        """
        Send one image and one instruction to the model.

        Returns the text of the first candidate, or None if the model returned
        no text at all.

        Raises:
            ModelNotConfiguredError: No API key is set
            ModelRequestError: Transport failure, timeout or non-2xx status
        """
        if not self.configured:
            raise ModelNotConfiguredError()

        body = {
            "contents": [{
                "role": "user",
                "parts": [
                    {"inline_data": {"mime_type": mime_type, "data": image_b64}},
                    {"text": prompt},
                ],
            }]
        }

        try:
            r = await self._http.post(
                f"{self.base_url}/v1beta/models/{model}:generateContent",
                json=body,
                headers={"x-goog-api-key": self.api_key},
            )
            r.raise_for_status()
        except httpx.TimeoutException as e:
            logger.error("Gemini request timed out", model=model, error=repr(e))
            raise ModelRequestError("Model request timed out") from e
        except httpx.HTTPStatusError as e:
            logger.error(
                "Gemini returned an error status",
                model=model,
                status=e.response.status_code,
                body=e.response.text[:500],
            )
            raise ModelRequestError(
                f"Model request failed with status {e.response.status_code}"
            ) from e
        except httpx.HTTPError as e:
            logger.error("Gemini request failed", model=model, error=repr(e))
            raise ModelRequestError(f"Model request failed: {e}") from e

        try:
            payload = r.json()
        except ValueError as e:
            raise ModelRequestError("Model returned a non-JSON response body") from e
        return extract_text(payload)


def extract_text(payload: dict) -> str | None:
    """Concatenate the text parts of the first candidate"""
    candidates = payload.get("candidates") or []
    if not candidates:
        return None
    parts = (candidates[0].get("content") or {}).get("parts") or []
    text = "".join(p.get("text", "") for p in parts if isinstance(p, dict))
    return text or None
