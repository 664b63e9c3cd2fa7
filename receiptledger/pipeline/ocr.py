"""
Google Cloud Vision OCR over the REST API.
"""
from __future__ import annotations

import base64
import logging
from typing import Optional, Protocol

import httpx

from receiptledger.errors import CollaboratorError, CollaboratorTimeout

logger = logging.getLogger(__name__)


class OCRClient(Protocol):
    def extract_text(self, image_url: str, content: Optional[bytes] = None) -> str:
        """Return the text found in the image, or an empty string."""
        ...


class VisionOCRClient:
    def __init__(
        self,
        api_key: str,
        *,
        api_url: str = "https://vision.googleapis.com/v1/images:annotate",
        timeout_seconds: float = 30.0,
        transport: httpx.BaseTransport | None = None,
    ):
        self._api_key = api_key
        self._api_url = api_url
        self._timeout = httpx.Timeout(timeout_seconds, connect=5.0)
        self._transport = transport

    def _image_payload(self, image_url: str, content: Optional[bytes]) -> dict:
        if content:
            return {"content": base64.b64encode(content).decode("ascii")}
        return {"source": {"imageUri": image_url}}

    def extract_text(self, image_url: str, content: Optional[bytes] = None) -> str:
        if not self._api_key:
            raise CollaboratorError("Google Vision API key not configured")

        body = {
            "requests": [
                {
                    "image": self._image_payload(image_url, content),
                    "features": [{"type": "TEXT_DETECTION", "maxResults": 1}],
                }
            ]
        }
        try:
            with httpx.Client(timeout=self._timeout, transport=self._transport) as client:
                response = client.post(self._api_url, params={"key": self._api_key}, json=body)
        except httpx.TimeoutException as exc:
            raise CollaboratorTimeout("OCR request timed out") from exc
        except httpx.RequestError as exc:
            raise CollaboratorError(f"OCR request failed: {exc}") from exc

        if response.status_code >= 400:
            raise CollaboratorError(
                f"Google Vision API error: {response.status_code} {response.text[:500]}"
            )

        try:
            result = response.json()
            first = (result.get("responses") or [{}])[0]
            error = first.get("error")
            if error:
                message = error.get("message", "unknown") if isinstance(error, dict) else error
                raise CollaboratorError(f"Vision API error: {message}")
            annotations = first.get("textAnnotations") or []
            text = annotations[0].get("description", "") if annotations else ""
        except (ValueError, AttributeError, TypeError, IndexError, KeyError) as exc:
            logger.error("Unreadable Vision API reply: %.200s", response.text)
            raise CollaboratorError("Invalid OCR response") from exc
        if not isinstance(text, str):
            raise CollaboratorError("Invalid OCR response")
        logger.info("OCR extracted %d characters from %s", len(text), image_url)
        return text
