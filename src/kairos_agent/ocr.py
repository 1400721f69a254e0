"""Google Cloud Vision text detection."""

from __future__ import annotations

import asyncio
import base64
from typing import Any, Optional

import google.auth
import structlog
from google.oauth2 import service_account
from googleapiclient.discovery import build

from .config import Settings

LOGGER = structlog.get_logger(__name__)

VISION_SCOPES = ["https://www.googleapis.com/auth/cloud-platform"]


class OcrError(RuntimeError):
    """Raised when the Vision API reports an error for an image."""


def load_credentials(settings: Settings) -> Any:
    """Inline service-account values first, then the key file, then application defaults."""
    if settings.has_inline_google_credentials:
        LOGGER.info("ocr.credentials", source="inline")
        return service_account.Credentials.from_service_account_info(
            settings.google_service_account_info(), scopes=VISION_SCOPES
        )
    if settings.google_application_credentials:
        LOGGER.info("ocr.credentials", source="file")
        return service_account.Credentials.from_service_account_file(
            settings.google_application_credentials, scopes=VISION_SCOPES
        )
    LOGGER.info("ocr.credentials", source="default")
    credentials, _project = google.auth.default(scopes=VISION_SCOPES)
    return credentials


def create_vision_service(settings: Settings) -> Any:
    return build("vision", "v1", credentials=load_credentials(settings), cache_discovery=False)


def annotate_request(image: bytes) -> dict:
    return {
        "requests": [
            {
                "image": {"content": base64.b64encode(image).decode("ascii")},
                "features": [{"type": "TEXT_DETECTION"}],
            }
        ]
    }


class TextExtractor:
    """Runs text detection on image bytes."""

    def __init__(self, settings: Settings, service: Optional[Any] = None) -> None:
        self._settings = settings
        self._service = service

    @property
    def service(self) -> Any:
        if self._service is None:
            self._service = create_vision_service(self._settings)
        return self._service

    def detect_text(self, image: bytes) -> Optional[str]:
        response = self.service.images().annotate(body=annotate_request(image)).execute()
        result = (response.get("responses") or [{}])[0]
        error = result.get("error") or {}
        if error.get("message"):
            raise OcrError(f"Vision API error: {error['message']}")

        annotations = result.get("textAnnotations") or []
        if not annotations:
            LOGGER.warning("ocr.no_text", image_bytes=len(image))
            return None
        # The first annotation holds the full text; the rest are single words.
        text = annotations[0].get("description") or None
        LOGGER.info("ocr.extracted", characters=len(text or ""))
        return text

    async def extract_text(self, image: bytes) -> Optional[str]:
        """Full text found in ``image``, or ``None`` when there is none."""
        return await asyncio.to_thread(self.detect_text, image)
