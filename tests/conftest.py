# Ensure `src/` is on sys.path so tests can import `kairos_agent` without requiring editable install
import json
import os
import sys
from datetime import datetime
from typing import List, Optional

import httpx
import pytest

HERE = os.path.dirname(__file__)
SRC = os.path.abspath(os.path.join(HERE, "..", "src"))
if os.path.isdir(SRC) and SRC not in sys.path:
    sys.path.insert(0, SRC)

from kairos_agent.config import Settings  # noqa: E402

WEDDING_CARD = (
    "WEDDING INVITATION\n"
    "Gabriella Squilloni and Marco Cavallaro\n"
    "invite you to the\n"
    "MARRIAGE\n"
    "of their children\n"
    "SILVIA & JAMES EDMUND\n"
    "SATURDAY\n"
    "03.01.2015\n"
    "4 pm\n"
    "reception to follow\n"
    "LANDTSCAP"
)

COUPLE_BLOCK_CARD = "ALICE\nTO\nANTON\n29TH DECEMBER 2022\nFLEUR DU CAP"

FORMAL_CARD = (
    "The Board of Directors\n"
    "cordially invites you to the\n"
    "Annual Charity Gala\n"
    "Friday, 14 March 2025 at 7:00 pm\n"
    "The Grand Hotel, London\n"
    "Black tie"
)

PARTY_FLYER = (
    "Summer BBQ Party\n"
    "Date: 12/05/2024 at 18:30\n"
    "Venue: The Old Barn\n"
    "Bring your own drinks"
)


@pytest.fixture
def now() -> datetime:
    return datetime(2024, 5, 10, 9, 30)


@pytest.fixture
def settings(tmp_path) -> Settings:
    return Settings(
        _env_file=None,
        whatsapp_api_token="wa-token",
        whatsapp_phone_number_id="1234567890",
        whatsapp_verify_token="let-me-in",
        whatsapp_api_url="https://graph.test/v18.0/",
        twilio_account_sid="AC123",
        twilio_auth_token="twilio-secret",
        twilio_phone_number="whatsapp:+14155238886",
        twilio_api_url="https://twilio.test/2010-04-01",
        messagebird_api_key="mb-key",
        messagebird_api_url="https://messagebird.test/v1",
        base_url="https://kairos.test/",
        short_url_store=str(tmp_path / "url-mappings" / "url-mappings.json"),
        timezone="UTC",
    )


@pytest.fixture
def bare_settings() -> Settings:
    """Settings with no provider credentials at all."""
    return Settings(
        _env_file=None,
        whatsapp_api_token=None,
        whatsapp_phone_number_id=None,
        twilio_account_sid=None,
        twilio_auth_token=None,
        messagebird_api_key=None,
    )


class RecordingTransport(httpx.MockTransport):
    """Mock transport answering from a ``(method, url) -> response`` table and recording requests."""

    def __init__(self, routes: Optional[dict] = None, default: Optional[httpx.Response] = None) -> None:
        self.routes = routes or {}
        self.default = default
        self.requests: List[httpx.Request] = []
        super().__init__(self._handle)

    def _handle(self, request: httpx.Request) -> httpx.Response:
        self.requests.append(request)
        key = (request.method, str(request.url))
        if key in self.routes:
            return self.routes[key]
        if self.default is not None:
            return self.default
        return httpx.Response(200, json={})

    def posted(self) -> List[httpx.Request]:
        return [request for request in self.requests if request.method == "POST"]

    def posted_json(self) -> List[dict]:
        return [json.loads(request.content) for request in self.posted()]


class FakeExtractor:
    """Stands in for the Vision client: returns canned OCR text."""

    def __init__(self, text: Optional[str]) -> None:
        self.text = text
        self.images: List[bytes] = []

    async def extract_text(self, image: bytes) -> Optional[str]:
        self.images.append(image)
        return self.text


@pytest.fixture
def transport() -> RecordingTransport:
    return RecordingTransport()
