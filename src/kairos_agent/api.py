"""FastAPI application: provider webhooks, short-link redirects and a parse endpoint."""

from __future__ import annotations

from functools import lru_cache
from typing import Any, Dict, Mapping, Optional

import structlog
from fastapi import BackgroundTasks, Depends, FastAPI, HTTPException, Query, Request
from fastapi.responses import PlainTextResponse, RedirectResponse
from pydantic import BaseModel

from . import __version__
from .assistant import InvitationAssistant
from .channels import MessagingChannel, build_channels
from .config import Settings
from .ocr import TextExtractor
from .shorturl import ShortUrlStore

LOGGER = structlog.get_logger(__name__)

app = FastAPI(title="Kairos Agent", version=__version__)


class ParseRequest(BaseModel):
    """OCR transcript to run through the parser."""

    text: str


class ParseResponse(BaseModel):
    kind: Optional[str] = None
    details: Optional[Dict[str, Optional[str]]] = None
    failure: Optional[str] = None
    links: Optional[Dict[str, str]] = None


@lru_cache
def get_settings() -> Settings:
    return Settings()


@lru_cache
def get_short_urls() -> ShortUrlStore:
    settings = get_settings()
    return ShortUrlStore(settings.short_url_store, settings.base_url)


@lru_cache
def get_channels() -> Dict[str, MessagingChannel]:
    return build_channels(get_settings())


@lru_cache
def get_assistant() -> InvitationAssistant:
    settings = get_settings()
    short_urls = get_short_urls() if settings.shorten_links else None
    return InvitationAssistant(settings, TextExtractor(settings), short_urls)


async def process_payload(
    assistant: InvitationAssistant,
    channel: MessagingChannel,
    payload: Mapping[str, Any],
) -> None:
    """Background task body; a failing payload must not surface anywhere."""
    try:
        count = await assistant.handle_payload(channel, payload)
    except Exception as exc:
        LOGGER.exception("webhook.process.failed", channel=channel.name, error=str(exc))
        return
    LOGGER.info("webhook.processed", channel=channel.name, messages=count)


async def _json_body(request: Request) -> Dict[str, Any]:
    try:
        body = await request.json()
    except ValueError:
        LOGGER.warning("webhook.invalid_json", path=request.url.path)
        return {}
    return body if isinstance(body, dict) else {}


def _accept(
    background_tasks: BackgroundTasks,
    assistant: InvitationAssistant,
    channel: MessagingChannel,
    payload: Mapping[str, Any],
) -> None:
    LOGGER.info("webhook.received", channel=channel.name)
    background_tasks.add_task(process_payload, assistant, channel, payload)


@app.get("/", response_class=PlainTextResponse)
async def status() -> str:
    return f"Kairos calendar assistant {__version__} is running"


@app.get("/api/webhook", response_class=PlainTextResponse)
async def verify_webhook(
    mode: Optional[str] = Query(default=None, alias="hub.mode"),
    token: Optional[str] = Query(default=None, alias="hub.verify_token"),
    challenge: Optional[str] = Query(default=None, alias="hub.challenge"),
    channels: Dict[str, MessagingChannel] = Depends(get_channels),
) -> str:
    """WhatsApp subscription check: echo the challenge when the token matches."""
    answer = channels["whatsapp"].verify(mode, token, challenge)
    if answer is None:
        raise HTTPException(status_code=403, detail="Forbidden")
    return answer


@app.post("/api/webhook", response_class=PlainTextResponse)
async def whatsapp_webhook(
    request: Request,
    background_tasks: BackgroundTasks,
    assistant: InvitationAssistant = Depends(get_assistant),
    channels: Dict[str, MessagingChannel] = Depends(get_channels),
) -> str:
    _accept(background_tasks, assistant, channels["whatsapp"], await _json_body(request))
    return "EVENT_RECEIVED"


@app.post("/api/twilio", response_class=PlainTextResponse)
async def twilio_webhook(
    request: Request,
    background_tasks: BackgroundTasks,
    assistant: InvitationAssistant = Depends(get_assistant),
    channels: Dict[str, MessagingChannel] = Depends(get_channels),
) -> str:
    form = await request.form()
    payload = {key: value for key, value in form.items() if isinstance(value, str)}
    _accept(background_tasks, assistant, channels["twilio"], payload)
    return "OK"


@app.post("/api/messagebird", response_class=PlainTextResponse)
async def messagebird_webhook(
    request: Request,
    background_tasks: BackgroundTasks,
    assistant: InvitationAssistant = Depends(get_assistant),
    channels: Dict[str, MessagingChannel] = Depends(get_channels),
) -> str:
    _accept(background_tasks, assistant, channels["messagebird"], await _json_body(request))
    return "OK"


@app.get("/r/{short_id}")
async def redirect_short_link(
    short_id: str,
    short_urls: ShortUrlStore = Depends(get_short_urls),
) -> RedirectResponse:
    target = short_urls.resolve(short_id)
    if target is None:
        LOGGER.info("shorturl.unknown", short_id=short_id)
        raise HTTPException(status_code=404, detail="Calendar link not found")
    return RedirectResponse(target, status_code=302)


@app.post("/api/parse", response_model=ParseResponse)
async def parse_text(
    request: ParseRequest,
    assistant: InvitationAssistant = Depends(get_assistant),
) -> ParseResponse:
    """Show how an OCR transcript would be handled, without sending anything."""
    return ParseResponse(**assistant.analyse(request.text).as_dict())
