import asyncio
from urllib.parse import parse_qs

import httpx
import pytest

from conftest import RecordingTransport
from kairos_agent.channels import (
    ChannelError,
    MessageBirdChannel,
    TwilioChannel,
    WhatsAppChannel,
    build_channels,
)
from kairos_agent.channels.twilio import format_recipient
from kairos_agent.models import IncomingMessage, MessageKind

WHATSAPP_IMAGE = {
    "object": "whatsapp_business_account",
    "entry": [
        {
            "changes": [
                {
                    "value": {
                        "contacts": [{"wa_id": "447700900123"}],
                        "messages": [
                            {"from": "447700900123", "type": "image", "image": {"id": "MEDIA123"}},
                        ],
                    }
                }
            ]
        }
    ],
}

WHATSAPP_TEXT = {
    "entry": [
        {"changes": [{"value": {"messages": [{"from": "447700900123", "type": "text", "text": {"body": "hi"}}]}}]}
    ]
}


def test_build_channels(settings):
    assert set(build_channels(settings)) == {"whatsapp", "twilio", "messagebird"}


def test_whatsapp_parse_image(settings):
    [message] = WhatsAppChannel(settings).parse_payload(WHATSAPP_IMAGE)
    assert message == IncomingMessage(
        channel="whatsapp",
        sender="447700900123",
        kind=MessageKind.IMAGE,
        media_ref="MEDIA123",
    )


def test_whatsapp_parse_text_and_status_updates(settings):
    channel = WhatsAppChannel(settings)
    [message] = channel.parse_payload(WHATSAPP_TEXT)
    assert message.kind is MessageKind.TEXT
    assert message.text == "hi"
    assert channel.parse_payload({"entry": [{"changes": [{"value": {"statuses": []}}]}]}) == []


@pytest.mark.parametrize(
    "mode, token, expected",
    [
        ("subscribe", "let-me-in", "challenge-42"),
        ("subscribe", "wrong", None),
        ("unsubscribe", "let-me-in", None),
        (None, None, None),
    ],
)
def test_whatsapp_verify(settings, mode, token, expected):
    assert WhatsAppChannel(settings).verify(mode, token, "challenge-42") == expected


def test_whatsapp_fetch_image_and_send(settings):
    transport = RecordingTransport(
        routes={
            ("GET", "https://graph.test/v18.0/MEDIA123"): httpx.Response(200, json={"url": "https://media.test/img"}),
            ("GET", "https://media.test/img"): httpx.Response(200, content=b"jpeg-bytes"),
        }
    )
    channel = WhatsAppChannel(settings, transport)
    [message] = channel.parse_payload(WHATSAPP_IMAGE)

    assert asyncio.run(channel.fetch_image(message)) == b"jpeg-bytes"
    asyncio.run(channel.send_text(message, "hello"))

    [sent] = transport.posted()
    assert str(sent.url) == "https://graph.test/v18.0/1234567890/messages"
    assert sent.headers["Authorization"] == "Bearer wa-token"
    assert transport.posted_json() == [
        {
            "messaging_product": "whatsapp",
            "recipient_type": "individual",
            "to": "447700900123",
            "type": "text",
            "text": {"preview_url": True, "body": "hello"},
        }
    ]


def test_failed_request_raises_channel_error(settings):
    transport = RecordingTransport(default=httpx.Response(500, text="boom"))
    channel = WhatsAppChannel(settings, transport)
    message = IncomingMessage(channel="whatsapp", sender="1", kind=MessageKind.IMAGE, media_ref="M1")

    with pytest.raises(ChannelError):
        asyncio.run(channel.fetch_image(message))


def test_send_is_skipped_without_credentials(bare_settings):
    transport = RecordingTransport()
    message = IncomingMessage(channel="x", sender="1", kind=MessageKind.TEXT, conversation_id="c1")

    for channel in build_channels(bare_settings, transport).values():
        asyncio.run(channel.send_text(message, "hello"))

    assert transport.requests == []


@pytest.mark.parametrize(
    "number, expected",
    [
        ("+44 7700 900123", "whatsapp:+447700900123"),
        ("whatsapp:447700900123", "whatsapp:+447700900123"),
        ("whatsapp:+447700900123", "whatsapp:+447700900123"),
    ],
)
def test_format_recipient(number, expected):
    assert format_recipient(number) == expected


def test_twilio_parse_payload(settings):
    channel = TwilioChannel(settings)

    [image] = channel.parse_payload(
        {
            "From": "whatsapp:+447700900123",
            "MediaUrl0": "https://api.twilio.test/media/ME1",
            "MediaContentType0": "image/jpeg",
        }
    )
    assert image.kind is MessageKind.IMAGE
    assert image.sender == "+447700900123"
    assert image.media_ref == "https://api.twilio.test/media/ME1"

    [text] = channel.parse_payload({"From": "whatsapp:+447700900123", "Body": "hello"})
    assert text.kind is MessageKind.TEXT and text.text == "hello"

    [audio] = channel.parse_payload(
        {"From": "whatsapp:+1", "MediaUrl0": "https://x.test/a", "MediaContentType0": "audio/ogg"}
    )
    assert audio.kind is MessageKind.OTHER

    assert channel.parse_payload({"Body": "no sender"}) == []


def test_twilio_send_uses_basic_auth_and_form(settings):
    transport = RecordingTransport(default=httpx.Response(201, json={"sid": "SM1"}))
    channel = TwilioChannel(settings, transport)
    message = IncomingMessage(channel="twilio", sender="+447700900123", kind=MessageKind.TEXT)

    asyncio.run(channel.send_text(message, "hello"))

    [sent] = transport.posted()
    assert str(sent.url) == "https://twilio.test/2010-04-01/Accounts/AC123/Messages.json"
    assert sent.headers["Authorization"].startswith("Basic ")
    form = parse_qs(sent.content.decode())
    assert form == {
        "From": ["whatsapp:+14155238886"],
        "To": ["whatsapp:+447700900123"],
        "Body": ["hello"],
    }


def test_messagebird_parse_and_send(settings):
    transport = RecordingTransport()
    channel = MessageBirdChannel(settings, transport)

    [message] = channel.parse_payload(
        {
            "type": "message.received",
            "conversation": {"id": "conv-1"},
            "message": {"from": "+31612345678", "type": "image", "content": {"image": {"url": "https://mb.test/i"}}},
        }
    )
    assert message.kind is MessageKind.IMAGE
    assert message.conversation_id == "conv-1"
    assert channel.parse_payload({"type": "message.updated"}) == []

    asyncio.run(channel.send_text(message, "hello"))

    [sent] = transport.posted()
    assert str(sent.url) == "https://messagebird.test/v1/conversations/conv-1/messages"
    assert sent.headers["Authorization"] == "AccessKey mb-key"
    assert transport.posted_json() == [{"type": "text", "content": {"text": "hello"}}]
