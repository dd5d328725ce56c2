#!/usr/bin/env python3
"""router.py

Message router: validates chat text/media and fans it out to a channel.

Stale-client conditions (unregistered sender, unknown channel, sender not a
member) drop the message without telling anyone. Media problems are the
sender's fault and get a ``message_error`` back. Privileged senders' slash
commands go to the moderation engine instead of the channel.
"""

from __future__ import annotations

import logging
import re
import time
from typing import Any, Iterable

from channels import ChannelDirectory, channel_key
from constants import ALLOWED_MEDIA_TYPES, MAX_MEDIA_ENCODED_SIZE, MAX_MESSAGE_LENGTH
from identity import IdentityRegistry
from moderation import ModerationEngine

log = logging.getLogger(__name__)

_DATA_URL_RE = re.compile(r"^data:(?P<mime>[\w.+-]+/[\w.+-]+)[;,]", re.IGNORECASE)

INVALID_MEDIA_TYPE = "Invalid file type. Use PNG, JPEG, GIF, MP4, or WEBM"
MEDIA_TOO_LARGE = "File size exceeds 5MB limit"


def media_mime(payload: dict) -> str | None:
    """MIME type of a media payload.

    A data-URL header is authoritative; the explicit ``mime`` key is only
    used for bare data. Returns None when both are present and disagree.
    """
    declared = str(payload.get("mime") or "").strip().lower()
    m = _DATA_URL_RE.match(str(payload.get("data") or ""))
    if m is None:
        return declared
    embedded = m.group("mime").lower()
    if declared and declared != embedded:
        return None
    return embedded


class MessageRouter:
    def __init__(
        self,
        identities: IdentityRegistry,
        channels: ChannelDirectory,
        moderation: ModerationEngine,
        transport,
        max_message_length: int = MAX_MESSAGE_LENGTH,
        allowed_media_types: Iterable[str] = ALLOWED_MEDIA_TYPES,
        max_media_encoded_size: int = MAX_MEDIA_ENCODED_SIZE,
    ):
        self.identities = identities
        self.channels = channels
        self.moderation = moderation
        self.transport = transport
        self.max_message_length = int(max_message_length)
        self.allowed_media_types = frozenset(str(t).lower() for t in allowed_media_types)
        self.max_media_encoded_size = int(max_media_encoded_size)

    def send_message(self, sid: str, payload: Any) -> tuple[bool, str | None]:
        """Route one ``send_message`` event. Returns (delivered, error)."""
        if not isinstance(payload, dict):
            return False, None
        conn = self.identities.get_registered(sid)
        channel = channel_key(payload)
        if conn is None or not self.channels.is_valid(channel) or not self.channels.is_member(sid, channel):
            log.debug("send_message dropped (sid=%s channel=%r)", sid, channel)
            return False, None

        avatar = payload.get("avatar") or conn.avatar
        if payload.get("data") is not None:
            return self._send_media(conn, channel, payload, avatar)

        text = payload.get("message")
        if text is None:
            text = payload.get("text")
        text = str(text or "").strip()[: self.max_message_length]
        if not text:
            return False, None

        if conn.is_admin and text.startswith("/"):
            self.moderation.execute(conn, channel, text)
            return True, None

        self.transport.send_to_channel(
            channel,
            "chat_message",
            {
                "server": channel,
                "user": conn.name,
                "message": text,
                "avatar": avatar,
                "is_admin": conn.is_admin,
                "type": "text",
                "timestamp": time.time(),
            },
        )
        return True, None

    def _send_media(self, conn, channel: str, payload: dict, avatar) -> tuple[bool, str | None]:
        data = payload.get("data")
        mime = media_mime(payload)
        err = None
        if not isinstance(data, str) or mime not in self.allowed_media_types:
            err = INVALID_MEDIA_TYPE
        elif len(data) > self.max_media_encoded_size:
            err = MEDIA_TOO_LARGE
        if err:
            log.info("Rejected media from %s in #%s (mime=%r size=%s)", conn.name, channel, mime,
                     len(data) if isinstance(data, str) else None)
            self.transport.send_to_connection(conn.sid, "message_error", {"server": channel, "message": err})
            return False, err

        self.transport.send_to_channel(
            channel,
            "chat_message",
            {
                "server": channel,
                "user": conn.name,
                "type": mime.split("/", 1)[0],
                "mime": mime,
                "data": data,
                "avatar": avatar,
                "is_admin": conn.is_admin,
                "timestamp": time.time(),
            },
        )
        return True, None
