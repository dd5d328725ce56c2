"""Owned in-memory state for RelayChat Socket.IO handlers.

One ChatContext per app: it owns the identity registry, profile store,
channel directory and the router/moderation/signaling components wired to a
transport. Handlers receive it explicitly; nothing lives on module globals, so
every test can build a fresh one.

Handlers run to completion one at a time: each one holds ``ctx.lock`` for its
whole body (see ``serialized``). The lock is re-entrant because a kick
disconnects a socket from inside a handler, and the transport fires the
disconnect handler synchronously.
"""

from __future__ import annotations

import functools
import logging
import threading
from typing import Any

from audit import log_audit_event
from channels import ChannelDirectory
from constants import (
    ALLOWED_MEDIA_TYPES,
    BUILTIN_CHANNELS,
    MAX_CHANNEL_NAME_LENGTH,
    MAX_MEDIA_ENCODED_SIZE,
    MAX_MESSAGE_LENGTH,
    MIN_CHANNEL_NAME_LENGTH,
)
from identity import Connection, IdentityRegistry, RegistrationRequest
from moderation import ModerationEngine
from profiles import Profile, ProfileStore
from router import MessageRouter
from signaling import SignalingRelay

log = logging.getLogger(__name__)


class ChatContext:
    def __init__(self, transport, settings: dict | None = None):
        settings = settings or {}
        self.settings = settings
        self.transport = transport
        self.lock = threading.RLock()

        self.identities = IdentityRegistry(admin_sentinel=settings.get("admin_sentinel"))
        self.profiles = ProfileStore(self.identities)
        self.channels = ChannelDirectory(
            self.identities,
            self.profiles,
            transport,
            builtins=[tuple(b) for b in settings.get("builtin_channels") or BUILTIN_CHANNELS],
            min_name_length=settings.get("min_channel_name_length") or MIN_CHANNEL_NAME_LENGTH,
            max_name_length=settings.get("max_channel_name_length") or MAX_CHANNEL_NAME_LENGTH,
        )
        self.moderation = ModerationEngine(self.identities, transport, evict=self.evict)
        self.router = MessageRouter(
            self.identities,
            self.channels,
            self.moderation,
            transport,
            max_message_length=settings.get("max_message_length") or MAX_MESSAGE_LENGTH,
            allowed_media_types=settings.get("allowed_media_types") or ALLOWED_MEDIA_TYPES,
            max_media_encoded_size=settings.get("max_media_encoded_size") or MAX_MEDIA_ENCODED_SIZE,
        )
        self.signaling = SignalingRelay(self.identities, transport)

    def serialized(self, fn):
        """Run a handler under the context lock."""

        @functools.wraps(fn)
        def wrapper(*args, **kwargs):
            with self.lock:
                return fn(*args, **kwargs)

        return wrapper

    # ------------------------------------------------------------------
    # Session lifecycle
    # ------------------------------------------------------------------
    def connect(self, sid: str) -> Connection:
        return self.identities.connect(sid)

    def register(self, sid: str, raw: Any) -> tuple[Connection | None, str | None]:
        req = RegistrationRequest.from_payload(raw)
        conn, err = self.identities.register(sid, req)
        if err:
            log.info("Registration rejected for %s (%r): %s", sid, req.name, err)
            return None, err
        self.profiles.create(conn)
        log_audit_event(conn.name, "register", details=f"sid={sid} admin={conn.is_admin}")
        return conn, None

    def disconnect(self, sid: str) -> bool:
        """Remove every trace of ``sid``. Idempotent; fine for never-registered sockets."""
        conn = self.identities.drop(sid)
        if conn is None:
            return False
        self.profiles.remove(sid)
        if conn.registered:
            self.channels.drop_connection(sid, conn.name, conn.channels)
            log_audit_event(conn.name, "disconnected")
        return True

    def evict(self, sid: str, code: str, reason: str) -> None:
        """Force a connection off the server (kick/ban)."""
        conn = self.identities.get(sid)
        if conn is None:
            return
        self.transport.send_to_connection(
            sid, "force_logout", {"username": conn.name, "reason": reason, "code": code}
        )
        self.disconnect(sid)
        self.transport.disconnect(sid)

    # ------------------------------------------------------------------
    # Profile / avatar
    # ------------------------------------------------------------------
    def get_profile(self, sid: str, target: Any = None) -> tuple[Profile | None, str | None]:
        if isinstance(target, dict):
            target = target.get("id") or target.get("sid")
        profile = self.profiles.get(str(target) if target else sid)
        if profile is None:
            return None, "Profile not found"
        return profile, None

    def update_profile(self, sid: str, patch: Any) -> tuple[Profile | None, str | None]:
        profile, err = self.profiles.update(sid, patch)
        if err:
            return None, err
        conn = self.identities.get(sid)
        for name in list(conn.channels):
            self.channels.broadcast_roster(name)
        return profile, None

    def update_avatar(self, sid: str, payload: Any) -> bool:
        conn = self.identities.get_registered(sid)
        avatar = payload.get("avatar") if isinstance(payload, dict) else payload
        if conn is None or not avatar:
            return False
        conn.avatar = str(avatar)
        return True
