#!/usr/bin/env python3
"""identity.py

Identity registry: live connections and the display-name -> connection map.

A connection exists from transport connect until disconnect. It only gets a
name (and shows up in rosters) once ``register`` succeeds. Stored names are
unique among live connections and compared case-sensitively.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass, field
from typing import Any

from constants import ADMIN_NAME, DEFAULT_ADMIN_SENTINEL, MIN_USERNAME_LENGTH

log = logging.getLogger(__name__)

_AVATAR_EMOJIS = ["😺", "🦊", "🐶", "🐻", "🐼", "🦁", "🐸", "🦄"]


def _to_int32(v: int) -> int:
    v &= 0xFFFFFFFF
    return v - 0x100000000 if v & 0x80000000 else v


def default_avatar(name: str) -> str:
    """Deterministic emoji avatar for a display name.

    Same hash the web client uses (31-based string hash over UTF-16 code
    units with 32-bit shifts), so server- and client-picked avatars agree.
    """
    h = 0
    data = (name or "").encode("utf-16-le")
    for i in range(0, len(data), 2):
        code = data[i] | (data[i + 1] << 8)
        h = code + (_to_int32(_to_int32(h) << 5) - h)
    return _AVATAR_EMOJIS[abs(h) % len(_AVATAR_EMOJIS)]


@dataclass
class RegistrationRequest:
    """Normalized ``register_identity`` payload."""

    name: str
    avatar: str | None = None

    @classmethod
    def from_payload(cls, raw: Any) -> "RegistrationRequest":
        # Clients send either a bare name or {"name"|"username": ..., "avatar": ...}
        if isinstance(raw, dict):
            name = raw.get("name")
            if name is None:
                name = raw.get("username")
            avatar = raw.get("avatar")
        else:
            name, avatar = raw, None
        name = "" if name is None else str(name)
        avatar = str(avatar) if avatar not in (None, "") else None
        return cls(name=name, avatar=avatar)


@dataclass
class Connection:
    sid: str
    name: str | None = None
    avatar: str | None = None
    is_admin: bool = False
    # Joined channels in join order (dict used as an ordered set).
    channels: dict[str, None] = field(default_factory=dict)

    @property
    def registered(self) -> bool:
        return self.name is not None


class IdentityRegistry:
    def __init__(self, admin_sentinel: str | None = None):
        self.admin_sentinel = admin_sentinel or DEFAULT_ADMIN_SENTINEL
        self._connections: dict[str, Connection] = {}
        self._names: dict[str, str] = {}

    # ------------------------------------------------------------------
    # Connection lifecycle
    # ------------------------------------------------------------------
    def connect(self, sid: str) -> Connection:
        conn = self._connections.get(sid)
        if conn is None:
            conn = Connection(sid=sid)
            self._connections[sid] = conn
        return conn

    def drop(self, sid: str) -> Connection | None:
        """Forget a connection and release its name. Idempotent."""
        conn = self._connections.pop(sid, None)
        if conn is not None and conn.name is not None and self._names.get(conn.name) == sid:
            del self._names[conn.name]
        return conn

    def get(self, sid: str | None) -> Connection | None:
        if sid is None:
            return None
        return self._connections.get(sid)

    def get_registered(self, sid: str | None) -> Connection | None:
        conn = self.get(sid)
        if conn is None or not conn.registered:
            return None
        return conn

    def by_name(self, name: str | None) -> Connection | None:
        sid = self._names.get(name) if name is not None else None
        return self._connections.get(sid) if sid is not None else None

    def is_live(self, sid: str | None) -> bool:
        return sid is not None and sid in self._connections

    def names(self) -> list[str]:
        return list(self._names)

    def __len__(self) -> int:
        return len(self._connections)

    # ------------------------------------------------------------------
    # Names
    # ------------------------------------------------------------------
    def register(self, sid: str, req: RegistrationRequest) -> tuple[Connection | None, str | None]:
        """Claim a display name for ``sid``. Returns (connection, error)."""
        conn = self.connect(sid)
        if conn.registered:
            return None, "Already registered"

        name = (req.name or "").strip()
        if not name:
            return None, "Username is required"
        if len(name) < MIN_USERNAME_LENGTH:
            return None, f"Username must be at least {MIN_USERNAME_LENGTH} characters"

        is_admin = False
        if name == self.admin_sentinel:
            name = ADMIN_NAME
            is_admin = True
        elif name == ADMIN_NAME:
            return None, "That name is reserved"

        if name in self._names:
            return None, "Username already taken!"

        conn.name = name
        conn.is_admin = is_admin
        conn.avatar = req.avatar or default_avatar(name)
        self._names[name] = sid
        log.debug("Registered %s as %r (admin=%s)", sid, name, is_admin)
        return conn, None

    def unregister(self, name: str | None) -> None:
        sid = self._names.pop(name, None) if name is not None else None
        conn = self._connections.get(sid) if sid is not None else None
        if conn is not None:
            conn.name = None
            conn.is_admin = False

    def rename(self, sid: str, new_name: str) -> str | None:
        """Repoint a registered connection to ``new_name``. Returns an error or None."""
        conn = self.get_registered(sid)
        if conn is None:
            return "Not registered"
        if new_name == conn.name:
            return None
        if new_name in self._names:
            return "Username already taken!"
        if new_name == ADMIN_NAME and not conn.is_admin:
            return "That name is reserved"
        old = conn.name
        if self._names.get(old) == sid:
            del self._names[old]
        self._names[new_name] = sid
        conn.name = new_name
        log.debug("Renamed %s: %r -> %r", sid, old, new_name)
        return None
