#!/usr/bin/env python3
"""channels.py

Channel directory: the catalog of valid channels and their rosters.

Built-in channels exist from process start in a fixed order; registered
users may claim new names. Names are never released. Join/leave broadcast a
system line plus fresh roster and directory snapshots.
"""

from __future__ import annotations

import logging
import re
import time
from dataclasses import dataclass, field
from typing import Any, Iterable

from audit import log_audit_event
from constants import (
    BUILTIN_CHANNELS,
    CUSTOM_CHANNEL_ICON,
    MAX_CHANNEL_NAME_LENGTH,
    MIN_CHANNEL_NAME_LENGTH,
    SYSTEM_USER,
)
from identity import IdentityRegistry
from profiles import ProfileStore

log = logging.getLogger(__name__)

_WS_RE = re.compile(r"\s+")
_INVALID_CHARS_RE = re.compile(r"[^a-z0-9-]")


def normalize_channel_name(raw: Any) -> str:
    """'My Room!!' -> 'my-room'."""
    s = str(raw or "").strip().lower()
    s = _WS_RE.sub("-", s)
    return _INVALID_CHARS_RE.sub("", s)


def channel_key(raw: Any) -> str:
    """Lookup key for join/leave/send requests naming an existing channel."""
    if isinstance(raw, dict):
        raw = raw.get("server") or raw.get("channel") or raw.get("name")
    return str(raw or "").strip().lower()


def system_message(channel: str, text: str) -> dict[str, Any]:
    return {
        "server": channel,
        "user": SYSTEM_USER,
        "message": text,
        "type": "system",
        "timestamp": time.time(),
    }


@dataclass
class Channel:
    name: str
    icon: str
    builtin: bool = False
    creator: str | None = None
    created_at: float = field(default_factory=time.time)
    # sid -> None, in join order
    roster: dict[str, None] = field(default_factory=dict)

    def to_dict(self) -> dict[str, Any]:
        return {
            "name": self.name,
            "icon": self.icon,
            "builtin": self.builtin,
            "creator": self.creator,
            "created_at": self.created_at,
            "online": len(self.roster),
        }


class ChannelDirectory:
    def __init__(
        self,
        identities: IdentityRegistry,
        profiles: ProfileStore,
        transport,
        builtins: Iterable[tuple[str, str]] | None = None,
        min_name_length: int = MIN_CHANNEL_NAME_LENGTH,
        max_name_length: int = MAX_CHANNEL_NAME_LENGTH,
    ):
        self.identities = identities
        self.profiles = profiles
        self.transport = transport
        self.min_name_length = int(min_name_length)
        self.max_name_length = int(max_name_length)
        # Insertion order == built-ins (canonical order) then custom channels by creation.
        self._channels: dict[str, Channel] = {}
        for name, icon in builtins if builtins is not None else BUILTIN_CHANNELS:
            self._channels[name] = Channel(name=name, icon=icon, builtin=True)

    # ------------------------------------------------------------------
    # Catalog
    # ------------------------------------------------------------------
    def get(self, name: str) -> Channel | None:
        return self._channels.get(name)

    def is_valid(self, name: str) -> bool:
        return name in self._channels

    def list_channels(self) -> list[dict[str, Any]]:
        return [ch.to_dict() for ch in self._channels.values()]

    def __len__(self) -> int:
        return len(self._channels)

    def create_channel(self, raw_name: Any, sid: str) -> tuple[str | None, str | None]:
        """Claim a new channel name. Returns (canonical_name, error)."""
        conn = self.identities.get_registered(sid)
        if conn is None:
            return None, "Register a username before creating a channel"

        name = normalize_channel_name(raw_name)
        if not (self.min_name_length <= len(name) <= self.max_name_length):
            return None, (
                f"Channel name must be {self.min_name_length}-{self.max_name_length} "
                "characters (a-z, 0-9, -)"
            )
        if name in self._channels:
            return None, "Channel already exists"

        ch = Channel(name=name, icon=CUSTOM_CHANNEL_ICON, builtin=False, creator=conn.name)
        self._channels[name] = ch
        log_audit_event(conn.name, "create_channel", target=name)
        self.transport.send_to_all("channel_created", {"channel": ch.to_dict(), "channels": self.list_channels()})
        return name, None

    # ------------------------------------------------------------------
    # Membership
    # ------------------------------------------------------------------
    def join(self, sid: str, raw_channel: Any) -> bool:
        conn = self.identities.get_registered(sid)
        name = channel_key(raw_channel)
        ch = self._channels.get(name)
        if conn is None or ch is None:
            log.debug("join dropped (sid=%s channel=%r)", sid, name)
            return False
        if sid in ch.roster:
            return False

        ch.roster[sid] = None
        conn.channels[name] = None
        self.transport.join(sid, name)
        log_audit_event(conn.name, "join", target=name)

        self.transport.send_to_channel(name, "chat_message", system_message(name, f"{conn.name} joined #{name}"))
        self.broadcast_roster(name)
        self.broadcast_directory()
        return True

    def leave(self, sid: str, raw_channel: Any) -> bool:
        conn = self.identities.get_registered(sid)
        name = channel_key(raw_channel)
        ch = self._channels.get(name)
        if conn is None or ch is None or sid not in ch.roster:
            log.debug("leave dropped (sid=%s channel=%r)", sid, name)
            return False

        self._remove_member(sid, name)
        log_audit_event(conn.name, "leave", target=name)

        self.transport.send_to_channel(name, "chat_message", system_message(name, f"{conn.name} left #{name}"))
        self.broadcast_roster(name)
        self.broadcast_directory()
        return True

    def drop_connection(self, sid: str, display_name: str | None, channels: Iterable[str]) -> list[str]:
        """Disconnect cleanup: remove ``sid`` from every roster it is on.

        The connection must already be gone from the identity registry, so
        snapshots sent here no longer include it.
        """
        left = []
        for name in list(channels):
            if name not in self._channels or sid not in self._channels[name].roster:
                continue
            self._remove_member(sid, name)
            left.append(name)
            if display_name:
                self.transport.send_to_channel(
                    name, "chat_message", system_message(name, f"{display_name} disconnected")
                )
            self.broadcast_roster(name)
        if left:
            self.broadcast_directory()
        return left

    def is_member(self, sid: str, name: str) -> bool:
        ch = self._channels.get(name)
        return ch is not None and sid in ch.roster

    def _remove_member(self, sid: str, name: str) -> None:
        ch = self._channels.get(name)
        if ch is not None:
            ch.roster.pop(sid, None)
        conn = self.identities.get(sid)
        if conn is not None:
            conn.channels.pop(name, None)
        self.transport.leave(sid, name)

    # ------------------------------------------------------------------
    # Snapshots
    # ------------------------------------------------------------------
    def roster_snapshot(self, raw_channel: Any) -> list[dict[str, Any]]:
        ch = self._channels.get(channel_key(raw_channel))
        if ch is None:
            return []
        out = []
        for sid in ch.roster:
            conn = self.identities.get_registered(sid)
            if conn is None:
                continue
            profile = self.profiles.get(sid)
            out.append(
                {
                    "id": sid,
                    "username": conn.name,
                    "avatar": conn.avatar,
                    "is_admin": conn.is_admin,
                    "profile": profile.to_dict() if profile else None,
                }
            )
        return out

    def broadcast_roster(self, name: str) -> None:
        self.transport.send_to_channel(name, "roster_updated", {"server": name, "users": self.roster_snapshot(name)})

    def broadcast_directory(self) -> None:
        self.transport.send_to_all("channel_list_updated", {"channels": self.list_channels()})
