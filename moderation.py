#!/usr/bin/env python3
"""moderation.py

In-band moderation commands for privileged users.

    /kick <user>          disconnect a user
    /ban <user>           same as kick, different reason (no persistent ban list)
    /announce <text...>   flagged announcement to the channel
    /clear                ask clients to wipe the channel view

There is no sanction table: a banned user may come back under another name.
"""

from __future__ import annotations

import logging
import time
from typing import Callable

from audit import log_audit_event
from channels import system_message
from constants import ANNOUNCEMENT_USER
from identity import Connection, IdentityRegistry

log = logging.getLogger(__name__)

HELP_TEXT = "Unknown command. Available: /kick <user>, /ban <user>, /announce <message>, /clear"

_SANCTIONS = {
    "/kick": ("kick", "You were kicked by an administrator.", "was kicked by"),
    "/ban": ("ban", "You were banned by an administrator.", "was banned by"),
}


class ModerationEngine:
    def __init__(self, identities: IdentityRegistry, transport, evict: Callable[[str, str, str], None]):
        self.identities = identities
        self.transport = transport
        # evict(sid, code, reason): notify + full disconnect cleanup
        self.evict = evict

    def execute(self, sender: Connection, channel: str, text: str) -> None:
        parts = text.split()
        verb = parts[0].lower() if parts else ""
        args = parts[1:]

        if verb in _SANCTIONS:
            # Names may contain spaces: the target is the rest of the line.
            target_name = text.split(None, 1)[1].strip() if args else ""
            self._sanction(sender, channel, verb, target_name)
        elif verb == "/announce" and args:
            self._announce(sender, channel, " ".join(args))
        elif verb == "/clear" and not args:
            log_audit_event(sender.name, "clear", target=channel)
            self.transport.send_to_channel(channel, "clear_chat", {"server": channel, "by": sender.name})
        else:
            self._help(sender, channel)

    def _sanction(self, sender: Connection, channel: str, verb: str, target_name: str) -> None:
        if not target_name:
            self._help(sender, channel)
            return
        target = self.identities.by_name(target_name)
        if target is None:
            log.debug("%s %s: no such user %r", sender.name, verb, target_name)
            return
        if target.sid == sender.sid:
            self._help(sender, channel)
            return

        code, reason, verb_text = _SANCTIONS[verb]
        target_name = target.name
        log_audit_event(sender.name, code, target=target_name, details=f"channel={channel}")
        self.evict(target.sid, code, reason)
        self.transport.send_to_channel(
            channel, "chat_message", system_message(channel, f"{target_name} {verb_text} {sender.name}")
        )

    def _announce(self, sender: Connection, channel: str, text: str) -> None:
        log_audit_event(sender.name, "announce", target=channel, details=text)
        self.transport.send_to_channel(
            channel,
            "chat_message",
            {
                "server": channel,
                "user": ANNOUNCEMENT_USER,
                "message": text,
                "type": "announcement",
                "announcement": True,
                "is_admin": True,
                "avatar": None,
                "timestamp": time.time(),
            },
        )

    def _help(self, sender: Connection, channel: str) -> None:
        self.transport.send_to_connection(sender.sid, "chat_message", system_message(channel, HELP_TEXT))
