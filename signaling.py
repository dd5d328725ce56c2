#!/usr/bin/env python3
"""signaling.py

Stateless relay for peer-to-peer call signaling (offer/answer/ICE/invite/
response/end). Calls are addressed to a connection, not a channel, so no
membership check happens here.
"""

from __future__ import annotations

import logging
from typing import Any

from constants import SIGNAL_EVENTS
from identity import IdentityRegistry

log = logging.getLogger(__name__)

SIGNAL_KINDS = frozenset(SIGNAL_EVENTS.values())


class SignalingRelay:
    def __init__(self, identities: IdentityRegistry, transport):
        self.identities = identities
        self.transport = transport

    def relay(self, kind: str, target_sid: Any, payload: Any, from_sid: str) -> bool:
        if kind not in SIGNAL_KINDS:
            raise ValueError(f"unknown signaling event: {kind}")
        target = str(target_sid) if target_sid else None
        if not self.identities.is_live(target):
            log.debug("%s from %s dropped: target %r is gone", kind, from_sid, target_sid)
            return False
        sender = self.identities.get(from_sid)
        self.transport.send_to_connection(
            target,
            kind,
            {"from": from_sid, "from_name": sender.name if sender else None, "payload": payload},
        )
        return True
