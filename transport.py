#!/usr/bin/env python3
"""transport.py

The narrow slice of Socket.IO the chat core is allowed to touch.

Handlers translate wire events into core calls; the core answers only through
this object (room join/leave, emit to a room / a single connection /
everyone, forced disconnect). Tests swap in a recording fake.
"""

from __future__ import annotations

import logging
from typing import Any

log = logging.getLogger(__name__)


class SocketIOTransport:
    def __init__(self, socketio, namespace: str = "/"):
        self.socketio = socketio
        self.namespace = namespace

    def join(self, sid: str, channel: str) -> None:
        self.socketio.server.enter_room(sid, channel, namespace=self.namespace)

    def leave(self, sid: str, channel: str) -> None:
        self.socketio.server.leave_room(sid, channel, namespace=self.namespace)

    def send_to_channel(self, channel: str, event: str, payload: Any) -> None:
        self.socketio.emit(event, payload, to=channel, namespace=self.namespace)

    def send_to_connection(self, sid: str, event: str, payload: Any) -> None:
        self.socketio.emit(event, payload, to=sid, namespace=self.namespace)

    def send_to_all(self, event: str, payload: Any) -> None:
        self.socketio.emit(event, payload, namespace=self.namespace)

    def disconnect(self, sid: str) -> None:
        try:
            self.socketio.server.disconnect(sid, namespace=self.namespace)
        except Exception as e:
            # Already gone on the transport side; the core cleanup still ran.
            log.debug("disconnect(%s) failed: %s", sid, e)
