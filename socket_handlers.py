#!/usr/bin/env python3
"""
socket_handlers.py

Socket.IO event wiring for the RelayChat server.

Builds the per-app ChatContext on top of the Socket.IO transport and registers
the split handler modules (see realtime/*.py).
"""

from realtime.state import ChatContext
from transport import SocketIOTransport


def register_socketio_handlers(socketio, settings) -> ChatContext:
    """
    Registers all Socket.IO event handlers and returns the chat context they share.
    """
    ctx = ChatContext(SocketIOTransport(socketio), settings)

    from realtime import presence, rooms, voice
    presence.register(socketio, settings, ctx)
    rooms.register(socketio, settings, ctx)
    voice.register(socketio, settings, ctx)
    return ctx
