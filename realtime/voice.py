"""Socket.IO handlers: voice/video call signaling relay."""

from flask import request

from constants import SIGNAL_EVENTS


def register(socketio, settings, ctx):
    """Register Socket.IO event handlers for this module."""

    def _make_handler(kind):
        @ctx.serialized
        def handle_signal(data=None):
            data = data if isinstance(data, dict) else {}
            ctx.signaling.relay(kind, data.get("target"), data.get("payload"), request.sid)

        handle_signal.__name__ = f"handle_{kind}"
        return handle_signal

    for event, kind in SIGNAL_EVENTS.items():
        socketio.on(event)(_make_handler(kind))
