#!/usr/bin/env python3
"""
server_init.py
Initialises and runs the RelayChat Flask + Socket.IO application.
"""

from __future__ import annotations

import logging
import secrets
from typing import Any, Dict

from flask import Flask, request
from flask_cors import CORS
from flask_socketio import SocketIO

from constants import APP_VERSION
from routes_main import register_main_routes
from socket_handlers import register_socketio_handlers


def _normalize_cors_origins(val):
    if val is None:
        return None
    if isinstance(val, str):
        raw = val.strip()
        if not raw:
            return None
        # Support comma-separated strings
        if "," in raw:
            items = [x.strip() for x in raw.split(",") if x.strip()]
            return items or None
        return raw
    if isinstance(val, (list, tuple, set)):
        items = [str(x).strip() for x in val if str(x).strip()]
        return items or None
    return None


def _resolve_async_mode(settings: Dict[str, Any]) -> str:
    requested = str(settings.get("socketio_async_mode") or "threading").strip().lower()
    if requested == "eventlet":
        try:
            import eventlet  # noqa: F401
        except ImportError:
            logging.warning("[socketio] socketio_async_mode=eventlet but eventlet is not installed; using threading")
            return "threading"
        return "eventlet"
    if requested != "threading":
        logging.warning("[socketio] Unknown socketio_async_mode=%r; using threading", requested)
    return "threading"


def create_app(settings: Dict[str, Any]) -> tuple[Flask, SocketIO]:
    """Create and configure the Flask + Socket.IO application.

    This function does **not** start a server. It is safe to import from a
    Gunicorn `wsgi.py` module, and every call builds fresh chat state.
    """
    # ───── Flask App Core ─────
    app = Flask(__name__)
    app.config["RELAYCHAT_SETTINGS"] = settings
    app.secret_key = _ensure_secret_key(settings)

    @app.after_request
    def _add_security_headers(resp):
        resp.headers.setdefault("X-Content-Type-Options", "nosniff")
        resp.headers.setdefault("Referrer-Policy", "strict-origin-when-cross-origin")
        resp.headers.setdefault("X-Frame-Options", "DENY")
        return resp

    # ───── CORS ─────
    # Default: same-origin only. No credentialed cookies are used, so an
    # explicit "*" is allowed.
    cors_origins = _normalize_cors_origins(settings.get("cors_allowed_origins"))
    if cors_origins is not None:
        CORS(app, origins=cors_origins)

    # ───── SocketIO Setup ─────
    async_mode = _resolve_async_mode(settings)
    app.config["RELAYCHAT_SOCKETIO_ASYNC_MODE"] = async_mode

    # Media travels inside the event payload; leave room for the JSON envelope.
    max_media = int(settings.get("max_media_encoded_size") or 0)
    socketio = SocketIO(
        app,
        async_mode=async_mode,
        cors_allowed_origins=cors_origins,
        logger=False,
        engineio_logger=False,
        ping_interval=int(settings.get("ping_interval", 20)),
        ping_timeout=int(settings.get("ping_timeout", 15)),
        max_http_buffer_size=max(1_000_000, max_media + 1_000_000),
    )
    app.config["RELAYCHAT_SOCKETIO"] = socketio

    # ───── Global Socket.IO Error Handler ─────
    # One broken event must never take other connections down: log and move on.
    @socketio.on_error_default
    def _socketio_default_error_handler(e):
        sid = getattr(request, "sid", None)
        app.logger.exception("Socket.IO handler error (sid=%s): %s", sid, e)
        return {"success": False, "message": "Internal error"}

    ctx = register_socketio_handlers(socketio, settings)
    app.config["RELAYCHAT_CONTEXT"] = ctx

    register_main_routes(app, settings, ctx)

    logging.info(
        "RelayChat %s ready (async_mode=%s, channels=%s)",
        APP_VERSION,
        async_mode,
        ", ".join(c["name"] for c in ctx.channels.list_channels()),
    )
    return app, socketio


def run_web_server(settings: Dict[str, Any]) -> None:
    """Bootstrap the Flask-SocketIO app and run it."""
    app, socketio = create_app(settings)

    host = settings.get("host", "0.0.0.0")
    port = int(settings.get("port", 3000))
    debug = bool(settings.get("debug", False))

    logging.info("Starting %s on http://%s:%s (debug=%s)", settings.get("server_name", "RelayChat"), host, port, debug)

    # Reduce console spam from long-polling by filtering Werkzeug access logs for /socket.io.
    class _SocketIOAccessFilter(logging.Filter):
        def filter(self, record: logging.LogRecord) -> bool:
            return "/socket.io/" not in record.getMessage()

    logging.getLogger("werkzeug").addFilter(_SocketIOAccessFilter())

    run_kwargs = {}
    if app.config.get("RELAYCHAT_SOCKETIO_ASYNC_MODE") == "threading":
        # Single-process dev/LAN server; use eventlet + gunicorn for anything else.
        run_kwargs["allow_unsafe_werkzeug"] = True

    socketio.run(
        app,
        host=host,
        port=port,
        debug=debug,
        use_reloader=False,
        log_output=debug,
        **run_kwargs,
    )


# ───── Helpers ─────
def _ensure_secret_key(settings: Dict[str, Any]) -> str:
    key = settings.get("secret_key")
    if key:
        return str(key)
    key = secrets.token_urlsafe(64)
    settings["secret_key"] = key
    logging.info("Generated a one-off secret_key for this process.")
    return key
