"""gunicorn_conf.py

Gunicorn config for RelayChat behind Flask-SocketIO + Eventlet.

Run:
  RELAYCHAT_SOCKETIO_ASYNC=eventlet gunicorn -c gunicorn_conf.py wsgi:app

The listen address follows the same env vars as ``main.py``
(RELAYCHAT_HOST / RELAYCHAT_PORT, default 0.0.0.0:3000) unless
RELAYCHAT_BIND is given. There is always exactly one worker.
"""

from __future__ import annotations

import os


def _bind() -> str:
    explicit = os.environ.get("RELAYCHAT_BIND", "").strip()
    if explicit:
        return explicit
    host = os.environ.get("RELAYCHAT_HOST", "").strip() or "0.0.0.0"
    port = os.environ.get("RELAYCHAT_PORT", "").strip() or "3000"
    return f"{host}:{port}"


bind = _bind()
# Registries are in-process; a second worker would see a different chat.
workers = 1
worker_class = "eventlet"

# Sockets stay open for the whole session.
timeout = int(os.environ.get("RELAYCHAT_GUNICORN_TIMEOUT", "60"))
keepalive = 5

loglevel = os.environ.get("RELAYCHAT_LOG_LEVEL", "info").lower()
accesslog = "-"
errorlog = "-"

forwarded_allow_ips = os.environ.get("RELAYCHAT_FORWARDED_ALLOW_IPS", "*")


def on_starting(server):
    mode = os.environ.get("RELAYCHAT_SOCKETIO_ASYNC", "").strip().lower()
    if mode != "eventlet":
        server.log.warning(
            "RELAYCHAT_SOCKETIO_ASYNC=%r; the eventlet worker needs RELAYCHAT_SOCKETIO_ASYNC=eventlet", mode
        )
