"""wsgi.py

Gunicorn entrypoint for RelayChat.

Run (example):
  RELAYCHAT_SOCKETIO_ASYNC=eventlet \
  gunicorn -c gunicorn_conf.py wsgi:app

Notes:
- All chat state lives in this process. Run exactly one worker; there is no
  message queue to fan events out between workers.
"""

from __future__ import annotations

import os

# ---- Ensure eventlet monkey_patch happens as early as possible ----
_async = (os.environ.get("RELAYCHAT_SOCKETIO_ASYNC", "threading") or "threading").strip().lower()
if _async == "eventlet":
    import eventlet

    eventlet.monkey_patch()

from pathlib import Path

from config import apply_env_overrides, load_settings
from constants import CONFIG_FILE
from main import configure_logging
from server_init import create_app


def _resolve_config_path() -> Path:
    # Prefer explicit env path when running under systemd.
    p = os.environ.get("RELAYCHAT_CONFIG") or os.environ.get("RELAYCHAT_CONFIG_FILE") or CONFIG_FILE
    return Path(p)


_settings_path = _resolve_config_path()
_settings = load_settings(_settings_path)
apply_env_overrides(_settings)
configure_logging(_settings)

# Create the Flask app + Socket.IO integration.
app, socketio = create_app(_settings)

# Expose these for tooling / introspection.
app.config["RELAYCHAT_GUNICORN"] = True
app.config["RELAYCHAT_SETTINGS_PATH"] = str(_settings_path)
