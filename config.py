#!/usr/bin/env python3
"""config.py

RelayChat settings: defaults, the plaintext JSON settings file, and
environment overrides.

Nothing in here is secret except ``secret_key`` and ``admin_sentinel``;
prefer the env vars (SECRET_KEY, RELAYCHAT_ADMIN_SENTINEL) for those.
"""

from __future__ import annotations

import json
import logging
import os
from datetime import datetime
from pathlib import Path
from typing import Any, Dict

from constants import (
    ALLOWED_MEDIA_TYPES,
    BUILTIN_CHANNELS,
    DEFAULT_ADMIN_SENTINEL,
    MAX_CHANNEL_NAME_LENGTH,
    MAX_MEDIA_ENCODED_SIZE,
    MAX_MESSAGE_LENGTH,
    MIN_CHANNEL_NAME_LENGTH,
)


def get_default_settings() -> Dict[str, Any]:
    """Return the full set of defaults for RelayChat."""
    return {
        # ── Core server ──────────────────────────────────────────────────
        "server_name": "RelayChat",
        "host": "0.0.0.0",
        "port": 3000,
        "debug": False,
        # Generated per process if empty (only signs Flask cookies).
        "secret_key": "",

        # ── Chat ─────────────────────────────────────────────────────────
        "admin_sentinel": os.getenv("RELAYCHAT_ADMIN_SENTINEL") or DEFAULT_ADMIN_SENTINEL,
        "builtin_channels": [list(b) for b in BUILTIN_CHANNELS],
        "min_channel_name_length": MIN_CHANNEL_NAME_LENGTH,
        "max_channel_name_length": MAX_CHANNEL_NAME_LENGTH,
        "max_message_length": MAX_MESSAGE_LENGTH,
        "allowed_media_types": list(ALLOWED_MEDIA_TYPES),
        "max_media_encoded_size": MAX_MEDIA_ENCODED_SIZE,

        # ── Socket.IO ────────────────────────────────────────────────────
        # threading | eventlet
        "socketio_async_mode": "threading",
        # None -> same-origin only. A list or comma-separated string opens CORS.
        "cors_allowed_origins": None,
        "ping_interval": 20,
        "ping_timeout": 15,

        # ── HTTP ─────────────────────────────────────────────────────────
        "enable_health_check_endpoint": True,
        "health_check_endpoint": "/health",

        # ── Logging ──────────────────────────────────────────────────────
        "log_level": "INFO",
        "log_format": "%(asctime)s - %(name)s - %(levelname)s - %(message)s",
        "log_file_path": "logs/server.log",
    }


def load_settings(path: Path) -> Dict[str, Any]:
    """Load settings from JSON over the defaults. Returns defaults if missing."""
    settings = get_default_settings()
    if not path.exists():
        return settings

    try:
        with path.open("r", encoding="utf-8") as fp:
            loaded = json.load(fp)
        if not isinstance(loaded, dict):
            raise ValueError("top-level JSON value must be an object")
    except Exception as exc:
        logging.warning("Could not parse %s as JSON: %s", path, exc)
        # Keep the broken file around for inspection and run on defaults.
        ts = datetime.now().strftime("%Y%m%d-%H%M%S")
        bad_path = path.with_suffix(path.suffix + f".bad-{ts}")
        try:
            path.rename(bad_path)
            logging.warning("Backed up invalid settings file to: %s", bad_path)
        except Exception as e2:
            logging.warning("Could not back up invalid settings file: %s", e2)
        return settings

    settings.update(loaded)
    return settings


def save_settings(path: Path, settings: Dict[str, Any]) -> None:
    path.parent.mkdir(parents=True, exist_ok=True)
    to_save = dict(settings)
    # Never write a generated per-process secret back to disk.
    to_save.pop("secret_key", None)
    with path.open("w", encoding="utf-8") as fp:
        json.dump(to_save, fp, indent=2, ensure_ascii=False)


def apply_env_overrides(settings: Dict[str, Any]) -> None:
    """Apply env overrides for secrets and runtime deployment."""

    def _bool_env(*names: str) -> bool | None:
        for n in names:
            v = os.getenv(n)
            if v is None:
                continue
            v = v.strip().lower()
            if v in ("1", "true", "yes", "y", "on"):
                return True
            if v in ("0", "false", "no", "n", "off"):
                return False
        return None

    def _str_env(*names: str) -> str | None:
        for n in names:
            v = os.getenv(n)
            if v is not None and v.strip() != "":
                return v.strip()
        return None

    def _int_env(*names: str) -> int | None:
        v = _str_env(*names)
        if v is None:
            return None
        try:
            return int(v)
        except ValueError:
            return None

    host = _str_env("RELAYCHAT_HOST", "HOST")
    if host:
        settings["host"] = host

    port = _int_env("RELAYCHAT_PORT", "PORT")
    if port:
        settings["port"] = port

    debug = _bool_env("RELAYCHAT_DEBUG")
    if debug is not None:
        settings["debug"] = debug

    secret = _str_env("SECRET_KEY", "RELAYCHAT_SECRET_KEY")
    if secret:
        settings["secret_key"] = secret

    sentinel = _str_env("RELAYCHAT_ADMIN_SENTINEL")
    if sentinel:
        settings["admin_sentinel"] = sentinel

    level = _str_env("RELAYCHAT_LOG_LEVEL")
    if level:
        settings["log_level"] = level

    log_file = _str_env("RELAYCHAT_LOG_FILE")
    if log_file:
        settings["log_file_path"] = log_file

    origins = _str_env("RELAYCHAT_CORS_ORIGINS")
    if origins:
        settings["cors_allowed_origins"] = origins

    async_mode = _str_env("RELAYCHAT_SOCKETIO_ASYNC")
    if async_mode:
        settings["socketio_async_mode"] = async_mode.lower()
