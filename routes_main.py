#!/usr/bin/env python3
"""routes_main.py

Plain HTTP routes. The chat itself is Socket.IO only; the UI is served
elsewhere.
"""

from __future__ import annotations

from datetime import datetime, timezone

from flask import jsonify

from constants import APP_VERSION


def register_main_routes(app, settings, ctx):
    if settings.get("enable_health_check_endpoint", True):
        endpoint = settings.get("health_check_endpoint") or "/health"

        @app.route(endpoint, methods=["GET"])
        def health_check():
            # Minimal health payload. Avoid leaking config or names.
            with ctx.lock:
                connections = len(ctx.identities)
                channels = len(ctx.channels)
            return jsonify(
                {
                    "status": "ok",
                    "version": APP_VERSION,
                    "connections": connections,
                    "channels": channels,
                    "time": datetime.now(timezone.utc).isoformat(),
                }
            )
