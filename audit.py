#!/usr/bin/env python3
"""audit.py

Audit trail for RelayChat.

Nothing is persisted: audit events are structured INFO records on the
``relaychat.audit`` logger, so they land wherever main.configure_logging
points the root handlers (log file + stdout).
"""

from __future__ import annotations

import logging

_AUDIT_LOGGER = logging.getLogger("relaychat.audit")


def log_audit_event(actor: str | None, action: str, target: str | None = None, details: str | None = None) -> None:
    """Record an audit log entry."""
    try:
        _AUDIT_LOGGER.info(
            "actor=%s action=%s target=%s details=%s",
            actor or "-",
            action,
            target or "-",
            details or "",
            extra={"audit_actor": actor, "audit_action": action, "audit_target": target},
        )
    except Exception as e:
        logging.error("Failed to write audit log (%s, %s, %s, %s): %s", actor, action, target, details, e)
