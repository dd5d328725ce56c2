#!/usr/bin/env python3

from __future__ import annotations


# Application version (semantic-ish). Used for the health endpoint + packaging.
APP_VERSION = "0.3.0"

# Path to the plaintext JSON server configuration file
CONFIG_FILE = "server_config.json"

# Stored name + sender labels
ADMIN_NAME = "Admin"
SYSTEM_USER = "System"
ANNOUNCEMENT_USER = "📢 Announcement"

# Fallback sentinel; override with RELAYCHAT_ADMIN_SENTINEL or admin_sentinel.
DEFAULT_ADMIN_SENTINEL = "__admin__"

# Built-in channels, canonical order: (name, icon)
BUILTIN_CHANNELS: list[tuple[str, str]] = [
    ("general", "💬"),
    ("random", "🎲"),
    ("gaming", "🎮"),
    ("music", "🎵"),
    ("tech", "💻"),
]
CUSTOM_CHANNEL_ICON = "#"

MIN_USERNAME_LENGTH = 2
MIN_CHANNEL_NAME_LENGTH = 2
MAX_CHANNEL_NAME_LENGTH = 20
MAX_MESSAGE_LENGTH = 2000

# Media passes through as an encoded blob (normally a base64 data URL).
# ~7M characters of base64 covers the 5 MB file limit clients enforce.
ALLOWED_MEDIA_TYPES = ("image/png", "image/jpeg", "image/gif", "video/mp4", "video/webm")
MAX_MEDIA_ENCODED_SIZE = 7_000_000

# Profile limits
PROFILE_FIELDS = (
    "display_name",
    "bio",
    "custom_status",
    "pronouns",
    "location",
    "website",
    "birthday",
    "favorite_color",
    "theme",
)
PROFILE_LIMITS = {
    "display_name": (1, 32),
    "bio": (0, 200),
    "custom_status": (0, 100),
}

# Peer-addressed voice/video call signaling: client event -> forwarded event
SIGNAL_EVENTS = {
    "signal_offer": "call_offer",
    "signal_answer": "call_answer",
    "signal_ice_candidate": "ice_candidate",
    "signal_call_invite": "call_invite",
    "signal_call_response": "call_response",
    "signal_call_end": "call_end",
}
