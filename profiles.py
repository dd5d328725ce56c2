#!/usr/bin/env python3
"""profiles.py

Per-connection profile metadata (bio, status, badges, free-form fields).

Profiles live exactly as long as the registered connection that owns them and
are never persisted.
"""

from __future__ import annotations

import time
from dataclasses import asdict, dataclass, field
from typing import Any

from constants import PROFILE_FIELDS, PROFILE_LIMITS
from identity import Connection, IdentityRegistry


@dataclass
class Profile:
    display_name: str
    is_admin: bool = False
    bio: str = ""
    custom_status: str = ""
    pronouns: str = ""
    location: str = ""
    website: str = ""
    birthday: str = ""
    favorite_color: str = ""
    theme: str = ""
    joined_at: float = field(default_factory=time.time)

    @property
    def badges(self) -> list[str]:
        return ["admin"] if self.is_admin else []

    def to_dict(self) -> dict[str, Any]:
        out = asdict(self)
        out.pop("is_admin", None)
        out["badges"] = self.badges
        return out


def _validate_patch(patch: dict) -> tuple[dict[str, str] | None, str | None]:
    """Keep allow-listed fields and check limits. Returns (clean, error)."""
    clean: dict[str, str] = {}
    for key in PROFILE_FIELDS:
        if key not in patch:
            continue
        val = patch[key]
        if val is None:
            val = ""
        if not isinstance(val, str):
            return None, f"{key} must be a string"
        val = val.strip()
        lo, hi = PROFILE_LIMITS.get(key, (0, None))
        if len(val) < lo:
            return None, f"{key} must be at least {lo} character(s)"
        if hi is not None and len(val) > hi:
            return None, f"{key} must be at most {hi} characters"
        clean[key] = val
    return clean, None


class ProfileStore:
    def __init__(self, identities: IdentityRegistry):
        self.identities = identities
        self._profiles: dict[str, Profile] = {}

    def create(self, conn: Connection) -> Profile:
        profile = Profile(display_name=conn.name or "", is_admin=conn.is_admin)
        self._profiles[conn.sid] = profile
        return profile

    def get(self, sid: str | None) -> Profile | None:
        if sid is None:
            return None
        return self._profiles.get(sid)

    def remove(self, sid: str) -> None:
        self._profiles.pop(sid, None)

    def update(self, sid: str, patch: Any) -> tuple[Profile | None, str | None]:
        """Apply a partial update owned by ``sid``; all-or-nothing."""
        conn = self.identities.get_registered(sid)
        profile = self._profiles.get(sid)
        if conn is None or profile is None:
            return None, "Profile not found"
        if not isinstance(patch, dict):
            return None, "Invalid profile update"

        clean, err = _validate_patch(patch)
        if err:
            return None, err

        new_name = clean.get("display_name")
        if new_name is not None and new_name != conn.name:
            err = self.identities.rename(sid, new_name)
            if err:
                return None, err

        for key, val in clean.items():
            setattr(profile, key, val)
        return profile, None

    def __len__(self) -> int:
        return len(self._profiles)
