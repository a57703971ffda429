"""Pydantic models for stream resolution and sessions."""
from __future__ import annotations

import re

from pydantic import BaseModel, ConfigDict

# Characters allowed in a content ID and kept in cache keys.
SAFE_ID_PATTERN = re.compile(r"^[A-Za-z0-9._-]+$")
UNSAFE_ID_CHARS = re.compile(r"[^A-Za-z0-9._-]")
MAX_ID_LENGTH = 128


def sanitize_id(content_id: str) -> str:
    return UNSAFE_ID_CHARS.sub("_", content_id)


class ContentRequest(BaseModel):
    """A validated (content type, id) pair."""
    model_config = ConfigDict(frozen=True)

    content_type: str
    id: str

    @property
    def cache_key(self) -> str:
        return f"{self.content_type}_{sanitize_id(self.id)}"

    @property
    def extension(self) -> str:
        return "ts" if self.content_type == "live" else "mp4"


class ResolvedURL(BaseModel):
    """A media URL captured from an upstream redirect."""
    model_config = ConfigDict(frozen=True)

    url: str
    resolved_at: float

    def is_fresh(self, now: float, ttl: float) -> bool:
        return now - self.resolved_at < ttl


class Session(BaseModel):
    """Per-client session state owned by the session store."""

    session_id: str
    active_devices: int = 0
    created_at: float
    last_active_at: float
