"""Pydantic models for application configuration."""
from __future__ import annotations

from typing import Optional

from pydantic import BaseModel, ConfigDict, Field

DEFAULT_USER_AGENT = (
    "Mozilla/5.0 (Windows NT 10.0; Win64; x64) AppleWebKit/537.36 "
    "(KHTML, like Gecko) Chrome/91.0.4472.124 Safari/537.36"
)


def _default_paths() -> dict[str, str]:
    return {
        "live": "/live/42166/42166",
        "movies": "/movies",
        "series": "/series",
    }


def _default_headers() -> dict[str, str]:
    return {
        "Icy-MetaData": "1",
        "Accept-Encoding": "identity",
        "Connection": "Keep-Alive",
        "User-Agent": DEFAULT_USER_AGENT,
    }


class UpstreamConfig(BaseModel):
    """The IPTV origin the resolver probes."""
    model_config = ConfigDict(extra="allow")

    base_url: str = "http://starshare.org:80"
    paths: dict[str, str] = Field(default_factory=_default_paths)
    username: str = ""
    password: str = ""
    timeout: float = 10.0
    probe_method: str = "HEAD"  # "HEAD" or "GET"
    headers: dict[str, str] = Field(default_factory=_default_headers)


class Options(BaseModel):
    """Gateway options."""
    model_config = ConfigDict(extra="allow")

    max_devices: int = 20
    cache_ttl: int = 60
    session_ttl: int = 24 * 3600
    sweep_interval: int = 3600
    cache_backend: str = "memory"  # "memory" or "disk"
    cache_dir: Optional[str] = None
    cache_max_entries: int = 10_000
    session_transport: str = "cookie"  # "cookie" or "header"


class ChannelsConfig(BaseModel):
    """Named channel directory settings."""
    model_config = ConfigDict(extra="allow")

    file: Optional[str] = None
    ttl: int = 300
    fallback_url: Optional[str] = None


class AppConfig(BaseModel):
    """Root application configuration."""
    model_config = ConfigDict(extra="allow")

    upstream: UpstreamConfig = Field(default_factory=UpstreamConfig)
    options: Options = Field(default_factory=Options)
    channels: ChannelsConfig = Field(default_factory=ChannelsConfig)
