"""Channel directory service — named channels loaded from channels.json with a refresh TTL."""
from __future__ import annotations

import asyncio
import json
import logging
import time
from typing import TYPE_CHECKING, Callable, Optional

import httpx

if TYPE_CHECKING:
    from streamgate.services.config_service import ConfigService
    from streamgate.services.http_client import HttpClientService

logger = logging.getLogger(__name__)

PLAYLIST_EXTENSION = ".m3u8"


class ChannelDirectoryError(Exception):
    """The channel directory file could not be loaded."""


class PlaylistFetchError(Exception):
    """A playlist URL could not be fetched."""


class ChannelDirectory:
    """Case-insensitive channel name -> URL lookup, reloaded from disk every ``ttl`` seconds."""

    def __init__(
        self,
        config_service: "ConfigService",
        http_client: "HttpClientService",
        clock: Callable[[], float] = time.time,
    ):
        self.config_service = config_service
        self.http_client = http_client
        self.clock = clock
        self._channels: Optional[dict[str, str]] = None
        self._loaded_at = 0.0
        self._lock = asyncio.Lock()

    @property
    def fallback_url(self) -> Optional[str]:
        return self.config_service.channels.fallback_url or None

    def _read_file(self) -> dict[str, str]:
        path = self.config_service.channels.file
        try:
            with open(path, encoding="utf-8") as f:
                entries = json.load(f)
        except (OSError, json.JSONDecodeError) as e:
            raise ChannelDirectoryError(f"Channel configuration unavailable: {e}") from e
        if not isinstance(entries, list):
            raise ChannelDirectoryError("Channel configuration unavailable: expected a list")

        channels: dict[str, str] = {}
        for entry in entries:
            if not isinstance(entry, dict):
                continue
            name = entry.get("Name") or entry.get("name")
            url = entry.get("Url") or entry.get("url")
            if name and url:
                channels[str(name).lower()] = str(url)
        return channels

    async def load(self) -> dict[str, str]:
        """Return the channel map, re-reading the file once the TTL has passed."""
        ttl = self.config_service.channels.ttl
        async with self._lock:
            now = self.clock()
            if self._channels is not None and now - self._loaded_at < ttl:
                return self._channels
            try:
                channels = await asyncio.to_thread(self._read_file)
            except ChannelDirectoryError as e:
                logger.error(f"Failed to load channels: {e}")
                raise
            self._channels = channels
            self._loaded_at = now
            logger.info(f"Loaded {len(channels)} channel(s)")
            return channels

    async def lookup(self, name: str) -> Optional[str]:
        channels = await self.load()
        return channels.get(name.lower())

    @staticmethod
    def is_playlist(url: str) -> bool:
        return url.split("?", 1)[0].endswith(PLAYLIST_EXTENSION)

    async def fetch_playlist(self, url: str) -> str:
        client = await self.http_client.get_client()
        try:
            response = await client.get(url)
        except httpx.HTTPError as e:
            raise PlaylistFetchError(f"Stream unavailable: {e}") from e
        if response.status_code != 200:
            raise PlaylistFetchError(f"Stream unavailable: status {response.status_code}")
        return response.text
