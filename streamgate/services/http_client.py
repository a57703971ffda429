"""HTTP client service — managed httpx.AsyncClients with connection pooling."""
from __future__ import annotations

import logging
from typing import TYPE_CHECKING, Optional

import httpx

if TYPE_CHECKING:
    from streamgate.services.config_service import ConfigService

logger = logging.getLogger(__name__)

# Headers for plain content fetches (channel playlists)
HEADERS = {
    "User-Agent": "Mozilla/5.0 (Windows NT 10.0; Win64; x64) AppleWebKit/537.36 "
                  "(KHTML, like Gecko) Chrome/120.0.0.0 Safari/537.36",
    "Accept": "*/*",
    "Accept-Language": "en-US,en;q=0.9",
    "Connection": "keep-alive",
}


class HttpClientService:
    """Manages the shared httpx.AsyncClients.

    The probe client never follows redirects: the upstream answers a probe
    with a 302 whose ``Location`` is the media URL, and that response has to
    reach the resolver as-is.
    """

    def __init__(self, config_service: "ConfigService", transport: Optional[httpx.AsyncBaseTransport] = None):
        self.config_service = config_service
        self._transport = transport
        self._probe_client: Optional[httpx.AsyncClient] = None
        self._fetch_client: Optional[httpx.AsyncClient] = None

    async def get_probe_client(self) -> httpx.AsyncClient:
        if self._probe_client is None or self._probe_client.is_closed:
            upstream = self.config_service.upstream
            auth = None
            if upstream.username:
                auth = httpx.BasicAuth(upstream.username, upstream.password)
            self._probe_client = httpx.AsyncClient(
                headers=upstream.headers,
                auth=auth,
                timeout=httpx.Timeout(upstream.timeout),
                limits=httpx.Limits(max_connections=100, max_keepalive_connections=20),
                follow_redirects=False,
                transport=self._transport,
            )
        return self._probe_client

    async def get_client(self) -> httpx.AsyncClient:
        if self._fetch_client is None or self._fetch_client.is_closed:
            self._fetch_client = httpx.AsyncClient(
                headers=HEADERS,
                timeout=httpx.Timeout(connect=10.0, read=30.0, write=10.0, pool=10.0),
                limits=httpx.Limits(max_connections=50, max_keepalive_connections=10),
                follow_redirects=True,
                transport=self._transport,
            )
        return self._fetch_client

    async def close(self):
        for client in (self._probe_client, self._fetch_client):
            if client is not None and not client.is_closed:
                await client.aclose()
        self._probe_client = None
        self._fetch_client = None
        logger.info("HTTP clients closed")
