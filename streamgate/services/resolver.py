"""Resolver — turns a content reference into a media URL by probing the upstream origin."""
from __future__ import annotations

import logging
import time
from typing import TYPE_CHECKING, Callable

import httpx

from streamgate.errors import ResolutionFailure
from streamgate.models.gateway import ContentRequest, ResolvedURL

if TYPE_CHECKING:
    from streamgate.services.config_service import ConfigService
    from streamgate.services.http_client import HttpClientService

logger = logging.getLogger(__name__)

# The only status the origin uses to hand out a media URL
UPSTREAM_REDIRECT_STATUS = 302


class Resolver:
    """Probes the upstream for a content reference and captures its redirect target.

    One request per call, no retries.  Success is exactly a 302 carrying a
    ``Location`` header; the header value is returned verbatim.  Anything
    else (another status, a transport error, a timeout) raises
    ``ResolutionFailure``.
    """

    def __init__(
        self,
        config_service: "ConfigService",
        http_client: "HttpClientService",
        clock: Callable[[], float] = time.time,
    ):
        self.config_service = config_service
        self.http_client = http_client
        self.clock = clock

    def build_target(self, content: ContentRequest) -> str:
        upstream = self.config_service.upstream
        path = upstream.paths[content.content_type]
        return f"{upstream.base_url.rstrip('/')}{path}/{content.id}.{content.extension}"

    async def resolve(self, content: ContentRequest) -> ResolvedURL:
        target = self.build_target(content)
        method = self.config_service.upstream.probe_method.upper()
        client = await self.http_client.get_probe_client()

        try:
            if method == "GET":
                # Only the status line and headers are needed; never read the body.
                async with client.stream("GET", target) as response:
                    status = response.status_code
                    location = response.headers.get("location")
            else:
                response = await client.head(target)
                status = response.status_code
                location = response.headers.get("location")
        except httpx.TimeoutException as e:
            logger.warning(f"Upstream probe timed out for {target}: {e}")
            raise ResolutionFailure(target, "timeout") from e
        except httpx.HTTPError as e:
            logger.warning(f"Upstream probe failed for {target}: {e}")
            raise ResolutionFailure(target, "unreachable") from e

        if status != UPSTREAM_REDIRECT_STATUS or not location:
            logger.warning(f"Upstream did not redirect for {target}: status {status}")
            raise ResolutionFailure(target, "no redirect", status=status)

        logger.debug(f"Resolved {content.cache_key} -> {location}")
        return ResolvedURL(url=location, resolved_at=self.clock())
