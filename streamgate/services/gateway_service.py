"""Gateway service — per-request orchestration of session, admission, cache and resolver."""
from __future__ import annotations

import logging
from typing import TYPE_CHECKING, Optional

from pydantic import BaseModel

from streamgate.errors import (
    DeviceLimitReached,
    UnknownContentType,
    ValidationError,
)
from streamgate.models.gateway import MAX_ID_LENGTH, SAFE_ID_PATTERN, ContentRequest
from streamgate.services.admission import admit

if TYPE_CHECKING:
    from streamgate.services.cache_service import ResolutionCache
    from streamgate.services.config_service import ConfigService
    from streamgate.services.resolver import Resolver
    from streamgate.services.session_service import SessionStore

logger = logging.getLogger(__name__)


class GatewayResult(BaseModel):
    """Outcome of an admitted request."""

    url: str
    session_id: str
    new_session: bool
    from_cache: bool
    active_devices: int


class GatewayService:
    """Runs one stream request through validation, admission and resolution.

    Nothing touches the session's device count until a URL is in hand, so
    a rejected or failed request never uses up a slot.
    """

    def __init__(
        self,
        config_service: "ConfigService",
        session_store: "SessionStore",
        cache: "ResolutionCache",
        resolver: "Resolver",
    ):
        self.config_service = config_service
        self.session_store = session_store
        self.cache = cache
        self.resolver = resolver

    def validate(self, content_type: str, content_id: Optional[str]) -> ContentRequest:
        valid = self.config_service.get_content_types()
        if content_type not in valid:
            raise UnknownContentType(content_type, valid)
        if not content_id:
            raise ValidationError("ID parameter is required and must be a string")
        if len(content_id) > MAX_ID_LENGTH or not SAFE_ID_PATTERN.match(content_id):
            raise ValidationError("ID parameter contains invalid characters")
        return ContentRequest(content_type=content_type, id=content_id)

    async def handle(
        self,
        content_type: str,
        content_id: Optional[str],
        session_ref: Optional[str],
    ) -> GatewayResult:
        content = self.validate(content_type, content_id)

        session, created = await self.session_store.get_or_create(session_ref)
        admitted = False
        try:
            decision = admit(session, self.config_service.max_devices)
            if not decision.allowed:
                logger.info(f"Device limit {decision.limit} reached for session {session.session_id[:8]}")
                raise DeviceLimitReached(decision.limit)

            resolved, from_cache = await self.cache.get_or_resolve(
                content.cache_key, lambda: self.resolver.resolve(content)
            )
            await self.session_store.record_admission(session, self.config_service.max_devices)
            admitted = True
        finally:
            # A client that disconnects mid-resolution lands here too
            if created and not admitted:
                await self.session_store.discard(session.session_id)

        logger.info(
            f"[{content.content_type}] {content.id} -> redirect "
            f"({'cache' if from_cache else 'upstream'}), devices={session.active_devices}"
        )
        return GatewayResult(
            url=resolved.url,
            session_id=session.session_id,
            new_session=created,
            from_cache=from_cache,
            active_devices=session.active_devices,
        )
