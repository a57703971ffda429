"""Cache management API routes."""
from __future__ import annotations

from fastapi import APIRouter, Depends

from streamgate.dependencies import get_cache, get_config_service, get_session_store
from streamgate.services.cache_service import ResolutionCache
from streamgate.services.config_service import ConfigService
from streamgate.services.session_service import SessionStore

router = APIRouter(tags=["cache"])


@router.get("/api/cache/status")
async def cache_status(
    cfg: ConfigService = Depends(get_config_service),
    cache: ResolutionCache = Depends(get_cache),
    sessions: SessionStore = Depends(get_session_store),
):
    return {
        "backend": cfg.options.cache_backend,
        "entries": await cache.count(),
        "sessions": len(sessions),
        "ttl_seconds": cfg.cache_ttl,
        "session_ttl_seconds": cfg.session_ttl,
        "max_devices": cfg.max_devices,
    }


@router.post("/api/cache/clear")
async def clear_cache(cache: ResolutionCache = Depends(get_cache)):
    await cache.clear()
    return {"status": "ok", "message": "Cache cleared"}
