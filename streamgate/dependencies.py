"""FastAPI dependency injection — provides services via Depends()."""
from __future__ import annotations

from fastapi import Request

from streamgate.services.cache_service import ResolutionCache
from streamgate.services.channel_service import ChannelDirectory
from streamgate.services.config_service import ConfigService
from streamgate.services.gateway_service import GatewayService
from streamgate.services.session_service import SessionStore
from streamgate.services.session_transport import SessionTransport


def get_config_service(request: Request) -> ConfigService:
    return request.app.state.config_service


def get_cache(request: Request) -> ResolutionCache:
    return request.app.state.cache


def get_session_store(request: Request) -> SessionStore:
    return request.app.state.session_store


def get_session_transport(request: Request) -> SessionTransport:
    return request.app.state.session_transport


def get_gateway_service(request: Request) -> GatewayService:
    return request.app.state.gateway_service


def get_channel_directory(request: Request) -> ChannelDirectory:
    return request.app.state.channel_directory
