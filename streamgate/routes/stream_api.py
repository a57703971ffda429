"""Stream gateway routes — resolve a content ID and redirect the client to the media URL."""
from __future__ import annotations

import logging
from typing import Optional

from fastapi import APIRouter, Depends, Query, Request
from fastapi.responses import JSONResponse, RedirectResponse, Response

from streamgate.dependencies import get_gateway_service, get_session_transport
from streamgate.errors import GatewayError, InternalFault
from streamgate.services.gateway_service import GatewayService
from streamgate.services.session_transport import SessionTransport

logger = logging.getLogger(__name__)

router = APIRouter(tags=["stream"])


def error_response(error: GatewayError) -> JSONResponse:
    return JSONResponse(status_code=error.status_code, content=error.to_dict())


@router.get("/api/{content_type}")
async def stream_redirect(
    request: Request,
    content_type: str,
    id: Optional[str] = Query(None),
    gateway: GatewayService = Depends(get_gateway_service),
    transport: SessionTransport = Depends(get_session_transport),
) -> Response:
    try:
        result = await gateway.handle(content_type, id, transport.read(request))
    except GatewayError as e:
        return error_response(e)
    except Exception:
        logger.exception(f"[{content_type}] Unexpected error handling id={id!r}")
        return error_response(InternalFault())

    response = RedirectResponse(url=result.url, status_code=307)
    response.headers["Cache-Control"] = "no-store"
    if result.new_session:
        transport.attach(response, result.session_id)
    return response
