"""Channel directory route — named channels served as playlists or redirects."""
from __future__ import annotations

import logging
from typing import Optional

from fastapi import APIRouter, Depends, Query
from fastapi.responses import JSONResponse, RedirectResponse, Response

from streamgate.dependencies import get_channel_directory
from streamgate.services.channel_service import ChannelDirectory, ChannelDirectoryError, PlaylistFetchError

logger = logging.getLogger(__name__)

router = APIRouter(tags=["channels"])

PLAYLIST_MEDIA_TYPE = "application/vnd.apple.mpegurl"
CHANNEL_HEADERS = {
    "Access-Control-Allow-Origin": "*",
    "Cache-Control": "public, max-age=60",
}


async def serve_stream(directory: ChannelDirectory, url: str) -> Response:
    """Re-serve a playlist's content, or redirect to any other stream URL."""
    if directory.is_playlist(url):
        content = await directory.fetch_playlist(url)
        return Response(content=content, media_type=PLAYLIST_MEDIA_TYPE, headers=CHANNEL_HEADERS)
    return RedirectResponse(url=url, status_code=307, headers=CHANNEL_HEADERS)


async def serve_fallback(directory: ChannelDirectory, status_code: int, message: str) -> Response:
    fallback = directory.fallback_url
    if fallback:
        try:
            return await serve_stream(directory, fallback)
        except PlaylistFetchError as e:
            logger.warning(f"Fallback stream failed: {e}")
            return RedirectResponse(url=fallback, status_code=307, headers=CHANNEL_HEADERS)
    return JSONResponse(status_code=status_code, content={"error": message}, headers=CHANNEL_HEADERS)


@router.get("/api/live.m3u8")
async def channel_stream(
    id: Optional[str] = Query(None),
    directory: ChannelDirectory = Depends(get_channel_directory),
) -> Response:
    if not id:
        return JSONResponse(
            status_code=400,
            content={"error": "Valid channel ID parameter required"},
            headers=CHANNEL_HEADERS,
        )

    try:
        url = await directory.lookup(id)
    except ChannelDirectoryError:
        return await serve_fallback(directory, 503, "Channel configuration unavailable")

    if not url:
        logger.info(f"Channel {id} not found")
        return await serve_fallback(directory, 404, f"Channel {id} not found")

    try:
        return await serve_stream(directory, url)
    except PlaylistFetchError as e:
        logger.warning(f"Stream for {id} failed: {e}")
        return await serve_fallback(directory, 502, "Stream unavailable")
