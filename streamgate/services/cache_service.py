"""Resolution cache — short-lived memo of resolved media URLs, in memory or on disk."""
from __future__ import annotations

import asyncio
import logging
import os
import tempfile
import time
from typing import Awaitable, Callable, Optional

from streamgate.errors import CacheStorageError
from streamgate.models.gateway import ResolvedURL

logger = logging.getLogger(__name__)

CACHE_SUFFIX = ".cache"


class ResolutionCache:
    """In-memory resolution cache keyed by ``<content_type>_<sanitized id>``.

    ``get`` treats an entry older than ``ttl`` exactly like a missing one.
    ``put`` overwrites unconditionally.  ``get_or_resolve`` adds
    single-flight on top: concurrent misses on one key await a single shared
    resolution, which keeps running even if every waiter goes away.
    """

    def __init__(self, ttl: float, max_entries: int = 10_000, clock: Callable[[], float] = time.time):
        self.ttl = ttl
        self.max_entries = max_entries
        self.clock = clock
        self._entries: dict[str, ResolvedURL] = {}
        self._inflight: dict[str, asyncio.Future] = {}

    # ------------------------------------------------------------------
    # Storage primitives (overridden by the disk backend)
    # ------------------------------------------------------------------

    async def _load(self, key: str) -> Optional[ResolvedURL]:
        return self._entries.get(key)

    async def _store(self, key: str, resolved: ResolvedURL) -> None:
        self._entries[key] = resolved
        if len(self._entries) > self.max_entries:
            self._evict()

    async def _clear(self) -> None:
        self._entries.clear()

    async def count(self) -> int:
        return len(self._entries)

    async def _sweep(self) -> int:
        before = len(self._entries)
        self._evict()
        return before - len(self._entries)

    def _evict(self) -> None:
        now = self.clock()
        for key, entry in list(self._entries.items()):
            if not entry.is_fresh(now, self.ttl):
                del self._entries[key]
        overflow = len(self._entries) - self.max_entries
        if overflow > 0:
            oldest = sorted(self._entries, key=lambda k: self._entries[k].resolved_at)[:overflow]
            for key in oldest:
                del self._entries[key]

    # ------------------------------------------------------------------
    # Public API
    # ------------------------------------------------------------------

    async def get(self, key: str) -> Optional[ResolvedURL]:
        entry = await self._load(key)
        if entry is None or not entry.is_fresh(self.clock(), self.ttl):
            return None
        return entry

    async def put(self, key: str, resolved: ResolvedURL) -> None:
        await self._store(key, resolved)

    async def clear(self) -> None:
        await self._clear()
        logger.info("Resolution cache cleared")

    async def sweep(self) -> int:
        """Drop expired entries, then the oldest ones beyond ``max_entries``; returns how many went."""
        removed = await self._sweep()
        if removed:
            logger.info(f"Cache sweep removed {removed} cache entr{'y' if removed == 1 else 'ies'}")
        return removed

    async def sweep_loop(self, interval: float) -> None:
        """Background task that sweeps the cache every ``interval`` seconds."""
        logger.info("Cache sweep task started")
        while True:
            try:
                await asyncio.sleep(interval)
                await self.sweep()
            except asyncio.CancelledError:
                logger.info("Cache sweep task cancelled")
                break
            except Exception as e:
                logger.error(f"Cache sweep error: {e}")

    async def get_or_resolve(
        self,
        key: str,
        resolve: Callable[[], Awaitable[ResolvedURL]],
    ) -> tuple[ResolvedURL, bool]:
        """Return ``(resolved, from_cache)``, resolving at most once per key at a time."""
        cached = await self.get(key)
        if cached is not None:
            return cached, True

        task = self._inflight.get(key)
        if task is None:
            task = asyncio.ensure_future(self._resolve_and_store(key, resolve))
            self._inflight[key] = task
            task.add_done_callback(lambda t, k=key: self._finish(k, t))
        return await asyncio.shield(task), False

    def _finish(self, key: str, task: asyncio.Future) -> None:
        if self._inflight.get(key) is task:
            del self._inflight[key]
        if not task.cancelled():
            # Mark the exception retrieved; waiters that are still around re-raise it.
            task.exception()

    async def _resolve_and_store(
        self,
        key: str,
        resolve: Callable[[], Awaitable[ResolvedURL]],
    ) -> ResolvedURL:
        resolved = await resolve()
        try:
            await self.put(key, resolved)
        except CacheStorageError as e:
            logger.warning(f"Failed to cache {key}: {e}")
        return resolved


class FileResolutionCache(ResolutionCache):
    """Resolution cache backed by one ``<key>.cache`` file per entry.

    The file holds the URL; its mtime is the resolution time.  Writes go to
    a temp file that is renamed into place, so a reader sees either the old
    or the new entry.  An empty or unreadable file reads as a miss.
    """

    def __init__(
        self,
        cache_dir: str,
        ttl: float,
        max_entries: int = 10_000,
        clock: Callable[[], float] = time.time,
    ):
        super().__init__(ttl, max_entries=max_entries, clock=clock)
        self.cache_dir = cache_dir
        os.makedirs(cache_dir, exist_ok=True)

    def _path(self, key: str) -> str:
        return os.path.join(self.cache_dir, f"{key}{CACHE_SUFFIX}")

    def _read_entry(self, key: str) -> Optional[ResolvedURL]:
        path = self._path(key)
        try:
            resolved_at = os.stat(path).st_mtime
            with open(path, encoding="utf-8") as f:
                url = f.read().strip()
        except FileNotFoundError:
            return None
        except (OSError, UnicodeDecodeError) as e:
            logger.warning(f"Unreadable cache entry {path}, treating as a miss: {e}")
            return None
        if not url:
            return None
        return ResolvedURL(url=url, resolved_at=resolved_at)

    def _write_entry(self, key: str, resolved: ResolvedURL) -> None:
        path = self._path(key)
        try:
            os.makedirs(self.cache_dir, exist_ok=True)
            fd, tmp_path = tempfile.mkstemp(dir=self.cache_dir, prefix=f".{key}.", suffix=".tmp")
            try:
                with os.fdopen(fd, "w", encoding="utf-8") as f:
                    f.write(resolved.url)
                os.utime(tmp_path, (resolved.resolved_at, resolved.resolved_at))
                os.replace(tmp_path, path)
            except BaseException:
                if os.path.exists(tmp_path):
                    os.unlink(tmp_path)
                raise
        except OSError as e:
            raise CacheStorageError(f"Cannot write {path}: {e}") from e

    def _cache_files(self) -> list[str]:
        try:
            names = os.listdir(self.cache_dir)
        except FileNotFoundError:
            return []
        return [os.path.join(self.cache_dir, n) for n in names if n.endswith(CACHE_SUFFIX)]

    def _sweep_files(self) -> int:
        now = self.clock()
        alive: list[tuple[float, str]] = []
        removed = 0
        for path in self._cache_files():
            try:
                mtime = os.stat(path).st_mtime
                if now - mtime >= self.ttl:
                    os.unlink(path)
                    removed += 1
                else:
                    alive.append((mtime, path))
            except FileNotFoundError:
                continue
            except OSError as e:
                logger.warning(f"Cannot sweep cache entry {path}: {e}")
        overflow = len(alive) - self.max_entries
        if overflow > 0:
            for _, path in sorted(alive)[:overflow]:
                try:
                    os.unlink(path)
                    removed += 1
                except OSError as e:
                    logger.warning(f"Cannot sweep cache entry {path}: {e}")
        return removed

    def _clear_files(self) -> None:
        for path in self._cache_files():
            try:
                os.unlink(path)
            except FileNotFoundError:
                pass

    async def _load(self, key: str) -> Optional[ResolvedURL]:
        return await asyncio.to_thread(self._read_entry, key)

    async def _store(self, key: str, resolved: ResolvedURL) -> None:
        await asyncio.to_thread(self._write_entry, key, resolved)

    async def _sweep(self) -> int:
        return await asyncio.to_thread(self._sweep_files)

    async def _clear(self) -> None:
        await asyncio.to_thread(self._clear_files)

    async def count(self) -> int:
        files = await asyncio.to_thread(self._cache_files)
        return len(files)


def create_cache(options, clock: Callable[[], float] = time.time) -> ResolutionCache:
    """Build the cache backend selected by ``options.cache_backend``."""
    if options.cache_backend == "disk":
        logger.info(f"Using disk resolution cache at {options.cache_dir}")
        return FileResolutionCache(
            options.cache_dir, options.cache_ttl, max_entries=options.cache_max_entries, clock=clock
        )
    return ResolutionCache(options.cache_ttl, max_entries=options.cache_max_entries, clock=clock)
