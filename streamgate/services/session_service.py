"""Session store — in-memory sessions with device counters and a periodic expiry sweep."""
from __future__ import annotations

import asyncio
import logging
import secrets
import time
from typing import Callable, Optional

from streamgate.errors import DeviceLimitReached
from streamgate.models.gateway import Session
from streamgate.services.admission import admit

logger = logging.getLogger(__name__)

SESSION_ID_BYTES = 24


def generate_session_id() -> str:
    return secrets.token_urlsafe(SESSION_ID_BYTES)


class SessionStore:
    """Owns every Session record for the lifetime of the process."""

    def __init__(self, session_ttl: float, clock: Callable[[], float] = time.time):
        self.session_ttl = session_ttl
        self.clock = clock
        self._sessions: dict[str, Session] = {}
        self._lock = asyncio.Lock()

    def __len__(self) -> int:
        return len(self._sessions)

    def get(self, session_id: str) -> Optional[Session]:
        return self._sessions.get(session_id)

    async def get_or_create(self, session_ref: Optional[str]) -> tuple[Session, bool]:
        """Return ``(session, created)``; an absent or unknown reference gets a fresh session."""
        async with self._lock:
            if session_ref:
                session = self._sessions.get(session_ref)
                if session is not None:
                    return session, False

            session_id = generate_session_id()
            while session_id in self._sessions:
                session_id = generate_session_id()
            now = self.clock()
            session = Session(session_id=session_id, created_at=now, last_active_at=now)
            self._sessions[session_id] = session
            return session, True

    async def discard(self, session_id: str) -> None:
        async with self._lock:
            self._sessions.pop(session_id, None)

    async def touch(self, session: Session) -> None:
        async with self._lock:
            session.last_active_at = self.clock()

    async def record_admission(self, session: Session, max_devices: int) -> Session:
        """Count one more device against the session and mark it active.

        The ceiling is checked again under the lock; concurrent requests on
        one session may all pass the early check while resolving.
        """
        async with self._lock:
            decision = admit(session, max_devices)
            if not decision.allowed:
                raise DeviceLimitReached(decision.limit)
            session.active_devices += 1
            session.last_active_at = self.clock()
            self._sessions[session.session_id] = session
            return session

    async def sweep(self, now: Optional[float] = None) -> int:
        """Drop sessions idle for longer than ``session_ttl``; returns how many were removed."""
        if now is None:
            now = self.clock()
        cutoff = now - self.session_ttl
        snapshot = list(self._sessions.items())
        expired = [sid for sid, s in snapshot if s.last_active_at < cutoff]
        if not expired:
            return 0
        async with self._lock:
            removed = 0
            for sid in expired:
                session = self._sessions.get(sid)
                # Skip sessions touched after the snapshot was taken
                if session is not None and session.last_active_at < cutoff:
                    del self._sessions[sid]
                    removed += 1
        logger.info(f"Session sweep removed {removed} expired session(s), {len(self._sessions)} remaining")
        return removed

    async def sweep_loop(self, interval: float) -> None:
        """Background task that sweeps expired sessions every ``interval`` seconds."""
        logger.info("Session sweep task started")
        while True:
            try:
                await asyncio.sleep(interval)
                await self.sweep()
            except asyncio.CancelledError:
                logger.info("Session sweep task cancelled")
                break
            except Exception as e:
                logger.error(f"Session sweep error: {e}")
