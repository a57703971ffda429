"""Tests for the session store, session sweep and admission control."""

import asyncio

import pytest

from conftest import START_TIME, FakeClock
from streamgate.errors import DeviceLimitReached
from streamgate.models.gateway import Session
from streamgate.services.admission import DEVICE_LIMIT_REACHED, admit
from streamgate.services.session_service import SessionStore

DAY = 24 * 3600


class TestSessionStore:

    def test_absent_reference_creates_session(self):
        store = SessionStore(DAY, clock=FakeClock())
        session, created = asyncio.run(store.get_or_create(None))
        assert created is True
        assert session.active_devices == 0
        assert session.created_at == session.last_active_at == START_TIME
        assert store.get(session.session_id) is session

    def test_known_reference_is_reused(self):
        store = SessionStore(DAY, clock=FakeClock())
        first, _ = asyncio.run(store.get_or_create(None))
        again, created = asyncio.run(store.get_or_create(first.session_id))
        assert created is False
        assert again is first

    def test_unknown_reference_gets_fresh_id(self):
        store = SessionStore(DAY, clock=FakeClock())
        session, created = asyncio.run(store.get_or_create("forged-id"))
        assert created is True
        assert session.session_id != "forged-id"
        assert store.get("forged-id") is None

    def test_session_ids_are_unique_and_long(self):
        store = SessionStore(DAY, clock=FakeClock())
        ids = {asyncio.run(store.get_or_create(None))[0].session_id for _ in range(50)}
        assert len(ids) == 50
        assert all(len(i) >= 32 for i in ids)

    def test_record_admission_increments_and_touches(self):
        clock = FakeClock()
        store = SessionStore(DAY, clock=clock)
        session, _ = asyncio.run(store.get_or_create(None))
        clock.advance(30)
        asyncio.run(store.record_admission(session, 20))
        asyncio.run(store.record_admission(session, 20))
        assert session.active_devices == 2
        assert session.last_active_at == START_TIME + 30

    def test_record_admission_rechecks_limit(self):
        store = SessionStore(DAY, clock=FakeClock())
        session, _ = asyncio.run(store.get_or_create(None))
        asyncio.run(store.record_admission(session, 1))
        with pytest.raises(DeviceLimitReached) as exc:
            asyncio.run(store.record_admission(session, 1))
        assert exc.value.limit == 1
        assert session.active_devices == 1

    def test_touch_updates_last_active(self):
        clock = FakeClock()
        store = SessionStore(DAY, clock=clock)
        session, _ = asyncio.run(store.get_or_create(None))
        clock.advance(100)
        asyncio.run(store.touch(session))
        assert session.last_active_at == START_TIME + 100
        assert session.active_devices == 0

    def test_discard(self):
        store = SessionStore(DAY, clock=FakeClock())
        session, _ = asyncio.run(store.get_or_create(None))
        asyncio.run(store.discard(session.session_id))
        assert len(store) == 0


class TestSweep:

    def test_expired_session_removed_young_session_kept(self):
        clock = FakeClock()
        store = SessionStore(DAY, clock=clock)
        old, _ = asyncio.run(store.get_or_create(None))
        clock.advance(DAY - 100)
        young, _ = asyncio.run(store.get_or_create(None))
        clock.advance(101)

        removed = asyncio.run(store.sweep())

        assert removed == 1
        assert store.get(old.session_id) is None
        assert store.get(young.session_id) is young

    def test_sweep_uses_last_active_not_created(self):
        clock = FakeClock()
        store = SessionStore(DAY, clock=clock)
        session, _ = asyncio.run(store.get_or_create(None))
        clock.advance(DAY - 10)
        asyncio.run(store.touch(session))
        clock.advance(DAY - 10)
        assert asyncio.run(store.sweep()) == 0
        assert store.get(session.session_id) is session

    def test_sweep_with_explicit_now(self):
        store = SessionStore(DAY, clock=FakeClock())
        asyncio.run(store.get_or_create(None))
        assert asyncio.run(store.sweep(now=START_TIME + DAY)) == 0
        assert asyncio.run(store.sweep(now=START_TIME + DAY + 1)) == 1

    def test_sweep_loop_runs_and_stops_on_cancel(self):
        clock = FakeClock()
        store = SessionStore(DAY, clock=clock)

        async def run():
            await store.get_or_create(None)
            clock.advance(DAY + 1)
            task = asyncio.create_task(store.sweep_loop(0.01))
            await asyncio.sleep(0.05)
            task.cancel()
            await task
            return len(store)

        assert asyncio.run(run()) == 0


class TestAdmission:

    def _session(self, devices: int) -> Session:
        return Session(session_id="s", active_devices=devices, created_at=0, last_active_at=0)

    def test_below_limit_allowed(self):
        decision = admit(self._session(19), 20)
        assert decision.allowed is True
        assert decision.reason is None

    def test_at_limit_denied(self):
        decision = admit(self._session(20), 20)
        assert decision.allowed is False
        assert decision.reason == DEVICE_LIMIT_REACHED
        assert decision.limit == 20

    def test_admit_does_not_mutate(self):
        session = self._session(3)
        admit(session, 20)
        admit(session, 20)
        assert session.active_devices == 3
