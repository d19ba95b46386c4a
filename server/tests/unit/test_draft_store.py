"""Unit tests for the draft store and the draft expiry worker."""

import asyncio
from datetime import datetime, timedelta, timezone

import pytest

from rental_booking.core.exceptions import DraftNotFoundError
from rental_booking.schemas.booking import BookingDraft
from rental_booking.services.draft_store import DraftStore
from rental_booking.workers.draft_expiry_worker import DraftExpiryWorker
from rental_booking.workers.manager import WorkerManager


def _age(session, seconds: int) -> None:
    session.updated_at = datetime.now(timezone.utc) - timedelta(seconds=seconds)


class TestDraftStore:
    """Draft store lookups, eviction, and expiry."""

    def test_create_and_get(self):
        store = DraftStore(ttl_seconds=600, max_size=10)

        session = store.create(BookingDraft(vehicle_id=7))

        assert store.get(session.draft_id) is session
        assert session.draft.vehicle_id == 7
        assert session.draft_id in store
        assert len(store) == 1

    def test_unknown_draft(self):
        store = DraftStore(ttl_seconds=600, max_size=10)

        with pytest.raises(DraftNotFoundError):
            store.get("missing")

    def test_full_store_evicts_least_recently_used(self):
        store = DraftStore(ttl_seconds=600, max_size=2)
        first = store.create()
        second = store.create()

        # Touching the first draft makes the second the oldest
        store.get(first.draft_id)
        third = store.create()

        assert len(store) == 2
        assert first.draft_id in store
        assert second.draft_id not in store
        assert third.draft_id in store

    def test_idle_draft_expires_on_lookup(self):
        store = DraftStore(ttl_seconds=600, max_size=10)
        session = store.create()
        _age(session, 601)

        with pytest.raises(DraftNotFoundError):
            store.get(session.draft_id)
        assert len(store) == 0

    def test_purge_expired(self):
        store = DraftStore(ttl_seconds=600, max_size=10)
        idle = store.create()
        active = store.create()
        _age(idle, 3600)

        assert store.purge_expired() == 1
        assert idle.draft_id not in store
        assert active.draft_id in store

    def test_purge_expired_at_given_time(self):
        store = DraftStore(ttl_seconds=600, max_size=10)
        store.create()
        store.create()

        later = datetime.now(timezone.utc) + timedelta(seconds=601)

        assert store.purge_expired(later) == 2
        assert len(store) == 0

    def test_discard(self):
        store = DraftStore(ttl_seconds=600, max_size=10)
        session = store.create()

        assert store.discard(session.draft_id) is True
        assert store.discard(session.draft_id) is False


class TestDraftSession:
    def test_quote_tokens(self):
        session = DraftStore(ttl_seconds=600, max_size=10).create()

        first = session.next_quote_token()
        second = session.next_quote_token()

        assert not session.is_latest_quote(first)
        assert session.is_latest_quote(second)

    def test_section_errors(self):
        session = DraftStore(ttl_seconds=600, max_size=10).create()

        session.set_section_error("pricing", "Pricing engine down")
        assert session.section_errors == {"pricing": "Pricing engine down"}

        session.set_section_error("pricing", None)
        assert session.section_errors == {}


@pytest.mark.asyncio
async def test_expiry_worker_process_purges_idle_drafts():
    store = DraftStore(ttl_seconds=600, max_size=10)
    idle = store.create()
    active = store.create()
    _age(idle, 3600)

    await DraftExpiryWorker(store, interval_seconds=60).process()

    assert idle.draft_id not in store
    assert active.draft_id in store


@pytest.mark.asyncio
async def test_expiry_worker_runs_until_stopped():
    store = DraftStore(ttl_seconds=600, max_size=10)
    idle = store.create()
    _age(idle, 3600)
    worker = DraftExpiryWorker(store, interval_seconds=60)

    await worker.start()
    assert worker.running
    # Let the first iteration run
    await asyncio.sleep(0)
    await worker.stop()

    assert not worker.running
    assert idle.draft_id not in store


@pytest.mark.asyncio
async def test_worker_manager_lifecycle():
    manager = WorkerManager(DraftStore(ttl_seconds=600, max_size=10))

    await manager.start_all()
    assert manager.get_worker_status() == {"draft_expiry": True}
    assert isinstance(manager.get_worker("draft_expiry"), DraftExpiryWorker)

    await manager.stop_all()
    assert manager.get_worker_status() == {"draft_expiry": False}

    with pytest.raises(KeyError):
        manager.get_worker("missing")
