# tests/core/test_cleanup_tasks.py

import asyncio
from datetime import datetime, timedelta, timezone

import pytest

from shared.cleanup_tasks import TicketExpiryService, filter_expired
from shared.database import StoreError
from shared.models import Ticket

NOW = datetime(2026, 10, 1, 12, 0, tzinfo=timezone.utc)


def ticket(user_id: int, last_update: datetime) -> Ticket:
    return Ticket(user_id=user_id, user_chat_id=user_id, thread_id=user_id * 10, last_update=last_update)


class FakeTicketDB:
    def __init__(self, tickets, fail_delete_for=(), fail_list=False):
        self.tickets = {t.user_id: t for t in tickets}
        self.fail_delete_for = set(fail_delete_for)
        self.fail_list = fail_list
        self.list_calls = 0
        self.delete_calls = []

    async def list_all(self):
        self.list_calls += 1
        if self.fail_list:
            raise StoreError("connection lost")
        return list(self.tickets.values())

    async def delete(self, user_id):
        self.delete_calls.append(user_id)
        if user_id in self.fail_delete_for:
            raise StoreError("deadlock detected")
        return self.tickets.pop(user_id, None) is not None


def test_filter_expired_boundary():
    days = 15
    cutoff = NOW - timedelta(days=days)
    just_expired = ticket(1, cutoff - timedelta(seconds=1))
    just_fresh = ticket(2, cutoff + timedelta(seconds=1))
    exactly_cutoff = ticket(3, cutoff)

    expired = filter_expired([just_expired, just_fresh, exactly_cutoff], days, now=NOW)

    assert expired == [just_expired]


def test_filter_expired_empty_input():
    assert filter_expired([], 15, now=NOW) == []


@pytest.mark.asyncio
async def test_sweep_once_deletes_only_stale_tickets():
    now = datetime.now(timezone.utc)
    stale = ticket(1, now - timedelta(days=20))
    fresh = ticket(2, now - timedelta(days=1))
    db = FakeTicketDB([stale, fresh])
    service = TicketExpiryService(db, expiry_days=15, initial_delay=0, interval=3600)

    deleted = await service.sweep_once()

    assert deleted == 1
    assert db.delete_calls == [1]
    assert list(db.tickets) == [2]


@pytest.mark.asyncio
async def test_sweep_once_continues_after_failed_delete():
    now = datetime.now(timezone.utc)
    db = FakeTicketDB(
        [ticket(1, now - timedelta(days=30)), ticket(2, now - timedelta(days=30))],
        fail_delete_for={1},
    )
    service = TicketExpiryService(db, expiry_days=15, initial_delay=0, interval=3600)

    deleted = await service.sweep_once()

    assert deleted == 1
    assert sorted(db.delete_calls) == [1, 2]
    assert list(db.tickets) == [1]


@pytest.mark.asyncio
async def test_sweep_once_survives_list_failure():
    db = FakeTicketDB([], fail_list=True)
    service = TicketExpiryService(db, expiry_days=15, initial_delay=0, interval=3600)

    assert await service.sweep_once() == 0
    assert db.delete_calls == []


@pytest.mark.asyncio
async def test_periodic_loop_runs_after_initial_delay_and_stops():
    db = FakeTicketDB([ticket(1, datetime.now(timezone.utc) - timedelta(days=99))])
    service = TicketExpiryService(db, expiry_days=15, initial_delay=0, interval=3600)

    task = service.start()
    # повторный старт не плодит задачи
    assert service.start() is task

    await asyncio.sleep(0.05)
    assert db.list_calls == 1
    assert db.tickets == {}

    await service.stop()
    assert task.cancelled()
    assert service.tasks == []
    assert service.is_running is False


class FlakyTicketDB(FakeTicketDB):
    """Первый list_all падает неожиданной ошибкой, дальше работает."""

    async def list_all(self):
        self.list_calls += 1
        if self.list_calls == 1:
            raise RuntimeError("unexpected driver state")
        return list(self.tickets.values())


@pytest.mark.asyncio
async def test_periodic_loop_keeps_running_after_unexpected_error():
    db = FlakyTicketDB([ticket(1, datetime.now(timezone.utc) - timedelta(days=99))])
    service = TicketExpiryService(db, expiry_days=15, initial_delay=0, interval=0.01)

    service.start()
    try:
        for _ in range(100):
            if db.list_calls >= 2:
                break
            await asyncio.sleep(0.01)
        # следующий проход всё-таки удалил устаревший тикет
        await asyncio.sleep(0.01)
        assert db.list_calls >= 2
        assert db.delete_calls == [1]
        assert db.tickets == {}
    finally:
        await service.stop()
