# src/shared/cleanup_tasks.py
import asyncio
import logging
from datetime import datetime, timedelta, timezone
from typing import Iterable, List, Optional

from .database import StoreError, TicketDatabase
from .models import Ticket
from . import settings

logger = logging.getLogger(__name__)


def filter_expired(
    tickets: Iterable[Ticket],
    expiry_days: int,
    now: Optional[datetime] = None,
) -> List[Ticket]:
    """Тикеты, у которых last_update строго раньше now - expiry_days."""
    now = now or datetime.now(timezone.utc)
    cutoff = now - timedelta(days=expiry_days)
    return [t for t in tickets if t.last_update is not None and t.last_update < cutoff]


class TicketExpiryService:
    """Регламентное удаление неактивных тикетов"""

    def __init__(
        self,
        db: TicketDatabase,
        expiry_days: int,
        initial_delay: Optional[float] = None,
        interval: Optional[float] = None,
    ):
        self.db = db
        self.expiry_days = expiry_days
        self.tasks: List[asyncio.Task] = []
        self.is_running = False

        if initial_delay is None:
            initial_delay = settings.SWEEP_INITIAL_DELAY_SECONDS
        if interval is None:
            interval = settings.SWEEP_INTERVAL_HOURS * 3600
        self.initial_delay = initial_delay
        self.interval = interval

    async def sweep_once(self) -> int:
        """Один проход: список, фильтр, удаление по одному. Возвращает число удалённых."""
        try:
            tickets = await self.db.list_all()
        except StoreError as e:
            logger.error(f"❌ Cannot list tickets for expiry sweep: {e}")
            return 0

        expired = filter_expired(tickets, self.expiry_days)
        deleted = 0
        for ticket in expired:
            try:
                if await self.db.delete(ticket.user_id):
                    deleted += 1
            except StoreError as e:
                # остальные удаления независимы, продолжаем
                logger.error(f"❌ Failed to delete expired ticket user_id={ticket.user_id}: {e}")

        if deleted > 0:
            logger.info(f"🧹 Removed {deleted} tickets inactive for more than {self.expiry_days}d")
        return deleted

    async def periodic_sweep_loop(self):
        """Основной цикл: пауза после старта, затем проход раз в interval"""
        self.is_running = True
        logger.info(
            f"🚀 Ticket expiry started: delay={self.initial_delay}s, "
            f"interval={self.interval}s, expiry={self.expiry_days}d"
        )

        await asyncio.sleep(self.initial_delay)
        while self.is_running:
            try:
                await self.sweep_once()
            except Exception as e:
                logger.error(f"❌ Ticket expiry cycle error: {e}", exc_info=True)
            await asyncio.sleep(self.interval)

    def start(self):
        """Запускает фоновую задачу очистки"""
        if self.tasks:
            logger.warning("⚠️ Ticket expiry already started")
            return self.tasks[0]

        task = asyncio.create_task(self.periodic_sweep_loop())
        self.tasks.append(task)
        return task

    async def stop(self):
        """Останавливает фоновые задачи"""
        logger.info("🛑 Stopping ticket expiry...")
        self.is_running = False

        for task in self.tasks:
            task.cancel()

        await asyncio.gather(*self.tasks, return_exceptions=True)
        self.tasks.clear()
        logger.info("✅ Ticket expiry stopped")
