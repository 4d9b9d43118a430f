"""
Планировщик периодических задач
"""
import logging
from apscheduler.schedulers.asyncio import AsyncIOScheduler
from apscheduler.triggers.interval import IntervalTrigger

from config import settings
from services.reconciler import refresh_tables

logger = logging.getLogger(__name__)


async def reconcile_job():
    """Задача сверки броней и столов с текущим временем"""
    try:
        board = await refresh_tables()
        result = board.reconciliation
        if result.changed:
            logger.info(
                f"Сверка: no_show {len(result.no_shows)}, "
                f"освобождено столов {len(result.released)}"
            )
        failures = await result.wait_writes()
        if failures:
            logger.warning(f"Сверка: не сохранено изменений {len(failures)}, повтор при следующем запуске")
    except Exception as e:
        logger.error(f"Ошибка при сверке бронирований: {e}", exc_info=True)


async def start_scheduler() -> AsyncIOScheduler:
    """Запуск планировщика задач"""
    scheduler = AsyncIOScheduler()

    scheduler.add_job(
        reconcile_job,
        trigger=IntervalTrigger(minutes=settings.RECONCILE_INTERVAL_MINUTES),
        id='reconcile_bookings',
        name='Сверка броней и столов',
        replace_existing=True
    )

    scheduler.start()
    logger.info("Планировщик задач запущен")

    return scheduler
