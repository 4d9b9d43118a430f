"""
Приведение сохранённого состояния к текущему времени.

Запускается при каждом получении списка столов и планировщиком:
  - просроченные брони в статусе pending переводятся в no_show;
  - столы со статусом occupied без идущей подтверждённой брони освобождаются.

Исправления сразу применяются к прочитанным данным, а запись в БД
уходит в фоне и не ожидается. Запись условная: если бронь или стол
успели изменить после чтения, она пропускается. Ошибки записи только логируются.
"""
import asyncio
import logging
from dataclasses import dataclass, field, replace
from datetime import datetime
from typing import Callable, List, Optional, Set

from config import settings
from database.models import (
    Booking, ShopSettings, Table, TableView, CONFIRMED, NO_SHOW, OCCUPYING_STATUSES, PENDING,
    TABLE_AVAILABLE, TABLE_OCCUPIED
)
from database.repository import BookingRepository, SettingsRepository, TableRepository
from services.availability import booking_window, build_table_view, find_ongoing_booking
from utils.time_utils import business_day

logger = logging.getLogger(__name__)

# Ссылки на фоновые записи, чтобы задачи не собрал сборщик мусора
_background_writes: Set[asyncio.Task] = set()


@dataclass
class ReconcileResult:
    """
    Предварительный результат сверки.
    bookings и tables уже исправлены; подтверждение записи в БД
    можно получить позже через wait_writes().
    """
    tables: List[Table]
    bookings: List[Booking]
    no_shows: List[Booking] = field(default_factory=list)
    released: List[Table] = field(default_factory=list)
    pending_writes: List[asyncio.Task] = field(default_factory=list)

    @property
    def changed(self) -> bool:
        return bool(self.no_shows or self.released)

    async def wait_writes(self) -> List[BaseException]:
        """Дождаться фоновых записей и вернуть список ошибок"""
        if not self.pending_writes:
            return []
        results = await asyncio.gather(*self.pending_writes, return_exceptions=True)
        return [r for r in results if isinstance(r, BaseException)]


@dataclass
class TableBoard:
    """Список столов для отображения и результат сверки, на котором он построен"""
    tables: List[TableView]
    reconciliation: ReconcileResult


def find_no_shows(bookings: List[Booking], shop: ShopSettings,
                  now: Optional[datetime] = None) -> List[Booking]:
    """Pending-брони текущего рабочего дня, опоздание по которым больше порога"""
    today, now_minutes = business_day(now or datetime.now(), shop.open_time, shop.close_time)

    late = []
    for booking in bookings:
        if booking.status != PENDING or booking.date != today:
            continue
        start, _ = booking_window(booking, shop)
        if now_minutes - start > shop.late_threshold_minutes:
            late.append(booking)
    return late


def find_stale_occupied(tables: List[Table], bookings: List[Booking], shop: ShopSettings,
                        now: Optional[datetime] = None) -> List[Table]:
    """Столы со статусом occupied, у которых сейчас нет подтверждённой брони"""
    stale = []
    for table in tables:
        if table.status != TABLE_OCCUPIED:
            continue
        table_bookings = [b for b in bookings if b.table_id == table.id]
        if find_ongoing_booking(table_bookings, shop, now) is None:
            stale.append(table)
    return stale


def _log_write_result(task: asyncio.Task, description: str) -> None:
    _background_writes.discard(task)
    if task.cancelled():
        logger.warning(f"Фоновая запись отменена: {description}")
        return
    error = task.exception()
    if error is not None:
        logger.error(f"Не удалось сохранить {description}: {error}", exc_info=error)
    elif task.result() is None:
        logger.info(f"Запись пропущена, данные уже изменены: {description}")


def _write_in_background(description: str, func: Callable, *args) -> asyncio.Task:
    """Запуск синхронной записи в БД в отдельном потоке без ожидания"""
    task = asyncio.get_running_loop().create_task(asyncio.to_thread(func, *args))
    _background_writes.add(task)
    task.add_done_callback(lambda t: _log_write_result(t, description))
    return task


async def reconcile(tables: List[Table], bookings: List[Booking], shop: ShopSettings,
                    now: Optional[datetime] = None) -> ReconcileResult:
    """
    Сверка снимка столов и броней с текущим временем.
    Повторный запуск на исправленных данных ничего не меняет.
    """
    now = now or datetime.now()
    writes = []

    no_shows = find_no_shows(bookings, shop, now)
    no_show_ids = {b.id for b in no_shows}
    for booking in no_shows:
        logger.info(
            f"Бронирование #{booking.id} ({booking.start_time}) переведено в no_show: "
            f"опоздание больше {shop.late_threshold_minutes} мин"
        )
        writes.append(_write_in_background(
            f"статус no_show брони #{booking.id}",
            BookingRepository.update_booking_status, booking.id, NO_SHOW, PENDING
        ))
    # Брони no_show больше не занимают стол
    bookings = [b for b in bookings if b.id not in no_show_ids]

    today, _ = business_day(now, shop.open_time, shop.close_time)
    released = find_stale_occupied(tables, bookings, shop, now)
    released_ids = {t.id for t in released}
    for table in released:
        logger.info(f"Стол #{table.id} ({table.name}) освобождён: нет активной брони")
        writes.append(_write_in_background(
            f"статус available стола #{table.id}",
            TableRepository.release_table, table.id, today,
            [b.id for b in bookings if b.table_id == table.id and b.status == CONFIRMED]
        ))
    tables = [
        replace(t, status=TABLE_AVAILABLE) if t.id in released_ids else t
        for t in tables
    ]

    return ReconcileResult(
        tables=tables,
        bookings=bookings,
        no_shows=[replace(b, status=NO_SHOW) for b in no_shows],
        released=[replace(t, status=TABLE_AVAILABLE) for t in released],
        pending_writes=writes
    )


async def refresh_tables(now: Optional[datetime] = None, preview: bool = True) -> TableBoard:
    """
    Точка входа для обновления: свежие данные из БД, сверка и расчёт
    свободных слотов на сегодня. Когда вызывать, решает вызывающий код.
    """
    now = now or datetime.now()

    tables = TableRepository.get_all_tables()
    shop = SettingsRepository.get_settings()
    if shop is None:
        logger.warning("Настройки клуба не найдены, свободные слоты не рассчитываются")
        views = [TableView(table=t, price_per_hour=0) for t in tables]
        return TableBoard(tables=views, reconciliation=ReconcileResult(tables=tables, bookings=[]))

    today, _ = business_day(now, shop.open_time, shop.close_time)
    bookings = BookingRepository.list_bookings(date=today, statuses=OCCUPYING_STATUSES)
    result = await reconcile(tables, bookings, shop, now)

    limit = settings.PREVIEW_SLOTS_COUNT if preview else None
    views = [
        build_table_view(
            table, shop, [b for b in result.bookings if b.table_id == table.id], now, limit
        )
        for table in result.tables
    ]
    return TableBoard(tables=views, reconciliation=result)
