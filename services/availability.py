"""
Расчёт свободных слотов и занятости стола.

Все функции чистые: на вход настройки клуба, брони и текущее время,
на выход вычисляемые поля. В БД ничего не пишется.
"""
from datetime import datetime
from typing import Iterable, List, Optional, Tuple

from config import settings
from database.models import (
    Booking, ShopSettings, Table, TableView, CONFIRMED, OCCUPYING_STATUSES
)
from database.repository import BookingRepository, SettingsRepository
from utils.time_utils import (
    MINUTES_PER_DAY, business_day, format_minutes, normalize_span, parse_date,
    shop_minutes, slot_minutes, to_minutes, today_str
)


def booking_window(booking: Booking, shop: ShopSettings) -> Tuple[int, int]:
    """
    Интервал брони [start, end) в минутах рабочего дня клуба.
    Брони после полуночи сравниваются со слотами сетки без потери суток.
    """
    start = shop_minutes(booking.start_time, shop.open_time, shop.close_time)
    end = to_minutes(booking.end_time) + (start // MINUTES_PER_DAY) * MINUTES_PER_DAY
    return normalize_span(start, end)


def is_slot_taken(slot: int, bookings: Iterable[Booking], shop: ShopSettings) -> bool:
    """Слот занят, если его начало попадает в интервал какой-либо брони"""
    for booking in bookings:
        start, end = booking_window(booking, shop)
        if start <= slot < end:
            return True
    return False


def current_business_date(shop: Optional[ShopSettings], now: Optional[datetime] = None) -> str:
    """Текущий рабочий день клуба; без настроек календарная дата"""
    now = now or datetime.now()
    if shop is None:
        return today_str(now)
    return business_day(now, shop.open_time, shop.close_time)[0]


def get_bookable_grid(shop: ShopSettings, date: str,
                      now: Optional[datetime] = None) -> List[int]:
    """Сетка слотов на дату; для текущего рабочего дня только будущие слоты"""
    parse_date(date)
    today, now_minutes = business_day(now or datetime.now(), shop.open_time, shop.close_time)

    slots = slot_minutes(shop.open_time, shop.close_time, settings.SLOT_INTERVAL_MINUTES)
    if date == today:
        slots = [slot for slot in slots if slot > now_minutes]
    return slots


def get_available_slots(shop: ShopSettings, bookings: Iterable[Booking], date: str,
                        now: Optional[datetime] = None,
                        limit: Optional[int] = None) -> List[str]:
    """
    Свободные слоты стола на дату.
    bookings должны быть уже отфильтрованы по столу и дате.
    limit ограничивает превью в списке столов, для формы брони не задаётся.
    """
    bookings = list(bookings)
    available = [
        format_minutes(slot)
        for slot in get_bookable_grid(shop, date, now)
        if not is_slot_taken(slot, bookings, shop)
    ]
    if limit is not None:
        available = available[:limit]
    return available


def find_ongoing_booking(bookings: Iterable[Booking], shop: ShopSettings,
                         now: Optional[datetime] = None) -> Optional[Booking]:
    """Подтверждённая бронь текущего рабочего дня, идущая прямо сейчас"""
    today, now_minutes = business_day(now or datetime.now(), shop.open_time, shop.close_time)
    for booking in bookings:
        if booking.status != CONFIRMED or booking.date != today:
            continue
        start, end = booking_window(booking, shop)
        if start <= now_minutes < end:
            return booking
    return None


def get_occupied_until(bookings: Iterable[Booking], shop: ShopSettings,
                       now: Optional[datetime] = None) -> Optional[str]:
    """Время окончания текущей брони, если стол сейчас занят"""
    booking = find_ongoing_booking(bookings, shop, now)
    return booking.end_time if booking else None


def build_table_view(table: Table, shop: ShopSettings, bookings: Iterable[Booking],
                     now: Optional[datetime] = None,
                     limit: Optional[int] = settings.PREVIEW_SLOTS_COUNT) -> TableView:
    """Стол с ценой, занятостью и свободными слотами на текущий рабочий день"""
    now = now or datetime.now()
    today, _ = business_day(now, shop.open_time, shop.close_time)
    bookings = list(bookings)
    return TableView(
        table=table,
        price_per_hour=shop.price_for(table.type),
        occupied_until=get_occupied_until(bookings, shop, now),
        available_slots=get_available_slots(shop, bookings, today, now, limit)
    )


def get_table_slots(table_id: int, date: str, now: Optional[datetime] = None) -> List[str]:
    """Полный список свободных слотов для формы бронирования"""
    shop = SettingsRepository.get_settings()
    if shop is None:
        return []

    bookings = BookingRepository.list_bookings(
        date=date, table_id=table_id, statuses=OCCUPYING_STATUSES
    )
    return get_available_slots(shop, bookings, date, now)
