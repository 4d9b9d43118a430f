"""Сервисные функции для работы с бронированиями."""

import logging
import re
import sqlite3
from dataclasses import dataclass
from datetime import datetime, timedelta
from typing import List, Optional

from config import settings
from database.models import (
    Booking, ShopSettings, ACTIVE_STATUSES, CANCELLED, COMPLETED, CONFIRMED,
    NO_SHOW, PENDING, TABLE_OCCUPIED
)
from database.repository import BookingRepository, SettingsRepository, TableRepository
from services.availability import booking_window, get_bookable_grid
from services.errors import (
    BookingNotFound, InvalidDate, InvalidDuration, InvalidPhone, InvalidStatusTransition,
    NameTooShort, PersistenceUnavailable, RateLimitExceeded, SlotConflict,
    SlotNotSelected, TableNotFound
)
from utils.time_utils import (
    InvalidDateFormat, InvalidTimeFormat, add_hours, business_day, format_minutes, overlaps,
    parse_date, shop_minutes, to_minutes
)

logger = logging.getLogger(__name__)

# Разрешённые переходы статусов; из завершённых состояний выхода нет
ALLOWED_TRANSITIONS = {
    PENDING: {CONFIRMED, CANCELLED, NO_SHOW},
    CONFIRMED: {COMPLETED, CANCELLED},
}


@dataclass
class BookingRequest:
    table_id: int
    customer_name: str
    customer_phone: str
    date: str
    start_time: Optional[str]
    duration_hours: int = 1
    slip_url: Optional[str] = None


def normalize_phone(phone: str) -> str:
    """Оставляем только цифры номера"""
    return re.sub(r'\D', '', phone or '')


def validate_request(request: BookingRequest, shop: ShopSettings,
                     now: Optional[datetime] = None) -> str:
    """
    Проверки, не требующие обращения к БД. Порядок важен: пользователь
    получает первую найденную ошибку.
    Возвращает нормализованный телефон.
    """
    if len((request.customer_name or '').strip()) < 2:
        raise NameTooShort()

    phone = normalize_phone(request.customer_phone)
    if not 9 <= len(phone) <= 10:
        raise InvalidPhone()

    try:
        booking_date = parse_date(request.date)
    except InvalidDateFormat:
        raise InvalidDate() from None

    now = now or datetime.now()
    first_date = parse_date(business_day(now, shop.open_time, shop.close_time)[0])
    last_date = now.date() + timedelta(days=settings.MAX_BOOKING_DAYS - 1)
    if not first_date <= booking_date <= last_date:
        raise InvalidDate(
            f"Бронировать можно на даты с {first_date.strftime('%d.%m')} по {last_date.strftime('%d.%m')}"
        )

    if not request.start_time:
        raise SlotNotSelected()
    try:
        start = shop_minutes(request.start_time, shop.open_time, shop.close_time)
    except InvalidTimeFormat:
        raise SlotNotSelected() from None
    if start not in get_bookable_grid(shop, request.date, now):
        raise SlotNotSelected()

    if not settings.MIN_BOOKING_HOURS <= request.duration_hours <= settings.MAX_BOOKING_HOURS:
        raise InvalidDuration(
            f"Длительность должна быть от {settings.MIN_BOOKING_HOURS} "
            f"до {settings.MAX_BOOKING_HOURS} ч"
        )

    return phone


def _check_rate_limit(phone: str, date: str) -> None:
    count = BookingRepository.count_bookings(phone, date, ACTIVE_STATUSES)
    if count >= settings.MAX_BOOKINGS_PER_PHONE:
        logger.warning(f"Превышен лимит бронирований: телефон {phone}, дата {date}, броней {count}")
        raise RateLimitExceeded(
            f"Можно сделать не больше {settings.MAX_BOOKINGS_PER_PHONE} бронирований в день. "
            f"Обратитесь к администратору"
        )


def _check_overlap(candidate: Booking, shop: ShopSettings) -> None:
    existing = BookingRepository.list_bookings(
        date=candidate.date, table_id=candidate.table_id, statuses=ACTIVE_STATUSES
    )
    new_start, new_end = booking_window(candidate, shop)
    for booking in existing:
        start, end = booking_window(booking, shop)
        if overlaps(new_start, new_end, start, end):
            logger.warning(
                f"Пересечение брони: стол {candidate.table_id}, {candidate.date} "
                f"{candidate.start_time}-{candidate.end_time} с бронью #{booking.id}"
            )
            raise SlotConflict()


def create_booking(request: BookingRequest, now: Optional[datetime] = None) -> Booking:
    """
    Создание бронирования со всеми проверками.
    Проверки и вставка не атомарны; одновременные брони на одно и то же
    начало отсекает уникальный индекс в БД.
    """
    try:
        table = TableRepository.get_table_by_id(request.table_id)
        if table is None:
            raise TableNotFound()
        shop = SettingsRepository.get_settings()
        if shop is None:
            logger.error("Настройки клуба не найдены, бронирование невозможно")
            raise PersistenceUnavailable()

        phone = validate_request(request, shop, now)
        _check_rate_limit(phone, request.date)

        candidate = Booking(
            id=None,
            table_id=table.id,
            customer_name=request.customer_name.strip(),
            customer_phone=phone,
            date=request.date,
            start_time=format_minutes(to_minutes(request.start_time)),
            end_time=add_hours(request.start_time, request.duration_hours),
            status=PENDING,
            total_price=shop.price_for(table.type) * request.duration_hours,
            slip_url=request.slip_url
        )
        _check_overlap(candidate, shop)

        booking = BookingRepository.create_booking(candidate)
    except sqlite3.IntegrityError as e:
        logger.warning(f"Одновременная бронь стола {request.table_id} отклонена БД: {e}")
        raise SlotConflict() from e
    except sqlite3.Error as e:
        logger.error(f"Ошибка БД при создании брони: {e}", exc_info=True)
        raise PersistenceUnavailable() from e

    logger.info(
        f"Создано бронирование #{booking.id}: стол {booking.table_id}, "
        f"{booking.date} {booking.start_time}-{booking.end_time}"
    )
    return booking


def change_booking_status(booking_id: int, status: str) -> Booking:
    """Смена статуса брони с проверкой допустимости перехода"""
    booking = BookingRepository.get_booking_by_id(booking_id)
    if booking is None:
        raise BookingNotFound()

    if booking.is_terminal:
        raise InvalidStatusTransition(f"Бронирование #{booking_id} уже закрыто: {booking.status}")
    if status not in ALLOWED_TRANSITIONS.get(booking.status, set()):
        raise InvalidStatusTransition(
            f"Бронирование #{booking_id}: переход {booking.status} -> {status} невозможен"
        )

    updated = BookingRepository.update_booking_status(booking_id, status, expected_status=booking.status)
    if updated is None:
        # Статус успел смениться, например сверка перевела бронь в no_show
        raise InvalidStatusTransition(f"Бронирование #{booking_id} уже изменено, обновите список")

    logger.info(f"Бронирование #{booking_id}: {booking.status} -> {status}")
    return updated


def check_in(booking_id: int) -> Booking:
    """Клиент пришёл: бронь подтверждается, стол занимается"""
    booking = change_booking_status(booking_id, CONFIRMED)
    TableRepository.update_table_status(booking.table_id, TABLE_OCCUPIED)
    return booking


def cancel_booking(booking_id: int) -> Booking:
    """Отмена бронирования клиентом или администратором"""
    return change_booking_status(booking_id, CANCELLED)


def complete_booking(booking_id: int) -> Booking:
    """Игра окончена"""
    return change_booking_status(booking_id, COMPLETED)


def find_bookings_by_phone(phone: str) -> List[Booking]:
    """Бронирования клиента, новые сверху"""
    bookings = BookingRepository.list_bookings(phone=normalize_phone(phone))
    return sorted(bookings, key=lambda b: (b.created_at or datetime.min, b.id), reverse=True)
