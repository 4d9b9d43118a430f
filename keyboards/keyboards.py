"""
Клавиатуры для Telegram бота
"""
from datetime import date
from typing import List

from aiogram.types import InlineKeyboardMarkup, ReplyKeyboardMarkup, KeyboardButton
from aiogram.utils.keyboard import InlineKeyboardBuilder

from database.models import (
    Booking, TableView, ACTIVE_STATUSES, CONFIRMED, PENDING, TABLE_MAINTENANCE
)
from utils.time_utils import format_date, format_price
from config import settings


def hours_label(hours: int) -> str:
    """'1 час', '2 часа', '5 часов'"""
    if hours % 10 == 1 and hours % 100 != 11:
        return f"{hours} час"
    if 2 <= hours % 10 <= 4 and not 12 <= hours % 100 <= 14:
        return f"{hours} часа"
    return f"{hours} часов"


def get_main_menu_keyboard(is_admin: bool = False) -> ReplyKeyboardMarkup:
    """Главное меню"""
    buttons = [
        [KeyboardButton(text="🎱 Столы")],
        [KeyboardButton(text="📅 Забронировать стол")],
        [KeyboardButton(text="📋 Мои бронирования")],
    ]

    if is_admin:
        buttons.append([KeyboardButton(text="⚙️ Админ-панель")])

    return ReplyKeyboardMarkup(keyboard=buttons, resize_keyboard=True)


def get_tables_keyboard(tables: List[TableView]) -> InlineKeyboardMarkup:
    """Клавиатура выбора стола"""
    builder = InlineKeyboardBuilder()

    for view in tables:
        if view.status == TABLE_MAINTENANCE:
            continue
        builder.button(
            text=f"{view.name} · {format_price(view.price_per_hour)}/ч",
            callback_data=f"table:{view.id}"
        )

    builder.button(text="❌ Отмена", callback_data="cancel")
    builder.adjust(1)

    return builder.as_markup()


def get_dates_keyboard(dates: List[date]) -> InlineKeyboardMarkup:
    """Клавиатура выбора даты"""
    builder = InlineKeyboardBuilder()

    for day in dates:
        builder.button(
            text=format_date(day),
            callback_data=f"date:{day.strftime('%Y-%m-%d')}"
        )

    builder.button(text="◀️ Назад", callback_data="back_to_table")
    builder.button(text="❌ Отмена", callback_data="cancel")
    builder.adjust(1)

    return builder.as_markup()


def get_times_keyboard(times: List[str]) -> InlineKeyboardMarkup:
    """Клавиатура выбора времени"""
    builder = InlineKeyboardBuilder()

    for time in times:
        builder.button(text=time, callback_data=f"time:{time}")

    builder.button(text="◀️ Назад", callback_data="back_to_date")
    builder.button(text="❌ Отмена", callback_data="cancel")

    rows = [4] * ((len(times) + 3) // 4)
    builder.adjust(*rows, 2)

    return builder.as_markup()


def get_duration_keyboard() -> InlineKeyboardMarkup:
    """Клавиатура выбора длительности"""
    builder = InlineKeyboardBuilder()

    for hours in range(settings.MIN_BOOKING_HOURS, settings.MAX_BOOKING_HOURS + 1):
        builder.button(text=hours_label(hours), callback_data=f"duration:{hours}")

    builder.button(text="◀️ Назад", callback_data="back_to_time")
    builder.button(text="❌ Отмена", callback_data="cancel")
    builder.adjust(3, 3, 2)

    return builder.as_markup()


def get_phone_keyboard() -> ReplyKeyboardMarkup:
    """Клавиатура для отправки телефона"""
    return ReplyKeyboardMarkup(
        keyboard=[[KeyboardButton(text="📱 Отправить телефон", request_contact=True)]],
        resize_keyboard=True
    )


def get_slip_keyboard() -> InlineKeyboardMarkup:
    """Клавиатура шага с чеком оплаты"""
    builder = InlineKeyboardBuilder()

    builder.button(text="💵 Оплачу в клубе", callback_data="skip_slip")
    builder.button(text="❌ Отмена", callback_data="cancel")
    builder.adjust(1)

    return builder.as_markup()


def get_confirmation_keyboard() -> InlineKeyboardMarkup:
    """Клавиатура подтверждения бронирования"""
    builder = InlineKeyboardBuilder()

    builder.button(text="✅ Подтвердить", callback_data="confirm_booking")
    builder.button(text="◀️ Изменить время", callback_data="back_to_time")
    builder.button(text="❌ Отмена", callback_data="cancel")
    builder.adjust(1)

    return builder.as_markup()


def get_bookings_keyboard(bookings: List[Booking]) -> InlineKeyboardMarkup:
    """Клавиатура списка бронирований клиента"""
    builder = InlineKeyboardBuilder()

    for booking in bookings:
        text = f"🗓 {format_date(booking.date)} {booking.start_time} · {booking.table_name or ''}"
        builder.button(text=text, callback_data=f"show_booking:{booking.id}")

    builder.button(text="🏠 Главное меню", callback_data="main_menu")
    builder.adjust(1)

    return builder.as_markup()


def get_booking_actions_keyboard(booking: Booking) -> InlineKeyboardMarkup:
    """Клавиатура действий с бронированием"""
    builder = InlineKeyboardBuilder()

    if booking.status in ACTIVE_STATUSES:
        builder.button(text="🗑 Отменить бронь", callback_data=f"cancel_booking:{booking.id}")
    builder.button(text="◀️ Назад", callback_data="my_bookings")
    builder.adjust(1)

    return builder.as_markup()


def get_admin_keyboard() -> InlineKeyboardMarkup:
    """Клавиатура админ-панели"""
    builder = InlineKeyboardBuilder()

    builder.button(text="📊 Сводка", callback_data="admin_dashboard")
    builder.button(text="📋 Брони на сегодня", callback_data="admin_today")
    builder.button(text="🎱 Столы", callback_data="admin_tables")
    builder.button(text="📈 Отчёт за 7 дней", callback_data="admin_report")
    builder.button(text="⚙️ Настройки", callback_data="admin_settings")
    builder.button(text="🏠 Главное меню", callback_data="main_menu")
    builder.adjust(1)

    return builder.as_markup()


def get_admin_booking_keyboard(booking: Booking) -> InlineKeyboardMarkup:
    """Действия администратора с бронью"""
    builder = InlineKeyboardBuilder()

    if booking.status == PENDING:
        builder.button(text="✅ Клиент пришёл", callback_data=f"admin_checkin:{booking.id}")
    if booking.status == CONFIRMED:
        builder.button(text="🏁 Завершить", callback_data=f"admin_complete:{booking.id}")
    if booking.status in ACTIVE_STATUSES:
        builder.button(text="❌ Отменить", callback_data=f"admin_cancel:{booking.id}")
    builder.adjust(2)

    return builder.as_markup()

