"""
Обработчики команд администраторов
"""
import logging
from datetime import datetime, timedelta
from typing import Optional

from aiogram import Router, F
from aiogram.filters import Command, CommandObject
from aiogram.types import Message, CallbackQuery

from config import settings
from database.models import ACTIVE_STATUSES, NO_SHOW, TABLE_STATUSES, TABLE_TYPES
from database.repository import BookingRepository, SettingsRepository, TableRepository
from services.availability import current_business_date
from services.booking_service import cancel_booking, check_in, complete_booking
from services.errors import BookingError
from services.reconciler import refresh_tables
from services.reports import build_report, get_dashboard_stats
from keyboards.keyboards import get_admin_keyboard, get_admin_booking_keyboard
from utils.messages import booking_text, table_text
from utils.time_utils import (
    InvalidDateFormat, InvalidTimeFormat, format_price, generate_slots, to_minutes, today_str
)

logger = logging.getLogger(__name__)
router = Router()

MESSAGE_LIMIT = 4000


def is_admin(user_id: int) -> bool:
    """Проверка прав администратора"""
    return settings.is_admin(user_id)


def parse_id(command: CommandObject) -> Optional[int]:
    """ID из первого аргумента команды"""
    if not command.args:
        return None
    try:
        return int(command.args.split()[0])
    except ValueError:
        return None


async def answer_long(message: Message, text: str):
    """Разбиение длинного сообщения по строкам"""
    parts = []
    current = ""
    for block in text.split("\n\n"):
        if current and len(current) + len(block) + 2 > MESSAGE_LIMIT:
            parts.append(current)
            current = block
        else:
            current = f"{current}\n\n{block}" if current else block
    if current:
        parts.append(current)

    for part in parts:
        await message.answer(part)


@router.message(F.text == "⚙️ Админ-панель")
async def admin_panel(message: Message):
    """Открытие админ-панели"""
    if not is_admin(message.from_user.id):
        await message.answer("⚠️ У вас нет доступа к админ-панели")
        return

    await message.answer(
        "⚙️ Админ-панель\n\n"
        "Команды:\n"
        "/dashboard — сводка, /today — брони на сегодня\n"
        "/checkin <id>, /complete <id>, /cancel <id>\n"
        "/tables, /table <id> <available|occupied|maintenance>\n"
        "/addtable <standard|vip> <название>, /edittable <id> <standard|vip> [название]\n"
        "/deltable <id>\n"
        "/report [YYYY-MM-DD] [YYYY-MM-DD]\n"
        "/settings, /set <поле> <значение>",
        reply_markup=get_admin_keyboard()
    )


# Сводка

async def show_dashboard(message: Message):
    stats = get_dashboard_stats()
    summary = stats.summary

    text = (
        f"📊 Сводка на сегодня\n\n"
        f"Броней: {summary.total_bookings}\n"
        f"⏳ Ожидаем: {summary.pending_bookings}\n"
        f"✅ Пришли: {summary.confirmed_bookings}\n"
        f"🚫 Отмены и неявки: {summary.cancelled_bookings}\n"
        f"💰 Выручка: {format_price(summary.total_revenue)}\n\n"
        f"🎱 Свободно столов: {stats.tables_available} из {stats.tables_total}"
    )
    if stats.recent_bookings:
        text += "\n\n🆕 Последние брони:\n" + "\n".join(
            f"#{b.id} {b.date} {b.start_time} {b.table_name or ''} — {b.customer_name}"
            for b in stats.recent_bookings
        )
    await message.answer(text)


@router.message(Command("dashboard"))
async def cmd_dashboard(message: Message):
    if not is_admin(message.from_user.id):
        await message.answer("⚠️ У вас нет доступа к этой команде")
        return
    await show_dashboard(message)


@router.callback_query(F.data == "admin_dashboard")
async def callback_dashboard(callback: CallbackQuery):
    if not is_admin(callback.from_user.id):
        await callback.answer("⚠️ У вас нет доступа", show_alert=True)
        return
    await show_dashboard(callback.message)
    await callback.answer()


# Брони на сегодня

async def show_today_bookings(message: Message):
    """Показать брони на сегодня"""
    # Сначала сверка, чтобы опоздавшие уже были в статусе no_show
    board = await refresh_tables()
    no_show_ids = {b.id for b in board.reconciliation.no_shows}

    date = current_business_date(SettingsRepository.get_settings())
    bookings = BookingRepository.list_bookings(date=date)
    if not bookings:
        await message.answer("📋 На сегодня нет бронирований")
        return

    await message.answer(f"📋 Бронирования на сегодня: {len(bookings)}")
    for booking in bookings:
        if booking.id in no_show_ids:
            booking.status = NO_SHOW
        if booking.status in ACTIVE_STATUSES:
            await message.answer(booking_text(booking), reply_markup=get_admin_booking_keyboard(booking))
        else:
            await message.answer(booking_text(booking))


@router.message(Command("today"))
async def cmd_today(message: Message):
    """Команда /today - список броней на сегодня"""
    if not is_admin(message.from_user.id):
        await message.answer("⚠️ У вас нет доступа к этой команде")
        return

    await show_today_bookings(message)


@router.callback_query(F.data == "admin_today")
async def callback_today(callback: CallbackQuery):
    """Callback для броней на сегодня"""
    if not is_admin(callback.from_user.id):
        await callback.answer("⚠️ У вас нет доступа", show_alert=True)
        return

    await show_today_bookings(callback.message)
    await callback.answer()


# Смена статуса брони

BOOKING_ACTIONS = {
    'checkin': (check_in, "✅ Клиент отмечен, стол занят"),
    'complete': (complete_booking, "🏁 Бронирование завершено"),
    'cancel': (cancel_booking, "❌ Бронирование отменено"),
}


@router.message(Command("checkin", "complete", "cancel"))
async def cmd_booking_action(message: Message, command: CommandObject):
    """Команды /checkin, /complete, /cancel <id>"""
    if not is_admin(message.from_user.id):
        await message.answer("⚠️ У вас нет доступа к этой команде")
        return

    booking_id = parse_id(command)
    if booking_id is None:
        await message.answer(f"⚠️ Использование: /{command.command} <id>\n\nПример: /{command.command} 123")
        return

    action, done_text = BOOKING_ACTIONS[command.command]
    try:
        booking = action(booking_id)
    except BookingError as e:
        await message.answer(f"⚠️ {e}")
        return

    logger.info(f"Администратор {message.from_user.id}: /{command.command} {booking_id}")
    await message.answer(f"{done_text}\n\n{booking_text(booking)}")


@router.callback_query(F.data.regexp(r"^admin_(checkin|complete|cancel):\d+$"))
async def callback_booking_action(callback: CallbackQuery):
    """Кнопки действий с бронью"""
    if not is_admin(callback.from_user.id):
        await callback.answer("⚠️ У вас нет доступа", show_alert=True)
        return

    name, booking_id = callback.data[len("admin_"):].split(":")
    action, done_text = BOOKING_ACTIONS[name]
    try:
        booking = action(int(booking_id))
    except BookingError as e:
        await callback.answer(str(e), show_alert=True)
        return

    logger.info(f"Администратор {callback.from_user.id}: {name} {booking_id}")
    if booking.status in ACTIVE_STATUSES:
        await callback.message.edit_text(booking_text(booking), reply_markup=get_admin_booking_keyboard(booking))
    else:
        await callback.message.edit_text(booking_text(booking))
    await callback.answer(done_text)


# Столы

async def show_tables(message: Message):
    board = await refresh_tables()
    if not board.tables:
        await message.answer("Столы не добавлены. /addtable <standard|vip> <название>")
        return

    text = "🎱 Столы:\n\n" + "\n\n".join(
        f"#{view.id} {table_text(view)}" for view in board.tables
    )
    await answer_long(message, text)


@router.message(Command("tables"))
async def cmd_tables(message: Message):
    if not is_admin(message.from_user.id):
        await message.answer("⚠️ У вас нет доступа к этой команде")
        return
    await show_tables(message)


@router.callback_query(F.data == "admin_tables")
async def callback_tables(callback: CallbackQuery):
    if not is_admin(callback.from_user.id):
        await callback.answer("⚠️ У вас нет доступа", show_alert=True)
        return
    await show_tables(callback.message)
    await callback.answer()


@router.message(Command("table"))
async def cmd_table_status(message: Message, command: CommandObject):
    """Команда /table <id> <status> - ручная смена статуса стола"""
    if not is_admin(message.from_user.id):
        await message.answer("⚠️ У вас нет доступа к этой команде")
        return

    args = (command.args or "").split()
    if len(args) != 2 or not args[0].isdigit() or args[1] not in TABLE_STATUSES:
        await message.answer(f"⚠️ Использование: /table <id> <{'|'.join(TABLE_STATUSES)}>")
        return

    table = TableRepository.update_table_status(int(args[0]), args[1])
    if not table:
        await message.answer(f"⚠️ Стол #{args[0]} не найден")
        return

    logger.info(f"Администратор {message.from_user.id}: стол #{table.id} -> {table.status}")
    await message.answer(f"✅ Стол «{table.name}»: {table.status}")


@router.message(Command("addtable"))
async def cmd_add_table(message: Message, command: CommandObject):
    """Команда /addtable <type> <name>"""
    if not is_admin(message.from_user.id):
        await message.answer("⚠️ У вас нет доступа к этой команде")
        return

    args = (command.args or "").split(maxsplit=1)
    if len(args) != 2 or args[0] not in TABLE_TYPES:
        await message.answer(f"⚠️ Использование: /addtable <{'|'.join(TABLE_TYPES)}> <название>")
        return

    table = TableRepository.create_table(args[1].strip(), args[0])
    await message.answer(f"✅ Добавлен стол #{table.id} «{table.name}»")


@router.message(Command("edittable"))
async def cmd_edit_table(message: Message, command: CommandObject):
    """Команда /edittable <id> <type> [name]"""
    if not is_admin(message.from_user.id):
        await message.answer("⚠️ У вас нет доступа к этой команде")
        return

    args = (command.args or "").split(maxsplit=2)
    if len(args) < 2 or not args[0].isdigit() or args[1] not in TABLE_TYPES:
        await message.answer(f"⚠️ Использование: /edittable <id> <{'|'.join(TABLE_TYPES)}> [название]")
        return

    name = args[2].strip() if len(args) == 3 else None
    table = TableRepository.update_table(int(args[0]), name=name, table_type=args[1])
    if not table:
        await message.answer(f"⚠️ Стол #{args[0]} не найден")
        return

    await message.answer(f"✅ Стол #{table.id} «{table.name}», категория {table.type}")


@router.message(Command("deltable"))
async def cmd_delete_table(message: Message, command: CommandObject):
    """Команда /deltable <id>"""
    if not is_admin(message.from_user.id):
        await message.answer("⚠️ У вас нет доступа к этой команде")
        return

    table_id = parse_id(command)
    if table_id is None:
        await message.answer("⚠️ Использование: /deltable <id>")
        return

    if TableRepository.delete_table(table_id):
        await message.answer(f"✅ Стол #{table_id} удалён")
    else:
        await message.answer(f"⚠️ Стол #{table_id} не найден")


# Отчёты

async def show_report(message: Message, start_date: str, end_date: str):
    try:
        report = build_report(start_date, end_date)
    except (InvalidDateFormat, ValueError) as e:
        await message.answer(f"⚠️ {e}")
        return

    text = f"📈 Отчёт {start_date} — {end_date}\n\n"
    text += f"💰 Выручка: {format_price(report.total_revenue)}, броней: {report.total_bookings}"

    if report.revenue:
        text += "\n\n📅 По дням:\n" + "\n".join(
            f"{day.date}: {format_price(day.revenue)} ({day.booking_count})"
            for day in report.revenue
        )
    if report.usage:
        text += "\n\n🎱 По столам:\n" + "\n".join(
            f"{usage.table_name}: {usage.total_hours:g} ч, {format_price(usage.total_revenue)} "
            f"({usage.booking_count})"
            for usage in report.usage
        )
    busiest = [h for h in report.peak_hours if h.booking_count]
    if busiest:
        busiest.sort(key=lambda h: h.booking_count, reverse=True)
        text += "\n\n⏰ Часы пик:\n" + "\n".join(
            f"{h.hour:02d}:00 — {h.booking_count}" for h in busiest[:5]
        )

    await answer_long(message, text)


@router.message(Command("report"))
async def cmd_report(message: Message, command: CommandObject):
    """Команда /report [start] [end]"""
    if not is_admin(message.from_user.id):
        await message.answer("⚠️ У вас нет доступа к этой команде")
        return

    args = (command.args or "").split()
    end_date = args[1] if len(args) > 1 else today_str()
    start_date = args[0] if args else (datetime.now() - timedelta(days=6)).strftime('%Y-%m-%d')
    await show_report(message, start_date, end_date)


@router.callback_query(F.data == "admin_report")
async def callback_report(callback: CallbackQuery):
    if not is_admin(callback.from_user.id):
        await callback.answer("⚠️ У вас нет доступа", show_alert=True)
        return

    start_date = (datetime.now() - timedelta(days=6)).strftime('%Y-%m-%d')
    await show_report(callback.message, start_date, today_str())
    await callback.answer()


# Настройки клуба

SETTINGS_PARSERS = {
    'open_time': str,
    'close_time': str,
    'standard_price': float,
    'vip_price': float,
    'late_threshold_minutes': int,
    'payment_qr_url': str,
}


async def show_settings(message: Message):
    shop = SettingsRepository.get_settings()
    if not shop:
        await message.answer("⚠️ Настройки клуба не найдены")
        return

    slots = generate_slots(shop.open_time, shop.close_time)
    grid = f"{slots[0]}–{slots[-1]}, {len(slots)} шт." if slots else "нет"

    await message.answer(
        f"⚙️ Настройки клуба\n\n"
        f"open_time: {shop.open_time}\n"
        f"close_time: {shop.close_time}\n"
        f"standard_price: {format_price(shop.standard_price)}\n"
        f"vip_price: {format_price(shop.vip_price)}\n"
        f"late_threshold_minutes: {shop.late_threshold_minutes}\n"
        f"payment_qr_url: {shop.payment_qr_url or '—'}\n"
        f"Слоты для брони: {grid}\n\n"
        f"Изменить: /set <поле> <значение> (для payment_qr_url «-» очищает)"
    )


@router.message(Command("settings"))
async def cmd_settings(message: Message):
    if not is_admin(message.from_user.id):
        await message.answer("⚠️ У вас нет доступа к этой команде")
        return
    await show_settings(message)


@router.callback_query(F.data == "admin_settings")
async def callback_settings(callback: CallbackQuery):
    if not is_admin(callback.from_user.id):
        await callback.answer("⚠️ У вас нет доступа", show_alert=True)
        return
    await show_settings(callback.message)
    await callback.answer()


@router.message(Command("set"))
async def cmd_set(message: Message, command: CommandObject):
    """Команда /set <field> <value>"""
    if not is_admin(message.from_user.id):
        await message.answer("⚠️ У вас нет доступа к этой команде")
        return

    args = (command.args or "").split(maxsplit=1)
    if len(args) != 2 or args[0] not in SETTINGS_PARSERS:
        await message.answer(f"⚠️ Использование: /set <{'|'.join(SETTINGS_PARSERS)}> <значение>")
        return

    field_name, raw_value = args[0], args[1].strip()
    try:
        value = SETTINGS_PARSERS[field_name](raw_value)
        if field_name in ('open_time', 'close_time'):
            to_minutes(value)
        if field_name == 'payment_qr_url' and value == '-':
            value = None
        if isinstance(value, (int, float)) and value < 0:
            raise ValueError("значение не может быть отрицательным")
    except (InvalidTimeFormat, ValueError) as e:
        await message.answer(f"⚠️ Некорректное значение {field_name}: {e}")
        return

    SettingsRepository.update_settings(**{field_name: value})
    logger.info(f"Администратор {message.from_user.id}: {field_name} = {value}")
    await show_settings(message)

