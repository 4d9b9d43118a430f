"""
Тексты сообщений и уведомления администраторов
"""
import logging

from aiogram import Bot

from config import settings
from database.models import Booking, TableView
from utils.time_utils import format_date, format_price

logger = logging.getLogger(__name__)

BOOKING_STATUS_LABELS = {
    'pending': '⏳ Ожидает',
    'confirmed': '✅ Клиент пришёл',
    'completed': '🏁 Завершено',
    'cancelled': '❌ Отменено',
    'no_show': '🚫 Не пришёл',
}

TABLE_STATUS_LABELS = {
    'available': '🟢 Свободен',
    'occupied': '🔴 Занят',
    'maintenance': '🛠 Обслуживание',
}

TABLE_TYPE_LABELS = {
    'standard': 'Обычный',
    'vip': 'VIP',
}


def booking_text(booking: Booking) -> str:
    """Карточка бронирования"""
    text = (
        f"📋 Бронирование #{booking.id}\n"
        f"📅 {format_date(booking.date)} {booking.start_time}–{booking.end_time}\n"
        f"🎱 {booking.table_name or f'Стол #{booking.table_id}'}\n"
        f"👤 {booking.customer_name}\n"
        f"📱 {booking.customer_phone}\n"
        f"💰 {format_price(booking.total_price)}\n"
        f"Статус: {BOOKING_STATUS_LABELS.get(booking.status, booking.status)}"
    )
    if booking.slip_url:
        text += "\n🧾 Чек оплаты приложен"
    return text


def table_text(view: TableView) -> str:
    """Строка стола в списке"""
    text = (
        f"{TABLE_STATUS_LABELS.get(view.status, view.status)} {view.name} "
        f"({TABLE_TYPE_LABELS.get(view.table.type, view.table.type)}, "
        f"{format_price(view.price_per_hour)}/ч)"
    )
    if view.occupied_until:
        text += f"\n   ⏱ Занят до {view.occupied_until}"
    if view.available_slots:
        text += f"\n   🕐 Ближайшие: {', '.join(view.available_slots)}"
    elif view.status != 'maintenance':
        text += "\n   Свободных слотов на сегодня нет"
    return text


async def notify_admins(bot: Bot, text: str, exclude: int = None):
    """Уведомление администраторов; ошибки доставки только логируются"""
    for admin_id in settings.ADMIN_IDS:
        if admin_id == exclude:
            continue
        try:
            await bot.send_message(admin_id, text)
        except Exception as e:
            logger.error(f"Не удалось отправить уведомление админу {admin_id}: {e}")
