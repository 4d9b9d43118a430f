"""
Конфигурация проекта
"""
import os
from dataclasses import dataclass
from typing import List


@dataclass
class Settings:
    """Настройки приложения"""
    # Telegram
    BOT_TOKEN: str = os.getenv('BOT_TOKEN', '')
    ADMIN_IDS: List[int] = None

    # База данных
    DB_PATH: str = os.getenv('DB_PATH', 'data/snooker_bot.db')

    # Отображение
    CURRENCY: str = os.getenv('CURRENCY', '฿')

    # Бизнес-правила
    SLOT_INTERVAL_MINUTES: int = 30
    PREVIEW_SLOTS_COUNT: int = 4
    MAX_BOOKINGS_PER_PHONE: int = 5
    MIN_BOOKING_HOURS: int = 1
    MAX_BOOKING_HOURS: int = 5
    MAX_BOOKING_DAYS: int = 7
    RECONCILE_INTERVAL_MINUTES: int = 1

    # Значения по умолчанию для настроек клуба (заполняются при init_db)
    DEFAULT_OPEN_TIME: str = '10:00'
    DEFAULT_CLOSE_TIME: str = '02:00'   # следующего дня
    DEFAULT_STANDARD_PRICE: float = 100
    DEFAULT_VIP_PRICE: float = 200
    DEFAULT_LATE_THRESHOLD_MINUTES: int = 10

    def __post_init__(self):
        """Инициализация после создания объекта"""
        # Парсинг ADMIN_IDS из переменной окружения
        if self.ADMIN_IDS is None:
            admin_ids_str = os.getenv('ADMIN_IDS', '')
            if admin_ids_str:
                self.ADMIN_IDS = [int(id.strip()) for id in admin_ids_str.split(',')]
            else:
                self.ADMIN_IDS = []

    def require_bot_token(self) -> str:
        """Токен нужен только боту, движок бронирования работает без него"""
        if not self.BOT_TOKEN:
            raise ValueError("BOT_TOKEN не установлен")
        return self.BOT_TOKEN

    def is_admin(self, user_id: int) -> bool:
        """Проверка, является ли пользователь администратором"""
        return user_id in self.ADMIN_IDS


# Глобальный экземпляр настроек
settings = Settings()
