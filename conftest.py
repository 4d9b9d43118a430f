"""
Общие фикстуры тестов: временная БД и фабрики броней
"""
from datetime import datetime

import pytest

from config import settings
from database.database import init_db
from database.models import Booking, ShopSettings
from database.repository import BookingRepository

# Понедельник, середина рабочего дня клуба
NOW = datetime(2025, 3, 10, 12, 0)
TODAY = '2025-03-10'
TOMORROW = '2025-03-11'


@pytest.fixture
def db(tmp_path):
    """Чистая БД с настройками и столами по умолчанию (10:00-02:00, 100/200)"""
    # Отдельный MonkeyPatch: monkeypatch.undo() в тестах не должен сбрасывать путь к БД
    with pytest.MonkeyPatch.context() as mp:
        mp.setattr(settings, 'DB_PATH', str(tmp_path / 'test.db'))
        init_db()
        yield settings.DB_PATH


@pytest.fixture
def shop():
    return ShopSettings(
        id=1,
        open_time='10:00',
        close_time='02:00',
        standard_price=100,
        vip_price=200,
        late_threshold_minutes=10
    )


def make_booking(start_time, end_time, date=TODAY, status='pending', table_id=1,
                 booking_id=None, phone='0812345678', total_price=100):
    return Booking(
        id=booking_id,
        table_id=table_id,
        customer_name='Иван',
        customer_phone=phone,
        date=date,
        start_time=start_time,
        end_time=end_time,
        status=status,
        total_price=total_price
    )


def save_booking(*args, **kwargs) -> Booking:
    """Запись брони в БД в обход проверок"""
    return BookingRepository.create_booking(make_booking(*args, **kwargs))
