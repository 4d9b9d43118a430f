"""
Утилиты для работы со временем и расписанием.

Время хранится строками 'HH:MM' в локальном времени клуба, без часовых поясов.
Внутри расчётов используются минуты от полуночи; если клуб закрывается после
полуночи, значения сетки слотов выходят за 1440 и переводятся обратно
по модулю суток только для отображения.
"""
import re
from datetime import date, datetime, timedelta
from typing import List, Optional, Tuple, Union

from config import settings

MINUTES_PER_DAY = 24 * 60

_TIME_RE = re.compile(r'^(\d{1,2}):(\d{2})(?::(\d{2}))?$')


class InvalidTimeFormat(ValueError):
    """Строка времени не в формате HH:MM"""


class InvalidDateFormat(ValueError):
    """Строка даты не в формате YYYY-MM-DD"""


def to_minutes(value: str) -> int:
    """
    Перевод 'HH:MM' в минуты от полуночи.
    Секунды ('HH:MM:SS') допускаются и отбрасываются.
    """
    match = _TIME_RE.match(value.strip()) if isinstance(value, str) else None
    if not match:
        raise InvalidTimeFormat(f"Некорректное время: {value!r}")

    hours, minutes = int(match.group(1)), int(match.group(2))
    if hours > 23 or minutes > 59:
        raise InvalidTimeFormat(f"Некорректное время: {value!r}")
    return hours * 60 + minutes


def format_minutes(minutes: int) -> str:
    """Перевод минут в 'HH:MM' (по модулю суток)"""
    minutes %= MINUTES_PER_DAY
    return f"{minutes // 60:02d}:{minutes % 60:02d}"


def normalize_span(start: int, end: int) -> Tuple[int, int]:
    """Если конец не позже начала, интервал переходит через полночь"""
    if end <= start:
        end += MINUTES_PER_DAY
    return start, end


def _as_minutes(value: Union[int, str]) -> int:
    return to_minutes(value) if isinstance(value, str) else value


def overlaps(a_start: Union[int, str], a_end: Union[int, str],
             b_start: Union[int, str], b_end: Union[int, str]) -> bool:
    """
    Пересечение полуоткрытых интервалов [a_start, a_end) и [b_start, b_end).
    Касание границ (a_end == b_start) пересечением не считается.
    """
    a_start, a_end = normalize_span(_as_minutes(a_start), _as_minutes(a_end))
    b_start, b_end = normalize_span(_as_minutes(b_start), _as_minutes(b_end))
    return a_start < b_end and a_end > b_start


def wraps_midnight(open_time: str, close_time: str) -> bool:
    """Клуб закрывается после полуночи"""
    return to_minutes(close_time) <= to_minutes(open_time)


def shop_minutes(value: Union[int, str], open_time: str, close_time: str) -> int:
    """
    Положение времени внутри рабочего дня клуба.
    Если клуб работает после полуночи, время до закрытия относится
    к хвосту рабочего дня и получает +1440.
    """
    minutes = _as_minutes(value)
    if wraps_midnight(open_time, close_time) and minutes < to_minutes(close_time):
        minutes += MINUTES_PER_DAY
    return minutes


def business_day(now: datetime, open_time: str, close_time: str) -> Tuple[str, int]:
    """
    Рабочий день клуба и минуты внутри него для момента now.
    После полуночи до закрытия ещё идёт вчерашний рабочий день.
    """
    minutes = current_minutes(now)
    if wraps_midnight(open_time, close_time) and minutes < to_minutes(close_time):
        return today_str(now - timedelta(days=1)), minutes + MINUTES_PER_DAY
    return today_str(now), minutes


def slot_minutes(open_time: str, close_time: str,
                 interval: int = settings.SLOT_INTERVAL_MINUTES) -> List[int]:
    """Начала слотов в минутах от полуночи дня открытия (могут быть > 1440)"""
    start, end = normalize_span(to_minutes(open_time), to_minutes(close_time))

    slots = []
    current = start
    while current <= end - interval:
        slots.append(current)
        current += interval
    return slots


def generate_slots(open_time: str, close_time: str,
                   interval: int = settings.SLOT_INTERVAL_MINUTES) -> List[str]:
    """Сетка слотов 'HH:MM' от открытия до (закрытие - интервал)"""
    return [format_minutes(m) for m in slot_minutes(open_time, close_time, interval)]


def add_hours(start_time: str, hours: Union[int, float]) -> str:
    """Время окончания брони (может перейти через полночь)"""
    return format_minutes(to_minutes(start_time) + int(round(hours * 60)))


def parse_date(value: str) -> date:
    """Разбор 'YYYY-MM-DD' с проверкой, что такой день существует"""
    try:
        return datetime.strptime(value, '%Y-%m-%d').date()
    except (TypeError, ValueError):
        raise InvalidDateFormat(f"Некорректная дата: {value!r}") from None


def today_str(now: Optional[datetime] = None) -> str:
    """Сегодняшняя дата в формате хранения"""
    return (now or datetime.now()).strftime('%Y-%m-%d')


def current_minutes(now: Optional[datetime] = None) -> int:
    """Текущее время в минутах от полуночи"""
    now = now or datetime.now()
    return now.hour * 60 + now.minute


def get_available_dates(now: Optional[datetime] = None) -> List[date]:
    """Получение списка доступных дат для бронирования"""
    today = (now or datetime.now()).date()
    return [today + timedelta(days=i) for i in range(settings.MAX_BOOKING_DAYS)]


def format_date(value: Union[date, str], now: Optional[datetime] = None) -> str:
    """Форматирование даты"""
    if isinstance(value, str):
        value = parse_date(value)

    weekdays = ['Пн', 'Вт', 'Ср', 'Чт', 'Пт', 'Сб', 'Вс']
    weekday = weekdays[value.weekday()]

    today = (now or datetime.now()).date()
    if value == today:
        return f"Сегодня ({weekday})"
    elif value == today + timedelta(days=1):
        return f"Завтра ({weekday})"
    else:
        return f"{value.strftime('%d.%m')} ({weekday})"


def format_price(amount: float) -> str:
    """Форматирование суммы"""
    if amount == int(amount):
        return f"{int(amount)} {settings.CURRENCY}"
    return f"{amount:.2f} {settings.CURRENCY}"
