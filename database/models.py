"""
Модели данных для работы с БД
"""
from dataclasses import dataclass, field
from datetime import datetime
from typing import List, Optional

from utils.time_utils import normalize_span, to_minutes


# Статусы столов
TABLE_AVAILABLE = 'available'
TABLE_OCCUPIED = 'occupied'
TABLE_MAINTENANCE = 'maintenance'
TABLE_STATUSES = (TABLE_AVAILABLE, TABLE_OCCUPIED, TABLE_MAINTENANCE)

# Категории столов
TABLE_STANDARD = 'standard'
TABLE_VIP = 'vip'
TABLE_TYPES = (TABLE_STANDARD, TABLE_VIP)

# Статусы бронирований
PENDING = 'pending'
CONFIRMED = 'confirmed'
COMPLETED = 'completed'
CANCELLED = 'cancelled'
NO_SHOW = 'no_show'

# Брони, которые занимают стол при расчёте свободных слотов
OCCUPYING_STATUSES = frozenset({PENDING, CONFIRMED, COMPLETED})
# Брони, участвующие в проверке пересечений и лимита на телефон
ACTIVE_STATUSES = frozenset({PENDING, CONFIRMED})
# Брони, приносящие выручку
REVENUE_STATUSES = frozenset({CONFIRMED, COMPLETED})
TERMINAL_STATUSES = frozenset({COMPLETED, CANCELLED, NO_SHOW})


@dataclass
class Table:
    """Модель стола"""
    id: int
    name: str
    type: str = TABLE_STANDARD
    status: str = TABLE_AVAILABLE


@dataclass
class Booking:
    """
    Модель бронирования.
    Дата хранится как 'YYYY-MM-DD', время как 'HH:MM' (end_time может
    оказаться после полуночи, тогда end_time <= start_time).
    """
    id: Optional[int]
    table_id: int
    customer_name: str
    customer_phone: str
    date: str
    start_time: str
    end_time: str
    status: str = PENDING
    total_price: float = 0
    slip_url: Optional[str] = None
    created_at: Optional[datetime] = None
    table_name: Optional[str] = None

    @property
    def duration_minutes(self) -> int:
        """Длительность брони в минутах с учётом перехода через полночь"""
        start, end = normalize_span(to_minutes(self.start_time), to_minutes(self.end_time))
        return end - start

    @property
    def duration_hours(self) -> float:
        """Длительность брони в часах"""
        return self.duration_minutes / 60

    @property
    def is_terminal(self) -> bool:
        return self.status in TERMINAL_STATUSES


@dataclass
class ShopSettings:
    """Настройки клуба (единственная запись в БД)"""
    id: int
    open_time: str
    close_time: str
    standard_price: float
    vip_price: float
    late_threshold_minutes: int = 10
    payment_qr_url: Optional[str] = None

    def price_for(self, table_type: str) -> float:
        """Стоимость часа для категории стола"""
        if table_type == TABLE_VIP:
            return self.vip_price or 0
        return self.standard_price or 0


@dataclass
class TableView:
    """Стол с вычисляемыми полями. Никогда не сохраняется в БД"""
    table: Table
    price_per_hour: float
    occupied_until: Optional[str] = None
    available_slots: List[str] = field(default_factory=list)

    @property
    def id(self) -> int:
        return self.table.id

    @property
    def name(self) -> str:
        return self.table.name

    @property
    def status(self) -> str:
        return self.table.status
