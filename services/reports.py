"""
Отчёты по бронированиям: выручка по дням, загрузка столов, часы пик
"""
from collections import OrderedDict
from dataclasses import dataclass, field
from datetime import datetime
from typing import Dict, Iterable, List, Optional

from database.models import (
    Booking, Table, CANCELLED, NO_SHOW, PENDING, REVENUE_STATUSES, TABLE_AVAILABLE
)
from database.repository import BookingRepository, SettingsRepository, TableRepository
from services.availability import current_business_date
from utils.time_utils import parse_date, to_minutes


@dataclass
class RevenueStats:
    date: str
    revenue: float = 0
    booking_count: int = 0


@dataclass
class TableUsageStats:
    table_id: int
    table_name: str
    total_hours: float = 0
    total_revenue: float = 0
    booking_count: int = 0


@dataclass
class PeakHourStats:
    hour: int
    booking_count: int = 0


@dataclass
class DailySummary:
    date: str
    total_bookings: int = 0
    confirmed_bookings: int = 0
    pending_bookings: int = 0
    cancelled_bookings: int = 0
    total_revenue: float = 0


@dataclass
class Report:
    """Отчёт за период [start_date, end_date]"""
    start_date: str
    end_date: str
    revenue: List[RevenueStats] = field(default_factory=list)
    usage: List[TableUsageStats] = field(default_factory=list)
    peak_hours: List[PeakHourStats] = field(default_factory=list)

    @property
    def total_revenue(self) -> float:
        return sum(day.revenue for day in self.revenue)

    @property
    def total_bookings(self) -> int:
        return sum(day.booking_count for day in self.revenue)


@dataclass
class DashboardStats:
    """Сводка для админ-панели"""
    summary: DailySummary
    tables_available: int
    tables_total: int
    recent_bookings: List[Booking]

    @property
    def tables_occupied(self) -> int:
        return self.tables_total - self.tables_available


def _revenue_bookings(bookings: Iterable[Booking]) -> List[Booking]:
    return [b for b in bookings if b.status in REVENUE_STATUSES]


def revenue_by_day(bookings: Iterable[Booking]) -> List[RevenueStats]:
    """Выручка и число броней по дням; дни без броней не выводятся"""
    grouped: Dict[str, RevenueStats] = {}
    for booking in _revenue_bookings(bookings):
        stats = grouped.setdefault(booking.date, RevenueStats(date=booking.date))
        stats.revenue += booking.total_price or 0
        stats.booking_count += 1

    return [grouped[date] for date in sorted(grouped)]


def usage_by_table(bookings: Iterable[Booking],
                   table_names: Optional[Dict[int, str]] = None) -> List[TableUsageStats]:
    """Загрузка столов, сортировка по выручке по убыванию"""
    table_names = table_names or {}
    grouped: Dict[int, TableUsageStats] = OrderedDict()
    for booking in _revenue_bookings(bookings):
        stats = grouped.get(booking.table_id)
        if stats is None:
            name = table_names.get(booking.table_id) or booking.table_name or 'Unknown'
            stats = grouped[booking.table_id] = TableUsageStats(
                table_id=booking.table_id, table_name=name
            )
        stats.total_hours += booking.duration_hours
        stats.total_revenue += booking.total_price or 0
        stats.booking_count += 1

    return sorted(grouped.values(), key=lambda s: s.total_revenue, reverse=True)


def peak_hours(bookings: Iterable[Booking]) -> List[PeakHourStats]:
    """Число броней по часу начала, все 24 часа"""
    counts = [0] * 24
    for booking in _revenue_bookings(bookings):
        counts[to_minutes(booking.start_time) // 60] += 1
    return [PeakHourStats(hour=hour, booking_count=count) for hour, count in enumerate(counts)]


def daily_summary(bookings: Iterable[Booking], date: str) -> DailySummary:
    """Сводка по статусам броней за один день"""
    summary = DailySummary(date=date)
    for booking in bookings:
        if booking.date != date:
            continue
        summary.total_bookings += 1
        if booking.status in REVENUE_STATUSES:
            summary.confirmed_bookings += 1
            summary.total_revenue += booking.total_price or 0
        elif booking.status == PENDING:
            summary.pending_bookings += 1
        elif booking.status in (CANCELLED, NO_SHOW):
            summary.cancelled_bookings += 1
    return summary


def build_report(start_date: str, end_date: str) -> Report:
    """Отчёт за период; ошибки чтения из БД пробрасываются как есть"""
    if parse_date(start_date) > parse_date(end_date):
        raise ValueError(f"Начало периода {start_date} позже конца {end_date}")

    bookings = BookingRepository.list_bookings(
        date_from=start_date, date_to=end_date, statuses=REVENUE_STATUSES
    )
    table_names = {t.id: t.name for t in TableRepository.get_all_tables()}

    return Report(
        start_date=start_date,
        end_date=end_date,
        revenue=revenue_by_day(bookings),
        usage=usage_by_table(bookings, table_names),
        peak_hours=peak_hours(bookings)
    )


def get_daily_summary(date: str) -> DailySummary:
    """Сводка за день"""
    parse_date(date)
    return daily_summary(BookingRepository.list_bookings(date=date), date)


def count_available_tables(tables: Iterable[Table]) -> int:
    return sum(1 for t in tables if t.status == TABLE_AVAILABLE)


def get_dashboard_stats(now: Optional[datetime] = None) -> DashboardStats:
    """Брони за текущий рабочий день, свободные столы и последние брони"""
    tables = TableRepository.get_all_tables()
    date = current_business_date(SettingsRepository.get_settings(), now)
    return DashboardStats(
        summary=get_daily_summary(date),
        tables_available=count_available_tables(tables),
        tables_total=len(tables),
        recent_bookings=BookingRepository.get_recent_bookings(5)
    )
