"""
Тесты отчётов
"""
from datetime import datetime

import pytest

from conftest import NOW, TODAY, TOMORROW, make_booking, save_booking
from database.repository import TableRepository
from services.reports import (
    build_report, daily_summary, get_dashboard_stats, peak_hours, revenue_by_day,
    usage_by_table
)


def test_revenue_by_day_skips_cancelled_and_empty_days():
    bookings = [
        make_booking('10:00', '11:00', date='2025-03-01', status='confirmed', total_price=500),
        make_booking('12:00', '13:00', date='2025-03-01', status='confirmed', total_price=300),
        make_booking('10:00', '11:00', date='2025-03-02', status='cancelled', total_price=400),
    ]

    stats = revenue_by_day(bookings)

    assert len(stats) == 1
    assert stats[0].date == '2025-03-01'
    assert stats[0].revenue == 800
    assert stats[0].booking_count == 2


def test_revenue_by_day_is_sorted_by_date():
    bookings = [
        make_booking('10:00', '11:00', date='2025-03-05', status='completed'),
        make_booking('10:00', '11:00', date='2025-03-02', status='confirmed'),
        make_booking('10:00', '11:00', date='2025-03-03', status='pending'),
    ]

    assert [s.date for s in revenue_by_day(bookings)] == ['2025-03-02', '2025-03-05']


def test_usage_by_table_sorted_by_revenue():
    bookings = [
        make_booking('10:00', '11:00', status='confirmed', table_id=1, total_price=100),
        make_booking('23:00', '01:00', status='completed', table_id=2, total_price=400),
        make_booking('12:00', '13:30', status='confirmed', table_id=1, total_price=150),
        make_booking('15:00', '16:00', status='no_show', table_id=1, total_price=100),
    ]

    usage = usage_by_table(bookings, {1: 'Стол 1'})

    assert [u.table_id for u in usage] == [2, 1]
    assert usage[0].table_name == 'Unknown'
    assert usage[0].total_hours == 2
    assert usage[1].table_name == 'Стол 1'
    assert usage[1].total_hours == 2.5
    assert usage[1].total_revenue == 250
    assert usage[1].booking_count == 2


def test_peak_hours_cover_whole_day():
    bookings = [
        make_booking('19:00', '20:00', status='confirmed'),
        make_booking('19:30', '20:30', status='completed', table_id=2),
        make_booking('00:30', '01:30', status='confirmed'),
        make_booking('19:00', '20:00', status='cancelled', table_id=3),
    ]

    hours = peak_hours(bookings)

    assert len(hours) == 24
    assert hours[19].booking_count == 2
    assert hours[0].booking_count == 1
    assert sum(h.booking_count for h in hours) == 3


def test_daily_summary_status_buckets():
    bookings = [
        make_booking('10:00', '11:00', status='confirmed', total_price=100),
        make_booking('11:00', '12:00', status='completed', total_price=200),
        make_booking('12:00', '13:00', status='pending', total_price=100),
        make_booking('13:00', '14:00', status='cancelled', total_price=100),
        make_booking('14:00', '15:00', status='no_show', total_price=100),
        make_booking('10:00', '11:00', date=TOMORROW, status='confirmed', total_price=100),
    ]

    summary = daily_summary(bookings, TODAY)

    assert summary.total_bookings == 5
    assert summary.confirmed_bookings == 2
    assert summary.pending_bookings == 1
    assert summary.cancelled_bookings == 2
    assert summary.total_revenue == 300


def test_report_period_must_be_ordered():
    with pytest.raises(ValueError):
        build_report('2025-03-10', '2025-03-01')


def test_build_report_uses_closed_window(db):
    save_booking('10:00', '11:00', date='2025-03-01', status='confirmed', total_price=100)
    save_booking('10:00', '12:00', date='2025-03-05', status='completed', total_price=400,
                 table_id=2)
    save_booking('12:00', '13:00', date='2025-03-05', status='cancelled', total_price=100)
    save_booking('10:00', '11:00', date='2025-03-06', status='confirmed', total_price=100)

    report = build_report('2025-03-01', '2025-03-05')

    assert [r.date for r in report.revenue] == ['2025-03-01', '2025-03-05']
    assert report.total_revenue == 500
    assert report.total_bookings == 2
    assert [u.table_name for u in report.usage] == ['VIP', 'Стол 1']
    assert report.peak_hours[10].booking_count == 2


def test_dashboard_stats(db):
    save_booking('10:00', '11:00', status='confirmed', total_price=100)
    save_booking('14:00', '15:00')
    TableRepository.update_table_status(1, 'occupied')

    stats = get_dashboard_stats(NOW)

    assert stats.summary.total_bookings == 2
    assert stats.summary.total_revenue == 100
    assert stats.tables_total == 2
    assert stats.tables_available == 1
    assert stats.tables_occupied == 1
    assert len(stats.recent_bookings) == 2


def test_dashboard_after_midnight_shows_current_business_day(db):
    save_booking('23:00', '01:00', status='confirmed', total_price=200)
    save_booking('12:00', '13:00', date=TOMORROW)

    stats = get_dashboard_stats(datetime(2025, 3, 11, 1, 0))

    assert stats.summary.date == TODAY
    assert stats.summary.total_bookings == 1
    assert stats.summary.total_revenue == 200
