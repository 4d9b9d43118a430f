"""
Тесты сетки слотов и расчёта свободного времени
"""
from datetime import datetime

import pytest

from conftest import NOW, TODAY, TOMORROW, make_booking, save_booking
from database.models import Table
from services.availability import (
    build_table_view, current_business_date, get_available_slots, get_bookable_grid,
    get_occupied_until, get_table_slots, is_slot_taken
)
from utils.time_utils import (
    InvalidDateFormat, InvalidTimeFormat, add_hours, business_day, format_minutes,
    generate_slots, normalize_span, overlaps, parse_date, shop_minutes, to_minutes
)


def test_overnight_grid_has_32_slots():
    slots = generate_slots('10:00', '02:00', 30)

    assert len(slots) == 32
    assert slots[0] == '10:00'
    assert slots[-1] == '01:30'
    assert '02:00' not in slots
    assert '23:30' in slots and '00:00' in slots


def test_daytime_grid_stops_one_interval_before_close():
    assert generate_slots('10:00', '12:00', 30) == ['10:00', '10:30', '11:00', '11:30']
    assert generate_slots('10:00', '12:00', 60) == ['10:00', '11:00']


def test_normalize_span():
    assert normalize_span(600, 660) == (600, 660)
    assert normalize_span(1380, 60) == (1380, 1500)
    assert normalize_span(600, 600) == (600, 2040)


def test_touching_intervals_do_not_overlap():
    assert overlaps('10:00', '11:00', '11:00', '12:00') is False
    assert overlaps('10:00', '11:30', '11:00', '12:00') is True


def test_overlap_across_midnight():
    assert overlaps('23:00', '01:00', '23:30', '00:30') is True
    assert overlaps('22:00', '23:00', '23:00', '01:00') is False


@pytest.mark.parametrize('value', ['25:00', '12:60', '9am', '', '12-30', None])
def test_to_minutes_rejects_malformed_time(value):
    with pytest.raises(InvalidTimeFormat):
        to_minutes(value)


def test_to_minutes_accepts_seconds():
    assert to_minutes('09:05') == 545
    assert to_minutes('09:05:59') == 545


def test_every_time_of_day_survives_conversion():
    for minutes in range(24 * 60):
        text = format_minutes(minutes)
        assert to_minutes(text) == minutes
        assert format_minutes(to_minutes(text)) == text


def test_add_hours_wraps_past_midnight():
    assert add_hours('23:00', 2) == '01:00'
    assert add_hours('10:30', 1) == '11:30'


def test_parse_date_rejects_missing_day():
    with pytest.raises(InvalidDateFormat):
        parse_date('2025-02-30')


def test_business_day_after_midnight_belongs_to_previous_day():
    assert business_day(datetime(2025, 3, 11, 1, 0), '10:00', '02:00') == (TODAY, 1500)
    assert business_day(datetime(2025, 3, 11, 3, 0), '10:00', '02:00') == (TOMORROW, 180)
    assert business_day(datetime(2025, 3, 11, 1, 0), '10:00', '22:00') == (TOMORROW, 60)


def test_shop_minutes_moves_tail_times_past_midnight():
    assert shop_minutes('01:00', '10:00', '02:00') == 1500
    assert shop_minutes('10:00', '10:00', '02:00') == 600
    assert shop_minutes('01:00', '00:00', '23:00') == 60


def test_ongoing_booking_blocks_slots_until_it_ends(shop):
    booking = make_booking('14:00', '15:00', status='confirmed', booking_id=1)
    now = datetime(2025, 3, 10, 14, 30)

    assert get_occupied_until([booking], shop, now) == '15:00'

    slots = get_available_slots(shop, [booking], TODAY, now)
    assert '14:00' not in slots
    assert '14:30' not in slots
    assert slots[0] == '15:00'


def test_pending_booking_does_not_mark_table_occupied(shop):
    booking = make_booking('14:00', '15:00', status='pending', booking_id=1)

    assert get_occupied_until([booking], shop, datetime(2025, 3, 10, 14, 30)) is None


def test_today_grid_keeps_only_future_slots(shop):
    grid = get_bookable_grid(shop, TODAY, NOW)

    assert format_minutes(grid[0]) == '12:30'
    assert all(slot > 12 * 60 for slot in grid)
    assert len(get_bookable_grid(shop, TOMORROW, NOW)) == 32


def test_grid_after_midnight_uses_business_day(shop):
    after_midnight = datetime(2025, 3, 11, 1, 0)

    assert [format_minutes(s) for s in get_bookable_grid(shop, TODAY, after_midnight)] == ['01:30']
    assert len(get_bookable_grid(shop, TOMORROW, after_midnight)) == 32


def test_grid_rejects_invalid_date(shop):
    with pytest.raises(InvalidDateFormat):
        get_bookable_grid(shop, '10.03.2025', NOW)


def test_overnight_booking_blocks_tail_slots(shop):
    booking = make_booking('23:00', '01:00', date=TOMORROW, booking_id=1)

    slots = get_available_slots(shop, [booking], TOMORROW, NOW)

    for taken in ('23:00', '23:30', '00:00', '00:30'):
        assert taken not in slots
    assert slots[-2:] == ['01:00', '01:30']
    assert is_slot_taken(shop_minutes('00:30', shop.open_time, shop.close_time), [booking], shop)


def test_tail_booking_does_not_block_morning_slots(shop):
    booking = make_booking('00:30', '01:30', date=TOMORROW, booking_id=1)

    slots = get_available_slots(shop, [booking], TOMORROW, NOW)

    assert '10:00' in slots
    assert '00:00' in slots
    assert '00:30' not in slots and '01:00' not in slots
    assert '01:30' in slots


def test_table_view_preview_is_limited(shop):
    table = Table(id=2, name='VIP', type='vip')

    view = build_table_view(table, shop, [], NOW, limit=4)

    assert view.price_per_hour == 200
    assert view.occupied_until is None
    assert view.available_slots == ['12:30', '13:00', '13:30', '14:00']
    assert len(build_table_view(table, shop, [], NOW, limit=None).available_slots) > 4


def test_table_slots_ignore_cancelled_bookings(db):
    save_booking('10:00', '11:00', date=TOMORROW, status='cancelled')
    save_booking('12:00', '13:00', date=TOMORROW, status='completed')
    save_booking('13:00', '14:00', date=TOMORROW, table_id=2)

    slots = get_table_slots(1, TOMORROW, NOW)

    assert '10:00' in slots
    assert '12:00' not in slots and '12:30' not in slots
    assert '13:00' in slots


def test_current_business_date(shop):
    assert current_business_date(shop, datetime(2025, 3, 11, 1, 0)) == TODAY
    assert current_business_date(shop, datetime(2025, 3, 11, 3, 0)) == TOMORROW
    assert current_business_date(None, datetime(2025, 3, 11, 1, 0)) == TOMORROW
