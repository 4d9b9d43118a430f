"""
Тесты создания бронирований и смены статусов
"""
import sqlite3
from datetime import datetime

import pytest

import services.booking_service as booking_service
from conftest import NOW, TODAY, TOMORROW, save_booking
from database.database import get_db
from database.repository import BookingRepository, TableRepository
from services.booking_service import (
    BookingRequest, cancel_booking, check_in, complete_booking, create_booking,
    find_bookings_by_phone, normalize_phone, validate_request
)
from services.errors import (
    BookingNotFound, InvalidDate, InvalidDuration, InvalidPhone, InvalidStatusTransition,
    NameTooShort, PersistenceUnavailable, RateLimitExceeded, SlotConflict,
    SlotNotSelected, TableNotFound
)
from utils.time_utils import overlaps


def request(start_time='14:00', date=TOMORROW, duration_hours=1, table_id=1,
            name='Иван', phone='081-234-5678'):
    return BookingRequest(
        table_id=table_id,
        customer_name=name,
        customer_phone=phone,
        date=date,
        start_time=start_time,
        duration_hours=duration_hours
    )


def test_normalize_phone_strips_everything_but_digits():
    assert normalize_phone('081-234-5678') == '0812345678'
    assert normalize_phone('+66 81 234 5678') == '66812345678'
    assert normalize_phone(None) == ''


@pytest.mark.parametrize('req, error', [
    (request(name='И', phone='12', date='завтра'), NameTooShort),
    (request(phone='12', date='завтра'), InvalidPhone),
    (request(phone='+66 81 234 5678'), InvalidPhone),
    (request(date='2025-13-01', start_time=None), InvalidDate),
    (request(start_time=None, duration_hours=9), SlotNotSelected),
    (request(start_time='14:15'), SlotNotSelected),
    (request(start_time='2pm'), SlotNotSelected),
    (request(start_time='11:00', date=TODAY), SlotNotSelected),
    (request(duration_hours=0), InvalidDuration),
    (request(duration_hours=6), InvalidDuration),
])
def test_validation_reports_first_failed_rule(shop, req, error):
    with pytest.raises(error):
        validate_request(req, shop, NOW)


def test_validation_returns_normalized_phone(shop):
    assert validate_request(request(), shop, NOW) == '0812345678'
    assert validate_request(request(start_time='01:30'), shop, NOW) == '0812345678'


def test_create_booking_freezes_price(db):
    booking = create_booking(request(duration_hours=2, table_id=2), NOW)

    assert booking.id is not None
    assert booking.status == 'pending'
    assert booking.customer_phone == '0812345678'
    assert booking.start_time == '14:00'
    assert booking.end_time == '16:00'
    assert booking.total_price == 400
    assert booking.table_name == 'VIP'
    assert booking.created_at is not None


def test_create_booking_across_midnight(db):
    booking = create_booking(request(start_time='23:00', duration_hours=2), NOW)

    assert booking.end_time == '01:00'
    assert booking.duration_hours == 2
    assert booking.total_price == 200


def test_unknown_table_is_rejected(db):
    with pytest.raises(TableNotFound):
        create_booking(request(table_id=99), NOW)


def test_overlapping_booking_is_rejected(db):
    create_booking(request(start_time='14:00', duration_hours=2), NOW)

    with pytest.raises(SlotConflict):
        create_booking(request(start_time='15:00', phone='0899999999'), NOW)

    active = BookingRepository.list_bookings(date=TOMORROW, table_id=1)
    assert len(active) == 1


def test_overlap_with_overnight_booking_is_rejected(db):
    create_booking(request(start_time='23:00', duration_hours=2), NOW)

    with pytest.raises(SlotConflict):
        create_booking(request(start_time='00:30', phone='0899999999'), NOW)


def test_touching_bookings_are_allowed(db):
    first = create_booking(request(start_time='10:00'), NOW)
    second = create_booking(request(start_time='11:00', phone='0899999999'), NOW)

    assert not overlaps(first.start_time, first.end_time, second.start_time, second.end_time)


def test_same_slot_on_other_table_is_allowed(db):
    create_booking(request(table_id=1), NOW)
    booking = create_booking(request(table_id=2, phone='0899999999'), NOW)

    assert booking.table_id == 2


def test_cancelled_booking_frees_the_slot(db):
    booking = create_booking(request(), NOW)
    cancel_booking(booking.id)

    again = create_booking(request(phone='0899999999'), NOW)

    assert again.start_time == booking.start_time


def test_sixth_booking_same_day_is_rate_limited(db):
    for hour in (10, 11, 12, 13, 14):
        create_booking(request(start_time=f'{hour}:00'), NOW)

    with pytest.raises(RateLimitExceeded):
        create_booking(request(start_time='15:00'), NOW)

    booking = create_booking(request(start_time='15:00', date='2025-03-12'), NOW)
    assert booking.date == '2025-03-12'


def test_finished_bookings_do_not_count_towards_limit(db):
    for hour in (10, 11, 12, 13, 14):
        save_booking(f'{hour}:00', f'{hour + 1}:00', date=TOMORROW, status='cancelled')

    booking = create_booking(request(start_time='15:00'), NOW)

    assert booking.status == 'pending'


def test_concurrent_insert_is_rejected_by_unique_index(db, monkeypatch):
    save_booking('14:00', '15:00', date=TOMORROW)
    # Вторая заявка прошла проверку пересечений до записи первой
    monkeypatch.setattr(booking_service, '_check_overlap', lambda candidate, shop: None)

    with pytest.raises(SlotConflict) as exc_info:
        create_booking(request(phone='0899999999'), NOW)

    assert isinstance(exc_info.value.__cause__, sqlite3.IntegrityError)


def test_storage_failure_is_reported(db, monkeypatch):
    def locked(booking):
        raise sqlite3.OperationalError('database is locked')

    monkeypatch.setattr(BookingRepository, 'create_booking', locked)

    with pytest.raises(PersistenceUnavailable):
        create_booking(request(), NOW)


def test_check_in_marks_table_occupied(db):
    booking = create_booking(request(), NOW)

    confirmed = check_in(booking.id)

    assert confirmed.status == 'confirmed'
    assert TableRepository.get_table_by_id(1).status == 'occupied'


def test_status_lifecycle(db):
    booking = create_booking(request(), NOW)
    check_in(booking.id)

    assert complete_booking(booking.id).status == 'completed'
    with pytest.raises(InvalidStatusTransition):
        cancel_booking(booking.id)


def test_pending_booking_cannot_be_completed(db):
    booking = create_booking(request(), NOW)

    with pytest.raises(InvalidStatusTransition):
        complete_booking(booking.id)
    assert BookingRepository.get_booking_by_id(booking.id).status == 'pending'


def test_missing_booking(db):
    with pytest.raises(BookingNotFound):
        cancel_booking(999)


def test_find_bookings_by_phone_normalizes_lookup(db):
    first = create_booking(request(start_time='10:00'), NOW)
    second = create_booking(request(start_time='12:00'), NOW)
    create_booking(request(start_time='14:00', phone='0899999999'), NOW)

    found = find_bookings_by_phone('081 234 5678')

    assert [b.id for b in found] == [second.id, first.id]


def test_past_date_is_rejected(db):
    with pytest.raises(InvalidDate):
        create_booking(request(date='2020-01-01'), NOW)
    with pytest.raises(InvalidDate):
        create_booking(request(date='2025-03-09'), NOW)

    assert BookingRepository.list_bookings() == []


def test_date_beyond_booking_window_is_rejected(db):
    with pytest.raises(InvalidDate):
        create_booking(request(date='2025-03-17'), NOW)

    booking = create_booking(request(date='2025-03-16'), NOW)
    assert booking.date == '2025-03-16'


def test_after_midnight_tail_of_previous_day_is_bookable(shop):
    after_midnight = datetime(2025, 3, 11, 1, 0)

    assert validate_request(request(date=TODAY, start_time='01:30'), shop, after_midnight) == '0812345678'
    with pytest.raises(InvalidDate):
        validate_request(request(date='2025-03-09', start_time='01:30'), shop, after_midnight)


def test_missing_shop_settings(db):
    with get_db() as conn:
        conn.execute("DELETE FROM shop_settings")

    with pytest.raises(PersistenceUnavailable):
        create_booking(request(), NOW)


def test_status_change_loses_to_concurrent_update(db, monkeypatch):
    booking = create_booking(request(), NOW)
    stale = BookingRepository.get_booking_by_id(booking.id)
    cancel_booking(booking.id)
    # Статус прочитан до отмены
    monkeypatch.setattr(BookingRepository, 'get_booking_by_id', lambda booking_id: stale)

    with pytest.raises(InvalidStatusTransition):
        check_in(booking.id)

    monkeypatch.undo()
    assert BookingRepository.get_booking_by_id(booking.id).status == 'cancelled'
    assert TableRepository.get_table_by_id(1).status == 'available'
