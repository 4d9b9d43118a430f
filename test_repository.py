"""
Тесты хранилища: столы, настройки, фильтры броней
"""
import pytest

from conftest import TODAY, TOMORROW, save_booking
from database.repository import BookingRepository, SettingsRepository, TableRepository


def test_seeded_defaults(db):
    shop = SettingsRepository.get_settings()

    assert (shop.open_time, shop.close_time) == ('10:00', '02:00')
    assert shop.price_for('standard') == 100
    assert shop.price_for('vip') == 200
    assert [t.type for t in TableRepository.get_all_tables()] == ['vip', 'standard']


def test_update_table_keeps_omitted_fields(db):
    table = TableRepository.update_table(1, table_type='vip')

    assert table.name == 'Стол 1'
    assert table.type == 'vip'
    assert TableRepository.update_table(99, name='Нет') is None


def test_delete_table_removes_its_bookings(db):
    booking = save_booking('10:00', '11:00')

    assert TableRepository.delete_table(1) is True
    assert TableRepository.delete_table(1) is False
    assert BookingRepository.get_booking_by_id(booking.id) is None


def test_update_settings_partial(db):
    shop = SettingsRepository.update_settings(close_time='23:00', payment_qr_url='qr-file-id')

    assert shop.open_time == '10:00'
    assert shop.close_time == '23:00'
    assert shop.payment_qr_url == 'qr-file-id'

    with pytest.raises(ValueError):
        SettingsRepository.update_settings(currency='USD')


def test_list_bookings_filters(db):
    save_booking('10:00', '11:00', date=TODAY)
    save_booking('12:00', '13:00', date=TODAY, status='cancelled')
    save_booking('10:00', '11:00', date=TOMORROW, table_id=2, phone='0899999999')

    assert len(BookingRepository.list_bookings(date=TODAY)) == 2
    assert len(BookingRepository.list_bookings(date=TODAY, statuses={'pending'})) == 1
    assert len(BookingRepository.list_bookings(table_id=2)) == 1
    assert len(BookingRepository.list_bookings(phone='0812345678')) == 2
    assert len(BookingRepository.list_bookings(date_from=TOMORROW, date_to=TOMORROW)) == 1
    assert BookingRepository.count_bookings('0812345678', TODAY, ['pending', 'confirmed']) == 1


def test_status_update_with_expected_status(db):
    booking = save_booking('10:00', '11:00')

    assert BookingRepository.update_booking_status(booking.id, 'no_show', expected_status='confirmed') is None
    assert BookingRepository.get_booking_by_id(booking.id).status == 'pending'

    updated = BookingRepository.update_booking_status(booking.id, 'no_show', expected_status='pending')
    assert updated.status == 'no_show'


def test_release_table(db):
    finished = save_booking('10:00', '11:00', status='confirmed')
    TableRepository.update_table_status(1, 'occupied')

    assert TableRepository.release_table(1, TODAY) is None
    table = TableRepository.release_table(1, TODAY, [finished.id])
    assert table.status == 'available'
    assert TableRepository.release_table(1, TODAY, [finished.id]) is None


def test_release_table_skips_new_check_in(db):
    TableRepository.update_table_status(1, 'occupied')
    save_booking('11:30', '13:00', status='confirmed')

    assert TableRepository.release_table(1, TODAY) is None
    assert TableRepository.get_table_by_id(1).status == 'occupied'
    # Подтверждённая бронь на другую дату не мешает
    assert TableRepository.release_table(1, TOMORROW).status == 'available'
