"""
Репозиторий для работы с данными
"""
from datetime import datetime
from typing import Iterable, List, Optional
from database.database import get_db
from database.models import Table, Booking, ShopSettings


class BookingRepository:
    """Репозиторий для работы с бронированиями"""

    @staticmethod
    def create_booking(booking: Booking) -> Booking:
        """Создание нового бронирования"""
        created_at = booking.created_at or datetime.now()
        with get_db() as conn:
            cursor = conn.cursor()
            cursor.execute("""
                INSERT INTO bookings
                (table_id, customer_name, customer_phone, date, start_time, end_time,
                 status, total_price, slip_url, created_at)
                VALUES (?, ?, ?, ?, ?, ?, ?, ?, ?, ?)
            """, (
                booking.table_id,
                booking.customer_name,
                booking.customer_phone,
                booking.date,
                booking.start_time,
                booking.end_time,
                booking.status,
                booking.total_price,
                booking.slip_url,
                created_at.isoformat(sep=' ')
            ))
            booking_id = cursor.lastrowid

        return BookingRepository.get_booking_by_id(booking_id)

    @staticmethod
    def list_bookings(date: Optional[str] = None, table_id: Optional[int] = None,
                      phone: Optional[str] = None, statuses: Optional[Iterable[str]] = None,
                      date_from: Optional[str] = None, date_to: Optional[str] = None) -> List[Booking]:
        """Получение бронирований по фильтрам (все фильтры необязательны)"""
        query = """
            SELECT b.*, t.name AS table_name FROM bookings b
            LEFT JOIN tables t ON t.id = b.table_id
            WHERE 1 = 1
        """
        params = []

        if date is not None:
            query += " AND b.date = ?"
            params.append(date)
        if date_from is not None:
            query += " AND b.date >= ?"
            params.append(date_from)
        if date_to is not None:
            query += " AND b.date <= ?"
            params.append(date_to)
        if table_id is not None:
            query += " AND b.table_id = ?"
            params.append(table_id)
        if phone is not None:
            query += " AND b.customer_phone = ?"
            params.append(phone)
        if statuses is not None:
            statuses = list(statuses)
            query += f" AND b.status IN ({', '.join('?' for _ in statuses)})"
            params.extend(statuses)

        query += " ORDER BY b.date, b.start_time, b.id"

        with get_db() as conn:
            cursor = conn.cursor()
            cursor.execute(query, params)
            rows = cursor.fetchall()
            return [BookingRepository._row_to_booking(row) for row in rows]

    @staticmethod
    def count_bookings(phone: str, date: str, statuses: Iterable[str]) -> int:
        """Количество броней телефона на дату"""
        statuses = list(statuses)
        with get_db() as conn:
            cursor = conn.cursor()
            cursor.execute(f"""
                SELECT COUNT(*) as count FROM bookings
                WHERE customer_phone = ? AND date = ?
                AND status IN ({', '.join('?' for _ in statuses)})
            """, [phone, date, *statuses])
            return cursor.fetchone()['count']

    @staticmethod
    def get_recent_bookings(limit: int = 5) -> List[Booking]:
        """Последние созданные бронирования"""
        with get_db() as conn:
            cursor = conn.cursor()
            cursor.execute("""
                SELECT b.*, t.name AS table_name FROM bookings b
                LEFT JOIN tables t ON t.id = b.table_id
                ORDER BY b.created_at DESC, b.id DESC
                LIMIT ?
            """, (limit,))
            return [BookingRepository._row_to_booking(row) for row in cursor.fetchall()]

    @staticmethod
    def update_booking_status(booking_id: int, status: str,
                              expected_status: Optional[str] = None) -> Optional[Booking]:
        """
        Смена статуса бронирования.
        С expected_status запись меняется, только если статус в БД всё ещё прежний;
        иначе возвращается None.
        """
        query = "UPDATE bookings SET status = ? WHERE id = ?"
        params = [status, booking_id]
        if expected_status is not None:
            query += " AND status = ?"
            params.append(expected_status)

        with get_db() as conn:
            cursor = conn.cursor()
            cursor.execute(query, params)
            if cursor.rowcount == 0:
                return None

        return BookingRepository.get_booking_by_id(booking_id)

    @staticmethod
    def get_booking_by_id(booking_id: int) -> Optional[Booking]:
        """Получение бронирования по ID"""
        with get_db() as conn:
            cursor = conn.cursor()
            cursor.execute("""
                SELECT b.*, t.name AS table_name FROM bookings b
                LEFT JOIN tables t ON t.id = b.table_id
                WHERE b.id = ?
            """, (booking_id,))
            row = cursor.fetchone()
            return BookingRepository._row_to_booking(row) if row else None

    @staticmethod
    def _row_to_booking(row) -> Booking:
        """Преобразование строки БД в объект Booking"""
        return Booking(
            id=row['id'],
            table_id=row['table_id'],
            customer_name=row['customer_name'],
            customer_phone=row['customer_phone'],
            date=row['date'],
            start_time=row['start_time'],
            end_time=row['end_time'],
            status=row['status'],
            total_price=row['total_price'],
            slip_url=row['slip_url'],
            created_at=datetime.fromisoformat(row['created_at']) if row['created_at'] else None,
            table_name=row['table_name']
        )


class TableRepository:
    """Репозиторий для работы со столами"""

    @staticmethod
    def get_all_tables() -> List[Table]:
        """Получение всех столов"""
        with get_db() as conn:
            cursor = conn.cursor()
            cursor.execute("SELECT * FROM tables ORDER BY name")
            rows = cursor.fetchall()
            return [TableRepository._row_to_table(row) for row in rows]

    @staticmethod
    def get_table_by_id(table_id: int) -> Optional[Table]:
        """Получение стола по ID"""
        with get_db() as conn:
            cursor = conn.cursor()
            cursor.execute("SELECT * FROM tables WHERE id = ?", (table_id,))
            row = cursor.fetchone()
            return TableRepository._row_to_table(row) if row else None

    @staticmethod
    def create_table(name: str, table_type: str, status: str = 'available') -> Table:
        """Добавление стола"""
        with get_db() as conn:
            cursor = conn.cursor()
            cursor.execute(
                "INSERT INTO tables (name, type, status) VALUES (?, ?, ?)",
                (name, table_type, status)
            )
            table_id = cursor.lastrowid
        return TableRepository.get_table_by_id(table_id)

    @staticmethod
    def update_table(table_id: int, name: Optional[str] = None,
                     table_type: Optional[str] = None) -> Optional[Table]:
        """Изменение названия и категории стола"""
        with get_db() as conn:
            cursor = conn.cursor()
            cursor.execute("""
                UPDATE tables SET name = COALESCE(?, name), type = COALESCE(?, type)
                WHERE id = ?
            """, (name, table_type, table_id))
        return TableRepository.get_table_by_id(table_id)

    @staticmethod
    def delete_table(table_id: int) -> bool:
        """Удаление стола вместе с его бронированиями"""
        with get_db() as conn:
            cursor = conn.cursor()
            cursor.execute("DELETE FROM tables WHERE id = ?", (table_id,))
            return cursor.rowcount > 0

    @staticmethod
    def update_table_status(table_id: int, status: str) -> Optional[Table]:
        """Смена статуса стола"""
        with get_db() as conn:
            cursor = conn.cursor()
            cursor.execute(
                "UPDATE tables SET status = ? WHERE id = ?",
                (status, table_id)
            )
            if cursor.rowcount == 0:
                return None
        return TableRepository.get_table_by_id(table_id)

    @staticmethod
    def release_table(table_id: int, date: str, known_confirmed_ids: Iterable[int] = ()) -> Optional[Table]:
        """
        Освобождение занятого стола.
        Не срабатывает, если стол уже не occupied или на дату появилась
        подтверждённая бронь, которой не было среди known_confirmed_ids.
        """
        known_confirmed_ids = list(known_confirmed_ids)
        query = """
            UPDATE tables SET status = 'available'
            WHERE id = ? AND status = 'occupied'
            AND NOT EXISTS (
                SELECT 1 FROM bookings
                WHERE table_id = ? AND date = ? AND status = 'confirmed'
        """
        params = [table_id, table_id, date]
        if known_confirmed_ids:
            query += f" AND id NOT IN ({', '.join('?' for _ in known_confirmed_ids)})"
            params.extend(known_confirmed_ids)
        query += ")"

        with get_db() as conn:
            cursor = conn.cursor()
            cursor.execute(query, params)
            if cursor.rowcount == 0:
                return None
        return TableRepository.get_table_by_id(table_id)

    @staticmethod
    def _row_to_table(row) -> Table:
        return Table(
            id=row['id'],
            name=row['name'],
            type=row['type'],
            status=row['status']
        )


class SettingsRepository:
    """Репозиторий настроек клуба"""

    FIELDS = (
        'open_time', 'close_time', 'standard_price', 'vip_price',
        'late_threshold_minutes', 'payment_qr_url'
    )

    @staticmethod
    def get_settings() -> Optional[ShopSettings]:
        """Получение настроек клуба"""
        with get_db() as conn:
            cursor = conn.cursor()
            cursor.execute("SELECT * FROM shop_settings WHERE id = 1")
            row = cursor.fetchone()
            if row:
                return ShopSettings(
                    id=row['id'],
                    open_time=row['open_time'],
                    close_time=row['close_time'],
                    standard_price=row['standard_price'],
                    vip_price=row['vip_price'],
                    late_threshold_minutes=row['late_threshold_minutes'],
                    payment_qr_url=row['payment_qr_url']
                )
            return None

    @staticmethod
    def update_settings(**changes) -> Optional[ShopSettings]:
        """Частичное обновление настроек клуба"""
        unknown = set(changes) - set(SettingsRepository.FIELDS)
        if unknown:
            raise ValueError(f"Неизвестные поля настроек: {', '.join(sorted(unknown))}")

        if changes:
            assignments = ', '.join(f"{name} = ?" for name in changes)
            with get_db() as conn:
                cursor = conn.cursor()
                cursor.execute(
                    f"UPDATE shop_settings SET {assignments} WHERE id = 1",
                    list(changes.values())
                )
        return SettingsRepository.get_settings()
