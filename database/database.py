"""
Модуль для работы с базой данных SQLite
"""
import sqlite3
import os
from contextlib import contextmanager
from typing import Generator
from config import settings


def get_connection() -> sqlite3.Connection:
    """Получение подключения к БД"""
    conn = sqlite3.connect(settings.DB_PATH)
    conn.row_factory = sqlite3.Row
    conn.execute("PRAGMA foreign_keys = ON")
    return conn


@contextmanager
def get_db() -> Generator[sqlite3.Connection, None, None]:
    """Контекстный менеджер для работы с БД"""
    conn = get_connection()
    try:
        yield conn
        conn.commit()
    except Exception:
        conn.rollback()
        raise
    finally:
        conn.close()


def init_db():
    """Инициализация базы данных"""
    # Создание директории для БД, если не существует
    db_dir = os.path.dirname(settings.DB_PATH)
    if db_dir and not os.path.exists(db_dir):
        os.makedirs(db_dir)

    with get_db() as conn:
        cursor = conn.cursor()

        # Таблица столов (цена не хранится, считается из настроек клуба)
        cursor.execute("""
            CREATE TABLE IF NOT EXISTS tables (
                id INTEGER PRIMARY KEY AUTOINCREMENT,
                name TEXT NOT NULL,
                type TEXT NOT NULL DEFAULT 'standard',
                status TEXT NOT NULL DEFAULT 'available'
            )
        """)

        # Таблица бронирований
        cursor.execute("""
            CREATE TABLE IF NOT EXISTS bookings (
                id INTEGER PRIMARY KEY AUTOINCREMENT,
                table_id INTEGER NOT NULL,
                customer_name TEXT NOT NULL,
                customer_phone TEXT NOT NULL,
                date TEXT NOT NULL,
                start_time TEXT NOT NULL,
                end_time TEXT NOT NULL,
                status TEXT NOT NULL DEFAULT 'pending',
                total_price REAL NOT NULL DEFAULT 0,
                slip_url TEXT,
                created_at TIMESTAMP DEFAULT CURRENT_TIMESTAMP,
                FOREIGN KEY (table_id) REFERENCES tables (id) ON DELETE CASCADE
            )
        """)

        # Индексы для быстрого поиска
        cursor.execute("""
            CREATE INDEX IF NOT EXISTS idx_bookings_table_date
            ON bookings(table_id, date, status)
        """)
        cursor.execute("""
            CREATE INDEX IF NOT EXISTS idx_bookings_phone
            ON bookings(customer_phone, date, status)
        """)

        # Два активных бронирования одного стола с одинаковым началом
        # не пройдут даже при одновременной отправке
        cursor.execute("""
            CREATE UNIQUE INDEX IF NOT EXISTS uq_bookings_active_slot
            ON bookings(table_id, date, start_time)
            WHERE status IN ('pending', 'confirmed')
        """)

        # Настройки клуба (одна запись)
        cursor.execute("""
            CREATE TABLE IF NOT EXISTS shop_settings (
                id INTEGER PRIMARY KEY CHECK (id = 1),
                open_time TEXT NOT NULL,
                close_time TEXT NOT NULL,
                standard_price REAL NOT NULL DEFAULT 0,
                vip_price REAL NOT NULL DEFAULT 0,
                late_threshold_minutes INTEGER NOT NULL DEFAULT 10,
                payment_qr_url TEXT
            )
        """)

        cursor.execute("SELECT COUNT(*) as count FROM shop_settings")
        if cursor.fetchone()['count'] == 0:
            cursor.execute("""
                INSERT INTO shop_settings
                (id, open_time, close_time, standard_price, vip_price, late_threshold_minutes)
                VALUES (1, ?, ?, ?, ?, ?)
            """, (
                settings.DEFAULT_OPEN_TIME,
                settings.DEFAULT_CLOSE_TIME,
                settings.DEFAULT_STANDARD_PRICE,
                settings.DEFAULT_VIP_PRICE,
                settings.DEFAULT_LATE_THRESHOLD_MINUTES
            ))

        # Проверка наличия столов
        cursor.execute("SELECT COUNT(*) as count FROM tables")
        if cursor.fetchone()['count'] == 0:
            # Добавление столов по умолчанию
            cursor.execute(
                "INSERT INTO tables (name, type) VALUES (?, ?)",
                ("Стол 1", "standard")
            )
            cursor.execute(
                "INSERT INTO tables (name, type) VALUES (?, ?)",
                ("VIP", "vip")
            )

        conn.commit()
