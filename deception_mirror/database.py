import sqlite3
from typing import Optional

DB_NAME = "mirror_log.db"


def init_db(db_path: str = DB_NAME):
    conn = sqlite3.connect(db_path)
    try:
        c = conn.cursor()
        c.execute('''
            CREATE TABLE IF NOT EXISTS kv_store (
                key TEXT PRIMARY KEY,
                value TEXT NOT NULL,
                updated_at DATETIME DEFAULT CURRENT_TIMESTAMP
            )
        ''')
        conn.commit()
    finally:
        conn.close()


def read_value(key: str, db_path: str = DB_NAME) -> Optional[str]:
    conn = sqlite3.connect(db_path)
    try:
        c = conn.cursor()
        c.execute('SELECT value FROM kv_store WHERE key = ?', (key,))
        row = c.fetchone()
    finally:
        conn.close()
    return row[0] if row else None


def write_value(key: str, value: str, db_path: str = DB_NAME):
    """Replace the whole value stored under ``key``."""
    conn = sqlite3.connect(db_path)
    try:
        c = conn.cursor()
        c.execute('''
            INSERT INTO kv_store (key, value, updated_at) VALUES (?, ?, CURRENT_TIMESTAMP)
            ON CONFLICT(key) DO UPDATE SET value = excluded.value, updated_at = CURRENT_TIMESTAMP
        ''', (key, value))
        conn.commit()
    finally:
        conn.close()
