"""Database initialization and connection management."""
import logging
import sqlite3
from contextlib import contextmanager
from pathlib import Path
from typing import Iterator

from cabinet_planner.config import DEFAULT_DB_PATH

logger = logging.getLogger(__name__)

SCHEMA = """
CREATE TABLE IF NOT EXISTS students (
    id INTEGER PRIMARY KEY AUTOINCREMENT,
    name TEXT NOT NULL,
    grade TEXT NOT NULL,
    plan_type INTEGER NOT NULL CHECK (plan_type BETWEEN 1 AND 6),
    notes TEXT DEFAULT '',
    roster_position INTEGER NOT NULL DEFAULT 0,
    created_at TEXT
);

CREATE TABLE IF NOT EXISTS plan_activities (
    id INTEGER PRIMARY KEY AUTOINCREMENT,
    plan_type INTEGER NOT NULL CHECK (plan_type BETWEEN 1 AND 6),
    activity_text TEXT NOT NULL,
    order_index INTEGER NOT NULL,
    created_at TEXT
);

CREATE TABLE IF NOT EXISTS schedule_entries (
    id INTEGER PRIMARY KEY AUTOINCREMENT,
    day TEXT NOT NULL,
    time_slot INTEGER NOT NULL CHECK (time_slot BETWEEN 0 AND 4),
    student_id INTEGER NOT NULL REFERENCES students(id) ON DELETE CASCADE,
    position INTEGER NOT NULL DEFAULT 0,
    UNIQUE(day, time_slot, student_id)
);

CREATE TABLE IF NOT EXISTS student_progress (
    student_id INTEGER NOT NULL REFERENCES students(id) ON DELETE CASCADE,
    activity_index INTEGER NOT NULL,
    completed INTEGER DEFAULT 0,
    completion_date TEXT DEFAULT '',
    completion_time TEXT DEFAULT '',
    updated_at TEXT,
    PRIMARY KEY (student_id, activity_index)
);

CREATE TABLE IF NOT EXISTS settings (
    id INTEGER PRIMARY KEY AUTOINCREMENT,
    key TEXT NOT NULL UNIQUE,
    value TEXT
);
"""


def get_connection(db_path: str = DEFAULT_DB_PATH) -> sqlite3.Connection:
    """Return a SQLite connection with row factory and foreign keys enabled."""
    conn = sqlite3.connect(db_path)
    conn.row_factory = sqlite3.Row
    conn.execute("PRAGMA foreign_keys = ON")
    return conn


@contextmanager
def transaction(db_path: str = DEFAULT_DB_PATH) -> Iterator[sqlite3.Connection]:
    """Yield a connection; commit on success, roll back on error."""
    conn = get_connection(db_path)
    try:
        yield conn
        conn.commit()
    except Exception:
        conn.rollback()
        raise
    finally:
        conn.close()


def init_db(db_path: str = DEFAULT_DB_PATH) -> None:
    """Initialize the database, creating all tables if they don't exist."""
    Path(db_path).parent.mkdir(parents=True, exist_ok=True)
    conn = get_connection(db_path)
    conn.executescript(SCHEMA)
    conn.commit()
    conn.close()
    logger.debug("Database ready at %s", db_path)


def get_setting(db_path: str, key: str, default: str = None) -> str | None:
    conn = get_connection(db_path)
    row = conn.execute("SELECT value FROM settings WHERE key = ?", (key,)).fetchone()
    conn.close()
    return row["value"] if row else default


def set_setting(db_path: str, key: str, value: str) -> None:
    conn = get_connection(db_path)
    conn.execute(
        "INSERT INTO settings (key, value) VALUES (?, ?) ON CONFLICT(key) DO UPDATE SET value=?",
        (key, value, value),
    )
    conn.commit()
    conn.close()
