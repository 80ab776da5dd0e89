"""Database initialization and connection management."""
import os
import sqlite3
from pathlib import Path

DEFAULT_DB_PATH = os.environ.get(
    "MATH_DRILL_DB", str(Path.home() / ".math_drill" / "drill.db")
)

SCHEMA = """
CREATE TABLE IF NOT EXISTS operand_weights (
    id INTEGER PRIMARY KEY AUTOINCREMENT,
    family TEXT NOT NULL,
    profile TEXT NOT NULL,
    operand INTEGER NOT NULL,
    weight REAL NOT NULL,
    UNIQUE(family, profile, operand)
);

CREATE TABLE IF NOT EXISTS drill_sessions (
    id INTEGER PRIMARY KEY AUTOINCREMENT,
    played_at TEXT NOT NULL,
    family TEXT NOT NULL,
    score INTEGER NOT NULL,
    total INTEGER NOT NULL,
    correct INTEGER NOT NULL,
    is_simplified INTEGER DEFAULT 0
);

CREATE TABLE IF NOT EXISTS drill_answers (
    id INTEGER PRIMARY KEY AUTOINCREMENT,
    session_id INTEGER NOT NULL REFERENCES drill_sessions(id),
    family TEXT NOT NULL,
    operand1 INTEGER NOT NULL,
    operand2 INTEGER,
    correct_answer INTEGER NOT NULL,
    submitted_answer INTEGER NOT NULL,
    is_correct INTEGER NOT NULL,
    is_retry INTEGER DEFAULT 0,
    elapsed_ms INTEGER NOT NULL
);

CREATE TABLE IF NOT EXISTS user_settings (
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


def init_db(db_path: str = DEFAULT_DB_PATH) -> None:
    """Initialize the database, creating all tables if they don't exist."""
    Path(db_path).parent.mkdir(parents=True, exist_ok=True)
    conn = get_connection(db_path)
    conn.executescript(SCHEMA)
    conn.commit()
    conn.close()
