"""Database initialization and connection management."""
import sqlite3
from pathlib import Path

DEFAULT_DB_PATH = str(Path.home() / ".wk_tutor" / "wanikani.db")

# Timestamps are stored as fixed-width UTC text (see resources.format_datetime)
SCHEMA = """
CREATE TABLE IF NOT EXISTS users (
    id INTEGER PRIMARY KEY CHECK (id = 1),
    user_id TEXT NOT NULL,
    username TEXT NOT NULL,
    level INTEGER NOT NULL,
    profile_url TEXT,
    started_at TEXT,
    current_vacation_started_at TEXT,
    subscription_active INTEGER DEFAULT 0,
    subscription_type TEXT DEFAULT 'free',
    max_level_granted INTEGER DEFAULT 3,
    lessons_batch_size INTEGER
);

CREATE TABLE IF NOT EXISTS subjects (
    id INTEGER PRIMARY KEY,
    object TEXT NOT NULL,
    characters TEXT,
    slug TEXT NOT NULL,
    level INTEGER NOT NULL,
    lesson_position INTEGER DEFAULT 0,
    data_updated_at TEXT,
    resource TEXT NOT NULL  -- JSON
);

CREATE TABLE IF NOT EXISTS assignments (
    id INTEGER PRIMARY KEY,
    subject_id INTEGER NOT NULL,
    subject_type TEXT NOT NULL,
    srs_stage INTEGER NOT NULL DEFAULT 0,
    unlocked_at TEXT,
    started_at TEXT,
    passed_at TEXT,
    burned_at TEXT,
    available_at TEXT,
    resurrected_at TEXT,
    hidden INTEGER DEFAULT 0,
    data_updated_at TEXT,
    last_reviewed_at TEXT
);

CREATE INDEX IF NOT EXISTS idx_assignments_available_at ON assignments(available_at);

CREATE TABLE IF NOT EXISTS user_settings (
    id INTEGER PRIMARY KEY AUTOINCREMENT,
    key TEXT NOT NULL UNIQUE,
    value TEXT
);
"""


def get_connection(db_path: str = DEFAULT_DB_PATH) -> sqlite3.Connection:
    """Return a SQLite connection with row factory enabled."""
    conn = sqlite3.connect(db_path)
    conn.row_factory = sqlite3.Row
    return conn


def init_db(db_path: str = DEFAULT_DB_PATH) -> None:
    """Initialize the database, creating all tables if they don't exist."""
    Path(db_path).parent.mkdir(parents=True, exist_ok=True)
    conn = get_connection(db_path)
    conn.executescript(SCHEMA)
    conn.commit()
    conn.close()
