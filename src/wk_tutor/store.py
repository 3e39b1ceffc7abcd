"""Local storage of users, subjects and assignments."""
import json
import logging
import threading
from datetime import datetime
from typing import Optional

from wk_tutor.db import get_connection
from wk_tutor.models import Assignment, Subject, SubjectType, User
from wk_tutor.resources import format_datetime, parse_datetime, parse_subject, subject_to_resource

logger = logging.getLogger(__name__)

# Serializes every write to the store
_write_lock = threading.Lock()

LAST_SYNC_KEY = "last_sync_at"

ASSIGNMENT_FIELDS = (
    "subject_id", "subject_type", "srs_stage", "unlocked_at", "started_at", "passed_at",
    "burned_at", "available_at", "resurrected_at", "hidden", "data_updated_at",
)


# --- settings ---


def get_setting(db_path: str, key: str, default: str = None) -> str | None:
    conn = get_connection(db_path)
    row = conn.execute("SELECT value FROM user_settings WHERE key = ?", (key,)).fetchone()
    conn.close()
    return row["value"] if row else default


def set_setting(db_path: str, key: str, value: str) -> None:
    with _write_lock:
        conn = get_connection(db_path)
        conn.execute(
            "INSERT INTO user_settings (key, value) VALUES (?, ?) ON CONFLICT(key) DO UPDATE SET value=?",
            (key, value, value),
        )
        conn.commit()
        conn.close()


def get_last_sync(db_path: str) -> Optional[datetime]:
    return parse_datetime(get_setting(db_path, LAST_SYNC_KEY))


def set_last_sync(db_path: str, when: datetime) -> None:
    set_setting(db_path, LAST_SYNC_KEY, format_datetime(when))


# --- user ---


def save_user(db_path: str, user: User) -> None:
    """Overwrite the single stored user row."""
    with _write_lock:
        conn = get_connection(db_path)
        conn.execute(
            """INSERT OR REPLACE INTO users (id, user_id, username, level, profile_url, started_at,
                current_vacation_started_at, subscription_active, subscription_type,
                max_level_granted, lessons_batch_size)
            VALUES (1, ?, ?, ?, ?, ?, ?, ?, ?, ?, ?)""",
            (
                user.id, user.username, user.level, user.profile_url,
                format_datetime(user.started_at), format_datetime(user.current_vacation_started_at),
                int(user.subscription_active), user.subscription_type, user.max_level_granted,
                user.lessons_batch_size,
            ),
        )
        conn.commit()
        conn.close()


def fetch_user(db_path: str) -> Optional[User]:
    conn = get_connection(db_path)
    row = conn.execute("SELECT * FROM users WHERE id = 1").fetchone()
    conn.close()
    if row is None:
        return None
    return User(
        id=row["user_id"],
        username=row["username"],
        level=row["level"],
        profile_url=row["profile_url"] or "",
        started_at=parse_datetime(row["started_at"]),
        current_vacation_started_at=parse_datetime(row["current_vacation_started_at"]),
        subscription_active=bool(row["subscription_active"]),
        subscription_type=row["subscription_type"],
        max_level_granted=row["max_level_granted"],
        lessons_batch_size=row["lessons_batch_size"],
    )


# --- subjects ---


def save_subjects(db_path: str, subjects: list[Subject]) -> None:
    """Upsert subjects by id, replacing any stored row wholesale."""
    with _write_lock:
        conn = get_connection(db_path)
        conn.executemany(
            """INSERT OR REPLACE INTO subjects
                (id, object, characters, slug, level, lesson_position, data_updated_at, resource)
            VALUES (?, ?, ?, ?, ?, ?, ?, ?)""",
            [
                (
                    s.id, s.object.value, s.characters, s.slug, s.level, s.lesson_position,
                    format_datetime(s.data_updated_at), json.dumps(subject_to_resource(s)),
                )
                for s in subjects
            ],
        )
        conn.commit()
        conn.close()


def fetch_subject(db_path: str, subject_id: int) -> Optional[Subject]:
    conn = get_connection(db_path)
    row = conn.execute("SELECT resource FROM subjects WHERE id = ?", (subject_id,)).fetchone()
    conn.close()
    return parse_subject(json.loads(row["resource"])) if row else None


def count_subjects(db_path: str) -> int:
    conn = get_connection(db_path)
    count = conn.execute("SELECT COUNT(*) FROM subjects").fetchone()[0]
    conn.close()
    return count


# --- assignments ---


def _assignment_row(a: Assignment) -> tuple:
    return (
        a.id, a.subject_id, a.subject_type.value, a.srs_stage,
        format_datetime(a.unlocked_at), format_datetime(a.started_at),
        format_datetime(a.passed_at), format_datetime(a.burned_at),
        format_datetime(a.available_at), format_datetime(a.resurrected_at),
        int(a.hidden), format_datetime(a.data_updated_at),
    )


def _assignment_from_row(row) -> Assignment:
    return Assignment(
        id=row["id"],
        subject_id=row["subject_id"],
        subject_type=SubjectType(row["subject_type"]),
        srs_stage=row["srs_stage"],
        unlocked_at=parse_datetime(row["unlocked_at"]),
        started_at=parse_datetime(row["started_at"]),
        passed_at=parse_datetime(row["passed_at"]),
        burned_at=parse_datetime(row["burned_at"]),
        available_at=parse_datetime(row["available_at"]),
        resurrected_at=parse_datetime(row["resurrected_at"]),
        hidden=bool(row["hidden"]),
        data_updated_at=parse_datetime(row["data_updated_at"]),
    )


def save_assignments(db_path: str, assignments: list[Assignment]) -> None:
    """Upsert assignments by id.

    Server fields are merged onto an existing row so local-only columns
    (last_reviewed_at) survive a sync.
    """
    updates = ", ".join(f"{name}=excluded.{name}" for name in ASSIGNMENT_FIELDS)
    with _write_lock:
        conn = get_connection(db_path)
        conn.executemany(
            f"""INSERT INTO assignments (id, {", ".join(ASSIGNMENT_FIELDS)})
            VALUES (?, ?, ?, ?, ?, ?, ?, ?, ?, ?, ?, ?)
            ON CONFLICT(id) DO UPDATE SET {updates}""",
            [_assignment_row(a) for a in assignments],
        )
        conn.commit()
        conn.close()


def fetch_assignment(db_path: str, assignment_id: int) -> Optional[Assignment]:
    conn = get_connection(db_path)
    row = conn.execute("SELECT * FROM assignments WHERE id = ?", (assignment_id,)).fetchone()
    conn.close()
    return _assignment_from_row(row) if row else None


def fetch_available_assignments(db_path: str, now: datetime) -> list[Assignment]:
    """Assignments whose available_at has passed, oldest first."""
    conn = get_connection(db_path)
    rows = conn.execute(
        """SELECT * FROM assignments
        WHERE available_at IS NOT NULL AND available_at <= ?
        ORDER BY available_at ASC, id ASC""",
        (format_datetime(now),),
    ).fetchall()
    conn.close()
    return [_assignment_from_row(r) for r in rows]


def fetch_lesson_assignments(db_path: str, limit: Optional[int] = None) -> list[Assignment]:
    """Unlocked, unstarted, visible Initiate assignments in lesson order."""
    conn = get_connection(db_path)
    rows = conn.execute(
        """SELECT a.* FROM assignments a
        LEFT JOIN subjects s ON s.id = a.subject_id
        WHERE a.srs_stage = 0 AND a.started_at IS NULL
            AND a.unlocked_at IS NOT NULL AND a.hidden = 0
        ORDER BY COALESCE(s.level, 999), COALESCE(s.lesson_position, 0), a.id
        LIMIT ?""",
        (limit if limit is not None else -1,),
    ).fetchall()
    conn.close()
    return [_assignment_from_row(r) for r in rows]


def mark_reviewed(db_path: str, assignment_id: int, when: datetime) -> None:
    with _write_lock:
        conn = get_connection(db_path)
        conn.execute(
            "UPDATE assignments SET last_reviewed_at = ? WHERE id = ?",
            (format_datetime(when), assignment_id),
        )
        conn.commit()
        conn.close()


def update_srs_stage(db_path: str, assignment_id: int, srs_stage: int) -> None:
    """Record a reviewed stage; the next review time is unknown until the next sync."""
    with _write_lock:
        conn = get_connection(db_path)
        conn.execute(
            "UPDATE assignments SET srs_stage = ?, available_at = NULL WHERE id = ?",
            (srs_stage, assignment_id),
        )
        conn.commit()
        conn.close()


def srs_stage_counts(db_path: str) -> dict[int, int]:
    """Number of started assignments at each SRS stage."""
    conn = get_connection(db_path)
    rows = conn.execute(
        """SELECT srs_stage, COUNT(*) AS total FROM assignments
        WHERE started_at IS NOT NULL AND hidden = 0
        GROUP BY srs_stage"""
    ).fetchall()
    conn.close()
    return {r["srs_stage"]: r["total"] for r in rows}
