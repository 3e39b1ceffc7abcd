"""Dashboard counts and progress statistics."""
import logging
from datetime import datetime, timezone
from typing import Optional

from wk_tutor.api import WaniKaniAPI
from wk_tutor.errors import NetworkError
from wk_tutor.models import ReviewStatistic
from wk_tutor.srs import SRSStage
from wk_tutor.store import (
    count_subjects, fetch_available_assignments, fetch_lesson_assignments, fetch_user,
    srs_stage_counts,
)

logger = logging.getLogger(__name__)

STAGE_GROUPS = ["Apprentice", "Guru", "Master", "Enlightened", "Burned"]


def get_stage_color(group: str) -> str:
    return {
        "Initiate": "white",
        "Apprentice": "magenta",
        "Guru": "purple",
        "Master": "blue",
        "Enlightened": "cyan",
        "Burned": "bright_black",
    }.get(group, "white")


def get_stage_distribution(db_path: str) -> dict[str, int]:
    """Started assignments per SRS group (Apprentice through Burned)."""
    distribution = {group: 0 for group in STAGE_GROUPS}
    for stage, total in srs_stage_counts(db_path).items():
        name = SRSStage.coerce(stage).display_name
        if name in distribution:
            distribution[name] += total
    return distribution


def review_accuracy(statistics: list[ReviewStatistic]) -> float:
    """Overall percentage of correct answers across visible subjects."""
    visible = [s for s in statistics if not s.hidden]
    total = sum(s.total_answers for s in visible)
    if total == 0:
        return 0.0
    return round(sum(s.total_correct for s in visible) / total * 100, 1)


def fetch_dashboard(api: Optional[WaniKaniAPI], db_path: str, now: Optional[datetime] = None) -> dict:
    """Collect dashboard numbers.

    Lesson/review counts come from the server summary when it can be
    reached, otherwise from local storage.
    """
    now = now or datetime.now(timezone.utc)
    user = fetch_user(db_path)
    result = {
        "username": user.username if user else None,
        "level": user.level if user else None,
        "on_vacation": user.is_on_vacation if user else False,
        "subjects": count_subjects(db_path),
        "stages": get_stage_distribution(db_path),
        "next_reviews_at": None,
        "source": "local",
    }

    summary = None
    if api is not None:
        try:
            summary = api.get_summary()
        except NetworkError as e:
            logger.warning("Summary unavailable, using local counts: %s", e)

    if summary is not None:
        result["lessons"] = summary.available_lessons_count(now)
        result["reviews"] = summary.available_reviews_count(now)
        result["next_reviews_at"] = summary.next_reviews_at
        result["source"] = "server"
    else:
        result["lessons"] = len(fetch_lesson_assignments(db_path))
        result["reviews"] = len(fetch_available_assignments(db_path, now))
    return result
