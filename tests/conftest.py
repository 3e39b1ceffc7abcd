from datetime import datetime, timedelta, timezone

import pytest

from wk_tutor.db import init_db
from wk_tutor.models import Assignment, Meaning, Reading, Subject, SubjectType, KanjiData, RadicalData

NOW = datetime(2026, 10, 17, 12, 0, tzinfo=timezone.utc)


@pytest.fixture
def tmp_db(tmp_path):
    """Provide an initialized temporary SQLite database path for tests."""
    db_path = str(tmp_path / "test_wanikani.db")
    init_db(db_path)
    return db_path


@pytest.fixture
def now():
    return NOW


class NoShuffle:
    """Stand-in for random.Random that keeps the queue in build order."""

    def shuffle(self, items):
        pass


@pytest.fixture
def no_shuffle():
    return NoShuffle()


def make_kanji(subject_id=100, meaning="one", reading="いち", characters="一", level=1):
    return Subject(
        id=subject_id,
        object=SubjectType.KANJI,
        slug=characters,
        level=level,
        characters=characters,
        meanings=[Meaning(meaning, primary=True, accepted_answer=True)],
        readings=[Reading(reading, primary=True, accepted_answer=True, type="onyomi")],
        data=KanjiData(meaning_mnemonic="A single line."),
    )


def make_radical(subject_id=1, meaning="ground", characters="一", level=1):
    return Subject(
        id=subject_id,
        object=SubjectType.RADICAL,
        slug=meaning,
        level=level,
        characters=characters,
        meanings=[Meaning(meaning, primary=True, accepted_answer=True)],
        data=RadicalData(meaning_mnemonic="It's the ground."),
    )


def make_assignment(assignment_id=1, subject_id=100, subject_type=SubjectType.KANJI,
                    srs_stage=1, available_at=NOW - timedelta(hours=1), **kwargs):
    started = kwargs.pop("started_at", NOW - timedelta(days=1) if srs_stage > 0 else None)
    unlocked = kwargs.pop("unlocked_at", NOW - timedelta(days=2))
    return Assignment(
        id=assignment_id,
        subject_id=subject_id,
        subject_type=subject_type,
        srs_stage=srs_stage,
        unlocked_at=unlocked,
        started_at=started,
        available_at=available_at,
        **kwargs,
    )


def subject_resource(subject_id=100, object="kanji", characters="一", meaning="one", reading="いち"):
    data = {
        "created_at": "2012-02-27T18:08:16.000000Z",
        "level": 1,
        "slug": characters,
        "hidden_at": None,
        "document_url": f"https://www.wanikani.com/{object}/{characters}",
        "characters": characters,
        "meanings": [{"meaning": meaning, "primary": True, "accepted_answer": True}],
        "auxiliary_meanings": [],
        "meaning_mnemonic": "mnemonic",
        "lesson_position": 0,
        "spaced_repetition_system_id": 1,
    }
    if object != "radical":
        data["readings"] = [{"reading": reading, "primary": True, "accepted_answer": True, "type": "onyomi"}]
        data["reading_mnemonic"] = "reading mnemonic"
    if object == "radical":
        data["character_images"] = []
        data["amalgamation_subject_ids"] = [440]
    return {
        "id": subject_id,
        "object": object,
        "url": f"https://api.wanikani.com/v2/subjects/{subject_id}",
        "data_updated_at": "2026-01-01T00:00:00.000000Z",
        "data": data,
    }


def assignment_resource(assignment_id=1, subject_id=100, srs_stage=1, available_at="2026-10-17T11:00:00.000000Z",
                        started_at="2026-10-16T12:00:00.000000Z"):
    return {
        "id": assignment_id,
        "object": "assignment",
        "url": f"https://api.wanikani.com/v2/assignments/{assignment_id}",
        "data_updated_at": "2026-10-16T12:00:00.000000Z",
        "data": {
            "created_at": "2026-10-01T00:00:00.000000Z",
            "subject_id": subject_id,
            "subject_type": "kanji",
            "srs_stage": srs_stage,
            "unlocked_at": "2026-10-01T00:00:00.000000Z",
            "started_at": started_at,
            "passed_at": None,
            "burned_at": None,
            "available_at": available_at,
            "resurrected_at": None,
            "hidden": False,
        },
    }


def review_resource(assignment_id=1, subject_id=100, starting=1, ending=2, incorrect_meaning=0,
                    incorrect_reading=0, updated_assignment=None):
    resource = {
        "id": 9001,
        "object": "review",
        "data": {
            "created_at": "2026-10-17T12:00:00.000000Z",
            "assignment_id": assignment_id,
            "subject_id": subject_id,
            "spaced_repetition_system_id": 1,
            "starting_srs_stage": starting,
            "ending_srs_stage": ending,
            "incorrect_meaning_answers": incorrect_meaning,
            "incorrect_reading_answers": incorrect_reading,
        },
    }
    if updated_assignment is not None:
        resource["resources_updated"] = {"assignment": updated_assignment}
    return resource


def user_resource(username="tofugu", level=3):
    return {
        "object": "user",
        "data": {
            "id": "5a6a5234-a392-4a87-8f3f-33342afe8a42",
            "username": username,
            "level": level,
            "profile_url": f"https://www.wanikani.com/users/{username}",
            "started_at": "2012-05-11T00:52:18.958466Z",
            "current_vacation_started_at": None,
            "subscription": {"active": True, "type": "recurring", "max_level_granted": 60,
                             "period_ends_at": "2027-01-01T00:00:00.000000Z"},
            "preferences": {"lessons_batch_size": 5},
        },
    }
