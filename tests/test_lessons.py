# tests/test_lessons.py
from unittest.mock import MagicMock

from wk_tutor.errors import NoConnectionError
from wk_tutor.lessons import LessonSession, LessonState
from wk_tutor.models import SubjectType
from wk_tutor.resources import parse_assignment
from wk_tutor.reviews import QuestionType
from wk_tutor.store import fetch_assignment, fetch_lesson_assignments, save_assignments, save_subjects

from conftest import assignment_resource, make_assignment, make_kanji, make_radical


def make_api():
    api = MagicMock()
    api.start_assignment.side_effect = lambda assignment_id, started_at=None: parse_assignment(
        assignment_resource(assignment_id=assignment_id, srs_stage=1)
    )
    return api


def seed_lessons(db_path):
    save_subjects(db_path, [make_radical(1), make_kanji(100, level=2)])
    save_assignments(db_path, [
        make_assignment(10, subject_id=100, srs_stage=0, available_at=None),
        make_assignment(11, subject_id=1, subject_type=SubjectType.RADICAL, srs_stage=0, available_at=None),
    ])


def test_load_orders_by_level(tmp_db):
    seed_lessons(tmp_db)
    session = LessonSession(make_api(), tmp_db)
    assert session.load() == LessonState.LEARNING
    assert [item.assignment.id for item in session.items] == [11, 10]
    assert session.current_item.subject.id == 1


def test_load_respects_batch_size(tmp_db):
    seed_lessons(tmp_db)
    session = LessonSession(make_api(), tmp_db, batch_size=1)
    session.load()
    assert len(session.items) == 1


def test_load_empty(tmp_db):
    session = LessonSession(make_api(), tmp_db)
    assert session.load() == LessonState.EMPTY
    assert session.current_item is None


def test_load_skips_missing_subject(tmp_db):
    save_assignments(tmp_db, [make_assignment(10, subject_id=404, srs_stage=0, available_at=None)])
    session = LessonSession(make_api(), tmp_db)
    assert session.load() == LessonState.EMPTY


def test_radical_lesson_finishes_after_meaning(tmp_db):
    seed_lessons(tmp_db)
    api = make_api()
    session = LessonSession(api, tmp_db)
    session.load()
    session.start_quiz()
    assert session.state == LessonState.QUIZZING
    assert session.question_type == QuestionType.MEANING

    assert session.submit_answer("Ground")
    api.start_assignment.assert_called_once_with(11)
    assert session.started_ids == [11]
    assert fetch_assignment(tmp_db, 11).srs_stage == 1
    assert session.state == LessonState.LEARNING
    assert session.current_item.assignment.id == 10


def test_kanji_lesson_asks_reading_after_meaning(tmp_db):
    save_subjects(tmp_db, [make_kanji(100)])
    save_assignments(tmp_db, [make_assignment(10, subject_id=100, srs_stage=0, available_at=None)])
    api = make_api()
    session = LessonSession(api, tmp_db)
    session.load()
    session.start_quiz()

    assert session.submit_answer("one")
    assert session.question_type == QuestionType.READING
    api.start_assignment.assert_not_called()

    assert session.submit_answer("いち")
    assert session.state == LessonState.COMPLETE
    assert fetch_lesson_assignments(tmp_db) == []


def test_wrong_answer_stays_on_question(tmp_db):
    seed_lessons(tmp_db)
    session = LessonSession(make_api(), tmp_db)
    session.load()
    session.start_quiz()
    assert not session.submit_answer("sky")
    assert session.question_type == QuestionType.MEANING
    assert session.current_item.assignment.id == 11
    session.api.start_assignment.assert_not_called()


def test_blank_answer_ignored(tmp_db):
    seed_lessons(tmp_db)
    session = LessonSession(make_api(), tmp_db)
    session.load()
    session.start_quiz()
    assert not session.submit_answer("  ")
    assert session.state == LessonState.QUIZZING


def test_answer_before_quiz_is_ignored(tmp_db):
    seed_lessons(tmp_db)
    session = LessonSession(make_api(), tmp_db)
    session.load()
    assert not session.submit_answer("ground")
    assert session.state == LessonState.LEARNING


def test_start_failure_still_advances(tmp_db):
    seed_lessons(tmp_db)
    api = make_api()
    api.start_assignment.side_effect = NoConnectionError()
    session = LessonSession(api, tmp_db)
    session.load()
    session.start_quiz()

    assert session.submit_answer("ground")
    assert session.failed_ids == [11]
    assert session.started_ids == []
    assert session.current_item.assignment.id == 10
    # Still unstarted locally, so it shows up again next time
    assert fetch_assignment(tmp_db, 11).srs_stage == 0


def test_next_lesson_skips_item(tmp_db):
    seed_lessons(tmp_db)
    session = LessonSession(make_api(), tmp_db)
    session.load()
    session.next_lesson()
    assert session.current_item.assignment.id == 10
    session.next_lesson()
    assert session.state == LessonState.COMPLETE
    session.api.start_assignment.assert_not_called()
