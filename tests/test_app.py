import pytest
from unittest.mock import MagicMock, patch

from wk_tutor.app import (
    SessionExitRequested, cmd_sync, run_lesson_session, run_review_session, session_prompt,
)
from wk_tutor.config import Settings
from wk_tutor.errors import ServerError
from wk_tutor.lessons import LessonSession
from wk_tutor.models import SubjectType
from wk_tutor.resources import parse_assignment, parse_review, parse_user
from wk_tutor.reviews import ReviewSession, ReviewState
from wk_tutor.store import fetch_assignment, get_last_sync, save_assignments, save_subjects

from conftest import (
    NOW, assignment_resource, make_assignment, make_kanji, make_radical, review_resource, user_resource,
)


def test_session_prompt_raises_on_q():
    with patch("wk_tutor.app.Prompt.ask", return_value="q"):
        with pytest.raises(SessionExitRequested):
            session_prompt("test prompt")


def test_session_prompt_raises_on_menu():
    with patch("wk_tutor.app.Prompt.ask", return_value=" MENU "):
        with pytest.raises(SessionExitRequested):
            session_prompt("test prompt")


def test_session_prompt_returns_normal_input():
    with patch("wk_tutor.app.Prompt.ask", return_value="いち"):
        assert session_prompt("test prompt") == "いち"


def test_run_review_session_exits_on_q(tmp_db, no_shuffle):
    """Answer the meaning, then 'q' on the reading: nothing is submitted."""
    save_subjects(tmp_db, [make_kanji(100)])
    save_assignments(tmp_db, [make_assignment(1, subject_id=100)])
    api = MagicMock()
    session = ReviewSession(api, tmp_db, rng=no_shuffle, feedback_delay=0, clock=lambda: NOW)

    with patch("wk_tutor.app.Prompt.ask", side_effect=["one", "q"]):
        with pytest.raises(SessionExitRequested):
            run_review_session(session)

    api.submit_review.assert_not_called()
    assert session.records[1].meaning_answered_correctly


def test_run_review_session_completes(tmp_db, no_shuffle):
    save_subjects(tmp_db, [make_kanji(100)])
    save_assignments(tmp_db, [make_assignment(1, subject_id=100)])
    api = MagicMock()
    api.submit_review.return_value = parse_review(review_resource(ending=2))
    session = ReviewSession(api, tmp_db, rng=no_shuffle, feedback_delay=0, clock=lambda: NOW)

    with patch("wk_tutor.app.Prompt.ask", side_effect=["one", "いち"]):
        run_review_session(session)

    assert session.state == ReviewState.COMPLETE
    assert fetch_assignment(tmp_db, 1).srs_stage == 2


def test_run_review_session_empty(tmp_db):
    session = ReviewSession(MagicMock(), tmp_db, feedback_delay=0, clock=lambda: NOW)
    with patch("wk_tutor.app.Prompt.ask") as ask:
        run_review_session(session)
    ask.assert_not_called()
    assert session.state == ReviewState.EMPTY


def test_run_lesson_session(tmp_db):
    save_subjects(tmp_db, [make_radical(1)])
    save_assignments(tmp_db, [
        make_assignment(11, subject_id=1, subject_type=SubjectType.RADICAL, srs_stage=0, available_at=None),
    ])
    api = MagicMock()
    api.start_assignment.return_value = parse_assignment(assignment_resource(assignment_id=11, subject_id=1))
    session = LessonSession(api, tmp_db)

    # Enter to start the quiz, a wrong answer, then the right one
    with patch("wk_tutor.app.Prompt.ask", side_effect=["", "sky", "ground"]):
        run_lesson_session(session)

    assert session.started_ids == [11]


def test_cmd_sync_reports_failure_without_raising(tmp_db):
    api = MagicMock()
    api.get_user.return_value = parse_user(user_resource())
    api.get_subjects.side_effect = ServerError(500)
    settings = Settings(api_token="token", db_path=tmp_db)
    cmd_sync(api, settings)
    assert get_last_sync(tmp_db) is None


def test_review_feedback_arrow_follows_server_stage(tmp_db, no_shuffle, capsys):
    save_subjects(tmp_db, [make_kanji(100)])
    save_assignments(tmp_db, [make_assignment(1, subject_id=100, srs_stage=1)])
    api = MagicMock()
    # Local preview says up a stage; the server moved it down
    api.submit_review.return_value = parse_review(review_resource(starting=2, ending=1))
    session = ReviewSession(api, tmp_db, rng=no_shuffle, feedback_delay=0, clock=lambda: NOW)

    with patch("wk_tutor.app.Prompt.ask", side_effect=["one", "いち"]):
        run_review_session(session)

    out = capsys.readouterr().out
    assert "↓ stage 1" in out
    assert "↑" not in out
