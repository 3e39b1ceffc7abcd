"""Lesson session: introduce new subjects and start their assignments."""
import logging
import sqlite3
from dataclasses import dataclass
from enum import Enum
from typing import Optional

from wk_tutor.answers import check_meaning, check_reading
from wk_tutor.api import WaniKaniAPI
from wk_tutor.errors import NetworkError
from wk_tutor.models import Assignment, Subject
from wk_tutor.reviews import QuestionType
from wk_tutor.store import fetch_lesson_assignments, fetch_subject, save_assignments

logger = logging.getLogger(__name__)


class LessonState(Enum):
    LOADING = "loading"
    EMPTY = "empty"
    LEARNING = "learning"
    QUIZZING = "quizzing"
    COMPLETE = "complete"


@dataclass(frozen=True)
class LessonItem:
    assignment: Assignment
    subject: Subject


class LessonSession:
    """Walks through unstarted assignments in order.

    Each item is shown (LEARNING), then quizzed on meaning and, when the
    subject has readings, on reading. Lessons are not scored; a wrong answer
    simply stays on the same question.
    """

    def __init__(self, api: WaniKaniAPI, db_path: str, batch_size: Optional[int] = None):
        self.api = api
        self.db_path = db_path
        self.batch_size = batch_size
        self.state = LessonState.LOADING
        self.items: list[LessonItem] = []
        self.index = 0
        self.question_type: Optional[QuestionType] = None
        self.started_ids: list[int] = []
        self.failed_ids: list[int] = []

    @property
    def current_item(self) -> Optional[LessonItem]:
        if self.state in (LessonState.LEARNING, LessonState.QUIZZING) and self.index < len(self.items):
            return self.items[self.index]
        return None

    def load(self) -> LessonState:
        self.state = LessonState.LOADING
        self.items, self.index, self.question_type = [], 0, None
        logger.debug("Loading lessons")

        assignments = fetch_lesson_assignments(self.db_path, limit=self.batch_size)
        for assignment in assignments:
            subject = fetch_subject(self.db_path, assignment.subject_id)
            if subject is None:
                logger.warning(
                    "Subject %s not found for assignment %s, skipping",
                    assignment.subject_id, assignment.id,
                )
                continue
            self.items.append(LessonItem(assignment, subject))

        logger.debug("Loaded %d lessons", len(self.items))
        if not self.items:
            self.state = LessonState.EMPTY
        else:
            self._show_current()
        return self.state

    def _show_current(self) -> None:
        self.question_type = None
        if self.index >= len(self.items):
            self.state = LessonState.COMPLETE
            logger.info("Lesson session complete")
        else:
            self.state = LessonState.LEARNING

    def start_quiz(self) -> None:
        if self.state != LessonState.LEARNING:
            return
        self.state = LessonState.QUIZZING
        self.question_type = QuestionType.MEANING

    def submit_answer(self, answer: str) -> bool:
        """Check an answer to the current quiz question; True if correct."""
        item = self.current_item
        if self.state != LessonState.QUIZZING or item is None:
            return False
        if not answer.strip():
            return False

        if self.question_type == QuestionType.MEANING:
            correct = check_meaning(answer, item.subject)
        else:
            correct = check_reading(answer, item.subject)

        if not correct:
            logger.debug("Incorrect lesson answer for assignment %s", item.assignment.id)
            return False

        if self.question_type == QuestionType.MEANING and item.subject.has_readings:
            self.question_type = QuestionType.READING
        else:
            self._finish_current(item)
        return True

    def _finish_current(self, item: LessonItem) -> None:
        try:
            started = self.api.start_assignment(item.assignment.id)
            save_assignments(self.db_path, [started])
            self.started_ids.append(item.assignment.id)
            logger.info("Started assignment %s", item.assignment.id)
        except (NetworkError, sqlite3.Error) as e:
            # Best effort: the lesson still advances
            logger.error("Failed to start assignment %s: %s", item.assignment.id, e)
            self.failed_ids.append(item.assignment.id)
        self.next_lesson()

    def next_lesson(self) -> None:
        self.index += 1
        self._show_current()
