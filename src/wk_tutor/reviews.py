"""Review session: quiz queue, per-assignment progress and review submission."""
import logging
import random
import sqlite3
import threading
import time
from dataclasses import dataclass
from datetime import datetime, timezone
from enum import Enum
from typing import Callable, Optional

from wk_tutor.answers import check_meaning, check_reading
from wk_tutor.api import WaniKaniAPI
from wk_tutor.errors import DecodingError, NetworkError, RateLimitedError
from wk_tutor.models import Assignment, Review, Subject
from wk_tutor.srs import SRSResult, calculate_result
from wk_tutor.store import (
    fetch_available_assignments, fetch_subject, mark_reviewed, save_assignments, update_srs_stage,
)

logger = logging.getLogger(__name__)


class QuestionType(Enum):
    MEANING = "meaning"
    READING = "reading"


class ReviewState(Enum):
    LOADING = "loading"
    EMPTY = "empty"
    REVIEWING = "reviewing"
    COMPLETE = "complete"
    ERROR = "error"


@dataclass(frozen=True)
class ReviewQueueItem:
    assignment: Assignment
    subject: Subject
    question_type: QuestionType


@dataclass
class ReviewSessionRecord:
    assignment: Assignment
    subject: Subject
    meaning_answered_correctly: bool = False
    reading_answered_correctly: bool = False
    incorrect_meaning_answers: int = 0
    incorrect_reading_answers: int = 0

    @property
    def is_complete(self) -> bool:
        return self.meaning_answered_correctly and (
            self.reading_answered_correctly or not self.subject.has_readings
        )

    @property
    def incorrect_answers(self) -> int:
        return self.incorrect_meaning_answers + self.incorrect_reading_answers


@dataclass
class AnswerResult:
    correct: bool
    message: str = ""
    submitted: bool = False
    preview: Optional[SRSResult] = None
    review: Optional[Review] = None


def build_queue(pairs: list[tuple[Assignment, Subject]]) -> list[ReviewQueueItem]:
    """One meaning question per assignment, plus a reading question when the subject has readings."""
    queue = []
    for assignment, subject in pairs:
        queue.append(ReviewQueueItem(assignment, subject, QuestionType.MEANING))
        if subject.has_readings:
            queue.append(ReviewQueueItem(assignment, subject, QuestionType.READING))
    return queue


class ReviewSession:
    """Drives one sitting of reviews.

    States: LOADING -> EMPTY | REVIEWING -> COMPLETE, or LOADING -> ERROR.
    An assignment is submitted once both its questions have been answered
    correctly, carrying every incorrect attempt made during the session.
    """

    def __init__(
        self,
        api: WaniKaniAPI,
        db_path: str,
        rng: Optional[random.Random] = None,
        feedback_delay: float = 1.0,
        clock: Optional[Callable[[], datetime]] = None,
    ):
        self.api = api
        self.db_path = db_path
        self.rng = rng or random.Random()
        self.feedback_delay = feedback_delay
        self._clock = clock or (lambda: datetime.now(timezone.utc))
        self._lock = threading.Lock()

        self.state = ReviewState.LOADING
        self.error_message: Optional[str] = None
        self.queue: list[ReviewQueueItem] = []
        self.current_item: Optional[ReviewQueueItem] = None
        self.records: dict[int, ReviewSessionRecord] = {}
        self.last_result: Optional[AnswerResult] = None
        self.correct_count = 0
        self.incorrect_count = 0

    @property
    def remaining_count(self) -> int:
        return len(self.queue) + (1 if self.current_item else 0)

    def load(self) -> ReviewState:
        with self._lock:
            self.state = ReviewState.LOADING
            self.error_message = None
            self.queue, self.records, self.current_item = [], {}, None
            logger.debug("Loading reviews")

            try:
                assignments = fetch_available_assignments(self.db_path, self._clock())
                pairs = []
                for assignment in assignments:
                    subject = fetch_subject(self.db_path, assignment.subject_id)
                    if subject is None:
                        logger.warning(
                            "Subject %s not found for assignment %s, skipping",
                            assignment.subject_id, assignment.id,
                        )
                        continue
                    pairs.append((assignment, subject))
            except (sqlite3.Error, DecodingError) as e:
                logger.error("Failed to load reviews: %s", e)
                self.error_message = str(e)
                self.state = ReviewState.ERROR
                return self.state

            queue = build_queue(pairs)
            self.rng.shuffle(queue)
            self.queue = queue
            self.records = {a.id: ReviewSessionRecord(a, s) for a, s in pairs}
            logger.debug("Queue built with %d items for %d assignments", len(queue), len(pairs))

            if not self.queue:
                self.state = ReviewState.EMPTY
            else:
                self.state = ReviewState.REVIEWING
                self._advance()
            return self.state

    def next_item(self) -> Optional[ReviewQueueItem]:
        with self._lock:
            return self._advance()

    def _advance(self) -> Optional[ReviewQueueItem]:
        if not self.queue:
            self.current_item = None
            self.state = ReviewState.COMPLETE
            logger.info("Review session complete")
            return None
        self.current_item = self.queue.pop(0)
        logger.debug(
            "Next item: %s (%s)", self.current_item.subject.display, self.current_item.question_type.value,
        )
        return self.current_item

    def submit_answer(self, answer: str) -> Optional[AnswerResult]:
        """Check an answer for the current item.

        Returns None when nothing happened: not reviewing, or a blank answer.
        """
        with self._lock:
            item = self.current_item
            if self.state != ReviewState.REVIEWING or item is None:
                return None
            if not answer.strip():
                return None

            record = self.records.get(item.assignment.id)
            if record is None:
                logger.error("No session record for assignment %s", item.assignment.id)
                return None

            # A completed record whose submission failed: retry without re-grading
            if record.is_complete:
                return self._submit(record)

            if item.question_type == QuestionType.MEANING:
                correct = check_meaning(answer, item.subject)
            else:
                correct = check_reading(answer, item.subject)

            if correct:
                self.correct_count += 1
                if item.question_type == QuestionType.MEANING:
                    record.meaning_answered_correctly = True
                else:
                    record.reading_answered_correctly = True
                result = AnswerResult(correct=True)
            else:
                self.incorrect_count += 1
                if item.question_type == QuestionType.MEANING:
                    record.incorrect_meaning_answers += 1
                    expected = item.subject.primary_meaning
                else:
                    record.incorrect_reading_answers += 1
                    expected = item.subject.primary_reading
                result = AnswerResult(correct=False, message=f"Correct answer: {expected or ''}")
                # Ask again later in the session
                self.queue.append(item)

            if record.is_complete:
                return self._submit(record)

            self.last_result = result
            if self.feedback_delay > 0:
                time.sleep(self.feedback_delay)
            self._advance()
            return result

    def retry_submission(self) -> Optional[AnswerResult]:
        """Resubmit the current item's completed record after a failure."""
        with self._lock:
            if self.state != ReviewState.REVIEWING or self.current_item is None:
                return None
            record = self.records.get(self.current_item.assignment.id)
            if record is None or not record.is_complete:
                return None
            return self._submit(record)

    def _submit(self, record: ReviewSessionRecord) -> AnswerResult:
        assignment_id = record.assignment.id
        preview = calculate_result(record.assignment.srs_stage, record.incorrect_answers)
        logger.debug("Submitting review for assignment %s", assignment_id)
        try:
            review = self.api.submit_review(
                assignment_id,
                record.incorrect_meaning_answers,
                record.incorrect_reading_answers,
            )
        except RateLimitedError as e:
            logger.info("Rate limited, retry after %d seconds", e.retry_after)
            result = AnswerResult(
                correct=False,
                message=f"Rate limited. Please wait {e.retry_after} seconds before trying again.",
                preview=preview,
            )
            self.last_result = result
            return result
        except NetworkError as e:
            logger.error("Failed to submit review for assignment %s: %s", assignment_id, e)
            result = AnswerResult(correct=False, message=f"Failed to submit: {e}", preview=preview)
            self.last_result = result
            return result

        logger.info("Review submitted for assignment %s", assignment_id)
        self._store_review(review)
        self.queue = [q for q in self.queue if q.assignment.id != assignment_id]
        del self.records[assignment_id]

        result = AnswerResult(correct=True, submitted=True, preview=preview, review=review)
        self.last_result = result
        self._advance()
        return result

    def _store_review(self, review: Review) -> None:
        # The server's stage always overwrites the local preview
        try:
            if review.updated_assignment is not None:
                save_assignments(self.db_path, [review.updated_assignment])
            else:
                update_srs_stage(self.db_path, review.assignment_id, review.ending_srs_stage)
            mark_reviewed(self.db_path, review.assignment_id, self._clock())
        except sqlite3.Error as e:
            # Next sync brings the assignment back in line
            logger.error("Could not store review for assignment %s: %s", review.assignment_id, e)
