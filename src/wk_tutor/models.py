"""Data classes for the WaniKani domain model."""
from dataclasses import dataclass, field
from datetime import datetime
from enum import Enum
from typing import Optional, Union

from wk_tutor.srs import stage_name


class SubjectType(str, Enum):
    RADICAL = "radical"
    KANJI = "kanji"
    VOCABULARY = "vocabulary"
    KANA_VOCABULARY = "kana_vocabulary"


@dataclass
class Meaning:
    meaning: str
    primary: bool = False
    accepted_answer: bool = True


@dataclass
class AuxiliaryMeaning:
    meaning: str
    type: str


@dataclass
class Reading:
    reading: str
    primary: bool = False
    accepted_answer: bool = True
    type: Optional[str] = None  # onyomi / kunyomi / nanori, kanji only


@dataclass
class RadicalData:
    meaning_mnemonic: str = ""
    amalgamation_subject_ids: list[int] = field(default_factory=list)
    character_image_urls: list[str] = field(default_factory=list)


@dataclass
class KanjiData:
    meaning_mnemonic: str = ""
    reading_mnemonic: str = ""
    meaning_hint: Optional[str] = None
    reading_hint: Optional[str] = None
    component_subject_ids: list[int] = field(default_factory=list)
    amalgamation_subject_ids: list[int] = field(default_factory=list)
    visually_similar_subject_ids: list[int] = field(default_factory=list)


@dataclass
class VocabularyData:
    meaning_mnemonic: str = ""
    reading_mnemonic: str = ""
    parts_of_speech: list[str] = field(default_factory=list)
    component_subject_ids: list[int] = field(default_factory=list)
    context_sentences: list[dict] = field(default_factory=list)


SubjectContent = Union[RadicalData, KanjiData, VocabularyData]


@dataclass
class Subject:
    """Shared projection of a radical, kanji or vocabulary subject.

    Session code works only with these fields; the type-specific payload is
    kept in ``data`` for display.
    """
    id: int
    object: SubjectType
    slug: str
    level: int
    characters: Optional[str] = None
    meanings: list[Meaning] = field(default_factory=list)
    readings: list[Reading] = field(default_factory=list)
    auxiliary_meanings: list[AuxiliaryMeaning] = field(default_factory=list)
    lesson_position: int = 0
    hidden_at: Optional[datetime] = None
    data_updated_at: Optional[datetime] = None
    data: Optional[SubjectContent] = None

    @property
    def accepted_meanings(self) -> list[str]:
        return [m.meaning for m in self.meanings if m.accepted_answer]

    @property
    def accepted_readings(self) -> list[str]:
        return [r.reading for r in self.readings if r.accepted_answer]

    @property
    def primary_meaning(self) -> Optional[str]:
        # Tolerates zero or several primaries: first primary wins, then first accepted
        for m in self.meanings:
            if m.primary:
                return m.meaning
        accepted = self.accepted_meanings
        return accepted[0] if accepted else None

    @property
    def primary_reading(self) -> Optional[str]:
        for r in self.readings:
            if r.primary:
                return r.reading
        accepted = self.accepted_readings
        return accepted[0] if accepted else None

    @property
    def has_readings(self) -> bool:
        return bool(self.readings)

    @property
    def display(self) -> str:
        return self.characters or self.slug


@dataclass
class Assignment:
    id: int
    subject_id: int
    subject_type: SubjectType
    srs_stage: int = 0
    unlocked_at: Optional[datetime] = None
    started_at: Optional[datetime] = None
    passed_at: Optional[datetime] = None
    burned_at: Optional[datetime] = None
    available_at: Optional[datetime] = None
    resurrected_at: Optional[datetime] = None
    hidden: bool = False
    data_updated_at: Optional[datetime] = None

    def is_available_for_review(self, now: datetime) -> bool:
        return self.available_at is not None and self.available_at <= now

    @property
    def is_available_for_lesson(self) -> bool:
        return (
            self.srs_stage == 0
            and self.started_at is None
            and self.unlocked_at is not None
            and not self.hidden
        )

    @property
    def srs_stage_name(self) -> str:
        return stage_name(self.srs_stage)


@dataclass
class User:
    id: str
    username: str
    level: int
    profile_url: str = ""
    started_at: Optional[datetime] = None
    current_vacation_started_at: Optional[datetime] = None
    subscription_active: bool = False
    subscription_type: str = "free"
    max_level_granted: int = 3
    lessons_batch_size: Optional[int] = None

    @property
    def is_on_vacation(self) -> bool:
        return self.current_vacation_started_at is not None


@dataclass
class SummaryBucket:
    available_at: datetime
    subject_ids: list[int] = field(default_factory=list)


@dataclass
class Summary:
    lessons: list[SummaryBucket] = field(default_factory=list)
    reviews: list[SummaryBucket] = field(default_factory=list)
    next_reviews_at: Optional[datetime] = None

    def available_lessons_count(self, now: datetime) -> int:
        return sum(len(b.subject_ids) for b in self.lessons if b.available_at <= now)

    def available_reviews_count(self, now: datetime) -> int:
        return sum(len(b.subject_ids) for b in self.reviews if b.available_at <= now)


@dataclass
class Review:
    id: int
    assignment_id: int
    subject_id: int
    starting_srs_stage: int
    ending_srs_stage: int
    incorrect_meaning_answers: int = 0
    incorrect_reading_answers: int = 0
    created_at: Optional[datetime] = None
    updated_assignment: Optional[Assignment] = None

    @property
    def is_correct(self) -> bool:
        return self.incorrect_meaning_answers == 0 and self.incorrect_reading_answers == 0

    @property
    def did_level_up(self) -> bool:
        return self.ending_srs_stage > self.starting_srs_stage

    @property
    def did_level_down(self) -> bool:
        return self.ending_srs_stage < self.starting_srs_stage


@dataclass
class ReviewStatistic:
    id: int
    subject_id: int
    subject_type: SubjectType
    meaning_correct: int = 0
    meaning_incorrect: int = 0
    reading_correct: int = 0
    reading_incorrect: int = 0
    percentage_correct: int = 0
    hidden: bool = False

    @property
    def total_correct(self) -> int:
        return self.meaning_correct + self.reading_correct

    @property
    def total_answers(self) -> int:
        return self.total_correct + self.meaning_incorrect + self.reading_incorrect


@dataclass
class LevelProgression:
    id: int
    level: int
    unlocked_at: Optional[datetime] = None
    started_at: Optional[datetime] = None
    passed_at: Optional[datetime] = None
    completed_at: Optional[datetime] = None
    abandoned_at: Optional[datetime] = None
