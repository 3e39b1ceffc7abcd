"""Conversion between WaniKani API resources and model data classes."""
from datetime import datetime, timezone
from typing import Optional

from wk_tutor.errors import DecodingError
from wk_tutor.models import (
    Assignment, AuxiliaryMeaning, KanjiData, LevelProgression, Meaning, RadicalData,
    Reading, Review, ReviewStatistic, Subject, SubjectType, Summary, SummaryBucket,
    User, VocabularyData,
)


def parse_datetime(value: Optional[str]) -> Optional[datetime]:
    if value is None:
        return None
    try:
        parsed = datetime.fromisoformat(value.replace("Z", "+00:00"))
    except (AttributeError, ValueError) as e:
        raise DecodingError(f"Invalid timestamp: {value!r}") from e
    if parsed.tzinfo is None:
        parsed = parsed.replace(tzinfo=timezone.utc)
    return parsed.astimezone(timezone.utc)


def format_datetime(value: Optional[datetime]) -> Optional[str]:
    """Fixed-width UTC form, so stored timestamps sort and compare as text."""
    if value is None:
        return None
    if value.tzinfo is None:
        value = value.replace(tzinfo=timezone.utc)
    return value.astimezone(timezone.utc).strftime("%Y-%m-%dT%H:%M:%S.%fZ")


def _require(data: dict, key: str):
    try:
        return data[key]
    except (KeyError, TypeError) as e:
        raise DecodingError(f"Missing field {key!r}") from e


def _subject_type(value) -> SubjectType:
    try:
        return SubjectType(value)
    except ValueError as e:
        raise DecodingError(f"Unknown subject type: {value!r}") from e


def _parse_meanings(data: dict) -> list[Meaning]:
    return [
        Meaning(
            meaning=_require(m, "meaning"),
            primary=m.get("primary", False),
            accepted_answer=m.get("accepted_answer", True),
        )
        for m in data.get("meanings", [])
    ]


def _parse_readings(data: dict) -> list[Reading]:
    return [
        Reading(
            reading=_require(r, "reading"),
            primary=r.get("primary", False),
            accepted_answer=r.get("accepted_answer", True),
            type=r.get("type"),
        )
        for r in data.get("readings", []) or []
    ]


def _parse_radical_data(data: dict) -> RadicalData:
    return RadicalData(
        meaning_mnemonic=data.get("meaning_mnemonic", ""),
        amalgamation_subject_ids=list(data.get("amalgamation_subject_ids", [])),
        character_image_urls=[img["url"] for img in data.get("character_images", []) if "url" in img],
    )


def _parse_kanji_data(data: dict) -> KanjiData:
    return KanjiData(
        meaning_mnemonic=data.get("meaning_mnemonic", ""),
        reading_mnemonic=data.get("reading_mnemonic", ""),
        meaning_hint=data.get("meaning_hint"),
        reading_hint=data.get("reading_hint"),
        component_subject_ids=list(data.get("component_subject_ids", [])),
        amalgamation_subject_ids=list(data.get("amalgamation_subject_ids", [])),
        visually_similar_subject_ids=list(data.get("visually_similar_subject_ids", [])),
    )


def _parse_vocabulary_data(data: dict) -> VocabularyData:
    return VocabularyData(
        meaning_mnemonic=data.get("meaning_mnemonic", ""),
        reading_mnemonic=data.get("reading_mnemonic", ""),
        parts_of_speech=list(data.get("parts_of_speech", [])),
        component_subject_ids=list(data.get("component_subject_ids", [])),
        context_sentences=list(data.get("context_sentences", [])),
    )


SUBJECT_PARSERS = {
    SubjectType.RADICAL: _parse_radical_data,
    SubjectType.KANJI: _parse_kanji_data,
    SubjectType.VOCABULARY: _parse_vocabulary_data,
    SubjectType.KANA_VOCABULARY: _parse_vocabulary_data,
}


def parse_subject(resource: dict) -> Subject:
    """Build a Subject from a resource, dispatching on its ``object`` tag."""
    subject_type = _subject_type(_require(resource, "object"))
    data = _require(resource, "data")
    readings = [] if subject_type == SubjectType.RADICAL else _parse_readings(data)
    return Subject(
        id=_require(resource, "id"),
        object=subject_type,
        slug=data.get("slug", ""),
        level=data.get("level", 1),
        characters=data.get("characters"),
        meanings=_parse_meanings(data),
        readings=readings,
        auxiliary_meanings=[
            AuxiliaryMeaning(meaning=a["meaning"], type=a.get("type", ""))
            for a in data.get("auxiliary_meanings", [])
        ],
        lesson_position=data.get("lesson_position", 0),
        hidden_at=parse_datetime(data.get("hidden_at")),
        data_updated_at=parse_datetime(resource.get("data_updated_at")),
        data=SUBJECT_PARSERS[subject_type](data),
    )


def subject_to_resource(subject: Subject) -> dict:
    """Inverse of parse_subject, used to store subjects locally."""
    data = {
        "slug": subject.slug,
        "level": subject.level,
        "characters": subject.characters,
        "meanings": [
            {"meaning": m.meaning, "primary": m.primary, "accepted_answer": m.accepted_answer}
            for m in subject.meanings
        ],
        "readings": [
            {"reading": r.reading, "primary": r.primary, "accepted_answer": r.accepted_answer, "type": r.type}
            for r in subject.readings
        ],
        "auxiliary_meanings": [{"meaning": a.meaning, "type": a.type} for a in subject.auxiliary_meanings],
        "lesson_position": subject.lesson_position,
        "hidden_at": format_datetime(subject.hidden_at),
    }
    content = subject.data
    if isinstance(content, RadicalData):
        data["meaning_mnemonic"] = content.meaning_mnemonic
        data["amalgamation_subject_ids"] = content.amalgamation_subject_ids
        data["character_images"] = [{"url": url} for url in content.character_image_urls]
    elif isinstance(content, KanjiData):
        data.update({
            "meaning_mnemonic": content.meaning_mnemonic,
            "reading_mnemonic": content.reading_mnemonic,
            "meaning_hint": content.meaning_hint,
            "reading_hint": content.reading_hint,
            "component_subject_ids": content.component_subject_ids,
            "amalgamation_subject_ids": content.amalgamation_subject_ids,
            "visually_similar_subject_ids": content.visually_similar_subject_ids,
        })
    elif isinstance(content, VocabularyData):
        data.update({
            "meaning_mnemonic": content.meaning_mnemonic,
            "reading_mnemonic": content.reading_mnemonic,
            "parts_of_speech": content.parts_of_speech,
            "component_subject_ids": content.component_subject_ids,
            "context_sentences": content.context_sentences,
        })
    return {
        "id": subject.id,
        "object": subject.object.value,
        "data_updated_at": format_datetime(subject.data_updated_at),
        "data": data,
    }


def parse_assignment(resource: dict) -> Assignment:
    data = _require(resource, "data")
    subject_type = _subject_type(_require(data, "subject_type"))
    return Assignment(
        id=_require(resource, "id"),
        subject_id=_require(data, "subject_id"),
        subject_type=subject_type,
        srs_stage=data.get("srs_stage", 0),
        unlocked_at=parse_datetime(data.get("unlocked_at")),
        started_at=parse_datetime(data.get("started_at")),
        passed_at=parse_datetime(data.get("passed_at")),
        burned_at=parse_datetime(data.get("burned_at")),
        available_at=parse_datetime(data.get("available_at")),
        resurrected_at=parse_datetime(data.get("resurrected_at")),
        hidden=data.get("hidden", False),
        data_updated_at=parse_datetime(resource.get("data_updated_at")),
    )


def parse_user(resource: dict) -> User:
    data = _require(resource, "data")
    subscription = data.get("subscription") or {}
    preferences = data.get("preferences") or {}
    return User(
        id=_require(data, "id"),
        username=_require(data, "username"),
        level=_require(data, "level"),
        profile_url=data.get("profile_url", ""),
        started_at=parse_datetime(data.get("started_at")),
        current_vacation_started_at=parse_datetime(data.get("current_vacation_started_at")),
        subscription_active=subscription.get("active", False),
        subscription_type=subscription.get("type", "free"),
        max_level_granted=subscription.get("max_level_granted", 3),
        lessons_batch_size=preferences.get("lessons_batch_size"),
    )


def _parse_buckets(items: list) -> list[SummaryBucket]:
    return [
        SummaryBucket(
            available_at=parse_datetime(_require(b, "available_at")),
            subject_ids=list(b.get("subject_ids", [])),
        )
        for b in items
    ]


def parse_summary(resource: dict) -> Summary:
    data = _require(resource, "data")
    return Summary(
        lessons=_parse_buckets(data.get("lessons", [])),
        reviews=_parse_buckets(data.get("reviews", [])),
        next_reviews_at=parse_datetime(data.get("next_reviews_at")),
    )


def parse_review(resource: dict) -> Review:
    data = _require(resource, "data")
    updated_assignment = None
    updated = (resource.get("resources_updated") or {}).get("assignment")
    if updated:
        updated_assignment = parse_assignment(updated)
    return Review(
        id=resource.get("id", 0),
        assignment_id=_require(data, "assignment_id"),
        subject_id=_require(data, "subject_id"),
        starting_srs_stage=_require(data, "starting_srs_stage"),
        ending_srs_stage=_require(data, "ending_srs_stage"),
        incorrect_meaning_answers=data.get("incorrect_meaning_answers", 0),
        incorrect_reading_answers=data.get("incorrect_reading_answers", 0),
        created_at=parse_datetime(data.get("created_at")),
        updated_assignment=updated_assignment,
    )


def parse_review_statistic(resource: dict) -> ReviewStatistic:
    data = _require(resource, "data")
    return ReviewStatistic(
        id=_require(resource, "id"),
        subject_id=_require(data, "subject_id"),
        subject_type=_subject_type(data.get("subject_type", "radical")),
        meaning_correct=data.get("meaning_correct", 0),
        meaning_incorrect=data.get("meaning_incorrect", 0),
        reading_correct=data.get("reading_correct", 0),
        reading_incorrect=data.get("reading_incorrect", 0),
        percentage_correct=data.get("percentage_correct", 0),
        hidden=data.get("hidden", False),
    )


def parse_level_progression(resource: dict) -> LevelProgression:
    data = _require(resource, "data")
    return LevelProgression(
        id=_require(resource, "id"),
        level=_require(data, "level"),
        unlocked_at=parse_datetime(data.get("unlocked_at")),
        started_at=parse_datetime(data.get("started_at")),
        passed_at=parse_datetime(data.get("passed_at")),
        completed_at=parse_datetime(data.get("completed_at")),
        abandoned_at=parse_datetime(data.get("abandoned_at")),
    )
