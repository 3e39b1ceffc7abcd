"""Answer checking for meaning and reading questions."""
from wk_tutor.models import Subject


def normalize(text: str) -> str:
    return text.strip().lower().replace(",", "").replace(".", "")


def check_answer(user_answer: str, accepted_answers: list[str]) -> bool:
    """True if the answer matches an accepted answer after normalization.

    Matching is exact once both sides are trimmed, lowercased and stripped of
    commas and periods. A blank answer never matches.
    """
    normalized = normalize(user_answer)
    if not normalized:
        return False
    return any(normalize(accepted) == normalized for accepted in accepted_answers)


def check_meaning(user_answer: str, subject: Subject) -> bool:
    return check_answer(user_answer, subject.accepted_meanings)


def check_reading(user_answer: str, subject: Subject) -> bool:
    return check_answer(user_answer, subject.accepted_readings)
