# tests/test_answers.py
from wk_tutor.answers import check_answer, check_meaning, check_reading, normalize
from wk_tutor.models import Meaning, Reading

from conftest import make_kanji, make_radical


def test_normalize_strips_case_whitespace_and_punctuation():
    assert normalize("  One, Two.  ") == "one two"


def test_check_answer_ignores_case_and_punctuation():
    assert check_answer("One.", ["one"])
    assert check_answer("  ONE  ", ["one"])
    assert check_answer("one", ["One."])


def test_check_answer_blank_is_never_correct():
    assert not check_answer("", ["one"])
    assert not check_answer("   ", [""])
    assert not check_answer(".", [""])


def test_check_answer_empty_accepted_list():
    assert not check_answer("one", [])


def test_check_answer_is_exact_match_only():
    assert not check_answer("onne", ["one"])
    assert not check_answer("on", ["one"])


def test_check_meaning_uses_accepted_meanings_only():
    subject = make_kanji()
    subject.meanings.append(Meaning("uno", primary=False, accepted_answer=False))
    assert check_meaning("one", subject)
    assert not check_meaning("uno", subject)


def test_check_reading_uses_accepted_readings():
    subject = make_kanji()
    subject.readings.append(Reading("ひと", primary=False, accepted_answer=False, type="kunyomi"))
    assert check_reading("いち", subject)
    assert not check_reading("ひと", subject)
    assert not check_reading("one", subject)


def test_check_reading_on_radical_is_false():
    assert not check_reading("いち", make_radical())
