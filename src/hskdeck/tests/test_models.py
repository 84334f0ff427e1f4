"""Tests for data models."""
import pytest
from faker import Faker
from sqlalchemy.orm import Session

from hskdeck.errors import InvalidInputError
from hskdeck.models.models import StoredState
from hskdeck.models.session_models import GameMode, SessionState
from hskdeck.models.vocab_models import Example, LogEntry, ProgressRecord, Word

fake = Faker()


def test_word_from_dict() -> None:
    """Test word creation from a vocabulary entry."""
    word = Word.from_dict(
        {"front": "杯子", "back": {"meaning": "cup; glass", "hanzi_pinyin": "bēizi",
                                   "part_of_speech": "noun", "measure_word": "个 (gè)"}},
        index=2,
    )

    assert word.id == 2
    assert word.back.measure_word == "个 (gè)"
    assert word.back.example is None
    assert word.to_dict()["back"]["measure_word"] == "个 (gè)"


@pytest.mark.parametrize("entry", [
    "爱",
    {"back": {"meaning": "love"}},
    {"front": "", "back": {"meaning": "love"}},
    {"front": "爱"},
    {"front": "爱", "back": {"hanzi_pinyin": "ài"}},
    {"id": "7", "front": "爱", "back": {"meaning": "love"}},
    {"id": True, "front": "爱", "back": {"meaning": "love"}},
])
def test_word_from_invalid_dict(entry) -> None:
    with pytest.raises(InvalidInputError):
        Word.from_dict(entry, index=0)


def test_short_meaning() -> None:
    """Test that options show the first meaning, truncated."""
    word = Word.from_dict({"front": "爱", "back": {"meaning": "to love; affection"}}, 0)
    assert word.short_meaning() == "to love"

    long_meaning = fake.pystr(min_chars=80, max_chars=80)
    word = Word.from_dict({"front": "长", "back": {"meaning": long_meaning}}, 1)
    assert word.short_meaning(60) == long_meaning[:60] + "..."


def test_example_parsing() -> None:
    example = Example.parse("我～我的家。\nWǒ ài wǒ de jiā.")

    assert example.render("爱") == "我爱我的家。"
    assert example.transcription == "Wǒ ài wǒ de jiā."
    assert Example.parse("只有句子").transcription == ""
    assert Example.parse(None) is None


def test_progress_record_data() -> None:
    record = ProgressRecord.from_data({"interval": 3, "reviews": 2})
    assert record == ProgressRecord(interval=3, reviews=2)
    assert record.to_data() == {"interval": 3, "reviews": 2}

    with pytest.raises(ValueError):
        ProgressRecord.from_data({"interval": -1, "reviews": 0})


@pytest.mark.parametrize("stored, expected", [(2.25, 2), (3.375, 3), (2.5, 3), (1.5, 2)])
def test_progress_record_rounds_fractional_interval(stored: float, expected: int) -> None:
    """Test that fractional stored intervals round half up, like new intervals."""
    assert ProgressRecord.from_data({"interval": stored, "reviews": 1}).interval == expected


def test_progress_record_rejects_tiny_interval() -> None:
    with pytest.raises(ValueError):
        ProgressRecord.from_data({"interval": 0.4, "reviews": 1})


def test_session_state_current_card() -> None:
    """Test that only quiz and flashcard modes have a current card."""
    word = Word.from_dict({"front": "八", "back": {"meaning": "eight"}}, 0)
    state = SessionState(mode=GameMode.QUIZ, deck=(word,))

    assert state.current_card == word
    assert state.is_last_card is True
    assert SessionState(mode=GameMode.SUMMARY, deck=(word,)).current_card is None
    assert LogEntry(word=word, is_correct=False).word_id == 0


def test_stored_state_row(session_factory) -> None:
    """Test that the state blob is stored under its name."""
    db: Session = session_factory()
    db.add(StoredState(name="hsk-storage", payload="{}"))
    db.commit()

    row = db.get(StoredState, "hsk-storage")
    assert row.payload == "{}"
    assert row.created_at is not None
    db.close()
