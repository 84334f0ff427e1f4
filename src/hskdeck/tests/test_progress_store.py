"""Tests for the progress store."""
import json
from typing import Callable
from unittest.mock import Mock

import pytest
from sqlalchemy.exc import OperationalError
from sqlalchemy.orm import Session

from hskdeck.models.models import StoredState
from hskdeck.models.vocab_models import ProgressRecord
from hskdeck.services.progress_store import ProgressStore


def write_payload(session_factory: Callable[[], Session], payload: str, name: str = "hsk-test") -> None:
    db = session_factory()
    db.add(StoredState(name=name, payload=payload))
    db.commit()
    db.close()


def test_defaults_without_stored_state(store: ProgressStore) -> None:
    """Test that a fresh store starts from defaults."""
    assert store.records == {}
    assert store.score == 0
    assert store.streak == 0
    assert store.dark_mode is True
    assert store.audio_enabled is True


def test_stored_keys(store: ProgressStore) -> None:
    """Test that exactly the persisted subset is written."""
    store.grade(7, True)
    assert set(store.to_data()) == {"score", "streak", "userProgress", "darkMode", "audioEnabled"}
    assert store.to_data()["userProgress"] == {"7": {"interval": 2, "reviews": 1}}


def test_state_survives_reload(store: ProgressStore, session_factory: Callable[[], Session]) -> None:
    """Test that a new store restores what the previous one saved."""
    store.record_answer(3, False, 0, 0)
    store.record_answer(5, True, 100, 1)
    store.toggle_theme()
    store.set_audio_enabled(False)

    restored = ProgressStore(session_factory=session_factory, storage_name="hsk-test")
    restored.load()

    assert restored.score == 100
    assert restored.streak == 1
    assert restored.get_record(3) == ProgressRecord(interval=1, reviews=1)
    assert restored.get_record(5) == ProgressRecord(interval=2, reviews=1)
    assert restored.dark_mode is False
    assert restored.audio_enabled is False


def test_storage_names_are_separate(store: ProgressStore, session_factory: Callable[[], Session]) -> None:
    store.update_counters(500, 5)

    other = ProgressStore(session_factory=session_factory, storage_name="someone-else")
    other.load()

    assert other.score == 0


def test_grade_creates_and_updates_record(store: ProgressStore) -> None:
    """Test the first grading and the reset on a wrong answer."""
    assert store.get_record(1) is None

    assert store.grade(1, True) == ProgressRecord(interval=2, reviews=1)
    assert store.grade(1, True) == ProgressRecord(interval=3, reviews=2)
    assert store.grade(1, False) == ProgressRecord(interval=1, reviews=3)


@pytest.mark.parametrize("payload", [
    "{not json",
    json.dumps(["a", "list"]),
    json.dumps({"score": -1}),
    json.dumps({"userProgress": {"1": {"interval": 0, "reviews": 1}}}),
    json.dumps({"userProgress": {"x": {"interval": 1, "reviews": 1}}}),
    json.dumps({"userProgress": {"1": {"interval": 2}}}),
    '{"userProgress": {"1": {"interval": NaN, "reviews": 1}}}',
])
def test_corrupt_state_falls_back_to_defaults(session_factory: Callable[[], Session], payload: str) -> None:
    """Test that an unreadable blob is ignored instead of failing the load."""
    write_payload(session_factory, payload)
    store = ProgressStore(session_factory=session_factory, storage_name="hsk-test")

    store.load()

    assert store.records == {}
    assert store.score == 0
    assert store.dark_mode is True


def test_partial_state_keeps_defaults(session_factory: Callable[[], Session]) -> None:
    write_payload(session_factory, json.dumps({"score": 300, "userProgress": {"2": {"interval": 5, "reviews": 4}}}))
    store = ProgressStore(session_factory=session_factory, storage_name="hsk-test")

    store.load()

    assert store.score == 300
    assert store.streak == 0
    assert store.get_record(2) == ProgressRecord(interval=5, reviews=4)
    assert store.audio_enabled is True


def test_save_failure_keeps_memory_state() -> None:
    """Test that a failed write is reported and nothing is raised."""
    db = Mock()
    db.get.side_effect = OperationalError("SELECT", {}, Exception("disk I/O error"))
    store = ProgressStore(session_factory=lambda: db, storage_name="hsk-test")

    record = store.record_answer(4, True, 100, 1)

    assert record.reviews == 1
    assert store.score == 100
    assert store.save() is False
    db.rollback.assert_called()
    db.close.assert_called()


def test_load_failure_uses_defaults() -> None:
    db = Mock()
    db.get.side_effect = OperationalError("SELECT", {}, Exception("no such table"))
    store = ProgressStore(session_factory=lambda: db, storage_name="hsk-test")

    store.load()

    assert store.score == 0
    assert store.records == {}


def test_fractional_interval_is_rounded_on_load(session_factory: Callable[[], Session]) -> None:
    write_payload(session_factory, json.dumps({"userProgress": {"4": {"interval": 3.375, "reviews": 3}}}))
    store = ProgressStore(session_factory=session_factory, storage_name="hsk-test")

    store.load()

    assert store.get_record(4) == ProgressRecord(interval=3, reviews=3)
    assert store.grade(4, True).interval == 5  # 3 * 1.5 = 4.5
