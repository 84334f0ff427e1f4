"""Durable per-word review progress and user preferences."""
import json
import logging
from typing import Any, Callable, Dict, Optional

from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.orm import Session

from hskdeck import monitoring
from hskdeck.config import settings
from hskdeck.models.base import SessionLocal
from hskdeck.models.models import StoredState
from hskdeck.models.vocab_models import ProgressRecord
from hskdeck.services.review_scheduler import next_interval

logger = logging.getLogger(__name__)


class ProgressStore:
    """Holds the persisted subset of the session state.

    The stored blob contains exactly score, streak, userProgress, darkMode and
    audioEnabled. Every mutation is written immediately; failures are logged
    and the in-memory state stays authoritative.
    """

    def __init__(
        self,
        session_factory: Callable[[], Session] = SessionLocal,
        storage_name: Optional[str] = None,
    ):
        self.session_factory = session_factory
        self.storage_name = storage_name or settings.paths.storage_name
        self.records: Dict[int, ProgressRecord] = {}
        self.score = 0
        self.streak = 0
        self.dark_mode = True
        self.audio_enabled = settings.audio.enabled_by_default

    def load(self) -> None:
        """Restore the stored state, falling back to defaults when absent or corrupt."""
        db = self.session_factory()
        try:
            row = db.get(StoredState, self.storage_name)
            payload = row.payload if row else None
        except SQLAlchemyError as e:
            logger.error(f"Could not read stored state '{self.storage_name}': {e}")
            monitoring.persistence_errors.labels(operation="load").inc()
            return
        finally:
            db.close()

        if payload is None:
            logger.info(f"No stored state '{self.storage_name}', using defaults")
            return

        try:
            self._apply(json.loads(payload))
        except (ValueError, TypeError, KeyError, AttributeError, ArithmeticError) as e:
            logger.warning(f"Ignoring corrupt stored state '{self.storage_name}': {e}")
            monitoring.persistence_errors.labels(operation="decode").inc()
            self._reset()
            return
        logger.info(f"Loaded progress for {len(self.records)} words")

    def _apply(self, data: Dict[str, Any]) -> None:
        records = {
            int(word_id): ProgressRecord.from_data(record)
            for word_id, record in data.get("userProgress", {}).items()
        }
        score = int(data.get("score", 0))
        streak = int(data.get("streak", 0))
        if score < 0 or streak < 0:
            raise ValueError("Negative score or streak")
        self.records = records
        self.score = score
        self.streak = streak
        self.dark_mode = bool(data.get("darkMode", True))
        self.audio_enabled = bool(data.get("audioEnabled", settings.audio.enabled_by_default))

    def _reset(self) -> None:
        self.records = {}
        self.score = 0
        self.streak = 0
        self.dark_mode = True
        self.audio_enabled = settings.audio.enabled_by_default

    def to_data(self) -> Dict[str, Any]:
        """Serializable persisted subset."""
        return {
            "score": self.score,
            "streak": self.streak,
            "userProgress": {str(word_id): record.to_data() for word_id, record in self.records.items()},
            "darkMode": self.dark_mode,
            "audioEnabled": self.audio_enabled,
        }

    def save(self) -> bool:
        """Write the persisted subset. Returns False when the write failed."""
        payload = json.dumps(self.to_data(), ensure_ascii=False)
        db = self.session_factory()
        try:
            row = db.get(StoredState, self.storage_name)
            if row is None:
                db.add(StoredState(name=self.storage_name, payload=payload))
            else:
                row.payload = payload
            db.commit()
            return True
        except SQLAlchemyError as e:
            db.rollback()
            logger.error(f"Could not save state '{self.storage_name}': {e}")
            monitoring.persistence_errors.labels(operation="save").inc()
            return False
        finally:
            db.close()

    def get_record(self, word_id: int) -> Optional[ProgressRecord]:
        return self.records.get(word_id)

    def grade(self, word_id: int, was_correct: bool) -> ProgressRecord:
        """Apply a grading event to the word's record, creating it on first grading."""
        record = self.records.get(word_id) or ProgressRecord(
            interval=settings.review.base_interval, reviews=0
        )
        updated = ProgressRecord(
            interval=next_interval(was_correct, record.interval),
            reviews=record.reviews + 1,
        )
        self.records[word_id] = updated
        logger.debug(f"Word {word_id} graded {'right' if was_correct else 'wrong'}: {updated}")
        return updated

    def update_counters(self, score: int, streak: int) -> None:
        """Remember the last known score and streak."""
        self.score = score
        self.streak = streak
        self.save()

    def record_answer(self, word_id: int, was_correct: bool, score: int, streak: int) -> ProgressRecord:
        """Grade a word and store the new counters in a single write."""
        record = self.grade(word_id, was_correct)
        self.score = score
        self.streak = streak
        self.save()
        return record

    def toggle_theme(self) -> bool:
        self.dark_mode = not self.dark_mode
        self.save()
        return self.dark_mode

    def set_audio_enabled(self, enabled: bool) -> None:
        self.audio_enabled = enabled
        self.save()
