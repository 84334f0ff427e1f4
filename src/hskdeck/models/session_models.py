"""Models for session-related data structures."""
from dataclasses import dataclass
from enum import Enum
from typing import Optional, Tuple

from hskdeck.models.vocab_models import LogEntry, Word


class GameMode(Enum):
    """Modes of the study session."""
    MENU = "menu"
    QUIZ = "quiz"
    FLASHCARDS = "flashcards"
    SUMMARY = "summary"


@dataclass(frozen=True)
class SessionState:
    """Immutable snapshot of the live session."""
    mode: GameMode = GameMode.MENU
    deck: Tuple[Word, ...] = ()
    position: int = 0
    score: int = 0
    streak: int = 0
    log: Tuple[LogEntry, ...] = ()
    generation: int = 0  # identifies the session instance, bumped on every start and mode change
    show_result: Optional[bool] = None  # result of the current quiz card once answered
    flipped: bool = False  # flashcard shows its back side

    @property
    def current_card(self) -> Optional[Word]:
        if not self.deck or self.mode not in (GameMode.QUIZ, GameMode.FLASHCARDS):
            return None
        return self.deck[self.position]

    @property
    def is_last_card(self) -> bool:
        return self.position >= len(self.deck) - 1


@dataclass(frozen=True)
class QuizQuestion:
    """Multiple-choice question for a quiz card."""
    word: Word
    options: Tuple[Word, ...]
    generation: int
    position: int

    def is_correct(self, option_id: int) -> bool:
        return option_id == self.word.id


@dataclass(frozen=True)
class AnswerOutcome:
    """Result of answering the current quiz card."""
    word: Word
    selected_id: int
    is_correct: bool
    generation: int
    position: int
    log_entry: LogEntry


@dataclass(frozen=True)
class SessionEvent:
    """Transition published to session listeners."""
    kind: str
    state: SessionState
