"""Study session state machine."""
import logging
from dataclasses import replace
from typing import Any, Callable, Dict, List, Mapping, Optional, Sequence, Tuple, Union

from hskdeck import monitoring
from hskdeck.config import settings
from hskdeck.errors import InvalidInputError, WordNotFoundError
from hskdeck.models.session_models import (
    AnswerOutcome,
    GameMode,
    QuizQuestion,
    SessionEvent,
    SessionState,
)
from hskdeck.models.vocab_models import LogEntry, Word
from hskdeck.services.deck_builder import DeckBuilder
from hskdeck.services.progress_store import ProgressStore

logger = logging.getLogger(__name__)

Listener = Callable[[SessionEvent], None]
Notifier = Callable[[str], None]


class SessionService:
    """Owns the live session: mode, deck, position, score, streak and answer log.

    Operations that start a session return False when there is nothing to
    study and leave the state unchanged. Every transition is published to the
    subscribed listeners as a SessionEvent.
    """

    def __init__(
        self,
        store: ProgressStore,
        deck_builder: Optional[DeckBuilder] = None,
        speak: Optional[Notifier] = None,
        vibrate: Optional[Notifier] = None,
    ):
        self.store = store
        self.deck_builder = deck_builder or DeckBuilder()
        self.speak = speak
        self.vibrate = vibrate
        self.vocabulary: Tuple[Word, ...] = ()
        self._words_by_id: Dict[int, Word] = {}
        self._listeners: List[Listener] = []
        self._question: Optional[QuizQuestion] = None
        # Last known counters are shown until a quiz starts
        self._state = SessionState(score=store.score, streak=store.streak)

    @property
    def state(self) -> SessionState:
        return self._state

    @property
    def mode(self) -> GameMode:
        return self._state.mode

    @property
    def current_card(self) -> Optional[Word]:
        return self._state.current_card

    @property
    def correct_count(self) -> int:
        return sum(1 for entry in self._state.log if entry.is_correct)

    @property
    def wrong_count(self) -> int:
        return sum(1 for entry in self._state.log if not entry.is_correct)

    def subscribe(self, listener: Listener) -> Callable[[], None]:
        """Register a listener for session events. Returns the unsubscribe callable."""
        self._listeners.append(listener)

        def unsubscribe() -> None:
            if listener in self._listeners:
                self._listeners.remove(listener)

        return unsubscribe

    def _publish(self, kind: str) -> None:
        event = SessionEvent(kind=kind, state=self._state)
        for listener in list(self._listeners):
            listener(event)

    def _notify(self, notifier: Optional[Notifier], argument: str) -> None:
        """Fire-and-forget call into an audio or haptic collaborator."""
        if notifier is None:
            return
        try:
            notifier(argument)
        except Exception as e:
            logger.warning(f"Notification {argument!r} failed: {e}")

    def _say(self, text: str) -> None:
        if text and self.store.audio_enabled:
            self._notify(self.speak, text)

    def load_vocabulary(self, words: Sequence[Union[Mapping[str, Any], Word]]) -> Tuple[Word, ...]:
        """Populate the vocabulary pool, assigning load-order ids where missing."""
        if isinstance(words, (str, bytes)) or not isinstance(words, Sequence):
            monitoring.vocabulary_loads.labels(result="invalid").inc()
            raise InvalidInputError(f"Vocabulary must be a list, got {type(words).__name__}")
        if not words:
            monitoring.vocabulary_loads.labels(result="invalid").inc()
            raise InvalidInputError("Vocabulary is empty")

        try:
            loaded = tuple(
                word if isinstance(word, Word) else Word.from_dict(word, index)
                for index, word in enumerate(words)
            )
        except InvalidInputError:
            monitoring.vocabulary_loads.labels(result="invalid").inc()
            raise

        words_by_id = {word.id: word for word in loaded}
        if len(words_by_id) != len(loaded):
            monitoring.vocabulary_loads.labels(result="invalid").inc()
            raise InvalidInputError("Vocabulary contains duplicate ids")

        self.vocabulary = loaded
        self._words_by_id = words_by_id
        monitoring.vocabulary_loads.labels(result="ok").inc()
        logger.info(f"Loaded {len(loaded)} words")
        self._publish("vocabulary_loaded")
        return loaded

    def get_word(self, word_id: int) -> Word:
        word = self._words_by_id.get(word_id)
        if word is None:
            raise WordNotFoundError(word_id)
        return word

    def _start(self, mode: GameMode, deck: List[Word], reset_quiz: bool) -> None:
        changes = dict(
            mode=mode,
            deck=tuple(deck),
            position=0,
            generation=self._state.generation + 1,
            show_result=None,
            flipped=False,
        )
        if reset_quiz:
            changes.update(score=0, streak=0, log=())
        self._state = replace(self._state, **changes)
        self._question = None
        monitoring.sessions_started.labels(mode=mode.value).inc()
        logger.info(f"Started {mode.value} session with {len(deck)} cards (generation {self._state.generation})")

    def _nothing_to_do(self, operation: str, reason: str) -> bool:
        logger.info(f"{operation}: nothing to do ({reason})")
        monitoring.nothing_to_do.labels(operation=operation).inc()
        return False

    def start_flashcards(self) -> bool:
        """Open a fully shuffled flashcard deck."""
        deck = self.deck_builder.build_flashcard_deck(self.vocabulary)
        if not deck:
            return self._nothing_to_do("start_flashcards", "empty vocabulary")
        self._start(GameMode.FLASHCARDS, deck, reset_quiz=False)
        self._publish("flashcards_started")
        return True

    def start_quiz(self, count: Optional[int] = None) -> bool:
        """Start a quiz over `count` random words (clamped to the pool size)."""
        if count is None:
            count = settings.quiz.default_count
        deck = self.deck_builder.build_quiz_deck(self.vocabulary, count)
        if not deck:
            return self._nothing_to_do("start_quiz", "empty vocabulary")
        self._start(GameMode.QUIZ, deck, reset_quiz=True)
        self.store.update_counters(0, 0)
        self._publish("quiz_started")
        return True

    def start_weakness_review(self) -> bool:
        """Start a quiz over the words missed in the current log."""
        deck = self.deck_builder.build_weakness_deck(self._state.log)
        if not deck:
            return self._nothing_to_do("start_weakness_review", "no wrong answers")
        self._start(GameMode.QUIZ, deck, reset_quiz=True)
        self.store.update_counters(0, 0)
        self._publish("weakness_review_started")
        return True

    def submit_answer(self, word_id: int, is_correct: bool) -> LogEntry:
        """Grade a word: log it, update score and streak, and schedule its next review."""
        try:
            word = self.get_word(word_id)
        except WordNotFoundError:
            logger.error(f"Answer submitted for unknown word {word_id}")
            monitoring.error_count.labels(error_type="word_not_found").inc()
            raise

        entry = LogEntry(word=word, is_correct=is_correct)
        state = self._state
        if is_correct:
            score = state.score + settings.quiz.points_per_correct
            streak = state.streak + 1
        else:
            score = state.score
            streak = 0
        self._state = replace(state, score=score, streak=streak, log=state.log + (entry,))
        self.store.record_answer(word_id, is_correct, score, streak)
        monitoring.answers_submitted.labels(result="correct" if is_correct else "wrong").inc()
        self._publish("answer_submitted")
        return entry

    def set_mode(self, mode: Union[GameMode, str]) -> bool:
        """Switch mode without touching deck, score or log.

        Quiz and flashcard modes need a deck; without one this returns False
        and the mode stays as it is.
        """
        try:
            mode = GameMode(mode)
        except ValueError:
            raise InvalidInputError(f"Unknown mode: {mode!r}") from None
        if mode is self._state.mode:
            return True
        if mode in (GameMode.QUIZ, GameMode.FLASHCARDS) and not self._state.deck:
            return self._nothing_to_do("set_mode", f"no deck for {mode.value}")
        self._state = replace(
            self._state,
            mode=mode,
            generation=self._state.generation + 1,
            show_result=None,
            flipped=False,
        )
        logger.debug(f"Mode set to {mode.value}")
        self._publish("mode_changed")
        return True

    def current_question(self) -> Optional[QuizQuestion]:
        """Multiple-choice question for the current quiz card, built once per card."""
        state = self._state
        word = state.current_card
        if state.mode is not GameMode.QUIZ or word is None:
            return None
        question = self._question
        if question is None or question.generation != state.generation or question.position != state.position:
            question = QuizQuestion(
                word=word,
                options=tuple(self.deck_builder.build_options(self.vocabulary, word)),
                generation=state.generation,
                position=state.position,
            )
            self._question = question
        return question

    def answer(self, option_id: int) -> Optional[AnswerOutcome]:
        """Answer the current quiz card by picking an option.

        Ignored while the result of the current card is shown.
        """
        state = self._state
        word = state.current_card
        if state.mode is not GameMode.QUIZ or word is None or state.show_result is not None:
            logger.debug(f"Ignoring answer {option_id} (mode {state.mode.value}, result {state.show_result})")
            return None

        self._notify(self.vibrate, "medium")
        is_correct = option_id == word.id
        if is_correct:
            self._say(word.front)
            self._notify(self.vibrate, "success")
        else:
            self._notify(self.vibrate, "error")

        entry = self.submit_answer(word.id, is_correct)
        self._state = replace(self._state, show_result=is_correct)
        self._publish("result_shown")
        return AnswerOutcome(
            word=word,
            selected_id=option_id,
            is_correct=is_correct,
            generation=self._state.generation,
            position=self._state.position,
            log_entry=entry,
        )

    def advance_quiz(self, generation: int, position: Optional[int] = None) -> bool:
        """Move past an answered quiz card, ending in the summary after the last one.

        Returns False for a stale generation or position, or when there is
        nothing to advance.
        """
        state = self._state
        if generation != state.generation or (position is not None and position != state.position):
            logger.debug(f"Ignoring stale advance (generation {generation}, current {state.generation})")
            return False
        if state.mode is not GameMode.QUIZ or state.show_result is None:
            return False

        if state.is_last_card:
            self.set_mode(GameMode.SUMMARY)
            logger.info(f"Quiz finished: {self.correct_count}/{len(state.log)} correct, score {state.score}")
            return True

        self._state = replace(state, position=state.position + 1, show_result=None)
        self._publish("card_changed")
        return True

    def next_flashcard(self) -> bool:
        """Next flashcard, wrapping to the first after the last."""
        state = self._state
        if state.mode is not GameMode.FLASHCARDS or not state.deck:
            return False
        self._notify(self.vibrate, "light")
        self._state = replace(state, position=(state.position + 1) % len(state.deck), flipped=False)
        self._publish("card_changed")
        return True

    def previous_flashcard(self) -> bool:
        """Previous flashcard, staying on the first one."""
        state = self._state
        if state.mode is not GameMode.FLASHCARDS or not state.deck:
            return False
        self._notify(self.vibrate, "light")
        self._state = replace(state, position=max(0, state.position - 1), flipped=False)
        self._publish("card_changed")
        return True

    def flip_flashcard(self) -> bool:
        state = self._state
        if state.mode is not GameMode.FLASHCARDS or not state.deck:
            return False
        self._notify(self.vibrate, "light")
        self._state = replace(state, flipped=not state.flipped)
        self._publish("card_flipped")
        return True

    def speak_current(self) -> None:
        """Pronounce the headword of the current card."""
        word = self.current_card
        if word is not None:
            self._say(word.front)

    def speak_word(self, word_id: int) -> None:
        """Pronounce any loaded word, e.g. from the review sheet."""
        self._say(self.get_word(word_id).front)

    def speak_example(self) -> None:
        """Pronounce the example sentence of the current card."""
        word = self.current_card
        example = word.back.parsed_example if word else None
        if example is not None:
            self._say(example.render(word.front))

    def toggle_theme(self) -> bool:
        dark_mode = self.store.toggle_theme()
        self._publish("preferences_changed")
        return dark_mode

    def toggle_audio(self) -> bool:
        self.store.set_audio_enabled(not self.store.audio_enabled)
        self._publish("preferences_changed")
        return self.store.audio_enabled
