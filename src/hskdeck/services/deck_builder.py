"""Deck construction and distractor selection."""
import logging
import random
from typing import List, Optional, Sequence

from hskdeck.config import settings
from hskdeck.models.vocab_models import LogEntry, Word
from hskdeck.services.shuffler import shuffle

logger = logging.getLogger(__name__)


def clamp_quiz_size(requested: int, pool_size: int) -> int:
    """Clamp a requested quiz size into 1..pool_size."""
    return max(1, min(requested, pool_size))


class DeckBuilder:
    """Builds flashcard, quiz and weakness-review decks from the vocabulary pool.

    Every deck is a new list; an empty one means there is nothing to study.
    """

    def __init__(self, rng: Optional[random.Random] = None):
        self.rng = rng

    def build_flashcard_deck(self, pool: Sequence[Word]) -> List[Word]:
        """Full shuffle of the vocabulary pool."""
        return shuffle(pool, self.rng)

    def build_quiz_deck(self, pool: Sequence[Word], count: int) -> List[Word]:
        """Shuffle the pool and keep the first `count` words, clamped to the pool size."""
        if not pool:
            return []
        size = clamp_quiz_size(count, len(pool))
        if size != count:
            logger.debug(f"Quiz size {count} clamped to {size} (pool of {len(pool)})")
        return shuffle(pool, self.rng)[:size]

    def build_weakness_deck(self, log: Sequence[LogEntry]) -> List[Word]:
        """Shuffle the words answered wrongly in the given quiz log."""
        missed = [entry.word for entry in log if not entry.is_correct]
        return shuffle(missed, self.rng)

    def choose_distractors(self, pool: Sequence[Word], word: Word, count: Optional[int] = None) -> List[Word]:
        """Pick wrong options uniformly without replacement, excluding `word`."""
        if count is None:
            count = settings.quiz.distractor_count
        candidates = [candidate for candidate in pool if candidate.id != word.id]
        return shuffle(candidates, self.rng)[:count]

    def build_options(self, pool: Sequence[Word], word: Word) -> List[Word]:
        """Distractors plus the correct word, in random order."""
        options = self.choose_distractors(pool, word)
        if len(options) < settings.quiz.distractor_count:
            logger.debug(f"Only {len(options)} distractors available for word {word.id}")
        options.append(word)
        return shuffle(options, self.rng)
