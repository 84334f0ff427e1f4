"""Errors raised by the deck core."""


class DeckError(Exception):
    """Base class for deck errors."""


class InvalidInputError(DeckError, ValueError):
    """Malformed vocabulary payload or an unknown mode value."""


class WordNotFoundError(DeckError, LookupError):
    """A word id that is not part of the loaded vocabulary."""

    def __init__(self, word_id: int):
        super().__init__(f"Word {word_id} not found in vocabulary")
        self.word_id = word_id
