"""Models for vocabulary and review data structures."""
from dataclasses import dataclass
from typing import Any, Dict, Mapping, Optional

from hskdeck.errors import InvalidInputError
from hskdeck.services.review_scheduler import round_half_up

# Marks the place of the headword inside an example sentence
HEADWORD_MARKER = "～"


@dataclass(frozen=True)
class Example:
    """Example sentence with its phonetic transcription."""
    sentence: str
    transcription: str = ""

    @classmethod
    def parse(cls, raw: Optional[str]) -> Optional["Example"]:
        """Parse the two-line "sentence\\ntranscription" format."""
        if not raw:
            return None
        parts = raw.split("\n")
        return cls(sentence=parts[0], transcription=parts[1] if len(parts) > 1 else "")

    def render(self, headword: str) -> str:
        """Sentence with the headword substituted for the marker."""
        return self.sentence.replace(HEADWORD_MARKER, headword)


@dataclass(frozen=True)
class WordBack:
    """Answer side of a word card."""
    meaning: str
    hanzi_pinyin: str = ""
    part_of_speech: str = ""
    measure_word: Optional[str] = None
    example: Optional[str] = None

    @property
    def parsed_example(self) -> Optional[Example]:
        return Example.parse(self.example)

    def to_dict(self) -> Dict[str, Any]:
        data = {
            "meaning": self.meaning,
            "hanzi_pinyin": self.hanzi_pinyin,
            "part_of_speech": self.part_of_speech,
        }
        if self.measure_word:
            data["measure_word"] = self.measure_word
        if self.example:
            data["example"] = self.example
        return data


@dataclass(frozen=True)
class Word:
    """Vocabulary card, immutable once loaded."""
    id: int
    front: str
    back: WordBack

    @classmethod
    def from_dict(cls, data: Mapping[str, Any], index: int) -> "Word":
        """Create a word from a vocabulary entry, using `index` when it has no id."""
        if not isinstance(data, Mapping):
            raise InvalidInputError(f"Vocabulary entry {index} is not an object")
        front = data.get("front")
        back = data.get("back")
        if not isinstance(front, str) or not front:
            raise InvalidInputError(f"Vocabulary entry {index} has no front text")
        if not isinstance(back, Mapping) or not isinstance(back.get("meaning"), str):
            raise InvalidInputError(f"Vocabulary entry {index} has no meaning")

        word_id = data.get("id", index)
        if isinstance(word_id, bool) or not isinstance(word_id, int):
            raise InvalidInputError(f"Vocabulary entry {index} has a non-integer id: {word_id!r}")

        return cls(
            id=word_id,
            front=front,
            back=WordBack(
                meaning=back["meaning"],
                hanzi_pinyin=back.get("hanzi_pinyin") or "",
                part_of_speech=back.get("part_of_speech") or "",
                measure_word=back.get("measure_word") or None,
                example=back.get("example") or None,
            ),
        )

    def short_meaning(self, max_length: int = 60) -> str:
        """First listed meaning, truncated for an answer option."""
        meaning = self.back.meaning.split(";")[0].strip()
        if len(meaning) > max_length:
            return meaning[:max_length] + "..."
        return meaning

    def to_dict(self) -> Dict[str, Any]:
        return {"id": self.id, "front": self.front, "back": self.back.to_dict()}


@dataclass(frozen=True)
class LogEntry:
    """Graded answer of the current quiz session."""
    word: Word
    is_correct: bool

    @property
    def word_id(self) -> int:
        return self.word.id


@dataclass
class ProgressRecord:
    """Spaced repetition record of a single word."""
    interval: int = 1
    reviews: int = 0

    def to_data(self) -> Dict[str, int]:
        """Convert to serializable data for storage."""
        return {"interval": self.interval, "reviews": self.reviews}

    @classmethod
    def from_data(cls, data: Mapping[str, Any]) -> "ProgressRecord":
        """Create a record from stored data. Fractional intervals are rounded like new ones."""
        interval = data["interval"]
        reviews = data["reviews"]
        if isinstance(interval, bool) or not isinstance(interval, (int, float)) or round_half_up(interval) < 1:
            raise ValueError(f"Invalid interval: {interval!r}")
        if isinstance(reviews, bool) or not isinstance(reviews, int) or reviews < 0:
            raise ValueError(f"Invalid review count: {reviews!r}")
        return cls(interval=round_half_up(interval), reviews=reviews)

