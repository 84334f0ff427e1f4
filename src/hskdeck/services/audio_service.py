"""Pronunciation audio generation."""
import hashlib
import logging
from pathlib import Path
from typing import Optional

from gtts import gTTS
from gtts.tts import gTTSError

from hskdeck.config import settings

logger = logging.getLogger(__name__)


class AudioService:
    """Renders text to speech with gTTS, caching the mp3 files on disk."""

    def __init__(self, cache_dir: Optional[Path] = None, language: Optional[str] = None, slow: Optional[bool] = None):
        self.cache_dir = Path(cache_dir or settings.paths.pronunciations_dir)
        self.language = language or settings.audio.language
        self.slow = settings.audio.slow if slow is None else slow

    def cache_path(self, text: str) -> Path:
        digest = hashlib.sha1(f"{self.language}:{text}".encode("utf-8")).hexdigest()[:16]
        return self.cache_dir / f"{digest}.mp3"

    def pronounce(self, text: str) -> Optional[Path]:
        """Get the pronunciation file for `text`, generating it when missing.

        Returns None when the audio could not be generated.
        """
        if not text:
            return None
        path = self.cache_path(text)
        if path.exists():
            return path
        try:
            self.cache_dir.mkdir(parents=True, exist_ok=True)
            tts = gTTS(text=text, lang=self.language, slow=self.slow)
            tts.save(str(path))
            logger.info(f"Pronunciation generated for: {text}, file: {path.name}")
            return path
        except (gTTSError, OSError, ValueError) as e:
            logger.error(f"Error generating pronunciation for: {text}, error: {e}")
            return None
