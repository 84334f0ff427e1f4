"""Loading of the vocabulary file."""
import json
import logging
from pathlib import Path
from typing import Any, Dict, List, Optional, Tuple

from hskdeck import monitoring
from hskdeck.config import settings
from hskdeck.errors import InvalidInputError
from hskdeck.models.vocab_models import Word
from hskdeck.services.session_service import SessionService

logger = logging.getLogger(__name__)


class VocabularyLoader:
    """Reads the vocabulary JSON array and hands it to the session."""

    def __init__(self, path: Optional[Path] = None):
        self.path = Path(path or settings.paths.vocabulary_file)
        self.last_error: Optional[str] = None

    def read(self) -> List[Dict[str, Any]]:
        """Read and validate the raw payload."""
        try:
            with open(self.path, encoding="utf-8") as f:
                payload = json.load(f)
        except OSError as e:
            raise InvalidInputError(f"Could not read vocabulary file {self.path}: {e}") from e
        except json.JSONDecodeError as e:
            raise InvalidInputError(f"Vocabulary file {self.path} is not valid JSON: {e}") from e

        if not isinstance(payload, list):
            raise InvalidInputError(f"Vocabulary file {self.path} must contain a JSON array")
        if not payload:
            raise InvalidInputError(f"Vocabulary file {self.path} is empty")
        return payload

    def load_into(self, session: SessionService) -> Tuple[Word, ...]:
        """Load the file into the session. The whole load is retried on failure."""
        try:
            words = session.load_vocabulary(self.read())
        except InvalidInputError as e:
            self.last_error = str(e)
            logger.error(f"Vocabulary load failed: {e}")
            monitoring.vocabulary_loads.labels(result="failed").inc()
            raise
        self.last_error = None
        logger.info(f"Vocabulary loaded from {self.path}")
        return words
