"""Configuration settings for the deck."""
import os
from dataclasses import dataclass, field
from pathlib import Path
from typing import Optional

from dotenv import load_dotenv

# Define base directory
BASE_DIR = Path(__file__).parent.parent.parent

# Load environment variables from .env file
env_file = ".env.test" if os.getenv("ENV") == "test" else ".env"
load_dotenv(env_file)


# Define data directories from environment variables
DATA_DIR = Path(os.getenv("DATA_DIR", "./data"))
VOCABULARY_FILE = Path(os.getenv("VOCABULARY_FILE", str(DATA_DIR / "vocabulary.json")))
MEDIA_DIR = DATA_DIR / "media"
PRONUNCIATIONS_DIR = MEDIA_DIR / "pronunciations"

# Key of the persisted state blob
STORAGE_NAME = os.getenv("STORAGE_NAME", "hsk-storage")

# Quiz settings
QUIZ_SIZE_OPTIONS = [5, 10, 20, 50]
AUTO_ADVANCE_DELAY = 1.5  # seconds between a graded answer and the next card


def ensure_directories() -> None:
    """Ensure all required directories exist."""
    directories = [
        DATA_DIR,
        MEDIA_DIR,
        PRONUNCIATIONS_DIR,
    ]

    for directory in directories:
        directory.mkdir(parents=True, exist_ok=True)


@dataclass
class PathSettings:
    """Path configuration settings."""
    base_dir: Path = BASE_DIR
    data_dir: Path = DATA_DIR
    vocabulary_file: Path = VOCABULARY_FILE
    media_dir: Path = MEDIA_DIR
    pronunciations_dir: Path = PRONUNCIATIONS_DIR
    storage_name: str = STORAGE_NAME


@dataclass
class DatabaseSettings:
    """Database configuration settings."""
    url: str = os.getenv("DATABASE_URL", "sqlite:///hskdeck.db")
    echo: bool = os.getenv("DATABASE_ECHO", "false").lower() == "true"


@dataclass
class LoggingSettings:
    """Logging configuration settings."""
    level: str = os.getenv("LOG_LEVEL", "INFO")
    format: str = "%(asctime)s - %(name)s - %(levelname)s - %(message)s"
    dir: Optional[str] = os.getenv("LOG_DIR", None)
    rotation: str = os.getenv("LOG_ROTATION", "midnight")
    interval: int = int(os.getenv("LOG_INTERVAL", "1"))
    backup_count: int = int(os.getenv("LOG_BACKUP_COUNT", "7"))


def get_allowed_user_ids() -> list[int]:
    """Get the Telegram ids allowed to study with this bot."""
    return [int(id_) for id_ in os.getenv("TELEGRAM_ALLOWED_USER_IDS", "").split(",") if id_]


@dataclass
class BotSettings:
    """Bot configuration settings."""
    token: str = os.getenv("TELEGRAM_BOT_TOKEN", "")
    allowed_user_ids: list[int] = field(default_factory=get_allowed_user_ids)


@dataclass
class QuizSettings:
    """Quiz session settings."""
    default_count: int = int(os.getenv("QUIZ_DEFAULT_COUNT", "10"))
    size_options: list[int] = field(default_factory=lambda: list(QUIZ_SIZE_OPTIONS))
    points_per_correct: int = 100
    distractor_count: int = 3
    option_max_length: int = 60
    auto_advance_delay: float = float(os.getenv("QUIZ_AUTO_ADVANCE_DELAY", str(AUTO_ADVANCE_DELAY)))


@dataclass
class ReviewSettings:
    """Spaced repetition settings."""
    base_interval: int = 1
    correct_multiplier: float = 1.5
    perfect_multiplier: float = 2.5


@dataclass
class AudioSettings:
    """Pronunciation settings."""
    language: str = os.getenv("AUDIO_LANGUAGE", "zh-CN")
    slow: bool = os.getenv("AUDIO_SLOW", "false").lower() == "true"
    enabled_by_default: bool = os.getenv("AUDIO_ENABLED", "true").lower() == "true"


@dataclass
class MonitoringSettings:
    """Metrics exporter settings."""
    port: Optional[int] = int(os.getenv("METRICS_PORT")) if os.getenv("METRICS_PORT") else None


def get_path_settings() -> PathSettings:
    """Get path settings."""
    return PathSettings()


def get_database_settings() -> DatabaseSettings:
    """Get database settings."""
    return DatabaseSettings()


def get_logging_settings() -> LoggingSettings:
    """Get logging settings."""
    return LoggingSettings()


def get_bot_settings() -> BotSettings:
    """Get bot settings."""
    return BotSettings()


def get_quiz_settings() -> QuizSettings:
    """Get quiz settings."""
    return QuizSettings()


def get_review_settings() -> ReviewSettings:
    """Get review settings."""
    return ReviewSettings()


def get_audio_settings() -> AudioSettings:
    """Get audio settings."""
    return AudioSettings()


def get_monitoring_settings() -> MonitoringSettings:
    """Get monitoring settings."""
    return MonitoringSettings()


@dataclass
class Settings:
    """Main settings class that combines all configuration settings."""
    paths: PathSettings = field(default_factory=get_path_settings)
    database: DatabaseSettings = field(default_factory=get_database_settings)
    logging: LoggingSettings = field(default_factory=get_logging_settings)
    bot: BotSettings = field(default_factory=get_bot_settings)
    quiz: QuizSettings = field(default_factory=get_quiz_settings)
    review: ReviewSettings = field(default_factory=get_review_settings)
    audio: AudioSettings = field(default_factory=get_audio_settings)
    monitoring: MonitoringSettings = field(default_factory=get_monitoring_settings)

    def validate(self) -> None:
        """Validate settings and raise ValueError if invalid."""
        if not self.bot.token:
            raise ValueError("TELEGRAM_BOT_TOKEN is required")

        if self.quiz.default_count < 1:
            raise ValueError("QUIZ_DEFAULT_COUNT must be positive")

        if not self.quiz.size_options or min(self.quiz.size_options) < 1:
            raise ValueError("Quiz size options must be positive")

        if self.quiz.auto_advance_delay < 0:
            raise ValueError("QUIZ_AUTO_ADVANCE_DELAY cannot be negative")

        if self.review.base_interval < 1:
            raise ValueError("Base review interval must be at least 1")

        if self.review.correct_multiplier < 1 or self.review.perfect_multiplier < self.review.correct_multiplier:
            raise ValueError("Review multipliers must grow with the grade")


# Create global settings instance
settings = Settings()
