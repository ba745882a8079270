"""Configuration settings for the flashcard game."""
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


DATA_DIR = Path(os.getenv("DATA_DIR", "./data"))

# Mastery thresholds, fixed for every game
MASTERY_STREAK = 2  # correct answers in a row for a word never missed
MASTERY_STREAK_AFTER_MISTAKE = 3  # once the word has been missed in the session

# Catalog difficulty recalculation
DIFFICULTY_EASY_RATIO = 0.8
DIFFICULTY_MEDIUM_RATIO = 0.5
DIFFICULTY_MIN_ATTEMPTS = 3


def ensure_directories() -> None:
    """Ensure all required directories exist."""
    directories = [DATA_DIR]
    if settings.logging.dir:
        directories.append(Path(settings.logging.dir))

    for directory in directories:
        directory.mkdir(parents=True, exist_ok=True)


@dataclass
class DatabaseSettings:
    """Database configuration settings."""
    url: str = os.getenv("DATABASE_URL", "sqlite:///flashgame.db")
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


def get_admin_ids() -> list[int]:
    """Get admin IDs from environment variable."""
    return [int(id_) for id_ in os.getenv("TELEGRAM_ADMIN_IDS", "").split(",") if id_]


@dataclass
class BotSettings:
    """Bot configuration settings."""
    token: str = os.getenv("TELEGRAM_BOT_TOKEN", "")
    admin_ids: list[int] = field(default_factory=get_admin_ids)


@dataclass
class GameSettings:
    """Flashcard game settings."""
    session_timeout: int = int(os.getenv("GAME_SESSION_TIMEOUT", "3600"))  # seconds


@dataclass
class CatalogSettings:
    """Vocabulary catalog settings."""
    easy_ratio: float = float(os.getenv("DIFFICULTY_EASY_RATIO", str(DIFFICULTY_EASY_RATIO)))
    medium_ratio: float = float(os.getenv("DIFFICULTY_MEDIUM_RATIO", str(DIFFICULTY_MEDIUM_RATIO)))
    min_attempts: int = int(os.getenv("DIFFICULTY_MIN_ATTEMPTS", str(DIFFICULTY_MIN_ATTEMPTS)))
    page_size: int = int(os.getenv("CATALOG_PAGE_SIZE", "20"))
    seed_sample: bool = os.getenv("CATALOG_SEED_SAMPLE", "true").lower() == "true"


@dataclass
class MonitoringSettings:
    """Prometheus settings."""
    enabled: bool = os.getenv("MONITORING_ENABLED", "false").lower() == "true"
    port: int = int(os.getenv("MONITORING_PORT", "9090"))


def get_database_settings() -> DatabaseSettings:
    """Get database settings."""
    return DatabaseSettings()


def get_logging_settings() -> LoggingSettings:
    """Get logging settings."""
    return LoggingSettings()


def get_bot_settings() -> BotSettings:
    """Get bot settings."""
    return BotSettings()


def get_game_settings() -> GameSettings:
    """Get game settings."""
    return GameSettings()


def get_catalog_settings() -> CatalogSettings:
    """Get catalog settings."""
    return CatalogSettings()


def get_monitoring_settings() -> MonitoringSettings:
    """Get monitoring settings."""
    return MonitoringSettings()


@dataclass
class Settings:
    """Main settings class that combines all configuration settings."""
    database: DatabaseSettings = field(default_factory=get_database_settings)
    logging: LoggingSettings = field(default_factory=get_logging_settings)
    bot: BotSettings = field(default_factory=get_bot_settings)
    game: GameSettings = field(default_factory=get_game_settings)
    catalog: CatalogSettings = field(default_factory=get_catalog_settings)
    monitoring: MonitoringSettings = field(default_factory=get_monitoring_settings)

    def validate(self) -> None:
        """Validate settings and raise ValueError if invalid."""
        if self.game.session_timeout < 1:
            raise ValueError("GAME_SESSION_TIMEOUT must be positive")

        if not 0 <= self.catalog.medium_ratio <= self.catalog.easy_ratio <= 1:
            raise ValueError("Difficulty ratios must satisfy 0 <= MEDIUM <= EASY <= 1")

        if self.catalog.min_attempts < 1:
            raise ValueError("DIFFICULTY_MIN_ATTEMPTS must be positive")

        if self.catalog.page_size < 1:
            raise ValueError("CATALOG_PAGE_SIZE must be positive")

    def validate_bot(self) -> None:
        """Validate settings needed to talk to Telegram."""
        if not self.bot.token:
            raise ValueError("TELEGRAM_BOT_TOKEN is required")


# Create global settings instance
settings = Settings()
settings.validate()
