"""Configuration settings for the study engine and ranking server."""
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
BOOKS_DIR = Path(os.getenv("BOOKS_DIR", str(DATA_DIR / "books")))

# Learning settings
# Minutes until the next review, indexed by stage 0..8 (5m, 30m, 12h, 1d, 2d, 4d, 7d, 14d, 21d)
REVIEW_INTERVALS = [5, 30, 12 * 60, 24 * 60, 2 * 24 * 60, 4 * 24 * 60, 7 * 24 * 60, 14 * 24 * 60, 21 * 24 * 60]
MISTAKE_RETRY_MINUTES = 5
MASTERY_STAGE = 5


def ensure_directories() -> None:
    """Ensure all required directories exist."""
    directories = [
        DATA_DIR,
        BOOKS_DIR,
    ]

    for directory in directories:
        directory.mkdir(parents=True, exist_ok=True)


@dataclass
class PathSettings:
    """Path configuration settings."""
    base_dir: Path = BASE_DIR
    data_dir: Path = DATA_DIR
    books_dir: Path = BOOKS_DIR


@dataclass
class DatabaseSettings:
    """Database configuration settings."""
    url: str = os.getenv("DATABASE_URL", "sqlite:///vocabplan.db")
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


@dataclass
class LearningSettings:
    """Learning process settings."""
    review_intervals: list[int] = field(default_factory=lambda: list(REVIEW_INTERVALS))
    mistake_retry_minutes: int = int(os.getenv("MISTAKE_RETRY_MINUTES", str(MISTAKE_RETRY_MINUTES)))
    mastery_stage: int = int(os.getenv("MASTERY_STAGE", str(MASTERY_STAGE)))
    high_frequency_errors: int = int(os.getenv("HIGH_FREQUENCY_ERRORS", "2"))
    default_daily_limit: int = int(os.getenv("DEFAULT_DAILY_LIMIT", "10"))

    @property
    def max_stage(self) -> int:
        return len(self.review_intervals) - 1


@dataclass
class RankingSettings:
    """Ranking service client settings."""
    base_url: str = os.getenv("RANKING_BASE_URL", "http://localhost:3000/api")
    leaderboard_limit: int = int(os.getenv("LEADERBOARD_LIMIT", "50"))


@dataclass
class ClockSettings:
    """Clock settings."""
    timezone: Optional[str] = os.getenv("TIMEZONE") or None


@dataclass
class ServerSettings:
    """Ranking server settings."""
    host: str = os.getenv("SERVER_HOST", "0.0.0.0")
    port: int = int(os.getenv("SERVER_PORT", "3000"))


@dataclass
class MonitoringSettings:
    """Prometheus exporter settings."""
    enabled: bool = os.getenv("METRICS_ENABLED", "false").lower() == "true"
    port: int = int(os.getenv("METRICS_PORT", "9090"))


def get_path_settings() -> PathSettings:
    """Get path settings."""
    return PathSettings()


def get_database_settings() -> DatabaseSettings:
    """Get database settings."""
    return DatabaseSettings()


def get_logging_settings() -> LoggingSettings:
    """Get logging settings."""
    return LoggingSettings()


def get_learning_settings() -> LearningSettings:
    """Get learning settings."""
    return LearningSettings()


def get_ranking_settings() -> RankingSettings:
    """Get ranking settings."""
    return RankingSettings()


def get_clock_settings() -> ClockSettings:
    """Get clock settings."""
    return ClockSettings()


def get_server_settings() -> ServerSettings:
    """Get server settings."""
    return ServerSettings()


def get_monitoring_settings() -> MonitoringSettings:
    """Get monitoring settings."""
    return MonitoringSettings()


@dataclass
class Settings:
    """Main settings class that combines all configuration settings."""
    paths: PathSettings = field(default_factory=get_path_settings)
    database: DatabaseSettings = field(default_factory=get_database_settings)
    logging: LoggingSettings = field(default_factory=get_logging_settings)
    learning: LearningSettings = field(default_factory=get_learning_settings)
    ranking: RankingSettings = field(default_factory=get_ranking_settings)
    clock: ClockSettings = field(default_factory=get_clock_settings)
    server: ServerSettings = field(default_factory=get_server_settings)
    monitoring: MonitoringSettings = field(default_factory=get_monitoring_settings)

    def validate(self) -> None:
        """Validate settings and raise ValueError if invalid."""
        if not self.learning.review_intervals:
            raise ValueError("REVIEW_INTERVALS must not be empty")

        if any(minutes <= 0 for minutes in self.learning.review_intervals):
            raise ValueError("REVIEW_INTERVALS must be positive")

        if self.learning.mistake_retry_minutes <= 0:
            raise ValueError("MISTAKE_RETRY_MINUTES must be positive")

        if not 0 < self.learning.mastery_stage <= self.learning.max_stage:
            raise ValueError("MASTERY_STAGE must be between 1 and the last review stage")

        if self.learning.high_frequency_errors < 1:
            raise ValueError("HIGH_FREQUENCY_ERRORS must be positive")

        if self.learning.default_daily_limit < 1:
            raise ValueError("DEFAULT_DAILY_LIMIT must be positive")

        if self.ranking.leaderboard_limit < 1:
            raise ValueError("LEADERBOARD_LIMIT must be positive")


# Create global settings instance
settings = Settings()
settings.validate()
