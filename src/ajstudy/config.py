"""Configuration settings for the study engine."""
import os
from dataclasses import dataclass, field
from typing import Optional

from dotenv import load_dotenv

# Load environment variables from .env file
env_file = ".env.test" if os.getenv("ENV") == "test" else ".env"
load_dotenv(env_file)

# Study settings
QUIZ_CHOICES = 4  # options per multiple-choice question
RECENT_WINDOW = 5  # attempts considered for recent accuracy
MASTERY_STREAK = 3  # correct answers in a row to count a word as mastered

LOG_LEVELS = ("DEBUG", "INFO", "WARNING", "ERROR", "CRITICAL")


def get_sso_issuers() -> list[str]:
    """Get trusted SSO issuers from environment variable."""
    return [issuer.strip() for issuer in os.getenv("AUTH_SSO_ISSUERS", "").split(",") if issuer.strip()]


@dataclass(frozen=True)
class DatabaseSettings:
    """Database configuration settings."""
    url: str = os.getenv("DATABASE_URL", "sqlite:///ajstudy.db")
    echo: bool = os.getenv("DATABASE_ECHO", "false").lower() == "true"


@dataclass(frozen=True)
class LoggingSettings:
    """Logging configuration settings."""
    level: str = os.getenv("LOG_LEVEL", "INFO").upper()
    format: str = "%(asctime)s - %(name)s - %(levelname)s - %(message)s"
    dir: Optional[str] = os.getenv("LOG_DIR", None)
    rotation: str = os.getenv("LOG_ROTATION", "midnight")
    interval: int = int(os.getenv("LOG_INTERVAL", "1"))
    backup_count: int = int(os.getenv("LOG_BACKUP_COUNT", "7"))


@dataclass(frozen=True)
class QuizSettings:
    """Quiz generation settings."""
    choices: int = int(os.getenv("QUIZ_CHOICES", str(QUIZ_CHOICES)))
    size: int = int(os.getenv("QUIZ_SIZE", "10"))
    true_false_true_ratio: float = float(os.getenv("QUIZ_TRUE_FALSE_TRUE_RATIO", "0.5"))


@dataclass(frozen=True)
class StudySettings:
    """Study session settings."""
    passes: int = int(os.getenv("STUDY_PASSES", "1"))
    recent_window: int = int(os.getenv("STUDY_RECENT_WINDOW", str(RECENT_WINDOW)))
    mastery_streak: int = int(os.getenv("MASTERY_STREAK", str(MASTERY_STREAK)))


@dataclass(frozen=True)
class AuthSettings:
    """Authentication settings."""
    provider: str = os.getenv("AUTH_PROVIDER", "sso")
    sso_issuers: list[str] = field(default_factory=get_sso_issuers)
    password_method: str = os.getenv("AUTH_PASSWORD_METHOD", "scrypt")


@dataclass(frozen=True)
class MonitoringSettings:
    """Prometheus metrics settings."""
    enabled: bool = os.getenv("METRICS_ENABLED", "false").lower() == "true"
    port: int = int(os.getenv("METRICS_PORT", "9090"))


def get_database_settings() -> DatabaseSettings:
    """Get database settings."""
    return DatabaseSettings()


def get_logging_settings() -> LoggingSettings:
    """Get logging settings."""
    return LoggingSettings()


def get_quiz_settings() -> QuizSettings:
    """Get quiz settings."""
    return QuizSettings()


def get_study_settings() -> StudySettings:
    """Get study settings."""
    return StudySettings()


def get_auth_settings() -> AuthSettings:
    """Get authentication settings."""
    return AuthSettings()


def get_monitoring_settings() -> MonitoringSettings:
    """Get monitoring settings."""
    return MonitoringSettings()


@dataclass(frozen=True)
class Settings:
    """Main settings class that combines all configuration settings."""
    database: DatabaseSettings = field(default_factory=get_database_settings)
    logging: LoggingSettings = field(default_factory=get_logging_settings)
    quiz: QuizSettings = field(default_factory=get_quiz_settings)
    study: StudySettings = field(default_factory=get_study_settings)
    auth: AuthSettings = field(default_factory=get_auth_settings)
    monitoring: MonitoringSettings = field(default_factory=get_monitoring_settings)

    def validate(self) -> None:
        """Validate settings and raise ValueError if invalid."""
        if self.logging.level not in LOG_LEVELS:
            raise ValueError(f"LOG_LEVEL must be one of {', '.join(LOG_LEVELS)}")

        if self.quiz.choices < 2:
            raise ValueError("QUIZ_CHOICES must be at least 2")

        if self.quiz.size < 1:
            raise ValueError("QUIZ_SIZE must be positive")

        if self.quiz.true_false_true_ratio < 0 or self.quiz.true_false_true_ratio > 1:
            raise ValueError("QUIZ_TRUE_FALSE_TRUE_RATIO must be between 0 and 1")

        if self.study.passes < 1:
            raise ValueError("STUDY_PASSES must be positive")

        if self.study.recent_window < 1:
            raise ValueError("STUDY_RECENT_WINDOW must be positive")

        if self.study.mastery_streak < 1:
            raise ValueError("MASTERY_STREAK must be positive")

        if self.auth.provider not in ("sso", "custom"):
            raise ValueError("AUTH_PROVIDER must be 'sso' or 'custom'")

        if not self.auth.password_method:
            raise ValueError("AUTH_PASSWORD_METHOD must not be empty")


# Create global settings instance
settings = Settings()
settings.validate()
