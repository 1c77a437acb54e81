"""Tests for configuration settings."""
import dataclasses

import pytest

from ajstudy.config import LoggingSettings, QuizSettings, Settings, StudySettings, settings


def test_settings_defaults():
    """Test default settings values."""
    assert settings.quiz.choices == 4
    assert settings.study.passes == 1
    assert settings.study.recent_window == 5
    assert settings.study.mastery_streak == 3
    assert settings.auth.provider == "sso"


def test_settings_from_env():
    """Test that settings pick up the test environment."""
    assert settings.database.url.startswith("sqlite:///")
    assert "ajstudy_test_" in settings.database.url
    assert settings.auth.sso_issuers == ["https://sso.school.example"]
    assert settings.auth.password_method == "pbkdf2:sha256:1000"


def test_settings_are_frozen():
    """Request code cannot change process-wide settings."""
    with pytest.raises(dataclasses.FrozenInstanceError):
        settings.quiz.choices = 2


def test_validate_rejects_bad_values():
    """Test validation of out-of-range values."""
    with pytest.raises(ValueError, match="QUIZ_CHOICES"):
        Settings(quiz=QuizSettings(choices=1)).validate()
    with pytest.raises(ValueError, match="QUIZ_TRUE_FALSE_TRUE_RATIO"):
        Settings(quiz=QuizSettings(true_false_true_ratio=1.5)).validate()
    with pytest.raises(ValueError, match="STUDY_PASSES"):
        Settings(study=StudySettings(passes=0)).validate()


if __name__ == "__main__":
    pytest.main([__file__])


def test_validate_rejects_unknown_log_level():
    with pytest.raises(ValueError, match="LOG_LEVEL"):
        Settings(logging=LoggingSettings(level="BOGUS")).validate()
