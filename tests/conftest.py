"""
Pytest configuration and fixtures for release notifier tests.
"""

from collections.abc import Callable

import pytest

from helpers import make_release
from release_notifier.config import PollingConfig, Settings
from release_notifier.models import Release


@pytest.fixture
def release_factory() -> Callable[..., Release]:
    """Factory for test releases."""
    return make_release


@pytest.fixture
def mock_settings(tmp_path) -> Settings:
    """Settings for testing, isolated from the working directory."""
    return Settings(
        github_token="test-token",
        slack_hook="https://hooks.slack.test/services/T000/B000/XXXX",
        interval_seconds=60,
        repositories="octo/alpha,octo/beta",
        repositories_file=str(tmp_path / "repositories.txt"),
        log_level="DEBUG",
    )


@pytest.fixture
def polling_config() -> PollingConfig:
    """Polling configuration with a short interval."""
    return PollingConfig(interval_seconds=0.05)
