"""
Release Notifier

A daemon that watches GitHub repositories for new releases and posts each
one to a Slack incoming webhook.
"""

__version__ = "0.1.0"

from .config import Settings
from .exceptions import ReleaseNotifierError
from .github_client import GitHubClient
from .models import Release
from .notifier import SlackNotifier

__all__ = [
    "Settings",
    "GitHubClient",
    "Release",
    "ReleaseNotifierError",
    "SlackNotifier",
]
