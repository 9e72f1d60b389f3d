"""
Custom exceptions for the release notifier.

This module defines the exception hierarchy shared by the release query
client, the delivery sink and the configuration layer.
"""

from typing import Any


class ReleaseNotifierError(Exception):
    """Base exception for release notifier errors."""

    def __init__(
        self,
        message: str,
        code: str | None = None,
        context: dict[str, Any] | None = None,
    ):
        super().__init__(message)
        self.code = code or "RELEASE_NOTIFIER_ERROR"
        self.context = context or {}


class QueryError(ReleaseNotifierError):
    """Exception for failures while querying a repository's releases."""

    def __init__(
        self,
        message: str,
        repository: str | None = None,
        status_code: int | None = None,
        context: dict[str, Any] | None = None,
    ):
        super().__init__(message, "QUERY_ERROR", context)
        self.repository = repository
        self.status_code = status_code


class DeliveryError(ReleaseNotifierError):
    """Exception for failures while delivering a release notification."""

    def __init__(
        self,
        message: str,
        status_code: int | None = None,
        context: dict[str, Any] | None = None,
    ):
        super().__init__(message, "DELIVERY_ERROR", context)
        self.status_code = status_code


class ConfigurationError(ReleaseNotifierError):
    """Exception for configuration related errors."""

    def __init__(self, message: str, context: dict[str, Any] | None = None):
        super().__init__(message, "CONFIGURATION_ERROR", context)
