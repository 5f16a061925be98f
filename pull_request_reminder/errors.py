"""Exceptions raised by the pull request reminder."""

from typing import Optional


class ReminderError(Exception):
    """Base class for all errors raised by the reminder."""


class ConfigError(ReminderError):
    """The configuration could not be read or is invalid."""


class HostError(ReminderError):
    """A source-control host client failed to fetch data."""

    def __init__(self, message: str, host: str = '', repository: Optional[str] = None):
        super().__init__(message)
        self.host = host
        self.repository = repository


class FetchError(ReminderError):
    """Fetching repositories failed; fatal for the current team's run."""

    def __init__(self, host: str, repository: Optional[str], cause: Exception):
        location = f"{host} ({repository})" if repository else host
        super().__init__(f"Error fetching repositories from {location}: {cause}")
        self.host = host
        self.repository = repository
        self.cause = cause


class NotificationError(ReminderError):
    """A message handler failed to deliver its notification."""
