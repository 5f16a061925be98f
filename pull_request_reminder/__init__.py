"""Pull Request Reminder - reminds teams of the pull requests waiting on them."""

from .models import User, Reviewer, PullRequest
from .classification import (
    Category,
    ClassificationOutcome,
    TeamPolicy,
    classify_pull_request,
)
from .repository import Repository
from .config import ConfigReader, GlobalConfig, TeamConfig
from .errors import ReminderError, ConfigError, HostError, FetchError, NotificationError
from .reminder import get_repositories_needing_action, handle_repositories, process_team, run

__all__ = [
    'User',
    'Reviewer',
    'PullRequest',
    'Category',
    'ClassificationOutcome',
    'TeamPolicy',
    'classify_pull_request',
    'Repository',
    'ConfigReader',
    'GlobalConfig',
    'TeamConfig',
    'ReminderError',
    'ConfigError',
    'HostError',
    'FetchError',
    'NotificationError',
    'get_repositories_needing_action',
    'handle_repositories',
    'process_team',
    'run',
]
