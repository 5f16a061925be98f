"""Data models for pull requests, independent of the host they come from."""

from dataclasses import dataclass, field
from datetime import datetime, timezone
from typing import List

EPOCH = datetime(1970, 1, 1, tzinfo=timezone.utc)


@dataclass(frozen=True)
class User:
    """A team member, identified by name across every platform.

    A user with an empty name is unknown to the team. Host adapters still
    fill in the handle it was seen under so it shows up in logs.
    """
    name: str = ''
    bitbucket_uuid: str = ''
    github_username: str = ''
    slack_username: str = ''

    def is_known(self) -> bool:
        return bool(self.name)


@dataclass
class Reviewer:
    """A user that approved, requested changes or has not reviewed yet."""
    user: User
    approved: bool = False
    requested_changes: bool = False

    def has_decided(self) -> bool:
        return self.approved or self.requested_changes


@dataclass
class PullRequest:
    """A pull (or merge) request on a source-control host."""
    author: User = field(default_factory=User)
    title: str = ''
    description: str = ''
    link: str = ''
    create_time: datetime = EPOCH
    update_time: datetime = EPOCH
    reviewers: List[Reviewer] = field(default_factory=list)
