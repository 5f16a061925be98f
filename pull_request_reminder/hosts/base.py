"""Common pieces of the source-control host adapters."""

import logging
from datetime import datetime, timezone
from typing import Dict, Iterable, List, Tuple

from ..config import TeamConfig
from ..errors import HostError
from ..models import EPOCH, Reviewer, User
from ..repository import Repository


def parse_time(value: str) -> datetime:
    """Parse an ISO 8601 timestamp from a host API into an aware UTC datetime."""
    if not value:
        return EPOCH
    parsed = datetime.fromisoformat(value.replace('Z', '+00:00'))
    if parsed.tzinfo is None:
        parsed = parsed.replace(tzinfo=timezone.utc)
    return parsed.astimezone(timezone.utc)


def split_repository_name(host_name: str, repository_name: str) -> Tuple[str, str]:
    owner, _, slug = repository_name.partition('/')
    if not owner or not slug:
        raise HostError(f"Invalid repository name '{repository_name}' in {host_name}, expected 'owner/repo'",
                        host_name, repository_name)
    return owner, slug


def collapse_reviews(reviews: Iterable[Tuple[str, Reviewer]], author_key: str) -> List[Reviewer]:
    """Reduce review events to one reviewer per user.

    Reviews are walked from the most recent to the oldest. The first decision
    (approval or change request) found for a user is final; a comment only
    counts until an older decision is found.

    Args:
        reviews: (platform identifier, reviewer) pairs, oldest first as returned by the API
        author_key: Platform identifier of the pull request's author

    Returns:
        One reviewer per user, most recent reviewer first
    """
    reviewers: Dict[str, Reviewer] = {}
    for key, reviewer in reversed(list(reviews)):
        if key == author_key:
            continue
        existing = reviewers.get(key)
        if existing is not None and existing.has_decided():
            continue
        reviewers[key] = reviewer
    return list(reviewers.values())


class Host:
    """A source-control provider that the team's repositories live on.

    Subclasses implement ``get_users`` and ``get_pull_requests``.
    """

    name = ''
    base_link = ''

    def __init__(self, config: TeamConfig, repository_names: List[str]):
        self.config = config
        self.repository_names = repository_names

    def __repr__(self):
        return f"{type(self).__name__}(team={self.config.name!r})"

    def get_name(self) -> str:
        return self.name

    def get_config(self) -> TeamConfig:
        return self.config

    def get_users(self) -> Dict[str, User]:
        raise NotImplementedError

    def get_pull_requests(self, repository_name: str) -> list:
        raise NotImplementedError

    def resolve_user(self, key: str, **handles) -> User:
        """Return the team member with the given platform identifier.

        Unknown identifiers resolve to a nameless user that keeps the given handles.
        """
        user = self.get_users().get(key)
        if user is None:
            logging.warning(f"{self.name}: user '{key}' is not part of team '{self.config.name}'")
            return User(**handles)
        return user

    def get_repositories(self) -> List[Repository]:
        """Fetch every configured repository with its open pull requests.

        Raises:
            HostError: If the users or any repository's pull requests cannot be fetched
        """
        self.get_users()
        repositories = []
        for repository_name in self.repository_names:
            logging.info(f"Fetching open pull requests of {repository_name} from {self.name}")
            pull_requests = self.get_pull_requests(repository_name)
            logging.debug(f"Found {len(pull_requests)} open pull request(s) in {repository_name}")
            repositories.append(Repository(
                self,
                repository_name,
                f"{self.base_link}/{repository_name}",
                pull_requests,
            ))
        return repositories
