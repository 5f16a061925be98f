"""Repositories and the pull requests that need action in them."""

from datetime import datetime, timezone
from typing import List, Optional, Tuple

from .classification import Category, ClassificationOutcome, classify_pull_request
from .models import PullRequest


class Repository:
    """A repository on a source-control host and its open pull requests.

    Categories are recomputed from the open pull requests on every call,
    with the team and the policy of the host the repository belongs to.
    """

    def __init__(self, host, name: str, link: str, open_pull_requests: List[PullRequest] = None):
        """Initialize the repository.

        Args:
            host: The host (see ``hosts.Host``) the repository lives on
            name: Repository name in format 'owner/repo'
            link: URL of the repository
            open_pull_requests: The repository's open pull requests
        """
        self.host = host
        self.name = name
        self.link = link
        self.open_pull_requests = list(open_pull_requests or [])

    def __repr__(self):
        return f"Repository(name={self.name!r}, link={self.link!r})"

    def classify(self, now: Optional[datetime] = None) -> List[Tuple[PullRequest, ClassificationOutcome]]:
        """Classify every open pull request, in their original order."""
        now = now or datetime.now(timezone.utc)
        team = self.host.get_users()
        policy = self.host.get_config().policy
        return [
            (pull_request, classify_pull_request(pull_request, team, policy, now))
            for pull_request in self.open_pull_requests
        ]

    def get_pull_requests_to_display(self, now: Optional[datetime] = None) -> Tuple[List[PullRequest], List[PullRequest]]:
        """Return the pull requests that are ready to merge and those waiting for approvals.

        Returns:
            Tuple of (ready_to_merge, ready_to_review), in insertion order
        """
        ready_to_merge, ready_to_review = [], []
        for pull_request, outcome in self.classify(now):
            if outcome.category is Category.READY_TO_MERGE:
                ready_to_merge.append(pull_request)
            elif outcome.category is Category.READY_TO_REVIEW:
                ready_to_review.append(pull_request)
        return ready_to_merge, ready_to_review

    def has_pull_requests_to_display(self, now: Optional[datetime] = None) -> bool:
        ready_to_merge, ready_to_review = self.get_pull_requests_to_display(now)
        return len(ready_to_merge) + len(ready_to_review) > 0
