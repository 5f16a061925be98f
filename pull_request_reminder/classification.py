"""Decides what the team should do about a single pull request.

Every function in this module is pure: the outcome only depends on the
pull request, the team, the policy and the current time.
"""

import re
from dataclasses import dataclass
from datetime import datetime, timedelta, timezone
from enum import Enum
from typing import Dict, List, Optional

from .models import PullRequest, Reviewer, User

_NON_LETTERS = re.compile('[^a-zA-Z]+')


@dataclass(frozen=True)
class TeamPolicy:
    """The part of a team's configuration used to classify pull requests."""
    number_of_approvals: int = 1
    age_before_notifying: timedelta = timedelta(0)
    review_prs_from_non_members: bool = False

    @property
    def needed_approvals(self) -> int:
        return max(1, self.number_of_approvals)


class Category(Enum):
    EXCLUDED = 'excluded'
    READY_TO_REVIEW = 'ready_to_review'
    READY_TO_MERGE = 'ready_to_merge'


@dataclass(frozen=True)
class ClassificationOutcome:
    """The category of a pull request and, when excluded, why."""
    category: Category
    reason: str = ''

    @property
    def is_excluded(self) -> bool:
        return self.category is Category.EXCLUDED


def is_wip(pull_request: PullRequest) -> bool:
    """Return True if the title carries a standalone "wip" word."""
    title = _NON_LETTERS.sub(' ', pull_request.title)
    return any(word.lower() == 'wip' for word in title.split())


def is_team_member(user: User, team: Dict[str, User]) -> bool:
    if not user.is_known():
        return False
    return any(user.name == member.name for member in team.values())


def team_reviewers(pull_request: PullRequest, team: Dict[str, User]) -> List[Reviewer]:
    """Return the reviewers of the pull request that belong to the team."""
    return [reviewer for reviewer in pull_request.reviewers if is_team_member(reviewer.user, team)]


def is_approved(pull_request: PullRequest, team: Dict[str, User], number_of_approvals: int) -> bool:
    """Return True if enough distinct team members approved the pull request.

    Host adapters drop the author's own reviews, so they never reach this count.
    """
    approvers = {reviewer.user.name for reviewer in team_reviewers(pull_request, team) if reviewer.approved}
    return len(approvers) >= max(1, number_of_approvals)


def is_from_one_of_users(pull_request: PullRequest, team: Dict[str, User]) -> bool:
    return is_team_member(pull_request.author, team)


def _format_age(age: timedelta) -> str:
    total_seconds = int(age.total_seconds())
    hours, remainder = divmod(total_seconds, 3600)
    minutes, seconds = divmod(remainder, 60)
    return f"{hours}h{minutes}m{seconds}s"


def classify_pull_request(
    pull_request: PullRequest,
    team: Dict[str, User],
    policy: TeamPolicy,
    now: Optional[datetime] = None
) -> ClassificationOutcome:
    """Classify a pull request as excluded, ready to review or ready to merge.

    Rules are applied in order and the first one that matches decides:

    1. Pull requests marked WIP are excluded.
    2. Pull requests without any team reviewer are excluded.
    3. Pull requests created less than ``age_before_notifying`` ago are excluded.
    4. Pull requests with enough team approvals are merge candidates. They
       must come from a team member and must not have been updated for
       ``age_before_notifying``.
    5. Other pull requests need review, unless they come from outside the team
       and the policy does not review those.

    Args:
        pull_request: The pull request to classify
        team: The team's users, keyed by their platform identifier
        policy: The team's classification policy
        now: Reference time, defaults to the current UTC time

    Returns:
        The outcome, with the reason when the pull request is excluded
    """
    now = now or datetime.now(timezone.utc)
    threshold = now - policy.age_before_notifying
    age = _format_age(policy.age_before_notifying)

    if is_wip(pull_request):
        return ClassificationOutcome(Category.EXCLUDED, 'Marked WIP')
    if not team_reviewers(pull_request, team):
        return ClassificationOutcome(Category.EXCLUDED, 'No reviewers')
    if pull_request.create_time > threshold:
        return ClassificationOutcome(Category.EXCLUDED, f"Not old enough. It hasn't been created for {age}")

    from_team = is_from_one_of_users(pull_request, team)
    if is_approved(pull_request, team, policy.needed_approvals):
        if not from_team:
            return ClassificationOutcome(Category.EXCLUDED, "Not from one of the team's users")
        if pull_request.update_time > threshold:
            return ClassificationOutcome(Category.EXCLUDED, f"Merge not overdue, hasn't been stale for {age}")
        return ClassificationOutcome(Category.READY_TO_MERGE)

    if not policy.review_prs_from_non_members and not from_team:
        return ClassificationOutcome(Category.EXCLUDED, "Not from one of the team's users")
    return ClassificationOutcome(Category.READY_TO_REVIEW)
