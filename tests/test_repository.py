"""
Unit tests for the repository aggregation of pull requests
"""

import pytest
from datetime import datetime, timedelta, timezone
from unittest.mock import Mock

from pull_request_reminder.classification import Category
from pull_request_reminder.config import TeamConfig
from pull_request_reminder.models import PullRequest, Reviewer, User
from pull_request_reminder.repository import Repository

NOW = datetime(2024, 1, 10, 12, 0, tzinfo=timezone.utc)
VALID_AGE = NOW - timedelta(hours=36)
INVALID_AGE = NOW - timedelta(hours=12)

USER1 = User(name='user1', bitbucket_uuid='user1')
USER2 = User(name='user2', bitbucket_uuid='user2')
OTHER = User(name='otheruser')


def make_host(**config):
    host = Mock()
    host.get_users.return_value = {'user1': USER1, 'user2': USER2}
    host.get_config.return_value = TeamConfig(age_before_notifying=timedelta(hours=24), users=[USER1, USER2], **config)
    return host


class TestCategorizePullRequests:
    """Test cases for splitting open pull requests into categories."""

    @pytest.fixture
    def pull_requests(self):
        def pr(title, author=USER1, reviewers=None, created=VALID_AGE, updated=VALID_AGE):
            return PullRequest(title=title, author=author, reviewers=reviewers or [],
                               create_time=created, update_time=updated)

        return {
            'not_from_team': pr('User not from team', author=OTHER,
                                reviewers=[Reviewer(USER1), Reviewer(USER2)]),
            'wip': pr('[WIP] My Title', reviewers=[Reviewer(USER1), Reviewer(USER2)]),
            'no_reviewers': pr('No Reviewers'),
            'too_young': pr('Not approved but too young', reviewers=[Reviewer(USER1), Reviewer(USER2)],
                            created=INVALID_AGE),
            'approved_by_other': pr('Approved by otheruser',
                                    reviewers=[Reviewer(OTHER, approved=True), Reviewer(USER2)]),
            'not_approved': pr('Not approved', reviewers=[Reviewer(USER1), Reviewer(USER2)]),
            'approved': pr('Approved', reviewers=[Reviewer(USER1, approved=True), Reviewer(USER2)]),
            'approved_recently_updated': pr('Approved but updated', updated=INVALID_AGE,
                                            reviewers=[Reviewer(USER2, approved=True)]),
        }

    def test_get_pull_requests_to_display(self, pull_requests):
        """Test that only actionable pull requests are kept, in their original order."""
        repository = Repository(make_host(), 'repo-name', 'http://example.com', list(pull_requests.values()))

        ready_to_merge, ready_to_review = repository.get_pull_requests_to_display(NOW)

        assert ready_to_merge == [pull_requests['approved']]
        assert ready_to_review == [pull_requests['approved_by_other'], pull_requests['not_approved']]
        assert repository.has_pull_requests_to_display(NOW)

    def test_classify_reports_reasons(self, pull_requests):
        """Test that every pull request gets an outcome with a reason when excluded."""
        repository = Repository(make_host(), 'repo-name', 'http://example.com', list(pull_requests.values()))

        outcomes = {pr.title: outcome for pr, outcome in repository.classify(NOW)}

        assert outcomes['[WIP] My Title'].reason == 'Marked WIP'
        assert outcomes['No Reviewers'].reason == 'No reviewers'
        assert outcomes['User not from team'].reason == "Not from one of the team's users"
        assert outcomes['Not approved but too young'].reason.startswith('Not old enough')
        assert outcomes['Approved but updated'].reason.startswith('Merge not overdue')
        assert outcomes['Approved'].category is Category.READY_TO_MERGE

    def test_reviewing_non_member_pull_requests(self, pull_requests):
        """Test that the team policy is read from the host's config."""
        repository = Repository(make_host(review_prs_from_non_members=True), 'repo-name', 'http://example.com',
                                [pull_requests['not_from_team']])

        ready_to_merge, ready_to_review = repository.get_pull_requests_to_display(NOW)

        assert ready_to_merge == []
        assert ready_to_review == [pull_requests['not_from_team']]

    def test_no_pull_requests_to_display(self, pull_requests):
        """Test a repository with only excluded pull requests."""
        repository = Repository(make_host(), 'repo-name', 'http://example.com',
                                [pull_requests['wip'], pull_requests['no_reviewers']])

        assert repository.get_pull_requests_to_display(NOW) == ([], [])
        assert not repository.has_pull_requests_to_display(NOW)

    def test_recomputed_after_changes(self, pull_requests):
        """Test that categories are not cached between calls."""
        repository = Repository(make_host(), 'repo-name', 'http://example.com', [pull_requests['not_approved']])
        assert repository.get_pull_requests_to_display(NOW) == ([], [pull_requests['not_approved']])

        pull_requests['not_approved'].reviewers[0].approved = True

        assert repository.get_pull_requests_to_display(NOW) == ([pull_requests['not_approved']], [])

    def test_empty_repository(self):
        """Test a repository without open pull requests."""
        repository = Repository(make_host(), 'repo-name', 'http://example.com')
        assert repository.open_pull_requests == []
        assert not repository.has_pull_requests_to_display(NOW)
