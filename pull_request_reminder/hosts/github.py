"""GitHub host adapter."""

import logging
from typing import Dict, List

import requests

from ..api_client import APIClient
from ..config import TeamConfig
from ..errors import HostError
from ..models import PullRequest, Reviewer, User
from .base import Host, collapse_reviews, parse_time, split_repository_name

GITHUB_API_URL = 'https://api.github.com'


class GithubHost(Host):
    """Reads open pull requests and their reviews from the GitHub REST API."""

    name = 'Github'
    base_link = 'https://github.com'

    def __init__(self, config: TeamConfig, client: APIClient = None):
        super().__init__(config, config.github.repositories)
        self.client = client or APIClient(GITHUB_API_URL, headers={
            'Authorization': f'token {config.github.token}',
            'Accept': 'application/vnd.github.v3+json'
        })
        self._users = config.get_github_users()

    def get_users(self) -> Dict[str, User]:
        return self._users

    def _resolve(self, login: str) -> User:
        return self.resolve_user(login, github_username=login)

    def _list_open_pull_requests(self, owner: str, slug: str) -> List[Dict]:
        return self.client.get_paginated(f"repos/{owner}/{slug}/pulls", {'state': 'open'})

    def _list_reviews(self, owner: str, slug: str, number: int) -> List[Dict]:
        return self.client.get_paginated(f"repos/{owner}/{slug}/pulls/{number}/reviews")

    def _build_reviewers(self, payload: Dict, reviews: List[Dict]) -> List[Reviewer]:
        author_login = (payload.get('user') or {}).get('login', '')

        events = []
        for review in reviews:
            login = (review.get('user') or {}).get('login')
            if not login:
                continue
            state = review.get('state', '')
            events.append((login, Reviewer(
                user=self._resolve(login),
                approved=state == 'APPROVED',
                requested_changes=state == 'CHANGES_REQUESTED',
            )))
        reviewers = collapse_reviews(events, author_login)

        # Requested reviewers that have not reviewed yet are pending
        reviewed = {login for login, _ in events}
        for requested in payload.get('requested_reviewers') or []:
            login = requested.get('login')
            if login and login not in reviewed and login != author_login:
                reviewers.append(Reviewer(user=self._resolve(login)))
        return reviewers

    def get_pull_requests(self, repository_name: str) -> List[PullRequest]:
        """Fetch the open pull requests of a repository.

        Args:
            repository_name: Repository name in format 'owner/repo'

        Returns:
            The open pull requests, with one reviewer per reviewing user

        Raises:
            HostError: If the pull requests or their reviews cannot be fetched
        """
        owner, slug = split_repository_name(self.name, repository_name)
        try:
            payloads = self._list_open_pull_requests(owner, slug)
        except requests.exceptions.RequestException as e:
            raise HostError(
                f"Caught an error while describing pull requests: "
                f"Error fetching pull requests from {repository_name} in {self.name}: {e}",
                self.name, repository_name) from e

        pull_requests = []
        for payload in payloads:
            number = payload.get('number')
            try:
                reviews = self._list_reviews(owner, slug, number)
            except requests.exceptions.RequestException as e:
                raise HostError(
                    f"Caught an error while describing pull requests: "
                    f"Error fetching the reviews of pull request #{number} from {repository_name} in {self.name}: {e}",
                    self.name, repository_name) from e

            author_login = (payload.get('user') or {}).get('login', '')
            pull_requests.append(PullRequest(
                author=self._resolve(author_login),
                title=payload.get('title') or '',
                description=payload.get('body') or '',
                link=payload.get('html_url') or '',
                create_time=parse_time(payload.get('created_at')),
                update_time=parse_time(payload.get('updated_at')),
                reviewers=self._build_reviewers(payload, reviews),
            ))
            logging.debug(f"Read pull request #{number} of {repository_name}")
        return pull_requests
