"""Bitbucket Cloud host adapter."""

import logging
import re
import unicodedata
from typing import Dict, List, Optional

import requests

from ..api_client import APIClient
from ..config import TeamConfig
from ..errors import HostError
from ..models import PullRequest, Reviewer, User
from .base import Host, collapse_reviews, parse_time, split_repository_name

BITBUCKET_API_URL = 'https://api.bitbucket.org/2.0'

_NON_LETTERS = re.compile(r'[^a-z]+')


def normalize_name(name: str) -> str:
    """Normalize a display name for comparison: no diacritics, lowercase, letters only.

    >>> normalize_name('John Master-Doe')
    'john master doe'
    """
    decomposed = unicodedata.normalize('NFKD', name)
    ascii_name = ''.join(char for char in decomposed if not unicodedata.combining(char))
    return _NON_LETTERS.sub(' ', ascii_name.lower()).strip()


class BitbucketCloud(Host):
    """Reads open pull requests and their participants from the Bitbucket Cloud API."""

    name = 'Bitbucket'
    base_link = 'https://bitbucket.org'

    def __init__(self, config: TeamConfig, client: APIClient = None):
        super().__init__(config, config.bitbucket.repositories)
        self.client = client or APIClient(
            BITBUCKET_API_URL,
            auth=(config.bitbucket.username, config.bitbucket.password)
        )
        self._users: Optional[Dict[str, User]] = None

    def get_users(self) -> Dict[str, User]:
        """Return the team's users keyed by Bitbucket UUID.

        With ``find_users_in_team``, users without a configured UUID are
        looked up by display name among the workspace members. The result is
        computed once per host.

        Raises:
            HostError: If the members cannot be fetched or a user is ambiguous
        """
        if self._users is None:
            try:
                self._users = self._find_users()
            except HostError as e:
                raise HostError(f"Error fetching users from {self.name}: {e}", self.name) from e
        return self._users

    def _find_users(self) -> Dict[str, User]:
        users = self.config.get_bitbucket_users()
        bitbucket = self.config.bitbucket
        if not bitbucket.find_users_in_team:
            return users

        if not bitbucket.team:
            raise HostError(f"{self.name} is set to find users in the team but the team name is not set")

        try:
            members = self.client.get_paginated_values(f"workspaces/{bitbucket.team}/members")
        except requests.exceptions.RequestException as e:
            raise HostError(f"Error fetching members from team {bitbucket.team}: {e}") from e

        for user in self.config.users:
            if user.bitbucket_uuid:
                continue
            wanted = normalize_name(user.name)
            matches = []
            for member in members:
                member_user = member.get('user', member)
                if wanted and normalize_name(member_user.get('display_name', '')) == wanted:
                    matches.append(member_user.get('uuid', ''))
            if len(matches) > 1:
                raise HostError(f"Found {len(matches)} members of team {bitbucket.team} named '{user.name}'")
            if not matches:
                logging.warning(f"Could not find '{user.name}' in the members of team {bitbucket.team}")
                continue

            uuid = matches[0]
            if uuid in users:
                raise HostError(f"Users '{users[uuid].name}' and '{user.name}' both have the UUID {uuid}")
            logging.debug(f"Found UUID {uuid} for '{user.name}'")
            users[uuid] = User(
                name=user.name,
                bitbucket_uuid=uuid,
                github_username=user.github_username,
                slack_username=user.slack_username,
            )
        return users

    def _resolve(self, account: Dict) -> User:
        uuid = (account or {}).get('uuid', '')
        return self.resolve_user(uuid, bitbucket_uuid=uuid)

    def _to_pull_request(self, payload: Dict) -> PullRequest:
        author_uuid = (payload.get('author') or {}).get('uuid', '')
        events = []
        for participant in payload.get('participants') or []:
            approved = bool(participant.get('approved'))
            if participant.get('role') != 'REVIEWER' and not approved:
                continue
            user = participant.get('user') or {}
            events.append((user.get('uuid', ''), Reviewer(
                user=self._resolve(user),
                approved=approved,
                requested_changes=participant.get('state') == 'changes_requested',
            )))

        links = payload.get('links') or {}
        return PullRequest(
            author=self._resolve(payload.get('author')),
            title=payload.get('title') or '',
            description=payload.get('description') or '',
            link=(links.get('html') or {}).get('href', ''),
            create_time=parse_time(payload.get('created_on')),
            update_time=parse_time(payload.get('updated_on')),
            reviewers=collapse_reviews(events, author_uuid),
        )

    def get_pull_requests(self, repository_name: str) -> List[PullRequest]:
        """Fetch the open pull requests of a repository, with their participants.

        Raises:
            HostError: If listing or describing a pull request fails
        """
        owner, slug = split_repository_name(self.name, repository_name)
        path = f"repositories/{owner}/{slug}/pullrequests"
        try:
            listed = self.client.get_paginated_values(path, {'state': 'OPEN'})
        except requests.exceptions.RequestException as e:
            raise HostError(
                f"Caught an error while describing pull requests: "
                f"Error fetching pull requests from {repository_name} in {self.name}: {e}",
                self.name, repository_name) from e

        pull_requests = []
        for item in listed:
            pull_request_id = item.get('id')
            try:
                payload = self.client.get_json(f"{path}/{pull_request_id}")
            except requests.exceptions.RequestException as e:
                raise HostError(
                    f"Caught an error while describing pull requests: "
                    f"Error fetching the pull request with ID {pull_request_id} from {repository_name} in {self.name}: {e}",
                    self.name, repository_name) from e
            pull_requests.append(self._to_pull_request(payload))
        return pull_requests
