"""Slack Block Kit messages posted through the Slack Web API."""

import logging
from datetime import datetime, timezone
from typing import Dict, List, Optional

import requests

from ..api_client import APIClient
from ..classification import team_reviewers
from ..config import SlackConfig
from ..errors import NotificationError
from ..models import PullRequest, User
from ..repository import Repository
from .base import MessageHandler

SLACK_API_URL = 'https://slack.com/api'

HEADER_TEXT = "Hello, here are the pull requests requiring your attention today:"
READY_TO_REVIEW_TITLE = ":no_entry: Pull requests still in need of approvers"
READY_TO_MERGE_TITLE = ":heavy_check_mark: Pull requests awaiting merge"

# Slack limit
_MAX_BLOCKS = 50


def _section(text: str, text_type: str = 'mrkdwn') -> Dict:
    text_object = {'type': text_type, 'text': text}
    if text_type == 'plain_text':
        text_object['emoji'] = True
    return {'type': 'section', 'text': text_object}


def waiting_on(repository: Repository, pull_request: PullRequest, ready_to_merge: bool) -> List[User]:
    """Return the team members the pull request is waiting on.

    A pull request ready to merge waits on its author, the others wait on
    the team reviewers that have not approved yet.
    """
    if ready_to_merge:
        return [pull_request.author] if pull_request.author.is_known() else []
    team = repository.host.get_users()
    return [reviewer.user for reviewer in team_reviewers(pull_request, team) if not reviewer.approved]


def escape(text: str) -> str:
    """Escape the characters Slack mrkdwn uses for links and mentions."""
    return text.replace('&', '&amp;').replace('<', '&lt;').replace('>', '&gt;')


def is_waiting_on(user: User, repository: Repository, pull_request: PullRequest, ready_to_merge: bool) -> bool:
    # Users are matched by name, the same person may have different handles on each host
    return any(waiting.name == user.name for waiting in waiting_on(repository, pull_request, ready_to_merge))


def _pull_request_text(repository: Repository, pull_request: PullRequest, ready_to_merge: bool) -> str:
    text = f"<{pull_request.link}|{escape(pull_request.title)}>"
    mentions = [f"<@{user.slack_username}>" for user in waiting_on(repository, pull_request, ready_to_merge)
                if user.slack_username]
    if mentions:
        text += "\n" + " ".join(mentions)
    return text


def build_slack_message(repositories: List[Repository], now: Optional[datetime] = None,
                        only_user: Optional[User] = None) -> List[Dict]:
    """Build the Block Kit sections listing the repositories' actionable pull requests.

    Args:
        repositories: Repositories with pull requests needing action
        now: Reference time used to classify the pull requests
        only_user: If given, only keep the pull requests waiting on this user

    Returns:
        List of blocks; only the header when nothing is left to display
    """
    blocks = [_section(HEADER_TEXT, 'plain_text')]

    for repository in repositories:
        ready_to_merge, ready_to_review = repository.get_pull_requests_to_display(now)
        if only_user is not None:
            ready_to_merge = [pr for pr in ready_to_merge if is_waiting_on(only_user, repository, pr, True)]
            ready_to_review = [pr for pr in ready_to_review if is_waiting_on(only_user, repository, pr, False)]
        if not ready_to_merge and not ready_to_review:
            continue

        blocks.append({'type': 'divider'})
        blocks.append(_section(f"[{repository.host.get_name()}] *<{repository.link}|{escape(repository.name)}>*"))
        for title, pull_requests, is_merge in (
            (READY_TO_MERGE_TITLE, ready_to_merge, True),
            (READY_TO_REVIEW_TITLE, ready_to_review, False),
        ):
            if not pull_requests:
                continue
            blocks.append(_section(title, 'plain_text'))
            for pull_request in pull_requests:
                blocks.append(_section(_pull_request_text(repository, pull_request, is_merge)))

    if len(blocks) > _MAX_BLOCKS:
        hidden = len(blocks) - (_MAX_BLOCKS - 1)
        logging.warning(f"Slack message too long, dropping the last {hidden} block(s)")
        blocks = blocks[:_MAX_BLOCKS - 1]
        blocks.append(_section(f"… and {hidden} more"))
    return blocks


class SlackMessageHandler(MessageHandler):
    """Posts the pull requests needing action to a Slack channel and, optionally, to each user."""

    def __init__(self, config: SlackConfig, client: APIClient = None):
        """Initialize the Slack handler.

        Args:
            config: The team's Slack configuration
            client: API client to use instead of one authenticated with the config's token
        """
        self.channel = config.channel
        self.message_users = config.message_users_individually
        self.debug_user = config.debug_user
        self.client = client or APIClient(SLACK_API_URL, headers={
            'Authorization': f'Bearer {config.token}',
            'Content-Type': 'application/json; charset=utf-8'
        })

    def post_message(self, channel: str, blocks: List[Dict]):
        """Post a message with the given blocks.

        Raises:
            NotificationError: If the request fails or Slack rejects the message
        """
        destination = self.debug_user or channel
        if self.debug_user:
            logging.info(f"Sending the message meant for {channel} to the debug user {self.debug_user}")

        try:
            result = self.client.post_json('chat.postMessage', {
                'channel': destination,
                'text': HEADER_TEXT,
                'blocks': blocks,
                'as_user': True,
            })
        except requests.exceptions.RequestException as e:
            raise NotificationError(f"Failed to post the Slack message to {destination}: {e}") from e

        if not result.get('ok', False):
            raise NotificationError(f"Slack rejected the message to {destination}: {result.get('error', 'unknown error')}")
        logging.info(f"Posted a Slack message with {len(blocks)} block(s) to {destination}")

    def notify(self, repositories: List[Repository], now: Optional[datetime] = None):
        now = now or datetime.now(timezone.utc)
        if self.channel or not self.message_users:
            self.post_message(self.channel, build_slack_message(repositories, now))

        if not self.message_users:
            return

        users: Dict[str, User] = {}
        for repository in repositories:
            for user in repository.host.get_users().values():
                if user.slack_username and user.name not in users:
                    users[user.name] = user
        for user in users.values():
            blocks = build_slack_message(repositories, now, only_user=user)
            if len(blocks) > 1:
                self.post_message(user.slack_username, blocks)
            else:
                logging.debug(f"No pull request is waiting on {user.name}")
