"""Notification channels that repositories needing action are sent to."""

import logging
from typing import List

from ..config import TeamConfig
from .base import MessageHandler
from .slack import SlackMessageHandler


def get_handlers(config: TeamConfig) -> List[MessageHandler]:
    """Return every message handler that the team has configured."""
    handlers = []
    if config.is_slack_configured():
        handlers.append(SlackMessageHandler(config.slack))
    else:
        logging.info("Slack is not configured, a token and a channel (or a debug user) are needed")
    return handlers


__all__ = [
    'MessageHandler',
    'SlackMessageHandler',
    'get_handlers',
]
