"""Base class of the message handlers."""

from datetime import datetime
from typing import List, Optional

from ..repository import Repository


class MessageHandler:
    """Sends the repositories needing action to a notification channel."""

    def notify(self, repositories: List[Repository], now: Optional[datetime] = None):
        """Send the repositories' actionable pull requests.

        Args:
            repositories: Repositories with pull requests needing action
            now: Reference time the pull requests were classified with

        Raises:
            NotificationError: If the notification could not be delivered
        """
        raise NotImplementedError
