#!/usr/bin/env python3
"""
Pull Request Reminder
Reminds teams of the pull requests waiting for their review or their merge.
"""

import sys

from pull_request_reminder.main import main


if __name__ == "__main__":
    sys.exit(main())
