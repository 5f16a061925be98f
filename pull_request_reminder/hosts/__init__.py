"""Source-control hosts (SCM providers) that pull requests are read from."""

import logging
from typing import List

from ..config import TeamConfig
from .base import Host
from .bitbucket import BitbucketCloud
from .github import GithubHost


def get_hosts(config: TeamConfig) -> List[Host]:
    """Return every host that the team has fully configured."""
    hosts = []
    if config.is_bitbucket_configured():
        hosts.append(BitbucketCloud(config))
    else:
        logging.info("Bitbucket is not configured")
    if config.is_github_configured():
        hosts.append(GithubHost(config))
    else:
        logging.info("Github is not configured")
    return hosts


__all__ = [
    'Host',
    'BitbucketCloud',
    'GithubHost',
    'get_hosts',
]
