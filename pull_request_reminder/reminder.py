"""Runs the fetch, classify and notify pass for every configured team."""

import logging
from concurrent.futures import ThreadPoolExecutor, as_completed
from datetime import datetime, timezone
from typing import Dict, List, Optional

from .config import GlobalConfig, TeamConfig
from .errors import FetchError, HostError
from .hosts import Host, get_hosts
from .messages import MessageHandler, get_handlers
from .repository import Repository


def log_ignored_pull_requests(repository: Repository, now: Optional[datetime] = None):
    for pull_request, outcome in repository.classify(now):
        if outcome.is_excluded:
            logging.info(f"{repository.name}: {pull_request.title} ({pull_request.link}) ignored because {outcome.reason}")


def get_repositories_needing_action(hosts: List[Host], now: Optional[datetime] = None) -> List[Repository]:
    """Fetch the repositories of every host and keep those with pull requests needing action.

    Args:
        hosts: The team's configured hosts
        now: Reference time used to classify the pull requests

    Returns:
        Repositories with at least one pull request to review or to merge

    Raises:
        FetchError: If any host fails to return its repositories
    """
    now = now or datetime.now(timezone.utc)
    repositories = []
    for host in hosts:
        try:
            host_repositories = host.get_repositories()
        except HostError as e:
            raise FetchError(host.get_name(), e.repository, e) from e

        for repository in host_repositories:
            log_ignored_pull_requests(repository, now)
            if repository.has_pull_requests_to_display(now):
                repositories.append(repository)
            else:
                logging.debug(f"{repository.name}: no pull request needs action")
    return repositories


def handle_repositories(handlers: List[MessageHandler], repositories: List[Repository],
                        now: Optional[datetime] = None):
    """Send the repositories to every handler; the first failure stops the others."""
    if not repositories:
        logging.info("No pull request needs action, no message will be sent")
        return
    for handler in handlers:
        handler.notify(repositories, now)


def process_team(config: TeamConfig, now: Optional[datetime] = None) -> List[Repository]:
    """Run one complete pass for a team: fetch, classify, notify.

    Returns:
        The repositories that were notified

    Raises:
        FetchError: If a host fails, in which case nothing is sent
        NotificationError: If a handler fails to deliver
    """
    now = now or datetime.now(timezone.utc)
    logging.info(f"Processing team '{config.name}'")
    hosts = get_hosts(config)
    if not hosts:
        logging.warning(f"No host is configured for team '{config.name}'")

    repositories = get_repositories_needing_action(hosts, now)
    logging.info(f"Team '{config.name}': {len(repositories)} repository/repositories need action")
    handle_repositories(get_handlers(config), repositories, now)
    return repositories


def run(config: GlobalConfig, max_workers: int = 4) -> Dict[str, Exception]:
    """Process every team independently, in parallel.

    A failing team does not stop the others.

    Args:
        config: The global configuration
        max_workers: Maximum number of teams processed at the same time

    Returns:
        Dictionary mapping the name of each failed team to its error
    """
    failures: Dict[str, Exception] = {}
    if not config.teams:
        logging.warning("No team is configured")
        return failures

    with ThreadPoolExecutor(max_workers=min(max_workers, len(config.teams))) as executor:
        future_to_team = {
            executor.submit(process_team, team): team
            for team in config.teams
        }

        for future in as_completed(future_to_team):
            team = future_to_team[future]
            try:
                future.result()
            except Exception as e:
                logging.error(f"Error processing team '{team.name}': {e}")
                failures[team.name] = e

    return failures
