"""Configuration loading for the pull request reminder.

The configuration file lists teams; each team is handled independently and
carries everything needed to handle it: hosts, messaging and users. The file
is read from a local path or from S3, and secrets missing from it are filled
in from ``PRR_*`` environment variables.
"""

import logging
import os
import re
from dataclasses import dataclass, field
from datetime import timedelta
from typing import Callable, Dict, List, Optional
from urllib.parse import urlparse

import boto3
import yaml

from .classification import TeamPolicy
from .errors import ConfigError
from .models import User

DEFAULT_CONFIG_FILE = '.prr-config'
ENV_PREFIX = 'PRR_'

_DURATION_PART = re.compile(r'(\d+(?:\.\d+)?)(h|ms|m|s)')
_DURATION_UNITS = {'h': 3600, 'm': 60, 's': 1, 'ms': 0.001}


def parse_duration(value) -> timedelta:
    """Parse a duration such as '36h', '1h30m' or a number of seconds.

    Args:
        value: Duration string, number of seconds or None

    Returns:
        The parsed duration (zero for None or an empty string)

    Raises:
        ConfigError: If the value is not a valid duration
    """
    if value is None or value == '':
        return timedelta(0)
    if isinstance(value, timedelta):
        return value
    if isinstance(value, (int, float)) and not isinstance(value, bool):
        return timedelta(seconds=value)

    text = str(value).strip()
    if text.isdigit():
        return timedelta(seconds=int(text))
    position, seconds = 0, 0.0
    for match in _DURATION_PART.finditer(text):
        if match.start() != position:
            break
        seconds += float(match.group(1)) * _DURATION_UNITS[match.group(2)]
        position = match.end()
    if position == 0 or position != len(text):
        raise ConfigError(f"Invalid duration: {value!r}")
    return timedelta(seconds=seconds)


@dataclass
class EnvironmentConfig:
    """Settings read from the environment (all prefixed with PRR_)."""
    config_file_path: str = DEFAULT_CONFIG_FILE
    log_level: str = ''
    bitbucket_username: str = ''
    bitbucket_password: str = ''
    github_token: str = ''
    slack_token: str = ''

    @classmethod
    def from_environ(cls, environ=None) -> 'EnvironmentConfig':
        environ = os.environ if environ is None else environ

        def get(key: str) -> str:
            return environ.get(ENV_PREFIX + key.upper(), '')

        return cls(
            config_file_path=get('config') or DEFAULT_CONFIG_FILE,
            log_level=get('log_level'),
            bitbucket_username=get('bitbucket_username'),
            bitbucket_password=get('bitbucket_password'),
            github_token=get('github_token'),
            slack_token=get('slack_token'),
        )


@dataclass
class BitbucketConfig:
    username: str = ''
    password: str = ''
    repositories: List[str] = field(default_factory=list)
    team: str = ''
    find_users_in_team: bool = False


@dataclass
class GithubConfig:
    token: str = ''
    repositories: List[str] = field(default_factory=list)


@dataclass
class SlackConfig:
    channel: str = ''
    token: str = ''
    message_users_individually: bool = False
    debug_user: str = ''


@dataclass
class TeamConfig:
    """Everything needed to handle one team."""
    name: str = ''
    age_before_notifying: timedelta = timedelta(0)
    number_of_approvals: int = 1
    review_prs_from_non_members: bool = False
    bitbucket: BitbucketConfig = field(default_factory=BitbucketConfig)
    github: GithubConfig = field(default_factory=GithubConfig)
    slack: SlackConfig = field(default_factory=SlackConfig)
    users: List[User] = field(default_factory=list)

    @property
    def policy(self) -> TeamPolicy:
        return TeamPolicy(
            number_of_approvals=self.get_number_of_needed_approvals(),
            age_before_notifying=self.age_before_notifying,
            review_prs_from_non_members=self.review_prs_from_non_members,
        )

    def get_number_of_needed_approvals(self) -> int:
        return max(1, self.number_of_approvals or 1)

    def get_bitbucket_users(self) -> Dict[str, User]:
        """Return the team's users that have a Bitbucket UUID, keyed by it."""
        return {user.bitbucket_uuid: user for user in self.users if user.bitbucket_uuid}

    def get_github_users(self) -> Dict[str, User]:
        """Return the team's users that have a GitHub username, keyed by it."""
        return {user.github_username: user for user in self.users if user.github_username}

    def is_bitbucket_configured(self) -> bool:
        """Return True if all necessary configurations are set to handle Bitbucket."""
        if self.bitbucket.find_users_in_team:
            has_users = len(self.users) > 0
        else:
            has_users = len(self.get_bitbucket_users()) > 0
        return (len(self.bitbucket.repositories) > 0 and has_users
                and bool(self.bitbucket.username) and bool(self.bitbucket.password))

    def is_github_configured(self) -> bool:
        """Return True if all necessary configurations are set to handle GitHub."""
        return (len(self.github.repositories) > 0 and len(self.get_github_users()) > 0
                and bool(self.github.token))

    def is_slack_configured(self) -> bool:
        return bool(self.slack.token) and bool(self.slack.channel or self.slack.debug_user)

    def set_environment_config(self, env_config: EnvironmentConfig):
        """Fill in secrets that the config file left empty from the environment."""
        if not self.bitbucket.username:
            self.bitbucket.username = env_config.bitbucket_username
        if not self.bitbucket.password:
            self.bitbucket.password = env_config.bitbucket_password
        if not self.github.token:
            self.github.token = env_config.github_token
        if not self.slack.token:
            self.slack.token = env_config.slack_token


@dataclass
class GlobalConfig:
    """The whole configuration file."""
    teams: List[TeamConfig] = field(default_factory=list)


def _section(raw: dict, key: str) -> dict:
    value = raw.get(key) or {}
    if not isinstance(value, dict):
        raise ConfigError(f"'{key}' must be a mapping, got {type(value).__name__}")
    return value


def _string_list(raw: dict, key: str) -> List[str]:
    value = raw.get(key) or []
    if isinstance(value, str):
        value = [value]
    if not isinstance(value, list):
        raise ConfigError(f"'{key}' must be a list, got {type(value).__name__}")
    return [str(item) for item in value if item]


def _parse_user(raw: dict) -> User:
    if not isinstance(raw, dict):
        raise ConfigError(f"Each user must be a mapping, got {raw!r}")
    return User(
        name=str(raw.get('name') or ''),
        bitbucket_uuid=str(raw.get('bitbucket_uuid') or ''),
        github_username=str(raw.get('github_username') or ''),
        slack_username=str(raw.get('slack_username') or ''),
    )


def parse_team_config(raw: dict) -> TeamConfig:
    """Build a TeamConfig from one entry of the 'teams' list."""
    if not isinstance(raw, dict):
        raise ConfigError(f"Each team must be a mapping, got {raw!r}")

    hosts = _section(raw, 'hosts')
    bitbucket = _section(hosts, 'bitbucket')
    github = _section(hosts, 'github')
    slack = _section(_section(raw, 'messaging'), 'slack')

    try:
        number_of_approvals = int(raw.get('number_of_approvals') or 1)
    except (TypeError, ValueError):
        raise ConfigError(f"Invalid number_of_approvals: {raw.get('number_of_approvals')!r}")

    return TeamConfig(
        name=str(raw.get('name') or ''),
        age_before_notifying=parse_duration(raw.get('age_before_notifying')),
        number_of_approvals=number_of_approvals,
        review_prs_from_non_members=bool(raw.get('review_prs_from_non_members', False)),
        bitbucket=BitbucketConfig(
            username=str(bitbucket.get('username') or ''),
            password=str(bitbucket.get('password') or ''),
            repositories=_string_list(bitbucket, 'repositories'),
            team=str(bitbucket.get('team') or ''),
            find_users_in_team=bool(bitbucket.get('find_users_in_team', False)),
        ),
        github=GithubConfig(
            token=str(github.get('token') or ''),
            repositories=_string_list(github, 'repositories'),
        ),
        slack=SlackConfig(
            channel=str(slack.get('channel') or ''),
            token=str(slack.get('token') or ''),
            message_users_individually=bool(slack.get('message_users_individually', False)),
            debug_user=str(slack.get('debug_user') or ''),
        ),
        users=[_parse_user(user) for user in raw.get('users') or []],
    )


def parse_global_config(content: str) -> GlobalConfig:
    """Parse the YAML content of a configuration file."""
    try:
        data = yaml.safe_load(content)
    except yaml.YAMLError as e:
        raise ConfigError(f"Invalid YAML in config file: {e}")

    if data is None:
        return GlobalConfig()
    if not isinstance(data, dict):
        raise ConfigError("The config file must contain a mapping at its top level")

    teams = data.get('teams') or []
    if not isinstance(teams, list):
        raise ConfigError("'teams' must be a list")
    return GlobalConfig(teams=[parse_team_config(team) for team in teams])


def read_file_config(config_file_path: str) -> GlobalConfig:
    try:
        with open(config_file_path, 'r', encoding='utf-8') as f:
            content = f.read()
    except OSError as e:
        raise ConfigError(f"Unable to read the config file: {e}")
    return parse_global_config(content)


def get_s3_config_read_func(client) -> Callable[[str], GlobalConfig]:
    """Return a function reading the config from an s3://bucket/key path with the given client."""

    def read_s3_config(s3_path: str) -> GlobalConfig:
        parsed = urlparse(s3_path)
        bucket, key = parsed.netloc, parsed.path.lstrip('/')
        if not bucket or not key:
            raise ConfigError(f"Failed to parse the given S3 config path: {s3_path}")

        logging.debug(f"Downloading config from bucket '{bucket}', key '{key}'")
        try:
            response = client.get_object(Bucket=bucket, Key=key)
            content = response['Body'].read()
        except Exception as e:
            raise ConfigError(f"Failed to download the config file from S3, {e}")

        if isinstance(content, bytes):
            content = content.decode('utf-8')
        return parse_global_config(content)

    return read_s3_config


class ConfigReader:
    """Reads the global configuration from a file or S3, completed by the environment."""

    def __init__(self, env_config: Optional[EnvironmentConfig] = None,
                 read_func: Optional[Callable[[str], GlobalConfig]] = None):
        self.env_config = env_config or EnvironmentConfig.from_environ()
        if read_func is None:
            if self.env_config.config_file_path.startswith('s3://'):
                read_func = get_s3_config_read_func(boto3.client('s3'))
            else:
                read_func = read_file_config
        self.read_func = read_func

    def read_config(self) -> GlobalConfig:
        """Read the configuration and apply the environment to every team.

        Raises:
            ConfigError: If the configuration cannot be read or parsed
        """
        if self.env_config.log_level:
            level = getattr(logging, self.env_config.log_level.upper(), None)
            if isinstance(level, int):
                logging.getLogger().setLevel(level)
            else:
                logging.warning(f"Invalid log level '{self.env_config.log_level}', keeping the current one")

        logging.info(f"Reading config from {self.env_config.config_file_path}")
        config = self.read_func(self.env_config.config_file_path)
        for team in config.teams:
            team.set_environment_config(self.env_config)
        logging.info(f"Loaded config with {len(config.teams)} team(s)")
        return config
