"""
Unit tests for configuration loading
"""

import io
import logging

import pytest
from datetime import timedelta
from unittest.mock import MagicMock, patch

from pull_request_reminder.config import (
    DEFAULT_CONFIG_FILE,
    BitbucketConfig,
    ConfigReader,
    EnvironmentConfig,
    GithubConfig,
    TeamConfig,
    get_s3_config_read_func,
    parse_duration,
    parse_global_config,
    read_file_config,
)
from pull_request_reminder.errors import ConfigError
from pull_request_reminder.models import User

TEST_CONFIG = """
teams:
  - name: my-team
    age_before_notifying: 24h
    number_of_approvals: 2
    review_prs_from_non_members: true
    hosts:
      bitbucket:
        repositories:
          - jdoe/repo
        team: my-workspace
        find_users_in_team: true
      github:
        repositories: [jdoe/other-repo]
    messaging:
      slack:
        channel: "#my-channel"
        message_users_individually: true
        debug_user: "@admin"
    users:
      - name: John Doe
        bitbucket_uuid: "{jdoe}"
        github_username: jdoe
        slack_username: U0001
      - name: Jane Doe
        github_username: janedoe
"""


def get_test_env_config(path=''):
    return EnvironmentConfig(
        config_file_path=path,
        bitbucket_username='BB_USER',
        bitbucket_password='BB_PASSWORD',
        github_token='GH_TOKEN',
        slack_token='xoxb-stuff',
    )


class TestParseDuration:
    """Test cases for duration parsing."""

    @pytest.mark.parametrize('value,expected', [
        ('24h', timedelta(hours=24)),
        ('1h30m', timedelta(hours=1, minutes=30)),
        ('45m', timedelta(minutes=45)),
        ('10s', timedelta(seconds=10)),
        ('1.5h', timedelta(minutes=90)),
        ('500ms', timedelta(milliseconds=500)),
        ('3600', timedelta(hours=1)),
        (60, timedelta(minutes=1)),
        (None, timedelta(0)),
        ('', timedelta(0)),
    ])
    def test_valid_durations(self, value, expected):
        """Test the supported duration formats."""
        assert parse_duration(value) == expected

    @pytest.mark.parametrize('value', ['abc', '24 hours', 'h', '10x', '1h-'])
    def test_invalid_durations(self, value):
        """Test that invalid durations raise a ConfigError."""
        with pytest.raises(ConfigError):
            parse_duration(value)


class TestParseGlobalConfig:
    """Test cases for parsing the YAML configuration."""

    def test_full_config(self):
        """Test that every field is read."""
        config = parse_global_config(TEST_CONFIG)

        assert len(config.teams) == 1
        team = config.teams[0]
        assert team.name == 'my-team'
        assert team.age_before_notifying == timedelta(hours=24)
        assert team.number_of_approvals == 2
        assert team.review_prs_from_non_members is True
        assert team.bitbucket.repositories == ['jdoe/repo']
        assert team.bitbucket.team == 'my-workspace'
        assert team.bitbucket.find_users_in_team is True
        assert team.github.repositories == ['jdoe/other-repo']
        assert team.slack.channel == '#my-channel'
        assert team.slack.message_users_individually is True
        assert team.slack.debug_user == '@admin'
        assert team.users == [
            User(name='John Doe', bitbucket_uuid='{jdoe}', github_username='jdoe', slack_username='U0001'),
            User(name='Jane Doe', github_username='janedoe'),
        ]

    def test_policy(self):
        """Test the policy derived from a team's config."""
        policy = parse_global_config(TEST_CONFIG).teams[0].policy
        assert policy.number_of_approvals == 2
        assert policy.age_before_notifying == timedelta(hours=24)
        assert policy.review_prs_from_non_members is True

    def test_defaults(self):
        """Test the defaults of a minimal team."""
        team = parse_global_config("teams:\n  - name: minimal\n").teams[0]
        assert team.number_of_approvals == 1
        assert team.age_before_notifying == timedelta(0)
        assert team.review_prs_from_non_members is False
        assert team.users == []

    @pytest.mark.parametrize('content', ['', '{}', 'teams: []'])
    def test_empty_config(self, content):
        """Test that empty configs have no teams."""
        assert parse_global_config(content).teams == []

    @pytest.mark.parametrize('content', [
        'teams: [',
        '- just a list',
        'teams: my-team',
        'teams:\n  - hosts: [a, b]',
        'teams:\n  - number_of_approvals: many',
        'teams:\n  - age_before_notifying: soon',
    ])
    def test_invalid_config(self, content):
        """Test that invalid configs raise a ConfigError."""
        with pytest.raises(ConfigError):
            parse_global_config(content)


class TestTeamConfig:
    """Test cases for the team configuration helpers."""

    def test_empty_team_config(self):
        """Test that nothing is configured by default."""
        config = TeamConfig(users=[User()])
        assert not config.is_bitbucket_configured()
        assert config.get_bitbucket_users() == {}
        assert not config.is_github_configured()
        assert config.get_github_users() == {}
        assert not config.is_slack_configured()

    def test_bitbucket_team_config(self):
        """Test that Bitbucket needs repositories, users and credentials."""
        user = User(bitbucket_uuid='{test}')
        config = TeamConfig(users=[user])
        assert config.get_bitbucket_users() == {'{test}': user}
        assert not config.is_bitbucket_configured()

        config.bitbucket = BitbucketConfig(username='test', password='test', repositories=['test'])
        assert config.is_bitbucket_configured()

    def test_bitbucket_find_users_in_team(self):
        """Test that users without UUID are enough when they are looked up in the team."""
        config = TeamConfig(users=[User(name='John Doe')])
        config.bitbucket = BitbucketConfig(username='test', password='test', repositories=['test'])
        assert not config.is_bitbucket_configured()

        config.bitbucket.find_users_in_team = True
        assert config.is_bitbucket_configured()

    def test_github_team_config(self):
        """Test that GitHub needs repositories, users and a token."""
        user = User(github_username='test')
        config = TeamConfig(users=[user])
        assert config.get_github_users() == {'test': user}
        assert not config.is_github_configured()

        config.github = GithubConfig(token='test', repositories=['test'])
        assert config.is_github_configured()

    def test_number_of_needed_approvals(self):
        """Test that at least one approval is always needed."""
        assert TeamConfig(number_of_approvals=0).get_number_of_needed_approvals() == 1
        assert TeamConfig(number_of_approvals=-2).policy.number_of_approvals == 1
        assert TeamConfig(number_of_approvals=3).get_number_of_needed_approvals() == 3


class TestEnvironmentConfig:
    """Test cases for reading settings from the environment."""

    def test_defaults(self):
        """Test the defaults when nothing is set."""
        env_config = EnvironmentConfig.from_environ({})
        assert env_config.config_file_path == DEFAULT_CONFIG_FILE
        assert env_config.github_token == ''

    def test_from_environ(self):
        """Test that PRR_ variables are read."""
        env_config = EnvironmentConfig.from_environ({
            'PRR_BITBUCKET_PASSWORD': 'bb_pass',
            'PRR_BITBUCKET_USERNAME': 'bb_user',
            'PRR_GITHUB_TOKEN': 'gh_token',
            'PRR_SLACK_TOKEN': 'xoxb_test',
            'PRR_CONFIG': 's3://bucket/key',
            'PRR_LOG_LEVEL': 'DEBUG',
        })
        assert env_config.log_level == 'DEBUG'
        assert env_config.bitbucket_password == 'bb_pass'
        assert env_config.bitbucket_username == 'bb_user'
        assert env_config.github_token == 'gh_token'
        assert env_config.slack_token == 'xoxb_test'
        assert env_config.config_file_path == 's3://bucket/key'


class TestConfigReader:
    """Test cases for the config reader."""

    @pytest.fixture(autouse=True)
    def restore_log_level(self):
        root = logging.getLogger()
        level = root.level
        yield
        root.setLevel(level)

    def test_reading_config_sets_environment_variables(self):
        """Test that secrets missing from the file are taken from the environment."""
        env_config = get_test_env_config()
        reader = ConfigReader(env_config, read_func=lambda path: parse_global_config(TEST_CONFIG))

        team = reader.read_config().teams[0]

        assert team.bitbucket.username == 'BB_USER'
        assert team.bitbucket.password == 'BB_PASSWORD'
        assert team.github.token == 'GH_TOKEN'
        assert team.slack.token == 'xoxb-stuff'

    def test_file_secrets_win_over_environment(self):
        """Test that secrets set in the file are kept."""
        content = "teams:\n  - hosts:\n      github:\n        token: from-file\n"
        reader = ConfigReader(get_test_env_config(), read_func=lambda path: parse_global_config(content))
        assert reader.read_config().teams[0].github.token == 'from-file'

    def test_read_file_config(self, tmp_path):
        """Test reading the config from a local file."""
        config_file = tmp_path / DEFAULT_CONFIG_FILE
        config_file.write_text(TEST_CONFIG, encoding='utf-8')

        reader = ConfigReader(get_test_env_config(str(config_file)))
        assert reader.read_func is read_file_config

        config = reader.read_config()
        assert len(config.teams) == 1
        assert config.teams[0].name == 'my-team'

    def test_missing_file(self, tmp_path):
        """Test that a missing file raises a ConfigError."""
        with pytest.raises(ConfigError, match='Unable to read the config file'):
            read_file_config(str(tmp_path / 'missing'))

    def test_log_level_is_applied(self):
        """Test that PRR_LOG_LEVEL sets the root logger's level."""
        env_config = get_test_env_config()
        env_config.log_level = 'debug'
        ConfigReader(env_config, read_func=lambda path: parse_global_config('')).read_config()
        assert logging.getLogger().level == logging.DEBUG

    def test_s3_reader_is_used_for_s3_paths(self):
        """Test that s3:// paths are read from S3."""
        with patch('pull_request_reminder.config.boto3') as mock_boto3:
            reader = ConfigReader(get_test_env_config('s3://bucket/key'))
        mock_boto3.client.assert_called_once_with('s3')
        assert reader.read_func is not read_file_config

    def test_read_s3_config(self):
        """Test downloading the config from S3."""
        client = MagicMock()
        client.get_object.return_value = {'Body': io.BytesIO(TEST_CONFIG.encode('utf-8'))}
        reader = ConfigReader(get_test_env_config('s3://bucket-name/path/to/config'),
                              read_func=get_s3_config_read_func(client))

        config = reader.read_config()

        client.get_object.assert_called_once_with(Bucket='bucket-name', Key='path/to/config')
        assert len(config.teams) == 1

    def test_s3_errors(self):
        """Test that S3 failures raise a ConfigError."""
        client = MagicMock()
        client.get_object.side_effect = Exception('Access Denied')
        read = get_s3_config_read_func(client)

        with pytest.raises(ConfigError, match='Failed to download the config file from S3'):
            read('s3://bucket/key')
        with pytest.raises(ConfigError, match='Failed to parse the given S3 config path'):
            read('s3://bucket')
