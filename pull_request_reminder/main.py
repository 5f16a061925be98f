"""Command-line entry point of the pull request reminder."""

import logging
import os
import sys

from dotenv import load_dotenv

from .config import ConfigReader
from .errors import ConfigError
from .reminder import run


def configure_logging():
    # PRR_LOG_LEVEL from the config reader overrides this once the config is read
    log_level = os.environ.get('PRR_LOG_LEVEL') or os.environ.get('LOG_LEVEL', 'INFO')
    logging.basicConfig(
        level=getattr(logging, log_level.upper(), logging.INFO),
        format='%(asctime)s %(levelname)s: %(message)s',
        datefmt='%m/%d/%Y %I:%M:%S %p'
    )


def main() -> int:
    """Read the configuration and remind every team of its pull requests.

    Returns:
        Exit code: 0 on success, 1 if the config is invalid or any team failed
    """
    load_dotenv()
    configure_logging()

    try:
        config = ConfigReader().read_config()
    except ConfigError as e:
        logging.error(f"Could not read the configuration: {e}")
        return 1

    failures = run(config)
    if failures:
        logging.error(f"{len(failures)} team(s) failed: {', '.join(sorted(failures))}")
        return 1
    logging.info("All teams were processed")
    return 0


if __name__ == "__main__":
    sys.exit(main())
