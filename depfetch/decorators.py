import functools
import sys

import click

from .cli_logger import logger
from .exceptions import DependencyError, DepfetchError


def handle_exceptions(func):
    """Report failures of a CLI command and exit with status 1."""
    @functools.wraps(func)
    def wrapper(*args, **kwargs):
        try:
            return func(*args, **kwargs)
        except click.Abort:
            logger.warning("Command aborted by user.")
            sys.exit(1)
        except DependencyError as e:
            logger.error(str(e))
            if e.hint:
                for line in e.hint.splitlines():
                    logger.step_info(line, indent=2)
            sys.exit(1)
        except DepfetchError as e:
            logger.error(f"Error: {e}")
            sys.exit(1)
        except click.ClickException:
            raise
        except Exception as e:
            logger.error(f"An unexpected error occurred: {e}")
            logger.exception(*sys.exc_info())
            sys.exit(1)
    return wrapper
