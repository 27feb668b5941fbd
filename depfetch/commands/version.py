import click
import importlib.metadata
from ..cli_logger import logger

@click.command()
def version():
    """Print the version of depfetch."""
    try:
        ver = importlib.metadata.version("depfetch")
        logger.info(f"depfetch version {ver}")
    except importlib.metadata.PackageNotFoundError:
        logger.error("Error: Could not determine the version of depfetch. Is it installed correctly?")
