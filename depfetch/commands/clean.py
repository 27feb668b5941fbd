import click
import os
import shutil
from .. import cache
from .. import config as config_module
from ..cli_logger import logger
from ..decorators import handle_exceptions


@click.command()
@click.argument("names", nargs=-1)
@click.option("--all", "clean_all", is_flag=True, help="Remove the whole download directory.")
@click.pass_context
@handle_exceptions
def clean(ctx, names, clean_all):
    """Remove cached sources, builds and installs of dependencies."""
    path = ctx.obj["path"]
    settings = config_module.get_settings(config_module.load_config(path=path), path=path)
    download_dir = settings["download_dir"]

    if clean_all:
        if not os.path.isdir(download_dir):
            logger.info("Nothing to clean.")
            return
        logger.info(f"Attempting to remove directory {download_dir}...")
        shutil.rmtree(download_dir)
        logger.success(f"Removed directory {download_dir}")
        return

    if not names:
        raise click.UsageError("Name the dependencies to clean, or pass --all.")

    items_removed = 0
    for name in names:
        try:
            removed = cache.remove_cache(name, download_dir)
        except ValueError as e:
            logger.error(str(e))
            continue
        if removed:
            logger.success(f"Removed {name} from {download_dir}")
            items_removed += 1
        else:
            logger.info(f"{name} is not cached.")

    if items_removed > 0:
        logger.success(f"Cleaning complete. Removed {items_removed} items.")
