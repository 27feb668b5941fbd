import click
from .cli_logger import logger
from .commands import *


@click.group()
@click.option("--path", "-p", default=".", help="Path to the project directory.")
@click.option("--verbose", "-v", is_flag=True, help="Echo debug output and every command run.")
@click.pass_context
def cli(ctx, path, verbose):
    """depfetch: fetch, build and cache C/C++ dependencies."""
    logger.verbose = verbose
    ctx.obj = {"path": path}

cli.add_command(ensure)
cli.add_command(status)
cli.add_command(list_deps)
cli.add_command(info)
cli.add_command(clean)
cli.add_command(config)
cli.add_command(log)
cli.add_command(version)

if __name__ == '__main__':
    cli()
