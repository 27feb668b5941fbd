import click
from colorama import Fore, Style
from .. import config as config_module
from .. import resolver
from ..decorators import handle_exceptions

STATE_COLORS = {
    "cached": Fore.GREEN,
    "stale": Fore.YELLOW,
    "incomplete": Fore.YELLOW,
    "source-only": Fore.CYAN,
    "missing": Fore.RED,
}


@click.command()
@click.argument("names", nargs=-1)
@click.pass_context
@handle_exceptions
def status(ctx, names):
    """Show whether each dependency is already built in the cache."""
    path = ctx.obj["path"]
    conf = config_module.load_config(path=path)
    settings = config_module.get_settings(conf, path=path)
    descriptors = config_module.configured_descriptors(conf, names=list(names))
    if not descriptors:
        click.echo("No dependencies configured.")
        return

    for descriptor in descriptors:
        state, paths = resolver.status(descriptor, download_root=settings["download_dir"])
        color = STATE_COLORS.get(state, "")
        click.echo(f"{descriptor.name:<16} {descriptor.version:<12} {color}{state:<12}{Style.RESET_ALL} {paths.install_dir}")
