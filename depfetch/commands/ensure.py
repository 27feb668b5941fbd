import click
from .. import config as config_module
from .. import resolver
from ..cli_logger import logger
from ..decorators import handle_exceptions
from ..link_plan import render_cmake, render_json, write_link_file


@click.command()
@click.argument("names", nargs=-1)
@click.option("--json", "as_json", is_flag=True, help="Print the link plans as JSON instead of writing the CMake link file.")
@click.pass_context
@handle_exceptions
def ensure(ctx, names, as_json):
    """Fetch, build and install dependencies that are not cached yet."""
    path = ctx.obj["path"]
    conf = config_module.load_config(path=path)
    settings = config_module.get_settings(conf, path=path)
    descriptors = config_module.configured_descriptors(conf, names=list(names))
    if not descriptors:
        logger.warning(f"No dependencies selected. Name them on the command line or list them under [dependencies] in {config_module.CONFIG_FILE}.")
        return

    logger.info(f"Resolving {len(descriptors)} dependencies into {settings['download_dir']}")
    plans = resolver.ensure_all(
        descriptors,
        download_root=settings["download_dir"],
        jobs=settings["jobs"],
        timeout=settings["timeout"],
        project_path=path,
    )

    if as_json:
        click.echo(render_json(plans))
        return
    write_link_file(settings["link_file"], render_cmake(plans))
    logger.success(f"Link plan written to {settings['link_file']}")
