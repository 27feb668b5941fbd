import click
import json
import os
import toml
from .. import config as config_module
from ..cli_logger import logger


def _parse_value(value):
    """Interpret a command-line value as a TOML literal, falling back to a plain string."""
    try:
        return toml.loads(f"value = {value}")["value"]
    except (toml.TomlDecodeError, ValueError):
        return value


def _load_or_report(ctx):
    conf = config_module.load_config(path=ctx.obj["path"])
    if not conf:
        logger.error(f"Error: No {config_module.CONFIG_FILE} found in {os.path.abspath(ctx.obj['path'])}.")
    return conf


@click.group()
@click.pass_context
def config(ctx):
    """View or edit the depfetch.toml configuration file."""
    pass

@config.command()
@click.pass_context
def view(ctx):
    """View the contents of the depfetch.toml file."""
    if not _load_or_report(ctx):
        return
    config_file_path = os.path.join(ctx.obj["path"], config_module.CONFIG_FILE)
    try:
        with open(config_file_path, 'r') as f:
            click.echo(f.read())
    except IOError as e:
        logger.error(f"Error reading {config_module.CONFIG_FILE} at {config_file_path}: {e}")
        logger.info("Please check file permissions.")

@config.command()
@click.pass_context
def edit(ctx):
    """Edit the depfetch.toml file in your default editor."""
    config_file_path = os.path.join(ctx.obj["path"], config_module.CONFIG_FILE)
    try:
        click.edit(filename=config_file_path)
    except click.ClickException as e:
        logger.error(f"Click error editing {config_module.CONFIG_FILE}: {e}")
        logger.info("This might indicate an issue with your editor configuration or environment variables.")

@config.command(name="list")
@click.pass_context
def list_config(ctx):
    """List all configuration keys and values."""
    conf = _load_or_report(ctx)
    if conf:
        click.echo(json.dumps(conf, indent=4))

@config.command()
@click.argument('key')
@click.pass_context
def get(ctx, key):
    """Get a value from the depfetch.toml file, e.g. settings.jobs."""
    conf = _load_or_report(ctx)
    if not conf:
        return

    value = conf
    try:
        for k in key.split('.'):
            value = value[k]
    except (KeyError, TypeError):
        logger.error(f"Error: Key '{key}' not found in {config_module.CONFIG_FILE}")
        return
    click.echo(json.dumps(value, indent=4) if isinstance(value, (dict, list)) else value)

@config.command(name="set")
@click.argument('key')
@click.argument('value')
@click.pass_context
def set_value(ctx, key, value):
    """Set a value in depfetch.toml, creating the file if needed.

    VALUE is read as a TOML literal, so `true`, `4` and `["-DFOO"]` keep their type.
    """
    conf = config_module.load_config(path=ctx.obj["path"])

    keys = key.split('.')
    d = conf
    for k in keys[:-1]:
        d = d.setdefault(k, {})
        if not isinstance(d, dict):
            logger.error(f"Error: '{k}' in '{key}' is not a table")
            return
    d[keys[-1]] = _parse_value(value)

    if config_module.save_config(conf, path=ctx.obj["path"]):
        logger.info(f"Set '{key}' to '{value}'")

@config.command()
@click.argument('key')
@click.pass_context
def unset(ctx, key):
    """Remove a key from the depfetch.toml file."""
    conf = _load_or_report(ctx)
    if not conf:
        return

    keys = key.split('.')
    d = conf
    try:
        for k in keys[:-1]:
            d = d[k]
        del d[keys[-1]]
    except (KeyError, TypeError):
        logger.error(f"Error: Key '{key}' not found in {config_module.CONFIG_FILE}")
        return
    if config_module.save_config(conf, path=ctx.obj["path"]):
        logger.info(f"Unset '{key}'")
