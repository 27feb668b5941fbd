import click
import json
from .. import config as config_module
from ..decorators import handle_exceptions


@click.command()
@click.argument("name")
@click.pass_context
@handle_exceptions
def info(ctx, name):
    """Show the effective descriptor of a dependency, project overrides included."""
    conf = config_module.load_config(path=ctx.obj["path"])
    descriptor = config_module.configured_descriptors(conf, names=[name])[0]
    data = descriptor.to_dict()
    data["fingerprint"] = descriptor.fingerprint()
    click.echo(json.dumps(data, indent=4))
