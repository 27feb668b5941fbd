import click
from .. import catalog


@click.command(name="list")
def list_deps():
    """List the built-in dependencies."""
    for name in catalog.names():
        descriptor = catalog.get_descriptor(name)
        click.echo(f"{name:<16} {descriptor.version:<12} {descriptor.build_kind.value:<16} {descriptor.description}")
