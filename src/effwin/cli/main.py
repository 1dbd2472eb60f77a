"""
effwin CLI - main entry point.
"""
import click

from .. import __version__
from .analyze import analyze


@click.group()
@click.version_option(version=__version__)
def cli():
    """effwin - TCP effective window estimation for packet captures."""
    pass


cli.add_command(analyze)

if __name__ == "__main__":
    cli()
