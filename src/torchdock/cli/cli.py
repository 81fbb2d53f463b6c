"""
torchdock CLI - build PyTorch from source in a CUDA container
"""

import logging
from typing import Optional

import click

from torchdock import __version__
from torchdock.core.config import get_config, load_config_cascade, set_config
from torchdock.core.logger import set_level

from .commands import build, config, dockerfile, info, preflight, rebuild, run, stop, version


@click.group()
@click.version_option(version=__version__, prog_name="torchdock")
@click.option(
    "--config",
    "config_path",
    type=click.Path(exists=True, dir_okay=False),
    help="Path to TOML configuration file",
)
@click.option("--verbose", "-v", is_flag=True, help="Enable debug logging")
@click.pass_context
def cli(ctx: click.Context, config_path: Optional[str], verbose: bool) -> None:
    """torchdock - build PyTorch from source in a CUDA container

    Configuration is read from --config, ./torchdock.toml,
    ~/.config/torchdock/config.toml and /etc/torchdock/config.toml.

    Use 'torchdock COMMAND --help' for more information on a command.
    """
    if config_path:
        set_config(load_config_cascade(config_path))

    ctx.obj = get_config()
    set_level(logging.DEBUG if verbose else ctx.obj.get("logging", "level", "WARNING"))


cli.add_command(preflight)
cli.add_command(build)
cli.add_command(dockerfile)
cli.add_command(run)
cli.add_command(stop)
cli.add_command(rebuild)
cli.add_command(info)
cli.add_command(version)
cli.add_command(config)


if __name__ == "__main__":
    cli()
