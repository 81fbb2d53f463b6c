"""Incremental rebuild command (run inside the container)."""

from typing import Optional

import click


@click.command()
@click.option("--source", "source_dir", type=click.Path(file_okay=False), default=None, help="PyTorch checkout (default: [rebuild].source_dir)")
@click.option("--no-links", is_flag=True, help="Do not refresh the torch/lib symlinks")
def rebuild(source_dir: Optional[str], no_links: bool) -> None:
    """Incrementally rebuild PyTorch after editing its sources.

    Only changed files are recompiled. Because PyTorch is installed in
    editable mode, changes can be tested immediately without reinstalling.
    """
    from torchdock.cli.progress import print_info, print_success
    from torchdock.cli.service_helpers import handle_result, services

    print_info("Starting PyTorch incremental rebuild...")
    result = services.rebuild.rebuild(source_dir, refresh_links=not no_links)
    outcome = handle_result(result)

    print_success(result.message)
    if outcome.links:
        print_info(f"Refreshed {len(outcome.links)} library links")
    print_info("You can test your changes immediately without reinstalling.")
