"""Container run/stop commands."""

from typing import Optional, Tuple

import click


@click.command(context_settings={"ignore_unknown_options": True})
@click.option("--image", "image_ref", default=None, help="Image to run (default: [image] name:tag)")
@click.option("--memory", "-m", default=None, help='Memory limit, e.g. "64g" ("" for none)')
@click.option("--workspace", "-w", type=click.Path(file_okay=False), default=None, help="Host directory mounted at /workspace")
@click.option("--no-tty", is_flag=True, help="Run without -it (for scripted commands)")
@click.option("--keep", is_flag=True, help="Keep the container after it exits (no --rm)")
@click.argument("command", nargs=-1, type=click.UNPROCESSED)
def run(
    image_ref: Optional[str],
    memory: Optional[str],
    workspace: Optional[str],
    no_tty: bool,
    keep: bool,
    command: Tuple[str, ...],
) -> None:
    """Run the PyTorch container with GPU passthrough.

    \b
    Examples:
        torchdock run
        torchdock run --workspace ./workspace
        torchdock run --no-tty -- pytorch-info
    """
    from torchdock.cli.service_helpers import exit_with_error, handle_result, services

    svc = services.container
    plan = handle_result(
        svc.run_plan(
            image_ref=image_ref,
            memory=memory,
            workspace=workspace,
            interactive=not no_tty,
            remove=not keep,
            command=list(command),
        )
    )

    result = svc.run(plan)
    if not result.success:
        exit_with_error(result.error, code=result.metadata.get("returncode") or 1)


@click.command()
@click.argument("image_ref", required=False)
def stop(image_ref: Optional[str]) -> None:
    """Stop running containers started from the image.

    Inside a container this just reports that you can exit the shell.
    """
    from torchdock.cli.progress import print_info, print_success
    from torchdock.cli.service_helpers import handle_result, services

    svc = services.container
    if not svc.dockerenv.exists():
        click.echo("Stopping PyTorch Docker containers...")

    result = svc.stop(image_ref)
    outcome = handle_result(result)

    if outcome.inside_container or not outcome.stopped:
        print_info(result.message)
        return

    for container_id in outcome.stopped:
        click.echo(container_id)
    print_success(result.message)
