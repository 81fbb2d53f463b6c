"""Host pre-flight check command."""

from typing import TYPE_CHECKING

import click

if TYPE_CHECKING:
    from torchdock.models.preflight import PreflightReport


def render_report(report: "PreflightReport") -> None:
    """Print each check and the detected GPUs."""
    from torchdock.cli.progress import console, print_error, print_info, print_success, print_warning

    for check in report.checks:
        if check.severity == "ok":
            print_success(check.message)
        elif check.severity == "warning":
            print_warning(check.message)
        else:
            print_error(check.message)
        if check.hint:
            print_info(check.hint)

    console.print()
    if report.gpus:
        for gpu in report.gpus:
            print_success(f"GPU {gpu.index}: {gpu.name} (Compute Capability: {gpu.compute_capability})")
    else:
        print_warning("No GPUs detected by nvidia-smi")
    console.print()


@click.command()
@click.option(
    "--context",
    "context_dir",
    type=click.Path(exists=True, file_okay=False),
    default=None,
    help="Build context directory (disk space is checked here)",
)
@click.option("--skip-runtime", is_flag=True, help="Skip the NVIDIA container runtime probe")
def preflight(context_dir: str, skip_runtime: bool) -> None:
    """Check the host before building: Docker, NVIDIA runtime, driver, disk, RAM, GPUs."""
    from torchdock.cli.progress import print_error, print_header, print_success, status
    from torchdock.cli.service_helpers import handle_result, services

    svc = services.preflight
    context_dir = context_dir or svc.config.get("build", "context", ".")

    print_header("Pre-flight checks")
    with status("Checking host..."):
        report = handle_result(svc.run(context_dir, skip_runtime=skip_runtime))

    render_report(report)

    if not report.passed:
        print_error("Pre-flight checks failed")
        raise SystemExit(1)
    print_success("Host is ready to build")
