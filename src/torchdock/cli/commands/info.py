"""Build diagnostics and version commands."""

import click


@click.command()
@click.option("--no-smi", is_flag=True, help="Skip nvidia-smi output")
def info(no_smi: bool) -> None:
    """Show PyTorch build information (run inside the container)."""
    from torchdock.cli.progress import console
    from torchdock.cli.service_helpers import handle_result, services

    data = handle_result(services.diagnostics.torch_info(include_nvidia_smi=not no_smi))

    console.print("\n[bold]PyTorch Build Information:[/bold]")
    console.print(f"  PyTorch version: {data.torch_version}")
    console.print(f"  CUDA available: {data.cuda_available}")
    console.print(f"  CUDA version: {data.cuda_version}")
    console.print(f"  cuDNN version: {data.cudnn_version}")
    console.print(f"  Number of GPUs: {data.device_count}")
    for device in data.devices:
        console.print(f"  GPU {device.index}: {device.name}")
    console.print()

    if data.nvidia_smi:
        console.print(data.nvidia_smi, markup=False, highlight=False)


@click.command()
def version() -> None:
    """Display the current version of torchdock."""
    from torchdock.cli.service_helpers import handle_result, services

    click.echo(f"torchdock v{handle_result(services.diagnostics.version())}")
