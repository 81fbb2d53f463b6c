"""Configuration management commands."""

import click


@click.group()
def config() -> None:
    """Configuration commands."""
    pass


@config.command("show")
def config_show() -> None:
    """Show current configuration."""
    from torchdock.cli.progress import console
    from torchdock.cli.service_helpers import handle_result, services

    config_obj = handle_result(services.config.get_config())

    console.print("\n[bold]Current Configuration[/bold]")
    if config_obj._source:
        console.print(f"[dim]Source: {config_obj._source}[/dim]\n")
    else:
        console.print("[dim]Source: defaults (no config file found)[/dim]\n")

    for section_name, section in config_obj.to_dict().items():
        if not section:
            continue
        console.print(f"[bold blue]\\[{section_name}][/bold blue]")
        for key, value in section.items():
            console.print(f"  {key} = {value}", markup=False)
        console.print()


@config.command("init")
@click.option("--output", "-o", default="torchdock.toml", help="Output file path")
@click.option("--force", "-f", is_flag=True, help="Overwrite existing file")
def config_init(output: str, force: bool) -> None:
    """Create a default configuration file."""
    from torchdock.cli.progress import print_error, print_success
    from torchdock.cli.service_helpers import services

    result = services.config.create_default_config(output, force=force)

    if not result.success:
        print_error(result.error)
        if "already exists" in result.error:
            click.echo("Use --force to overwrite.")
        raise SystemExit(1)

    print_success(f"Created configuration file: {output}")


@config.command("path")
def config_path() -> None:
    """Show configuration file search paths."""
    from pathlib import Path

    from torchdock.cli.progress import console
    from torchdock.cli.service_helpers import services

    console.print("\n[bold]Configuration File Search Paths[/bold]\n")
    console.print("Files are merged lowest to highest priority; earlier entries win:\n")

    active_result = services.config.get_config()
    source = active_result.data._source if active_result.success else None
    active_config = Path(source) if source else None

    locations_result = services.config.get_config_locations()
    if locations_result.success:
        for i, location in enumerate(Path(loc) for loc in locations_result.data):
            exists = location.exists()
            status = (
                "[green]✓ ACTIVE[/green]"
                if location == active_config
                else ("[dim]exists[/dim]" if exists else "[dim]not found[/dim]")
            )
            console.print(f"  {i + 1}. {location} {status}")

    console.print()
