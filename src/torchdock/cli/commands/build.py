"""Image build and Dockerfile rendering commands."""

from typing import Optional, Tuple

import click


@click.command()
@click.option("--max-jobs", "-j", type=click.IntRange(min=1), default=None, help="Parallel compile jobs (lower for less RAM)")
@click.option("--arch", "cuda_arch_list", default=None, help='TORCH_CUDA_ARCH_LIST, e.g. "12.1" or "9.0;12.1"')
@click.option("--tag", "-t", "image_ref", default=None, help="Image tag (default: [image] name:tag)")
@click.option("--context", default=None, help="Build context directory")
@click.option("--file", "-f", "dockerfile_path", default=None, help="Dockerfile path")
@click.option("--build-arg", "build_args", multiple=True, metavar="KEY=VALUE", help="Extra docker build arg (repeatable)")
@click.option("--no-cache", is_flag=True, help="Build without docker's layer cache")
@click.option("--render/--no-render", default=False, help="Regenerate the Dockerfile before building")
@click.option("--skip-preflight", is_flag=True, help="Skip host checks")
@click.option("--yes", "-y", is_flag=True, help="Continue without asking on warnings")
def build(
    max_jobs: Optional[int],
    cuda_arch_list: Optional[str],
    image_ref: Optional[str],
    context: Optional[str],
    dockerfile_path: Optional[str],
    build_args: Tuple[str, ...],
    no_cache: bool,
    render: bool,
    skip_preflight: bool,
    yes: bool,
) -> None:
    """Build the PyTorch image.

    Runs the pre-flight checks first: errors abort the build, low disk space
    asks for confirmation.

    \b
    Examples:
        torchdock build
        torchdock build --max-jobs 4 --tag pytorch-dev:test
        torchdock build --render --arch "9.0;12.1" -y
    """
    from torchdock.cli.commands.preflight import render_report
    from torchdock.cli.progress import (
        console,
        print_error,
        print_header,
        print_info,
        print_success,
        print_summary,
        print_warning,
        status,
    )
    from torchdock.cli.service_helpers import exit_with_error, handle_result, services
    from torchdock.core.docker import parse_build_args

    try:
        extra_args = parse_build_args(build_args)
    except ValueError as e:
        exit_with_error(str(e))

    image_svc = services.image
    plan = handle_result(
        image_svc.build_plan(
            image_ref=image_ref,
            context=context,
            dockerfile=dockerfile_path,
            max_jobs=max_jobs,
            cuda_arch_list=cuda_arch_list,
            build_args=extra_args,
            no_cache=no_cache,
        )
    )

    if not skip_preflight:
        print_header("Pre-flight checks")
        with status("Checking host..."):
            report = handle_result(services.preflight.run(plan.context))
        render_report(report)

        if not report.passed:
            exit_with_error("Pre-flight checks failed; fix the errors above or use --skip-preflight")
        if report.needs_confirmation and not yes:
            if not click.confirm("Continue with low disk space?"):
                click.echo("Aborted.")
                raise SystemExit(1)

    print_header("Build Configuration")
    print_info(f"Using MAX_JOBS={plan.max_jobs}")
    print_info(f"Using TORCH_CUDA_ARCH_LIST={plan.cuda_arch_list}")
    print_info(f"Building image: {plan.image_ref}")
    console.print()
    print_warning("This will take approximately 30-60 minutes...")

    print_header("Starting Build")
    result = image_svc.build(plan, render=render)

    console.print()
    if not result.success:
        print_header("Build failed!")
        print_error(result.error)
        hints = result.metadata.get("hints")
        if hints:
            print_info("Common issues:")
            for hint in hints:
                console.print(f"  - {hint}")
        raise SystemExit(1)

    build_result = result.data
    print_success("Build completed successfully!")
    print_summary(
        "Build Summary",
        {
            "Image": build_result.image_ref,
            "MAX_JOBS": plan.max_jobs,
            "TORCH_CUDA_ARCH_LIST": plan.cuda_arch_list,
            "Duration (min)": build_result.duration_seconds / 60,
        },
    )
    console.print()
    for label, command in build_result.hints.items():
        print_info(f"{label}:")
        console.print(f"  {command}", markup=False, highlight=False)
        console.print()


@click.command()
@click.option("--output", "-o", default=None, help="Dockerfile path (default: [build].dockerfile)")
@click.option("--context", default=None, help="Directory for helper scripts (default: [build].context)")
@click.option("--max-jobs", "-j", type=click.IntRange(min=1), default=None, help="Default MAX_JOBS baked into the Dockerfile")
@click.option("--arch", "cuda_arch_list", default=None, help="Default TORCH_CUDA_ARCH_LIST")
@click.option("--force", is_flag=True, help="Overwrite an existing Dockerfile")
@click.option("--stdout", "to_stdout", is_flag=True, help="Print instead of writing files")
def dockerfile(
    output: Optional[str],
    context: Optional[str],
    max_jobs: Optional[int],
    cuda_arch_list: Optional[str],
    force: bool,
    to_stdout: bool,
) -> None:
    """Render the Dockerfile and its helper scripts from configuration."""
    from torchdock.cli.progress import print_error, print_success
    from torchdock.cli.service_helpers import handle_result, services

    svc = services.image
    spec = handle_result(svc.image_spec(max_jobs=max_jobs, cuda_arch_list=cuda_arch_list))

    if to_stdout:
        click.echo(handle_result(svc.render_dockerfile(spec)), nl=False)
        return

    result = svc.write_dockerfile(output, force=force, spec=spec, context=context)
    if not result.success:
        print_error(result.error)
        if "already exists" in result.error:
            click.echo("Use --force to overwrite.")
        raise SystemExit(1)

    print_success(f"Wrote {result.data}")
