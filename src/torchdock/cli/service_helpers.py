"""
CLI Service Helpers
===================

CLI-specific utilities for working with services and the ServiceFactory.

Usage:
    from torchdock.cli.service_helpers import services, handle_result

    report = handle_result(services.preflight.run())  # Exits on failure
"""

from typing import TYPE_CHECKING, TypeVar

import click

if TYPE_CHECKING:
    from torchdock.services import ServiceFactory
    from torchdock.services.base import ServiceResult
    from torchdock.services.config import ConfigService
    from torchdock.services.container import ContainerService
    from torchdock.services.diagnostics import DiagnosticsService
    from torchdock.services.image import ImageService
    from torchdock.services.preflight import PreflightService
    from torchdock.services.rebuild import RebuildService

T = TypeVar("T")


# ============================================================================
# Singleton Factory Instance
# ============================================================================

_factory: "ServiceFactory | None" = None


def get_factory() -> "ServiceFactory":
    """
    Get the singleton ServiceFactory instance for CLI.

    This is lazily initialized on first access. For testing, use
    set_factory() to inject a factory with a custom Config.
    """
    global _factory
    if _factory is None:
        from torchdock.services import ServiceFactory

        _factory = ServiceFactory()
    return _factory


def set_factory(factory: "ServiceFactory") -> None:
    """Set a custom ServiceFactory instance."""
    global _factory
    _factory = factory


def reset_factory() -> None:
    """Reset the singleton factory instance."""
    global _factory
    _factory = None


class _ServiceAccessor:
    """Lazy property-based access to services through the singleton factory."""

    @property
    def preflight(self) -> "PreflightService":
        return get_factory().preflight

    @property
    def image(self) -> "ImageService":
        return get_factory().image

    @property
    def container(self) -> "ContainerService":
        return get_factory().container

    @property
    def rebuild(self) -> "RebuildService":
        return get_factory().rebuild

    @property
    def diagnostics(self) -> "DiagnosticsService":
        return get_factory().diagnostics

    @property
    def config(self) -> "ConfigService":
        return get_factory().config_service


services = _ServiceAccessor()


# ============================================================================
# Result Handling Utilities
# ============================================================================


def handle_result(result: "ServiceResult[T]") -> T:
    """
    Handle a service result, exiting with error if failed.

    Returns:
        The result data if successful

    Raises:
        SystemExit: If result indicates failure (exits with code 1)
    """
    if not result.success:
        exit_with_error(result.error or "Unknown error")
    return result.data


def exit_with_error(message: str, code: int = 1) -> None:
    """
    Print error message and exit.

    Raises:
        SystemExit: Always exits with specified code
    """
    click.echo(f"Error: {message}", err=True)
    raise SystemExit(code)


__all__ = [
    "services",
    "get_factory",
    "set_factory",
    "reset_factory",
    "handle_result",
    "exit_with_error",
]
