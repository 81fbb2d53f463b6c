"""
Service Factory
===============

Reusable factory for instantiating services with a shared configuration.

Usage:
    from torchdock.services.factory import ServiceFactory

    factory = ServiceFactory()
    report = factory.preflight.run().data

    # Tests or embedding applications inject their own Config
    factory = ServiceFactory(config=my_config)
"""

from typing import Optional

from torchdock.core.config import Config

from .config import ConfigService
from .container import ContainerService
from .diagnostics import DiagnosticsService
from .image import ImageService
from .preflight import PreflightService
from .rebuild import RebuildService


class ServiceFactory:
    """
    Factory for creating service instances.

    Attributes:
        config: Configuration handed to every service. None means each
                service falls back to the process-wide configuration.
    """

    def __init__(self, config: Optional[Config] = None):
        self.config = config

    def create_preflight_service(self) -> PreflightService:
        return PreflightService(config=self.config)

    def create_image_service(self) -> ImageService:
        return ImageService(config=self.config)

    def create_container_service(self) -> ContainerService:
        return ContainerService(config=self.config)

    def create_rebuild_service(self) -> RebuildService:
        return RebuildService(config=self.config)

    def create_diagnostics_service(self) -> DiagnosticsService:
        return DiagnosticsService(config=self.config)

    def create_config_service(self) -> ConfigService:
        return ConfigService(config=self.config)

    # ========================================================================
    # Property-Based Access
    # ========================================================================

    @property
    def preflight(self) -> PreflightService:
        """Convenience property for create_preflight_service()."""
        return self.create_preflight_service()

    @property
    def image(self) -> ImageService:
        """Convenience property for create_image_service()."""
        return self.create_image_service()

    @property
    def container(self) -> ContainerService:
        """Convenience property for create_container_service()."""
        return self.create_container_service()

    @property
    def rebuild(self) -> RebuildService:
        """Convenience property for create_rebuild_service()."""
        return self.create_rebuild_service()

    @property
    def diagnostics(self) -> DiagnosticsService:
        """Convenience property for create_diagnostics_service()."""
        return self.create_diagnostics_service()

    @property
    def config_service(self) -> ConfigService:
        """Convenience property for create_config_service()."""
        return self.create_config_service()
