# services/__init__.py
"""
Services Package
================

Application services that sit between the CLI and the core modules.

Architecture:
    View (CLI)
        ↓ (options, config)
    Service
        ↓ (delegates to)
    Core (preflight, dockerfile, docker, rebuild, diagnostics)

Services never raise for expected failures; they return a ServiceResult.
"""

from .base import BaseService, ServiceResult
from .config import ConfigService
from .container import ContainerService
from .diagnostics import DiagnosticsService
from .factory import ServiceFactory
from .image import ImageService
from .preflight import PreflightService
from .rebuild import RebuildService

__all__ = [
    "BaseService",
    "ServiceResult",
    "ServiceFactory",
    "ConfigService",
    "ContainerService",
    "DiagnosticsService",
    "ImageService",
    "PreflightService",
    "RebuildService",
]
