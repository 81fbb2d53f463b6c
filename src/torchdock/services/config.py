# services/config.py
"""
Service for configuration management operations.
"""

from pathlib import Path
from typing import Any, List, Optional

from .base import BaseService, ServiceResult


class ConfigService(BaseService):
    """
    Service for configuration management operations.

    Provides ServiceResult-wrapped methods for configuration access
    and management.
    """

    def get_config(self) -> ServiceResult[Any]:
        """
        Get the current configuration.

        Returns:
            ServiceResult containing the Config object on success
        """
        try:
            config = self.config

            return ServiceResult.ok(
                data=config,
                message=f"Loaded config from {config._source or 'defaults'}",
                source=config._source,
            )
        except Exception as e:
            return ServiceResult.fail(f"Failed to get config: {e}")

    def get_config_locations(self) -> ServiceResult[List[str]]:
        """
        Get configuration file search locations in priority order.

        Returns:
            ServiceResult containing list of path strings
        """
        try:
            from torchdock.core.config import get_config_locations as core_get_locations

            paths = [str(loc) for loc in core_get_locations()]

            return ServiceResult.ok(
                data=paths,
                message=f"Found {len(paths)} config locations",
            )
        except Exception as e:
            return ServiceResult.fail(f"Failed to get config locations: {e}")

    def create_default_config(
        self,
        filepath: Optional[str] = None,
        force: bool = False,
    ) -> ServiceResult[str]:
        """
        Create a default configuration file.

        Args:
            filepath: Path to create the file (default: ./torchdock.toml)
            force: Overwrite if file exists

        Returns:
            ServiceResult containing the created file path on success
        """
        try:
            from torchdock.core.config import create_default_config_file

            path = Path(filepath) if filepath else Path("torchdock.toml")

            if path.exists() and not force:
                return ServiceResult.fail(f"File already exists: {path}")

            result_path = create_default_config_file(str(path))

            return ServiceResult.ok(
                data=result_path,
                message=f"Created config file: {result_path}",
            )
        except Exception as e:
            return ServiceResult.fail(f"Failed to create config file: {e}")
