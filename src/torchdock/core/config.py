"""
Configuration Management
========================

This module provides TOML-based configuration file support for the torchdock CLI.

Configuration files are searched in the following order (highest to lowest priority):
1. Path specified via --config option
2. ./torchdock.toml (current directory)
3. ~/.config/torchdock/config.toml (user config)
4. /etc/torchdock/config.toml (system config)
5. Built-in defaults

Example configuration file (torchdock.toml):

    [image]
    name = "pytorch-cuda13.0-dgx"
    tag = "latest"
    base_image = "nvidia/cuda:13.0.0-cudnn-devel-ubuntu22.04"
    cuda_version = "13.0"
    python_version = "3.10"

    [build]
    max_jobs = 4
    cuda_arch_list = "12.1"
    source_dir = "pytorch"
    cpu_blas = "none"
    extras = ["vision"]

    [build.env]
    USE_FLASH_ATTENTION = "0"

    [run]
    memory = "123g"
    workspace = "./workspace"

    [preflight]
    min_driver_major = 580
    min_disk_gb = 20
    min_ram_gb = 16

    [rebuild]
    source_dir = "/workspace/pytorch"

    [logging]
    level = "WARNING"
"""

import tomllib
from dataclasses import dataclass, field
from pathlib import Path
from typing import Any, Dict, List, Optional, Union

from torchdock.core.logger import get_logger

logger = get_logger(__name__)


# Default configuration values
DEFAULT_CONFIG: Dict[str, Any] = {
    "image": {
        "name": "pytorch-cuda13.0-dgx",
        "tag": "latest",
        "base_image": "nvidia/cuda:13.0.0-cudnn-devel-ubuntu22.04",
        "cuda_version": "13.0",
        "python_version": "3.10",
    },
    "build": {
        "context": ".",
        "dockerfile": "Dockerfile",
        "max_jobs": 8,
        "cuda_arch_list": "12.1",
        "source_dir": "pytorch",
        "clone": False,
        "repository": "https://github.com/pytorch/pytorch.git",
        "cpu_blas": "none",  # "none", "mkl", "openblas"
        "extras": [],  # "vision", "audio"
        "cxxflags": "-Wno-stringop-overflow",
        "env": {},
    },
    "run": {
        "memory": "123g",  # "" = no limit
        "runtime": "nvidia",
        "visible_devices": "all",
        "workspace": "",  # "" = no mount
    },
    "preflight": {
        "min_driver_major": 580,
        "min_disk_gb": 20,
        "min_ram_gb": 16,
        "probe_image": "nvidia/cuda:13.0.0-base-ubuntu22.04",
        "timeout": 120,
    },
    "rebuild": {
        "source_dir": "/workspace/pytorch",
    },
    "logging": {
        "level": "WARNING",
    },
}

# Standard config file locations
CONFIG_LOCATIONS = [
    Path("torchdock.toml"),
    Path("~/.config/torchdock/config.toml").expanduser(),
    Path("/etc/torchdock/config.toml"),
]


@dataclass
class Config:
    """
    Configuration container for torchdock settings.

    Attributes:
        image: Image naming, base image and toolkit versions
        build: Build-time variables and Dockerfile rendering options
        run: Container run options (GPU runtime, memory limit, mounts)
        preflight: Host check thresholds
        rebuild: Incremental rebuild settings (inside the container)
        logging: Logging settings
        _source: Path to the config file that was loaded
    """

    image: Dict[str, Any] = field(default_factory=dict)
    build: Dict[str, Any] = field(default_factory=dict)
    run: Dict[str, Any] = field(default_factory=dict)
    preflight: Dict[str, Any] = field(default_factory=dict)
    rebuild: Dict[str, Any] = field(default_factory=dict)
    logging: Dict[str, Any] = field(default_factory=dict)
    _source: Optional[str] = None

    def get(self, section: str, key: str, default: Any = None) -> Any:
        """Get a configuration value."""
        section_dict = getattr(self, section, {})
        if section_dict is None:
            return default
        return section_dict.get(key, default)

    def set(self, section: str, key: str, value: Any) -> None:
        """Set a configuration value."""
        section_dict = getattr(self, section, None)
        if section_dict is not None:
            section_dict[key] = value

    @property
    def image_ref(self) -> str:
        """Image reference in name:tag form."""
        name = self.get("image", "name", DEFAULT_CONFIG["image"]["name"])
        tag = self.get("image", "tag", "")
        return f"{name}:{tag}" if tag else name

    def to_dict(self) -> Dict[str, Any]:
        """Convert configuration to dictionary."""
        return {
            "image": self.image,
            "build": self.build,
            "run": self.run,
            "preflight": self.preflight,
            "rebuild": self.rebuild,
            "logging": self.logging,
        }

    @classmethod
    def from_dict(cls, data: Dict[str, Any], source: Optional[str] = None) -> "Config":
        """Create Config from dictionary."""
        return cls(
            image=data.get("image", {}),
            build=data.get("build", {}),
            run=data.get("run", {}),
            preflight=data.get("preflight", {}),
            rebuild=data.get("rebuild", {}),
            logging=data.get("logging", {}),
            _source=source,
        )


def load_toml(filepath: Union[str, Path]) -> Dict[str, Any]:
    """
    Load a TOML configuration file.

    Args:
        filepath: Path to the TOML file

    Returns:
        Dictionary with configuration values

    Raises:
        FileNotFoundError: If file doesn't exist
        tomllib.TOMLDecodeError: If the file is not valid TOML
    """
    path = Path(filepath)
    if not path.exists():
        raise FileNotFoundError(f"Configuration file not found: {filepath}")

    with open(path, "rb") as f:
        return tomllib.load(f)


def _format_value(value: Any) -> Optional[str]:
    if isinstance(value, str):
        escaped = value.replace("\\", "\\\\").replace('"', '\\"')
        return f'"{escaped}"'
    if isinstance(value, bool):
        return str(value).lower()
    if isinstance(value, (int, float)):
        return str(value)
    if isinstance(value, list):
        items = ", ".join(_format_value(v) or '""' for v in value)
        return f"[{items}]"
    return None


def save_toml(config: Dict[str, Any], filepath: Union[str, Path]) -> str:
    """
    Save configuration to a TOML file.

    Nested tables one level deep (e.g. [build.env]) are written after their
    parent section. Empty tables and None values are skipped.

    Args:
        config: Configuration dictionary
        filepath: Path to save the file

    Returns:
        Path to the saved file
    """
    path = Path(filepath)
    path.parent.mkdir(parents=True, exist_ok=True)

    lines = []
    for section, values in config.items():
        if not isinstance(values, dict) or not values:
            continue

        lines.append(f"[{section}]")
        subtables = []
        for key, value in values.items():
            if isinstance(value, dict):
                subtables.append((key, value))
                continue
            formatted = _format_value(value)
            if formatted is not None:
                lines.append(f"{key} = {formatted}")
        lines.append("")

        for key, table in subtables:
            if not table:
                continue
            lines.append(f"[{section}.{key}]")
            for sub_key, sub_value in table.items():
                formatted = _format_value(sub_value)
                if formatted is not None:
                    lines.append(f"{sub_key} = {formatted}")
            lines.append("")

    path.write_text("\n".join(lines), encoding="utf-8")

    return str(path)


def find_config_file(config_path: Optional[str] = None) -> Optional[Path]:
    """
    Find the configuration file to use.

    Args:
        config_path: Explicit path to config file (highest priority)

    Returns:
        Path to config file, or None if not found
    """
    if config_path:
        path = Path(config_path)
        if path.exists():
            return path
        logger.warning(f"Specified config file not found: {config_path}")
        return None

    for location in CONFIG_LOCATIONS:
        if location.exists():
            return location

    return None


def load_config(config_path: Optional[str] = None) -> Config:
    """
    Load configuration from a single file or use defaults.

    Args:
        config_path: Optional explicit path to config file

    Returns:
        Config object with merged settings
    """
    config_data = _deep_copy_dict(DEFAULT_CONFIG)

    config_file = find_config_file(config_path)

    if config_file:
        try:
            file_config = load_toml(config_file)
            config_data = _merge_dicts(config_data, file_config)
            logger.info(f"Loaded configuration from {config_file}")
            return Config.from_dict(config_data, source=str(config_file))
        except (OSError, tomllib.TOMLDecodeError) as e:
            logger.warning(f"Error loading config file {config_file}: {e}")

    return Config.from_dict(config_data)


def get_default_config() -> Config:
    """Get the default configuration."""
    return Config.from_dict(_deep_copy_dict(DEFAULT_CONFIG))


def create_default_config_file(filepath: Optional[str] = None) -> str:
    """
    Create a default configuration file.

    Args:
        filepath: Path to create the file (default: ./torchdock.toml)

    Returns:
        Path to the created file
    """
    if filepath is None:
        filepath = "torchdock.toml"

    return save_toml(DEFAULT_CONFIG, filepath)


def _deep_copy_dict(d: Dict[str, Any]) -> Dict[str, Any]:
    """Create a deep copy of a dictionary."""
    result = {}
    for key, value in d.items():
        if isinstance(value, dict):
            result[key] = _deep_copy_dict(value)
        elif isinstance(value, list):
            result[key] = value.copy()
        else:
            result[key] = value
    return result


def _merge_dicts(base: Dict[str, Any], override: Dict[str, Any]) -> Dict[str, Any]:
    """Merge two dictionaries, with override taking precedence."""
    result = _deep_copy_dict(base)
    for key, value in override.items():
        if key in result and isinstance(result[key], dict) and isinstance(value, dict):
            result[key] = _merge_dicts(result[key], value)
        else:
            result[key] = value
    return result


# Global configuration instance
_global_config: Optional[Config] = None


def get_config() -> Config:
    """Get the global configuration instance."""
    global _global_config
    if _global_config is None:
        _global_config = load_config_cascade()
    return _global_config


def set_config(config: Config) -> None:
    """Set the global configuration instance."""
    global _global_config
    _global_config = config


def reset_config() -> None:
    """Reset the global configuration to None (will reload on next access)."""
    global _global_config
    _global_config = None


def get_config_locations() -> List[Path]:
    """
    Get configuration file search locations in priority order.

    Returns:
        List of paths to search, in priority order (highest first)
    """
    return CONFIG_LOCATIONS.copy()


def load_config_cascade(
    explicit_path: Optional[str] = None,
) -> Config:
    """
    Load configuration with full cascade support.

    Merges configs from all levels in priority order:
    defaults -> system -> user -> current dir -> explicit

    Args:
        explicit_path: Explicit config file path (highest priority)

    Returns:
        Config object with merged settings from all sources
    """
    config_data = _deep_copy_dict(DEFAULT_CONFIG)
    source = None

    # Lowest priority first so later files override earlier ones
    for location in reversed(get_config_locations()):
        if location.exists():
            try:
                config_data = _merge_dicts(config_data, load_toml(location))
                source = str(location)
                logger.debug(f"Merged configuration from {location}")
            except (OSError, tomllib.TOMLDecodeError) as e:
                logger.warning(f"Error loading {location}: {e}")

    if explicit_path:
        path = Path(explicit_path)
        if path.exists():
            try:
                config_data = _merge_dicts(config_data, load_toml(path))
                source = str(path)
                logger.debug(f"Merged configuration from {path}")
            except (OSError, tomllib.TOMLDecodeError) as e:
                logger.warning(f"Error loading {path}: {e}")
        else:
            logger.warning(f"Specified config file not found: {explicit_path}")

    return Config.from_dict(config_data, source=source)
