"""YAML configuration for seal-link.

Settings live in ``.seal-link/config.yaml`` in the current directory (local)
and in ``~/.seal-link/config.yaml`` (global). Local values shadow global ones.
Keys are flat dotted names such as ``seal.template_id``; values may be strings
or YAML lists (for pattern settings).
"""

from pathlib import Path
from typing import Any, Literal

import structlog
import yaml

logger = structlog.get_logger()

CONFIG_DIR_NAME = ".seal-link"
CONFIG_FILE_NAME = "config.yaml"


def global_config_dir() -> Path:
    return Path.home() / CONFIG_DIR_NAME


def _read_yaml(path: Path) -> dict[str, Any]:
    """Read a config file, treating a missing file as empty.

    Raises:
        ValueError: If the file cannot be read or does not hold a mapping
    """
    if not path.exists():
        logger.debug("No config file", path=str(path))
        return {}

    try:
        with open(path, "r") as f:
            data = yaml.safe_load(f)
    except (OSError, yaml.YAMLError) as e:
        logger.error("Failed to load config", path=str(path), error=str(e))
        raise ValueError(f"Failed to load config from {path}: {e}") from e

    if data is None:
        return {}
    if not isinstance(data, dict):
        raise ValueError(f"Config file {path} must contain a mapping")
    return data


class Config:
    """Local or global seal-link configuration.

    A local config falls back to the global file for keys it does not set.
    Nothing is written to disk until a value is set, so reading config inside
    a CI workspace leaves the checkout untouched.
    """

    def __init__(self, use_global: bool = False, config_dir: Path | None = None) -> None:
        """Load the config file for the chosen scope.

        Args:
            use_global: Read and write the global file only
            config_dir: Explicit directory holding ``config.yaml``, used instead of the default location
        """
        self.is_global = use_global
        if config_dir is not None:
            self.config_dir = Path(config_dir)
        else:
            self.config_dir = global_config_dir() if use_global else Path.cwd() / CONFIG_DIR_NAME
        self.config_file = self.config_dir / CONFIG_FILE_NAME

        self._values = _read_yaml(self.config_file)
        self._fallback: dict[str, Any] = {}
        fallback_file = global_config_dir() / CONFIG_FILE_NAME
        if not self.is_global and fallback_file != self.config_file:
            try:
                self._fallback = _read_yaml(fallback_file)
            except ValueError as e:
                logger.warning("Ignoring unreadable global config", error=str(e))

        logger.debug("Config loaded", config_file=str(self.config_file), is_global=self.is_global, keys=len(self._values))

    def _write(self) -> None:
        try:
            self.config_dir.mkdir(parents=True, exist_ok=True)
            with open(self.config_file, "w") as f:
                yaml.safe_dump(self._values, f, default_flow_style=False, sort_keys=True)
        except OSError as e:
            logger.error("Failed to write config", path=str(self.config_file), error=str(e))
            raise ValueError(f"Failed to save config to {self.config_file}: {e}") from e
        logger.debug("Config written", path=str(self.config_file))

    def source(self, key: str) -> Literal["local", "global"] | None:
        """Tell which file a key's value comes from."""
        if key in self._values:
            return "global" if self.is_global else "local"
        if key in self._fallback:
            return "global"
        return None

    def get(self, key: str, default: Any = None) -> Any:
        """Look up a key, local value first."""
        if key in self._values:
            return self._values[key]
        return self._fallback.get(key, default)

    def set(self, key: str, value: Any) -> None:
        logger.debug("Setting config value", key=key)
        self._values[key] = value
        self._write()

    def unset(self, key: str) -> None:
        if key in self._values:
            del self._values[key]
            logger.debug("Unset config value", key=key)
            self._write()

    def list(self) -> dict[str, Any]:
        """All values visible from this scope, local values overriding global ones."""
        return {**self._fallback, **self._values}


def get_config(use_global: bool = False) -> Config:
    """Get the local config (with global fallback), or the global one."""
    return Config(use_global=use_global)
