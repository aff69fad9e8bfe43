"""Configuration commands for seal-link CLI."""

import sys
from typing import Literal

from cyclopts import App

from seal_link.config import get_config
from seal_link.errors import ConfigError
from seal_link.settings import CONFIG_KEYS, SECRET_CONFIG_KEYS, load_artifact_settings, load_snapshot_settings

config_app = App(name="config", help="Manage Seal connection and field settings")


def _display(key: str, value: object) -> object:
    return "********" if key in SECRET_CONFIG_KEYS and value else value


def _require_known_key(key: str) -> None:
    if key not in CONFIG_KEYS:
        print(f"Unknown configuration key: {key}")
        print("Known keys: " + ", ".join(CONFIG_KEYS))
        sys.exit(1)


@config_app.command
def set(key: str, value: str, global_: bool = False) -> None:
    """Store a setting, e.g. ``seal.template_id``.

    Args:
        key: Configuration key
        value: Configuration value
        global_: Write to ~/.seal-link instead of the current directory
    """
    _require_known_key(key)
    config = get_config(use_global=global_)
    config.set(key, value)
    print(f"Set {key} = {_display(key, value)} ({'global' if global_ else 'local'})")


@config_app.command
def unset(key: str, global_: bool = False) -> None:
    """Remove a stored setting.

    Args:
        key: Configuration key
        global_: Remove from ~/.seal-link instead of the current directory
    """
    config = get_config(use_global=global_)
    config.unset(key)
    print(f"Unset {key} ({'global' if global_ else 'local'})")


@config_app.command
def get(key: str, global_: bool = False) -> None:
    """Print a stored setting and the file it comes from; the API token is masked.

    Args:
        key: Configuration key
        global_: Only read ~/.seal-link
    """
    config = get_config(use_global=global_)
    value = config.get(key)
    if value is None:
        print(f"{key} is not set")
    else:
        print(f"{key} = {_display(key, value)} ({config.source(key)})")


@config_app.command(name="list")
def list_config(global_: bool = False) -> None:
    """Print every known key with its stored value.

    Args:
        global_: Only read ~/.seal-link
    """
    stored = get_config(use_global=global_).list()
    for key in CONFIG_KEYS:
        value = stored.get(key)
        print(f"{key} = {_display(key, value)}" if value is not None else f"{key} is not set")

    unknown = sorted(key for key in stored if key not in CONFIG_KEYS)
    if unknown:
        print("Ignored keys: " + ", ".join(unknown))


@config_app.command
def check(command: Literal["snapshot", "upload-artifacts"] = "snapshot") -> None:
    """Resolve the settings a command would run with, from inputs, environment and config.

    Args:
        command: Command whose settings are checked
    """
    try:
        if command == "snapshot":
            settings = load_snapshot_settings()
        else:
            settings = load_artifact_settings()
    except ConfigError as e:
        print(f"❌ {e}")
        sys.exit(1)

    print(f"✅ Settings for {command} are complete:")
    for name, value in vars(settings).items():
        print(f"  {name} = {'********' if name == 'api_token' else value}")
