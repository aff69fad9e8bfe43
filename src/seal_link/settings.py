"""Resolve run settings from CLI values, action inputs, environment and config files."""

import os
from collections.abc import Mapping
from dataclasses import dataclass, field
from typing import Any

import structlog

from seal_link.archive import ARCHIVE_FORMATS
from seal_link.backends.seal import normalize_api_url
from seal_link.config import Config, get_config
from seal_link.errors import ConfigError

logger = structlog.get_logger()


@dataclass(frozen=True)
class Option:
    """Where a setting may come from.

    ``input_name`` is the GitHub action input, read from ``INPUT_<input_name>``
    and, outside of actions, from ``SEAL_<name>``.
    """

    input_name: str
    config_key: str
    default: str | None = None
    required: bool = False

    @property
    def env_names(self) -> tuple[str, ...]:
        plain = self.input_name if self.input_name.startswith("SEAL_") else f"SEAL_{self.input_name}"
        return (f"INPUT_{self.input_name}", plain)


COMMON_OPTIONS = {
    "api_token": Option("SEAL_API_TOKEN", "seal.api_token", required=True),
    "api_base_url": Option("SEAL_API_BASE_URL", "seal.api_base_url", required=True),
    "template_id": Option("SEAL_TEMPLATE_ID", "seal.template_id", required=True),
}

SNAPSHOT_OPTIONS = {
    **COMMON_OPTIONS,
    "file_type_title": Option("SEAL_FILE_TYPE_TITLE", "snapshot.file_type_title", default="GitHub Artifacts"),
    "field_name": Option("SEAL_SNAPSHOT_FIELD_NAME", "snapshot.field_name", default="Code Snapshot"),
    "archive_type": Option("ARCHIVE_TYPE", "snapshot.archive_type", default="zip"),
    "exclude_patterns": Option("EXCLUDE_PATTERNS", "snapshot.exclude_patterns", default=""),
}

ARTIFACT_OPTIONS = {
    **COMMON_OPTIONS,
    "file_type_title": Option("SEAL_FILE_TYPE_TITLE", "artifacts.file_type_title", default="GitHub-Artifacts"),
    "field_name": Option("SEAL_FIELD_NAME", "artifacts.field_name", default="Release Artifact(s)"),
    "patterns": Option("ARTIFACT_PATTERNS", "artifacts.patterns", required=True),
}

CONFIG_KEYS = sorted({option.config_key for option in (*SNAPSHOT_OPTIONS.values(), *ARTIFACT_OPTIONS.values())})
SECRET_CONFIG_KEYS = {COMMON_OPTIONS["api_token"].config_key}


@dataclass(frozen=True)
class CommonSettings:
    api_token: str = field(repr=False)
    api_base_url: str
    template_id: str
    file_type_title: str
    field_name: str


@dataclass(frozen=True)
class SnapshotSettings(CommonSettings):
    archive_type: str = "zip"
    exclude_patterns: tuple[str, ...] = ()


@dataclass(frozen=True)
class ArtifactSettings(CommonSettings):
    patterns: tuple[str, ...] = ()


def split_patterns(value: Any) -> tuple[str, ...]:
    """Split whitespace separated patterns. YAML lists are accepted as-is."""
    if value is None:
        return ()
    if isinstance(value, (list, tuple)):
        return tuple(str(item) for item in value if str(item).strip())
    return tuple(str(value).split())


def resolve_option(
    name: str,
    option: Option,
    overrides: Mapping[str, Any],
    environ: Mapping[str, str],
    config: Config,
) -> Any:
    """Return the first non-empty value for an option, highest precedence first."""
    value = overrides.get(name)
    if value not in (None, "", ()):
        logger.debug("Setting from command line", setting=name)
        return value

    for env_name in option.env_names:
        value = environ.get(env_name, "").strip()
        if value:
            logger.debug("Setting from environment", setting=name, variable=env_name)
            return value

    value = config.get(option.config_key)
    if value not in (None, ""):
        logger.debug("Setting from config file", setting=name, key=option.config_key)
        return value

    if option.required:
        raise ConfigError(
            f"Missing required setting '{name}'. Provide the '{option.input_name.lower()}' action input, "
            f"the {option.env_names[1]} environment variable, or set it using:\n"
            f"  seal-link config set {option.config_key} <value>"
        )
    return option.default


def _resolve_all(
    options: Mapping[str, Option],
    overrides: Mapping[str, Any] | None,
    environ: Mapping[str, str] | None,
    config: Config | None,
) -> dict[str, Any]:
    overrides = overrides or {}
    environ = os.environ if environ is None else environ
    config = config or get_config()
    values = {name: resolve_option(name, option, overrides, environ, config) for name, option in options.items()}
    values["api_token"] = str(values["api_token"]).strip()
    values["api_base_url"] = normalize_api_url(str(values["api_base_url"]))
    return values


def load_snapshot_settings(
    overrides: Mapping[str, Any] | None = None,
    environ: Mapping[str, str] | None = None,
    config: Config | None = None,
) -> SnapshotSettings:
    values = _resolve_all(SNAPSHOT_OPTIONS, overrides, environ, config)
    archive_type = str(values["archive_type"]).lower()
    if archive_type not in ARCHIVE_FORMATS:
        raise ConfigError(f"Unsupported archive_type: {values['archive_type']}. Must be 'zip' or 'tar'.")

    settings = SnapshotSettings(
        api_token=values["api_token"],
        api_base_url=values["api_base_url"],
        template_id=str(values["template_id"]),
        file_type_title=str(values["file_type_title"]),
        field_name=str(values["field_name"]),
        archive_type=archive_type,
        exclude_patterns=split_patterns(values["exclude_patterns"]),
    )
    logger.debug("Snapshot settings loaded", settings=settings)
    return settings


def load_artifact_settings(
    overrides: Mapping[str, Any] | None = None,
    environ: Mapping[str, str] | None = None,
    config: Config | None = None,
) -> ArtifactSettings:
    values = _resolve_all(ARTIFACT_OPTIONS, overrides, environ, config)
    settings = ArtifactSettings(
        api_token=values["api_token"],
        api_base_url=values["api_base_url"],
        template_id=str(values["template_id"]),
        file_type_title=str(values["file_type_title"]),
        field_name=str(values["field_name"]),
        patterns=split_patterns(values["patterns"]),
    )
    logger.debug("Artifact settings loaded", settings=settings)
    return settings
