"""Configuration models and loaders for :mod:`morphc`."""

from __future__ import annotations

from collections.abc import Mapping as MappingABC
from enum import StrEnum
import hashlib
from typing import Any, Mapping

import tomllib
import tomlkit
from pydantic import BaseModel, Field, field_validator, model_validator

from morphc.resources import get_resource

DEFAULTS_RESOURCE_NAME = "morphc.defaults.toml"
USER_CONFIG_NAME = "morphc.toml"
DEFAULT_SCOPED_NAME_PATTERN = "[name]_[local]_[hash:base64:5]"

_TRUTHY = frozenset({"1", "true", "yes", "on"})
_FALSY = frozenset({"0", "false", "no", "off", ""})


class HashMode(StrEnum):
    """Inputs used to derive the hash part of a scoped class name."""

    DEVELOPMENT = "development"
    PRODUCTION = "production"


class CompileOptions(BaseModel):
    """Options record accepted by a single compilation call."""

    production_mode: bool = Field(
        default=False,
        description=(
            "Whether the build targets production; strips handshake data "
            "from the emitted descriptor."
        ),
    )
    include_handshake: bool = Field(
        default=True,
        description="Whether handshake data may be embedded outside production.",
    )
    hash_mode: HashMode = Field(
        default=HashMode.DEVELOPMENT,
        description=(
            "'development' hashes component and class names; 'production' "
            "hashes the full rule text."
        ),
    )
    source_maps: bool = Field(
        default=False,
        description="Append an inline source-map comment to generated code.",
    )
    scoped_name_pattern: str = Field(
        default=DEFAULT_SCOPED_NAME_PATTERN,
        description="Pattern for scoped class names.",
    )

    model_config = {
        "frozen": True,
        "str_strip_whitespace": True,
    }

    @field_validator("scoped_name_pattern")
    @classmethod
    def _validate_pattern(cls, value: str) -> str:
        if not value:
            raise ValueError("scoped_name_pattern cannot be blank.")
        return value

    def fingerprint(self) -> str:
        """Return a stable digest of the option values.

        Example:
            >>> CompileOptions().fingerprint() == CompileOptions().fingerprint()
            True
        """

        payload = self.model_dump_json()
        return hashlib.sha256(payload.encode("utf-8")).hexdigest()


class CacheSettings(BaseModel):
    """In-memory compilation cache settings."""

    enabled: bool = Field(
        default=True,
        description="Whether compilation results are memoized per input.",
    )
    max_entries: int = Field(
        default=100,
        ge=1,
        description="Maximum number of cached compilation results.",
    )
    ttl_seconds: float = Field(
        default=300.0,
        ge=0.0,
        description="Seconds before an entry expires; 0 disables expiry.",
    )

    model_config = {"frozen": True}


class AppConfig(BaseModel):
    """Root configuration for the :mod:`morphc` application."""

    log_level: str = Field(
        default="WARNING",
        description="Default logging level for the CLI runtime.",
    )
    compiler: CompileOptions = Field(
        default_factory=CompileOptions,
        description="Options applied to every compilation.",
    )
    cache: CacheSettings = Field(
        default_factory=CacheSettings,
        description="Compilation cache settings.",
    )

    model_config = {
        "str_strip_whitespace": True,
        "validate_assignment": True,
    }

    @model_validator(mode="after")
    def _post_process(self) -> "AppConfig":
        """Normalize fields after validation."""

        object.__setattr__(self, "log_level", self.log_level.upper())
        return self


def read_packaged_defaults_text() -> str:
    """Return the raw packaged defaults TOML content.

    Example:
        >>> read_packaged_defaults_text().startswith("#")
        True
    """

    resource = get_resource(DEFAULTS_RESOURCE_NAME)
    return resource.read_text(encoding="utf-8")


def load_packaged_defaults() -> dict[str, Any]:
    """Load the packaged defaults as a plain dictionary.

    Example:
        >>> load_packaged_defaults()["compiler"]["hash_mode"]
        'development'
    """

    data: dict[str, Any] = tomllib.loads(read_packaged_defaults_text())
    return data


def _deep_merge(
    base: Mapping[str, Any],
    overlay: Mapping[str, Any],
) -> dict[str, Any]:
    """Recursively merge ``overlay`` into ``base`` returning a new dict."""

    merged: dict[str, Any] = dict(base)
    for key, value in overlay.items():
        if (
            key in merged
            and isinstance(merged[key], MappingABC)
            and isinstance(value, MappingABC)
        ):
            merged[key] = _deep_merge(merged[key], value)
        else:
            merged[key] = value
    return merged


def _parse_flag(name: str, raw: str) -> bool:
    normalized = raw.strip().lower()
    if normalized in _TRUTHY:
        return True
    if normalized in _FALSY:
        return False
    raise ValueError(f"{name} must be a boolean flag, got {raw!r}")


def env_overrides(environ: Mapping[str, str]) -> dict[str, Any]:
    """Translate environment variables into a config overlay.

    ``NODE_ENV=production`` switches production mode on so the compiler
    agrees with the JavaScript toolchain it runs beside; an explicit
    ``MORPHC_PRODUCTION`` always wins.

    Example:
        >>> env_overrides({"NODE_ENV": "production"})
        {'compiler': {'production_mode': True}}
    """

    compiler: dict[str, Any] = {}
    overlay: dict[str, Any] = {}

    if environ.get("NODE_ENV", "").strip().lower() == "production":
        compiler["production_mode"] = True
    if "MORPHC_PRODUCTION" in environ:
        compiler["production_mode"] = _parse_flag(
            "MORPHC_PRODUCTION", environ["MORPHC_PRODUCTION"]
        )
    if "MORPHC_INCLUDE_HANDSHAKE" in environ:
        compiler["include_handshake"] = _parse_flag(
            "MORPHC_INCLUDE_HANDSHAKE", environ["MORPHC_INCLUDE_HANDSHAKE"]
        )
    if "MORPHC_SOURCE_MAPS" in environ:
        compiler["source_maps"] = _parse_flag(
            "MORPHC_SOURCE_MAPS", environ["MORPHC_SOURCE_MAPS"]
        )
    hash_mode = environ.get("MORPHC_HASH_MODE")
    if hash_mode:
        compiler["hash_mode"] = hash_mode.strip().lower()

    log_level = environ.get("MORPHC_LOG_LEVEL")
    if log_level:
        overlay["log_level"] = log_level
    if compiler:
        overlay["compiler"] = compiler
    return overlay


def load_config(
    *,
    defaults: Mapping[str, Any],
    user_config: Mapping[str, Any] | None = None,
    env_config: Mapping[str, Any] | None = None,
    cli_overrides: Mapping[str, Any] | None = None,
) -> AppConfig:
    """Load configuration according to the precedence stack.

    Args:
        defaults: Packaged defaults shipped with the application.
        user_config: Parsed user ``morphc.toml`` content.
        env_config: Settings derived from environment variables.
        cli_overrides: Settings supplied via CLI flags.

    Returns:
        A validated :class:`AppConfig` instance.
    """

    stack = dict(defaults)
    for layer in (user_config, env_config, cli_overrides):
        if layer:
            stack = _deep_merge(stack, layer)
    return AppConfig(**stack)


def render_user_config(
    config: AppConfig,
    *,
    include_defaults: bool = True,
) -> str:
    """Render a ``morphc.toml`` document for users to customize.

    Args:
        config: Configuration instance to serialize.
        include_defaults: Whether to prepend the explanatory comments.

    Returns:
        A TOML-formatted string ready to persist for the user.
    """

    document = tomlkit.document()

    if include_defaults:
        document.add(tomlkit.comment("Generated by morphc init"))
        document.add(
            tomlkit.comment(
                "Precedence: CLI flags > env vars > morphc.toml > defaults"
            )
        )
        document.add(tomlkit.comment("Environment overrides:"))
        document.add(tomlkit.comment("  MORPHC_PRODUCTION=1 (or NODE_ENV=production)"))
        document.add(tomlkit.comment("  MORPHC_HASH_MODE=production"))
        document.add(tomlkit.comment("  MORPHC_LOG_LEVEL=info"))
        document.add(tomlkit.nl())

    document["log_level"] = config.log_level

    compiler_table = tomlkit.table()
    compiler_table["production_mode"] = config.compiler.production_mode
    compiler_table["include_handshake"] = config.compiler.include_handshake
    compiler_table["hash_mode"] = config.compiler.hash_mode.value
    compiler_table["source_maps"] = config.compiler.source_maps
    compiler_table["scoped_name_pattern"] = config.compiler.scoped_name_pattern
    document["compiler"] = compiler_table

    cache_table = tomlkit.table()
    cache_table["enabled"] = config.cache.enabled
    cache_table["max_entries"] = config.cache.max_entries
    cache_table["ttl_seconds"] = config.cache.ttl_seconds
    document["cache"] = cache_table

    return tomlkit.dumps(document)


__all__ = [
    "AppConfig",
    "CacheSettings",
    "CompileOptions",
    "DEFAULTS_RESOURCE_NAME",
    "DEFAULT_SCOPED_NAME_PATTERN",
    "HashMode",
    "USER_CONFIG_NAME",
    "env_overrides",
    "load_config",
    "load_packaged_defaults",
    "read_packaged_defaults_text",
    "render_user_config",
]
