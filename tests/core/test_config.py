"""Tests for :mod:`morphc.core.config`."""

from __future__ import annotations

import tomllib

import pytest
from pydantic import ValidationError

from morphc.core.config import (
    AppConfig,
    CompileOptions,
    HashMode,
    env_overrides,
    load_config,
    load_packaged_defaults,
    render_user_config,
)


def test_packaged_defaults_match_model_defaults() -> None:
    config = load_config(defaults=load_packaged_defaults())

    assert config == AppConfig()
    assert config.compiler.hash_mode is HashMode.DEVELOPMENT
    assert config.cache.max_entries == 100
    assert config.cache.ttl_seconds == 300.0


def test_precedence_cli_over_env_over_user() -> None:
    config = load_config(
        defaults=load_packaged_defaults(),
        user_config={"log_level": "info", "compiler": {"source_maps": True}},
        env_config={"log_level": "error", "compiler": {"production_mode": True}},
        cli_overrides={"compiler": {"production_mode": False}},
    )

    assert config.log_level == "ERROR"
    assert config.compiler.source_maps is True
    assert config.compiler.production_mode is False
    assert config.compiler.include_handshake is True


def test_node_env_production_enables_production_mode() -> None:
    assert env_overrides({"NODE_ENV": "production"}) == {
        "compiler": {"production_mode": True}
    }
    assert env_overrides({"NODE_ENV": "development"}) == {}


def test_explicit_production_flag_beats_node_env() -> None:
    overlay = env_overrides({"NODE_ENV": "production", "MORPHC_PRODUCTION": "0"})

    assert overlay["compiler"]["production_mode"] is False


def test_env_overrides_cover_every_variable() -> None:
    overlay = env_overrides(
        {
            "MORPHC_LOG_LEVEL": "debug",
            "MORPHC_HASH_MODE": "Production",
            "MORPHC_SOURCE_MAPS": "yes",
            "MORPHC_INCLUDE_HANDSHAKE": "off",
        }
    )

    config = load_config(defaults=load_packaged_defaults(), env_config=overlay)
    assert config.log_level == "DEBUG"
    assert config.compiler.hash_mode is HashMode.PRODUCTION
    assert config.compiler.source_maps is True
    assert config.compiler.include_handshake is False


def test_env_overrides_reject_garbage_flags() -> None:
    with pytest.raises(ValueError):
        env_overrides({"MORPHC_SOURCE_MAPS": "sometimes"})


def test_invalid_hash_mode_fails_validation() -> None:
    with pytest.raises(ValidationError):
        load_config(
            defaults=load_packaged_defaults(),
            cli_overrides={"compiler": {"hash_mode": "fast"}},
        )


def test_blank_scoped_name_pattern_is_rejected() -> None:
    with pytest.raises(ValidationError):
        CompileOptions(scoped_name_pattern="   ")


def test_fingerprint_tracks_option_values() -> None:
    base = CompileOptions()

    assert base.fingerprint() == CompileOptions().fingerprint()
    assert base.fingerprint() != CompileOptions(production_mode=True).fingerprint()


def test_render_user_config_round_trips() -> None:
    config = load_config(
        defaults=load_packaged_defaults(),
        cli_overrides={"compiler": {"hash_mode": "production"}},
    )

    rendered = render_user_config(config)
    assert rendered.startswith("# Generated by morphc init")

    reloaded = load_config(
        defaults=load_packaged_defaults(),
        user_config=tomllib.loads(rendered),
    )
    assert reloaded == config
