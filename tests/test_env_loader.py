# tests/test_env_loader.py

from __future__ import annotations

from pathlib import Path

import pytest

from env.loader import (
    DEFAULT_CONFIG_PATH,
    load_environment,
    normalize_version,
    resolve_config_path,
)
from env.schema import ConfigError


def write_config(tmp_path: Path, text: str) -> Path:
    path = tmp_path / "bot.yaml"
    path.write_text(text, encoding="utf-8")
    return path


def test_shipped_config_resolves() -> None:
    profile = load_environment(DEFAULT_CONFIG_PATH, environ={})

    assert profile.server.host == "Nerddddsmp.aternos.me"
    assert profile.server.port == 57453
    assert profile.server.version is None
    assert profile.reconnect.strategy == "fixed"
    assert profile.reconnect.delay_s == 10.0
    assert profile.chat.ai_prefix == "!ai"
    assert profile.chat.max_message_length == 256
    assert profile.health.port == 3000
    assert profile.ai.api_key is None


def test_missing_file_uses_defaults_plus_env(tmp_path: Path) -> None:
    profile = load_environment(
        tmp_path / "absent.yaml",
        environ={"SERVER_HOST": "play.example.test"},
    )

    assert profile.server.host == "play.example.test"
    assert profile.server.port == 25565
    assert profile.server.username == "AIBot"
    assert profile.ai.model == "gemini-2.0-flash"
    assert profile.movement.interval_min_s == 5.0
    assert profile.movement.interval_max_s == 10.0


def test_env_overrides_yaml(tmp_path: Path) -> None:
    path = write_config(
        tmp_path,
        "server:\n  host: from-yaml\n  port: 1000\nhealth:\n  port: 8000\n",
    )

    profile = load_environment(
        path,
        environ={
            "SERVER_HOST": "from-env",
            "SERVER_PORT": "25570",
            "MC_USERNAME": "Helper",
            "AUTH": "microsoft",
            "GEMINI_API_KEY": "secret",
            "PORT": "8080",
            "LOG_LEVEL": "debug",
        },
    )

    assert profile.server.host == "from-env"
    assert profile.server.port == 25570
    assert profile.server.username == "Helper"
    assert profile.server.auth == "microsoft"
    assert profile.ai.api_key == "secret"
    assert profile.health.port == 8080
    assert profile.logging.level == "DEBUG"


def test_empty_env_value_does_not_override(tmp_path: Path) -> None:
    path = write_config(tmp_path, "server:\n  host: from-yaml\n")

    profile = load_environment(path, environ={"SERVER_HOST": ""})

    assert profile.server.host == "from-yaml"


@pytest.mark.parametrize(
    "raw, expected",
    [(None, None), (False, None), ("false", None), ("auto", None), ("", None), ("1.20.4", "1.20.4")],
)
def test_normalize_version(raw, expected) -> None:
    assert normalize_version(raw) == expected


def test_missing_host_is_an_error(tmp_path: Path) -> None:
    with pytest.raises(ConfigError, match="server.host"):
        load_environment(tmp_path / "absent.yaml", environ={})


@pytest.mark.parametrize(
    "yaml_text, match",
    [
        ("server:\n  host: h\n  port: not-a-number\n", "server.port"),
        ("server:\n  host: h\n  port: 70000\n", "server.port"),
        ("server:\n  host: h\n  auth: mojang\n", "server.auth"),
        ("server:\n  host: h\nmovement:\n  interval_min_s: 10\n  interval_max_s: 5\n", "interval"),
        ("server:\n  host: h\nmovement:\n  mode: teleport\n", "movement.mode"),
        ("server:\n  host: h\nreconnect:\n  strategy: linear\n", "reconnect.strategy"),
        ("server:\n  host: h\nreconnect:\n  delay_s: -1\n", "negative"),
        ("server:\n  host: h\nai:\n  mode: agent\n", "ai.mode"),
        ("server:\n  host: h\nchat:\n  max_message_length: 0\n", "max_message_length"),
        ("server: [1, 2]\n", "server"),
    ],
)
def test_invalid_values_raise_config_error(tmp_path: Path, yaml_text: str, match: str) -> None:
    path = write_config(tmp_path, yaml_text)

    with pytest.raises(ConfigError, match=match):
        load_environment(path, environ={})


def test_optional_reconnect_limits(tmp_path: Path) -> None:
    path = write_config(
        tmp_path,
        "server:\n  host: h\n"
        "reconnect:\n  strategy: exponential\n  base_s: 2\n  max_attempts: 5\n  max_delay_s: 60\n",
    )

    profile = load_environment(path, environ={})

    assert profile.reconnect.strategy == "exponential"
    assert profile.reconnect.base_s == 2.0
    assert profile.reconnect.max_attempts == 5
    assert profile.reconnect.max_delay_s == 60.0


def test_config_path_prefers_explicit_then_env_then_cwd(tmp_path: Path) -> None:
    explicit = tmp_path / "explicit.yaml"
    from_env = tmp_path / "elsewhere.yaml"
    local = tmp_path / "config" / "bot.yaml"
    local.parent.mkdir()
    local.write_text("server:\n  host: local\n", encoding="utf-8")

    environ = {"BOT_CONFIG": str(from_env)}
    assert resolve_config_path(explicit, environ, cwd=tmp_path) == explicit
    assert resolve_config_path(None, environ, cwd=tmp_path) == from_env
    assert resolve_config_path(None, {}, cwd=tmp_path) == local


def test_config_path_falls_back_to_source_tree(tmp_path: Path) -> None:
    assert resolve_config_path(None, {}, cwd=tmp_path) == DEFAULT_CONFIG_PATH


def test_working_directory_config_is_loaded(tmp_path: Path, monkeypatch: pytest.MonkeyPatch) -> None:
    (tmp_path / "config").mkdir()
    write_config(tmp_path / "config", "server:\n  host: from-cwd\n  port: 4000\n")
    monkeypatch.chdir(tmp_path)

    profile = load_environment(environ={})

    assert profile.server.host == "from-cwd"
    assert profile.server.port == 4000


def test_bot_config_env_var_selects_file(tmp_path: Path) -> None:
    path = write_config(tmp_path, "server:\n  host: via-env\n")

    profile = load_environment(environ={"BOT_CONFIG": str(path)})

    assert profile.server.host == "via-env"
