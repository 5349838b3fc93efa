from __future__ import annotations

import os
from pathlib import Path
from typing import Any, Dict, Mapping, Optional

import yaml
from dotenv import load_dotenv

from .schema import (
    AIConfig,
    BotProfile,
    ChatConfig,
    ConfigError,
    HealthConfig,
    LoggingConfig,
    MovementConfig,
    ReconnectConfig,
    ServerConfig,
)


# ---------------------------------------------------------------------------
# Internal helpers
# ---------------------------------------------------------------------------

PROJECT_ROOT = Path(__file__).resolve().parents[2]
CONFIG_ROOT = PROJECT_ROOT / "config"
DEFAULT_CONFIG_PATH = CONFIG_ROOT / "bot.yaml"

# Points at a bot.yaml outside the working directory.
CONFIG_PATH_VAR = "BOT_CONFIG"

# Environment variable -> (section, key)
ENV_OVERRIDES: Dict[str, tuple[str, str]] = {
    "SERVER_HOST": ("server", "host"),
    "SERVER_PORT": ("server", "port"),
    "MC_USERNAME": ("server", "username"),
    "MC_VERSION": ("server", "version"),
    "AUTH": ("server", "auth"),
    "GEMINI_API_KEY": ("ai", "api_key"),
    "GEMINI_MODEL": ("ai", "model"),
    "PORT": ("health", "port"),
    "LOG_LEVEL": ("logging", "level"),
}

_AUTO_VERSION_VALUES = {"", "false", "auto", "none"}


def _load_yaml(path: Path) -> Dict[str, Any]:
    """Load a YAML config file; a missing file yields an empty mapping."""
    if not path.exists():
        return {}
    with path.open("r", encoding="utf-8") as f:
        data = yaml.safe_load(f) or {}
    if not isinstance(data, dict):
        raise ConfigError(f"Expected mapping at top of {path}, got {type(data)}")
    return data


def resolve_config_path(
    path: Optional[Path] = None,
    environ: Optional[Mapping[str, str]] = None,
    cwd: Optional[Path] = None,
) -> Path:
    """Pick the config file to read.

    Order: explicit ``path``, then ``$BOT_CONFIG``, then ``config/bot.yaml``
    under the working directory, then the copy next to the sources (only
    present in a checkout or editable install).
    """
    if path is not None:
        return Path(path)
    env_path = (environ or {}).get(CONFIG_PATH_VAR)
    if env_path:
        return Path(env_path)
    local = (cwd or Path.cwd()) / "config" / "bot.yaml"
    if local.exists():
        return local
    return DEFAULT_CONFIG_PATH


def _section(raw: Mapping[str, Any], name: str) -> Dict[str, Any]:
    value = raw.get(name) or {}
    if not isinstance(value, dict):
        raise ConfigError(f"Section '{name}' must be a mapping, got {type(value)}")
    return dict(value)


def _apply_env_overrides(raw: Dict[str, Dict[str, Any]], environ: Mapping[str, str]) -> None:
    for var, (section, key) in ENV_OVERRIDES.items():
        value = environ.get(var)
        if value is None or value == "":
            continue
        raw.setdefault(section, {})[key] = value


def _as_int(value: Any, name: str) -> int:
    try:
        return int(value)
    except (TypeError, ValueError) as exc:
        raise ConfigError(f"{name} must be an integer, got {value!r}") from exc


def _as_float(value: Any, name: str) -> float:
    try:
        return float(value)
    except (TypeError, ValueError) as exc:
        raise ConfigError(f"{name} must be a number, got {value!r}") from exc


def _optional(value: Any, convert, name: str):
    if value is None:
        return None
    return convert(value, name)


def normalize_version(value: Any) -> Optional[str]:
    """Map the various "auto-detect" spellings (false, auto, empty) to None."""
    if value is None or value is False:
        return None
    text = str(value).strip()
    if text.lower() in _AUTO_VERSION_VALUES:
        return None
    return text


# ---------------------------------------------------------------------------
# Public API
# ---------------------------------------------------------------------------


def load_environment(
    path: Optional[Path] = None,
    environ: Optional[Mapping[str, str]] = None,
    *,
    use_dotenv: bool = True,
) -> BotProfile:
    """Main entry point: returns a fully resolved BotProfile.

    YAML values from the file chosen by ``resolve_config_path`` are overridden by
    environment variables. When ``environ`` is None the process environment is
    used, after loading a ``.env`` file if present.
    """
    if environ is None:
        if use_dotenv:
            load_dotenv()
        environ = os.environ

    file_cfg = _load_yaml(resolve_config_path(path, environ))
    raw: Dict[str, Dict[str, Any]] = {
        name: _section(file_cfg, name)
        for name in ("server", "ai", "movement", "reconnect", "chat", "health", "logging")
    }
    _apply_env_overrides(raw, environ)

    srv = raw["server"]
    server = ServerConfig(
        host=str(srv.get("host") or ""),
        port=_as_int(srv.get("port", 25565), "server.port"),
        username=str(srv.get("username", "AIBot")),
        version=normalize_version(srv.get("version")),
        auth=str(srv.get("auth", "offline")),
    )

    ai_raw = raw["ai"]
    ai = AIConfig(
        api_key=ai_raw.get("api_key"),
        model=str(ai_raw.get("model", AIConfig.model)),
        mode=str(ai_raw.get("mode", "single")),
        history_limit=_optional(ai_raw.get("history_limit"), _as_int, "ai.history_limit"),
        system_prompt=ai_raw.get("system_prompt"),
        temperature=_optional(ai_raw.get("temperature"), _as_float, "ai.temperature"),
        max_output_tokens=_optional(
            ai_raw.get("max_output_tokens"), _as_int, "ai.max_output_tokens"
        ),
    )

    mv = raw["movement"]
    movement = MovementConfig(
        mode=str(mv.get("mode", "controls")),
        interval_min_s=_as_float(mv.get("interval_min_s", 5.0), "movement.interval_min_s"),
        interval_max_s=_as_float(mv.get("interval_max_s", 10.0), "movement.interval_max_s"),
        wander_radius=_as_float(mv.get("wander_radius", 10.0), "movement.wander_radius"),
        arrival_tolerance=_as_float(
            mv.get("arrival_tolerance", 1.0), "movement.arrival_tolerance"
        ),
        flourish_chance=_as_float(mv.get("flourish_chance", 0.0), "movement.flourish_chance"),
    )

    rc = raw["reconnect"]
    reconnect = ReconnectConfig(
        strategy=str(rc.get("strategy", "fixed")),
        delay_s=_as_float(rc.get("delay_s", 10.0), "reconnect.delay_s"),
        base_s=_as_float(rc.get("base_s", 5.0), "reconnect.base_s"),
        max_attempts=_optional(rc.get("max_attempts"), _as_int, "reconnect.max_attempts"),
        max_delay_s=_optional(rc.get("max_delay_s"), _as_float, "reconnect.max_delay_s"),
    )

    ch = raw["chat"]
    defaults = ChatConfig()
    chat = ChatConfig(
        ai_prefix=str(ch.get("ai_prefix", defaults.ai_prefix)),
        follow_command=str(ch.get("follow_command", defaults.follow_command)),
        stop_command=str(ch.get("stop_command", defaults.stop_command)),
        max_message_length=_as_int(
            ch.get("max_message_length", defaults.max_message_length),
            "chat.max_message_length",
        ),
        resume_delay_s=_as_float(
            ch.get("resume_delay_s", defaults.resume_delay_s), "chat.resume_delay_s"
        ),
        follow_tolerance=_as_float(
            ch.get("follow_tolerance", defaults.follow_tolerance), "chat.follow_tolerance"
        ),
        greeting=ch.get("greeting", defaults.greeting),
    )

    hc = raw["health"]
    health = HealthConfig(
        enabled=bool(hc.get("enabled", True)),
        host=str(hc.get("host", "0.0.0.0")),
        port=_as_int(hc.get("port", 3000), "health.port"),
        body=str(hc.get("body", HealthConfig.body)),
    )

    lg = raw["logging"]
    logging_cfg = LoggingConfig(
        level=str(lg.get("level", "INFO")).upper(),
        events_path=lg.get("events_path"),
    )

    profile = BotProfile(
        server=server,
        ai=ai,
        movement=movement,
        reconnect=reconnect,
        chat=chat,
        health=health,
        logging=logging_cfg,
    )

    # perform basic validation before returning
    _validate_env(profile)
    return profile


def _validate_env(profile: BotProfile) -> None:
    """Minimal sanity checks for the resolved profile."""
    srv = profile.server
    if not srv.host:
        raise ConfigError("server.host (or SERVER_HOST) must be set")
    if not 0 < srv.port < 65536:
        raise ConfigError(f"server.port out of range: {srv.port}")
    if not srv.username:
        raise ConfigError("server.username (or MC_USERNAME) must be set")
    if srv.auth not in ("offline", "microsoft"):
        raise ConfigError(f"Invalid server.auth: {srv.auth}")

    if profile.ai.mode not in ("single", "chat"):
        raise ConfigError(f"Invalid ai.mode: {profile.ai.mode}")
    if profile.ai.history_limit is not None and profile.ai.history_limit < 1:
        raise ConfigError("ai.history_limit must be positive when set")

    mv = profile.movement
    if mv.mode not in ("controls", "pathfinder"):
        raise ConfigError(f"Invalid movement.mode: {mv.mode}")
    if mv.interval_min_s <= 0 or mv.interval_max_s < mv.interval_min_s:
        raise ConfigError(
            "movement interval must satisfy 0 < interval_min_s <= interval_max_s"
        )
    if not 0.0 <= mv.flourish_chance <= 1.0:
        raise ConfigError("movement.flourish_chance must be within [0, 1]")

    rc = profile.reconnect
    if rc.strategy not in ("fixed", "exponential"):
        raise ConfigError(f"Invalid reconnect.strategy: {rc.strategy}")
    if rc.delay_s < 0 or rc.base_s < 0:
        raise ConfigError("reconnect delays must not be negative")
    if rc.max_attempts is not None and rc.max_attempts < 0:
        raise ConfigError("reconnect.max_attempts must not be negative")

    if profile.chat.max_message_length < 1:
        raise ConfigError("chat.max_message_length must be positive")
    if not 0 < profile.health.port < 65536:
        raise ConfigError(f"health.port out of range: {profile.health.port}")
