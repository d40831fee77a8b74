from __future__ import annotations

import os
from dataclasses import dataclass, field
from pathlib import Path
from typing import Dict, Mapping, Optional

import yaml
from dotenv import load_dotenv

_DEFAULT_CONFIG_PATH = Path(__file__).resolve().parent / "defaults.yaml"
_ENV_PREFIX = "WEATHER_COMPANY_"
load_dotenv()


def _bool_from_env(value: str | None) -> Optional[bool]:
    if value is None:
        return None
    value = value.strip().lower()
    if value in {"1", "true", "yes", "on"}:
        return True
    if value in {"0", "false", "no", "off"}:
        return False
    return None


def _merge_dicts(base: Dict, overrides: Mapping) -> Dict:
    merged = dict(base)
    for key, value in overrides.items():
        if isinstance(value, Mapping) and isinstance(base.get(key), Mapping):
            merged[key] = _merge_dicts(base[key], value)
        else:
            merged[key] = value
    return merged


def _load_yaml(path: Path) -> Dict:
    if not path.exists():
        return {}
    return yaml.safe_load(path.read_text()) or {}


@dataclass
class ClientSettings:
    base_url: str = "https://api.weather.com"
    units: str = "e"
    language: str = "en-US"
    strict: bool = False
    user_agent: str = "weather-company-client/0.1"


@dataclass
class LoggingConfig:
    level: str = "INFO"
    json: bool = True


@dataclass
class AppConfig:
    api_key: Optional[str] = None
    client: ClientSettings = field(default_factory=ClientSettings)
    logging: LoggingConfig = field(default_factory=LoggingConfig)


def load_config(*, config_path: str | None = None, env: Mapping[str, str] | None = None) -> AppConfig:
    """Layer packaged defaults, an optional YAML file and environment overrides."""

    env = dict(os.environ if env is None else env)
    data = _load_yaml(_DEFAULT_CONFIG_PATH)

    explicit_path = config_path or env.get(f"{_ENV_PREFIX}CONFIG_PATH")
    if explicit_path:
        data = _merge_dicts(data, _load_yaml(Path(explicit_path)))

    client_data = dict(data.get("client") or {})
    for key in ("base_url", "units", "language"):
        override = env.get(f"{_ENV_PREFIX}{key.upper()}")
        if override:
            client_data[key] = override
    strict_override = _bool_from_env(env.get(f"{_ENV_PREFIX}STRICT"))
    if strict_override is not None:
        client_data["strict"] = strict_override

    logging_data = dict(data.get("logging") or {})
    level_override = env.get(f"{_ENV_PREFIX}LOG_LEVEL")
    if level_override:
        logging_data["level"] = level_override
    json_override = _bool_from_env(env.get(f"{_ENV_PREFIX}LOG_JSON"))
    if json_override is not None:
        logging_data["json"] = json_override

    api_key = env.get(f"{_ENV_PREFIX}API_KEY") or data.get("api_key")

    return AppConfig(
        api_key=api_key,
        client=ClientSettings(**client_data) if client_data else ClientSettings(),
        logging=LoggingConfig(**logging_data) if logging_data else LoggingConfig(),
    )


app_config = load_config()
