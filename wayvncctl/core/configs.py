"""Configuration management for wayvncctl.

Loads user settings from ~/.config/wayvncctl/config.cfg, an optional .env
file next to it, and WAYVNCCTL_* environment variables, in increasing
order of precedence. Command-line options override all of them.
"""

import configparser
from dataclasses import dataclass
import os
from pathlib import Path
from typing import Dict, Optional

from dotenv import dotenv_values

from wayvncctl.ctl.client import COMMAND_TIMEOUT_MS
from wayvncctl.ctl.protocol import DEFAULT_BUFFER_SIZE

CONFIG_DIR = Path.home() / ".config" / "wayvncctl"
CONFIG_PATH = CONFIG_DIR / "config.cfg"
ENV_PATH = CONFIG_DIR / ".env"

ENV_PREFIX = "WAYVNCCTL_"


@dataclass
class ClientConfig:
    socket: Optional[str] = None
    json: bool = False
    reconnect: bool = False
    wait: bool = False
    debug: bool = False
    read_buffer_size: int = DEFAULT_BUFFER_SIZE
    command_timeout_ms: int = COMMAND_TIMEOUT_MS


def load_raw_config(path: Path = CONFIG_PATH, env_path: Path = ENV_PATH) -> Dict[str, str]:
    """
    Load configuration values from the config file and .env file.
    Values are returned with lowercase keys for convenience.
    """
    cfg = configparser.ConfigParser()
    data: Dict[str, str] = {}

    if path.exists():
        cfg.read(path)
        if "DEFAULT" in cfg:
            data.update({k.lower(): v for k, v in cfg["DEFAULT"].items()})

    if env_path.exists():
        for key, value in dotenv_values(env_path).items():
            if value is None:
                continue
            key = key.lower()
            if key.startswith(ENV_PREFIX.lower()):
                key = key[len(ENV_PREFIX):]
            data[key] = value

    return data


def _env_overrides() -> Dict[str, str]:
    return {
        key[len(ENV_PREFIX):].lower(): value
        for key, value in os.environ.items()
        if key.startswith(ENV_PREFIX) and value.strip() != ""
    }


def _get_bool(raw: Dict[str, str], key: str, default: bool = False) -> bool:
    value = raw.get(key)
    if isinstance(value, bool):
        return value
    if value is None:
        return default
    return str(value).strip().lower() in {"1", "true", "yes", "y", "on"}


def _get_int(raw: Dict[str, str], key: str, default: int) -> int:
    value = raw.get(key)
    if value is None or str(value).strip() == "":
        return default
    try:
        result = int(float(value))
    except ValueError:
        raise ValueError(f"Invalid value for '{key}': {value!r}") from None
    if result <= 0:
        raise ValueError(f"'{key}' must be positive, got {result}")
    return result


def get_client_config(raw: Optional[Dict[str, str]] = None) -> ClientConfig:
    """
    Build a ClientConfig from raw configuration values plus environment.
    Raises ValueError on malformed numeric values.
    """
    raw = dict(load_raw_config() if raw is None else raw)
    raw.update(_env_overrides())

    socket = raw.get("socket", "").strip() or None
    return ClientConfig(
        socket=socket,
        json=_get_bool(raw, "json"),
        reconnect=_get_bool(raw, "reconnect"),
        wait=_get_bool(raw, "wait"),
        debug=_get_bool(raw, "debug"),
        read_buffer_size=_get_int(raw, "read_buffer_size", DEFAULT_BUFFER_SIZE),
        command_timeout_ms=_get_int(raw, "command_timeout_ms", COMMAND_TIMEOUT_MS),
    )
