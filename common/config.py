from __future__ import annotations

import logging
import os
from dataclasses import dataclass
from pathlib import Path
from typing import Optional

from dotenv import load_dotenv

DEFAULT_MQTT_PORT = 1883
DEFAULT_DURATION_SECONDS = 600
DEFAULT_DEVICE_LABEL = "device_id"
DEFAULT_CLIENT_ID_PREFIX = "stall-remediator"


class ConfigError(Exception):
    """Configuración inválida o incompleta. Fatal al arrancar."""


@dataclass(frozen=True)
class Credentials:
    username: str
    password: str


@dataclass(frozen=True)
class BrokerSettings:
    host: str
    port: int = DEFAULT_MQTT_PORT
    credentials: Optional[Credentials] = None
    client_id_prefix: str = DEFAULT_CLIENT_ID_PREFIX
    keepalive: int = 5

    def client_id(self) -> str:
        return f"{self.client_id_prefix}-{os.getpid()}"


@dataclass(frozen=True)
class Settings:
    broker: BrokerSettings
    prometheus_url: str
    metric: str
    duration_seconds: int = DEFAULT_DURATION_SECONDS
    device_label: str = DEFAULT_DEVICE_LABEL
    log_level: str = "INFO"


def _require(name: str) -> str:
    value = os.getenv(name)
    if not value:
        raise ConfigError(f"{name} not set")
    return value


def _parse_port(raw: Optional[str]) -> int:
    # Puerto inválido o ausente: se usa el default.
    try:
        port = int(raw) if raw else DEFAULT_MQTT_PORT
    except ValueError:
        return DEFAULT_MQTT_PORT
    return port if 0 < port < 65536 else DEFAULT_MQTT_PORT


def _parse_duration(raw: Optional[str]) -> int:
    if not raw:
        return DEFAULT_DURATION_SECONDS
    try:
        duration = int(raw)
    except ValueError as e:
        raise ConfigError(f"DURATION must be an integer number of seconds, got {raw!r}") from e
    if duration <= 0:
        raise ConfigError(f"DURATION must be positive, got {duration}")
    return duration


def _parse_log_level(raw: str) -> str:
    level = raw.upper()
    if not isinstance(logging.getLevelName(level), int):
        raise ConfigError(f"LOG_LEVEL {raw!r} is not a logging level")
    return level


def get_settings(env_file: Optional[str] = None) -> Settings:
    # Load env file (if present) but still allow overriding via real environment variables.
    env_file = env_file or os.getenv("STALL_WATCH_ENV_FILE", ".env")
    if env_file and Path(env_file).exists():
        load_dotenv(env_file, override=False)

    mqtt_host = _require("MQTT_HOSTNAME")
    mqtt_port = _parse_port(os.getenv("MQTT_PORT"))

    credentials = None
    username = os.getenv("MQTT_USERNAME")
    if username:
        password = os.getenv("MQTT_PASSWORD")
        if not password:
            raise ConfigError("MQTT_USERNAME set, but MQTT_PASSWORD not set")
        credentials = Credentials(username=username, password=password)

    broker = BrokerSettings(
        host=mqtt_host,
        port=mqtt_port,
        credentials=credentials,
        client_id_prefix=os.getenv("MQTT_CLIENT_ID_PREFIX", DEFAULT_CLIENT_ID_PREFIX),
    )

    return Settings(
        broker=broker,
        prometheus_url=_require("PROMETHEUS_URL"),
        metric=_require("METRIC"),
        duration_seconds=_parse_duration(os.getenv("DURATION")),
        device_label=os.getenv("DEVICE_LABEL", DEFAULT_DEVICE_LABEL),
        log_level=_parse_log_level(os.getenv("LOG_LEVEL", "INFO")),
    )
