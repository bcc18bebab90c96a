"""Runtime configuration with environment overrides."""

from __future__ import annotations

import os
from collections.abc import Mapping
from dataclasses import dataclass

from viewbridge.errors import invalid_config_error

ENV_PREFIX = "VIEWBRIDGE_"


@dataclass(frozen=True)
class ViewBridgeConfig:
    """Connection settings for the adb server and the on-device view server."""

    adb_host: str = "127.0.0.1"
    adb_port: int = 5037
    adb_path: str | None = None
    monkey_port: int = 12345
    socket_timeout: float = 10.0

    @classmethod
    def from_env(cls, environ: Mapping[str, str] | None = None) -> ViewBridgeConfig:
        """Build a config from VIEWBRIDGE_* variables, falling back to defaults.

        Raises:
            ViewBridgeError: If a variable is set to an invalid value
        """
        env = os.environ if environ is None else environ
        defaults = cls()
        return cls(
            adb_host=env.get(f"{ENV_PREFIX}ADB_HOST", defaults.adb_host),
            adb_port=_port(env, "ADB_PORT", defaults.adb_port),
            adb_path=env.get(f"{ENV_PREFIX}ADB_PATH") or None,
            monkey_port=_port(env, "MONKEY_PORT", defaults.monkey_port),
            socket_timeout=_positive_float(env, "SOCKET_TIMEOUT", defaults.socket_timeout),
        )


def _port(env: Mapping[str, str], key: str, default: int) -> int:
    name = f"{ENV_PREFIX}{key}"
    raw = env.get(name)
    if raw is None or raw == "":
        return default
    try:
        port = int(raw)
    except ValueError as err:
        raise invalid_config_error(name, raw) from err
    if not 0 < port < 65536:
        raise invalid_config_error(name, raw)
    return port


def _positive_float(env: Mapping[str, str], key: str, default: float) -> float:
    name = f"{ENV_PREFIX}{key}"
    raw = env.get(name)
    if raw is None or raw == "":
        return default
    try:
        value = float(raw)
    except ValueError as err:
        raise invalid_config_error(name, raw) from err
    if value <= 0:
        raise invalid_config_error(name, raw)
    return value
