"""Shared CLI helpers."""

from __future__ import annotations

import asyncio
import json
from collections.abc import Coroutine
from typing import Any, TypeVar

import typer

from viewbridge.config import ViewBridgeConfig
from viewbridge.device.manager import ConnectionManager
from viewbridge.errors import ViewBridgeError
from viewbridge.utils.time_parser import parse_duration

T = TypeVar("T")

DEFAULT_WAIT = "30s"


def format_json(data: Any) -> str:
    return json.dumps(data, indent=2, ensure_ascii=True)


def render_error(error: ViewBridgeError) -> None:
    typer.echo(f"{error.code}: {error.message}")
    if error.remediation:
        typer.echo(f"Hint: {error.remediation}")


def run(coro: Coroutine[Any, Any, T]) -> T:
    """Run a coroutine, turning library errors into exit code 1."""
    try:
        return asyncio.run(coro)
    except ViewBridgeError as exc:
        render_error(exc)
        raise typer.Exit(code=1) from exc


def build_manager(adb_path: str | None = None) -> ConnectionManager:
    """Manager over the adb transport, configured from the environment."""
    return ConnectionManager.for_adb(ViewBridgeConfig.from_env(), adb_location=adb_path)


def parse_timeout_option(value: str) -> float | None:
    try:
        return parse_duration(value)
    except ViewBridgeError as exc:
        render_error(exc)
        raise typer.Exit(code=1) from exc
