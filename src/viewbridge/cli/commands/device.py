"""Device discovery CLI commands."""

from __future__ import annotations

import typer

from viewbridge.cli.utils import (
    DEFAULT_WAIT,
    build_manager,
    format_json,
    parse_timeout_option,
    run,
)
from viewbridge.device.selector import ANY_DEVICE
from viewbridge.transport.base import DeviceEntry

app = typer.Typer(help="Device discovery commands")


@app.command("list")
def device_list(
    adb_path: str | None = typer.Option(None, "--adb", help="adb binary to start the server"),
    json_output: bool = typer.Option(False, "--json", help="Output JSON"),
) -> None:
    """List attached devices and their readiness."""

    async def _list() -> list[DeviceEntry]:
        async with build_manager(adb_path) as manager:
            return await manager.list_devices()

    entries = run(_list())
    if json_output:
        typer.echo(
            format_json(
                {"devices": [{"serial": e.serial, "state": e.state.value} for e in entries]}
            )
        )
        return

    if not entries:
        typer.echo("No devices attached")
        return
    for entry in entries:
        typer.echo(f"{entry.serial}  state={entry.state.value}")


@app.command("wait")
def device_wait(
    device: str = typer.Option(ANY_DEVICE, "--device", "-d", help="Serial or serial regex"),
    timeout: str = typer.Option(DEFAULT_WAIT, "--timeout", "-t", help="e.g. 500ms, 30s, inf"),
    adb_path: str | None = typer.Option(None, "--adb", help="adb binary to start the server"),
    json_output: bool = typer.Option(False, "--json", help="Output JSON"),
) -> None:
    """Wait until a matching device is online."""
    timeout_s = parse_timeout_option(timeout)

    async def _wait() -> tuple[str, str] | None:
        async with build_manager(adb_path) as manager:
            handle = await manager.wait_for_connection(timeout_s, device)
            if handle is None:
                return None
            return handle.serial, handle.state.value

    found = run(_wait())
    if found is None:
        if json_output:
            typer.echo(format_json({"status": "not_found", "selector": device}))
        else:
            typer.echo(f"No device found matching '{device}'")
        raise typer.Exit(code=1)

    serial, state = found
    if json_output:
        typer.echo(format_json({"status": "done", "serial": serial, "state": state}))
        return
    typer.echo(serial)
