"""UI inspection CLI commands."""

from __future__ import annotations

from typing import Any

import typer

from viewbridge.cli.utils import (
    DEFAULT_WAIT,
    build_manager,
    format_json,
    parse_timeout_option,
    run,
)
from viewbridge.device.selector import ANY_DEVICE
from viewbridge.ui.tree import dump_tree

app = typer.Typer(help="UI inspection commands")


def render_tree(node: dict[str, Any], indent: int = 0) -> list[str]:
    """Render a tree dump as indented text lines."""
    window_id, node_id = node["ids"]
    parts = [f"{'  ' * indent}[{window_id}:{node_id}] {node.get('class') or '?'}"]
    if node.get("text"):
        parts.append(f'"{node["text"]}"')
    if node.get("location"):
        x, y, w, h = node["location"]
        parts.append(f"@{x},{y} {w}x{h}")
    flags = [name for name, value in node.get("state", {}).items() if value]
    if flags:
        parts.append(",".join(flags))
    if node.get("errors"):
        parts.append(f"(failed: {','.join(node['errors'])})")

    lines = [" ".join(parts)]
    for child in node.get("children", []):
        lines.extend(render_tree(child, indent + 1))
    return lines


@app.command("tree")
def ui_tree(
    device: str = typer.Option(ANY_DEVICE, "--device", "-d", help="Serial or serial regex"),
    timeout: str = typer.Option(DEFAULT_WAIT, "--timeout", "-t", help="Device wait timeout"),
    depth: int | None = typer.Option(None, "--depth", min=0, help="Maximum depth to walk"),
    adb_path: str | None = typer.Option(None, "--adb", help="adb binary to start the server"),
    json_output: bool = typer.Option(False, "--json", help="Output JSON"),
) -> None:
    """Dump the current view hierarchy of a device."""
    timeout_s = parse_timeout_option(timeout)

    async def _dump() -> dict[str, Any] | None:
        async with build_manager(adb_path) as manager:
            handle = await manager.wait_for_connection(timeout_s, device)
            if handle is None:
                return None
            root = await handle.get_root_view()
            return await dump_tree(root, max_depth=depth)

    tree = run(_dump())
    if tree is None:
        typer.echo(f"No device found matching '{device}'")
        raise typer.Exit(code=1)

    if json_output:
        typer.echo(format_json(tree))
        return
    for line in render_tree(tree):
        typer.echo(line)
