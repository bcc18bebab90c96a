"""Tree dump - walk a live view hierarchy into plain dicts."""

from __future__ import annotations

import time
from collections.abc import Awaitable, Callable
from typing import Any

import structlog

from viewbridge.errors import ViewBridgeError
from viewbridge.ui.view import ViewNode

logger = structlog.get_logger()

STATE_FLAGS = ("checked", "enabled", "selected", "focused")


async def dump_tree(root: ViewNode, max_depth: int | None = None) -> dict[str, Any]:
    """Walk the hierarchy below root with fresh queries.

    Failing accessors are reported as None and listed under "errors" for
    that node; the walk itself continues.

    Args:
        root: Node to start from
        max_depth: Depth limit (0 dumps only root), None for unlimited
    """
    start = time.time()
    tree = await _dump_node(root, depth=0, max_depth=max_depth)
    elapsed = (time.time() - start) * 1000
    logger.info(
        "tree_dumped",
        serial=root.device.serial,
        nodes=count_nodes(tree),
        elapsed_ms=round(elapsed, 2),
    )
    return tree


def count_nodes(tree: dict[str, Any]) -> int:
    """Number of nodes in a dump produced by dump_tree()."""
    return 1 + sum(count_nodes(child) for child in tree.get("children", []))


async def _dump_node(node: ViewNode, depth: int, max_depth: int | None) -> dict[str, Any]:
    errors: list[str] = []

    async def attempt(name: str, fetch: Callable[[], Awaitable[Any]]) -> Any:
        try:
            return await fetch()
        except ViewBridgeError as e:
            errors.append(name)
            logger.debug(
                "tree_attribute_skipped",
                ids=str(node.accessibility_ids),
                attribute=name,
                code=e.code,
            )
            return None

    ids = node.accessibility_ids
    location = await attempt("location", node.get_location)
    result: dict[str, Any] = {
        "ids": [ids.window_id, ids.node_id],
        "class": await attempt("class", node.get_view_class),
        "text": await attempt("text", node.get_text),
        "location": (
            [location.x, location.y, location.width, location.height] if location else None
        ),
        "state": {
            flag: await attempt(flag, getattr(node, f"get_{flag}")) for flag in STATE_FLAGS
        },
        "children": [],
    }

    if max_depth is None or depth < max_depth:
        children = await attempt("children", node.get_children)
        for child in children or []:
            result["children"].append(await _dump_node(child, depth + 1, max_depth))

    if errors:
        result["errors"] = errors
    return result
