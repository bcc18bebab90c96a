"""View introspection - accessibility-addressed nodes of a live UI hierarchy."""

from __future__ import annotations

from collections.abc import Awaitable, Callable
from dataclasses import dataclass
from typing import TYPE_CHECKING, TypeVar

import structlog

from viewbridge.errors import ViewBridgeError, attribute_query_failed_error
from viewbridge.transport.base import ViewAttribute, ViewProperty

if TYPE_CHECKING:
    from viewbridge.device.handle import DeviceHandle

logger = structlog.get_logger()

T = TypeVar("T")

_INT32_MIN, _INT32_MAX = -(2**31), 2**31 - 1
_INT64_MIN, _INT64_MAX = -(2**63), 2**63 - 1


@dataclass(frozen=True)
class AccessibilityIds:
    """
    Address of one UI node within the device's current UI snapshot.

    The default ``(0, 0)`` means "no id assigned". Some devices also address a
    real node at window 0 / node 0, and nothing on the wire tells the two
    apart, so ``is_unset`` is a hint rather than a guarantee.
    """

    window_id: int = 0
    node_id: int = 0

    def __post_init__(self) -> None:
        if not _INT32_MIN <= self.window_id <= _INT32_MAX:
            raise ValueError(f"window_id out of int32 range: {self.window_id}")
        if not _INT64_MIN <= self.node_id <= _INT64_MAX:
            raise ValueError(f"node_id out of int64 range: {self.node_id}")

    @property
    def is_unset(self) -> bool:
        """True for the (0, 0) sentinel (ambiguous, see class docstring)."""
        return self.window_id == 0 and self.node_id == 0

    def __str__(self) -> str:
        return f"{self.window_id}:{self.node_id}"


@dataclass(frozen=True)
class ViewRect:
    """Location of a view in device screen coordinates."""

    x: int
    y: int
    width: int
    height: int

    @property
    def right(self) -> int:
        return self.x + self.width

    @property
    def bottom(self) -> int:
        return self.y + self.height

    @property
    def center(self) -> tuple[int, int]:
        return self.x + self.width // 2, self.y + self.height // 2

    @classmethod
    def parse(cls, value: str) -> ViewRect:
        """Parse an 'x y width height' reply."""
        parts = value.split()
        if len(parts) != 4:
            raise ValueError(f"Expected 4 integers for a location, got: {value!r}")
        x, y, width, height = (int(p) for p in parts)
        return cls(x=x, y=y, width=width, height=height)


def _parse_bool(value: str) -> bool:
    normalized = value.strip().lower()
    if normalized == "true":
        return True
    if normalized == "false":
        return False
    raise ValueError(f"Expected 'true' or 'false', got: {value!r}")


class ViewNode:
    """
    One UI element of a device, addressed by its accessibility ids.

    Nothing is cached: every accessor is a fresh round trip to the device, so
    two calls may disagree when the UI changed in between. Parent and
    children are looked up by id rather than held, so nodes never own each
    other. A failing accessor raises ERR_ATTRIBUTE_QUERY_FAILED and leaves
    the node usable for other queries.
    """

    def __init__(self, device: DeviceHandle, ids: AccessibilityIds) -> None:
        self._device = device
        self._ids = ids

    @property
    def device(self) -> DeviceHandle:
        return self._device

    @property
    def accessibility_ids(self) -> AccessibilityIds:
        return self._ids

    def get_accessibility_ids(self) -> AccessibilityIds:
        """Return the node's identity within its snapshot."""
        return self._ids

    def __eq__(self, other: object) -> bool:
        if not isinstance(other, ViewNode):
            return NotImplemented
        return self._device.serial == other._device.serial and self._ids == other._ids

    def __hash__(self) -> int:
        return hash((self._device.serial, self._ids))

    def __repr__(self) -> str:
        return f"ViewNode(serial={self._device.serial!r}, ids={self._ids})"

    async def get_view_class(self) -> str:
        """Class name of the view, e.g. android.widget.Button."""
        return await self._query(ViewAttribute.CLASS, str)

    async def get_text(self) -> str:
        """Text contained in the view."""
        return await self._query(ViewAttribute.TEXT, str)

    async def get_location(self) -> ViewRect:
        """Location of the view on the device screen."""
        return await self._query(ViewAttribute.LOCATION, ViewRect.parse)

    async def get_checked(self) -> bool:
        return await self._query(ViewAttribute.CHECKED, _parse_bool)

    async def get_enabled(self) -> bool:
        return await self._query(ViewAttribute.ENABLED, _parse_bool)

    async def get_selected(self) -> bool:
        return await self._query(ViewAttribute.SELECTED, _parse_bool)

    async def get_focused(self) -> bool:
        return await self._query(ViewAttribute.FOCUSED, _parse_bool)

    async def set_selected(self, selected: bool) -> None:
        """Ask the device to change the selected state.

        A later get_selected() may still disagree if the UI moved on.
        """
        await self._guard(
            f"set{ViewProperty.SELECTED.value}",
            lambda: self._device.set_property(self._ids, ViewProperty.SELECTED, selected),
        )

    async def set_focused(self, focused: bool) -> None:
        """Ask the device to change the focused state."""
        await self._guard(
            f"set{ViewProperty.FOCUSED.value}",
            lambda: self._device.set_property(self._ids, ViewProperty.FOCUSED, focused),
        )

    async def get_parent(self) -> ViewNode | None:
        """Parent view, or None for the root of the hierarchy."""
        parent_ids = await self._guard("parent", lambda: self._device.query_parent(self._ids))
        if parent_ids is None:
            return None
        return ViewNode(self._device, parent_ids)

    async def get_children(self) -> list[ViewNode]:
        """Children in the order the device reports them."""
        child_ids = await self._guard("children", lambda: self._device.query_children(self._ids))
        return [ViewNode(self._device, ids) for ids in child_ids]

    async def _query(self, attribute: ViewAttribute, convert: Callable[[str], T]) -> T:
        raw = await self._guard(
            attribute.value, lambda: self._device.query_attribute(self._ids, attribute)
        )
        try:
            return convert(raw)
        except ValueError as e:
            logger.debug(
                "view_reply_unparseable",
                serial=self._device.serial,
                ids=str(self._ids),
                attribute=attribute.value,
                reply=raw,
            )
            raise attribute_query_failed_error(self._ids, attribute.value, e) from e

    async def _guard(self, name: str, call: Callable[[], Awaitable[T]]) -> T:
        try:
            return await call()
        except ViewBridgeError as e:
            logger.debug(
                "view_query_failed",
                serial=self._device.serial,
                ids=str(self._ids),
                query=name,
                code=e.code,
            )
            raise attribute_query_failed_error(self._ids, name, e) from e
