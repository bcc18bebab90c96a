"""Device handle - one acquired device and its per-device queries."""

from __future__ import annotations

import asyncio
from collections.abc import Callable
from typing import TYPE_CHECKING, TypeVar

import structlog

from viewbridge.errors import device_disposed_error
from viewbridge.transport.base import DeviceState, ViewAttribute, ViewProperty
from viewbridge.ui.view import AccessibilityIds, ViewNode

if TYPE_CHECKING:
    from viewbridge.transport.base import DeviceTransport

logger = structlog.get_logger()

T = TypeVar("T")


class DeviceHandle:
    """A live connection to one device, owned by the ConnectionManager that made it."""

    def __init__(self, transport: DeviceTransport, serial: str, state: DeviceState) -> None:
        self._transport = transport
        self._serial = serial
        self._state = state
        self._disposed = False

    @property
    def transport(self) -> DeviceTransport:
        return self._transport

    @property
    def serial(self) -> str:
        return self._serial

    @property
    def state(self) -> DeviceState:
        """Readiness as last observed (at acquisition or refresh_state())."""
        return self._state

    @property
    def is_disposed(self) -> bool:
        return self._disposed

    def __repr__(self) -> str:
        return f"DeviceHandle(serial={self._serial!r}, state={self._state.name})"

    async def refresh_state(self) -> DeviceState:
        """Re-read readiness from the transport's device list."""
        entries = await self._run(self._transport.list_devices)
        for entry in entries:
            if entry.serial == self._serial:
                self._state = entry.state
                break
        else:
            self._state = DeviceState.DISCONNECTED
        return self._state

    async def get_root_view(self) -> ViewNode:
        """Root of the current view hierarchy."""
        ids = await self._run(self._transport.query_root, self._serial)
        return ViewNode(self, ids)

    def get_view(self, ids: AccessibilityIds) -> ViewNode:
        """Wrap known accessibility ids; nothing is queried until an accessor runs."""
        return ViewNode(self, ids)

    async def query_attribute(self, ids: AccessibilityIds, attribute: ViewAttribute) -> str:
        return await self._run(self._transport.query_attribute, self._serial, ids, attribute)

    async def query_children(self, ids: AccessibilityIds) -> list[AccessibilityIds]:
        return await self._run(self._transport.query_children, self._serial, ids)

    async def query_parent(self, ids: AccessibilityIds) -> AccessibilityIds | None:
        return await self._run(self._transport.query_parent, self._serial, ids)

    async def set_property(self, ids: AccessibilityIds, prop: ViewProperty, value: bool) -> None:
        await self._run(self._transport.set_property, self._serial, ids, prop, value)

    async def dispose(self) -> None:
        """Release transport-side resources; later calls are no-ops."""
        if self._disposed:
            return
        self._disposed = True
        await asyncio.to_thread(self._transport.dispose, self._serial)
        logger.info("device_disposed", serial=self._serial)

    async def _run(self, fn: Callable[..., T], *args: object) -> T:
        if self._disposed:
            raise device_disposed_error(self._serial)
        return await asyncio.to_thread(fn, *args)
