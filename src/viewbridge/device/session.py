"""Transport session - explicit init/terminate of the shared bridge."""

from __future__ import annotations

import asyncio
from typing import TYPE_CHECKING

import structlog

from viewbridge.errors import transport_unavailable_error

if TYPE_CHECKING:
    from viewbridge.transport.base import DeviceTransport

logger = structlog.get_logger()


class TransportSession:
    """
    Handle on the process-wide bridge session.

    Only the owning session initializes and terminates the transport. A
    session built with owned=False wraps a transport the caller already
    initialized and leaves its lifecycle alone.
    """

    def __init__(self, transport: DeviceTransport, owned: bool = True) -> None:
        self._transport = transport
        self._owned = owned
        self._active = False

    @property
    def transport(self) -> DeviceTransport:
        return self._transport

    @property
    def owned(self) -> bool:
        return self._owned

    @property
    def is_active(self) -> bool:
        return self._active

    async def start(
        self,
        location: str | None = None,
        force_new: bool = True,
        debugger_support: bool = False,
    ) -> None:
        """Initialize (when owned) and connect the transport."""
        if self._active:
            return
        logger.info("transport_session_starting", owned=self._owned, location=location)
        if self._owned:
            await asyncio.to_thread(self._transport.init, debugger_support)
        await asyncio.to_thread(self._transport.create_session, location, force_new)
        self._active = True
        logger.info("transport_session_started", owned=self._owned)

    async def terminate(self) -> None:
        """Tear the transport down if this session owns it."""
        if not self._active:
            return
        self._active = False
        if not self._owned:
            logger.info("transport_session_released", owned=False)
            return
        await asyncio.to_thread(self._transport.terminate)
        logger.info("transport_session_terminated")

    def require_active(self) -> None:
        """Raise unless start() completed and terminate() has not run."""
        if not self._active:
            raise transport_unavailable_error("transport session is not started")
