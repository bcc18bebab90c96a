"""Connection manager - wait for devices, track handed-out handles, shutdown."""

from __future__ import annotations

import asyncio
from types import TracebackType

import structlog

from viewbridge.config import ViewBridgeConfig
from viewbridge.device.handle import DeviceHandle
from viewbridge.device.selector import ANY_DEVICE, DeviceSelector
from viewbridge.device.session import TransportSession
from viewbridge.errors import interrupted_error, shutdown_incomplete_error
from viewbridge.transport.adb import AdbTransport
from viewbridge.transport.base import DeviceEntry, DeviceState

logger = structlog.get_logger()

# How long to wait each time we check for the device to be connected.
CONNECTION_ITERATION_TIMEOUT = 0.2


class ConnectionManager:
    """Acquires devices through a transport session and releases them on shutdown."""

    def __init__(
        self,
        session: TransportSession,
        poll_interval: float = CONNECTION_ITERATION_TIMEOUT,
        adb_location: str | None = None,
    ) -> None:
        if poll_interval <= 0:
            raise ValueError(f"poll_interval must be positive, got {poll_interval}")
        self._session = session
        self._poll_interval_ms = max(1, round(poll_interval * 1000))
        self._adb_location = adb_location
        self._handles: list[DeviceHandle] = []

    @classmethod
    def for_adb(
        cls,
        config: ViewBridgeConfig | None = None,
        adb_location: str | None = None,
        no_init_adb: bool = False,
    ) -> ConnectionManager:
        """Build a manager over the adb transport.

        Args:
            config: Connection settings (defaults come from the environment)
            adb_location: adb binary used to start the server if it is not running
            no_init_adb: Leave transport init/terminate to the caller
        """
        config = config or ViewBridgeConfig.from_env()
        session = TransportSession(AdbTransport(config), owned=not no_init_adb)
        return cls(session, adb_location=adb_location or config.adb_path)

    @property
    def session(self) -> TransportSession:
        return self._session

    @property
    def devices(self) -> tuple[DeviceHandle, ...]:
        """Handles handed out and not yet released."""
        return tuple(self._handles)

    async def start(self) -> None:
        """Start the transport session."""
        await self._session.start(location=self._adb_location, force_new=True)

    async def __aenter__(self) -> ConnectionManager:
        await self.start()
        return self

    async def __aexit__(
        self,
        exc_type: type[BaseException] | None,
        exc: BaseException | None,
        tb: TracebackType | None,
    ) -> None:
        await self.shutdown()

    async def list_devices(self) -> list[DeviceEntry]:
        """Devices currently attached, in transport order."""
        self._session.require_active()
        return await asyncio.to_thread(self._session.transport.list_devices)

    async def wait_for_connection(
        self,
        timeout: float | None = None,
        selector: str = ANY_DEVICE,
    ) -> DeviceHandle | None:
        """Wait for an online device whose serial matches the selector.

        Timeouts shorter than one polling interval are raised to just over one
        interval so at least two checks happen.

        Args:
            timeout: Seconds to wait, or None to wait forever
            selector: Regex matched against the whole serial, or an exact serial

        Returns:
            A registered DeviceHandle, or None if no device came online in time

        Raises:
            ViewBridgeError: Transport failures (not retried) or ERR_INTERRUPTED
                when the waiting task is cancelled
        """
        self._session.require_active()
        matcher = DeviceSelector(selector)
        remaining_ms: int | None = None
        if timeout is not None:
            remaining_ms = max(0, round(timeout * 1000))
            if remaining_ms < self._poll_interval_ms:
                remaining_ms = self._poll_interval_ms + 1

        logger.info("connection_wait_started", selector=selector, timeout_ms=remaining_ms)
        iterations = 0
        try:
            while True:
                iterations += 1
                entries = await asyncio.to_thread(self._session.transport.list_devices)
                entry = matcher.select(entries, state=DeviceState.ONLINE)
                if entry is not None:
                    return self._register(entry, iterations)

                await asyncio.sleep(self._poll_interval_ms / 1000)
                if remaining_ms is not None:
                    remaining_ms -= self._poll_interval_ms
                    if remaining_ms <= 0:
                        break
        except asyncio.CancelledError as e:
            logger.warning("connection_wait_interrupted", selector=selector, iterations=iterations)
            raise interrupted_error(f"wait_for_connection({selector!r})") from e

        logger.info("connection_wait_timed_out", selector=selector, iterations=iterations)
        return None

    async def release(self, handle: DeviceHandle) -> None:
        """Dispose one handle and stop tracking it."""
        if handle in self._handles:
            self._handles.remove(handle)
        await handle.dispose()

    async def shutdown(self) -> None:
        """Dispose every handed-out device, then terminate the owned session.

        Every handle gets a disposal attempt even when earlier ones fail.

        Raises:
            ViewBridgeError: ERR_SHUTDOWN_INCOMPLETE listing each failure
        """
        logger.info("connection_manager_stopping", devices=len(self._handles))
        handles, self._handles = self._handles, []
        failures: dict[str, str] = {}
        first_error: Exception | None = None

        for handle in handles:
            try:
                await handle.dispose()
            except Exception as e:
                logger.error("device_dispose_failed", serial=handle.serial, error=str(e))
                failures[handle.serial] = str(e)
                first_error = first_error or e

        try:
            await self._session.terminate()
        except Exception as e:
            logger.error("transport_terminate_failed", error=str(e))
            failures["<transport>"] = str(e)
            first_error = first_error or e

        if failures:
            raise shutdown_incomplete_error(failures) from first_error
        logger.info("connection_manager_stopped")

    def _register(self, entry: DeviceEntry, iterations: int) -> DeviceHandle:
        handle = DeviceHandle(self._session.transport, entry.serial, entry.state)
        self._handles.append(handle)
        logger.info("device_connected", serial=entry.serial, iterations=iterations)
        return handle
