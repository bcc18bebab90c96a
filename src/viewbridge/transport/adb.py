"""adb transport - device discovery through adbutils, view queries over monkey."""

from __future__ import annotations

import socket
import subprocess
import threading
import time
from collections.abc import Callable
from dataclasses import dataclass
from typing import TYPE_CHECKING, Any, TypeVar

import adbutils
import structlog
from adbutils import AdbError, AdbTimeout

from viewbridge.config import ViewBridgeConfig
from viewbridge.errors import (
    ViewBridgeError,
    command_rejected_error,
    operation_timeout_error,
    transport_unavailable_error,
)
from viewbridge.transport.base import DeviceEntry, DeviceState, ViewAttribute, ViewProperty
from viewbridge.transport.monkey import MonkeyClient, parse_id_list, parse_ids

if TYPE_CHECKING:
    from viewbridge.ui.view import AccessibilityIds

logger = structlog.get_logger()

T = TypeVar("T")

# The view server needs a moment to bind its port after monkey starts.
CHANNEL_CONNECT_ATTEMPTS = 5
CHANNEL_CONNECT_DELAY = 0.5
START_SERVER_TIMEOUT = 30.0
# monkey answers getparent on a root view with "ERROR:Given node has no parent".
NO_PARENT_REASON = "no parent"


@dataclass
class _ViewChannel:
    """Per-device monkey process plus the client talking to it."""

    client: MonkeyClient
    process: Any
    local_port: int


def _free_port() -> int:
    with socket.socket(socket.AF_INET, socket.SOCK_STREAM) as sock:
        sock.bind(("127.0.0.1", 0))
        return int(sock.getsockname()[1])


class AdbTransport:
    """DeviceTransport backed by the adb server."""

    def __init__(self, config: ViewBridgeConfig | None = None) -> None:
        self._config = config or ViewBridgeConfig()
        self._client: adbutils.AdbClient | None = None
        self._channels: dict[str, _ViewChannel] = {}
        # Held across _open_channel so concurrent queries share one channel.
        self._channels_lock = threading.Lock()
        self._debugger_support = False

    def init(self, debugger_support: bool) -> None:
        """Prepare the transport; debugger support is recorded but unused by adb."""
        self._debugger_support = debugger_support
        logger.info("adb_transport_init", debugger_support=debugger_support)

    def create_session(self, location: str | None, force_new: bool) -> None:
        """Connect to the adb server, starting it with the given binary if needed."""
        if force_new:
            self._close_channels()
            self._client = None
        if self._client is None:
            self._client = adbutils.AdbClient(
                host=self._config.adb_host,
                port=self._config.adb_port,
                socket_timeout=self._config.socket_timeout,
            )

        if self._server_version() is None:
            self._start_server(location or self._config.adb_path or adbutils.adb_path())
            version = self._server_version()
            if version is None:
                raise transport_unavailable_error(
                    f"adb server not reachable on {self._config.adb_host}:{self._config.adb_port}"
                )
        logger.info(
            "adb_session_created", host=self._config.adb_host, port=self._config.adb_port
        )

    def terminate(self) -> None:
        """Close every view channel and drop the adb client."""
        self._close_channels()
        self._client = None
        logger.info("adb_transport_terminated")

    def list_devices(self) -> list[DeviceEntry]:
        client = self._require_client()
        infos = self._call("list devices", client.list)
        return [
            DeviceEntry(serial=info.serial, state=DeviceState.from_adb(info.state))
            for info in infos
        ]

    def query_attribute(self, serial: str, ids: AccessibilityIds, attribute: ViewAttribute) -> str:
        return self._channel(serial).query_view(ids, f"get{attribute.value}")

    def query_children(self, serial: str, ids: AccessibilityIds) -> list[AccessibilityIds]:
        reply = self._channel(serial).query_view(ids, "getchildren")
        try:
            return parse_id_list(reply)
        except ValueError as e:
            raise command_rejected_error("getchildren", str(e)) from e

    def query_parent(self, serial: str, ids: AccessibilityIds) -> AccessibilityIds | None:
        try:
            reply = self._channel(serial).query_view(ids, "getparent")
        except ViewBridgeError as e:
            reason = str(e.context.get("reason", "")).lower()
            if e.code == "ERR_COMMAND_REJECTED" and NO_PARENT_REASON in reason:
                return None
            raise
        if not reply.strip():
            return None
        try:
            return parse_ids(reply)
        except ValueError as e:
            raise command_rejected_error("getparent", str(e)) from e

    def query_root(self, serial: str) -> AccessibilityIds:
        return self._channel(serial).get_root_view()

    def set_property(
        self, serial: str, ids: AccessibilityIds, prop: ViewProperty, value: bool
    ) -> None:
        self._channel(serial).query_view(ids, f"set{prop.value}", "true" if value else "false")

    def dispose(self, serial: str) -> None:
        """Stop the view server of one device; no-op when none was started."""
        with self._channels_lock:
            channel = self._channels.pop(serial, None)
        if channel is None:
            return
        self._close_channel(serial, channel)
        logger.info("adb_device_disposed", serial=serial)

    def _require_client(self) -> adbutils.AdbClient:
        if self._client is None:
            raise transport_unavailable_error("adb session not created")
        return self._client

    def _call(self, command: str, fn: Callable[[], T]) -> T:
        try:
            return fn()
        except AdbTimeout as e:
            raise operation_timeout_error(command, self._config.socket_timeout) from e
        except AdbError as e:
            raise command_rejected_error(command, str(e)) from e
        except OSError as e:
            raise transport_unavailable_error(f"{command}: {e}") from e

    def _server_version(self) -> int | None:
        client = self._require_client()
        try:
            return int(client.server_version())
        except (AdbError, OSError) as e:
            logger.debug("adb_server_not_answering", error=str(e))
            return None

    def _start_server(self, adb_binary: str) -> None:
        logger.info("adb_server_starting", adb=adb_binary)
        try:
            result = subprocess.run(
                [adb_binary, "-P", str(self._config.adb_port), "start-server"],
                capture_output=True,
                text=True,
                timeout=START_SERVER_TIMEOUT,
            )
        except subprocess.TimeoutExpired as e:
            raise operation_timeout_error("adb start-server", START_SERVER_TIMEOUT) from e
        except OSError as e:
            raise transport_unavailable_error(f"cannot run {adb_binary}: {e}") from e
        if result.returncode != 0:
            raise transport_unavailable_error(
                f"adb start-server exited with {result.returncode}: {result.stderr.strip()}"
            )

    def _channel(self, serial: str) -> MonkeyClient:
        with self._channels_lock:
            channel = self._channels.get(serial)
            if channel is not None and channel.client.is_connected:
                return channel.client
            if channel is not None:
                self._close_channel(serial, self._channels.pop(serial))
            channel = self._open_channel(serial)
            self._channels[serial] = channel
            return channel.client

    def _open_channel(self, serial: str) -> _ViewChannel:
        client = self._require_client()
        remote_port = self._config.monkey_port
        local_port = _free_port()
        device = client.device(serial=serial)

        self._call(
            f"forward tcp:{local_port} on {serial}",
            lambda: device.forward(f"tcp:{local_port}", f"tcp:{remote_port}"),
        )
        try:
            process = self._call(
                f"start view server on {serial}",
                lambda: device.shell(["monkey", "--port", str(remote_port)], stream=True),
            )
        except ViewBridgeError:
            self._remove_forward(device, local_port)
            raise
        monkey = MonkeyClient("127.0.0.1", local_port, timeout=self._config.socket_timeout)

        last_error: ViewBridgeError | None = None
        for attempt in range(CHANNEL_CONNECT_ATTEMPTS):
            try:
                monkey.connect()
                monkey.send("wake")
                logger.info("view_channel_opened", serial=serial, local_port=local_port)
                return _ViewChannel(client=monkey, process=process, local_port=local_port)
            except ViewBridgeError as e:
                last_error = e
                monkey.close()
                logger.debug("view_channel_retry", serial=serial, attempt=attempt + 1, code=e.code)
                time.sleep(CHANNEL_CONNECT_DELAY)

        process.close()
        self._remove_forward(device, local_port)
        assert last_error is not None
        raise last_error

    def _remove_forward(self, device: Any, local_port: int) -> None:
        try:
            device.forward_remove(f"tcp:{local_port}", False)
        except (AdbError, OSError) as e:
            logger.debug("adb_forward_remove_failed", local_port=local_port, error=str(e))

    def _close_channel(self, serial: str, channel: _ViewChannel) -> None:
        try:
            channel.client.close()
        finally:
            try:
                channel.process.close()
            except OSError:
                logger.debug("view_server_stream_close_failed", serial=serial)

    def _close_channels(self) -> None:
        with self._channels_lock:
            channels, self._channels = self._channels, {}
        for serial, channel in channels.items():
            self._close_channel(serial, channel)
