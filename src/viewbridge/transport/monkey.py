"""Line-oriented client for the on-device monkey view server."""

from __future__ import annotations

import socket
import threading
from typing import IO

import structlog

from viewbridge.errors import (
    command_rejected_error,
    operation_timeout_error,
    transport_unavailable_error,
)
from viewbridge.ui.view import AccessibilityIds

logger = structlog.get_logger()


def parse_ids(value: str) -> AccessibilityIds:
    """Parse a '<window> <node>' reply."""
    parts = value.split()
    if len(parts) != 2:
        raise ValueError(f"Expected '<window> <node>', got: {value!r}")
    return AccessibilityIds(window_id=int(parts[0]), node_id=int(parts[1]))


def parse_id_list(value: str) -> list[AccessibilityIds]:
    """Parse a flat '<window> <node> <window> <node> ...' reply."""
    parts = value.split()
    if len(parts) % 2:
        raise ValueError(f"Odd number of ids in reply: {value!r}")
    return [
        AccessibilityIds(window_id=int(parts[i]), node_id=int(parts[i + 1]))
        for i in range(0, len(parts), 2)
    ]


class MonkeyClient:
    """Speaks the monkey text protocol: one command per line, OK/ERROR replies."""

    def __init__(self, host: str, port: int, timeout: float = 10.0) -> None:
        self._host = host
        self._port = port
        self._timeout = timeout
        self._sock: socket.socket | None = None
        self._stream: IO[str] | None = None
        self._lock = threading.Lock()

    @property
    def is_connected(self) -> bool:
        return self._stream is not None

    def connect(self) -> None:
        """Open the TCP connection to the (forwarded) view server."""
        if self._stream is not None:
            return
        try:
            sock = socket.create_connection((self._host, self._port), timeout=self._timeout)
        except TimeoutError as e:
            raise operation_timeout_error("connect", self._timeout) from e
        except OSError as e:
            raise transport_unavailable_error(
                f"cannot connect to view server on {self._host}:{self._port}: {e}"
            ) from e
        self._sock = sock
        self._stream = sock.makefile("rw", encoding="utf-8", newline="\n")
        logger.debug("monkey_connected", host=self._host, port=self._port)

    def close(self) -> None:
        """Ask the view server to quit and close the connection."""
        with self._lock:
            if self._stream is None:
                return
            try:
                self._stream.write("quit\n")
                self._stream.flush()
            except OSError:
                logger.debug("monkey_quit_failed", port=self._port)
            finally:
                self._teardown()
        logger.debug("monkey_closed", port=self._port)

    def send(self, command: str) -> str:
        """Send one command and return the reply payload (text after 'OK:').

        Raises:
            ViewBridgeError: ERR_COMMAND_REJECTED on an ERROR reply,
                ERR_OPERATION_TIMEOUT when no reply arrives in time,
                ERR_TRANSPORT_UNAVAILABLE when the connection is gone
        """
        with self._lock:
            if self._stream is None:
                raise transport_unavailable_error("view server connection is closed")
            try:
                self._stream.write(command + "\n")
                self._stream.flush()
                line = self._stream.readline()
            except TimeoutError as e:
                # The reply may still arrive later and desync the stream.
                self._teardown()
                raise operation_timeout_error(command, self._timeout) from e
            except OSError as e:
                self._teardown()
                raise transport_unavailable_error(f"view server connection lost: {e}") from e

        if not line:
            with self._lock:
                self._teardown()
            raise transport_unavailable_error("view server closed the connection")

        reply = line.rstrip("\r\n")
        if reply == "OK":
            return ""
        if reply.startswith("OK:"):
            return reply[3:]
        reason = reply[6:] if reply.startswith("ERROR:") else reply
        raise command_rejected_error(command, reason or "unknown error")

    def query_view(self, ids: AccessibilityIds, command: str, *args: str) -> str:
        """Run a queryview command against one view."""
        parts = ["queryview", "viewid", str(ids.window_id), str(ids.node_id), command, *args]
        return self.send(" ".join(parts))

    def get_root_view(self) -> AccessibilityIds:
        reply = self.send("getrootview")
        try:
            return parse_ids(reply)
        except ValueError as e:
            raise command_rejected_error("getrootview", str(e)) from e

    def _teardown(self) -> None:
        if self._stream is not None:
            try:
                self._stream.close()
            except OSError:
                logger.debug("monkey_stream_close_failed", port=self._port)
        if self._sock is not None:
            self._sock.close()
        self._stream = None
        self._sock = None
