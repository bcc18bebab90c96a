"""Error model - Actionable errors with remediation hints."""

from __future__ import annotations

from dataclasses import dataclass, field
from typing import TYPE_CHECKING, Any

if TYPE_CHECKING:
    from viewbridge.ui.view import AccessibilityIds


@dataclass
class ViewBridgeError(Exception):
    """
    Base error with context and remediation guidance.

    Every failure raised by the library carries a specific code so callers
    can tell transport outages, rejected commands and timeouts apart.
    """

    code: str
    message: str
    context: dict[str, Any] = field(default_factory=dict)
    remediation: str = ""

    def __str__(self) -> str:
        return f"[{self.code}] {self.message}"

    def to_dict(self) -> dict[str, Any]:
        """Convert to JSON-serializable dict."""
        return {
            "code": self.code,
            "message": self.message,
            "context": self.context,
            "remediation": self.remediation,
        }


# Specific error constructors for common cases


def transport_unavailable_error(reason: str) -> ViewBridgeError:
    """Create error for an unreachable adb server or view channel."""
    return ViewBridgeError(
        code="ERR_TRANSPORT_UNAVAILABLE",
        message=f"Transport unavailable: {reason}",
        context={"reason": reason},
        remediation="Check that the adb server is running ('adb start-server') and retry.",
    )


def command_rejected_error(command: str, reason: str) -> ViewBridgeError:
    """Create error for a request refused by the transport."""
    return ViewBridgeError(
        code="ERR_COMMAND_REJECTED",
        message=f"Command rejected: {command}",
        context={"command": command, "reason": reason},
        remediation="Check the command arguments and that the target still exists.",
    )


def operation_timeout_error(command: str, timeout: float) -> ViewBridgeError:
    """Create error for a single transport round trip that timed out."""
    return ViewBridgeError(
        code="ERR_OPERATION_TIMEOUT",
        message=f"Transport operation timed out: {command}",
        context={"command": command, "timeout_ms": round(timeout * 1000)},
        remediation="Increase VIEWBRIDGE_SOCKET_TIMEOUT or check the device is responsive.",
    )


def interrupted_error(operation: str) -> ViewBridgeError:
    """Create error for a wait aborted by cancellation."""
    return ViewBridgeError(
        code="ERR_INTERRUPTED",
        message=f"Interrupted while waiting: {operation}",
        context={"operation": operation},
        remediation="The wait was cancelled before completing; start it again if needed.",
    )


def attribute_query_failed_error(
    ids: AccessibilityIds, attribute: str, cause: Exception
) -> ViewBridgeError:
    """Create error for a single view accessor that could not complete."""
    cause_code = cause.code if isinstance(cause, ViewBridgeError) else type(cause).__name__
    return ViewBridgeError(
        code="ERR_ATTRIBUTE_QUERY_FAILED",
        message=f"Query '{attribute}' failed for view {ids}",
        context={
            "window_id": ids.window_id,
            "node_id": ids.node_id,
            "attribute": attribute,
            "cause": cause_code,
            "reason": str(cause),
        },
        remediation="The view may have disappeared; fetch it again from the root view.",
    )


def device_disposed_error(serial: str) -> ViewBridgeError:
    """Create error for use of a released device handle."""
    return ViewBridgeError(
        code="ERR_DEVICE_DISPOSED",
        message=f"Device handle already released: {serial}",
        context={"serial": serial},
        remediation="Acquire a new handle with wait_for_connection().",
    )


def shutdown_incomplete_error(failures: dict[str, str]) -> ViewBridgeError:
    """Create error aggregating the disposals that failed during shutdown."""
    return ViewBridgeError(
        code="ERR_SHUTDOWN_INCOMPLETE",
        message=f"Shutdown completed with {len(failures)} failure(s)",
        context={"failures": failures},
        remediation="Check the listed devices; their transport resources may still be held.",
    )


def invalid_config_error(name: str, value: str) -> ViewBridgeError:
    """Create error for a malformed configuration value."""
    return ViewBridgeError(
        code="ERR_INVALID_CONFIG",
        message=f"Invalid value for {name}: {value!r}",
        context={"name": name, "value": value},
        remediation=f"Unset {name} or give it a valid value.",
    )


def invalid_duration_error(value: object) -> ViewBridgeError:
    """Create error for an unparseable duration."""
    return ViewBridgeError(
        code="ERR_INVALID_DURATION",
        message=f"Cannot parse duration: {value}",
        context={"value": str(value)},
        remediation="Use seconds ('5', '2.5s'), milliseconds ('250ms'), minutes ('2m') or 'inf'.",
    )
