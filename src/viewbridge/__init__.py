"""Wait for Android devices over adb and inspect their live view hierarchy."""

from viewbridge.device.handle import DeviceHandle
from viewbridge.device.manager import CONNECTION_ITERATION_TIMEOUT, ConnectionManager
from viewbridge.device.selector import DeviceSelector
from viewbridge.device.session import TransportSession
from viewbridge.errors import ViewBridgeError
from viewbridge.transport.base import DeviceEntry, DeviceState, DeviceTransport
from viewbridge.ui.view import AccessibilityIds, ViewNode, ViewRect

__version__ = "0.1.0"

__all__ = [
    "CONNECTION_ITERATION_TIMEOUT",
    "AccessibilityIds",
    "ConnectionManager",
    "DeviceEntry",
    "DeviceHandle",
    "DeviceSelector",
    "DeviceState",
    "DeviceTransport",
    "TransportSession",
    "ViewBridgeError",
    "ViewNode",
    "ViewRect",
    "__version__",
]
