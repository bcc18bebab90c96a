"""Transport boundary - what the core needs from the debug bridge."""

from __future__ import annotations

from dataclasses import dataclass
from enum import Enum
from typing import TYPE_CHECKING, Protocol

if TYPE_CHECKING:
    from viewbridge.ui.view import AccessibilityIds


class DeviceState(Enum):
    """Readiness of an attached device."""

    OFFLINE = "offline"
    BOOTING = "booting"
    ONLINE = "online"
    DISCONNECTED = "disconnected"

    @classmethod
    def from_adb(cls, state: str) -> DeviceState:
        """Map an adb device state string (as printed by 'adb devices')."""
        return _ADB_STATES.get(state.strip().lower(), cls.DISCONNECTED)


_ADB_STATES = {
    "device": DeviceState.ONLINE,
    "offline": DeviceState.OFFLINE,
    "unauthorized": DeviceState.OFFLINE,
    "authorizing": DeviceState.OFFLINE,
    "connecting": DeviceState.OFFLINE,
    "no permissions": DeviceState.OFFLINE,
    "bootloader": DeviceState.BOOTING,
    "recovery": DeviceState.BOOTING,
    "sideload": DeviceState.BOOTING,
    "rescue": DeviceState.BOOTING,
    "host": DeviceState.BOOTING,
}


@dataclass(frozen=True)
class DeviceEntry:
    """One attached device as reported by the transport."""

    serial: str
    state: DeviceState


class ViewAttribute(Enum):
    """Readable view attributes."""

    CLASS = "class"
    TEXT = "text"
    LOCATION = "location"
    CHECKED = "checked"
    ENABLED = "enabled"
    SELECTED = "selected"
    FOCUSED = "focused"


class ViewProperty(Enum):
    """Writable view properties."""

    SELECTED = "selected"
    FOCUSED = "focused"


class DeviceTransport(Protocol):
    """
    Blocking debug-bridge collaborator.

    Implementations raise ViewBridgeError with one of the transport codes
    (ERR_TRANSPORT_UNAVAILABLE, ERR_COMMAND_REJECTED, ERR_OPERATION_TIMEOUT).
    """

    def init(self, debugger_support: bool) -> None: ...

    def create_session(self, location: str | None, force_new: bool) -> None: ...

    def terminate(self) -> None: ...

    def list_devices(self) -> list[DeviceEntry]: ...

    def query_attribute(
        self, serial: str, ids: AccessibilityIds, attribute: ViewAttribute
    ) -> str: ...

    def query_children(self, serial: str, ids: AccessibilityIds) -> list[AccessibilityIds]: ...

    def query_parent(self, serial: str, ids: AccessibilityIds) -> AccessibilityIds | None: ...

    def query_root(self, serial: str) -> AccessibilityIds: ...

    def set_property(
        self, serial: str, ids: AccessibilityIds, prop: ViewProperty, value: bool
    ) -> None: ...

    def dispose(self, serial: str) -> None: ...
