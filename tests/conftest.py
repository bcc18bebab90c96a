"""Pytest configuration and fixtures."""

from __future__ import annotations

from collections.abc import Iterator
from dataclasses import dataclass, field

import pytest

from viewbridge.errors import ViewBridgeError, command_rejected_error
from viewbridge.transport.base import DeviceEntry, DeviceState, ViewAttribute, ViewProperty
from viewbridge.ui.view import AccessibilityIds


@dataclass
class FakeView:
    """One node of the in-memory UI."""

    view_class: str
    text: str = ""
    location: str = "0 0 100 100"
    checked: bool = False
    enabled: bool = True
    selected: bool = False
    focused: bool = False
    parent: AccessibilityIds | None = None
    children: list[AccessibilityIds] = field(default_factory=list)


class FakeTransport:
    """In-memory DeviceTransport.

    Each list_devices() call consumes the next scripted device list; the last
    one repeats. Set ``failures[(serial, name)]`` to make a query raise.
    """

    def __init__(self, polls: list[list[DeviceEntry]] | None = None) -> None:
        self.polls: list[list[DeviceEntry]] = polls or [[]]
        self.list_calls = 0
        self.calls: list[tuple[str, ...]] = []
        self.views: dict[str, dict[AccessibilityIds, FakeView]] = {}
        self.roots: dict[str, AccessibilityIds] = {}
        self.failures: dict[tuple[str, str], Exception] = {}
        self.list_error: Exception | None = None

    def add_view(self, serial: str, ids: AccessibilityIds, view: FakeView) -> None:
        self.views.setdefault(serial, {})[ids] = view
        if view.parent is None:
            self.roots.setdefault(serial, ids)

    def init(self, debugger_support: bool) -> None:
        self.calls.append(("init", str(debugger_support)))

    def create_session(self, location: str | None, force_new: bool) -> None:
        self.calls.append(("create_session", str(location), str(force_new)))

    def terminate(self) -> None:
        self.calls.append(("terminate",))

    def list_devices(self) -> list[DeviceEntry]:
        self.list_calls += 1
        if self.list_error is not None:
            raise self.list_error
        index = min(self.list_calls - 1, len(self.polls) - 1)
        return list(self.polls[index])

    def query_attribute(self, serial: str, ids: AccessibilityIds, attribute: ViewAttribute) -> str:
        view = self._view(serial, ids, attribute.value)
        if attribute is ViewAttribute.CLASS:
            return view.view_class
        if attribute is ViewAttribute.TEXT:
            return view.text
        if attribute is ViewAttribute.LOCATION:
            return view.location
        return "true" if getattr(view, attribute.value) else "false"

    def query_children(self, serial: str, ids: AccessibilityIds) -> list[AccessibilityIds]:
        return list(self._view(serial, ids, "children").children)

    def query_parent(self, serial: str, ids: AccessibilityIds) -> AccessibilityIds | None:
        return self._view(serial, ids, "parent").parent

    def query_root(self, serial: str) -> AccessibilityIds:
        self._maybe_fail(serial, "root")
        return self.roots[serial]

    def set_property(
        self, serial: str, ids: AccessibilityIds, prop: ViewProperty, value: bool
    ) -> None:
        view = self._view(serial, ids, f"set{prop.value}")
        setattr(view, prop.value, value)

    def dispose(self, serial: str) -> None:
        self.calls.append(("dispose", serial))
        self._maybe_fail(serial, "dispose")

    def _maybe_fail(self, serial: str, name: str) -> None:
        error = self.failures.get((serial, name))
        if error is not None:
            raise error

    def _view(self, serial: str, ids: AccessibilityIds, name: str) -> FakeView:
        self._maybe_fail(serial, name)
        view = self.views.get(serial, {}).get(ids)
        if view is None:
            raise command_rejected_error(f"queryview {ids} {name}", "view not found")
        return view


def online(serial: str) -> DeviceEntry:
    return DeviceEntry(serial=serial, state=DeviceState.ONLINE)


@pytest.fixture
def fake_transport() -> FakeTransport:
    """Transport with one online emulator."""
    return FakeTransport(polls=[[online("emulator-5554")]])


@pytest.fixture
def sample_ui(fake_transport: FakeTransport) -> Iterator[FakeTransport]:
    """A small login screen on emulator-5554.

    Tree: root(1:1) -> layout(1:2) -> [title(1:3), button(1:4), checkbox(1:5)]
    """
    root = AccessibilityIds(1, 1)
    layout = AccessibilityIds(1, 2)
    title = AccessibilityIds(1, 3)
    button = AccessibilityIds(1, 4)
    checkbox = AccessibilityIds(1, 5)
    serial = "emulator-5554"

    fake_transport.add_view(
        serial,
        root,
        FakeView("android.widget.FrameLayout", location="0 0 1080 2400", children=[layout]),
    )
    fake_transport.add_view(
        serial,
        layout,
        FakeView(
            "android.widget.LinearLayout",
            location="0 100 1080 2200",
            parent=root,
            children=[title, button, checkbox],
        ),
    )
    fake_transport.add_view(
        serial,
        title,
        FakeView(
            "android.widget.TextView", text="Welcome", location="100 150 880 50", parent=layout
        ),
    )
    fake_transport.add_view(
        serial,
        button,
        FakeView(
            "android.widget.Button", text="Sign In", location="200 400 680 100", parent=layout
        ),
    )
    fake_transport.add_view(
        serial,
        checkbox,
        FakeView(
            "android.widget.CheckBox",
            text="Remember me",
            location="100 700 300 50",
            checked=True,
            parent=layout,
        ),
    )
    yield fake_transport


@pytest.fixture
def rejected() -> ViewBridgeError:
    return command_rejected_error("queryview", "no such view")
