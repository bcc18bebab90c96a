"""Device selector - pick devices by serial pattern or exact serial."""

from __future__ import annotations

import re
from collections.abc import Iterable
from dataclasses import dataclass, field

import structlog

from viewbridge.transport.base import DeviceEntry, DeviceState

logger = structlog.get_logger()

ANY_DEVICE = ".*"


@dataclass(frozen=True)
class DeviceSelector:
    """
    Match device serials against a selector string.

    The selector is tried as a regular expression that must match the whole
    serial; a serial equal to the selector always matches too, which covers
    serials containing regex metacharacters (e.g. '192.168.1.5:5555').
    A selector that does not compile is used as a literal only.
    """

    pattern: str = ANY_DEVICE
    _regex: re.Pattern[str] | None = field(init=False, repr=False, compare=False)

    def __post_init__(self) -> None:
        try:
            regex: re.Pattern[str] | None = re.compile(self.pattern)
        except re.error:
            logger.debug("selector_not_a_pattern", selector=self.pattern)
            regex = None
        object.__setattr__(self, "_regex", regex)

    def matches(self, serial: str) -> bool:
        """Check a single serial."""
        if self._regex is not None and self._regex.fullmatch(serial):
            return True
        return serial == self.pattern

    def select(
        self, entries: Iterable[DeviceEntry], state: DeviceState | None = None
    ) -> DeviceEntry | None:
        """Return the first matching entry in the given order.

        Args:
            entries: Devices in transport order
            state: Only consider entries in exactly this state
        """
        for entry in entries:
            if state is not None and entry.state is not state:
                continue
            if self.matches(entry.serial):
                return entry
        return None
