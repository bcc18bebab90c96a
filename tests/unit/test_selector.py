"""Tests for DeviceSelector."""

from __future__ import annotations

import pytest

from viewbridge.device.selector import ANY_DEVICE, DeviceSelector
from viewbridge.transport.base import DeviceEntry, DeviceState


class TestMatches:
    """Tests for DeviceSelector.matches."""

    def test_exact_serial(self) -> None:
        """Should match its own serial exactly."""
        assert DeviceSelector("emulator-5554").matches("emulator-5554")

    def test_pattern(self) -> None:
        """Should match a regex against the serial."""
        assert DeviceSelector("emulator-.*").matches("emulator-5554")

    def test_other_serial_does_not_match(self) -> None:
        assert not DeviceSelector("emulator-5554").matches("emulator-5555")

    def test_pattern_must_cover_whole_serial(self) -> None:
        """A partial match is not a match."""
        assert not DeviceSelector("emulator").matches("emulator-5554")
        assert not DeviceSelector("5554").matches("emulator-5554")

    def test_default_matches_anything(self) -> None:
        assert DeviceSelector().pattern == ANY_DEVICE
        assert DeviceSelector().matches("R58M12ABCDE")

    def test_metacharacters_fall_back_to_literal(self) -> None:
        """A serial full of regex metacharacters should still match itself."""
        serial = "adb-R58M(1)._adb-tls-connect._tcp"
        selector = DeviceSelector(serial)
        assert selector.matches(serial)
        assert not selector.matches("adb-R58M2._adb-tls-connect._tcp")

    def test_dots_in_pattern_match_as_regex(self) -> None:
        """'192.168.1.5:5555' as a regex also matches itself literally."""
        selector = DeviceSelector("192.168.1.5:5555")
        assert selector.matches("192.168.1.5:5555")

    @pytest.mark.parametrize("selector", ["emulator-[", "(unclosed", "*bad"])
    def test_malformed_regex_is_literal_only(self, selector: str) -> None:
        """An invalid regex should not raise and should match only itself."""
        compiled = DeviceSelector(selector)
        assert compiled.matches(selector)
        assert not compiled.matches("emulator-5554")


class TestSelect:
    """Tests for DeviceSelector.select."""

    def test_first_match_in_order(self) -> None:
        entries = [
            DeviceEntry("R58M12ABCDE", DeviceState.ONLINE),
            DeviceEntry("emulator-5556", DeviceState.ONLINE),
            DeviceEntry("emulator-5554", DeviceState.ONLINE),
        ]
        selected = DeviceSelector("emulator-.*").select(entries)
        assert selected is not None
        assert selected.serial == "emulator-5556"

    def test_state_filter(self) -> None:
        """Only entries in the requested state should be considered."""
        entries = [
            DeviceEntry("emulator-5554", DeviceState.BOOTING),
            DeviceEntry("emulator-5556", DeviceState.ONLINE),
        ]
        selected = DeviceSelector("emulator-.*").select(entries, state=DeviceState.ONLINE)
        assert selected == DeviceEntry("emulator-5556", DeviceState.ONLINE)

    def test_no_match(self) -> None:
        entries = [DeviceEntry("emulator-5554", DeviceState.ONLINE)]
        assert DeviceSelector("emulator-5555").select(entries) is None
        assert DeviceSelector(ANY_DEVICE).select([]) is None
