"""tests/onewire_logger/test_w1_sysfs.py — kernel w1 sysfs backend.

tmp_path に w1 デバイスのディレクトリ構造を作り、実デバイスなしでテストする。
"""

from __future__ import annotations

from pathlib import Path

import pytest

from onewire_logger.onewire import OneWireError
from onewire_logger.w1_sysfs import W1Device, W1SysfsAdapter


# ------------------------------------------------------------------ #
# ヘルパー
# ------------------------------------------------------------------ #

def _make_device(tmp_path: Path, device_id: str, raw_value: str | None) -> Path:
    """Create a fake w1 slave directory, with a temperature file unless raw_value is None."""
    device_dir = tmp_path / device_id
    device_dir.mkdir()
    if raw_value is not None:
        (device_dir / "temperature").write_text(raw_value + "\n")
    return device_dir


def _make_master(tmp_path: Path) -> None:
    (tmp_path / "w1_bus_master1").mkdir()


def _ready_adapter(tmp_path: Path) -> W1SysfsAdapter:
    adapter = W1SysfsAdapter("{W1SYSFS}", str(tmp_path))
    adapter.target_all_families()
    adapter.set_search_all_devices()
    return adapter


def _read(device: W1Device) -> float:
    sensor = device.temperature_sensor()
    assert sensor is not None
    sensor.convert()
    return sensor.read_celsius()


# ------------------------------------------------------------------ #
# TestW1Thermometer
# ------------------------------------------------------------------ #

class TestW1Thermometer:
    def test_normal_positive(self, tmp_path):
        """24500 millidegrees → 24.5°C"""
        device = W1Device(_make_device(tmp_path, "28-00000de13271", "24500"))
        assert _read(device) == pytest.approx(24.5)

    def test_negative_temperature(self, tmp_path):
        """-5125 millidegrees → -5.125°C"""
        device = W1Device(_make_device(tmp_path, "28-00000de13271", "-5125"))
        assert _read(device) == pytest.approx(-5.125)

    def test_trailing_whitespace_stripped(self, tmp_path):
        device = W1Device(_make_device(tmp_path, "28-00000de13271", "20000  "))
        assert _read(device) == pytest.approx(20.0)

    def test_device_removed_after_discovery(self, tmp_path):
        device_dir = _make_device(tmp_path, "28-00000de13271", "20000")
        sensor = W1Device(device_dir).temperature_sensor()
        (device_dir / "temperature").unlink()
        with pytest.raises(OneWireError, match="device not found"):
            sensor.convert()

    def test_invalid_value(self, tmp_path):
        device = W1Device(_make_device(tmp_path, "28-00000de13271", "invalid"))
        sensor = device.temperature_sensor()
        with pytest.raises(OneWireError, match="invalid temperature value"):
            sensor.convert()

    def test_undecodable_value(self, tmp_path):
        """壊れたバイト列は UnicodeDecodeError ではなく OneWireError になる"""
        device_dir = _make_device(tmp_path, "28-00000de13271", "0")
        (device_dir / "temperature").write_bytes(b"\xff\xfe\n")
        sensor = W1Device(device_dir).temperature_sensor()
        with pytest.raises(OneWireError, match="undecodable temperature value"):
            sensor.convert()

    def test_read_before_convert(self, tmp_path):
        device = W1Device(_make_device(tmp_path, "28-00000de13271", "20000"))
        with pytest.raises(OneWireError, match="no conversion"):
            device.temperature_sensor().read_celsius()


# ------------------------------------------------------------------ #
# TestW1Device
# ------------------------------------------------------------------ #

class TestW1Device:
    def test_address_and_family(self, tmp_path):
        device = W1Device(_make_device(tmp_path, "10-000801b5c4a2", "19000"))
        assert device.address == "10-000801b5c4a2"
        assert device.family == 0x10

    def test_non_temperature_family_has_no_sensor(self, tmp_path):
        """DS2401 (family 01) は温度センサーではない"""
        device = W1Device(_make_device(tmp_path, "01-000012345678", None))
        assert device.temperature_sensor() is None

    def test_missing_temperature_file_has_no_sensor(self, tmp_path):
        device = W1Device(_make_device(tmp_path, "28-notworking", None))
        assert device.temperature_sensor() is None


# ------------------------------------------------------------------ #
# TestW1SysfsAdapter
# ------------------------------------------------------------------ #

class TestW1SysfsAdapter:
    def test_detected_with_bus_master(self, tmp_path):
        _make_master(tmp_path)
        assert W1SysfsAdapter("{W1SYSFS}", str(tmp_path)).adapter_detected() is True

    def test_not_detected_without_bus_master(self, tmp_path):
        assert W1SysfsAdapter("{W1SYSFS}", str(tmp_path)).adapter_detected() is False

    def test_reset_missing_directory(self, tmp_path):
        adapter = W1SysfsAdapter("{W1SYSFS}", str(tmp_path / "missing"))
        with pytest.raises(OneWireError):
            adapter.reset()

    def test_iter_devices_skips_bus_master(self, tmp_path):
        _make_master(tmp_path)
        _make_device(tmp_path, "28-aabbccddeeff", "20000")
        _make_device(tmp_path, "01-000012345678", None)

        addresses = [d.address for d in _ready_adapter(tmp_path).iter_devices()]
        assert addresses == ["01-000012345678", "28-aabbccddeeff"]

    def test_iter_devices_family_filter(self, tmp_path):
        _make_device(tmp_path, "28-aabbccddeeff", "20000")
        _make_device(tmp_path, "10-001122334455", "22000")

        adapter = _ready_adapter(tmp_path)
        adapter.target_family(0x28)
        assert [d.address for d in adapter.iter_devices()] == ["28-aabbccddeeff"]

        adapter.target_all_families()
        assert len(list(adapter.iter_devices())) == 2

    def test_iter_devices_requires_search_all(self, tmp_path):
        adapter = W1SysfsAdapter("{W1SYSFS}", str(tmp_path))
        with pytest.raises(OneWireError, match="alarm-only"):
            list(adapter.iter_devices())

    def test_iter_devices_missing_directory(self, tmp_path):
        adapter = _ready_adapter(tmp_path / "gone")
        with pytest.raises(OneWireError, match="enumeration failed"):
            list(adapter.iter_devices())

    def test_empty_bus(self, tmp_path):
        _make_master(tmp_path)
        assert list(_ready_adapter(tmp_path).iter_devices()) == []
