"""Shared fakes for the 1-Wire collaborator interface."""

from __future__ import annotations

from pathlib import Path
from typing import Callable, Iterable, Optional

import pytest

from onewire_logger.onewire import OneWireError


class FakeSensor:
    def __init__(self, values: Iterable[float], fail: bool = False, calls: Optional[list] = None,
                 error: Optional[Exception] = None) -> None:
        self._values = iter(values)
        self._fail = fail
        self._error = error
        self._value: Optional[float] = None
        self.calls = calls if calls is not None else []

    def convert(self) -> None:
        self.calls.append("convert")
        if self._error is not None:
            raise self._error
        if self._fail:
            raise OneWireError("CRC error")
        self._value = next(self._values)

    def read_celsius(self) -> float:
        self.calls.append("read")
        return self._value


class FakeDevice:
    def __init__(self, address: str, sensor: Optional[FakeSensor]) -> None:
        self.address = address
        self.family = int(address[:2], 16)
        self._sensor = sensor

    def temperature_sensor(self) -> Optional[FakeSensor]:
        return self._sensor


class FakeAdapter:
    """In-memory PortAdapter.

    Scans listed in ``fail_enumeration_on`` (1-based) yield the first device
    and then fail.
    """

    def __init__(self, devices=(), detected: bool = True, name: str = "{FAKE}", port: str = "FAKE0") -> None:
        self.name = name
        self.port = port
        self.devices = list(devices)
        self.detected = detected
        self.calls: list[str] = []
        self.fail_enumeration_on: set[int] = set()
        self.scans = 0

    def adapter_detected(self) -> bool:
        self.calls.append("adapter_detected")
        return self.detected

    def target_all_families(self) -> None:
        self.calls.append("target_all_families")

    def target_family(self, *families: int) -> None:
        self.calls.append("target_family")

    def begin_exclusive(self) -> None:
        self.calls.append("begin_exclusive")

    def end_exclusive(self) -> None:
        self.calls.append("end_exclusive")

    def reset(self) -> None:
        self.calls.append("reset")

    def set_search_all_devices(self) -> None:
        self.calls.append("set_search_all_devices")

    def iter_devices(self):
        self.scans += 1
        if self.scans in self.fail_enumeration_on:
            yield self.devices[0]
            raise OneWireError("search lost sync")
        yield from self.devices

    def close(self) -> None:
        self.calls.append("close")


@pytest.fixture
def make_device() -> Callable[..., FakeDevice]:
    def _make(address: str, values: Iterable[float] = (20.0,), fail: bool = False,
              temperature: bool = True, calls: Optional[list] = None,
              error: Optional[Exception] = None) -> FakeDevice:
        sensor = FakeSensor(values, fail=fail, calls=calls, error=error) if temperature else None
        return FakeDevice(address, sensor)
    return _make


@pytest.fixture
def fake_adapter_cls() -> type:
    return FakeAdapter


@pytest.fixture
def w1_tree(tmp_path: Path) -> Callable[[dict[str, Optional[str]]], Path]:
    """Build a fake /sys/bus/w1/devices tree: {device_id: millidegrees or None}."""
    def _build(devices: dict[str, Optional[str]]) -> Path:
        base = tmp_path / "w1"
        (base / "w1_bus_master1").mkdir(parents=True)
        for device_id, raw in devices.items():
            (base / device_id).mkdir()
            if raw is not None:
                (base / device_id / "temperature").write_text(raw + "\n")
        return base
    return _build
