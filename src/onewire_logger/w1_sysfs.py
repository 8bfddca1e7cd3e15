"""Linux kernel 1-Wire (sysfs) adapter backend.

The kernel w1 subsystem owns the bus master (DS2482, DS2490, w1-gpio, ...) and
exposes each slave it has found as a directory:

  /sys/bus/w1/devices/w1_bus_master1/         bus master
  /sys/bus/w1/devices/{family}-{serial}/      slave device
  /sys/bus/w1/devices/28-00000de13271/temperature

Reading ``temperature`` makes w1_therm run a conversion and returns the value
in millidegrees Celsius (e.g. 24500 -> 24.5 C).

Adapter name ``{W1SYSFS}``; the adapter port is the devices directory.
"""

from __future__ import annotations

import glob
import logging
from pathlib import Path
from typing import Iterator, Optional

from .onewire import OneWireError, TEMPERATURE_FAMILIES, family_of

logger = logging.getLogger(__name__)

W1_BASE = "/sys/bus/w1/devices"


class W1Thermometer:
    """Temperature capability of a w1_therm slave."""

    def __init__(self, temp_path: Path) -> None:
        self._temp_path = temp_path
        self._value: Optional[float] = None

    def convert(self) -> None:
        """Run a conversion by reading the sysfs ``temperature`` attribute.

        Raises:
            OneWireError: device disappeared or returned a malformed value
        """
        try:
            raw = self._temp_path.read_text().strip()
        except FileNotFoundError:
            raise OneWireError(f"device not found: {self._temp_path}")
        except OSError as e:
            raise OneWireError(f"sysfs read error: {e}") from e
        except UnicodeDecodeError as e:
            raise OneWireError(f"undecodable temperature value: {e}") from e

        try:
            self._value = int(raw) / 1000.0
        except ValueError:
            raise OneWireError(f"invalid temperature value: {raw!r}")

    def read_celsius(self) -> float:
        if self._value is None:
            raise OneWireError(f"no conversion done: {self._temp_path}")
        return self._value


class W1Device:
    """One slave directory under the sysfs devices path."""

    def __init__(self, device_dir: Path) -> None:
        self.address = device_dir.name
        self.family = family_of(self.address)
        self._dir = device_dir

    def temperature_sensor(self) -> Optional[W1Thermometer]:
        temp_path = self._dir / "temperature"
        if self.family not in TEMPERATURE_FAMILIES or not temp_path.exists():
            return None
        return W1Thermometer(temp_path)

    def __repr__(self) -> str:
        return f"W1Device({self.address!r})"


class W1SysfsAdapter:
    """Kernel-managed bus adapter.

    Bus reset, search and arbitration are done by the kernel; the methods
    here only keep the family filter and search mode the scan loop asks for.
    """

    def __init__(self, name: str, port: str = W1_BASE) -> None:
        self.name = name
        self.port = port or W1_BASE
        self._base = Path(self.port)
        self._families: Optional[frozenset[int]] = None
        self._search_all = False

    def adapter_detected(self) -> bool:
        masters = glob.glob(str(self._base / "w1_bus_master*"))
        logger.debug("w1 sysfs: %d bus master(s) in %s", len(masters), self._base)
        return bool(masters)

    def target_all_families(self) -> None:
        self._families = None

    def target_family(self, *families: int) -> None:
        self._families = frozenset(families)

    def begin_exclusive(self) -> None:
        logger.debug("w1 sysfs: bus arbitration is done by the kernel")

    def end_exclusive(self) -> None:
        pass

    def reset(self) -> None:
        if not self._base.is_dir():
            raise OneWireError(f"w1 devices directory missing: {self._base}")

    def set_search_all_devices(self) -> None:
        self._search_all = True

    def iter_devices(self) -> Iterator[W1Device]:
        if not self._search_all:
            raise OneWireError("alarm-only search is not supported by the w1 sysfs backend")
        try:
            entries = sorted(p for p in self._base.iterdir() if p.is_dir())
        except OSError as e:
            raise OneWireError(f"w1 sysfs enumeration failed: {e}") from e

        for entry in entries:
            if entry.name.startswith("w1_bus_master"):
                continue
            try:
                device = W1Device(entry)
            except ValueError:
                logger.debug("w1 sysfs: skip %s", entry.name)
                continue
            if self._families is not None and device.family not in self._families:
                continue
            yield device

    def close(self) -> None:
        pass
