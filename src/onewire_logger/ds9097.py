"""DS9097(E) passive serial adapter backend (digitemp over pyserial).

The 1-Wire reset/search/ROM protocol is handled by ``digitemp``; this module
maps it onto the PortAdapter interface.

  - adapter detection : reset pulse echo on the UART (no echo -> no adapter)
  - exclusive access  : flock() on the serial port file descriptor (POSIX);
                        Windows COM ports are exclusive already
  - enumeration       : Search ROM (0xF0), i.e. every device, not alarm-only
"""

from __future__ import annotations

import logging
from typing import Any, Iterator, Optional

import serial
from digitemp.device import AddressableDevice, TemperatureSensor as DigitempSensor
from digitemp.exceptions import AdapterError, DeviceError, OneWireException
from digitemp.master import UART_Adapter

from .onewire import (
    AdapterNotDetectedError,
    OneWireError,
    TEMPERATURE_FAMILIES,
    family_of,
)

try:
    import fcntl
except ImportError:
    fcntl = None  # type: ignore[assignment]

logger = logging.getLogger(__name__)


class DS9097Thermometer:
    """Temperature capability of a device on a DS9097 bus.

    digitemp runs Convert T and Read Scratchpad in a single call, so the
    value is fetched by convert() and returned by read_celsius().
    """

    def __init__(self, bus: UART_Adapter, rom: str) -> None:
        self._bus = bus
        self._rom = rom
        self._value: Optional[float] = None

    def convert(self) -> None:
        try:
            sensor = DigitempSensor(self._bus, rom=self._rom)
            self._value = float(sensor.get_temperature())
        except (OneWireException, serial.SerialException) as e:
            raise OneWireError(f"{self._rom}: conversion failed: {e}") from e

    def read_celsius(self) -> float:
        if self._value is None:
            raise OneWireError(f"{self._rom}: no conversion done")
        return self._value


class DS9097Device:
    def __init__(self, bus: UART_Adapter, rom: str) -> None:
        self.address = rom
        self.family = family_of(rom)
        self._bus = bus

    def temperature_sensor(self) -> Optional[DS9097Thermometer]:
        if self.family not in TEMPERATURE_FAMILIES:
            return None
        return DS9097Thermometer(self._bus, self.address)

    def __repr__(self) -> str:
        return f"DS9097Device({self.address!r})"


class DS9097Adapter:
    """DS9097(E) adapter on a serial port (``COM3``, ``/dev/ttyS0``, ...).

    Raises:
        AdapterNotDetectedError: the serial port cannot be opened
    """

    def __init__(self, name: str, port: str) -> None:
        self.name = name
        self.port = port
        self._families: Optional[frozenset[int]] = None
        self._search_all = False
        self._locked = False
        try:
            self._bus = UART_Adapter(port)
        except (OneWireException, serial.SerialException, OSError) as e:
            raise AdapterNotDetectedError(f"cannot open {port}: {e}") from e
        logger.info("DS9097 adapter opened on %s", port)

    def adapter_detected(self) -> bool:
        try:
            self._bus.reset()
        except DeviceError:
            # Reset echoed but no presence pulse: adapter is there, bus is empty.
            return True
        except (AdapterError, serial.SerialException) as e:
            logger.debug("DS9097 on %s: no reset echo: %s", self.port, e)
            return False
        return True

    def target_all_families(self) -> None:
        self._families = None

    def target_family(self, *families: int) -> None:
        self._families = frozenset(families)

    def _fileno(self) -> Optional[int]:
        uart: Any = getattr(self._bus, "uart", None)
        if uart is None:
            return None
        return uart.fileno()

    def begin_exclusive(self) -> None:
        """Lock the serial port for this process.

        Raises:
            OneWireError: another process holds the port
        """
        fd = self._fileno()
        if fcntl is None or fd is None:
            logger.debug("DS9097 on %s: no flock available, relying on OS port exclusivity", self.port)
            return
        try:
            fcntl.flock(fd, fcntl.LOCK_EX | fcntl.LOCK_NB)
        except OSError as e:
            raise OneWireError(f"{self.port} is in use by another process: {e}") from e
        self._locked = True
        logger.info("DS9097 on %s: exclusive access acquired", self.port)

    def end_exclusive(self) -> None:
        fd = self._fileno()
        if not self._locked or fcntl is None or fd is None:
            return
        fcntl.flock(fd, fcntl.LOCK_UN)
        self._locked = False

    def reset(self) -> None:
        try:
            self._bus.reset()
        except DeviceError as e:
            logger.warning("DS9097 on %s: no device answered the reset: %s", self.port, e)
        except (AdapterError, serial.SerialException) as e:
            raise OneWireError(f"{self.port}: bus reset failed: {e}") from e

    def set_search_all_devices(self) -> None:
        self._search_all = True

    def iter_devices(self) -> Iterator[DS9097Device]:
        if not self._search_all:
            raise OneWireError("alarm-only search is not supported by the DS9097 backend")
        try:
            roms = AddressableDevice(self._bus).get_connected_ROMs()
        except DeviceError:
            logger.debug("DS9097 on %s: no devices present", self.port)
            return
        except (OneWireException, serial.SerialException, OSError) as e:
            raise OneWireError(f"{self.port}: device search failed: {e}") from e

        for rom in roms:
            try:
                device = DS9097Device(self._bus, rom)
            except ValueError:
                logger.warning("DS9097 on %s: malformed ROM %r", self.port, rom)
                continue
            if self._families is not None and device.family not in self._families:
                continue
            yield device

    def close(self) -> None:
        self.end_exclusive()
        self._bus.close()
        logger.info("DS9097 adapter on %s closed", self.port)
