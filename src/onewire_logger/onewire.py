"""1-Wire collaborator interface.

The scan loop and the sampler only talk to the bus through these protocols.
Backends (``ds9097``, ``w1_sysfs``) wrap a concrete driver behind them:

  PortAdapter        one physical bus, exclusively owned for the run
  OneWireDevice      a device yielded by one enumeration pass
  TemperatureSensor  optional capability of a device (DS18S20/DS1822/DS18B20)
"""

from __future__ import annotations

from typing import Iterator, Optional, Protocol

# Family codes of the temperature sensors supported by both backends.
FAMILY_DS18S20 = 0x10
FAMILY_DS1822 = 0x22
FAMILY_DS18B20 = 0x28
FAMILY_DS1825 = 0x3B
FAMILY_DS28EA00 = 0x42

TEMPERATURE_FAMILIES: frozenset[int] = frozenset({
    FAMILY_DS18S20,
    FAMILY_DS1822,
    FAMILY_DS18B20,
    FAMILY_DS1825,
    FAMILY_DS28EA00,
})


class OneWireError(OSError):
    """1-Wire bus operation failed."""


class AdapterNotDetectedError(OneWireError):
    """The bus adapter could not be opened or did not answer."""


class TemperatureSensor(Protocol):
    def convert(self) -> None:
        """Start a temperature conversion on the device."""
        ...

    def read_celsius(self) -> float:
        """Return the last converted temperature in Celsius."""
        ...


class OneWireDevice(Protocol):
    address: str
    family: int

    def temperature_sensor(self) -> Optional[TemperatureSensor]:
        """Return the temperature capability, or None if the device has none."""
        ...


class PortAdapter(Protocol):
    """One bus adapter. Created by ``adapter.open_adapter()``."""

    name: str
    port: str

    def adapter_detected(self) -> bool: ...

    def target_all_families(self) -> None: ...

    def target_family(self, *families: int) -> None:
        """Restrict enumeration to the given family codes."""
        ...

    def begin_exclusive(self) -> None: ...

    def end_exclusive(self) -> None: ...

    def reset(self) -> None: ...

    def set_search_all_devices(self) -> None: ...

    def iter_devices(self) -> Iterator[OneWireDevice]:
        """Yield every device found by one search pass, in bus order."""
        ...

    def close(self) -> None: ...


def family_of(address: str) -> int:
    """Family code from an address string.

    Accepts the sysfs form ``28-00000de13271`` and the 16-hex-digit ROM form
    ``28FF6473611603A1`` (family byte first).

    Raises:
        ValueError: address is not in either form
    """
    head = address.split("-", 1)[0] if "-" in address else address[:2]
    return int(head, 16)
