"""Adapter bootstrap: resolve, detect, claim and prepare the 1-Wire bus."""

from __future__ import annotations

import logging
from typing import Callable

from .config import ConfigError
from .onewire import AdapterNotDetectedError, OneWireError, PortAdapter

logger = logging.getLogger(__name__)


def _ds9097(name: str, port: str) -> PortAdapter:
    from .ds9097 import DS9097Adapter
    return DS9097Adapter(name, port)


def _w1_sysfs(name: str, port: str) -> PortAdapter:
    from .w1_sysfs import W1SysfsAdapter
    return W1SysfsAdapter(name, port)


ADAPTERS: dict[str, Callable[[str, str], PortAdapter]] = {
    "{DS9097E}": _ds9097,
    "{DS9097}": _ds9097,
    "{W1SYSFS}": _w1_sysfs,
}


def get_adapter(name: str, port: str) -> PortAdapter:
    """Create the adapter for a driver name (``{DS9097E}``) and port.

    Raises:
        ConfigError: unknown adapter name
        AdapterNotDetectedError: the port cannot be opened
    """
    factory = ADAPTERS.get(name.upper())
    if factory is None:
        known = ", ".join(sorted(ADAPTERS))
        raise ConfigError(f"unknown adapter name {name!r} (known: {known})")
    return factory(name, port)


def open_adapter(name: str, port: str) -> PortAdapter:
    """Open the bus and leave it ready for enumeration.

    Presence check, all families targeted, exclusive access, bus reset,
    search-all-devices mode. The caller owns the returned handle.

    Raises:
        ConfigError: unknown adapter name
        AdapterNotDetectedError: adapter missing on ``port``
        OneWireError: exclusive access or bus reset failed
    """
    adapter = get_adapter(name, port)
    try:
        if not adapter.adapter_detected():
            raise AdapterNotDetectedError(f"adapter {name} not detected on {port}")
        adapter.target_all_families()
        adapter.begin_exclusive()
        adapter.reset()
        adapter.set_search_all_devices()
    except OneWireError:
        adapter.close()
        raise
    logger.info("Adapter %s ready on %s", name, port)
    return adapter
