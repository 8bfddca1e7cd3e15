"""Device sampler: one discovered device -> one CSV row."""

from __future__ import annotations

import logging
from datetime import datetime
from pathlib import Path
from typing import Callable, Optional

from .csv_writer import SampleRecord, append_record
from .onewire import OneWireDevice, OneWireError

logger = logging.getLogger(__name__)

Clock = Callable[[], datetime]


class SampleError(OneWireError):
    """Conversion or read failed for one device."""


def _now_iso(clock: Clock) -> str:
    return clock().isoformat(timespec="milliseconds")


def read_sample(device: OneWireDevice, clock: Clock = datetime.now) -> Optional[SampleRecord]:
    """Convert and read one device.

    The timestamp is taken after the conversion and before the read.
    Returns None for devices without a temperature capability.

    Raises:
        SampleError: the bus transaction failed
    """
    sensor = device.temperature_sensor()
    if sensor is None:
        logger.debug("%s: no temperature capability, skipped", device.address)
        return None

    try:
        sensor.convert()
        timestamp = _now_iso(clock)
        temperature = sensor.read_celsius()
    except OneWireError as e:
        raise SampleError(f"{device.address}: {e}") from e

    return SampleRecord(address=device.address, timestamp=timestamp, temperature=temperature)


def sample_device(device: OneWireDevice, data_dir: Path, clock: Clock = datetime.now) -> Optional[SampleRecord]:
    """Sample ``device`` and append the result to its CSV file.

    Any failure is logged and the device is skipped for this pass.
    Returns the written record, or None if nothing was written.
    """
    try:
        record = read_sample(device, clock)
    except SampleError as e:
        logger.error("Sample failed: %s", e)
        return None
    except Exception:
        logger.exception("Sample failed: %s: unexpected driver error", device.address)
        return None
    if record is None:
        return None

    try:
        append_record(data_dir, record)
    except OSError as e:
        logger.error("CSV write failed for %s: %s", device.address, e)
        return None
    except Exception:
        logger.exception("CSV write failed for %s", device.address)
        return None

    logger.info("%s: %.2f C at %s", record.address, record.temperature, record.timestamp)
    return record
