"""Bus scan loop — enumerate the bus, sample every device, idle, repeat.

SCANNING: every device the adapter reports is sampled once, in bus order.
IDLE:     wait ``wait_time_ms``; a stop request ends the wait immediately.

Called from LoggerDaemon in main.py.
"""

from __future__ import annotations

import asyncio
import logging
from datetime import datetime
from pathlib import Path
from typing import Optional

from .onewire import OneWireError, PortAdapter
from .sampler import Clock, sample_device

logger = logging.getLogger(__name__)


class ScanLoop:
    """Polls one adapter and writes one CSV row per temperature device per pass.

    Args:
        adapter:      bootstrapped adapter (see adapter.open_adapter)
        data_dir:     folder for the per-device CSV files
        wait_time_ms: idle time between passes
        clock:        timestamp source for the records
    """

    def __init__(
        self,
        adapter: PortAdapter,
        data_dir: Path,
        wait_time_ms: int = 0,
        clock: Clock = datetime.now,
    ) -> None:
        self._adapter = adapter
        self._data_dir = Path(data_dir)
        self._wait_s = wait_time_ms / 1000.0
        self._clock = clock
        self.passes = 0

    # ------------------------------------------------------------------ #
    # SCANNING
    # ------------------------------------------------------------------ #

    def scan_once(self) -> int:
        """Run one enumeration pass. Returns the number of records written."""
        seen = 0
        written = 0
        try:
            for device in self._adapter.iter_devices():
                seen += 1
                if sample_device(device, self._data_dir, self._clock) is not None:
                    written += 1
        except OneWireError as e:
            logger.error("Bus enumeration failed, pass aborted: %s", e)

        self.passes += 1
        logger.debug("Pass %d: %d device(s), %d record(s)", self.passes, seen, written)
        return written

    # ------------------------------------------------------------------ #
    # IDLE
    # ------------------------------------------------------------------ #

    async def _idle(self, stop_event: asyncio.Event) -> bool:
        """Wait for the poll interval. Returns True if a stop was requested."""
        try:
            await asyncio.wait_for(stop_event.wait(), timeout=self._wait_s)
        except asyncio.TimeoutError:
            return False
        return True

    # ------------------------------------------------------------------ #
    # asyncio loop
    # ------------------------------------------------------------------ #

    async def run(self, stop_event: Optional[asyncio.Event] = None, cycles: int = 0) -> None:
        """Scan until ``stop_event`` is set or ``cycles`` passes are done (0 = forever)."""
        if stop_event is None:
            stop_event = asyncio.Event()
        logger.info(
            "ScanLoop started: adapter=%s port=%s, interval=%dms, data=%s",
            self._adapter.name, self._adapter.port, int(self._wait_s * 1000), self._data_dir,
        )
        while not stop_event.is_set():
            self.scan_once()
            if cycles and self.passes >= cycles:
                break
            if await self._idle(stop_event):
                break
        logger.info("ScanLoop stopped after %d pass(es)", self.passes)
