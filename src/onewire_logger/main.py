"""onewire-logger: DS18B20-family 1-Wire temperature logger.

Polls every temperature sensor on one 1-Wire adapter and appends each reading
to ``{data_dir}/{address}.csv``:

  config  : CLI flags (+ optional YAML) -> Config, data folder prepared
  adapter : resolve, detect, exclusive access, reset, search-all mode
  loop    : ScanLoop until SIGTERM/SIGINT or --cycles passes

Exit codes: 0 help / stopped, 1 adapter not detected or bootstrap failed,
2 configuration error. Adapter failures exit 1 rather than -1: a negative
status shows up as 255 in the shell and in systemd.
"""

from __future__ import annotations

import argparse
import asyncio
import logging
import signal
import sys
from typing import Optional, Sequence

from .adapter import open_adapter
from .config import (
    Config,
    ConfigError,
    DataDirError,
    DEFAULT_ADAPTER_NAME,
    build_config,
    load_config_file,
    prepare_data_dir,
)
from .onewire import AdapterNotDetectedError, OneWireError, PortAdapter
from .scan_loop import ScanLoop

logger = logging.getLogger(__name__)

EXIT_ADAPTER_ERROR = 1
EXIT_CONFIG_ERROR = 2


# ------------------------------------------------------------------ #
# Daemon
# ------------------------------------------------------------------ #

class LoggerDaemon:
    """Owns the adapter handle for the run and drives the scan loop.

    SIGTERM/SIGINT set the stop event; the loop ends after the current pass.
    """

    def __init__(self, config: Config, adapter: PortAdapter) -> None:
        self._config = config
        self._adapter = adapter
        self.stop_event: Optional[asyncio.Event] = None

    async def run(self) -> None:
        loop = asyncio.get_running_loop()
        self.stop_event = asyncio.Event()

        def _on_signal() -> None:
            logger.info("Shutdown signal received")
            self.stop_event.set()

        for sig in (signal.SIGTERM, signal.SIGINT):
            try:
                loop.add_signal_handler(sig, _on_signal)
            except (NotImplementedError, RuntimeError):
                # Windows event loops have no add_signal_handler
                pass

        scan = ScanLoop(
            adapter=self._adapter,
            data_dir=self._config.data_dir,
            wait_time_ms=self._config.wait_time_ms,
        )
        try:
            await scan.run(self.stop_event, cycles=self._config.cycles)
        finally:
            self._adapter.close()
            logger.info("onewire-logger stopped")


# ------------------------------------------------------------------ #
# Entry point
# ------------------------------------------------------------------ #

def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        prog="onewire-logger",
        description="Log DS18B20-family 1-Wire temperatures to per-device CSV files",
        formatter_class=argparse.RawDescriptionHelpFormatter,
        epilog="""
Examples:
  %(prog)s -d ./out -p COM3 -w 500
  %(prog)s -d /var/lib/templog -p /dev/ttyS0 -a {DS9097E}
  %(prog)s -d ./out -p /sys/bus/w1/devices -a {W1SYSFS}
  %(prog)s -c /etc/onewire_logger.yaml --debug
""",
    )
    parser.add_argument("-d", "--data", metavar="PATH", help="Path for the data folder")
    parser.add_argument("-p", "--adapter-port", metavar="PORT", help="Adapter port (COMX, /dev/ttyS0, sysfs dir)")
    parser.add_argument(
        "-w", "--wait-time", type=int, metavar="MS",
        help="Time to wait between scan passes in milliseconds (default: 0)",
    )
    parser.add_argument(
        "-a", "--adapter-name", metavar="NAME",
        help=f"Adapter name, format {{XXXX}} (default: {DEFAULT_ADAPTER_NAME})",
    )
    parser.add_argument("-c", "--config", metavar="YAML", help="Config file; flags override its values")
    parser.add_argument("-n", "--cycles", type=int, metavar="N", help="Stop after N scan passes (0=forever)")
    parser.add_argument(
        "--strict-data-dir", action="store_true", default=None,
        help="Exit if the data folder cannot be created",
    )
    parser.add_argument("--debug", action="store_true", help="Enable debug logging")
    return parser


def parse_config(argv: Optional[Sequence[str]] = None) -> tuple[Config, argparse.Namespace]:
    """Parse ``argv`` into a Config. Exits with status 2 on configuration errors."""
    parser = build_parser()
    args = parser.parse_args(argv)
    try:
        file_config = load_config_file(args.config) if args.config else None
        config = build_config(
            data=args.data,
            adapter_port=args.adapter_port,
            adapter_name=args.adapter_name,
            wait_time=args.wait_time,
            cycles=args.cycles,
            strict_data_dir=args.strict_data_dir,
            file_config=file_config,
        )
    except ConfigError as e:
        parser.error(str(e))
    return config, args


def main(argv: Optional[Sequence[str]] = None) -> int:
    config, args = parse_config(argv)

    logging.basicConfig(
        level=logging.DEBUG if args.debug else logging.INFO,
        format="%(asctime)s %(name)-20s %(levelname)-8s %(message)s",
        stream=sys.stdout,
    )

    try:
        prepare_data_dir(config.data_dir, strict=config.strict_data_dir)
    except (ConfigError, DataDirError) as e:
        logger.error("%s", e)
        return EXIT_CONFIG_ERROR

    try:
        adapter = open_adapter(config.adapter_name, config.adapter_port)
    except ConfigError as e:
        logger.error("%s", e)
        return EXIT_CONFIG_ERROR
    except AdapterNotDetectedError as e:
        logger.error("Adapter not connected: %s", e)
        return EXIT_ADAPTER_ERROR
    except OneWireError as e:
        logger.error("Adapter bootstrap failed: %s", e)
        return EXIT_ADAPTER_ERROR

    daemon = LoggerDaemon(config, adapter)
    asyncio.run(daemon.run())
    return 0


if __name__ == "__main__":
    sys.exit(main())
