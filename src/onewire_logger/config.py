"""Logger configuration: CLI values merged over an optional YAML file."""

from __future__ import annotations

import logging
from dataclasses import dataclass
from pathlib import Path
from typing import Any, Optional

import yaml

logger = logging.getLogger(__name__)

DEFAULT_ADAPTER_NAME = "{DS9097E}"


class ConfigError(ValueError):
    """Invalid or incomplete configuration."""


class DataDirError(OSError):
    """The data directory could not be created."""


@dataclass(frozen=True)
class Config:
    data_dir: Path
    adapter_port: str
    adapter_name: str = DEFAULT_ADAPTER_NAME
    wait_time_ms: int = 0
    cycles: int = 0
    strict_data_dir: bool = False


def load_config_file(config_path: str) -> dict[str, Any]:
    """Read the YAML config file.

    Raises:
        ConfigError: file missing or not a mapping
    """
    path = Path(config_path)
    if not path.exists():
        raise ConfigError(f"Config file not found: {config_path}")
    with path.open() as f:
        data = yaml.safe_load(f) or {}
    if not isinstance(data, dict):
        raise ConfigError(f"Config file is not a mapping: {config_path}")
    return data


def _pick(cli_value: Any, section: dict[str, Any], key: str, default: Any = None) -> Any:
    if cli_value is not None:
        return cli_value
    return section.get(key, default)


def _bool(value: Any, option: str) -> bool:
    if not isinstance(value, bool):
        raise ConfigError(f"{option} must be true or false, got {value!r}")
    return value


def _non_negative_int(value: Any, option: str) -> int:
    try:
        number = int(value)
    except (TypeError, ValueError):
        raise ConfigError(f"{option} must be an integer, got {value!r}")
    if number < 0:
        raise ConfigError(f"{option} must be >= 0, got {number}")
    return number


def build_config(
    data: Optional[str] = None,
    adapter_port: Optional[str] = None,
    adapter_name: Optional[str] = None,
    wait_time: Optional[int] = None,
    cycles: Optional[int] = None,
    strict_data_dir: Optional[bool] = None,
    file_config: Optional[dict[str, Any]] = None,
) -> Config:
    """Validate option values into a Config. CLI values win over the file.

    Raises:
        ConfigError: a required option is missing or a value is invalid
    """
    file_config = file_config or {}
    logger_cfg = file_config.get("logger", {}) or {}
    onewire_cfg = file_config.get("onewire", {}) or {}

    data_dir = _pick(data, logger_cfg, "data_dir")
    if not data_dir:
        raise ConfigError("missing data folder: -d/--data is required")

    port = _pick(adapter_port, onewire_cfg, "adapter_port")
    if not port:
        raise ConfigError("missing adapter port: -p/--adapter-port is required")

    return Config(
        data_dir=Path(data_dir),
        adapter_port=str(port),
        adapter_name=str(_pick(adapter_name, onewire_cfg, "adapter_name", DEFAULT_ADAPTER_NAME)),
        wait_time_ms=_non_negative_int(_pick(wait_time, logger_cfg, "wait_time_ms", 0), "-w/--wait-time"),
        cycles=_non_negative_int(_pick(cycles, logger_cfg, "cycles", 0), "-n/--cycles"),
        strict_data_dir=_bool(_pick(strict_data_dir, logger_cfg, "strict_data_dir", False), "--strict-data-dir"),
    )


def prepare_data_dir(data_dir: Path, strict: bool = False) -> bool:
    """Make sure ``data_dir`` is a usable directory.

    Returns True if the directory exists afterwards. When it cannot be created
    the failure is logged and False returned, unless ``strict`` is set.

    Raises:
        ConfigError: the path exists and is not a directory
        DataDirError: creation failed and ``strict`` is set
    """
    if data_dir.exists():
        if not data_dir.is_dir():
            raise ConfigError(f"Data path is a file and not a folder: {data_dir}")
        return True

    try:
        data_dir.mkdir(parents=True, exist_ok=True)
    except OSError as e:
        if strict:
            raise DataDirError(f"Cannot create data folder {data_dir}: {e}") from e
        logger.error("Cannot create data folder %s: %s (continuing)", data_dir, e)
        return False
    logger.info("Created data folder %s", data_dir)
    return True
