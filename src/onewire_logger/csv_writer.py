"""Per-device CSV output.

One file per sensor address in the data folder:

  {data_dir}/{address}.csv

  uid,timestamp,temperature
  28FF6473611603A1,2026-10-16T12:00:00.123,21.5

Excel dialect (comma, CRLF, minimal double-quote quoting). Append-only.
"""

from __future__ import annotations

import csv
from dataclasses import dataclass
from pathlib import Path

CSV_HEADER = ("uid", "timestamp", "temperature")


@dataclass(frozen=True)
class SampleRecord:
    address: str
    timestamp: str      # ISO-8601 local time, e.g. 2026-10-16T12:00:00.123
    temperature: float  # Celsius


def csv_path(data_dir: Path, address: str) -> Path:
    return Path(data_dir) / f"{address}.csv"


def append_record(data_dir: Path, record: SampleRecord) -> Path:
    """Append one row for ``record``, writing the header first on a new file.

    Raises:
        OSError: the file cannot be opened or written
    """
    path = csv_path(data_dir, record.address)
    with path.open("a", newline="", encoding="utf-8") as f:
        writer = csv.writer(f, dialect="excel")
        if f.tell() == 0:
            writer.writerow(CSV_HEADER)
        writer.writerow((record.address, record.timestamp, record.temperature))
    return path
