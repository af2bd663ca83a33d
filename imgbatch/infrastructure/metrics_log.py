"""Append-only CSV metrics log shared by all workers.

Rows are not quoted: commas inside values are replaced with spaces instead,
so every row has exactly nine comma-separated fields. Paths that are not
valid UTF-8 are written back as their original bytes.
"""

import threading
from pathlib import Path
from imgbatch.domain.models import MetricsRecord

HEADER = "file,stage,src_size,out_size,delta,delta_pct,elapsed_ms,status,message"


def format_row(record: MetricsRecord) -> str:
    values = ("" if v is None else str(v) for v in record.fields())
    return ",".join(v.replace(",", " ") for v in values)


class CsvMetricsLog:
    """Serializes appends so rows from concurrent workers never interleave."""

    def __init__(self, path: Path):
        self.path = Path(path)
        self._lock = threading.Lock()

    def ensure_header(self):
        """Writes the header row if the log does not exist yet (or is empty)."""
        with self._lock:
            self.path.parent.mkdir(parents=True, exist_ok=True)
            if self.path.exists() and self.path.stat().st_size > 0:
                return
            with open(self.path, "w", encoding="utf-8", errors="surrogateescape", newline="") as f:
                f.write(HEADER + "\n")

    def append(self, record: MetricsRecord):
        line = format_row(record) + "\n"
        with self._lock:
            with open(self.path, "a", encoding="utf-8", errors="surrogateescape", newline="") as f:
                f.write(line)
