import threading
from datetime import datetime
from typing import List, Optional


class RunState:
    """Thread-safe counters fed by UIManager while workers run."""

    def __init__(self):
        self._lock = threading.RLock()

        # Files
        self.files_found = 0
        self.completed_count = 0
        self.failed_count = 0

        # Steps
        self.steps_ok = 0
        self.steps_error = 0

        # Bytes tracking (successful steps only)
        self.total_input_bytes = 0
        self.total_output_bytes = 0

        self.failures: List[str] = []
        self.start_time: Optional[datetime] = None
        self.finished = False

    def record_step(self, ok: bool, src_size: Optional[int], out_size: Optional[int]):
        with self._lock:
            if ok:
                self.steps_ok += 1
                self.total_input_bytes += src_size or 0
                self.total_output_bytes += out_size or 0
            else:
                self.steps_error += 1

    def record_file(self, ok: bool, failure: str = ""):
        with self._lock:
            if ok:
                self.completed_count += 1
            else:
                self.failed_count += 1
                self.failures.append(failure)

    @property
    def bytes_saved(self) -> int:
        with self._lock:
            return self.total_input_bytes - self.total_output_bytes
