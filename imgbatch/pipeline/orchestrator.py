"""Batch orchestrator: discovery, task list and the worker pool.

Coordinates file discovery and a fixed pool of worker threads that drain a
shared task list. Uses the EventBus to report progress to the console layer.

Key responsibilities:
- Discover input files matching the extension allow-list and exclude patterns
- Build the immutable task list once, before any worker starts
- Run `concurrency` workers; each claims the next task index under a lock,
  processes the file fully, then claims again until the list is exhausted
- Contain per-file failures at the worker boundary (logged + FileFailed event)
- Return only after every worker has finished
"""

import threading
import concurrent.futures
import logging
from pathlib import Path
from typing import List, Optional
from imgbatch.config.models import AppConfig
from imgbatch.domain.events import (
    DiscoveryFinished, FileStarted, FileCompleted, FileFailed, ProcessingFinished,
)
from imgbatch.domain.models import RunSummary, Task
from imgbatch.infrastructure.event_bus import EventBus
from imgbatch.infrastructure.file_scanner import FileScanner
from imgbatch.pipeline.processor import FileProcessor


class Orchestrator:
    """Runs the configured pipeline over every discovered file.

    Args:
        config: Frozen AppConfig shared read-only by all workers.
        event_bus: EventBus for publishing progress events.
        file_scanner: FileScanner that selects the input files.
        processor: FileProcessor invoked once per task.
    """

    def __init__(
        self,
        config: AppConfig,
        event_bus: EventBus,
        file_scanner: FileScanner,
        processor: FileProcessor,
    ):
        self.config = config
        self.event_bus = event_bus
        self.file_scanner = file_scanner
        self.processor = processor
        self.logger = logging.getLogger(__name__)

        self._tasks: List[Task] = []
        self._next_index = 0
        self._claim_lock = threading.Lock()
        self._summary = RunSummary()
        self._summary_lock = threading.Lock()

    def discover(self) -> List[Task]:
        input_root = self.config.input_root
        if not input_root.is_dir():
            raise FileNotFoundError(f"Input directory does not exist: {input_root}")

        self.logger.info(f"DISCOVERY_START: scanning {input_root} (recursive={self.config.options.recursive})")
        tasks = [
            Task(path=path)
            for path in self.file_scanner.scan(input_root, recursive=self.config.options.recursive)
        ]
        self.logger.info(f"Discovery finished: found={len(tasks)}")
        self.event_bus.publish(DiscoveryFinished(input_dir=input_root, files_found=len(tasks)))
        return tasks

    def _claim_next(self) -> Optional[int]:
        with self._claim_lock:
            if self._next_index >= len(self._tasks):
                return None
            index = self._next_index
            self._next_index += 1
            return index

    def _worker(self):
        total = len(self._tasks)
        while True:
            index = self._claim_next()
            if index is None:
                return
            task = self._tasks[index]
            try:
                self.event_bus.publish(FileStarted(task=task, index=index + 1, total=total))
                outcomes = self.processor.process(task)
            except Exception as e:
                # Log exception but don't stop the worker
                self.logger.error(f"Exception processing {task.path}: {e}")
                with self._summary_lock:
                    self._summary.failed += 1
                    self._summary.processed.append(task.path)
                self.event_bus.publish(FileFailed(task=task, index=index + 1, total=total, error_message=str(e)))
                continue

            steps_failed = sum(1 for o in outcomes if not o.ok)
            with self._summary_lock:
                self._summary.completed += 1
                self._summary.step_errors += steps_failed
                self._summary.processed.append(task.path)
            self.event_bus.publish(FileCompleted(
                task=task, index=index + 1, total=total,
                steps_run=len(outcomes), steps_failed=steps_failed,
            ))

    def run(self) -> RunSummary:
        self._tasks = self.discover()
        self._next_index = 0
        self._summary = RunSummary(total=len(self._tasks))

        workers = max(1, self.config.options.concurrency)
        self.logger.info(f"Processing {len(self._tasks)} files with {workers} workers")

        if self._tasks:
            with concurrent.futures.ThreadPoolExecutor(max_workers=workers) as executor:
                futures = [executor.submit(self._worker) for _ in range(workers)]
                for future in concurrent.futures.as_completed(futures):
                    try:
                        future.result()
                    except Exception as e:
                        self.logger.error(f"Worker failed with exception: {e}")

        summary = self._summary
        self.logger.info(
            f"All files processed: total={summary.total}, completed={summary.completed}, "
            f"failed={summary.failed}, step_errors={summary.step_errors}"
        )
        self.event_bus.publish(ProcessingFinished(
            total=summary.total, completed=summary.completed, failed=summary.failed,
        ))
        return summary
