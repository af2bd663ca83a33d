import logging
from datetime import datetime
from typing import Optional
from rich.console import Console
from rich.markup import escape
from imgbatch.infrastructure.event_bus import EventBus
from imgbatch.ui.state import RunState
from imgbatch.domain.events import (
    DiscoveryFinished, StepFinished, FileCompleted, FileFailed, ProcessingFinished,
)


class UIManager:
    """Subscribes to EventBus, updates RunState and prints per-file progress lines."""

    def __init__(
        self,
        bus: EventBus,
        state: RunState,
        console: Optional[Console] = None,
        err_console: Optional[Console] = None,
    ):
        self.bus = bus
        self.state = state
        self.console = console or Console(highlight=False)
        self.err_console = err_console or Console(stderr=True, highlight=False)
        self.logger = logging.getLogger(__name__)
        self._setup_subscriptions()

    def _setup_subscriptions(self):
        self.bus.subscribe(DiscoveryFinished, self.on_discovery_finished)
        self.bus.subscribe(StepFinished, self.on_step_finished)
        self.bus.subscribe(FileCompleted, self.on_file_completed)
        self.bus.subscribe(FileFailed, self.on_file_failed)
        self.bus.subscribe(ProcessingFinished, self.on_processing_finished)

    def on_discovery_finished(self, event: DiscoveryFinished):
        self.state.files_found = event.files_found
        self.state.start_time = datetime.now()
        self.console.print(f"Found {event.files_found} files in {escape(str(event.input_dir))}")

    def on_step_finished(self, event: StepFinished):
        outcome = event.outcome
        self.state.record_step(outcome.ok, outcome.src_size, outcome.out_size)

    def on_file_completed(self, event: FileCompleted):
        self.state.record_file(True)
        line = f"[{event.index}/{event.total}] [green]OK[/green] {escape(str(event.task.path))}"
        if event.steps_failed:
            line += f" [yellow]({event.steps_failed} of {event.steps_run} steps failed)[/yellow]"
        self.console.print(line)

    def on_file_failed(self, event: FileFailed):
        self.state.record_file(False, f"{event.task.path}: {event.error_message}")
        self.err_console.print(
            f"[{event.index}/{event.total}] [red]FAIL[/red] {escape(str(event.task.path))}: "
            f"{escape(event.error_message)}"
        )

    def on_processing_finished(self, event: ProcessingFinished):
        self.state.finished = True
        self.logger.debug(f"UI: processing finished (completed={event.completed}, failed={event.failed})")
