"""Domain events for the batch pipeline.

Events flow through the EventBus, decoupling the orchestrator from the console
layer. Workers publish from their own threads.

See `infrastructure/event_bus.py` for the pub/sub mechanism.
"""

from pathlib import Path
from pydantic import BaseModel
from .models import StepOutcome, Task


class Event(BaseModel):
    """Base class for all domain events."""

    pass


class DiscoveryFinished(Event):
    """Emitted once the task list is built."""

    input_dir: Path
    files_found: int


class FileEvent(Event):
    """Base class for events about one task; `index` is 1-based."""

    task: Task
    index: int
    total: int


class FileStarted(FileEvent):
    pass


class FileCompleted(FileEvent):
    """Emitted after every step and the ORIGINAL row were written."""

    steps_run: int = 0
    steps_failed: int = 0


class FileFailed(FileEvent):
    """Emitted when processing a file raised; remaining tasks still run."""

    error_message: str


class StepFinished(Event):
    task: Task
    outcome: StepOutcome


class ProcessingFinished(Event):
    """Emitted when every worker has drained the task list."""

    total: int
    completed: int
    failed: int
