import logging
from typing import List, Optional
from imgbatch.config.models import AppConfig
from imgbatch.domain.events import StepFinished
from imgbatch.domain.models import MetricsRecord, StepOutcome, Task
from imgbatch.infrastructure.event_bus import EventBus
from imgbatch.infrastructure.metrics_log import CsvMetricsLog
from imgbatch.pipeline.steps import StepExecutor


class FileProcessor:
    """Runs the whole pipeline for one file and records its metrics rows.

    Steps run strictly in declared order. A failed step is recorded and the
    next one still runs. The ORIGINAL row is always written last.
    """

    def __init__(
        self,
        config: AppConfig,
        executor: StepExecutor,
        metrics: CsvMetricsLog,
        event_bus: Optional[EventBus] = None,
    ):
        self.config = config
        self.executor = executor
        self.metrics = metrics
        self.event_bus = event_bus
        self.logger = logging.getLogger(__name__)

    def process(self, task: Task) -> List[StepOutcome]:
        try:
            original_size = task.path.stat().st_size
        except OSError as e:
            self.logger.warning(f"Cannot stat {task.path}: {e}")
            original_size = None

        outcomes: List[StepOutcome] = []
        try:
            for step in self.config.pipeline:
                outcome = self.executor.execute(task, step)
                if outcome is None:
                    continue
                outcomes.append(outcome)
                if self.config.logging.write_per_step:
                    self.metrics.append(MetricsRecord.from_outcome(outcome))
                if self.event_bus:
                    self.event_bus.publish(StepFinished(task=task, outcome=outcome))
        finally:
            # The terminal row is written even when a step row or a subscriber raised
            self.metrics.append(MetricsRecord.original(task.path, original_size))
        return outcomes
