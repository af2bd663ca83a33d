"""Runs a single pipeline step against a single input file.

Every step reads the original input file; steps are independent transforms
and never consume each other's output.
"""

import shutil
import logging
from pathlib import Path
from typing import List, Optional
from imgbatch.config.models import AppConfig, PipelineStep, ToolKind
from imgbatch.domain.models import StepOutcome, StepStatus, Task, one_line
from imgbatch.infrastructure.tool_runner import ToolRunner, split_format_prefix
from imgbatch.pipeline.paths import output_path_for_step, ensure_parent_dir


class StepError(Exception):
    """A step could not produce its output; the message ends up in the metrics row."""

    def __init__(self, message: str, elapsed_ms: int = 0):
        super().__init__(message)
        self.elapsed_ms = elapsed_ms


def _file_size(path: Path) -> Optional[int]:
    try:
        return path.stat().st_size
    except OSError:
        return None


class StepExecutor:
    def __init__(self, config: AppConfig, runner: ToolRunner):
        self.config = config
        self.runner = runner
        self.logger = logging.getLogger(__name__)

    def output_path(self, task: Task, step: PipelineStep) -> Path:
        forced_ext = step.tool.forced_ext if step.tool else None
        return output_path_for_step(
            task.path,
            self.config.input_root,
            self.config.output_root,
            self.config.options.preserve_tree,
            step.suffix,
            forced_ext,
        )

    def build_command(self, step: PipelineStep, src: Path, out: Path) -> List[str]:
        """Returns [executable, *args] for the step's tool."""
        tools = self.config.paths.tools
        profile = self.config.profile(step.profile)

        if step.tool is ToolKind.PNGQUANT:
            return [tools.pngquant, *profile.pngquant, "--output", str(out), str(src)]
        if step.tool is ToolKind.MOZJPEG:
            return [tools.mozjpeg, *profile.mozjpeg, "-outfile", str(out), str(src)]
        if step.tool is ToolKind.IMAGEMAGICK_COMPRESS:
            profile_args = profile.imagemagick_png if src.suffix.lower() == ".png" else profile.imagemagick_jpg
            prefix, args = split_format_prefix(profile_args)
            target = f"{prefix}{out}" if prefix else str(out)
            return [tools.magick, "convert", str(src), *args, target]
        raise StepError(f"Unknown step: {step.name}")

    def _run_tool(self, step: PipelineStep, src: Path, out: Path) -> int:
        cmd = self.build_command(step, src, out)
        result = self.runner.invoke(cmd[0], cmd[1:])
        if not result.success:
            raise StepError(result.stderr or f"{step.name} failed", result.elapsed_ms)
        return result.elapsed_ms

    def execute(self, task: Task, step: PipelineStep) -> Optional[StepOutcome]:
        """Runs one step; returns None when the step does not apply to this file."""
        if not step.enabled or not step.matches(task.ext):
            return None

        src = task.path
        out = self.output_path(task, step)
        outcome = StepOutcome(step_name=step.name, output_path=out, src_size=_file_size(src))

        try:
            ensure_parent_dir(out)
            if self.config.options.dry_run:
                shutil.copyfile(src, out)
            else:
                outcome.elapsed_ms = self._run_tool(step, src, out)
            outcome.out_size = _file_size(out)
            if outcome.out_size is None:
                raise StepError(f"output file was not produced: {out}")
        except StepError as e:
            if e.elapsed_ms:
                outcome.elapsed_ms = e.elapsed_ms
            self._fail(outcome, str(e))
        except OSError as e:
            self._fail(outcome, str(e))

        self.logger.debug(
            f"STEP_END: {src.name} step={step.name} status={outcome.status.value} "
            f"elapsed={outcome.elapsed_ms}ms out={outcome.out_size}"
        )
        return outcome

    def _fail(self, outcome: StepOutcome, message: str):
        outcome.status = StepStatus.ERROR
        outcome.out_size = None
        outcome.message = one_line(message)
        self.logger.warning(f"Step {outcome.step_name} failed for {outcome.output_path.name}: {outcome.message}")
