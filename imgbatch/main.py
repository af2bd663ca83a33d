import typer
from pathlib import Path
from typing import Optional
from rich.console import Console

from imgbatch.config.loader import load_config, DEFAULT_CONFIG_PATH
from imgbatch.infrastructure.logging import setup_logging
from imgbatch.infrastructure.event_bus import EventBus
from imgbatch.infrastructure.file_scanner import FileScanner
from imgbatch.infrastructure.metrics_log import CsvMetricsLog
from imgbatch.infrastructure.tool_runner import SubprocessToolRunner
from imgbatch.pipeline.steps import StepExecutor
from imgbatch.pipeline.processor import FileProcessor
from imgbatch.pipeline.orchestrator import Orchestrator
from imgbatch.ui.state import RunState
from imgbatch.ui.manager import UIManager
from imgbatch.ui.report import build_summary_table

app = typer.Typer(help="imgbatch - batch image optimisation pipeline")

@app.command()
def run(
    config_path: Optional[Path] = typer.Argument(
        None,
        help=f"Path to the YAML/JSON pipeline config (default: ./{DEFAULT_CONFIG_PATH})"
    ),
    dry_run: Optional[bool] = typer.Option(
        None, "--dry-run/--no-dry-run", help="Copy inputs to their output paths instead of running tools"
    ),
    threads: Optional[int] = typer.Option(None, "--threads", "-t", help="Override number of concurrent workers"),
    per_step: Optional[bool] = typer.Option(
        None, "--per-step/--no-per-step", help="Write (or skip) a metrics row for every step"
    ),
    debug: bool = typer.Option(False, "--debug/--no-debug", help="Enable verbose debug logging"),
):
    """Run every enabled pipeline step over every matching input file."""
    logger = None
    console = Console(highlight=False)
    try:
        config = load_config(config_path or DEFAULT_CONFIG_PATH)
        # Apply CLI overrides (config is frozen, overrides build a new one)
        config = config.with_overrides(
            dry_run=dry_run,
            concurrency=threads,
            debug=True if debug else None,
            write_per_step=per_step,
        )

        config.output_root.mkdir(parents=True, exist_ok=True)
        logger = setup_logging(config.log_path, debug=config.options.debug)
        logger.info(f"imgbatch started: input={config.input_root}, output={config.output_root}")
        logger.info(
            f"Config: steps={[s.name for s in config.pipeline]}, concurrency={config.options.concurrency}, "
            f"dry_run={config.options.dry_run}, recursive={config.options.recursive}, "
            f"preserve_tree={config.options.preserve_tree}"
        )
        for step in config.pipeline:
            if step.enabled and step.tool is None:
                logger.warning(f"Step '{step.name}' does not match any known tool; it will fail per file")

        metrics = CsvMetricsLog(config.metrics_path)
        metrics.ensure_header()

        bus = EventBus()
        state = RunState()
        UIManager(bus, state, console=console)

        scanner = FileScanner(
            extensions=config.selection.include_ext,
            exclude_patterns=config.selection.exclude_patterns,
        )
        executor = StepExecutor(config, SubprocessToolRunner())
        processor = FileProcessor(config, executor, metrics, event_bus=bus)
        orchestrator = Orchestrator(
            config=config,
            event_bus=bus,
            file_scanner=scanner,
            processor=processor,
        )
        orchestrator.run()

        console.print(build_summary_table(state))
        typer.echo(f"Done. Metrics: {config.metrics_path}")

    except KeyboardInterrupt:
        typer.secho("\nStopped by user (Ctrl+C)", fg=typer.colors.YELLOW, err=True)
        raise typer.Exit(code=130)

    except typer.Exit:
        raise

    except Exception as e:
        if logger:
            logger.exception("Fatal error")
        typer.secho(f"Fatal Error: {e}", fg=typer.colors.RED, err=True)
        raise typer.Exit(code=1)

if __name__ == "__main__":
    app()
