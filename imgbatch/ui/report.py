from datetime import datetime
from rich.table import Table
from imgbatch.ui.state import RunState


def format_size(size: int) -> str:
    sign = "-" if size < 0 else ""
    size = abs(float(size))
    for unit in ["B", "KB", "MB", "GB"]:
        if size < 1024.0:
            return f"{sign}{size:.1f}{unit}"
        size /= 1024.0
    return f"{sign}{size:.1f}TB"


def build_summary_table(state: RunState) -> Table:
    """Renders the end-of-run counters as a two-column rich Table."""
    table = Table(title="imgbatch summary", show_header=False, title_justify="left")
    table.add_column("Metric", style="bold")
    table.add_column("Value", justify="right")

    table.add_row("Files found", str(state.files_found))
    table.add_row("Files completed", str(state.completed_count))
    table.add_row("Files failed", f"[red]{state.failed_count}[/red]" if state.failed_count else "0")
    table.add_row("Steps ok", str(state.steps_ok))
    table.add_row("Steps failed", f"[red]{state.steps_error}[/red]" if state.steps_error else "0")
    table.add_row("Input bytes", format_size(state.total_input_bytes))
    table.add_row("Output bytes", format_size(state.total_output_bytes))
    if state.total_input_bytes:
        pct = state.bytes_saved / state.total_input_bytes * 100
        table.add_row("Saved", f"{format_size(state.bytes_saved)} ({pct:.1f}%)")
    if state.start_time:
        elapsed = (datetime.now() - state.start_time).total_seconds()
        table.add_row("Elapsed", f"{elapsed:.1f}s")
    return table
