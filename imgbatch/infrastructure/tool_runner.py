import subprocess
import logging
import time
from typing import List, Optional, Protocol, Sequence, Tuple
from pydantic import BaseModel


class ToolResult(BaseModel):
    success: bool
    elapsed_ms: int = 0
    stderr: str = ""


class ToolRunner(Protocol):
    """Runs one external tool invocation to completion."""

    def invoke(self, executable: str, args: Sequence[str]) -> ToolResult:
        ...


def split_format_prefix(args: Sequence[str]) -> Tuple[Optional[str], List[str]]:
    """Pulls a trailing-colon format selector (e.g. 'PNG8:') out of an argument list.

    The selector belongs glued to the output path, not as its own argument.
    When several are present the last one wins.
    """
    prefix = None
    cleaned = []
    for arg in args:
        if arg.endswith(":"):
            prefix = arg
        else:
            cleaned.append(arg)
    return prefix, cleaned


class SubprocessToolRunner:
    """Wrapper around subprocess for running image tools."""

    def __init__(self):
        self.logger = logging.getLogger(__name__)

    def invoke(self, executable: str, args: Sequence[str]) -> ToolResult:
        cmd = [executable, *args]
        self.logger.debug(f"TOOL_CMD: {' '.join(cmd)}")
        start = time.monotonic()
        try:
            res = subprocess.run(cmd, capture_output=True, text=True, errors="replace")
        except OSError as e:
            elapsed_ms = int((time.monotonic() - start) * 1000)
            return ToolResult(success=False, elapsed_ms=elapsed_ms, stderr=f"Cannot run {executable}: {e}")
        elapsed_ms = int((time.monotonic() - start) * 1000)

        if res.returncode != 0:
            stderr = (res.stderr or "").strip() or f"{executable} exited with code {res.returncode}"
            return ToolResult(success=False, elapsed_ms=elapsed_ms, stderr=stderr)
        return ToolResult(success=True, elapsed_ms=elapsed_ms, stderr=res.stderr or "")
