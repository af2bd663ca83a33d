import json
from enum import Enum
from pathlib import Path
from typing import List, Optional
from pydantic import BaseModel, ConfigDict, Field

ORIGINAL_STAGE = "ORIGINAL"
MESSAGE_MAX_LENGTH = 300


class StepStatus(str, Enum):
    OK = "ok"
    ERROR = "error"


class Task(BaseModel):
    """One discovered input file; the path is absolute and fixed at discovery."""
    model_config = ConfigDict(frozen=True)

    path: Path

    @property
    def ext(self) -> str:
        return self.path.suffix[1:].lower()


class StepOutcome(BaseModel):
    step_name: str
    output_path: Path
    src_size: Optional[int] = None
    out_size: Optional[int] = None
    elapsed_ms: int = 0
    status: StepStatus = StepStatus.OK
    message: str = ""

    @property
    def ok(self) -> bool:
        return self.status == StepStatus.OK


def one_line(text: str, limit: int = MESSAGE_MAX_LENGTH) -> str:
    """Collapses line breaks into spaces and truncates to `limit` characters."""
    return text.replace("\r\n", " ").replace("\n", " ").replace("\r", " ")[:limit]


def delta_pct(src_size: Optional[int], out_size: Optional[int]) -> str:
    if not src_size or out_size is None:
        return ""
    return f"{(out_size - src_size) / src_size * 100:.2f}"


class MetricsRecord(BaseModel):
    """One row of the metrics log."""
    model_config = ConfigDict(frozen=True)

    file: str
    stage: str
    src_size: Optional[int] = None
    out_size: Optional[int] = None
    delta: Optional[int] = None
    delta_pct: str = ""
    elapsed_ms: Optional[int] = None
    status: StepStatus = StepStatus.OK
    message: str = ""

    @classmethod
    def from_outcome(cls, outcome: StepOutcome) -> "MetricsRecord":
        known = outcome.src_size is not None and outcome.out_size is not None
        return cls(
            file=str(outcome.output_path),
            stage=outcome.step_name,
            src_size=outcome.src_size,
            out_size=outcome.out_size,
            delta=(outcome.out_size - outcome.src_size) if known else None,
            delta_pct=delta_pct(outcome.src_size, outcome.out_size) if known else "",
            elapsed_ms=outcome.elapsed_ms,
            status=outcome.status,
            message=json.dumps(outcome.message, ensure_ascii=False),
        )

    @classmethod
    def original(cls, path: Path, size: Optional[int]) -> "MetricsRecord":
        return cls(
            file=str(path),
            stage=ORIGINAL_STAGE,
            src_size=size,
            out_size=size,
            delta=0,
            delta_pct=delta_pct(size, size),
            elapsed_ms=None,
            status=StepStatus.OK,
            message="",
        )

    def fields(self):
        return [
            self.file,
            self.stage,
            self.src_size,
            self.out_size,
            self.delta,
            self.delta_pct,
            self.elapsed_ms,
            self.status.value,
            self.message,
        ]


class RunSummary(BaseModel):
    total: int = 0
    completed: int = 0
    failed: int = 0
    step_errors: int = 0
    processed: List[Path] = Field(default_factory=list)
