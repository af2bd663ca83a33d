import pytest
import threading
import yaml
from pathlib import Path
from typing import Callable, Dict, List, Optional, Sequence
from imgbatch.config.models import AppConfig
from imgbatch.infrastructure.event_bus import EventBus
from imgbatch.infrastructure.tool_runner import ToolResult

# ============================================================================
# Fake tool runner
# ============================================================================

def output_arg(args: Sequence[str]) -> Path:
    """Finds the output path in an argument list built by StepExecutor."""
    args = list(args)
    for flag in ("--output", "-outfile"):
        if flag in args:
            return Path(args[args.index(flag) + 1])
    target = args[-1]
    if ":" in target and not target.startswith("/"):
        target = target.split(":", 1)[1]
    return Path(target)


class FakeToolRunner:
    """Stands in for SubprocessToolRunner; writes `out_bytes` bytes per call.

    `fail` maps an executable name to the stderr text it should fail with.
    """

    def __init__(self, out_bytes: int = 60, fail: Optional[Dict[str, str]] = None,
                 elapsed_ms: int = 7, write_output: bool = True):
        self.out_bytes = out_bytes
        self.fail = fail or {}
        self.elapsed_ms = elapsed_ms
        self.write_output = write_output
        self.calls: List[List[str]] = []
        self._lock = threading.Lock()

    def invoke(self, executable: str, args: Sequence[str]) -> ToolResult:
        with self._lock:
            self.calls.append([executable, *args])
        if executable in self.fail:
            return ToolResult(success=False, elapsed_ms=self.elapsed_ms, stderr=self.fail[executable])
        if self.write_output:
            out = output_arg(args)
            out.write_bytes(b"x" * self.out_bytes)
        return ToolResult(success=True, elapsed_ms=self.elapsed_ms, stderr="")


@pytest.fixture
def fake_runner():
    return FakeToolRunner()

# ============================================================================
# File System Fixtures
# ============================================================================

@pytest.fixture
def input_dir(tmp_path):
    d = tmp_path / "input"
    d.mkdir()
    return d


@pytest.fixture
def output_dir(tmp_path):
    return tmp_path / "output"


@pytest.fixture
def image_tree(input_dir):
    """Creates a small tree of fake images (plus files that must be ignored)."""
    (input_dir / "a.png").write_bytes(b"p" * 100)
    (input_dir / "b.JPG").write_bytes(b"j" * 200)
    (input_dir / "notes.txt").write_text("not an image")
    sub = input_dir / "sub"
    sub.mkdir()
    (sub / "c.png").write_bytes(b"c" * 50)
    (sub / "c_thumb.png").write_bytes(b"t" * 10)
    return input_dir

# ============================================================================
# Configuration Fixtures
# ============================================================================

@pytest.fixture
def make_config(input_dir, output_dir) -> Callable[..., AppConfig]:
    """Builds an AppConfig rooted at the temporary input/output dirs."""

    def _make(pipeline=None, options=None, logging=None, selection=None, profiles=None) -> AppConfig:
        return AppConfig(
            paths={"input_dir": input_dir, "output_dir": output_dir},
            selection=selection or {"include_ext": ["png", "jpg", "jpeg"], "exclude_patterns": ["_thumb"]},
            pipeline=pipeline if pipeline is not None else [
                {"name": "pngquant", "match_ext": ["png"], "suffix": "_q", "profile": "default"},
            ],
            profiles=profiles if profiles is not None else {
                "default": {
                    "pngquant": ["--quality=65-80", "--force"],
                    "mozjpeg": ["-quality", 80],
                    "imagemagick_png": ["PNG8:", "-strip"],
                    "imagemagick_jpg": ["-quality", "82"],
                },
            },
            options=options or {"concurrency": 2},
            logging=logging or {"write_per_step": True},
        )

    return _make


@pytest.fixture
def sample_config(make_config):
    return make_config()


@pytest.fixture
def config_yaml_path(tmp_path, input_dir, output_dir):
    """Creates a temporary YAML config file."""
    conf_file = tmp_path / "imgbatch.yaml"

    content = {
        'paths': {
            'input_dir': str(input_dir),
            'output_dir': str(output_dir),
            'tools': {'pngquant': 'pngquant', 'mozjpeg': 'cjpeg', 'magick': 'magick'},
        },
        'selection': {
            'include_ext': ['png', 'JPG'],
            'exclude_patterns': ['_thumb'],
        },
        'pipeline': [
            {'name': 'pngquant', 'enabled': True, 'match_ext': ['png'], 'suffix': '_q', 'profile': 'default'},
            {'name': 'mozjpeg', 'enabled': False, 'match_ext': ['jpg', 'png'], 'suffix': '_moz', 'profile': 'default'},
        ],
        'profiles': {
            'default': {'pngquant': ['--quality=65-80'], 'mozjpeg': ['-quality', 80]},
        },
        'options': {'recursive': True, 'preserve_tree': True, 'dry_run': False, 'concurrency': 3},
        'logging': {'write_per_step': True, 'csv_path': str(output_dir / 'metrics.csv')},
    }

    with open(conf_file, 'w') as f:
        yaml.dump(content, f)

    return conf_file

# ============================================================================
# EventBus Fixtures
# ============================================================================

@pytest.fixture
def event_bus():
    """Returns a fresh EventBus instance."""
    return EventBus()


def read_rows(csv_path: Path) -> List[Dict[str, str]]:
    """Parses the metrics log back into dicts (fields never contain commas)."""
    lines = csv_path.read_text(encoding="utf-8").splitlines()
    header = lines[0].split(",")
    return [dict(zip(header, line.split(","))) for line in lines[1:]]


def pytest_configure(config):
    """Register custom markers."""
    config.addinivalue_line(
        "markers", "integration: marks tests as integration tests"
    )
    config.addinivalue_line(
        "markers", "unit: marks tests as unit tests"
    )


@pytest.fixture
def runner_factory():
    """Returns the FakeToolRunner class for tests that need custom behaviour."""
    return FakeToolRunner


@pytest.fixture
def metrics_rows():
    return read_rows
