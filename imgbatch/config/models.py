from enum import Enum
from pathlib import Path
from typing import Dict, List, Optional, Tuple
from pydantic import BaseModel, ConfigDict, Field, PrivateAttr, field_validator


def normalize_extensions(values: List[str]) -> Tuple[str, ...]:
    """Lowercases extensions and strips the leading dot ('.PNG' -> 'png')."""
    normalized = []
    for value in values:
        ext = str(value).strip().lower().lstrip(".")
        if ext not in normalized:
            normalized.append(ext)
    return tuple(normalized)


class ToolKind(str, Enum):
    """Closed set of external tools a pipeline step can run."""
    PNGQUANT = "pngquant"
    MOZJPEG = "mozjpeg"
    IMAGEMAGICK_COMPRESS = "imagemagick_compress"

    @classmethod
    def resolve(cls, name: str) -> Optional["ToolKind"]:
        try:
            return cls(name)
        except ValueError:
            return None

    @property
    def forced_ext(self) -> Optional[str]:
        # cjpeg only ever writes JPEG
        if self is ToolKind.MOZJPEG:
            return "jpg"
        return None


class _Frozen(BaseModel):
    model_config = ConfigDict(frozen=True)


class ToolPaths(_Frozen):
    pngquant: str = "pngquant"
    mozjpeg: str = "cjpeg"
    magick: str = "magick"


class PathsConfig(_Frozen):
    input_dir: Path
    output_dir: Path
    tools: ToolPaths = Field(default_factory=ToolPaths)


class SelectionConfig(_Frozen):
    include_ext: Tuple[str, ...] = ("png", "jpg", "jpeg")
    exclude_patterns: Tuple[str, ...] = ()

    @field_validator("include_ext", mode="before")
    @classmethod
    def validate_include_ext(cls, v):
        return normalize_extensions(v or [])


class PipelineStep(_Frozen):
    """One named transformation in the pipeline.

    The name is resolved to a ToolKind once, when the configuration is built.
    A name that matches no tool is kept as-is and fails when the step runs.
    """
    name: str
    enabled: bool = True
    match_ext: Tuple[str, ...] = ()
    suffix: str = ""
    profile: str = "default"

    _tool: Optional[ToolKind] = PrivateAttr(default=None)

    @field_validator("match_ext", mode="before")
    @classmethod
    def validate_match_ext(cls, v):
        return normalize_extensions(v or [])

    def model_post_init(self, __context) -> None:
        self._tool = ToolKind.resolve(self.name)

    @property
    def tool(self) -> Optional[ToolKind]:
        return self._tool

    def matches(self, ext: str) -> bool:
        return ext.lower() in self.match_ext


class ProfileConfig(_Frozen):
    """Argument lists per tool for one named profile."""
    pngquant: Tuple[str, ...] = ()
    mozjpeg: Tuple[str, ...] = ()
    imagemagick_png: Tuple[str, ...] = ()
    imagemagick_jpg: Tuple[str, ...] = ()

    @field_validator("*", mode="before")
    @classmethod
    def stringify_args(cls, v):
        # YAML turns bare numbers like `-quality 80` into ints
        return tuple(str(a) for a in (v or []))


class OptionsConfig(_Frozen):
    recursive: bool = True
    preserve_tree: bool = True
    dry_run: bool = False
    concurrency: int = 2
    debug: bool = False

    @field_validator("concurrency", mode="before")
    @classmethod
    def clamp_concurrency(cls, v):
        # 0 or empty falls back to the default; anything else is at least one worker
        if not v:
            return 2
        return max(1, int(v))


class LoggingConfig(_Frozen):
    write_per_step: bool = True
    csv_path: Optional[Path] = None
    log_path: Optional[Path] = None


class AppConfig(_Frozen):
    paths: PathsConfig
    selection: SelectionConfig = Field(default_factory=SelectionConfig)
    pipeline: Tuple[PipelineStep, ...] = ()
    profiles: Dict[str, ProfileConfig] = Field(default_factory=dict)
    options: OptionsConfig = Field(default_factory=OptionsConfig)
    logging: LoggingConfig = Field(default_factory=LoggingConfig)

    @property
    def input_root(self) -> Path:
        return self.paths.input_dir.resolve()

    @property
    def output_root(self) -> Path:
        return self.paths.output_dir.resolve()

    @property
    def metrics_path(self) -> Path:
        if self.logging.csv_path:
            return self.logging.csv_path
        return self.paths.output_dir / "metrics.csv"

    @property
    def log_path(self) -> Path:
        if self.logging.log_path:
            return self.logging.log_path
        return self.paths.output_dir / "imgbatch.log"

    def profile(self, name: str) -> ProfileConfig:
        """Returns the named profile, or an empty one when it is not defined."""
        return self.profiles.get(name) or ProfileConfig()

    def with_overrides(
        self,
        dry_run: Optional[bool] = None,
        concurrency: Optional[int] = None,
        debug: Optional[bool] = None,
        write_per_step: Optional[bool] = None,
    ) -> "AppConfig":
        """Returns a copy with CLI overrides applied; the original is untouched."""
        options = {}
        if dry_run is not None:
            options["dry_run"] = dry_run
        if concurrency is not None:
            options["concurrency"] = concurrency
        if debug is not None:
            options["debug"] = debug
        logging_update = {}
        if write_per_step is not None:
            logging_update["write_per_step"] = write_per_step
        # Round-trip through validation so overrides get the same checks as the file
        data = self.model_dump()
        data["options"].update(options)
        data["logging"].update(logging_update)
        return AppConfig.model_validate(data)
