import os
import logging
from pathlib import Path
from typing import Iterable, Generator
from imgbatch.config.models import normalize_extensions

logger = logging.getLogger(__name__)

class FileScanner:
    """Finds input files by extension allow-list and exclude substrings."""

    def __init__(self, extensions: Iterable[str], exclude_patterns: Iterable[str] = ()):
        self.extensions = set(normalize_extensions(list(extensions)))
        self.exclude_patterns = list(exclude_patterns)

    def walk(self, root_dir: Path, recursive: bool = True) -> Generator[Path, None, None]:
        """Yields every file under root_dir (only direct entries when not recursive)."""
        root_dir = Path(root_dir).resolve()

        def _on_error(err: OSError):
            logger.warning(f"Cannot read directory {err.filename}: {err.strerror}")

        for root, dirs, files in os.walk(str(root_dir), onerror=_on_error):
            if recursive:
                # Ensure deterministic traversal: sort directories and files
                dirs.sort()
            else:
                dirs[:] = []
            for file_name in sorted(files):
                yield Path(root) / file_name

    def matches(self, path: Path, root_dir: Path) -> bool:
        rel = os.path.relpath(str(path), str(root_dir))
        if Path(rel).suffix[1:].lower() not in self.extensions:
            return False
        return not any(pattern in rel for pattern in self.exclude_patterns)

    def scan(self, root_dir: Path, recursive: bool = True) -> Generator[Path, None, None]:
        """Lazily yields absolute paths of the files selected for processing."""
        root_dir = Path(root_dir).resolve()
        for file_path in self.walk(root_dir, recursive):
            if self.matches(file_path, root_dir):
                yield file_path
