import os
from pathlib import Path
from typing import Optional

FLATTEN_JOINER = "__"


def output_path_for_step(
    input_path: Path,
    input_root: Path,
    output_root: Path,
    preserve_tree: bool,
    suffix: str,
    forced_ext: Optional[str] = None,
) -> Path:
    """Derives where a step writes its result for one input file.

    Pure function: the same arguments always give the same path, so a re-run
    overwrites earlier outputs instead of piling up copies.

    With preserve_tree the input's sub-directory is mirrored under output_root.
    Without it every output lands directly in output_root and the relative
    directories are folded into the file name ('a/b/c.png' -> 'a__b__c').
    """
    rel = Path(os.path.relpath(str(input_path), str(input_root)))
    ext = forced_ext or rel.suffix[1:].lower()
    stem_path = rel.with_suffix("") if rel.suffix else rel

    if preserve_tree:
        directory = rel.parent
        name = stem_path.name
    else:
        directory = Path()
        name = FLATTEN_JOINER.join(stem_path.parts)

    return Path(output_root) / directory / f"{name}{suffix}.{ext}"


def ensure_parent_dir(path: Path) -> None:
    Path(path).parent.mkdir(parents=True, exist_ok=True)
