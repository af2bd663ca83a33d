import yaml
from pathlib import Path
from typing import Any, Dict
from .models import AppConfig

DEFAULT_CONFIG_PATH = Path("imgbatch.yaml")

# camelCase keys accepted from JSON configs written for the older tool
_LEGACY_KEYS = {
    "paths": {"inputDir": "input_dir", "outputDir": "output_dir"},
    "selection": {"includeExt": "include_ext", "excludePatterns": "exclude_patterns"},
    "options": {"preserveTree": "preserve_tree", "dryRun": "dry_run"},
    "logging": {"writePerFile": "write_per_step", "csvPath": "csv_path", "logPath": "log_path"},
    "pipeline": {"matchExt": "match_ext"},
}


def _rename_keys(section: Dict[str, Any], mapping: Dict[str, str]) -> None:
    for old, new in mapping.items():
        if old in section and new not in section:
            section[new] = section.pop(old)


def load_config(config_path: Path) -> AppConfig:
    """Loads a YAML (or JSON) config and parses it into the AppConfig Pydantic model."""
    if not config_path.exists():
        raise FileNotFoundError(f"Config file not found: {config_path}")

    with open(config_path, 'r', encoding='utf-8') as f:
        data = yaml.safe_load(f) or {}

    if not isinstance(data, dict):
        raise ValueError(f"Config file must contain a mapping at the top level: {config_path}")

    for section_name, mapping in _LEGACY_KEYS.items():
        section = data.get(section_name)
        if isinstance(section, dict):
            _rename_keys(section, mapping)
        elif isinstance(section, list):
            for item in section:
                if isinstance(item, dict):
                    _rename_keys(item, mapping)

    return AppConfig(**data)
