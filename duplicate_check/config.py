"""
Configuration of the duplicate check service.

Settings come from a YAML file (top-level key "duplicate-check") and can be
overridden by environment variables, which may be set in a .env file.
"""
import logging
import os
from pathlib import Path
from typing import Literal

import yaml
from dotenv import load_dotenv
from pydantic import BaseModel, Field

logger = logging.getLogger(__name__)

DEFAULT_CONFIG_FILE = "config.yaml"

# Environment variable -> config field
ENV_OVERRIDES = {
    "WORKSPACE_ROOT": "workspace_root",
    "RESULTS_ROOT": "results_root",
    "REPORT_STORAGE": "storage",
    "MINIMUM_TOKEN_MATCH": "minimum_token_match",
    "MAX_WORKERS": "max_workers",
}


class DuplicateCheckConfig(BaseModel):
    # I/O paths
    workspace_root: Path = Path("workspace")             # Holds workspace-<lab_id>/<user_id>/
    results_root: Path = Path("results")                 # Holds <lab_id>/<run_id>/<key>.json
    storage: Literal["filesystem", "memory"] = "filesystem"

    # Detection tuning
    minimum_token_match: int = Field(1, ge=1)            # Shortest token run counted as a match
    include_zero_similarity: bool = True                 # Keep pairs that share nothing
    max_workers: int | None = Field(None, ge=1)          # Thread pool size, None = executor default

    # Tokenizer normalization
    normalize_identifiers: bool = False                  # Compare identifiers by category only
    normalize_literals: bool = False                     # Compare literals by category only


def _read_yaml(path: Path) -> dict:
    with open(path, "r", encoding="utf-8") as f:
        data = yaml.safe_load(f) or {}
    if not isinstance(data, dict):
        raise ValueError(f"Invalid config structure in {path}: expected a mapping")
    section = data.get("duplicate-check", {})
    if not isinstance(section, dict):
        raise ValueError(f"Invalid 'duplicate-check' section in {path}")
    return {key.replace("-", "_"): value for key, value in section.items()}


def load_config(path: str | Path | None = None) -> DuplicateCheckConfig:
    """
    Load settings from a YAML file and the environment.

    Args:
        path: Config file (default: $DUPLICATE_CHECK_CONFIG or config.yaml).
            A missing file means defaults.

    Returns:
        Validated DuplicateCheckConfig
    """
    load_dotenv()
    path = Path(path or os.getenv("DUPLICATE_CHECK_CONFIG", DEFAULT_CONFIG_FILE))

    values = {}
    if path.exists():
        values.update(_read_yaml(path))
        logger.info(f"Loaded duplicate check config from {path}")
    else:
        logger.info(f"Config file {path} not found, using defaults")

    for env_name, field_name in ENV_OVERRIDES.items():
        env_value = os.getenv(env_name)
        if env_value:
            values[field_name] = env_value

    return DuplicateCheckConfig(**values)
