from __future__ import annotations

import json
from pathlib import Path
from typing import Any

import jsonschema
import yaml
from jsonschema.exceptions import ValidationError

from ..models.comparison_request import DEFAULT_MATCH_THRESHOLD, ComparisonRequest
from ..models.config_models import FileSourceConfig, MatchThresholds, ReconcileConfig

"""Run configuration loader.

Responsibilities:
- Load the YAML run config (files, comparisons, optional tuning)
- Validate it against config_schema.json (unknown keys rejected)
- Apply defaults and build the domain ReconcileConfig
"""

SCHEMA_PATH = Path(__file__).with_name("config_schema.json")


class ConfigError(Exception):
    pass


def _validate_config_schema(data: dict[str, Any]) -> None:
    """Validate config data against the JSON schema.

    Raises:
        ConfigError: If the schema file is missing or not valid JSON, or the
            config data fails validation (missing required keys, wrong types,
            unknown keys).
    """
    if not SCHEMA_PATH.exists():
        raise ConfigError(f"config schema not found: {SCHEMA_PATH}")

    try:
        schema = json.loads(SCHEMA_PATH.read_text(encoding="utf-8"))
        jsonschema.validate(data, schema)
    except json.JSONDecodeError as e:
        raise ConfigError(f"invalid schema file: {e}") from e
    except ValidationError as e:
        raise ConfigError(f"config validation failed: {e.message}") from e


def _build_requests(raw: list[dict[str, Any]]) -> list[ComparisonRequest]:
    return [
        ComparisonRequest(
            file1_id=item["file1_id"],
            file1_worksheet_name=item["file1_worksheet"],
            file2_id=item["file2_id"],
            file2_worksheet_name=item["file2_worksheet"],
            match_threshold=float(item.get("match_threshold", DEFAULT_MATCH_THRESHOLD)),
        )
        for item in raw
    ]


def load_config(path: Path) -> ReconcileConfig:
    if not path.exists():
        raise ConfigError(f"config file not found: {path}")
    try:
        data = yaml.safe_load(path.read_text(encoding="utf-8")) or {}
    except yaml.YAMLError as e:
        raise ConfigError(f"invalid yaml: {e}") from e
    if not isinstance(data, dict):
        raise ConfigError("config validation failed: top level must be a mapping")

    _validate_config_schema(data)

    ids = [f["id"] for f in data["files"]]
    duplicates = sorted({i for i in ids if ids.count(i) > 1})
    if duplicates:
        raise ConfigError(f"duplicate file ids: {duplicates}")

    try:
        thresholds = MatchThresholds.from_mapping(data.get("thresholds"))
    except ValueError as e:
        raise ConfigError(f"invalid thresholds: {e}") from e

    return ReconcileConfig(
        files=[
            FileSourceConfig(file_id=f["id"], path=f["path"], name=f.get("name"))
            for f in data["files"]
        ],
        comparisons=_build_requests(data["comparisons"]),
        thresholds=thresholds,
        max_workers=data.get("max_workers", 1),
        timeout_seconds=data.get("timeout_seconds"),
        data_start_row=data.get("data_start_row", 3),
        output=data.get("output"),
    )
