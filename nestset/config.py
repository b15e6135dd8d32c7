"""Schema configuration loading from YAML and the environment."""

import os
from pathlib import Path

import yaml

from nestset.models import NestedSetSchema


def load_schema(path: str | Path | None = None) -> NestedSetSchema:
    """Read a NestedSetSchema from a YAML mapping, or return the defaults.

    Recognized keys are the NestedSetSchema fields (table, id_attribute,
    left_attribute, right_attribute, depth_attribute, tree_attribute).
    Unknown keys are rejected.
    """
    if path is None:
        return NestedSetSchema()
    with open(path, encoding="utf-8") as f:
        raw = yaml.safe_load(f) or {}
    if not isinstance(raw, dict):
        raise ValueError(f"Schema config must be a mapping: {path}")
    unknown = set(raw) - set(NestedSetSchema.model_fields)
    if unknown:
        raise ValueError(f"Unknown schema options in {path}: {sorted(unknown)}")
    return NestedSetSchema.model_validate(raw)


def schema_from_env() -> NestedSetSchema:
    """Load the schema named by NESTSET_CONFIG, defaults when unset."""
    return load_schema(os.environ.get("NESTSET_CONFIG") or None)


def database_path_from_env() -> str:
    return os.environ.get("NESTSET_DB", "nestset.db")
