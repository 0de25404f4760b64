from __future__ import annotations

from pathlib import Path
from typing import Any

import yaml

from .errors import ManifestError


def load_manifest(text: str) -> dict[str, Any]:
    """Parse a single YAML (or JSON) document into a mapping."""
    try:
        doc = yaml.safe_load(text)
    except yaml.YAMLError as e:
        raise ManifestError(f"invalid manifest: {e}") from e
    if not isinstance(doc, dict):
        raise ManifestError(f"manifest must be a mapping, got {type(doc).__name__}")
    return doc


def load_manifest_file(path: str | Path) -> dict[str, Any]:
    p = Path(path)
    try:
        text = p.read_text(encoding="utf-8")
    except OSError as e:
        raise ManifestError(f"cannot read manifest {p}: {e}") from e
    return load_manifest(text)
