"""YAML/dict config loader for span-reconciler.

Supports loading from a YAML file or a plain dict (for embedding
in a larger service config).

Example YAML:

    span_reconciler:
      max_workers: 4
      highlight: true
      log_level: DEBUG
      log_format: json        # "plain" or "json"
"""

from __future__ import annotations
from pathlib import Path
from typing import Any

from .pipeline import DetectionPipeline
from .reconciler import Reconciler, ReconcilerConfig

_LOG_FORMATS = {"plain", "json"}


def load_config(data: dict[str, Any] | None) -> dict[str, Any]:
    """Normalize a config dict (from YAML or inline)."""
    data = data or {}
    # Support nested under "span_reconciler" key or flat
    if "span_reconciler" in data:
        data = data["span_reconciler"] or {}

    log_format = str(data.get("log_format", "plain")).lower()
    if log_format not in _LOG_FORMATS:
        raise ValueError(f"log_format must be one of {sorted(_LOG_FORMATS)}, got {log_format!r}")

    # Unset means SPAN_RECONCILER_LOG_LEVEL decides at configure time
    log_level = data.get("log_level")

    max_workers = int(data.get("max_workers", 1))
    if max_workers < 1:
        raise ValueError(f"max_workers must be >= 1, got {max_workers}")

    return {
        "max_workers": max_workers,
        "highlight": bool(data.get("highlight", False)),
        "log_level": str(log_level).upper() if log_level else None,
        "log_format": log_format,
    }


def load_from_yaml(path: str | Path) -> dict[str, Any]:
    """Load config from a YAML file."""
    import yaml
    with open(path) as f:
        return load_config(yaml.safe_load(f))


def create_reconciler(config: dict[str, Any] | None = None) -> Reconciler:
    """Create a reconciler from a config dict."""
    cfg = load_config(config)
    return Reconciler(ReconcilerConfig(max_workers=cfg["max_workers"]))


def create_pipeline(config: dict[str, Any] | None = None) -> DetectionPipeline:
    """Create a fully configured detection pipeline from a config dict."""
    cfg = load_config(config)
    return DetectionPipeline(
        reconciler=Reconciler(ReconcilerConfig(max_workers=cfg["max_workers"])),
        with_highlight=cfg["highlight"],
    )
