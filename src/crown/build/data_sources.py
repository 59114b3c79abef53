"""Load auxiliary template data from JSON, CSV, and YAML files."""

from __future__ import annotations

import json
import logging
from pathlib import Path
from typing import Any, Mapping

import polars as pl
import yaml

from crown.exceptions import DataSourceError, UnsupportedDataFormat

LOGGER = logging.getLogger(__name__)

SUPPORTED_DATA_EXTENSIONS: tuple[str, ...] = (".json", ".csv", ".yaml", ".yml")


def _read_text(path: Path) -> str:
    try:
        return path.read_text(encoding="utf-8")
    except OSError as exc:
        raise DataSourceError(f"Could not read data file {path}: {exc}") from exc


def _load_csv(path: Path) -> list[dict[str, Any]]:
    """Read a CSV with a header row into a list of row dicts with inferred types."""

    try:
        frame = pl.read_csv(path, infer_schema_length=None)
    except (pl.exceptions.PolarsError, OSError) as exc:
        raise DataSourceError(f"CSV parsing errors in {path}: {exc}") from exc
    # Header-only or blank-line rows carry no values.
    frame = frame.filter(~pl.all_horizontal(pl.all().is_null())) if frame.width else frame
    return frame.to_dicts()


def load_data_file(path: Path) -> Any:
    """Load one data file, dispatching on its extension."""

    ext = path.suffix.lower()
    if ext not in SUPPORTED_DATA_EXTENSIONS:
        supported = ", ".join(SUPPORTED_DATA_EXTENSIONS)
        raise UnsupportedDataFormat(f"Unsupported data file format: {ext or '<none>'}. Supported formats: {supported}")

    if ext == ".csv":
        if not path.is_file():
            raise DataSourceError(f"Could not read data file {path}: file does not exist")
        return _load_csv(path)

    content = _read_text(path)
    if ext == ".json":
        try:
            return json.loads(content)
        except json.JSONDecodeError as exc:
            raise DataSourceError(f"Invalid JSON in {path}: {exc}") from exc
    try:
        return yaml.safe_load(content)
    except yaml.YAMLError as exc:
        raise DataSourceError(f"Invalid YAML in {path}: {exc}") from exc


def load_data_sources(sources: Mapping[str, Path], logger: logging.Logger | None = None) -> dict[str, Any]:
    """Load every configured data source keyed by its configured name."""

    effective_logger = logger or LOGGER
    data: dict[str, Any] = {}
    for name, path in sources.items():
        data[name] = load_data_file(path)
        effective_logger.debug("data.loaded name=%s path=%s", name, path)
    return data
