"""Jinja2 template rendering with built-in and project-supplied helpers."""

from __future__ import annotations

import importlib.util
import inspect
import json
import logging
from datetime import date, datetime
from pathlib import Path
from typing import Any, Callable, Mapping, Sequence

from jinja2 import (
    Environment,
    FileSystemLoader,
    StrictUndefined,
    TemplateError,
    TemplateNotFound,
    select_autoescape,
)
from markupsafe import Markup

from crown.config import MetadataConfig, PageConfig
from crown.content.compile import CompiledDocument, render_inline_markdown
from crown.exceptions import RenderError
from crown.utils.time_utils import now_utc

LOGGER = logging.getLogger(__name__)

PARTIALS_DIR_NAME = "partials"

Helper = Callable[..., Any]


def _json_filter(value: Any) -> Markup:
    return Markup(json.dumps(value, indent=2, sort_keys=True, default=str))


def _format_date_filter(value: Any, fmt: str | None = None) -> str:
    if isinstance(value, str):
        value = datetime.fromisoformat(value)
    if not isinstance(value, (date, datetime)):
        return str(value)
    if fmt == "iso":
        return value.isoformat()
    if fmt:
        return value.strftime(fmt)
    return value.strftime("%x")


BUILTIN_FILTERS: dict[str, Helper] = {
    "markdown": render_inline_markdown,
    "json": _json_filter,
    "format_date": _format_date_filter,
}


def load_helpers(helpers_path: Path) -> dict[str, Helper]:
    """Import a helper module and return its name -> callable mapping.

    A module-level ``HELPERS`` mapping wins; otherwise every public function
    defined in the module is exported under its own name.
    """

    module_name = f"crown_helpers_{abs(hash(str(helpers_path)))}"
    try:
        spec = importlib.util.spec_from_file_location(module_name, helpers_path)
        if spec is None or spec.loader is None:
            raise ImportError(f"not an importable Python file: {helpers_path}")
        module = importlib.util.module_from_spec(spec)
        spec.loader.exec_module(module)
    except Exception as exc:
        raise RenderError(f"Failed to load custom helpers from {helpers_path}: {exc}") from exc

    declared = getattr(module, "HELPERS", None)
    if isinstance(declared, Mapping):
        return {str(name): helper for name, helper in declared.items() if callable(helper)}

    return {
        name: obj
        for name, obj in vars(module).items()
        if not name.startswith("_") and inspect.isfunction(obj) and obj.__module__ == module.__name__
    }


def build_context(
    documents: Sequence[CompiledDocument],
    metadata: MetadataConfig,
    data: Mapping[str, Any] | None = None,
    page: PageConfig | None = None,
    generated_at: datetime | None = None,
) -> dict[str, Any]:
    """Create the template context from ordered documents, metadata and data sources."""

    return {
        "metadata": metadata.model_dump(),
        "chapters": list(documents),
        "data": dict(data or {}),
        "page": (page or PageConfig()).model_dump(),
        "generated_date": generated_at or now_utc(),
    }


class TemplateRenderer:
    """Render the main template; partials resolve from the template's directory tree."""

    def __init__(self, template_path: Path, helpers: Mapping[str, Helper] | None = None) -> None:
        self.template_path = template_path
        self.template_dir = template_path.parent
        self.environment = Environment(
            loader=FileSystemLoader([str(self.template_dir), str(self.template_dir / PARTIALS_DIR_NAME)]),
            autoescape=select_autoescape(["html", "htm", "xml", "hbs", "j2", "jinja"]),
            undefined=StrictUndefined,
            trim_blocks=True,
            lstrip_blocks=True,
            keep_trailing_newline=True,
        )
        self.environment.filters.update(BUILTIN_FILTERS)
        if helpers:
            self.register_helpers(helpers)

    def register_helpers(self, helpers: Mapping[str, Helper]) -> None:
        """Expose helpers both as filters and as global functions."""

        for name, helper in helpers.items():
            self.environment.filters[name] = helper
            self.environment.globals[name] = helper

    def render(self, context: Mapping[str, Any]) -> str:
        try:
            template = self.environment.get_template(self.template_path.name)
            return template.render(**context)
        except TemplateNotFound as exc:
            raise RenderError(f"Missing template reference: {exc.name}") from exc
        except TemplateError as exc:
            raise RenderError(f"Template rendering failed for {self.template_path}: {exc}") from exc
