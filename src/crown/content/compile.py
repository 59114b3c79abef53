"""Compile markdown documents with YAML front matter into HTML."""

from __future__ import annotations

import logging
import math
from concurrent.futures import ThreadPoolExecutor
from dataclasses import dataclass, field
from pathlib import Path
from typing import Any, Sequence

import frontmatter
import markdown
import yaml
from markupsafe import Markup

from crown.exceptions import ContentCompileError

LOGGER = logging.getLogger(__name__)

MARKDOWN_EXTENSIONS: tuple[str, ...] = ("extra", "sane_lists")


@dataclass(frozen=True, slots=True)
class CompiledDocument:
    """One content file after front matter extraction and markdown conversion."""

    path: str
    absolute_path: Path
    metadata: dict[str, Any] = field(default_factory=dict)
    html: Markup = Markup("")
    raw_text: str = ""

    @property
    def order(self) -> float | None:
        """Finite numeric `order` front matter value, or None otherwise."""

        value = self.metadata.get("order")
        if isinstance(value, bool) or not isinstance(value, (int, float)):
            return None
        if isinstance(value, float) and not math.isfinite(value):
            return None
        return value

    @property
    def title(self) -> str | None:
        value = self.metadata.get("title")
        return None if value is None else str(value)


def _markdown_to_html(text: str) -> str:
    return markdown.markdown(text, extensions=list(MARKDOWN_EXTENSIONS))


def render_inline_markdown(text: str) -> Markup:
    """Convert a short markdown snippet to HTML without the wrapping paragraph."""

    if not text:
        return Markup("")
    html = _markdown_to_html(str(text)).strip()
    if html.startswith("<p>") and html.endswith("</p>") and html.count("<p>") == 1:
        html = html[3:-4]
    return Markup(html)


def _relative_posix(path: Path, root: Path) -> str:
    try:
        return path.relative_to(root).as_posix()
    except ValueError:
        return path.as_posix()


def compile_document(path: Path, root: Path) -> CompiledDocument:
    """Read one markdown file, split its front matter and convert the body."""

    try:
        raw = path.read_text(encoding="utf-8")
    except OSError as exc:
        raise ContentCompileError(f"Could not read content file {path}: {exc}") from exc

    try:
        post = frontmatter.loads(raw)
    except (yaml.YAMLError, TypeError, ValueError) as exc:
        raise ContentCompileError(f"Invalid front matter in {path}: {exc}") from exc

    metadata = dict(post.metadata)
    body = post.content
    return CompiledDocument(
        path=_relative_posix(path, root),
        absolute_path=path,
        metadata=metadata,
        html=Markup(_markdown_to_html(body)),
        raw_text=body,
    )


def compile_documents(
    paths: Sequence[Path],
    root: Path,
    *,
    max_workers: int | None = None,
    logger: logging.Logger | None = None,
) -> list[CompiledDocument]:
    """Compile documents concurrently, returning them in input order."""

    effective_logger = logger or LOGGER
    if not paths:
        return []
    with ThreadPoolExecutor(max_workers=max_workers, thread_name_prefix="crown-compile") as executor:
        documents = list(executor.map(lambda item: compile_document(item, root), paths))
    effective_logger.debug("compile.documents count=%s", len(documents))
    return documents
