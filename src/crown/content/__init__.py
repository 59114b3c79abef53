"""Content discovery, compilation, and ordering."""

from crown.content.compile import (
    CompiledDocument,
    compile_document,
    compile_documents,
    render_inline_markdown,
)
from crown.content.discover import discover_content_files, glob_base_dir
from crown.content.ordering import sort_by_order

__all__ = [
    "CompiledDocument",
    "compile_document",
    "compile_documents",
    "render_inline_markdown",
    "discover_content_files",
    "glob_base_dir",
    "sort_by_order",
]
