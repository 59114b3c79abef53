"""Build pipeline: data loading, templating, external PDF rendering."""

from crown.build.data_sources import SUPPORTED_DATA_EXTENSIONS, load_data_file, load_data_sources
from crown.build.models import BuildAttempt
from crown.build.pipeline import copy_stylesheet, execute_build
from crown.build.renderer import (
    ProcessResult,
    RendererOptions,
    RendererResult,
    RunProcess,
    build_renderer_args,
    check_renderer_available,
    parse_renderer_output,
    run_renderer,
    subprocess_runner,
)
from crown.build.template import TemplateRenderer, build_context, load_helpers

__all__ = [
    "SUPPORTED_DATA_EXTENSIONS",
    "BuildAttempt",
    "ProcessResult",
    "RendererOptions",
    "RendererResult",
    "RunProcess",
    "TemplateRenderer",
    "build_context",
    "build_renderer_args",
    "check_renderer_available",
    "copy_stylesheet",
    "execute_build",
    "load_data_file",
    "load_data_sources",
    "load_helpers",
    "parse_renderer_output",
    "run_renderer",
    "subprocess_runner",
]
