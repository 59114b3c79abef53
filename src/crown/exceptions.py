"""Error taxonomy shared by configuration, build and watch modules."""

from __future__ import annotations


class CrownError(Exception):
    """Base class for errors raised deliberately by crown."""


class ConfigError(CrownError):
    """Configuration could not be found, parsed, or validated."""


class BuildError(CrownError):
    """Failure that aborts one build attempt but never the watch session."""

    kind = "build_error"


class NoContentFound(BuildError):
    kind = "no_content_found"


class ContentCompileError(BuildError):
    kind = "content_compile_error"


class DataSourceError(BuildError):
    kind = "data_source_error"


class UnsupportedDataFormat(BuildError):
    kind = "unsupported_data_format"


class RenderError(BuildError):
    kind = "render_error"


class RendererProcessError(BuildError):
    """External PDF renderer exited non-zero or could not be spawned."""

    kind = "renderer_process_error"


class RendererTimeout(RendererProcessError):
    kind = "renderer_timeout"


class AssetCopyWarning(UserWarning):
    """Non-fatal asset copy failure attached to a build attempt's warnings."""
