"""One complete build attempt: content -> HTML -> PDF."""

from __future__ import annotations

import logging
import shutil
import time
from pathlib import Path
from uuid import uuid4

from crown.build.data_sources import load_data_sources
from crown.build.models import BuildAttempt
from crown.build.renderer import RendererOptions, RunProcess, run_renderer
from crown.build.template import TemplateRenderer, build_context, load_helpers
from crown.config import ResolvedConfig
from crown.content.compile import compile_documents
from crown.content.discover import discover_content_files
from crown.content.ordering import sort_by_order
from crown.exceptions import AssetCopyWarning, BuildError, RendererProcessError
from crown.utils.paths import write_text_atomically
from crown.utils.time_utils import elapsed_ms, now_utc

LOGGER = logging.getLogger(__name__)

STYLESHEET_OUTPUT_NAME = "styles.css"


def copy_stylesheet(styles: Path, html_output: Path, logger: logging.Logger | None = None) -> list[str]:
    """Copy the stylesheet beside the rendered HTML; return warnings instead of raising."""

    effective_logger = logger or LOGGER
    target = html_output.parent / STYLESHEET_OUTPUT_NAME
    try:
        shutil.copyfile(styles, target)
    except OSError as exc:
        warning = AssetCopyWarning(f"Could not copy styles from {styles}: {exc}")
        effective_logger.warning("build.asset_copy_failed source=%s target=%s error=%s", styles, target, exc)
        return [str(warning)]
    return []


def execute_build(
    config: ResolvedConfig,
    *,
    run_process: RunProcess | None = None,
    logger: logging.Logger | None = None,
    compile_workers: int | None = None,
) -> BuildAttempt:
    """Run every build step once and report the outcome; never raises."""

    effective_logger = logger or LOGGER
    build_id = f"build-{uuid4().hex[:12]}"
    started_at = now_utc()
    started_mono = time.monotonic()
    warnings: list[str] = []
    document_count = 0

    effective_logger.info("build.start build_id=%s content=%s", build_id, config.content_glob)
    try:
        content_files = discover_content_files(config.content_glob, logger=effective_logger)
        documents = compile_documents(
            content_files,
            config.root,
            max_workers=compile_workers,
            logger=effective_logger,
        )
        ordered = sort_by_order(documents)
        document_count = len(ordered)
        effective_logger.info("build.compiled build_id=%s documents=%s", build_id, document_count)

        data = load_data_sources(config.data, logger=effective_logger)

        helpers = load_helpers(config.helpers) if config.helpers is not None else None
        renderer = TemplateRenderer(config.template, helpers=helpers)
        html = renderer.render(build_context(ordered, config.metadata, data, page=config.page))

        write_text_atomically(html, config.html_output)
        warnings.extend(copy_stylesheet(config.styles, config.html_output, logger=effective_logger))
        effective_logger.info("build.html_written build_id=%s html=%s", build_id, config.html_output)

        renderer_result = run_renderer(
            config.html_output,
            config.pdf_output,
            RendererOptions.from_config(config),
            run_process=run_process,
            logger=effective_logger,
        )
        warnings.extend(renderer_result.warnings)

        duration_ms = elapsed_ms(started_mono)
        if not renderer_result.success:
            errors = list(renderer_result.errors) or [
                f"Renderer exited with code {renderer_result.exit_code}"
            ]
            effective_logger.error(
                "build.renderer_failed build_id=%s exit_code=%s errors=%s",
                build_id,
                renderer_result.exit_code,
                len(errors),
            )
            return BuildAttempt.failed(
                started_at=started_at,
                duration_ms=duration_ms,
                html_path=config.html_output,
                pdf_path=config.pdf_output,
                errors=errors,
                warnings=warnings,
                failure_kind=RendererProcessError.kind,
                document_count=document_count,
            )

        effective_logger.info(
            "build.complete build_id=%s duration_ms=%s documents=%s warnings=%s errors=%s",
            build_id,
            duration_ms,
            document_count,
            len(warnings),
            len(renderer_result.errors),
        )
        return BuildAttempt(
            started_at=started_at,
            succeeded=True,
            duration_ms=duration_ms,
            document_count=document_count,
            html_path=config.html_output,
            pdf_path=config.pdf_output,
            warnings=tuple(warnings),
            errors=renderer_result.errors,
        )
    except BuildError as exc:
        effective_logger.error("build.failed build_id=%s kind=%s error=%s", build_id, exc.kind, exc)
        failure_kind = exc.kind
        error_message = str(exc)
    except Exception as exc:
        effective_logger.exception("build.unexpected_error build_id=%s", build_id)
        failure_kind = "unexpected_error"
        error_message = f"{type(exc).__name__}: {exc}"

    return BuildAttempt.failed(
        started_at=started_at,
        duration_ms=elapsed_ms(started_mono),
        html_path=config.html_output,
        pdf_path=config.pdf_output,
        errors=[error_message],
        warnings=warnings,
        failure_kind=failure_kind,
        document_count=document_count,
    )
