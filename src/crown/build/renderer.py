"""External PDF renderer invocation and diagnostics parsing."""

from __future__ import annotations

import logging
import subprocess
from dataclasses import dataclass, field
from pathlib import Path
from typing import Callable, Sequence

from crown.config import ResolvedConfig
from crown.exceptions import RendererProcessError, RendererTimeout

LOGGER = logging.getLogger(__name__)

WARNING_MARKER = "warning:"
ERROR_MARKER = "error:"


@dataclass(frozen=True, slots=True)
class ProcessResult:
    exit_code: int
    stdout: str
    stderr: str


RunProcess = Callable[[Sequence[str]], ProcessResult]


@dataclass(frozen=True, slots=True)
class RendererOptions:
    """Arguments needed to invoke the external renderer once."""

    executable_path: str = "prince"
    javascript: bool = False
    verbose: bool = False
    title: str = ""
    author: str = ""
    subject: str = ""
    keywords: tuple[str, ...] = ()
    additional_options: tuple[str, ...] = ()
    timeout_seconds: float | None = None

    @classmethod
    def from_config(cls, config: ResolvedConfig) -> "RendererOptions":
        return cls(
            executable_path=config.renderer.executable_path,
            javascript=config.renderer.javascript,
            verbose=config.renderer.verbose,
            title=config.metadata.title,
            author=config.metadata.author,
            subject=config.metadata.subject,
            keywords=tuple(config.metadata.keywords),
            additional_options=tuple(config.renderer.options),
            timeout_seconds=config.renderer.timeout_seconds,
        )


@dataclass(frozen=True, slots=True)
class RendererResult:
    success: bool
    exit_code: int
    stdout: str
    stderr: str
    warnings: tuple[str, ...] = field(default_factory=tuple)
    errors: tuple[str, ...] = field(default_factory=tuple)


def build_renderer_args(html_path: Path, pdf_path: Path, options: RendererOptions) -> list[str]:
    """Build the renderer argument list (without the executable) in its fixed order."""

    args: list[str] = [str(html_path), "-o", str(pdf_path)]
    if options.javascript:
        args.append("--javascript")
    if options.verbose:
        args.append("--verbose")
    if options.title:
        args.extend(["--pdf-title", options.title])
    if options.author:
        args.extend(["--pdf-author", options.author])
    if options.subject:
        args.extend(["--pdf-subject", options.subject])
    if options.keywords:
        args.extend(["--pdf-keywords", ", ".join(options.keywords)])
    args.extend(options.additional_options)
    return args


def parse_renderer_output(output: str) -> tuple[list[str], list[str]]:
    """Split renderer stderr into warning and error lines."""

    warnings: list[str] = []
    errors: list[str] = []
    for line in output.splitlines():
        trimmed = line.strip()
        if not trimmed:
            continue
        if WARNING_MARKER in trimmed:
            warnings.append(trimmed)
        elif ERROR_MARKER in trimmed:
            errors.append(trimmed)
    return warnings, errors


def subprocess_runner(timeout_seconds: float | None = None) -> RunProcess:
    """Return a RunProcess that executes the command with subprocess.run."""

    def _run(command: Sequence[str]) -> ProcessResult:
        try:
            completed = subprocess.run(
                list(command),
                capture_output=True,
                text=True,
                encoding="utf-8",
                errors="replace",
                timeout=timeout_seconds,
                check=False,
            )
        except subprocess.TimeoutExpired as exc:
            raise RendererTimeout(f"Renderer timed out after {timeout_seconds}s: {command[0]}") from exc
        except OSError as exc:
            raise RendererProcessError(f"Could not start renderer {command[0]}: {exc}") from exc
        return ProcessResult(exit_code=completed.returncode, stdout=completed.stdout, stderr=completed.stderr)

    return _run


def run_renderer(
    html_path: Path,
    pdf_path: Path,
    options: RendererOptions,
    run_process: RunProcess | None = None,
    logger: logging.Logger | None = None,
) -> RendererResult:
    """Convert HTML to PDF with the external renderer.

    Spawn failures and timeouts propagate as RendererProcessError/RendererTimeout;
    a non-zero exit is reported through the returned result.
    """

    effective_logger = logger or LOGGER
    runner = run_process or subprocess_runner(options.timeout_seconds)
    command = [options.executable_path, *build_renderer_args(html_path, pdf_path, options)]
    effective_logger.debug("renderer.invoke command=%s", command)

    result = runner(command)
    warnings, errors = parse_renderer_output(result.stderr)
    return RendererResult(
        success=result.exit_code == 0,
        exit_code=result.exit_code,
        stdout=result.stdout,
        stderr=result.stderr,
        warnings=tuple(warnings),
        errors=tuple(errors),
    )


def check_renderer_available(executable_path: str = "prince", run_process: RunProcess | None = None) -> bool:
    """Return True when the renderer executable runs and reports a version."""

    runner = run_process or subprocess_runner(timeout_seconds=30.0)
    try:
        result = runner([executable_path, "--version"])
    except RendererProcessError:
        return False
    return result.exit_code == 0 or "Prince" in result.stdout
