"""Typer CLI entrypoint for crown."""

from __future__ import annotations

import logging
import webbrowser
from dataclasses import replace
from pathlib import Path
from typing import Any

import typer
import yaml

from crown.build.models import BuildAttempt
from crown.build.pipeline import execute_build
from crown.build.renderer import check_renderer_available
from crown.config import ResolvedConfig, load_config
from crown.dev.server import DevServer, LiveReloadHub
from crown.exceptions import ConfigError
from crown.logging_utils import configure_logging
from crown.scaffold import create_project
from crown.watch.observers import LiveReloadObserver, TerminalObserver
from crown.watch.session import WatchSession

app = typer.Typer(
    add_completion=False,
    help="crown: build print-quality PDFs from markdown, templates and stylesheets.",
    no_args_is_help=True,
)


def _config_file_option() -> Any:
    return typer.Option(
        None,
        "--config-file",
        "-c",
        help="Optional config file path (crown.yaml / crown.yml / crown.json).",
        exists=False,
        file_okay=True,
        dir_okay=False,
        readable=True,
    )


def _load_and_optionally_configure_logger(
    config_file: Path | None,
    configure: bool,
) -> tuple[ResolvedConfig, logging.Logger]:
    try:
        config = load_config(config_file=config_file)
    except ConfigError as exc:
        typer.echo(f"error: {exc}", err=True)
        raise typer.Exit(code=1) from exc
    if configure:
        logger = configure_logging(config.log_file, level=config.logging.level)
    else:
        logger = logging.getLogger("crown")
    return config, logger


def _echo_attempt(attempt: BuildAttempt) -> None:
    typer.echo(f"succeeded: {attempt.succeeded}")
    typer.echo(f"duration_ms: {round(attempt.duration_ms)}")
    typer.echo(f"documents: {attempt.document_count}")
    typer.echo(f"html_path: {attempt.html_path}")
    typer.echo(f"pdf_path: {attempt.pdf_path}")
    for warning in attempt.warnings:
        typer.echo(f"warning: {warning}")
    for error in attempt.errors:
        typer.echo(f"error: {error}", err=True)


@app.command("build")
def build(
    output: Path | None = typer.Option(
        None,
        "--output",
        "-o",
        help="Override the output PDF path.",
        dir_okay=False,
    ),
    verbose: bool = typer.Option(
        False,
        "--verbose",
        "-v",
        help="Pass --verbose to the PDF renderer.",
    ),
    config_file: Path | None = _config_file_option(),
) -> None:
    """Build the PDF once; exits with status 1 when the build fails."""

    config, logger = _load_and_optionally_configure_logger(config_file, configure=True)
    config = config.with_overrides(pdf_output=output, verbose=True if verbose else None)
    attempt = execute_build(config, logger=logger)
    _echo_attempt(attempt)
    if not attempt.succeeded:
        raise typer.Exit(code=1)


def _run_session_until_interrupted(session: WatchSession, logger: logging.Logger) -> None:
    try:
        session.start()
        typer.echo("Watching for changes. Press Ctrl+C to stop.")
        while not session.wait(timeout=0.5):
            pass
    except KeyboardInterrupt:
        logger.info("watch.interrupted")
    finally:
        session.stop()


@app.command("watch")
def watch(
    config_file: Path | None = _config_file_option(),
) -> None:
    """Run an initial build, then rebuild whenever watched files change."""

    config, logger = _load_and_optionally_configure_logger(config_file, configure=True)
    session = WatchSession(config, [TerminalObserver(logger)], logger=logger)
    _run_session_until_interrupted(session, logger)


@app.command("dev")
def dev(
    host: str | None = typer.Option(None, "--host", help="Host to bind the preview server to."),
    port: int | None = typer.Option(None, "--port", "-p", min=1, max=65535, help="Preview server port."),
    open_browser: bool | None = typer.Option(
        None,
        "--open/--no-open",
        help="Open the preview page in a browser.",
    ),
    config_file: Path | None = _config_file_option(),
) -> None:
    """Serve a live-reloading PDF preview while watching for changes."""

    config, logger = _load_and_optionally_configure_logger(config_file, configure=True)
    updates: dict[str, object] = {}
    if host is not None:
        updates["host"] = host
    if port is not None:
        updates["port"] = port
    if updates:
        config = replace(config, dev_server=config.dev_server.model_copy(update=updates))

    hub = LiveReloadHub(logger=logger)
    server = DevServer(config, hub, logger=logger)
    server.start()
    typer.echo(f"crown dev server running at: {server.url}")
    should_open = config.dev_server.open if open_browser is None else open_browser
    if should_open:
        webbrowser.open(server.url)

    session = WatchSession(config, [TerminalObserver(logger), LiveReloadObserver(hub)], logger=logger)
    try:
        _run_session_until_interrupted(session, logger)
    finally:
        server.stop()


@app.command("show-config")
def show_config(
    config_file: Path | None = _config_file_option(),
) -> None:
    """Print the effective configuration after env overrides."""

    config, _ = _load_and_optionally_configure_logger(config_file, configure=False)
    typer.echo(yaml.safe_dump(config.as_dict(), sort_keys=False))


@app.command("create")
def create(
    project_name: str = typer.Argument(..., help="Directory name for the new project."),
    force: bool = typer.Option(False, "--force", help="Write into an existing non-empty directory."),
) -> None:
    """Create a new crown project from the starter template."""

    target_dir = Path.cwd() / project_name
    try:
        written = create_project(target_dir, title=project_name, force=force)
    except FileExistsError as exc:
        typer.echo(f"error: {exc}", err=True)
        raise typer.Exit(code=1) from exc
    for path in written:
        typer.echo(f"created: {path.relative_to(Path.cwd())}")
    typer.echo("")
    typer.echo("Next steps:")
    typer.echo(f"  cd {project_name}")
    typer.echo("  crown dev")


def _preview(path: Path) -> None:
    if not path.exists():
        typer.echo(f"error: {path} not found. Run `crown build` first.", err=True)
        raise typer.Exit(code=1)
    typer.launch(str(path))
    typer.echo(f"opened: {path}")


@app.command("preview-html")
def preview_html(
    config_file: Path | None = _config_file_option(),
) -> None:
    """Open the generated HTML in the default browser."""

    config, _ = _load_and_optionally_configure_logger(config_file, configure=False)
    _preview(config.html_output)


@app.command("preview-pdf")
def preview_pdf(
    config_file: Path | None = _config_file_option(),
) -> None:
    """Open the generated PDF in the default viewer."""

    config, _ = _load_and_optionally_configure_logger(config_file, configure=False)
    _preview(config.pdf_output)


@app.command("check-renderer")
def check_renderer(
    config_file: Path | None = _config_file_option(),
) -> None:
    """Check that the configured PDF renderer executable runs."""

    config, _ = _load_and_optionally_configure_logger(config_file, configure=False)
    executable = config.renderer.executable_path
    if not check_renderer_available(executable):
        typer.echo(f"error: renderer not available: {executable}", err=True)
        raise typer.Exit(code=1)
    typer.echo(f"renderer available: {executable}")


def main() -> None:
    """CLI script entrypoint."""

    app()


if __name__ == "__main__":
    main()
