from __future__ import annotations

import subprocess
from pathlib import Path

import pytest

from crown.build.renderer import (
    ProcessResult,
    RendererOptions,
    build_renderer_args,
    check_renderer_available,
    parse_renderer_output,
    run_renderer,
    subprocess_runner,
)
from crown.exceptions import RendererProcessError, RendererTimeout


def test_args_follow_fixed_order() -> None:
    options = RendererOptions(
        javascript=True,
        verbose=True,
        title="Book",
        author="Ann",
        subject="Testing",
        keywords=("a", "b"),
        additional_options=("--media=print",),
    )

    args = build_renderer_args(Path("/out/book.html"), Path("/out/book.pdf"), options)

    assert args == [
        "/out/book.html",
        "-o",
        "/out/book.pdf",
        "--javascript",
        "--verbose",
        "--pdf-title",
        "Book",
        "--pdf-author",
        "Ann",
        "--pdf-subject",
        "Testing",
        "--pdf-keywords",
        "a, b",
        "--media=print",
    ]


def test_empty_metadata_is_omitted() -> None:
    args = build_renderer_args(Path("in.html"), Path("out.pdf"), RendererOptions())

    assert args == ["in.html", "-o", "out.pdf"]


def test_parse_output_skips_blank_lines_and_trims() -> None:
    warnings, errors = parse_renderer_output("  12 warning: widows  \n\n3 error: missing font\nprogress 50%\n")

    assert warnings == ["12 warning: widows"]
    assert errors == ["3 error: missing font"]


def test_line_with_both_markers_counts_as_warning() -> None:
    warnings, errors = parse_renderer_output("warning: ignored error: in css\n")

    assert warnings == ["warning: ignored error: in css"]
    assert errors == []


def test_run_renderer_prefixes_executable() -> None:
    seen: list[list[str]] = []

    def fake(command):
        seen.append(list(command))
        return ProcessResult(exit_code=0, stdout="", stderr="")

    result = run_renderer(
        Path("in.html"),
        Path("out.pdf"),
        RendererOptions(executable_path="/opt/prince/bin/prince"),
        run_process=fake,
    )

    assert result.success
    assert seen == [["/opt/prince/bin/prince", "in.html", "-o", "out.pdf"]]


def test_nonzero_exit_is_returned_not_raised() -> None:
    result = run_renderer(
        Path("in.html"),
        Path("out.pdf"),
        RendererOptions(),
        run_process=lambda command: ProcessResult(exit_code=2, stdout="", stderr="error: bad\n"),
    )

    assert not result.success
    assert result.exit_code == 2
    assert result.errors == ("error: bad",)


def test_subprocess_runner_maps_missing_executable(tmp_path: Path) -> None:
    runner = subprocess_runner(timeout_seconds=5.0)

    with pytest.raises(RendererProcessError) as excinfo:
        runner([str(tmp_path / "no-such-renderer")])

    assert not isinstance(excinfo.value, RendererTimeout)


def test_subprocess_runner_maps_timeout(monkeypatch) -> None:
    def fake_run(*args, **kwargs):
        raise subprocess.TimeoutExpired(cmd=args[0], timeout=kwargs["timeout"])

    monkeypatch.setattr(subprocess, "run", fake_run)

    with pytest.raises(RendererTimeout):
        subprocess_runner(timeout_seconds=0.5)(["prince", "book.html"])


def test_check_renderer_available() -> None:
    ok = lambda command: ProcessResult(exit_code=0, stdout="Prince 15.3\n", stderr="")  # noqa: E731

    def missing(command):
        raise RendererProcessError("Could not start renderer prince")

    assert check_renderer_available("prince", run_process=ok)
    assert not check_renderer_available("prince", run_process=missing)
