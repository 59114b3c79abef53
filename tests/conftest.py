from __future__ import annotations

import sys
from pathlib import Path

ROOT = Path(__file__).resolve().parents[1]
SRC = ROOT / "src"
if str(SRC) not in sys.path:
    sys.path.insert(0, str(SRC))


import pytest

from crown.build.renderer import ProcessResult
from crown.config import ResolvedConfig, load_config

CONFIG_YAML = """input:
  content: src/content/**/*.md
  template: src/templates/layout.html
  styles: src/styles.css
output:
  html: dist/book.html
  pdf: dist/book.pdf
metadata:
  title: Test Book
  author: Test Author
  keywords: [alpha, beta]
logging:
  file: null
"""

LAYOUT_HTML = """<html><body>
<h1>{{ metadata.title }}</h1>
{% for chapter in chapters %}
{% include "chapter.html" %}
{% endfor %}
</body></html>
"""

CHAPTER_HTML = """<section data-path="{{ chapter.path }}">{{ chapter.html }}</section>
"""


def _write(path: Path, content: str) -> Path:
    path.parent.mkdir(parents=True, exist_ok=True)
    path.write_text(content, encoding="utf-8")
    return path


@pytest.fixture
def write_file():
    return _write


@pytest.fixture
def project_dir(tmp_path: Path) -> Path:
    root = tmp_path / "book"
    _write(root / "crown.yaml", CONFIG_YAML)
    _write(root / "src" / "templates" / "layout.html", LAYOUT_HTML)
    _write(root / "src" / "templates" / "partials" / "chapter.html", CHAPTER_HTML)
    _write(root / "src" / "styles.css", "body { color: black; }\n")
    _write(root / "src" / "content" / "a.md", "---\ntitle: Appendix\n---\n\nAppendix text.\n")
    _write(root / "src" / "content" / "b.md", "---\ntitle: Second\norder: 2\n---\n\n# Second\n")
    _write(root / "src" / "content" / "c.md", "---\ntitle: First\norder: 1\n---\n\n# First\n")
    return root


@pytest.fixture
def project_config(project_dir: Path) -> ResolvedConfig:
    return load_config(config_file=project_dir / "crown.yaml")


class FakeRunProcess:
    """Records renderer invocations and writes the PDF like the real renderer would."""

    def __init__(self, exit_code: int = 0, stdout: str = "", stderr: str = "") -> None:
        self.exit_code = exit_code
        self.stdout = stdout
        self.stderr = stderr
        self.calls: list[list[str]] = []

    def __call__(self, command):
        self.calls.append(list(command))
        if self.exit_code == 0:
            pdf_path = Path(command[command.index("-o") + 1])
            pdf_path.parent.mkdir(parents=True, exist_ok=True)
            pdf_path.write_bytes(b"%PDF-1.7\n")
        return ProcessResult(exit_code=self.exit_code, stdout=self.stdout, stderr=self.stderr)


@pytest.fixture
def fake_run_process() -> FakeRunProcess:
    return FakeRunProcess()
