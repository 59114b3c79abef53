"""Scaffold a new crown project."""

from __future__ import annotations

import json
from pathlib import Path

from crown.utils.paths import ensure_directories, write_marker_file

CONFIG_TEMPLATE = """# crown project configuration
input:
  content: src/content/**/*.md
  template: src/templates/layout.html
  styles: src/styles.css

output:
  html: dist/book.html
  pdf: dist/book.pdf

metadata:
  title: {title}
  author: Your Name
  subject: A book created with crown
  keywords: [book, crown, pdf]
  lang: en

page:
  size: 5.5in 8.5in
  margins:
    top: 0.75in
    bottom: 0.75in
    inside: 0.75in
    outside: 0.5in

renderer:
  javascript: true
  verbose: false

dev_server:
  port: 3000
  open: true
"""

INTRODUCTION_MD = """---
title: Introduction
order: 1
---

# Introduction

Welcome to your new book. Edit the files under `src/content/` and run
`crown watch` to rebuild the PDF whenever something changes.
"""

LAYOUT_HTML = """<!doctype html>
<html lang="{{ metadata.lang }}">
<head>
  <meta charset="utf-8">
  <title>{{ metadata.title }}</title>
  <link rel="stylesheet" href="styles.css">
</head>
<body>
  <section class="title-page">
    <h1>{{ metadata.title }}</h1>
    <p class="author">{{ metadata.author }}</p>
  </section>
{% for chapter in chapters %}
{% include "chapter.html" %}
{% endfor %}
</body>
</html>
"""

CHAPTER_PARTIAL_HTML = """<article class="chapter" id="{{ chapter.metadata.get('id', chapter.path) }}">
  {{ chapter.html }}
</article>
"""

STYLES_CSS = """@page {
  size: 5.5in 8.5in;
  margin: 0.75in 0.5in;
}

body {
  font-family: Georgia, serif;
  line-height: 1.5;
}

.title-page {
  page: title;
  text-align: center;
  break-after: page;
}

.chapter {
  break-before: page;
}
"""


def create_project(target_dir: Path, *, title: str | None = None, force: bool = False) -> list[Path]:
    """Write a starter project into target_dir and return the files written."""

    if target_dir.exists() and any(target_dir.iterdir()) and not force:
        raise FileExistsError(f"Directory already exists and is not empty: {target_dir}")

    ensure_directories(
        [
            target_dir / "src" / "content",
            target_dir / "src" / "templates" / "partials",
        ]
    )
    book_title = title or target_dir.name
    return [
        write_marker_file(target_dir / "crown.yaml", CONFIG_TEMPLATE.format(title=json.dumps(book_title))),
        write_marker_file(target_dir / "src" / "content" / "01-introduction.md", INTRODUCTION_MD),
        write_marker_file(target_dir / "src" / "templates" / "layout.html", LAYOUT_HTML),
        write_marker_file(target_dir / "src" / "templates" / "partials" / "chapter.html", CHAPTER_PARTIAL_HTML),
        write_marker_file(target_dir / "src" / "styles.css", STYLES_CSS),
    ]
