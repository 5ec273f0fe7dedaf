"""
Source renderer: ``src/main/java/**/*.java`` → ``src-html/<module>/…/<Class>.html``.

Every page carries line anchors (``#line-<n>``) so the javadoc colorizer and
readers can point at a line.  A single ``stylesheet.css`` is written at the
module root and linked from every page.
"""
from __future__ import annotations

import html
import os
from pathlib import Path

from pygments import highlight
from pygments.formatters import HtmlFormatter
from pygments.lexers import JavaLexer

import logger as log
from fs import atomic_write
from hooks import HookContext, HookResult
from javadoc import is_excluded

SOURCE_DIR = "src-html"
STYLESHEET = "stylesheet.css"
CSS_CLASS  = "source"

_PAGE = """<!DOCTYPE html>
<html lang="en">
<head>
<meta charset="UTF-8">
<title>{title}</title>
<link rel="stylesheet" type="text/css" href="{css}">
</head>
<body>
{body}
</body>
</html>
"""


def source_module(ctx: HookContext) -> str:
    """Directory name below ``src-html/``; the project name stands in for a missing module."""
    return ctx.module_name or ctx.project_name


def _formatter() -> HtmlFormatter:
    return HtmlFormatter(
        cssclass      = CSS_CLASS,
        linenos       = "inline",
        lineanchors   = "line",
        anchorlinenos = True,
    )


def render_sources(ctx: HookContext) -> HookResult:
    """Hook entry point; renders every non-excluded java source of the project."""
    if ctx.source_dir is None or not ctx.source_dir.is_dir():
        return HookResult(True, "no sources to render")

    excludes  = ctx.extra.get("excludes", [])
    target    = ctx.output_dir / SOURCE_DIR / source_module(ctx)
    formatter = _formatter()
    lexer     = JavaLexer()

    rendered = 0
    for source in sorted(ctx.source_dir.rglob("*.java")):
        rel = source.relative_to(ctx.source_dir)
        if is_excluded(rel.as_posix(), excludes):
            continue
        page = target / rel.with_suffix(".html")
        css  = Path(os.path.relpath(target / STYLESHEET, page.parent)).as_posix()
        body = highlight(source.read_text(encoding="utf-8"), lexer, formatter)
        text = _PAGE.format(title=html.escape(rel.stem), css=css, body=body)
        atomic_write(page, text.encode("utf-8"))
        rendered += 1

    atomic_write(target / STYLESHEET, (formatter.get_style_defs() + "\n").encode("utf-8"))
    log.info(f"[{ctx.project_name}] java2html: {rendered} source page(s) → {target}")
    return HookResult(True, f"rendered {rendered} source page(s)")
