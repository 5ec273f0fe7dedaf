"""
Javadoc colorizer – post-processing step over a generated javadoc tree.

For every ``*.html`` page below the output directory (``src-html/`` is
left alone):

* ``<pre>`` code blocks are re-tokenized with pygments' Java lexer and
  wrapped in ``<span>`` elements carrying the standard pygments classes;
  markup javadoc already put inside the block (``{@link}`` targets, offline
  JDK links) stays where it was
* other identifiers naming a class that has exactly one page in the tree
  are turned into links to that page
* class pages get a "Source" link into ``src-html/<module>/…``
* a ``<link>`` to the shared ``colorizer.css`` is added to ``<head>``

A processed page carries a marker in its head and is skipped next time, so
running the step twice leaves the tree byte-identical.
"""
from __future__ import annotations

import html
import os
import re
from pathlib import Path
from typing import Dict, List, Sequence, Tuple

from pygments.formatters import HtmlFormatter
from pygments.lexers import JavaLexer
from pygments.token import STANDARD_TYPES, Token

import logger as log
from fs import atomic_write
from hooks import HookContext, HookResult
from java2html import SOURCE_DIR, source_module

STYLESHEET  = "colorizer.css"
CODE_CLASS  = "colorized"
MARKER      = "data-colorizer"

_PRE_RE    = re.compile(r"<pre(?P<attrs>[^>]*)>(?P<body>.*?)</pre>", re.S | re.I)
_TAG_RE    = re.compile(r"<[^>]+>")
_HEAD_RE   = re.compile(r"</head>", re.I)
_BODY_RE   = re.compile(r"<body[^>]*>", re.I)
_CLASS_RE  = re.compile(r"^[A-Z][A-Za-z0-9_$]*(\.[A-Z][A-Za-z0-9_$]*)*\.html$")

# Directories that never hold class pages
_SKIP_DIRS = {SOURCE_DIR, "class-use", "doc-files", "resources", "script-dir", "legal"}


def colorize(ctx: HookContext) -> HookResult:
    """Hook entry point; rewrites the javadoc tree at ``ctx.output_dir``."""
    root = ctx.output_dir
    if not root.is_dir():
        return HookResult(False, f"javadoc output missing: {root}")

    module = source_module(ctx) if ctx.module_name else None
    pages  = list(_html_pages(root))
    index  = _class_index(root, pages)

    atomic_write(root / STYLESHEET, stylesheet().encode("utf-8"))

    changed = 0
    for page in pages:
        text = page.read_text(encoding="utf-8")
        if MARKER in text:
            continue
        rewritten = colorize_page(text, page, root, index, module)
        if rewritten != text:
            atomic_write(page, rewritten.encode("utf-8"))
            changed += 1

    log.info(f"[{ctx.project_name}] colorizer: {changed} of {len(pages)} page(s) rewritten")
    return HookResult(True, f"colorized {changed} page(s)")


def stylesheet() -> str:
    return HtmlFormatter(style="default").get_style_defs(f".{CODE_CLASS}") + "\n"


def colorize_page(
    text: str,
    page: Path,
    root: Path,
    index: Dict[str, List[Path]],
    module: str | None = None,
) -> str:
    """Return *text* with code blocks colored and the stylesheet linked."""
    page_dir = page.parent

    def _pre(match: re.Match) -> str:
        code, tags = split_markup(match.group("body"))
        return (
            f"<pre{match.group('attrs')}><code class=\"{CODE_CLASS}\">"
            f"{highlight(code, index, page_dir, tags)}</code></pre>"
        )

    text = _PRE_RE.sub(_pre, text)

    css = _href(page_dir, root / STYLESHEET)
    text, found = _HEAD_RE.subn(
        f'<link rel="stylesheet" type="text/css" href="{css}" {MARKER}>\n</head>',
        text,
        count=1,
    )
    if not found:
        return text

    if module is not None and _is_class_page(page, root):
        target = _source_page(page, root, module)
        link = (
            f'\n<div class="source-link"><a href="{_href(page_dir, target)}">'
            f"Source</a></div>"
        )
        text = _BODY_RE.sub(lambda m: m.group(0) + link, text, count=1)
    return text


def highlight(
    code: str,
    index: Dict[str, List[Path]],
    page_dir: Path,
    tags: Sequence[Tuple[int, str]] = (),
) -> str:
    """
    Tokenize *code* as Java and render it as classed ``<span>`` markup.

    *tags* are ``(offset, markup)`` pairs from the original block; each is
    emitted unchanged at its offset, splitting a token if it has to.  Names
    inside an existing ``<a>`` keep that link and are not linked again.
    """
    tokens = list(JavaLexer(stripnl=False).get_tokens(code))
    # the lexer always appends a newline the block did not have
    if tokens and not code.endswith("\n") and tokens[-1][1].endswith("\n"):
        ttype, value = tokens[-1]
        tokens[-1] = (ttype, value[:-1])

    out: List[str] = []
    pending = 0
    anchors = 0
    offset  = 0
    for ttype, value in tokens:
        end   = offset + len(value)
        start = offset
        while True:
            while pending < len(tags) and tags[pending][0] <= start:
                markup = tags[pending][1]
                out.append(markup)
                anchors += _anchor_depth(markup)
                pending += 1
            stop = tags[pending][0] if pending < len(tags) and tags[pending][0] < end else end
            piece = value[start - offset:stop - offset]
            if piece:
                linkable = anchors == 0 and len(piece) == len(value)
                out.append(_span(ttype, piece, index, page_dir, linkable))
            start = stop
            if start >= end:
                break
        offset = end
    out.extend(markup for _, markup in tags[pending:])
    return "".join(out)


def split_markup(body: str) -> Tuple[str, List[Tuple[int, str]]]:
    """Plain code of a ``<pre>`` body plus its tags, keyed by offset into that code."""
    chunks: List[str] = []
    tags: List[Tuple[int, str]] = []
    length = 0
    last = 0
    for match in _TAG_RE.finditer(body):
        chunk = html.unescape(body[last:match.start()])
        chunks.append(chunk)
        length += len(chunk)
        tags.append((length, match.group(0)))
        last = match.end()
    chunks.append(html.unescape(body[last:]))
    return "".join(chunks), tags


# ── helpers ───────────────────────────────────────────────────────────────────

def _html_pages(root: Path):
    for page in sorted(root.rglob("*.html")):
        rel = page.relative_to(root)
        if any(part in _SKIP_DIRS for part in rel.parts[:-1]):
            continue
        yield page


def _is_class_page(page: Path, root: Path) -> bool:
    rel = page.relative_to(root)
    return len(rel.parts) > 1 and bool(_CLASS_RE.match(page.name))


def _class_index(root: Path, pages: List[Path]) -> Dict[str, List[Path]]:
    """Simple class name → pages documenting a class of that name."""
    index: Dict[str, List[Path]] = {}
    for page in pages:
        if _is_class_page(page, root):
            simple = page.stem.rsplit(".", 1)[-1]
            index.setdefault(simple, []).append(page)
    return index


def _source_page(page: Path, root: Path, module: str) -> Path:
    rel = page.relative_to(root)
    top_level = page.name.split(".", 1)[0] + ".html"
    return root / SOURCE_DIR / module / rel.parent / top_level


def _href(page_dir: Path, target: Path) -> str:
    return Path(os.path.relpath(target, page_dir)).as_posix()


def _css_class(ttype) -> str:
    while ttype not in STANDARD_TYPES:
        ttype = ttype.parent
    return STANDARD_TYPES[ttype]


def _anchor_depth(markup: str) -> int:
    lowered = markup.lower()
    if lowered.startswith("</a"):
        return -1
    if lowered.startswith("<a ") or lowered == "<a>":
        return 1
    return 0


def _span(ttype, value: str, index: Dict[str, List[Path]], page_dir: Path, linkable: bool) -> str:
    escaped = html.escape(value, quote=False)
    targets = index.get(value, ())
    if linkable and ttype in Token.Name and len(targets) == 1:
        escaped = f'<a href="{_href(page_dir, targets[0])}">{escaped}</a>'
    css = _css_class(ttype)
    return f'<span class="{css}">{escaped}</span>' if css else escaped
