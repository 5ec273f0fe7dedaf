"""Tests for the javadoc colorizer post-processing step."""

from __future__ import annotations

from pathlib import Path
from typing import Dict, Optional

from colorizer import MARKER, STYLESHEET, colorize, colorize_page
from hooks import HookContext
from javadoc import DocOptions, DocTask
from tests._fixtures.workspace_builder import FakeJavadoc, WorkspaceBuilder

SOURCES = {
    "io/jenetics/lib/Structure.java": """
        package io.jenetics.lib;

        public interface Structure {}
    """,
    "io/jenetics/lib/Grid.java": """
        package io.jenetics.lib;

        public class Grid implements Structure {}
    """,
}


def _generate(workspace: WorkspaceBuilder, module_name: Optional[str] = "io.jenetics.lib") -> HookContext:
    project_dir = workspace.project("lib", module_name=module_name, sources=SOURCES)
    task = DocTask(
        project     = "lib",
        source_dir  = project_dir / "src" / "main" / "java",
        output_dir  = project_dir / "build" / "docs" / "javadoc",
        module_name = module_name,
    )
    task.configure(DocOptions())
    FakeJavadoc()(task)
    return HookContext(
        project_name = "lib",
        output_dir   = task.output_dir,
        source_dir   = task.source_dir,
        module_name  = module_name,
    )


def _tree(root: Path) -> Dict[str, bytes]:
    return {p.relative_to(root).as_posix(): p.read_bytes() for p in sorted(root.rglob("*")) if p.is_file()}


def test_colorize_highlights_code_and_links_stylesheet(workspace: WorkspaceBuilder) -> None:
    ctx = _generate(workspace)

    result = colorize(ctx)

    page = (ctx.output_dir / "io" / "jenetics" / "lib" / "Grid.html").read_text(encoding="utf-8")
    assert result.success
    assert (ctx.output_dir / STYLESHEET).is_file()
    assert f'href="../../../{STYLESHEET}" {MARKER}>' in page
    assert '<code class="colorized">' in page
    assert '<span class="kd">public</span>' in page


def test_colorize_links_known_classes(workspace: WorkspaceBuilder) -> None:
    ctx = _generate(workspace)

    colorize(ctx)

    page = (ctx.output_dir / "io" / "jenetics" / "lib" / "Grid.html").read_text(encoding="utf-8")
    assert '<a href="Structure.html">Structure</a>' in page


def test_class_pages_link_to_rendered_source(workspace: WorkspaceBuilder) -> None:
    ctx = _generate(workspace)

    colorize(ctx)

    page = (ctx.output_dir / "io" / "jenetics" / "lib" / "Grid.html").read_text(encoding="utf-8")
    index = (ctx.output_dir / "index.html").read_text(encoding="utf-8")
    assert '<a href="../../../src-html/io.jenetics.lib/io/jenetics/lib/Grid.html">Source</a>' in page
    assert "source-link" not in index


def test_no_source_links_without_module_name(workspace: WorkspaceBuilder) -> None:
    ctx = _generate(workspace, module_name=None)

    colorize(ctx)

    page = (ctx.output_dir / "io" / "jenetics" / "lib" / "Grid.html").read_text(encoding="utf-8")
    assert MARKER in page
    assert "source-link" not in page


def test_second_run_leaves_tree_unchanged(workspace: WorkspaceBuilder) -> None:
    ctx = _generate(workspace)
    colorize(ctx)
    first = _tree(ctx.output_dir)

    colorize(ctx)

    assert _tree(ctx.output_dir) == first


def test_rendered_sources_are_not_touched(workspace: WorkspaceBuilder) -> None:
    ctx = _generate(workspace)
    rendered = ctx.output_dir / "src-html" / "io.jenetics.lib" / "Grid.html"
    rendered.parent.mkdir(parents=True)
    rendered.write_text("<html><head></head><body><pre>int x;</pre></body></html>", encoding="utf-8")
    before = rendered.read_bytes()

    colorize(ctx)

    assert rendered.read_bytes() == before


def test_missing_output_fails(tmp_path: Path) -> None:
    result = colorize(HookContext(project_name="lib", output_dir=tmp_path / "missing"))

    assert not result.success
    assert "missing" in result.message


def test_entities_in_code_blocks_survive(tmp_path: Path) -> None:
    text = "<html><head></head><body><pre>List&lt;Grid&gt; grids;</pre></body></html>"

    out = colorize_page(text, tmp_path / "index.html", tmp_path, {}, None)

    assert "&lt;" in out
    assert "&gt;" in out
    assert "<Grid>" not in out


def test_existing_links_in_code_blocks_are_kept(tmp_path: Path) -> None:
    href = "https://docs.oracle.com/en/java/javase/17/docs/api/java.base/java/lang/String.html"
    text = f'<html><head></head><body><pre>return <a href="{href}">String</a>.valueOf(x);</pre></body></html>'
    index = {"String": [tmp_path / "io" / "lib" / "String.html"]}

    out = colorize_page(text, tmp_path / "index.html", tmp_path, index, None)

    assert f'<a href="{href}">' in out
    assert "String</span></a>" in out
    assert out.count("<a ") == 1


def test_markup_inside_a_token_is_kept_in_place(tmp_path: Path) -> None:
    text = "<html><head></head><body><pre>in<b>t</b> x;</pre></body></html>"

    out = colorize_page(text, tmp_path / "index.html", tmp_path, {}, None)

    code = out[out.index('<code class="colorized">'):out.index("</code>")]
    assert code.index("in</span>") < code.index("<b>") < code.index("t</span>") < code.index("</b>")


def test_no_trailing_newline_is_added_to_code_blocks(tmp_path: Path) -> None:
    text = "<html><head></head><body><pre>int x;</pre></body></html>"

    out = colorize_page(text, tmp_path / "index.html", tmp_path, {}, None)

    assert "\n</span></code>" not in out
    assert ";</span></code></pre>" in out
