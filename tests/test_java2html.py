"""Tests for the source renderer."""

from __future__ import annotations

from pathlib import Path

from hooks import HookContext
from java2html import SOURCE_DIR, STYLESHEET, render_sources, source_module
from tests._fixtures.workspace_builder import WorkspaceBuilder

SOURCES = {
    "io/jenetics/lib/Grid.java": """
        package io.jenetics.lib;

        public class Grid {
            int size;
        }
    """,
    "io/jenetics/lib/internal/Util.java": """
        package io.jenetics.lib.internal;

        final class Util {}
    """,
}


def _ctx(workspace: WorkspaceBuilder, module_name=None) -> HookContext:
    project_dir = workspace.project("lib", sources=SOURCES)
    return HookContext(
        project_name = "lib",
        output_dir   = project_dir / "build" / "docs" / "javadoc",
        source_dir   = project_dir / "src" / "main" / "java",
        module_name  = module_name,
        extra        = {"excludes": ["**/internal/**"]},
    )


def test_renders_pages_with_line_anchors(workspace: WorkspaceBuilder) -> None:
    ctx = _ctx(workspace, "io.jenetics.lib")

    result = render_sources(ctx)

    root = ctx.output_dir / SOURCE_DIR / "io.jenetics.lib"
    page = (root / "io" / "jenetics" / "lib" / "Grid.html").read_text(encoding="utf-8")
    assert result.success
    assert result.message == "rendered 1 source page(s)"
    assert 'id="line-1"' in page
    assert 'id="line-4"' in page
    assert "<title>Grid</title>" in page
    assert f'href="../../../{STYLESHEET}"' in page
    assert (root / STYLESHEET).is_file()


def test_excluded_sources_are_not_rendered(workspace: WorkspaceBuilder) -> None:
    ctx = _ctx(workspace, "io.jenetics.lib")

    render_sources(ctx)

    root = ctx.output_dir / SOURCE_DIR / "io.jenetics.lib"
    assert not (root / "io" / "jenetics" / "lib" / "internal").exists()


def test_project_name_stands_in_for_missing_module(workspace: WorkspaceBuilder) -> None:
    ctx = _ctx(workspace)

    render_sources(ctx)

    assert source_module(ctx) == "lib"
    assert (ctx.output_dir / SOURCE_DIR / "lib" / "io" / "jenetics" / "lib" / "Grid.html").is_file()


def test_missing_sources_succeed_without_output(tmp_path: Path) -> None:
    ctx = HookContext(project_name="lib", output_dir=tmp_path / "out", source_dir=tmp_path / "nope")

    result = render_sources(ctx)

    assert result.success
    assert not (tmp_path / "out").exists()
