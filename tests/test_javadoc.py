"""Tests for the documentation pipeline and javadoc options."""

from __future__ import annotations

from pathlib import Path
from typing import List

import pytest

from errors import ConfigurationError, GenerationFailure, PostProcessFailure
from hooks import HookContext, HookResult
from javadoc import (
    CustomTag,
    DocOptions,
    DocPipeline,
    DocState,
    DocTask,
    PostProcessStep,
    is_excluded,
    javadoc_generator,
    write_options_file,
)
from tests._fixtures.workspace_builder import FakeJavadoc, RecordingRunner, WorkspaceBuilder


def _doc_task(workspace: WorkspaceBuilder, **sources: str) -> DocTask:
    project_dir = workspace.project("lib", sources=sources or {
        "io/jenetics/lib/Grid.java": "package io.jenetics.lib;\npublic class Grid {}\n",
    })
    task = DocTask(
        project    = "lib",
        source_dir = project_dir / "src" / "main" / "java",
        output_dir = project_dir / "build" / "docs" / "javadoc",
    )
    task.configure(DocOptions())
    return task


def _step(name: str, reaches: DocState, ran: List[str], ok: bool = True) -> PostProcessStep:
    def _hook(ctx: HookContext) -> HookResult:
        ran.append(name)
        return HookResult(ok, "" if ok else f"{name} broke")
    return PostProcessStep(name, _hook, reaches)


# ── options ───────────────────────────────────────────────────────────────────

def test_default_arguments() -> None:
    args = DocOptions().arguments()

    assert args[:7] == ["-protected", "-encoding", "UTF-8", "-docencoding", "UTF-8", "-charset", "UTF-8"]
    assert "-version" in args
    assert args.count("-tag") == 3
    assert "apiNote:a:API Note:" in args
    assert "implSpec:a:Implementation Requirements:" in args
    assert "implNote:a:Implementation Note:" in args


def test_optional_arguments(tmp_path: Path) -> None:
    options = DocOptions(
        member_level  = "public",
        links_offline = {"https://docs.example/api/": tmp_path / "java.se"},
        groups        = {"Core": ["io.jenetics.lib", "io.jenetics.lib.grid"]},
        tags          = [CustomTag("todo", "a", "To do:")],
        window_title  = "lib 1.0",
        stylesheet    = tmp_path / "style.css",
        version       = False,
    )

    args = options.arguments()

    assert args[0] == "-public"
    assert "-version" not in args
    assert ["-windowtitle", "lib 1.0"] == args[args.index("-windowtitle"):args.index("-windowtitle") + 2]
    assert ["-linkoffline", "https://docs.example/api/", str(tmp_path / "java.se")] == \
        args[args.index("-linkoffline"):args.index("-linkoffline") + 3]
    assert ["-group", "Core", "io.jenetics.lib:io.jenetics.lib.grid"] == \
        args[args.index("-group"):args.index("-group") + 3]
    assert ["--main-stylesheet", str(tmp_path / "style.css")] == \
        args[args.index("--main-stylesheet"):args.index("--main-stylesheet") + 2]


def test_unknown_member_level_is_rejected() -> None:
    with pytest.raises(ConfigurationError, match="member level"):
        DocOptions(member_level="friends")


@pytest.mark.parametrize(
    ("path", "excluded"),
    [
        ("io/jenetics/lib/internal/Util.java", True),
        ("io/jenetics/lib/internal/deep/Helper.java", True),
        ("internal/Top.java", True),
        ("io/jenetics/lib/Grid.java", False),
        ("io/jenetics/lib/internalized/Grid.java", False),
    ],
)
def test_internal_packages_are_excluded(path: str, excluded: bool) -> None:
    assert is_excluded(path, ["**/internal/**"]) is excluded


def test_anchored_patterns() -> None:
    assert is_excluded("io/x/Gen.java", ["io/x/*.java"])
    assert not is_excluded("other/io/x/Gen.java", ["io/x/*.java"])


# ── task ──────────────────────────────────────────────────────────────────────

def test_post_process_steps_are_deduplicated_by_name(workspace: WorkspaceBuilder) -> None:
    task = _doc_task(workspace)
    ran: List[str] = []
    task.add_post_process(_step("colorizer", DocState.COLORIZED, ran))
    task.add_post_process(_step("java2html", DocState.SOURCE_RENDERED, ran))
    task.add_post_process(_step("colorizer", DocState.COLORIZED, ran))

    assert task.stages() == ["javadoc", "colorizer", "java2html"]


def test_source_files_skip_excluded_packages(workspace: WorkspaceBuilder) -> None:
    task = _doc_task(
        workspace,
        **{
            "io/lib/Grid.java": "package io.lib;\nclass Grid {}\n",
            "io/lib/internal/Util.java": "package io.lib.internal;\nclass Util {}\n",
        },
    )

    assert [p.name for p in task.source_files()] == ["Grid.java"]


def test_configure_after_generation_is_rejected(workspace: WorkspaceBuilder) -> None:
    task = _doc_task(workspace)
    DocPipeline(FakeJavadoc()).run(task)

    with pytest.raises(ConfigurationError):
        task.configure(DocOptions(member_level="public"))


def test_reconfigure_with_same_options_after_generation_is_a_noop(workspace: WorkspaceBuilder) -> None:
    task = _doc_task(workspace)
    DocPipeline(FakeJavadoc()).run(task)

    task.configure(DocOptions())

    assert task.state is DocState.GENERATED


def test_options_file_lists_options_and_sources(workspace: WorkspaceBuilder) -> None:
    task = _doc_task(workspace)

    path = write_options_file(task)

    lines = path.read_text(encoding="utf-8").splitlines()
    assert path == task.output_dir.parent.parent / "tmp" / "javadoc" / "javadoc.options"
    assert lines[0] == "'-protected'"
    assert f"'{task.output_dir}'" in lines
    assert lines[-1].endswith("Grid.java'")


def test_javadoc_generator_runs_the_tool_with_an_argfile(workspace: WorkspaceBuilder) -> None:
    task = _doc_task(workspace)
    runner = RecordingRunner()

    assert javadoc_generator(runner)(task)

    cmd = runner.calls[0]
    assert Path(cmd[0]).name == "javadoc"
    assert cmd[1] == f"@{task.options_file}"


def test_javadoc_generator_without_sources_fails(workspace: WorkspaceBuilder) -> None:
    project_dir = workspace.project("empty")
    task = DocTask("empty", project_dir / "src" / "main" / "java", project_dir / "build" / "docs" / "javadoc")
    task.configure(DocOptions())
    runner = RecordingRunner()

    assert not javadoc_generator(runner)(task)
    assert runner.calls == []


# ── pipeline ──────────────────────────────────────────────────────────────────

def test_pipeline_runs_steps_in_order(workspace: WorkspaceBuilder) -> None:
    task = _doc_task(workspace)
    ran: List[str] = []
    task.add_post_process(_step("colorizer", DocState.COLORIZED, ran))
    task.add_post_process(_step("java2html", DocState.SOURCE_RENDERED, ran))

    state = DocPipeline(FakeJavadoc()).run(task)

    assert ran == ["colorizer", "java2html"]
    assert state is DocState.SOURCE_RENDERED
    assert task.state is DocState.SOURCE_RENDERED
    assert (task.output_dir / "index.html").is_file()


def test_generation_failure_runs_no_steps(workspace: WorkspaceBuilder) -> None:
    task = _doc_task(workspace)
    ran: List[str] = []
    task.add_post_process(_step("colorizer", DocState.COLORIZED, ran))

    with pytest.raises(GenerationFailure):
        DocPipeline(FakeJavadoc(fail_for=["lib"])).run(task)

    assert ran == []
    assert task.state is DocState.FAILED


def test_failed_step_stops_the_chain(workspace: WorkspaceBuilder) -> None:
    task = _doc_task(workspace)
    ran: List[str] = []
    task.add_post_process(_step("colorizer", DocState.COLORIZED, ran, ok=False))
    task.add_post_process(_step("java2html", DocState.SOURCE_RENDERED, ran))

    with pytest.raises(PostProcessFailure) as excinfo:
        DocPipeline(FakeJavadoc()).run(task)

    assert excinfo.value.step == "colorizer"
    assert ran == ["colorizer"]
    assert task.state is DocState.FAILED


def test_unconfigured_task_cannot_run(workspace: WorkspaceBuilder) -> None:
    project_dir = workspace.project("lib")
    task = DocTask("lib", project_dir / "src" / "main" / "java", project_dir / "build" / "docs")

    with pytest.raises(ConfigurationError, match="not configured"):
        DocPipeline(FakeJavadoc()).run(task)


def test_stale_output_is_removed_before_generation(workspace: WorkspaceBuilder) -> None:
    task = _doc_task(workspace)
    stale = task.output_dir / "old" / "Gone.html"
    stale.parent.mkdir(parents=True)
    stale.write_text("stale", encoding="utf-8")

    DocPipeline(FakeJavadoc()).run(task)

    assert not stale.exists()
