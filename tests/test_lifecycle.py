"""Tests for the configuration barrier and hook chains."""

from __future__ import annotations

from itertools import permutations
from pathlib import Path
from typing import List

import pytest

from errors import LifecycleError
from hooks import BuildLifecycle, HookContext, HookResult, Phase, run_hooks
from registry import Project, ProjectRegistry


def _declare(lifecycle: BuildLifecycle, tmp_path: Path, name: str, *plugins: str) -> Project:
    project = lifecycle.declare(Project(name, tmp_path / name))
    for plugin in plugins:
        project.apply_plugin(plugin)
    return project


@pytest.mark.parametrize("order", list(permutations(["a", "b", "c"])))
def test_callbacks_see_final_declarations_in_any_order(tmp_path: Path, order) -> None:
    lifecycle = BuildLifecycle(ProjectRegistry())
    seen: List[tuple] = []
    lifecycle.on_all_projects_ready(
        lambda registry: seen.extend(sorted((p.name, p.publishes) for p in registry.all()))
    )

    projects = {name: _declare(lifecycle, tmp_path, name, "java-library") for name in order}
    # the last declared project applies a plugin late
    projects[order[-1]].apply_plugin("maven-publish")
    lifecycle.projects_evaluated()

    expected = sorted((name, name == order[-1]) for name in order)
    assert seen == expected


def test_barrier_fires_once(tmp_path: Path) -> None:
    lifecycle = BuildLifecycle(ProjectRegistry())
    calls: List[int] = []
    lifecycle.on_all_projects_ready(lambda registry: calls.append(len(registry)))
    _declare(lifecycle, tmp_path, "a")

    lifecycle.projects_evaluated()
    lifecycle.projects_evaluated()

    assert calls == [1]
    assert lifecycle.phase is Phase.EXECUTION


def test_callbacks_run_in_queue_order(tmp_path: Path) -> None:
    lifecycle = BuildLifecycle(ProjectRegistry())
    order: List[str] = []
    lifecycle.on_all_projects_ready(lambda registry: order.append("first"))
    lifecycle.on_all_projects_ready(lambda registry: order.append("second"))

    lifecycle.projects_evaluated()

    assert order == ["first", "second"]


def test_declarations_after_the_barrier_are_rejected(tmp_path: Path) -> None:
    lifecycle = BuildLifecycle(ProjectRegistry())
    project = _declare(lifecycle, tmp_path, "a", "java-library")
    lifecycle.projects_evaluated()

    with pytest.raises(LifecycleError):
        _declare(lifecycle, tmp_path, "b")
    with pytest.raises(LifecycleError):
        project.apply_plugin("jacoco")
    with pytest.raises(LifecycleError):
        lifecycle.on_all_projects_ready(lambda registry: None)
    assert project.frozen


def test_callback_error_propagates(tmp_path: Path) -> None:
    lifecycle = BuildLifecycle(ProjectRegistry())

    def _boom(registry: ProjectRegistry) -> None:
        raise RuntimeError("setup broke")

    lifecycle.on_all_projects_ready(_boom)

    with pytest.raises(RuntimeError, match="setup broke"):
        lifecycle.projects_evaluated()


def _ctx(tmp_path: Path) -> HookContext:
    return HookContext(project_name="lib", output_dir=tmp_path)


def test_run_hooks_stops_at_first_failure(tmp_path: Path) -> None:
    ran: List[str] = []

    def first(ctx: HookContext) -> HookResult:
        ran.append("first")
        return HookResult(False, "nope")

    def second(ctx: HookContext) -> HookResult:
        ran.append("second")
        return HookResult()

    ok, failed, message = run_hooks("post-process", [first, second], _ctx(tmp_path))

    assert (ok, failed, message) == (False, "first", "nope")
    assert ran == ["first"]


def test_run_hooks_turns_exceptions_into_failures(tmp_path: Path) -> None:
    def broken(ctx: HookContext) -> HookResult:
        raise OSError("disk full")

    ok, failed, message = run_hooks("post-process", [broken], _ctx(tmp_path))

    assert not ok
    assert failed == "broken"
    assert message == "disk full"


def test_run_hooks_success(tmp_path: Path) -> None:
    ok, failed, message = run_hooks("post-process", [lambda ctx: HookResult(True, "done")], _ctx(tmp_path))

    assert ok
    assert failed is None
    assert message == ""
