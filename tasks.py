"""
Per-project task graph.

Each project owns a ``TaskGraph`` of named tasks linked by two kinds of
edge:

  depends_on    – the task runs only after (and only if) these succeeded
  finalized_by  – these run right after the task whenever it is scheduled

Execution is strictly sequential inside one graph.  A task whose
dependency did not succeed is SKIPPED, never started, so a failed
``test`` leaves ``jacocoTestReport`` untouched and a failed ``javadoc``
leaves nothing behind it in the chain.
"""
from __future__ import annotations

import shutil
import time
from dataclasses import dataclass, field
from enum import Enum
from pathlib import Path
from typing import Any, Callable, Dict, Iterator, List, Optional, TYPE_CHECKING

import logger as log
from errors import ConfigurationError, PostProcessFailure, TaskFailure

if TYPE_CHECKING:
    from manifest import ManifestAttributes

Action = Callable[["Task"], None]


class TaskState(str, Enum):
    SUCCESS = "success"
    FAILED  = "failed"
    SKIPPED = "skipped"


@dataclass
class Task:
    """
    One named unit of work inside a project.

    ``options`` carries tool settings (compiler arguments, report formats,
    archive contents); ``attributes`` is the manifest stamped into the
    archive when the task produces a jar.
    """
    name:         str
    project:      str
    kind:         str                    = "generic"
    description:  str                    = ""
    depends_on:   List[str]              = field(default_factory=list)
    finalized_by: List[str]              = field(default_factory=list)
    actions:      List[Action]           = field(default_factory=list)
    options:      Dict[str, Any]         = field(default_factory=dict)
    clean_before: List[Path]             = field(default_factory=list)
    attributes:   Optional["ManifestAttributes"] = None

    def depends(self, *names: str) -> "Task":
        for name in names:
            if name not in self.depends_on:
                self.depends_on.append(name)
        return self

    def finalize_with(self, *names: str) -> "Task":
        for name in names:
            if name not in self.finalized_by:
                self.finalized_by.append(name)
        return self

    def set_action(self, action: Action) -> "Task":
        """Replace the task's actions with the single *action*."""
        self.actions = [action]
        return self

    def run(self) -> None:
        for path in self.clean_before:
            if path.is_dir():
                shutil.rmtree(path)
            elif path.exists():
                path.unlink()
        for action in self.actions:
            action(self)


@dataclass
class TaskResult:
    name:     str
    state:    TaskState
    step:     str   = ""
    message:  str   = ""
    seconds:  float = 0.0


@dataclass
class TaskReport:
    """Outcome of one ``TaskGraph.execute`` call, in execution order."""
    project: str
    results: List[TaskResult] = field(default_factory=list)

    @property
    def ok(self) -> bool:
        return all(r.state != TaskState.FAILED for r in self.results)

    @property
    def failure(self) -> Optional[TaskResult]:
        return next((r for r in self.results if r.state == TaskState.FAILED), None)

    def state_of(self, name: str) -> Optional[TaskState]:
        for r in self.results:
            if r.name == name:
                return r.state
        return None

    def executed(self) -> List[str]:
        """Names of the tasks that actually ran (succeeded or failed)."""
        return [r.name for r in self.results if r.state != TaskState.SKIPPED]


class TaskGraph:
    """The tasks of one project, keyed by name, in registration order."""

    def __init__(self, project: str) -> None:
        self.project = project
        self._tasks: Dict[str, Task] = {}

    # ── registration ───────────────────────────────────────────────────────

    def register(self, name: str, *, kind: str = "generic", description: str = "") -> Task:
        """
        Return the task called *name*, creating it on first use.

        Registering an existing name hands back the same object, which is
        what keeps cross-cutting setup idempotent.
        """
        task = self._tasks.get(name)
        if task is None:
            task = Task(name=name, project=self.project, kind=kind, description=description)
            self._tasks[name] = task
        return task

    def find(self, name: str) -> Optional[Task]:
        return self._tasks.get(name)

    def named(self, name: str) -> Task:
        task = self._tasks.get(name)
        if task is None:
            raise ConfigurationError(f"[{self.project}] unknown task '{name}'")
        return task

    def of_kind(self, kind: str) -> List[Task]:
        return [t for t in self._tasks.values() if t.kind == kind]

    def __iter__(self) -> Iterator[Task]:
        return iter(list(self._tasks.values()))

    def __len__(self) -> int:
        return len(self._tasks)

    def __contains__(self, name: object) -> bool:
        return name in self._tasks

    # ── planning ───────────────────────────────────────────────────────────

    def plan(self, requested: List[str]) -> List[str]:
        """
        Return the execution order for *requested*: dependencies first,
        each finalizer immediately after the task it finalizes.

        Requested names the project does not have are ignored; a dependency
        edge to a missing task or a cycle is a configuration error.
        """
        ordered: List[str] = []
        visited: set[str] = set()
        visiting: set[str] = set()

        def _visit(name: str) -> None:
            if name in visited:
                return
            if name in visiting:
                raise ConfigurationError(f"[{self.project}] task cycle through '{name}'")
            task = self.named(name)
            visiting.add(name)
            for dep in task.depends_on:
                _visit(dep)
            visiting.discard(name)
            visited.add(name)
            ordered.append(name)
            for fin in task.finalized_by:
                _visit(fin)

        for name in requested:
            if name in self._tasks:
                _visit(name)
        return ordered

    # ── execution ──────────────────────────────────────────────────────────

    def execute(self, requested: List[str]) -> TaskReport:
        report = TaskReport(project=self.project)
        states: Dict[str, TaskState] = {}

        for name in self.plan(requested):
            task = self._tasks[name]
            blocked = [d for d in task.depends_on if states.get(d) != TaskState.SUCCESS]
            if blocked:
                states[name] = TaskState.SKIPPED
                report.results.append(TaskResult(
                    name, TaskState.SKIPPED, message=f"dependency '{blocked[0]}' did not succeed",
                ))
                log.info(f"[{self.project}] {name} skipped ({blocked[0]} did not succeed)")
                continue

            start = time.time()
            try:
                task.run()
            except Exception as exc:
                states[name] = TaskState.FAILED
                report.results.append(TaskResult(
                    name, TaskState.FAILED,
                    step=_failed_step(name, exc),
                    message=str(exc),
                    seconds=time.time() - start,
                ))
                log.error(f"[{self.project}] {name} failed: {exc}")
                continue

            states[name] = TaskState.SUCCESS
            report.results.append(TaskResult(name, TaskState.SUCCESS, seconds=time.time() - start))
        return report


def _failed_step(task: str, exc: Exception) -> str:
    if isinstance(exc, PostProcessFailure):
        return exc.step
    if isinstance(exc, TaskFailure):
        return exc.task
    return task
