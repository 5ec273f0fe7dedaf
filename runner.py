"""
Orchestration runs.

One run goes through the same steps every time:

  1. capture the build environment (once, shared by every component)
  2. declare every project (``project.json`` files or given objects)
  3. fire the configuration barrier, which applies cross-cutting setup
  4. execute the requested tasks of every project, optionally in parallel
  5. print the per-project summary

Structural errors (duplicate project, malformed declaration, task cycle)
abort in steps 2-3, before anything executes.  Failures during step 4
are isolated to the project and step they happened in.
"""
from __future__ import annotations

import time
from concurrent.futures import ThreadPoolExecutor
from dataclasses import dataclass, field
from pathlib import Path
from typing import Iterable, List, Optional, Sequence

import config as cfg
import crosscut
import logger as log
from config import BuildEnvironment, LibraryIdentity
from hooks import BuildLifecycle
from registry import Project, ProjectRegistry
from tasks import TaskReport, TaskState

BUILD_TASKS   = [crosscut.COMPILE, crosscut.TEST, crosscut.JAR, crosscut.JAVADOC]
DOCS_TASKS    = [crosscut.JAVADOC]
PUBLISH_TASKS = [crosscut.PUBLISH]

_TEST_TASKS = {crosscut.TEST, crosscut.COVERAGE}

_MARK = {
    TaskState.SUCCESS: "ok",
    TaskState.FAILED:  "failed",
    TaskState.SKIPPED: "skipped",
}


@dataclass
class ProjectOutcome:
    """What happened to one project; each column is ok / failed / skipped / n/a."""
    name:        str
    configured:  str = "n/a"
    generated:   str = "n/a"
    published:   str = "n/a"
    failed_step: str = ""
    failure:     str = ""
    report:      Optional[TaskReport] = None

    @property
    def ok(self) -> bool:
        return not self.failed_step


@dataclass
class OrchestrationResult:
    env:      BuildEnvironment
    registry: ProjectRegistry
    outcomes: List[ProjectOutcome] = field(default_factory=list)
    seconds:  float = 0.0

    @property
    def ok(self) -> bool:
        return all(o.ok for o in self.outcomes)

    @property
    def exit_code(self) -> int:
        return 0 if self.ok else 1

    def outcome(self, name: str) -> ProjectOutcome:
        for o in self.outcomes:
            if o.name == name:
                return o
        raise KeyError(name)


# ─────────────────────────────────────────────────────────────────────────────
# Declaration and configuration
# ─────────────────────────────────────────────────────────────────────────────

def declare_projects(lifecycle: BuildLifecycle, workspace: Path) -> List[Project]:
    """Declare every project found under *workspace*, in directory order."""
    return [lifecycle.declare(Project.load(d)) for d in cfg.scan_projects(workspace)]


def configure(
    *,
    workspace: Path = cfg.WORKSPACE,
    identity: Optional[LibraryIdentity] = None,
    env: Optional[BuildEnvironment] = None,
    projects: Optional[Iterable[Project]] = None,
    **setup_options,
) -> tuple[ProjectRegistry, BuildEnvironment]:
    """
    Run the declaration phase and the barrier.

    Returns the frozen registry with every project fully configured.
    *setup_options* go to ``crosscut.CrossCutSetup`` (tool runner, doc
    generator, signer, uploader, repository, dry_run).
    """
    identity = identity or cfg.load_identity(workspace)
    env      = env or cfg.capture_environment(inception_year=identity.inception_year)

    registry  = ProjectRegistry()
    lifecycle = BuildLifecycle(registry)
    lifecycle.on_all_projects_ready(
        crosscut.CrossCutSetup(identity, env, workspace=workspace, **setup_options)
    )

    if projects is None:
        declare_projects(lifecycle, workspace)
    else:
        for project in projects:
            lifecycle.declare(project)

    lifecycle.projects_evaluated()

    # a task cycle is structural: surface it before anything runs
    for project in registry.all():
        project.tasks.plan([t.name for t in project.tasks])
    return registry, env


# ─────────────────────────────────────────────────────────────────────────────
# Execution
# ─────────────────────────────────────────────────────────────────────────────

def _requested(tasks: Sequence[str], skip_tests: bool) -> List[str]:
    return [t for t in tasks if not (skip_tests and t in _TEST_TASKS)]


def _execute(project: Project, requested: List[str]) -> TaskReport:
    report = project.tasks.execute(requested)
    for result in report.results:
        if result.state is TaskState.SUCCESS:
            log.success(f"[{project.name}] {result.name}  ({log.duration(result.seconds)})")
    return report


def outcome_of(project: Project, report: TaskReport) -> ProjectOutcome:
    """Fold a task report into the configured / generated / published summary."""
    outcome = ProjectOutcome(project.name, report=report)
    if project.is_library:
        outcome.configured = "ok"
    if project.doc_task is not None:
        outcome.generated = _MARK.get(report.state_of(crosscut.JAVADOC), "skipped")
    if project.publishes:
        outcome.published = _MARK.get(report.state_of(crosscut.PUBLISH), "skipped")

    failure = report.failure
    if failure is not None:
        outcome.failed_step = failure.step or failure.name
        outcome.failure     = failure.message
    return outcome


def orchestrate(
    tasks: Sequence[str] = tuple(BUILD_TASKS),
    *,
    workspace: Path = cfg.WORKSPACE,
    jobs: int = cfg.DEFAULT_JOBS,
    skip_tests: bool = False,
    identity: Optional[LibraryIdentity] = None,
    env: Optional[BuildEnvironment] = None,
    projects: Optional[Iterable[Project]] = None,
    **setup_options,
) -> OrchestrationResult:
    """
    Configure every project, then run *tasks* in each of them.

    Projects run independently of each other; with ``jobs > 1`` up to that
    many project chains execute at the same time.  Returns the outcome of
    every project in declaration order.
    """
    start = time.time()
    registry, env = configure(
        workspace=workspace, identity=identity, env=env, projects=projects, **setup_options,
    )
    requested = _requested(tasks, skip_tests)
    declared  = list(registry.all())

    log.banner(
        "Lattices Build",
        f"Projects: {len(declared)}  |  Tasks: {', '.join(requested)}  |  "
        f"Jobs: {jobs}  |  Tests: {'skipped' if skip_tests else 'enabled'}  |  "
        f"Built: {env.build_date}",
    )

    total = len(declared)
    for i, project in enumerate(declared, 1):
        log.step(i, total, f"{project.name}  ({len(project.tasks)} task(s))")

    if jobs > 1:
        with ThreadPoolExecutor(max_workers=jobs, thread_name_prefix="project") as pool:
            reports = list(pool.map(lambda p: _execute(p, requested), declared))
    else:
        reports = [_execute(p, requested) for p in declared]

    result = OrchestrationResult(
        env      = env,
        registry = registry,
        outcomes = [outcome_of(p, r) for p, r in zip(declared, reports)],
        seconds  = time.time() - start,
    )

    log.summary(result.outcomes)
    if result.ok:
        log.success(f"Done in {log.duration(result.seconds)}")
    else:
        failed = [o.name for o in result.outcomes if not o.ok]
        log.error(f"Failed after {log.duration(result.seconds)}: {', '.join(failed)}")
    return result
