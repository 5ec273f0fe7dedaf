"""
Build lifecycle and hook chains.

────────────────────────────────────────────────────────────────────────────
Two-phase lifecycle
────────────────────────────────────────────────────────────────────────────
A build runs through three phases::

    DECLARATION   – projects are registered and declare themselves
                    (plugins, module name, description, …) in any order
    CONFIGURATION – the barrier has fired: every project is frozen and the
                    callbacks queued with ``on_all_projects_ready`` run,
                    once, in the order they were queued
    EXECUTION     – task graphs run; the registry is read-only

Cross-cutting setup is only ever queued as an ``on_all_projects_ready``
callback, so it always sees each project's final declaration no matter
which project declared itself first or applied a plugin last.

────────────────────────────────────────────────────────────────────────────
Hook chains
────────────────────────────────────────────────────────────────────────────
A **Hook** is any callable ``(HookContext) -> HookResult``.  ``run_hooks``
executes an ordered chain and stops at the first hook that fails or
raises.  The documentation post-processing steps run through it.
"""
from __future__ import annotations

from dataclasses import dataclass, field
from enum import Enum
from pathlib import Path
from typing import Callable, List, Optional, TYPE_CHECKING

import logger as log
from errors import LifecycleError

if TYPE_CHECKING:
    from config import BuildEnvironment
    from registry import Project, ProjectRegistry


# ══════════════════════════════════════════════════════════════════════════════
# Lifecycle
# ══════════════════════════════════════════════════════════════════════════════

class Phase(str, Enum):
    DECLARATION   = "declaration"
    CONFIGURATION = "configuration"
    EXECUTION     = "execution"


ReadyCallback = Callable[["ProjectRegistry"], None]


class BuildLifecycle:
    """Drives one build from declaration through the configuration barrier."""

    def __init__(self, registry: "ProjectRegistry") -> None:
        self.registry = registry
        self.phase    = Phase.DECLARATION
        self._callbacks: List[ReadyCallback] = []

    def declare(self, project: "Project") -> "Project":
        """Register *project*; only legal before the barrier."""
        if self.phase is not Phase.DECLARATION:
            raise LifecycleError(
                f"cannot declare '{project.name}' during the {self.phase.value} phase"
            )
        return self.registry.register(project)

    def on_all_projects_ready(self, callback: ReadyCallback) -> None:
        """Queue *callback* to run once, after every project has declared itself."""
        if self.phase is not Phase.DECLARATION:
            raise LifecycleError("all projects were already evaluated")
        self._callbacks.append(callback)

    def projects_evaluated(self) -> None:
        """
        Fire the barrier.

        Freezes the registry and every project, then runs the queued
        callbacks in order.  Calling it again is a no-op.  An exception
        from a callback propagates: structural problems abort the run.
        """
        if self.phase is not Phase.DECLARATION:
            return
        self.registry.seal()
        for project in self.registry.all():
            project.freeze()

        self.phase = Phase.CONFIGURATION
        log.info(f"All {len(self.registry)} project(s) evaluated – configuring")
        callbacks, self._callbacks = self._callbacks, []
        for callback in callbacks:
            callback(self.registry)
        self.phase = Phase.EXECUTION


# ══════════════════════════════════════════════════════════════════════════════
# Hook chains
# ══════════════════════════════════════════════════════════════════════════════

@dataclass
class HookContext:
    """
    Runtime context passed to every hook invocation.

    project_name  – project the chain belongs to
    output_dir    – directory the chain works on (e.g. the javadoc tree)
    source_dir    – project source root (``src/main/java``)
    module_name   – module name of the project, if declared
    env           – build environment snapshot of the run
    extra         – free-form dict for hook-specific parameters
    """
    project_name: str
    output_dir:   Path
    source_dir:   Optional[Path] = None
    module_name:  Optional[str]  = None
    env:          Optional["BuildEnvironment"] = None
    extra:        dict = field(default_factory=dict)


@dataclass
class HookResult:
    """
    Return value from a hook callable.

    success – False → stop the chain for this project
    message – human-readable status (logged automatically)
    """
    success: bool = True
    message: str  = ""


Hook = Callable[[HookContext], HookResult]


def hook_name(hook: Hook) -> str:
    return getattr(hook, "name", None) or getattr(hook, "__name__", repr(hook))


def run_hooks(
    phase: str,
    hooks: List[Hook],
    ctx: HookContext,
) -> tuple[bool, Optional[str], str]:
    """
    Execute all hooks for *phase* in order.

    Returns ``(ok, failed_hook, message)``; *failed_hook* is None when the
    whole chain succeeded.
    """
    for hook in hooks:
        name = hook_name(hook)
        log.info(f"[{ctx.project_name}] {phase} → {name}")
        try:
            result: HookResult = hook(ctx)
        except Exception as exc:
            log.error(f"[{ctx.project_name}] hook '{name}' raised: {exc}")
            return False, name, str(exc)

        if result.message:
            (log.info if result.success else log.error)(f"  → {result.message}")

        if not result.success:
            log.error(f"[{ctx.project_name}] {phase} hook '{name}' failed – aborting chain.")
            return False, name, result.message

    return True, None, ""
