"""
Exception taxonomy for the build.

Structural errors (``DuplicateProjectError``, ``LifecycleError``,
``ConfigurationError``) abort the whole run before anything executes.
Execution errors are raised inside one project's task chain and are
recorded against that project and step only.
"""
from __future__ import annotations


class BuildError(RuntimeError):
    """Base class for every error raised by the build."""


# ── structural ────────────────────────────────────────────────────────────────

class DuplicateProjectError(BuildError):
    """A second project was registered under an existing name."""

    def __init__(self, name: str) -> None:
        super().__init__(f"project '{name}' is already registered")
        self.name = name


class LifecycleError(BuildError):
    """An operation was attempted in the wrong build phase."""


class ConfigurationError(BuildError):
    """A declaration or the workspace configuration is malformed."""


# ── per-project execution ─────────────────────────────────────────────────────

class TaskFailure(BuildError):
    """A task action failed; carries the task name for attribution."""

    def __init__(self, task: str, message: str) -> None:
        super().__init__(message)
        self.task = task


class GenerationFailure(BuildError):
    """Documentation generation did not produce an output tree."""


class PostProcessFailure(BuildError):
    """A documentation post-processing step failed."""

    def __init__(self, step: str, message: str) -> None:
        super().__init__(f"{step}: {message}")
        self.step = step


class SigningFailure(BuildError):
    """An artifact could not be signed."""


class PublishError(BuildError):
    """Packaging or uploading a publication failed."""
