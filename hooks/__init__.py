# Re-export the public API from hooks.hooks so that
# `from hooks import X` and `import hooks as hooksmod` both work.
from hooks.hooks import (
    BuildLifecycle,
    Hook,
    HookContext,
    HookResult,
    Phase,
    hook_name,
    run_hooks,
)

__all__ = [
    "BuildLifecycle",
    "Hook",
    "HookContext",
    "HookResult",
    "Phase",
    "hook_name",
    "run_hooks",
]
