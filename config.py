"""
Central configuration for the Lattices build.
All paths are resolved relative to the workspace root.
Subprojects are discovered dynamically by scanning for project.json files –
no hardcoded project names.
"""
from __future__ import annotations

import getpass
import json
import os
import platform
from dataclasses import dataclass, fields
from datetime import datetime
from pathlib import Path
from typing import Optional

from errors import ConfigurationError

# ── Workspace layout ──────────────────────────────────────────────────────────
BUILD_TOOL_DIR = Path(__file__).resolve().parent
WORKSPACE      = Path(os.environ.get("LATTICES_WORKSPACE", Path.cwd())).resolve()

# Per-project output directory name (``<project>/build``).
BUILD_DIR_NAME = os.environ.get("LATTICES_BUILD_DIR", "build")


def build_src_dir(workspace: Path) -> Path:
    """Shared build resources (offline javadoc package lists, stylesheet, jacoco)."""
    return workspace / "buildSrc"


def javadoc_resources(workspace: Path) -> Path:
    return build_src_dir(workspace) / "resources" / "javadoc"


def jacoco_home(workspace: Path) -> Path:
    return Path(os.environ.get("JACOCO_HOME", build_src_dir(workspace) / "lib"))


# ── Java ──────────────────────────────────────────────────────────────────────
# JDK used for javac/javadoc/java.  None → whatever is on PATH.
JAVA_HOME: Optional[str] = os.environ.get("JAVA_HOME") or None

JAVA_SE_API_URL = "https://docs.oracle.com/en/java/javase/17/docs/api/"

# ── Publishing ────────────────────────────────────────────────────────────────
SNAPSHOT_MARKER = "SNAPSHOT"
GPG_KEY_ID: Optional[str] = os.environ.get("GPG_KEY_ID") or None

# ── Execution ─────────────────────────────────────────────────────────────────
DEFAULT_JOBS = 1

# Directories that should never be treated as project roots
_SKIP_DIRS = {"buildSrc", "build", "output", ".git", ".idea", ".gradle"}

_LIBRARY_FILE = "library.json"
_PROJECT_FILE = "project.json"


# ══════════════════════════════════════════════════════════════════════════════
# Library identity
# ══════════════════════════════════════════════════════════════════════════════

@dataclass(frozen=True)
class LibraryIdentity:
    """
    Static facts about the library and its author.

    Stamped into manifests, the POM and the javadoc titles.  A workspace may
    override any field with a ``library.json`` at its root.
    """
    version:        str = "3.0.0.ALPHA3"
    id:             str = "lattices"
    name:           str = "lattices"
    group:          str = "io.jenetics"
    author:         str = "Franz Wilhelmstötter"
    email:          str = "franz.wilhelmstoetter@gmail.com"
    url:            str = "https://github.com/jenetics/lattices"
    inception_year: str = "2022"
    snapshot_url:   str = "https://oss.sonatype.org/content/repositories/snapshots/"
    release_url:    str = "https://oss.sonatype.org/service/local/staging/deploy/maven2/"
    scm_url:        str = "https://github.com/jenetics/lattices"
    scm_connection: str = "scm:git:https://github.com/jenetics/lattices.git"
    developer_connection: str = "scm:git:https://github.com/jenetics/lattices.git"

    @property
    def identifier(self) -> str:
        """``<id>-<version>``, the value substituted for ``@__identifier__@``."""
        return f"{self.id}-{self.version}"


def load_identity(workspace: Path = WORKSPACE) -> LibraryIdentity:
    """
    Read ``library.json`` from *workspace* if present.

    Unknown keys are rejected so typos do not silently fall back to the
    defaults.  The repository URLs can also be overridden with
    ``LATTICES_SNAPSHOT_URL`` / ``LATTICES_RELEASE_URL``.
    """
    data: dict = {}
    path = workspace / _LIBRARY_FILE
    if path.exists():
        try:
            data = json.loads(path.read_text(encoding="utf-8"))
        except json.JSONDecodeError as exc:
            raise ConfigurationError(f"Malformed {path}: {exc}") from exc
        if not isinstance(data, dict):
            raise ConfigurationError(f"{path} must contain a JSON object")

    known = {f.name for f in fields(LibraryIdentity)}
    unknown = sorted(set(data) - known)
    if unknown:
        raise ConfigurationError(f"{path}: unknown key(s) {', '.join(unknown)}")

    values = {key: str(value) for key, value in data.items()}
    if os.environ.get("LATTICES_SNAPSHOT_URL"):
        values["snapshot_url"] = os.environ["LATTICES_SNAPSHOT_URL"]
    if os.environ.get("LATTICES_RELEASE_URL"):
        values["release_url"] = os.environ["LATTICES_RELEASE_URL"]
    return LibraryIdentity(**values)


# ══════════════════════════════════════════════════════════════════════════════
# Environment snapshot
# ══════════════════════════════════════════════════════════════════════════════

DATE_FORMAT = "%Y-%m-%d %H:%M"


@dataclass(frozen=True)
class BuildEnvironment:
    """
    Build-wide facts captured once when a run starts.

    Every component receives this object explicitly; nothing downstream
    reads the clock, the platform or the invoking user on its own, so all
    projects of one run see the same values.
    """
    timestamp:      datetime
    build_date:     str
    year:           int
    copyright_year: str
    build_jdk:      str
    os_name:        str
    os_arch:        str
    os_version:     str
    built_by:       str
    tool_name:      str = "lattices-build"


def capture_environment(
    *,
    inception_year: str = "2022",
    now: Optional[datetime] = None,
    java_version: Optional[str] = None,
    user: Optional[str] = None,
) -> BuildEnvironment:
    """Snapshot timestamp, JDK, OS and user for one orchestration run."""
    now = now or datetime.now().astimezone()
    if java_version is None:
        import toolchain  # lazy import to avoid circular deps
        java_version = toolchain.java_version() or "unknown"

    year = now.year
    copyright_year = f"{inception_year}-{year}"

    return BuildEnvironment(
        timestamp      = now,
        build_date     = now.strftime(DATE_FORMAT),
        year           = year,
        copyright_year = copyright_year,
        build_jdk      = java_version,
        os_name        = platform.system(),
        os_arch        = platform.machine(),
        os_version     = platform.release(),
        built_by       = user or _user_name(),
    )


def _user_name() -> str:
    try:
        return getpass.getuser()
    except (KeyError, OSError):
        return "unknown"


# ══════════════════════════════════════════════════════════════════════════════
# Project discovery
# ══════════════════════════════════════════════════════════════════════════════

def scan_projects(workspace: Path = WORKSPACE) -> list[Path]:
    """
    Return every sub-directory of *workspace* that holds a ``project.json``,
    sorted by directory name.

    The order only fixes the declaration sequence; nothing in the build
    depends on it because cross-cutting setup waits for the barrier.
    """
    if not workspace.is_dir():
        raise ConfigurationError(f"workspace not found: {workspace}")

    found: list[Path] = []
    for entry in sorted(workspace.iterdir()):
        if not entry.is_dir():
            continue
        if entry.name in _SKIP_DIRS or entry.name.startswith("."):
            continue
        if (entry / _PROJECT_FILE).exists():
            found.append(entry)
    return found
