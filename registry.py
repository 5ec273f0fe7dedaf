"""
Project registry.

────────────────────────────────────────────────────────────────────────────
Project declaration  (project.json)
────────────────────────────────────────────────────────────────────────────
Every subproject directory contains a ``project.json`` that declares its
identity and the plugins it applies::

    {
      "name":        "lattices",
      "description": "Lattices - Java library for multidimensional data structures",
      "version":     "3.0.0-SNAPSHOT",          // optional, defaults to the library version
      "moduleName":  "io.jenetics.lattices",    // optional Automatic-Module-Name
      "plugins":     ["java-library", "maven-publish", "jacoco"],
      "javadoc":     true,                      // optional, default true
      "test":        {"command": ["java", "-cp", "...", "org.testng.TestNG", "testng.xml"]},
      "dependencies": [
        {"groupId": "org.assertj", "artifactId": "assertj-core",
         "version": "3.20.2", "scope": "test"}
      ]
    }

Capabilities are never stored, they are derived from the plugins:

  java-library / java  → library
  maven-publish        → publishes
  jacoco               → coverage
  library + javadoc    → docs

A project may keep applying plugins until the configuration barrier fires
(see ``hooks.BuildLifecycle``); after that it is frozen.
"""
from __future__ import annotations

import json
from pathlib import Path
from typing import Any, Dict, Iterator, List, Optional, TYPE_CHECKING

import config as cfg
from errors import ConfigurationError, DuplicateProjectError, LifecycleError
from tasks import TaskGraph

if TYPE_CHECKING:
    from javadoc import DocTask
    from manifest import ManifestAttributes

LIBRARY_PLUGINS  = ("java-library", "java")
PUBLISH_PLUGIN   = "maven-publish"
COVERAGE_PLUGIN  = "jacoco"

_PROJECT_FILE = "project.json"


class Project:
    """
    A buildable subproject.

    Declared state (plugins, extras, description, version) is mutable only
    during the declaration phase.  The configuration products hung off a
    project by cross-cutting setup (``tasks``, ``manifest``, ``doc_task``)
    are filled in afterwards.
    """

    def __init__(
        self,
        name: str,
        directory: Path,
        *,
        description: str = "",
        version: Optional[str] = None,
    ) -> None:
        self.name         = name
        self.directory    = Path(directory)
        self._description = description
        self._version     = version
        self._plugins:  List[str]      = []
        self._extra:    Dict[str, Any] = {}
        self._javadoc   = True
        self._frozen    = False

        self.test_command: Optional[List[str]] = None
        self.dependencies: List[Dict[str, str]] = []

        self.tasks    = TaskGraph(name)
        self.manifest: Optional["ManifestAttributes"] = None
        self.doc_task: Optional["DocTask"] = None

    # ── declaration ────────────────────────────────────────────────────────

    def _check_mutable(self, what: str) -> None:
        if self._frozen:
            raise LifecycleError(
                f"[{self.name}] cannot {what} after all projects were evaluated"
            )

    def apply_plugin(self, plugin_id: str) -> None:
        self._check_mutable(f"apply plugin '{plugin_id}'")
        if plugin_id not in self._plugins:
            self._plugins.append(plugin_id)

    def set_extra(self, key: str, value: Any) -> None:
        self._check_mutable(f"set '{key}'")
        self._extra[key] = value

    def set_description(self, description: str) -> None:
        self._check_mutable("set the description")
        self._description = description

    def set_version(self, version: str) -> None:
        self._check_mutable("set the version")
        self._version = version

    def disable_javadoc(self) -> None:
        self._check_mutable("disable javadoc")
        self._javadoc = False

    def freeze(self) -> None:
        self._frozen = True

    @property
    def frozen(self) -> bool:
        return self._frozen

    # ── capabilities ───────────────────────────────────────────────────────

    @property
    def plugins(self) -> tuple[str, ...]:
        return tuple(self._plugins)

    def has_plugin(self, plugin_id: str) -> bool:
        return plugin_id in self._plugins

    @property
    def is_library(self) -> bool:
        return any(p in self._plugins for p in LIBRARY_PLUGINS)

    @property
    def publishes(self) -> bool:
        return PUBLISH_PLUGIN in self._plugins

    @property
    def has_coverage(self) -> bool:
        return COVERAGE_PLUGIN in self._plugins

    @property
    def has_docs(self) -> bool:
        return self.is_library and self._javadoc

    # ── metadata ───────────────────────────────────────────────────────────

    @property
    def description(self) -> str:
        return self._description

    @property
    def version(self) -> Optional[str]:
        return self._version

    @property
    def module_name(self) -> Optional[str]:
        value = self._extra.get("moduleName")
        return str(value) if value else None

    def metadata(self) -> Dict[str, Optional[str]]:
        return {
            "moduleName":  self.module_name,
            "description": self._description,
            "version":     self._version,
        }

    # ── layout ─────────────────────────────────────────────────────────────

    @property
    def build_dir(self) -> Path:
        return self.directory / cfg.BUILD_DIR_NAME

    @property
    def source_dir(self) -> Path:
        return self.directory / "src" / "main" / "java"

    @property
    def resources_dir(self) -> Path:
        return self.directory / "src" / "main" / "resources"

    @property
    def classes_dir(self) -> Path:
        return self.build_dir / "classes" / "java" / "main"

    @property
    def libs_dir(self) -> Path:
        return self.build_dir / "libs"

    # ── factories ──────────────────────────────────────────────────────────

    @classmethod
    def load(cls, project_dir: Path) -> "Project":
        """
        Load ``project.json`` from *project_dir* and replay it as a series
        of declaration calls.

        Raises ``ConfigurationError`` on malformed JSON or a missing name.
        """
        manifest_path = project_dir / _PROJECT_FILE
        try:
            data = json.loads(manifest_path.read_text(encoding="utf-8"))
        except FileNotFoundError as exc:
            raise ConfigurationError(f"{manifest_path} not found") from exc
        except json.JSONDecodeError as exc:
            raise ConfigurationError(f"Malformed {manifest_path}: {exc}") from exc

        if not isinstance(data, dict) or not data.get("name"):
            raise ConfigurationError(f"{manifest_path}: missing required field 'name'")

        plugins = data.get("plugins", [])
        if not isinstance(plugins, list):
            raise ConfigurationError(f"{manifest_path}: 'plugins' must be a list")

        project = cls(
            str(data["name"]),
            project_dir.resolve(),
            description = str(data.get("description", "")),
            version     = data.get("version"),
        )
        for plugin_id in plugins:
            project.apply_plugin(str(plugin_id))
        if data.get("moduleName"):
            project.set_extra("moduleName", data["moduleName"])
        if data.get("javadoc") is False:
            project.disable_javadoc()

        test = data.get("test") or {}
        if test.get("command"):
            project.test_command = [str(arg) for arg in test["command"]]
        project.dependencies = list(data.get("dependencies", []))
        return project

    def __repr__(self) -> str:
        return f"Project({self.name}  plugins={list(self._plugins)})"


class ProjectsView:
    """Restartable, insertion-ordered view over the registered projects."""

    def __init__(self, projects: List[Project]) -> None:
        self._projects = projects

    def __iter__(self) -> Iterator[Project]:
        return iter(list(self._projects))

    def __len__(self) -> int:
        return len(self._projects)

    def __getitem__(self, i: int) -> Project:
        return self._projects[i]

    def __bool__(self) -> bool:
        return bool(self._projects)


class ProjectRegistry:
    """The set of projects in one build, keyed by name."""

    def __init__(self) -> None:
        self._projects: List[Project] = []
        self._by_name: Dict[str, Project] = {}
        self._sealed = False

    def register(self, project: Project) -> Project:
        if self._sealed:
            raise LifecycleError(
                f"cannot register '{project.name}': the declaration phase is over"
            )
        if project.name in self._by_name:
            raise DuplicateProjectError(project.name)
        self._by_name[project.name] = project
        self._projects.append(project)
        return project

    def seal(self) -> None:
        self._sealed = True

    def all(self) -> ProjectsView:
        return ProjectsView(self._projects)

    def get(self, name: str) -> Optional[Project]:
        return self._by_name.get(name)

    def __getitem__(self, name: str) -> Project:
        return self._by_name[name]

    def __contains__(self, name: object) -> bool:
        return name in self._by_name

    def __len__(self) -> int:
        return len(self._projects)

    def names(self) -> List[str]:
        return [p.name for p in self._projects]
