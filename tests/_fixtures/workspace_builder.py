"""Helpers for building throwaway workspaces and fake tools in tests."""

from __future__ import annotations

import json
import textwrap
from pathlib import Path
from typing import Dict, Iterable, List, Mapping, Optional

from javadoc import DocTask
from signing import GpgSigner


class WorkspaceBuilder:
    """Writes ``project.json`` declarations and sources into a temporary workspace."""

    def __init__(self, tmp_path: Path) -> None:
        self.root = tmp_path / "workspace"
        self.root.mkdir()

    def project(
        self,
        name: str,
        *,
        plugins: Iterable[str] = ("java-library",),
        directory: Optional[str] = None,
        module_name: Optional[str] = None,
        version: Optional[str] = None,
        javadoc: bool = True,
        sources: Optional[Mapping[str, str]] = None,
        resources: Optional[Mapping[str, str]] = None,
        dependencies: Optional[List[Dict[str, str]]] = None,
    ) -> Path:
        project_dir = self.root / (directory or name)
        project_dir.mkdir(parents=True)
        data: dict = {"name": name, "plugins": list(plugins)}
        if module_name:
            data["moduleName"] = module_name
        if version:
            data["version"] = version
        if not javadoc:
            data["javadoc"] = False
        if dependencies:
            data["dependencies"] = dependencies
        (project_dir / "project.json").write_text(json.dumps(data), encoding="utf-8")

        self.write(project_dir / "src" / "main" / "java", sources or {})
        self.write(project_dir / "src" / "main" / "resources", resources or {})
        return project_dir

    def write(self, base: Path, files: Mapping[str, str]) -> None:
        for relative, content in files.items():
            path = base / relative
            path.parent.mkdir(parents=True, exist_ok=True)
            path.write_text(textwrap.dedent(content).lstrip("\n"), encoding="utf-8")


class RecordingRunner:
    """Tool runner that records every command and returns a fixed exit code."""

    def __init__(self, failing: Iterable[str] = ()) -> None:
        self.calls: List[List[str]] = []
        self.failing = set(failing)

    def __call__(self, cmd: List[str], cwd: Path, env: Optional[Dict[str, str]]) -> int:
        self.calls.append(list(cmd))
        return 1 if Path(cmd[0]).name in self.failing else 0

    def tools(self) -> List[str]:
        return [Path(c[0]).name for c in self.calls]


class FakeJavadoc:
    """Generator that writes one class page per source file, like javadoc would."""

    def __init__(self, fail_for: Iterable[str] = ()) -> None:
        self.generated: List[str] = []
        self.fail_for = set(fail_for)

    def __call__(self, doc_task: DocTask) -> bool:
        if doc_task.project in self.fail_for:
            return False
        out = doc_task.output_dir
        out.mkdir(parents=True)
        (out / "index.html").write_text(_page("Overview", "overview"), encoding="utf-8")
        for source in doc_task.source_files():
            rel = source.relative_to(doc_task.source_dir).with_suffix(".html")
            page = out / rel
            page.parent.mkdir(parents=True, exist_ok=True)
            code = source.read_text(encoding="utf-8").strip().splitlines()[-1]
            page.write_text(_page(source.stem, code), encoding="utf-8")
        self.generated.append(doc_task.project)
        return True


def _page(title: str, code: str) -> str:
    return (
        "<!DOCTYPE html>\n<html lang=\"en\">\n<head>\n"
        f"<title>{title}</title>\n</head>\n<body>\n<main>\n"
        f"<pre>{code}</pre>\n</main>\n</body>\n</html>\n"
    )


class FakeSigner(GpgSigner):
    """Writes dummy ``.asc`` files; projects in ``fail_for`` cannot be signed."""

    def __init__(self, fail_for: Iterable[str] = ()) -> None:
        super().__init__(key_id=None)
        self.fail_for = set(fail_for)
        self.signed: List[str] = []
        self.runner = self._run

    def _run(self, cmd: List[str], cwd: Path, env: Optional[Dict[str, str]]) -> int:
        artifact = Path(cmd[-1])
        if any(artifact.name.startswith(f"{name}-") for name in self.fail_for):
            return 2
        Path(cmd[cmd.index("--output") + 1]).write_text("-----BEGIN PGP SIGNATURE-----\n")
        self.signed.append(artifact.name)
        return 0


class RecordingUploader:
    """Uploader stand-in that only remembers what it was asked to put."""

    def __init__(self) -> None:
        self.uploaded: List[str] = []

    def upload(self, path: Path, remote: str) -> None:
        self.uploaded.append(remote)


__all__ = ["FakeJavadoc", "FakeSigner", "RecordingRunner", "RecordingUploader", "WorkspaceBuilder"]
