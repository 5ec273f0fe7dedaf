"""
Jar manifest attributes.

``ManifestAttributes`` is built once per project during cross-cutting setup
and embedded verbatim into every archive the project produces.
"""
from __future__ import annotations

from collections.abc import Mapping
from typing import Iterator, Optional, Tuple, TYPE_CHECKING

if TYPE_CHECKING:
    from config import BuildEnvironment, LibraryIdentity
    from registry import Project

# Order in which the attributes appear in MANIFEST.MF
MANIFEST_KEYS = (
    "Implementation-Title",
    "Implementation-Version",
    "Implementation-URL",
    "Implementation-Vendor",
    "ProjectName",
    "Version",
    "Maintainer",
    "Project",
    "Project-Version",
    "Created-With",
    "Built-By",
    "Build-Date",
    "Build-JDK",
    "Build-OS-Name",
    "Build-OS-Arch",
    "Build-OS-Version",
    "Automatic-Module-Name",
)

_MAX_LINE_BYTES = 72


class ManifestAttributes(Mapping[str, str]):
    """Ordered, immutable ``key → value`` mapping."""

    __slots__ = ("_items",)

    def __init__(self, items: Mapping[str, str] | Tuple[Tuple[str, str], ...] = ()) -> None:
        pairs = tuple(items.items()) if isinstance(items, Mapping) else tuple(items)
        seen: set[str] = set()
        for key, _ in pairs:
            if key in seen:
                raise ValueError(f"duplicate manifest attribute '{key}'")
            seen.add(key)
        self._items: Tuple[Tuple[str, str], ...] = tuple((str(k), str(v)) for k, v in pairs)

    def __getitem__(self, key: str) -> str:
        for k, v in self._items:
            if k == key:
                return v
        raise KeyError(key)

    def __iter__(self) -> Iterator[str]:
        return (k for k, _ in self._items)

    def __len__(self) -> int:
        return len(self._items)

    def __eq__(self, other: object) -> bool:
        if isinstance(other, ManifestAttributes):
            return self._items == other._items
        return NotImplemented

    def __hash__(self) -> int:
        return hash(self._items)

    def __repr__(self) -> str:
        return f"ManifestAttributes({dict(self._items)!r})"


def build_manifest_attributes(
    project: "Project",
    identity: "LibraryIdentity",
    env: "BuildEnvironment",
) -> ManifestAttributes:
    """
    Assemble the manifest of *project* from the library identity, the
    environment snapshot and the project's own metadata.

    ``Automatic-Module-Name`` is present only if the project declares a
    module name.
    """
    values: dict[str, Optional[str]] = {
        "Implementation-Title":   project.name,
        "Implementation-Version": identity.version,
        "Implementation-URL":     identity.url,
        "Implementation-Vendor":  identity.name,
        "ProjectName":            identity.name,
        "Version":                identity.version,
        "Maintainer":             identity.author,
        "Project":                project.name,
        "Project-Version":        project.version or identity.version,
        "Created-With":           env.tool_name,
        "Built-By":               env.built_by,
        "Build-Date":             env.build_date,
        "Build-JDK":              env.build_jdk,
        "Build-OS-Name":          env.os_name,
        "Build-OS-Arch":          env.os_arch,
        "Build-OS-Version":       env.os_version,
        "Automatic-Module-Name":  project.module_name,
    }
    return ManifestAttributes(tuple(
        (key, values[key]) for key in MANIFEST_KEYS if values[key] is not None
    ))


def render_manifest(attributes: Mapping[str, str]) -> bytes:
    """
    Render *attributes* as a ``META-INF/MANIFEST.MF`` body.

    Lines are CRLF-terminated and wrapped at 72 bytes with single-space
    continuation lines, as the jar specification requires.
    """
    lines = ["Manifest-Version: 1.0"]
    lines += [f"{key}: {value}" for key, value in attributes.items()]
    out = bytearray()
    for line in lines:
        out += _wrap(line)
    out += b"\r\n"
    return bytes(out)


def _wrap(line: str) -> bytes:
    out = bytearray()
    current = bytearray()
    for char in line:
        encoded = char.encode("utf-8")
        if len(current) + len(encoded) > _MAX_LINE_BYTES:
            out += current + b"\r\n"
            current = bytearray(b" ")
        current += encoded
    out += current + b"\r\n"
    return bytes(out)
