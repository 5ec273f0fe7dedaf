"""
File-system helpers: directories, atomic writes, token filtering, jar assembly.
"""
import os
import shutil
import tempfile
import zipfile
from pathlib import Path
from typing import Iterable, List, Mapping, Optional, Tuple

import logger as log
from manifest import render_manifest

# Files whose contents go through token substitution when archived
TEXT_SUFFIXES = {
    ".java", ".txt", ".md", ".properties", ".html", ".htm", ".css", ".js",
    ".xml", ".json", ".xsd", ".mf", ".csv", ".svg",
}

# Fixed timestamp for jar entries so identical inputs give identical archives
_ZIP_EPOCH = (1980, 2, 1, 0, 0, 0)


def ensure_dir(path: Path) -> Path:
    path.mkdir(parents=True, exist_ok=True)
    return path


def clean_dir(path: Path) -> None:
    if path.exists():
        shutil.rmtree(path)
        log.info(f"Cleaned: {path}")


def atomic_write(dst: Path, data: bytes) -> None:
    """
    Write *data* to *dst* atomically.

    The bytes are first written to a temporary file in the same directory as
    *dst*, then renamed into place with ``os.replace``, so a reader never
    sees a half-written archive.
    """
    dst.parent.mkdir(parents=True, exist_ok=True)
    fd, tmp = tempfile.mkstemp(dir=dst.parent, prefix=f".{dst.name}~")
    try:
        with os.fdopen(fd, "wb") as fh:
            fh.write(data)
        os.replace(tmp, dst)
    except BaseException:
        try:
            os.unlink(tmp)
        except OSError:
            pass
        raise


def replace_tokens(text: str, tokens: Mapping[str, str]) -> str:
    """Replace every ``@<name>@`` marker in *text* with ``tokens[name]``."""
    for name, value in tokens.items():
        text = text.replace(f"@{name}@", value)
    return text


def collect_tree(root: Path, *, exclude_dirs: Iterable[str] = ()) -> List[Tuple[str, Path]]:
    """
    Return ``(posix relative path, absolute path)`` for every file under
    *root*, sorted, skipping any top-level directory named in *exclude_dirs*.
    """
    if not root.is_dir():
        return []
    skipped = set(exclude_dirs)
    entries = []
    for path in sorted(root.rglob("*")):
        if not path.is_file():
            continue
        rel = path.relative_to(root)
        if rel.parts and rel.parts[0] in skipped:
            continue
        entries.append((rel.as_posix(), path))
    return entries


def write_jar(
    dst: Path,
    entries: Iterable[Tuple[str, Path]],
    *,
    manifest: Optional[Mapping[str, str]] = None,
    tokens: Optional[Mapping[str, str]] = None,
) -> Path:
    """
    Assemble a jar at *dst* from ``(archive name, file)`` pairs.

    ``META-INF/MANIFEST.MF`` is written first when *manifest* is given.
    Text entries (by suffix) get *tokens* substituted while they are copied
    into the archive; the files on disk are never modified.
    """
    tmp_fd, tmp = tempfile.mkstemp(dir=ensure_dir(dst.parent), prefix=f".{dst.name}~")
    os.close(tmp_fd)
    try:
        with zipfile.ZipFile(tmp, "w", compression=zipfile.ZIP_DEFLATED) as jar:
            if manifest is not None:
                jar.writestr(_entry("META-INF/MANIFEST.MF"), render_manifest(manifest))
            for name, path in entries:
                if name.upper() == "META-INF/MANIFEST.MF":
                    continue
                data = path.read_bytes()
                if tokens and path.suffix.lower() in TEXT_SUFFIXES:
                    text = data.decode("utf-8", "surrogateescape")
                    data = replace_tokens(text, tokens).encode("utf-8", "surrogateescape")
                jar.writestr(_entry(name), data)
        os.replace(tmp, dst)
    except BaseException:
        try:
            os.unlink(tmp)
        except OSError:
            pass
        raise
    log.success(f"Wrote  {dst.name}")
    return dst


def _entry(name: str) -> zipfile.ZipInfo:
    info = zipfile.ZipInfo(name, date_time=_ZIP_EPOCH)
    info.compress_type = zipfile.ZIP_DEFLATED
    info.external_attr = 0o644 << 16
    return info
