"""
Publishing: package, describe, sign and upload one project's artifacts.

────────────────────────────────────────────────────────────────────────────
What a publication contains
────────────────────────────────────────────────────────────────────────────
    <artifact>-<version>.jar            compiled classes (if the jar exists)
    <artifact>-<version>-sources.jar    sources + resources
    <artifact>-<version>-javadoc.jar    generated documentation (if any)
    <artifact>-<version>.pom            project object model

Every file is signed (``.asc``) and uploaded in Maven repository layout
together with ``.md5`` and ``.sha1`` checksums.  The target repository is
picked from the version string: a ``SNAPSHOT`` suffix goes to the snapshot
repository, everything else to the release repository.

Text resources packed into the archives have ``@__identifier__@`` and
``@__year__@`` replaced while the archive is written; the sources on disk
are left untouched.
"""
from __future__ import annotations

import base64
import hashlib
import os
import urllib.error
import urllib.parse
import urllib.request
import xml.etree.ElementTree as ET
from dataclasses import dataclass, field
from pathlib import Path
from typing import Dict, List, Mapping, Optional, TYPE_CHECKING
from xml.dom import minidom

import config as cfg
import fs
import logger as log
from errors import PublishError
from signing import GpgSigner

if TYPE_CHECKING:
    from config import BuildEnvironment, LibraryIdentity
    from registry import Project

PLACEHOLDER_USERNAME = "nexus_username"
PLACEHOLDER_PASSWORD = "nexus_password"

POM_NAMESPACE = "http://maven.apache.org/POM/4.0.0"
POM_SCHEMA    = "https://maven.apache.org/xsd/maven-4.0.0.xsd"

LICENSE_NAME = "The Apache Software License, Version 2.0"
LICENSE_URL  = "http://www.apache.org/licenses/LICENSE-2.0.txt"

CHECKSUMS = ("md5", "sha1")


# ══════════════════════════════════════════════════════════════════════════════
# Target and credentials
# ══════════════════════════════════════════════════════════════════════════════

def select_repository(version: str, identity: "LibraryIdentity") -> str:
    """Snapshot repository for ``…SNAPSHOT`` versions, release repository otherwise."""
    if version.endswith(cfg.SNAPSHOT_MARKER):
        return identity.snapshot_url
    return identity.release_url


@dataclass(frozen=True)
class Credentials:
    username: str
    password: str

    @property
    def placeholder(self) -> bool:
        return (self.username, self.password) == (PLACEHOLDER_USERNAME, PLACEHOLDER_PASSWORD)

    def __repr__(self) -> str:
        return f"Credentials(username={self.username!r}, password=***)"


def resolve_credentials(environ: Optional[Mapping[str, str]] = None) -> Credentials:
    """
    Read ``NEXUS_USERNAME`` / ``NEXUS_PASSWORD``.

    Missing values are replaced by inert placeholders so local builds and
    dry runs never fail for lack of credentials.
    """
    environ = os.environ if environ is None else environ
    return Credentials(
        username = environ.get("NEXUS_USERNAME") or PLACEHOLDER_USERNAME,
        password = environ.get("NEXUS_PASSWORD") or PLACEHOLDER_PASSWORD,
    )


def publish_tokens(identity: "LibraryIdentity", env: "BuildEnvironment", version: str) -> Dict[str, str]:
    return {
        "__identifier__": f"{identity.id}-{version}",
        "__year__":       env.copyright_year,
    }


# ══════════════════════════════════════════════════════════════════════════════
# Archives and POM
# ══════════════════════════════════════════════════════════════════════════════

def artifact_name(project: "Project", version: str, classifier: str = "", ext: str = "jar") -> str:
    suffix = f"-{classifier}" if classifier else ""
    return f"{project.name}-{version}{suffix}.{ext}"


def build_sources_jar(project: "Project", version: str, tokens: Mapping[str, str]) -> Path:
    entries = fs.collect_tree(project.source_dir) + fs.collect_tree(project.resources_dir)
    return fs.write_jar(
        project.libs_dir / artifact_name(project, version, "sources"),
        entries,
        manifest=project.manifest,
        tokens=tokens,
    )


def build_javadoc_jar(project: "Project", version: str, tokens: Mapping[str, str]) -> Optional[Path]:
    """Archive the javadoc tree; None when the project has no generated docs."""
    doc_task = project.doc_task
    if doc_task is None or not doc_task.output_dir.is_dir():
        return None
    return fs.write_jar(
        project.libs_dir / artifact_name(project, version, "javadoc"),
        fs.collect_tree(doc_task.output_dir),
        manifest=project.manifest,
        tokens=tokens,
    )


def build_pom(project: "Project", version: str, identity: "LibraryIdentity") -> str:
    """Return the POM of *project* as pretty-printed XML."""
    root = ET.Element("project", {
        "xmlns":              POM_NAMESPACE,
        "xmlns:xsi":          "http://www.w3.org/2001/XMLSchema-instance",
        "xsi:schemaLocation": f"{POM_NAMESPACE} {POM_SCHEMA}",
    })

    def _text(parent: ET.Element, tag: str, value: Optional[str]) -> None:
        if value:
            ET.SubElement(parent, tag).text = value

    _text(root, "modelVersion",  "4.0.0")
    _text(root, "groupId",       identity.group)
    _text(root, "artifactId",    project.name)
    _text(root, "version",       version)
    _text(root, "name",          project.name)
    _text(root, "description",   project.description)
    _text(root, "url",           identity.url)
    _text(root, "inceptionYear", identity.inception_year)

    licenses = ET.SubElement(ET.SubElement(root, "licenses"), "license")
    _text(licenses, "name",         LICENSE_NAME)
    _text(licenses, "url",          LICENSE_URL)
    _text(licenses, "distribution", "repo")

    developer = ET.SubElement(ET.SubElement(root, "developers"), "developer")
    _text(developer, "id",    identity.id)
    _text(developer, "name",  identity.author)
    _text(developer, "email", identity.email)

    scm = ET.SubElement(root, "scm")
    _text(scm, "connection",          identity.scm_connection)
    _text(scm, "developerConnection", identity.developer_connection)
    _text(scm, "url",                 identity.scm_url)

    if project.dependencies:
        deps = ET.SubElement(root, "dependencies")
        for dep in project.dependencies:
            node = ET.SubElement(deps, "dependency")
            for key in ("groupId", "artifactId", "version", "scope"):
                _text(node, key, dep.get(key))

    raw = ET.tostring(root, encoding="unicode")
    dom = minidom.parseString(raw)
    return "\n".join(dom.toprettyxml(indent="  ").splitlines()) + "\n"


# ══════════════════════════════════════════════════════════════════════════════
# Upload
# ══════════════════════════════════════════════════════════════════════════════

def maven_path(group: str, artifact: str, version: str, filename: str) -> str:
    return "/".join([group.replace(".", "/"), artifact, version, filename])


def checksum(path: Path, algorithm: str) -> str:
    h = hashlib.new(algorithm)
    with open(path, "rb") as fh:
        for chunk in iter(lambda: fh.read(65536), b""):
            h.update(chunk)
    return h.hexdigest()


class Uploader:
    """
    Puts files into a Maven repository.

    ``file://`` URLs are written straight to disk; ``http(s)://`` URLs get
    one HTTP PUT per file with basic authentication.
    """

    def __init__(self, repository: str, credentials: Credentials, *, timeout: float = 60) -> None:
        self.repository  = repository.rstrip("/") + "/"
        self.credentials = credentials
        self.timeout     = timeout
        self.scheme      = urllib.parse.urlparse(self.repository).scheme
        if self.scheme not in ("file", "http", "https"):
            raise PublishError(f"unsupported repository URL: {repository}")

    def upload(self, path: Path, remote: str) -> None:
        """Upload *path* and its checksums to *remote* (relative to the repository)."""
        self._put(path.read_bytes(), remote)
        for algorithm in CHECKSUMS:
            self._put(checksum(path, algorithm).encode("ascii"), f"{remote}.{algorithm}")

    def _put(self, data: bytes, remote: str) -> None:
        if self.scheme == "file":
            local = Path(urllib.request.url2pathname(urllib.parse.urlparse(self.repository).path))
            fs.atomic_write(local / remote, data)
            return

        token = base64.b64encode(
            f"{self.credentials.username}:{self.credentials.password}".encode()
        ).decode("ascii")
        req = urllib.request.Request(
            urllib.parse.urljoin(self.repository, remote),
            data=data,
            headers={
                "Content-Type":  "application/octet-stream",
                "Authorization": f"Basic {token}",
            },
            method="PUT",
        )
        try:
            with urllib.request.urlopen(req, timeout=self.timeout) as resp:
                resp.read()
        except urllib.error.HTTPError as exc:
            raise PublishError(f"upload of {remote} rejected: HTTP {exc.code} {exc.reason}") from exc
        except urllib.error.URLError as exc:
            raise PublishError(f"upload of {remote} failed: {exc.reason}") from exc


# ══════════════════════════════════════════════════════════════════════════════
# Publish
# ══════════════════════════════════════════════════════════════════════════════

@dataclass
class Publication:
    """Everything one ``publish`` call produced."""
    project:    str
    version:    str
    repository: str
    artifacts:  List[Path] = field(default_factory=list)
    signatures: List[Path] = field(default_factory=list)
    uploaded:   List[str]  = field(default_factory=list)

    def files(self) -> List[Path]:
        return self.artifacts + self.signatures


def publish(
    project: "Project",
    version: Optional[str] = None,
    *,
    identity: "LibraryIdentity",
    env: "BuildEnvironment",
    repository: Optional[str] = None,
    signer: Optional[GpgSigner] = None,
    uploader: Optional[Uploader] = None,
    credentials: Optional[Credentials] = None,
    dry_run: bool = False,
    package: bool = True,
) -> Publication:
    """
    Package, sign and upload *project* at *version*.

    With ``package=False`` the archives are expected to exist already
    (built by the ``sourcesJar`` / ``javadocJar`` tasks).  A
    ``SigningFailure`` propagates to the caller, which attributes it to
    this project's publish step only.
    """
    version    = version or project.version or identity.version
    repository = repository or select_repository(version, identity)
    tokens     = publish_tokens(identity, env, version)
    pub        = Publication(project.name, version, repository)

    log.section(f"Publish  {project.name} {version}")
    main_jar = project.libs_dir / artifact_name(project, version)
    if main_jar.is_file():
        pub.artifacts.append(main_jar)

    if package:
        pub.artifacts.append(build_sources_jar(project, version, tokens))
        javadoc_jar = build_javadoc_jar(project, version, tokens)
    else:
        sources_jar = project.libs_dir / artifact_name(project, version, "sources")
        if not sources_jar.is_file():
            raise PublishError(f"[{project.name}] {sources_jar.name} has not been built")
        pub.artifacts.append(sources_jar)
        javadoc_jar = project.libs_dir / artifact_name(project, version, "javadoc")
        javadoc_jar = javadoc_jar if javadoc_jar.is_file() else None

    if javadoc_jar is not None:
        pub.artifacts.append(javadoc_jar)
    else:
        log.warn(f"[{project.name}] no javadoc output – javadoc jar skipped")

    pom = project.libs_dir / artifact_name(project, version, ext="pom")
    fs.atomic_write(pom, build_pom(project, version, identity).encode("utf-8"))
    pub.artifacts.append(pom)

    signer = signer or GpgSigner()
    pub.signatures = signer.sign_all(pub.artifacts)
    log.success(f"[{project.name}] signed {len(pub.signatures)} artifact(s)")

    if dry_run:
        log.info(f"[{project.name}] dry run – not uploading to {repository}")
        return pub

    credentials = credentials or resolve_credentials()
    if credentials.placeholder:
        log.warn(f"[{project.name}] NEXUS_USERNAME/NEXUS_PASSWORD not set – using placeholders")
    uploader = uploader or Uploader(repository, credentials)

    for path in pub.files():
        remote = maven_path(identity.group, project.name, version, path.name)
        uploader.upload(path, remote)
        pub.uploaded.append(remote)
    log.success(f"[{project.name}] published {len(pub.uploaded)} file(s) → {repository}")
    return pub
