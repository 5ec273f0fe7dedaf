"""
API documentation pipeline.

A project that participates in documentation owns one ``DocTask``.  Its
life runs through a fixed set of states::

    NOT_CONFIGURED ─configure()─▶ CONFIGURED ─generate─▶ GENERATED
        ─colorizer─▶ COLORIZED ─java2html─▶ SOURCE_RENDERED

with FAILED reachable from any running state.  Post-processing steps are
an explicit ordered list on the task; they run one after the other, and
only after generation has succeeded.  If generation fails nothing behind
it runs, and the failure propagates to the caller.

Projects without a ``DocTask`` simply never enter the pipeline.
"""
from __future__ import annotations

import fnmatch
import shutil
from dataclasses import dataclass, field
from enum import Enum
from pathlib import Path
from typing import Callable, Dict, List, Optional, TYPE_CHECKING

import logger as log
import toolchain
from errors import ConfigurationError, GenerationFailure, PostProcessFailure
from hooks import Hook, HookContext, run_hooks

if TYPE_CHECKING:
    from config import BuildEnvironment

MEMBER_LEVELS = ("public", "protected", "package", "private")

INTERNAL_PACKAGES = "**/internal/**"


@dataclass(frozen=True)
class CustomTag:
    """A block tag javadoc should render: ``name:locations:label``."""
    name:      str
    locations: str
    label:     str

    def option(self) -> str:
        return f"{self.name}:{self.locations}:{self.label}"


DEFAULT_TAGS = (
    CustomTag("apiNote",  "a", "API Note:"),
    CustomTag("implSpec", "a", "Implementation Requirements:"),
    CustomTag("implNote", "a", "Implementation Note:"),
)


@dataclass
class DocOptions:
    """Options handed to the javadoc tool."""
    member_level:  str                    = "protected"
    encoding:      str                    = "UTF-8"
    doc_encoding:  str                    = "UTF-8"
    charset:       str                    = "UTF-8"
    excludes:      List[str]              = field(default_factory=lambda: [INTERNAL_PACKAGES])
    links_offline: Dict[str, Path]        = field(default_factory=dict)
    tags:          List[CustomTag]        = field(default_factory=lambda: list(DEFAULT_TAGS))
    groups:        Dict[str, List[str]]   = field(default_factory=dict)
    window_title:  str                    = ""
    doc_title:     str                    = ""
    bottom:        str                    = ""
    stylesheet:    Optional[Path]         = None
    version:       bool                   = True

    def __post_init__(self) -> None:
        if self.member_level not in MEMBER_LEVELS:
            raise ConfigurationError(
                f"member level must be one of {MEMBER_LEVELS}, got '{self.member_level}'"
            )

    def arguments(self) -> List[str]:
        args = [
            f"-{self.member_level}",
            "-encoding",    self.encoding,
            "-docencoding", self.doc_encoding,
            "-charset",     self.charset,
        ]
        if self.version:
            args.append("-version")
        if self.window_title:
            args += ["-windowtitle", self.window_title]
        if self.doc_title:
            args += ["-doctitle", self.doc_title]
        if self.bottom:
            args += ["-bottom", self.bottom]
        if self.stylesheet is not None:
            args += ["--main-stylesheet", str(self.stylesheet)]
        for url, package_list in self.links_offline.items():
            args += ["-linkoffline", url, str(package_list)]
        for tag in self.tags:
            args += ["-tag", tag.option()]
        for title, packages in self.groups.items():
            args += ["-group", title, ":".join(packages)]
        return args


class DocState(str, Enum):
    NOT_CONFIGURED  = "not-configured"
    CONFIGURED      = "configured"
    GENERATED       = "generated"
    COLORIZED       = "colorized"
    SOURCE_RENDERED = "source-rendered"
    FAILED          = "failed"


@dataclass
class PostProcessStep:
    """A named transformation over the generated output tree."""
    name:    str
    hook:    Hook
    reaches: DocState

    def __call__(self, ctx: HookContext) -> "object":
        return self.hook(ctx)


@dataclass
class DocTask:
    """Documentation generation for one project."""
    project:      str
    source_dir:   Path
    output_dir:   Path
    module_name:  Optional[str]         = None
    options:      DocOptions            = field(default_factory=DocOptions)
    state:        DocState              = DocState.NOT_CONFIGURED
    post_process: List[PostProcessStep] = field(default_factory=list)

    def configure(self, options: DocOptions) -> None:
        """
        Set generation options.

        Passing the options the task already has is a no-op in any state, so
        setup can be re-applied after the docs were built.  Different options
        are only accepted before the task has run.
        """
        if self.state is not DocState.NOT_CONFIGURED and options == self.options:
            return
        if self.state not in (DocState.NOT_CONFIGURED, DocState.CONFIGURED):
            raise ConfigurationError(
                f"[{self.project}] javadoc options cannot change in state {self.state.value}"
            )
        self.options = options
        self.state = DocState.CONFIGURED

    def add_post_process(self, step: PostProcessStep) -> None:
        """Append *step* unless a step of the same name is already registered."""
        if any(s.name == step.name for s in self.post_process):
            return
        self.post_process.append(step)

    def stages(self) -> List[str]:
        return ["javadoc"] + [s.name for s in self.post_process]

    def source_files(self) -> List[Path]:
        """Java sources under ``source_dir`` that survive the exclude patterns."""
        if not self.source_dir.is_dir():
            return []
        files = []
        for path in sorted(self.source_dir.rglob("*.java")):
            rel = path.relative_to(self.source_dir).as_posix()
            if not is_excluded(rel, self.options.excludes):
                files.append(path)
        return files

    @property
    def options_file(self) -> Path:
        return self.output_dir.parent.parent / "tmp" / "javadoc" / "javadoc.options"


def is_excluded(rel_path: str, patterns: List[str]) -> bool:
    """
    Ant-style match of a source path against exclude patterns.

    ``**/internal/**`` excludes every file below any ``internal`` package,
    at any depth, including a top-level one.
    """
    candidate = "/" + rel_path
    for pattern in patterns:
        translated = pattern.lstrip("/").replace("**/", "*/").replace("/**", "/*")
        if not translated.startswith("*"):
            translated = "/" + translated
        if fnmatch.fnmatchcase(candidate, translated):
            return True
    return False


def write_options_file(doc_task: DocTask) -> Path:
    """
    Write the javadoc ``@argfile`` for *doc_task*: options, output directory,
    source path and the filtered source files.
    """
    args = doc_task.options.arguments() + [
        "-d",          str(doc_task.output_dir),
        "-sourcepath", str(doc_task.source_dir),
    ]
    args += [str(p) for p in doc_task.source_files()]
    return toolchain.write_argfile(doc_task.options_file, args)


# ``(doc_task) -> bool``; True when the output tree was written.
Generator = Callable[[DocTask], bool]


def javadoc_generator(runner: Optional[toolchain.ToolRunner] = None) -> Generator:
    """Return a generator that runs the JDK ``javadoc`` tool."""
    def _generate(doc_task: DocTask) -> bool:
        if not doc_task.source_files():
            log.warn(f"[{doc_task.project}] no java sources – nothing to document")
            return False
        options = write_options_file(doc_task)
        return toolchain.run_tool(
            ["javadoc", f"@{options}"],
            doc_task.source_dir,
            label=f"{doc_task.project}:javadoc",
            runner=runner,
        )
    return _generate


class DocPipeline:
    """Runs generation and then the post-processing chain of a ``DocTask``."""

    def __init__(
        self,
        generator: Optional[Generator] = None,
        env: Optional["BuildEnvironment"] = None,
    ) -> None:
        self.generator = generator or javadoc_generator()
        self.env = env

    def run(self, doc_task: DocTask) -> DocState:
        if doc_task.state is DocState.NOT_CONFIGURED:
            raise ConfigurationError(f"[{doc_task.project}] javadoc task is not configured")

        log.section(f"Javadoc  {doc_task.project}")
        if doc_task.output_dir.exists():
            shutil.rmtree(doc_task.output_dir)

        ok = self.generator(doc_task)
        if not ok or not doc_task.output_dir.is_dir():
            doc_task.state = DocState.FAILED
            raise GenerationFailure(f"[{doc_task.project}] javadoc generation failed")
        doc_task.state = DocState.GENERATED
        log.success(f"[{doc_task.project}] javadoc generated → {doc_task.output_dir}")

        ctx = HookContext(
            project_name = doc_task.project,
            output_dir   = doc_task.output_dir,
            source_dir   = doc_task.source_dir,
            module_name  = doc_task.module_name,
            env          = self.env,
            extra        = {"excludes": list(doc_task.options.excludes)},
        )
        for step in doc_task.post_process:
            ok, _, message = run_hooks("post-process", [step], ctx)
            if not ok:
                doc_task.state = DocState.FAILED
                raise PostProcessFailure(step.name, message or "step failed")
            doc_task.state = step.reaches
        return doc_task.state
