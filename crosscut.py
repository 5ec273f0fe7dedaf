"""
Cross-cutting setup applied to every library project.

Runs as an ``on_all_projects_ready`` callback, i.e. after every project
has finished declaring itself.  For each library project it

  1. builds the manifest and attaches it to the archive tasks
  2. puts the fixed lint flag set on the compile task
  3. wires coverage (``jacoco``): ``test`` is finalized by
     ``jacocoTestReport`` and drops old execution data before it runs
  4. creates the ``DocTask`` and its post-processing chain (docs only)
  5. wires ``sourcesJar`` / ``javadocJar`` / ``publish`` (``maven-publish``)

All projects are planned first; nothing is committed unless every plan
succeeded.  Committing is idempotent: tasks are looked up by name, options
and actions are replaced, edges and post-processing steps are de-duplicated.
"""
from __future__ import annotations

import os
from dataclasses import dataclass, field
from pathlib import Path
from typing import Dict, List, Optional, TYPE_CHECKING

import config as cfg
import fs
import logger as log
import publish as publishmod
import toolchain
from colorizer import colorize
from errors import ConfigurationError, TaskFailure
from java2html import render_sources
from javadoc import DocOptions, DocPipeline, DocState, DocTask, Generator, PostProcessStep, javadoc_generator
from manifest import ManifestAttributes, build_manifest_attributes
from signing import GpgSigner
from tasks import Task

if TYPE_CHECKING:
    from config import BuildEnvironment, LibraryIdentity
    from registry import Project, ProjectRegistry

# Explicit allow-list; a new category has to be added here on purpose.
LINT_CATEGORIES = (
    "unchecked",
    "rawtypes",
    "deprecation",
    "serial",
    "varargs",
    "module",
    "exports",
    "opens",
    "finally",
    "empty",
    "auxiliaryclass",
    "divzero",
    "try",
    "static",
    "classfile",
    "removal",
)

REPORT_FORMATS = ("html", "xml", "csv")

COMPILE    = "compileJava"
TEST       = "test"
COVERAGE   = "jacocoTestReport"
JAR        = "jar"
JAVADOC    = "javadoc"
SOURCES    = "sourcesJar"
DOCS_JAR   = "javadocJar"
PUBLISH    = "publish"


def compiler_args() -> List[str]:
    return [f"-Xlint:{','.join(LINT_CATEGORIES)}", "-encoding", "UTF-8"]


@dataclass
class ProjectPlan:
    """Everything setup will hang off one project, computed before committing."""
    project:      "Project"
    version:      str
    manifest:     ManifestAttributes
    compile_args: List[str]
    coverage:     bool
    doc_options:  Optional[DocOptions]
    publishes:    bool
    tokens:       Dict[str, str] = field(default_factory=dict)


class CrossCutSetup:
    """
    The ``on_all_projects_ready`` callback.

    runner, doc_generator, signer and uploader default to the real tools
    and are replaced in tests.
    """

    def __init__(
        self,
        identity: "LibraryIdentity",
        env: "BuildEnvironment",
        *,
        workspace: Path = cfg.WORKSPACE,
        runner: Optional[toolchain.ToolRunner] = None,
        doc_generator: Optional[Generator] = None,
        signer: Optional[GpgSigner] = None,
        uploader: Optional[publishmod.Uploader] = None,
        repository: Optional[str] = None,
        dry_run: bool = False,
    ) -> None:
        self.identity   = identity
        self.env        = env
        self.workspace  = workspace
        self.runner     = runner
        self.pipeline   = DocPipeline(doc_generator or javadoc_generator(runner), env)
        self.signer     = signer
        self.uploader   = uploader
        self.repository = repository
        self.dry_run    = dry_run

    def __call__(self, registry: "ProjectRegistry") -> None:
        plans = [self.plan(p) for p in registry.all() if p.is_library]
        for plan in plans:
            self.commit(plan)
        log.info(f"Cross-cutting setup applied to {len(plans)} library project(s)")

    # ── planning ───────────────────────────────────────────────────────────

    def plan(self, project: "Project") -> ProjectPlan:
        version = project.version or self.identity.version
        try:
            manifest = build_manifest_attributes(project, self.identity, self.env)
        except ValueError as exc:
            raise ConfigurationError(f"[{project.name}] {exc}") from exc

        return ProjectPlan(
            project      = project,
            version      = version,
            manifest     = manifest,
            compile_args = compiler_args(),
            coverage     = project.has_coverage,
            doc_options  = self.doc_options(project, version) if project.has_docs else None,
            publishes    = project.publishes,
            tokens       = publishmod.publish_tokens(self.identity, self.env, version),
        )

    def doc_options(self, project: "Project", version: str) -> DocOptions:
        resources = cfg.javadoc_resources(self.workspace)
        links: Dict[str, Path] = {}
        package_list = resources / "java.se"
        if package_list.is_dir():
            links[cfg.JAVA_SE_API_URL] = package_list
        else:
            log.warn(f"[{project.name}] no offline package list at {package_list} – JDK links disabled")

        stylesheet = resources / "stylesheet.css"
        return DocOptions(
            links_offline = links,
            window_title  = f"{self.identity.name} {version}",
            doc_title     = f"<h1>{project.name} {version}</h1>",
            bottom        = (
                f"&copy; {self.env.copyright_year} {self.identity.author} "
                f"&nbsp;<i>({self.env.build_date})</i>"
            ),
            stylesheet    = stylesheet if stylesheet.is_file() else None,
        )

    # ── committing ─────────────────────────────────────────────────────────

    def commit(self, plan: ProjectPlan) -> None:
        project = plan.project
        project.manifest = plan.manifest

        compile_task = self._register(project, COMPILE, "compile", "Compiles the main java sources")
        compile_task.options["args"] = list(plan.compile_args)
        compile_task.set_action(self._compile(project))

        test = self._register(project, TEST, "test", "Runs the project's test command")
        test.depends(COMPILE)
        test.set_action(self._test(project, plan.coverage))

        if plan.coverage:
            exec_file = self._exec_file(project)
            if exec_file not in test.clean_before:
                test.clean_before.append(exec_file)
            report = self._register(project, COVERAGE, "coverage", "Writes the coverage report")
            report.options["formats"] = list(REPORT_FORMATS)
            report.depends(TEST)
            report.set_action(self._coverage_report(project))
            test.finalize_with(COVERAGE)

        jar = self._register(project, JAR, "archive", "Assembles the jar of the main classes")
        jar.depends(COMPILE)
        jar.attributes = plan.manifest
        jar.set_action(self._jar(project, plan.version))

        if plan.doc_options is not None:
            self._wire_docs(project, plan.doc_options)

        if plan.publishes:
            self._wire_publishing(plan)

    def _register(self, project: "Project", name: str, kind: str, description: str) -> Task:
        return project.tasks.register(name, kind=kind, description=description)

    def _wire_docs(self, project: "Project", options: DocOptions) -> None:
        if project.doc_task is None:
            project.doc_task = DocTask(
                project     = project.name,
                source_dir  = project.source_dir,
                output_dir  = project.build_dir / "docs" / "javadoc",
                module_name = project.module_name,
            )
        doc_task = project.doc_task
        doc_task.configure(options)
        doc_task.add_post_process(PostProcessStep("colorizer", colorize, DocState.COLORIZED))
        doc_task.add_post_process(PostProcessStep("java2html", render_sources, DocState.SOURCE_RENDERED))

        javadoc = self._register(project, JAVADOC, "javadoc", "Generates and post-processes the API docs")
        javadoc.options["stages"] = doc_task.stages()
        javadoc.set_action(lambda task: self.pipeline.run(doc_task))

    def _wire_publishing(self, plan: ProjectPlan) -> None:
        project, version = plan.project, plan.version

        sources = self._register(project, SOURCES, "archive", "Assembles the sources jar")
        sources.attributes = plan.manifest
        sources.set_action(lambda task: publishmod.build_sources_jar(project, version, plan.tokens))

        publish = self._register(project, PUBLISH, "publish", "Signs and uploads the publication")
        publish.depends(JAR, SOURCES)

        if project.doc_task is not None:
            docs_jar = self._register(project, DOCS_JAR, "archive", "Assembles the javadoc jar")
            docs_jar.attributes = plan.manifest
            docs_jar.depends(JAVADOC)
            docs_jar.set_action(lambda task: publishmod.build_javadoc_jar(project, version, plan.tokens))
            publish.depends(DOCS_JAR)

        publish.options.update(repository=self.repository, dry_run=self.dry_run)
        publish.set_action(lambda task: publishmod.publish(
            project,
            version,
            identity    = self.identity,
            env         = self.env,
            repository  = self.repository,
            signer      = self.signer,
            uploader    = self.uploader,
            dry_run     = self.dry_run,
            package     = False,
        ))

    # ── actions ────────────────────────────────────────────────────────────

    def _exec_file(self, project: "Project") -> Path:
        return project.build_dir / "jacoco" / "test.exec"

    def _compile(self, project: "Project"):
        def _action(task: Task) -> None:
            sources = sorted(project.source_dir.rglob("*.java")) if project.source_dir.is_dir() else []
            if not sources:
                log.warn(f"[{project.name}] no java sources – nothing to compile")
                return
            argfile = toolchain.write_argfile(
                project.build_dir / "tmp" / COMPILE / "sources.txt",
                [str(s) for s in sources],
            )
            fs.ensure_dir(project.classes_dir)
            cmd = ["javac", "-d", str(project.classes_dir), *task.options["args"], f"@{argfile}"]
            if not toolchain.run_tool(cmd, project.directory, label=f"{project.name}:{COMPILE}",
                                      runner=self.runner):
                raise TaskFailure(task.name, f"[{project.name}] javac failed")
        return _action

    def _test(self, project: "Project", coverage: bool):
        def _action(task: Task) -> None:
            if not project.test_command:
                log.info(f"[{project.name}] no test command declared – nothing to run")
                return
            env = None
            if coverage:
                env = toolchain.build_env() or dict(os.environ)
                agent = cfg.jacoco_home(self.workspace) / "jacocoagent.jar"
                exec_file = self._exec_file(project)
                fs.ensure_dir(exec_file.parent)
                env["JAVA_TOOL_OPTIONS"] = f"-javaagent:{agent}=destfile={exec_file}"
            if not toolchain.run_tool(list(project.test_command), project.directory,
                                      label=f"{project.name}:{TEST}", env=env, runner=self.runner):
                raise TaskFailure(task.name, f"[{project.name}] tests failed")
        return _action

    def _coverage_report(self, project: "Project"):
        def _action(task: Task) -> None:
            exec_file = self._exec_file(project)
            if not exec_file.is_file():
                log.warn(f"[{project.name}] no coverage data at {exec_file} – report skipped")
                return
            reports = project.build_dir / "reports" / "jacoco"
            cli = cfg.jacoco_home(self.workspace) / "jacococli.jar"
            cmd = [
                "java", "-jar", str(cli), "report", str(exec_file),
                "--classfiles",  str(project.classes_dir),
                "--sourcefiles", str(project.source_dir),
            ]
            for fmt in task.options["formats"]:
                target = reports / "html" if fmt == "html" else reports / f"{COVERAGE}.{fmt}"
                cmd += [f"--{fmt}", str(target)]
            fs.ensure_dir(reports)
            if not toolchain.run_tool(cmd, project.directory, label=f"{project.name}:{COVERAGE}",
                                      runner=self.runner):
                raise TaskFailure(task.name, f"[{project.name}] coverage report failed")
        return _action

    def _jar(self, project: "Project", version: str):
        def _action(task: Task) -> None:
            entries = fs.collect_tree(project.classes_dir) + fs.collect_tree(project.resources_dir)
            fs.write_jar(
                project.libs_dir / publishmod.artifact_name(project, version),
                entries,
                manifest=task.attributes,
            )
        return _action


def apply_cross_cutting_setup(
    registry: "ProjectRegistry",
    identity: "LibraryIdentity",
    env: "BuildEnvironment",
    **options,
) -> CrossCutSetup:
    """Run setup over *registry* right away; returns the setup object used."""
    setup = CrossCutSetup(identity, env, **options)
    setup(registry)
    return setup
