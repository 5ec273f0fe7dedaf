#!/usr/bin/env python3
"""
Lattices Build CLI
==================

Usage examples
--------------
  python build.py build                              # compile, test, jar and javadoc for every project
  python build.py build --skip-tests                 # same, without running the tests
  python build.py build --tasks compileJava,jar      # only the named tasks (plus their dependencies)
  python build.py build --jobs 4                     # up to 4 projects at the same time
  python build.py docs                               # javadoc + colorizer + java2html
  python build.py publish                            # sign and upload every publishing project
  python build.py publish --dry-run                  # package and sign, but do not upload
  python build.py publish --repository file:///tmp/repo
  python build.py projects                           # declared projects and their capabilities
  python build.py tasks lattices                     # task graph of one project
  python build.py info                               # resolved paths, identity and environment
  python build.py clean                              # delete every project's build directory

The workspace defaults to the current directory; set LATTICES_WORKSPACE to
build somewhere else.
"""

import argparse
import os
import sys
from pathlib import Path

# ── make sure local modules are importable when run as a script ──────────────
sys.path.insert(0, os.path.dirname(__file__))

import config as cfg
import fs
import logger as log
import runner
from errors import BuildError
from registry import Project


# ─────────────────────────────────────────────────────────────────────────────
# Helpers
# ─────────────────────────────────────────────────────────────────────────────

def _workspace(args: argparse.Namespace) -> Path:
    return Path(args.workspace).resolve() if getattr(args, "workspace", None) else cfg.WORKSPACE


def _run(tasks, args: argparse.Namespace, **setup_options) -> int:
    try:
        result = runner.orchestrate(
            tasks,
            workspace  = _workspace(args),
            jobs       = getattr(args, "jobs", cfg.DEFAULT_JOBS),
            skip_tests = getattr(args, "skip_tests", False),
            **setup_options,
        )
    except BuildError as exc:
        log.error(f"Build aborted: {exc}")
        return 2
    return result.exit_code


def _mark(flag: bool) -> str:
    return "✔" if flag else "–"


# ─────────────────────────────────────────────────────────────────────────────
# Commands
# ─────────────────────────────────────────────────────────────────────────────

def cmd_build(args: argparse.Namespace) -> int:
    """Run the build tasks (or the ones given with --tasks) for every project."""
    tasks = [t.strip() for t in args.tasks.split(",") if t.strip()] if args.tasks else runner.BUILD_TASKS
    return _run(tasks, args)


def cmd_docs(args: argparse.Namespace) -> int:
    """Generate and post-process the API documentation."""
    return _run(runner.DOCS_TASKS, args)


def cmd_publish(args: argparse.Namespace) -> int:
    """Package, sign and upload every project that applies maven-publish."""
    return _run(
        runner.PUBLISH_TASKS,
        args,
        repository = args.repository,
        dry_run    = args.dry_run,
    )


def cmd_projects(args: argparse.Namespace) -> int:
    """List the declared projects and the capabilities derived from their plugins."""
    try:
        registry, _ = runner.configure(workspace=_workspace(args))
    except BuildError as exc:
        log.error(str(exc))
        return 2

    rows = []
    for project in registry.all():
        rows.append([
            project.name,
            project.version or "(library)",
            project.module_name or "",
            _mark(project.is_library),
            _mark(project.has_docs),
            _mark(project.publishes),
            _mark(project.has_coverage),
        ])
    log.table(
        f"Projects ({len(registry)})",
        ["Project", "Version", "Module", "Library", "Docs", "Publishes", "Coverage"],
        rows,
    )
    return 0


def cmd_tasks(args: argparse.Namespace) -> int:
    """Show the task graph of one project."""
    try:
        registry, _ = runner.configure(workspace=_workspace(args))
    except BuildError as exc:
        log.error(str(exc))
        return 2

    project = registry.get(args.project)
    if project is None:
        log.error(f"Unknown project: {args.project}")
        return 1

    rows = [
        [t.name, t.kind, ", ".join(t.depends_on), ", ".join(t.finalized_by), t.description]
        for t in project.tasks
    ]
    log.table(
        f"Tasks of {project.name}",
        ["Task", "Kind", "Depends on", "Finalized by", "Description"],
        rows,
    )
    if project.doc_task is not None:
        log.info(f"Doc chain: {' → '.join(project.doc_task.stages())}")
    else:
        log.info("Doc chain: none (project has no javadoc task)")
    return 0


def cmd_info(args: argparse.Namespace) -> int:
    """Print resolved paths, the library identity and the build environment."""
    workspace = _workspace(args)
    log.banner("Build Configuration")
    try:
        identity = cfg.load_identity(workspace)
    except BuildError as exc:
        log.error(str(exc))
        return 2
    env = cfg.capture_environment(inception_year=identity.inception_year)

    paths = {
        "Workspace":         workspace,
        "Build resources":   cfg.build_src_dir(workspace),
        "Javadoc resources": cfg.javadoc_resources(workspace),
        "JaCoCo home":       cfg.jacoco_home(workspace),
    }
    for label, path in paths.items():
        exists = "✔" if path.exists() else "✖"
        log.info(f"{exists}  {label:<18} {path}")
    print()

    log.info(f"   {'Library':<18} {identity.group}:{identity.id}:{identity.version}")
    log.info(f"   {'Snapshot repo':<18} {identity.snapshot_url}")
    log.info(f"   {'Release repo':<18} {identity.release_url}")
    log.info(f"   {'JAVA_HOME':<18} {cfg.JAVA_HOME or 'ambient (not configured)'}")
    log.info(f"   {'Build JDK':<18} {env.build_jdk}")
    log.info(f"   {'Build OS':<18} {env.os_name} {env.os_version} ({env.os_arch})")
    log.info(f"   {'Built by':<18} {env.built_by}")
    log.info(f"   {'Copyright':<18} {env.copyright_year}")
    print()

    try:
        dirs = cfg.scan_projects(workspace)
    except BuildError as exc:
        log.error(str(exc))
        return 2
    log.info(f"Discovered projects ({len(dirs)}):")
    for d in dirs:
        log.info(f"     {d.name:<24} {d}")
    return 0


def cmd_clean(args: argparse.Namespace) -> int:
    """Delete the build directory of every project."""
    workspace = _workspace(args)
    try:
        dirs = cfg.scan_projects(workspace)
        projects = [Project.load(d) for d in dirs]
    except BuildError as exc:
        log.error(str(exc))
        return 2
    for project in projects:
        fs.clean_dir(project.build_dir)
    log.success(f"Cleaned {len(projects)} project(s)")
    return 0


# ─────────────────────────────────────────────────────────────────────────────
# Parser
# ─────────────────────────────────────────────────────────────────────────────

def _add_common_args(parser: argparse.ArgumentParser) -> None:
    parser.add_argument("--workspace", metavar="DIR", default=None,
        help="Workspace root (default: $LATTICES_WORKSPACE or the current directory)")


def _add_jobs_arg(parser: argparse.ArgumentParser) -> None:
    parser.add_argument("--jobs", "-j", metavar="N", type=int, default=cfg.DEFAULT_JOBS,
        help="Number of projects built at the same time (default: 1)")


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        prog="build",
        description="Lattices Build Automation CLI",
        formatter_class=argparse.RawDescriptionHelpFormatter,
        epilog=__doc__,
    )
    parser.add_argument("--version", action="version", version="lattices-build 1.0.0")

    sub = parser.add_subparsers(dest="command", metavar="<command>")
    sub.required = True

    # ── build ─────────────────────────────────────────────────────────────────
    p_build = sub.add_parser("build", help="Compile, test, package and document every project")
    p_build.add_argument("--tasks", metavar="T,...", default=None,
        help="Comma-separated task names to run instead of the default set")
    p_build.add_argument("--skip-tests", action="store_true", dest="skip_tests",
        help="Do not run tests (and hence no coverage report)")
    p_build.add_argument("--verbose", "-v", action="store_true",
        help="Also print debug lines, such as full tool command lines")
    _add_jobs_arg(p_build)
    _add_common_args(p_build)
    p_build.set_defaults(func=cmd_build)

    # ── docs ──────────────────────────────────────────────────────────────────
    p_docs = sub.add_parser("docs", help="Generate javadoc and run the post-processing chain")
    p_docs.add_argument("--verbose", "-v", action="store_true")
    _add_jobs_arg(p_docs)
    _add_common_args(p_docs)
    p_docs.set_defaults(func=cmd_docs)

    # ── publish ───────────────────────────────────────────────────────────────
    p_pub = sub.add_parser("publish", help="Sign and upload the publications")
    p_pub.add_argument("--dry-run", action="store_true", dest="dry_run",
        help="Package and sign, but do not upload")
    p_pub.add_argument("--repository", metavar="URL", default=None,
        help="Upload here instead of the snapshot/release repository")
    p_pub.add_argument("--verbose", "-v", action="store_true")
    _add_common_args(p_pub)
    p_pub.set_defaults(func=cmd_publish)

    # ── projects / tasks ──────────────────────────────────────────────────────
    p_projects = sub.add_parser("projects", help="List declared projects and capabilities")
    _add_common_args(p_projects)
    p_projects.set_defaults(func=cmd_projects)

    p_tasks = sub.add_parser("tasks", help="Show the task graph of a project")
    p_tasks.add_argument("project", metavar="PROJECT")
    _add_common_args(p_tasks)
    p_tasks.set_defaults(func=cmd_tasks)

    # ── info / clean ──────────────────────────────────────────────────────────
    p_info = sub.add_parser("info", help="Print resolved paths, identity and environment")
    _add_common_args(p_info)
    p_info.set_defaults(func=cmd_info)

    p_clean = sub.add_parser("clean", help="Delete every project's build directory")
    _add_common_args(p_clean)
    p_clean.set_defaults(func=cmd_clean)

    return parser


# ─────────────────────────────────────────────────────────────────────────────
# Entry point
# ─────────────────────────────────────────────────────────────────────────────

def main(argv=None) -> int:
    parser = build_parser()
    args = parser.parse_args(argv)
    log.set_verbose(getattr(args, "verbose", False))
    return args.func(args)


if __name__ == "__main__":
    sys.exit(main())
