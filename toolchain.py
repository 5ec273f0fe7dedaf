"""
JDK tool helpers: resolve javac/javadoc/java from JAVA_HOME and run them.
"""
import os
import re
import shutil
import subprocess
import time
from pathlib import Path
from typing import Callable, Dict, List, Optional

import config as cfg
import logger as log

# ``(cmd, cwd, env) -> returncode``; swapped out in tests.
ToolRunner = Callable[[List[str], Path, Optional[Dict[str, str]]], int]


def build_env(java_home: Optional[str] = None) -> Optional[Dict[str, str]]:
    """
    Return a copy of os.environ with JAVA_HOME set and the JDK bin
    prepended to PATH, or None to inherit the ambient environment.
    """
    home = java_home or cfg.JAVA_HOME
    if not home:
        return None
    env = os.environ.copy()
    env["JAVA_HOME"] = str(home)
    env["PATH"] = str(Path(home) / "bin") + os.pathsep + env.get("PATH", "")
    return env


def tool_path(tool: str, env: Optional[Dict[str, str]] = None) -> str:
    """Resolve *tool* (``javac``, ``javadoc``, ``java``, ``gpg``) on the effective PATH."""
    effective_env = env if env is not None else os.environ
    found = shutil.which(tool, path=effective_env.get("PATH", os.environ.get("PATH", "")))
    return found or tool


def _subprocess_runner(cmd: List[str], cwd: Path, env: Optional[Dict[str, str]]) -> int:
    # stdout/stderr are not captured; they go straight to the terminal
    return subprocess.run(cmd, cwd=cwd, env=env).returncode


def run_tool(
    cmd: List[str],
    cwd: Path,
    *,
    label: str,
    env: Optional[Dict[str, str]] = None,
    runner: Optional[ToolRunner] = None,
) -> bool:
    """
    Run *cmd* inside *cwd*, streaming all output live.

    The first element is resolved against the PATH of *env* so the JDK
    selected through JAVA_HOME wins over whatever else is installed.
    Returns True on success, False on failure.
    """
    env = env if env is not None else build_env()
    cmd = [tool_path(cmd[0], env)] + list(cmd[1:])
    run = runner or _subprocess_runner

    shown = " ".join(cmd[:6]) + (" …" if len(cmd) > 6 else "")
    log.info(f"[{label}] running: {shown}  (in {cwd.name})")
    log.debug(f"[{label}] command: {' '.join(cmd)}")
    start = time.time()
    try:
        returncode = run(cmd, cwd, env)
    except FileNotFoundError:
        log.error(f"[{label}] '{cmd[0]}' not found – please install a JDK and add it to PATH.")
        return False

    elapsed = time.time() - start
    if returncode != 0:
        log.error(f"[{label}] failed after {log.duration(elapsed)} (exit {returncode})")
        return False

    log.success(f"[{label}] finished in {log.duration(elapsed)}")
    return True


_VERSION_RE = re.compile(r'version "([^"]+)"')


def java_version(env: Optional[Dict[str, str]] = None) -> Optional[str]:
    """
    Return the version string reported by ``java -version`` (e.g. ``17.0.8``),
    or None if no JDK is reachable.
    """
    env = env if env is not None else build_env()
    try:
        r = subprocess.run(
            [tool_path("java", env), "-version"],
            capture_output=True,
            text=True,
            env=env,
        )
    except FileNotFoundError:
        return None
    match = _VERSION_RE.search(r.stderr or r.stdout or "")
    return match.group(1) if match else None


def _quote(arg: str) -> str:
    return "'" + arg.replace("\\", "\\\\").replace("'", "\\'") + "'"


def write_argfile(path: Path, args: List[str]) -> Path:
    """
    Write *args* to an ``@argfile`` understood by javac and javadoc, one
    quoted argument per line.  Keeps long source lists off the command line.
    """
    path.parent.mkdir(parents=True, exist_ok=True)
    path.write_text("\n".join(_quote(a) for a in args) + "\n", encoding="utf-8")
    return path
