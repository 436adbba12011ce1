"""Subprocess helpers shared by the engines."""

import os
import shlex
import signal
import subprocess
import sys
from pathlib import Path
from typing import Dict, List, Optional, Sequence

# Seconds the child group gets to exit after SIGINT, then after SIGTERM
INTERRUPT_GRACE = 5
TERMINATE_TIMEOUT = 10


def format_command(cmd: Sequence[str]) -> str:
    return " ".join(shlex.quote(str(part)) for part in cmd)


def echo_command(cmd: Sequence[str]) -> None:
    """Print a command the way a shell trace would, on stderr."""
    print(f"  $ {format_command(cmd)}", file=sys.stderr)


def signal_group(proc: subprocess.Popen, sig: int) -> None:
    try:
        os.killpg(proc.pid, sig)
    except ProcessLookupError:
        pass  # whole group already exited


def terminate_group(proc: subprocess.Popen) -> None:
    """Stop every process in proc's group: SIGINT, then SIGTERM, then SIGKILL.

    SIGTERM is always sent after the grace period, since grandchildren that
    ignore SIGINT (background jobs of a shell wrapper) outlive the leader.
    """
    signal_group(proc, signal.SIGINT)
    try:
        proc.wait(timeout=INTERRUPT_GRACE)
    except subprocess.TimeoutExpired:
        pass
    signal_group(proc, signal.SIGTERM)
    try:
        proc.wait(timeout=TERMINATE_TIMEOUT)
    except subprocess.TimeoutExpired:
        signal_group(proc, signal.SIGKILL)
        proc.wait()


def run_passthrough(
    cmd: List[str],
    cwd: Optional[Path] = None,
    env: Optional[Dict[str, str]] = None,
    echo: bool = False,
) -> int:
    """Run cmd with inherited stdin/stdout/stderr and return its exit code.

    The child leads its own session so that its whole process group (the
    wrapper script and the container client it starts) can be signalled
    together. On KeyboardInterrupt the group is terminated and the
    interrupt is re-raised to the caller.

    Raises:
        FileNotFoundError: If the executable does not exist
    """
    if echo:
        echo_command(cmd)
    merged_env = None
    if env:
        merged_env = os.environ.copy()
        merged_env.update(env)

    proc = subprocess.Popen(cmd, cwd=cwd, env=merged_env, start_new_session=True)
    try:
        return proc.wait()
    except KeyboardInterrupt:
        terminate_group(proc)
        raise


def run_capture(cmd: List[str], cwd: Optional[Path] = None, echo: bool = False) -> subprocess.CompletedProcess:
    """Run cmd capturing stdout as text; stderr is inherited."""
    if echo:
        echo_command(cmd)
    return subprocess.run(cmd, cwd=cwd, stdout=subprocess.PIPE, text=True)
