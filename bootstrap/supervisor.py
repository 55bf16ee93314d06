"""
supervisor.py
-------------
Starts the proxy and tunnel binaries as detached background processes.

Launch and observation are separate: the launcher never waits on what it
starts, while find_processes/is_alive let an operator poll liveness
afterwards with psutil (no PID file needed).
"""

from __future__ import annotations

import logging
import os
import signal
import subprocess
from pathlib import Path
from typing import Callable, Sequence

import psutil

from bootstrap.models import LaunchedProcess, SupervisedProcess

logger = logging.getLogger(__name__)


class ProcessSupervisor:
    """
    Launches processes in their own session so they outlive the orchestrator.

    Args:
        popen (Callable): Process factory, ``subprocess.Popen`` unless replaced in tests.
    """

    def __init__(self, popen: Callable[..., subprocess.Popen] = subprocess.Popen):
        self._popen = popen
        self.launched: list[LaunchedProcess] = []

    def launch(self, spec: SupervisedProcess) -> LaunchedProcess:
        """
        Start ``spec`` and return immediately.
        Errors of the launch itself (missing binary, permission denied) propagate.
        """
        logger.info(f"Starting {spec.name}: {' '.join(spec.command)}")
        if spec.log_file is None:
            proc = self._popen(
                spec.command,
                stdin=subprocess.DEVNULL,
                stdout=subprocess.DEVNULL,
                stderr=subprocess.DEVNULL,
                close_fds=True,
                start_new_session=spec.detached,
            )
        else:
            spec.log_file.parent.mkdir(parents=True, exist_ok=True)
            # The child keeps its own copy of the descriptor
            with open(spec.log_file, "ab") as out:
                proc = self._popen(
                    spec.command,
                    stdin=subprocess.DEVNULL,
                    stdout=out,
                    stderr=out,
                    close_fds=True,
                    start_new_session=spec.detached,
                )
        handle = LaunchedProcess(spec=spec, pid=proc.pid)
        self.launched.append(handle)
        logger.info(f"{spec.name} started with PID {proc.pid}")
        return handle

    def launch_silent(self, name: str, binary: Path, args: Sequence[str]) -> LaunchedProcess:
        return self.launch(SupervisedProcess(name=name, binary=binary, args=tuple(args)))

    def launch_logged(self, name: str, binary: Path, args: Sequence[str], log_file: Path) -> LaunchedProcess:
        return self.launch(SupervisedProcess(name=name, binary=binary, args=tuple(args), log_file=log_file))

    def terminate_launched(self) -> list[int]:
        """Send SIGTERM to every process started here, newest first."""
        signalled = []
        for handle in reversed(self.launched):
            if _send(handle.pid, signal.SIGTERM):
                logger.warning(f"Terminated {handle.spec.name} (PID {handle.pid})")
                signalled.append(handle.pid)
        self.launched.clear()
        return signalled


# ---------------------------------------------------------------------------
# liveness probe


def find_processes(work_dir: Path, names: Sequence[str] = ("sing-box", "cloudflared")) -> dict[str, list[int]]:
    """Pids of running processes whose executable is one of ``names`` inside ``work_dir``."""
    binaries = {str(Path(work_dir).resolve() / name): name for name in names}
    found: dict[str, list[int]] = {name: [] for name in names}
    for proc in psutil.process_iter(['pid', 'cmdline']):
        try:
            cmdline = proc.info['cmdline']
            if cmdline and os.path.isabs(cmdline[0]):
                name = binaries.get(os.path.realpath(cmdline[0]))
                if name:
                    found[name].append(proc.pid)
        except (psutil.NoSuchProcess, psutil.AccessDenied):
            continue
    return found


def is_alive(pid: int) -> bool:
    try:
        return psutil.Process(pid).status() != psutil.STATUS_ZOMBIE
    except psutil.NoSuchProcess:
        return False
    except psutil.AccessDenied:
        return True


def _send(pid: int, sig: int) -> bool:
    try:
        os.kill(pid, sig)
        return True
    except ProcessLookupError:
        return False


__all__ = ["ProcessSupervisor", "find_processes", "is_alive"]
