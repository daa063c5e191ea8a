"""
zcash_local_net/launch.py

Spawning a process and waiting for it to become ready.

A process is considered ready when its success marker shows up in the
captured stdout (or in an additional log file). It failed if it exits
before that, or if its error marker shows up while it keeps running.
"""

import os
import shutil
import tempfile
import time
from contextlib import ExitStack
from subprocess import Popen, PIPE
from typing import List, NamedTuple, Optional

from zcash_local_net import Process
from zcash_local_net.error import FatalLaunchError, LaunchError
from zcash_local_net.logs import STDERR_LOG, STDOUT_LOG, LogTee, log, write_logs

POLL_INTERVAL = 0.1  # seconds

# How long the log copy of a dead process gets to flush
TEE_JOIN_TIMEOUT = 5  # seconds

BIN_DIR_ENV = "ZCASH_LOCAL_NET_BIN_DIR"


class ReadinessCriteria(NamedTuple):
    """
    What to look for in the logs of a starting process.
    """

    success_indicator: str
    error_indicator: str
    additional_log_path: Optional[str] = None


class ScratchDirs:
    """
    Temporary data, logs and config directories of a single process.
    """

    def __init__(self, name: str):
        self.data = tempfile.mkdtemp(prefix=f"{name}-data-")
        self.logs = tempfile.mkdtemp(prefix=f"{name}-logs-")
        self.config = tempfile.mkdtemp(prefix=f"{name}-config-")

    @property
    def paths(self) -> List[str]:
        """All scratch directories"""
        return [self.data, self.logs, self.config]

    def cleanup(self):
        """Delete all scratch directories. Safe to call more than once."""
        for path in self.paths:
            shutil.rmtree(path, ignore_errors=True)


def resolve_executable(name: str, path: Optional[str] = None) -> str:
    """
    Find the executable for `name`.

    An explicit `path` wins, then `$ZCASH_LOCAL_NET_BIN_DIR/<name>`, then
    a lookup on $PATH. Raises FileNotFoundError if none of them exists.
    """
    if path is not None:
        if not os.path.exists(path):
            raise FileNotFoundError(f"Executable path {path} does not exist")
        return path

    bin_dir = os.getenv(BIN_DIR_ENV)
    if bin_dir is not None:
        candidate = os.path.join(bin_dir, name)
        if os.path.exists(candidate):
            return candidate

    found = shutil.which(name)
    if found is None:
        raise FileNotFoundError(
            f"{name} not found. Put it on $PATH, set {BIN_DIR_ENV} "
            "or give its path in the process config."
        )
    return found


def spawn(process: Process, executable: str, args: List[str]) -> Popen:
    """
    Spawn `executable` with both output streams piped and unbuffered.
    """
    cmd = [executable] + args
    log(str(process), f"Starting '{process}': {' '.join(cmd)}")

    # pylint: disable=consider-using-with
    return Popen(cmd, stdin=None, stdout=PIPE, stderr=PIPE, bufsize=0)


class _LogFollower:
    """Reads a log file incrementally, keeping everything read so far"""

    def __init__(self, log_file):
        self._log_file = log_file
        self.content = b""

    def read(self) -> bytes:
        """Append whatever was written since the last read and return it all"""
        self.content += self._log_file.read()
        return self.content

    @property
    def text(self) -> str:
        """Everything read so far, as text"""
        return self.content.decode("utf-8", errors="replace")


# pylint: disable=too-many-locals
def wait(
    process: Process,
    handle: Popen,
    logs_dir: str,
    criteria: ReadinessCriteria,
    tee: Optional[LogTee] = None,
):
    """
    Block until `handle` is ready, polling its logs every POLL_INTERVAL.

    Raises LaunchError if the process exits before being ready and
    FatalLaunchError if it logs its error marker without exiting. There
    is no timeout.
    """
    success = criteria.success_indicator.encode()
    error = criteria.error_indicator.encode()

    with ExitStack() as stack:
        # pylint: disable=consider-using-with
        stdout = _LogFollower(
            stack.enter_context(open(os.path.join(logs_dir, STDOUT_LOG), "rb"))
        )
        stderr = _LogFollower(
            stack.enter_context(open(os.path.join(logs_dir, STDERR_LOG), "rb"))
        )
        additional = None
        if criteria.additional_log_path is not None:
            additional = _LogFollower(
                stack.enter_context(open(criteria.additional_log_path, "rb"))
            )

        while True:
            exit_status = handle.poll()
            if exit_status is not None:
                if tee is not None:
                    tee.join(TEE_JOIN_TIMEOUT)
                stdout.read()
                stderr.read()
                raise LaunchError(
                    process_name=str(process),
                    exit_status=exit_status,
                    stdout=stdout.text,
                    stderr=stderr.text,
                )

            stdout.read()
            stderr.read()
            if error in stdout.content or error in stderr.content:
                raise FatalLaunchError(
                    process_name=str(process),
                    pid=handle.pid,
                    stdout=stdout.text,
                    stderr=stderr.text,
                )

            if success in stdout.content:
                break

            if additional is not None and success in additional.read():
                break

            time.sleep(POLL_INTERVAL)

    log(str(process), f"'{process}' is ready (pid {handle.pid})")


def launch_process(
    process: Process,
    executable: str,
    args: List[str],
    logs_dir: str,
    criteria: ReadinessCriteria,
) -> Popen:
    """
    Spawn `executable`, copy its output into `logs_dir` and wait until it is ready.

    On error the process is not killed: after a LaunchError it already
    exited, after a FatalLaunchError it is up to the caller.
    """
    handle = spawn(process, executable, args)
    tee = write_logs(handle, logs_dir, str(process))
    wait(process, handle, logs_dir, criteria, tee)
    return handle
