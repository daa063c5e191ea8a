"""
zcash_local_net/logs.py

Log files of launched processes and the console log of this package.

Each process gets its stdout and stderr pipes copied into `stdout.log`
and `stderr.log` by two background threads. A child writing to a pipe
nobody reads stalls once the pipe buffer is full, so the copy must run
for the whole lifetime of the process.
"""

import os
import threading
from datetime import datetime, timezone
from subprocess import Popen
from typing import BinaryIO, List, Optional

STDOUT_LOG = "stdout.log"
STDERR_LOG = "stderr.log"
LIGHTWALLETD_LOG = "lwd.log"

CHUNK_SIZE = 64 * 1024


def log(source: str, message: str):
    """Log a message to the console, tagged with its source"""
    now = (
        datetime.now(timezone.utc).replace(microsecond=0).strftime("%Y-%m-%d %H:%M:%S")
    )
    print(f"[{source.upper()} {now}] {message}")


def read_log(log_path: str) -> str:
    """Read the whole log file as text"""
    with open(log_path, "rb") as log_file:
        return log_file.read().decode("utf-8", errors="replace")


def print_log(log_path: str):
    """Print the whole log file to the console"""
    print(read_log(log_path))


def _copy_stream(pipe: BinaryIO, log_file: BinaryIO):
    """Copy `pipe` into `log_file` chunk by chunk until the pipe closes"""
    with pipe, log_file:
        for chunk in iter(lambda: pipe.read(CHUNK_SIZE), b""):
            log_file.write(chunk)


class LogTee:
    """
    Background copy of a process stdout and stderr into the logs directory.

    The log files exist once the constructor returns. The threads finish
    on their own when the process closes its pipes, `join` is only needed
    to be sure the last bytes of a dead process landed on disk.
    """

    def __init__(self, handle: Popen, logs_dir: str, name: str = "process"):
        if handle.stdout is None or handle.stderr is None:
            raise ValueError(f"{name} must be spawned with piped stdout and stderr")

        self._threads: List[threading.Thread] = []
        for pipe, filename in ((handle.stdout, STDOUT_LOG), (handle.stderr, STDERR_LOG)):
            # pylint: disable=consider-using-with
            log_file = open(os.path.join(logs_dir, filename), "wb", buffering=0)
            thread = threading.Thread(
                target=_copy_stream,
                args=(pipe, log_file),
                name=f"{name}-{filename}",
                daemon=True,
            )
            thread.start()
            self._threads.append(thread)

    @property
    def is_alive(self) -> bool:
        """Check if any of the copy threads is still running"""
        return any(thread.is_alive() for thread in self._threads)

    def join(self, timeout: Optional[float] = None):
        """Wait for both copy threads to finish, up to `timeout` seconds each"""
        for thread in self._threads:
            thread.join(timeout)


def write_logs(handle: Popen, logs_dir: str, name: str = "process") -> LogTee:
    """Start copying the pipes of `handle` into `logs_dir`"""
    return LogTee(handle, logs_dir, name)
