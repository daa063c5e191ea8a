"""
zcash_local_net/base.py

Define a base class for a launched process (e.g. zcashd, zainod and
lightwalletd) that owns the child process, its port and its scratch
directories.
"""

import os
from abc import ABC, abstractmethod
from subprocess import Popen, TimeoutExpired

from zcash_local_net import Process, network
from zcash_local_net.launch import ScratchDirs
from zcash_local_net.logs import STDERR_LOG, STDOUT_LOG, log, print_log

# How long a killed process gets to be reaped
KILL_TIMEOUT = 10  # seconds


class BaseProcess(ABC):
    """
    Base class for managing a launched process.

    An instance is created only once its process is ready, and launches
    exactly one process for its whole life. `stop` applies the process
    specific stop policy and can be called any number of times. `close`
    stops the process, then deletes the scratch directories and gives the
    port back. It runs when leaving a `with` block and when the instance
    is garbage collected, so a dropped instance does not leak its child.
    """

    PROCESS: Process

    def __init__(self, handle: Popen, port: int, dirs: ScratchDirs):
        self._handle: Popen = handle
        self._port: int = port
        self._dirs: ScratchDirs = dirs
        self._stopped: bool = False
        self._closed: bool = False

    # pylint: disable=R0801
    def log(self, message: str):
        """Log a message to the console"""
        log(self.__class__.__name__, message)

    @property
    def handle(self) -> Popen:
        """Getter for `handle` property"""
        return self._handle

    @property
    def port(self) -> int:
        """Getter for `port` property"""
        return self._port

    @property
    def config_dir(self) -> str:
        """Getter for `config_dir` property"""
        return self._dirs.config

    @property
    def logs_dir(self) -> str:
        """Getter for `logs_dir` property"""
        return self._dirs.logs

    @property
    def data_dir(self) -> str:
        """Getter for `data_dir` property"""
        return self._dirs.data

    @property
    def config_path(self) -> str:
        """Path to the config file of the process"""
        return os.path.join(self.config_dir, self.PROCESS.config_filename)

    @property
    def is_running(self) -> bool:
        """Check if the process is running"""
        return self._handle.poll() is None

    @property
    def is_stopped(self) -> bool:
        """Check if `stop` already ran"""
        return self._stopped

    def stop(self):
        """
        Stop the process. Calls after the first one do nothing.

        Failures are logged, never raised: stopping is a best-effort cleanup.
        """
        if self._stopped:
            return
        self._stopped = True

        if not self.is_running:
            self.log(f"{self.PROCESS} already exited ({self._handle.returncode})")
            return

        self._stop_process()

    @abstractmethod
    def _stop_process(self):
        """
        Stop the running process with the process specific policy.
        """

    def kill(self):
        """
        Send SIGKILL to the process and reap it.
        """
        try:
            self._handle.kill()
        except OSError as exc:
            self.log(f"{self.PROCESS} has already terminated: {exc}")
            return

        try:
            self._handle.wait(timeout=KILL_TIMEOUT)
        except TimeoutExpired:
            self.log(f"{self.PROCESS} (pid {self._handle.pid}) did not die after SIGKILL")
            return

        self.log(f"{self.PROCESS} killed")

    def close(self):
        """
        Stop the process, then delete its scratch directories and release its port.
        """
        if self._closed:
            return
        self._closed = True

        try:
            self.stop()
        finally:
            self._dirs.cleanup()
            network.release_port(self._port)

    def __enter__(self):
        return self

    def __exit__(self, exc_type, exc_value, traceback):
        self.close()

    def __del__(self):
        # __init__ may not have run to the end
        if getattr(self, "_closed", True):
            return
        self.close()

    def print_stdout(self):
        """Prints the stdout log"""
        print_log(os.path.join(self.logs_dir, STDOUT_LOG))

    def print_stderr(self):
        """Prints the stderr log"""
        print_log(os.path.join(self.logs_dir, STDERR_LOG))
