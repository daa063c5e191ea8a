"""
zcash_local_net/error.py

Errors associated with launching processes.
"""


class LaunchError(Exception):
    """
    A process exited before reaching its ready state.

    Carries the exit status and everything the process wrote to its
    stdout and stderr up to the exit.
    """

    def __init__(self, process_name: str, exit_status: int, stdout: str, stderr: str):
        super().__init__(process_name, exit_status, stdout, stderr)
        self.process_name = process_name
        self.exit_status = exit_status
        self.stdout = stdout
        self.stderr = stderr

    def __str__(self):
        return (
            f"{self.process_name} failed during launch.\n"
            f"Exit status: {self.exit_status}\n"
            f"Stdout: {self.stdout}\n"
            f"Stderr: {self.stderr}"
        )


class FatalLaunchError(RuntimeError):
    """
    A process reported a startup error but did not exit.

    The process is left running, waiting for it would hang forever.
    """

    def __init__(self, process_name: str, pid: int, stdout: str, stderr: str):
        super().__init__(process_name, pid, stdout, stderr)
        self.process_name = process_name
        self.pid = pid
        self.stdout = stdout
        self.stderr = stderr

    def __str__(self):
        return (
            f"{self.process_name} launch failed without reporting an error code!\n"
            f"You may have to shut the daemon down manually (pid {self.pid}).\n"
            f"Stdout: {self.stdout}\n"
            f"Stderr: {self.stderr}"
        )
