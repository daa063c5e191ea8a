"""
Tests for spawning a process, copying its output and waiting for it to be ready.
"""

import os
import sys
import time

import pytest

from zcash_local_net import Process
from zcash_local_net.error import FatalLaunchError, LaunchError
from zcash_local_net.launch import (
    ReadinessCriteria,
    ScratchDirs,
    launch_process,
    resolve_executable,
    spawn,
    wait,
    BIN_DIR_ENV,
    POLL_INTERVAL,
)
from zcash_local_net.logs import STDOUT_LOG, write_logs

CRITERIA = ReadinessCriteria(success_indicator="Server Ready.", error_indicator="Error:")


def python(script: str):
    """Arguments to run `script` with the current interpreter"""
    return sys.executable, ["-c", script]


def launch_script(spawned, logs_dir, script, criteria=CRITERIA):
    """Run `script` through `launch_process`, tracking the process"""
    executable, args = python(script)
    handle = launch_process(Process.ZAINOD, executable, args, str(logs_dir), criteria)
    spawned.append(handle)
    return handle


def test_ready_with_interleaved_output(spawned, tmp_path):
    """The success marker is found among unrelated output on both streams"""
    handle = launch_script(
        spawned,
        tmp_path,
        "import sys, time\n"
        "for i in range(50):\n"
        "    print(f'loading {i}', flush=True)\n"
        "    print(f'warning {i}', file=sys.stderr, flush=True)\n"
        "print('Server Ready.', flush=True)\n"
        "time.sleep(60)\n",
    )

    assert handle.poll() is None
    with open(tmp_path / STDOUT_LOG, "r", encoding="utf-8") as f:
        assert "Server Ready." in f.read()


def test_marker_split_across_writes(spawned, tmp_path):
    """The marker counts even when it reaches the log in two pieces"""
    handle = launch_script(
        spawned,
        tmp_path,
        "import sys, time\n"
        "sys.stdout.write('Server '); sys.stdout.flush()\n"
        "time.sleep(0.5)\n"
        "sys.stdout.write('Ready.\\n'); sys.stdout.flush()\n"
        "time.sleep(60)\n",
    )

    assert handle.poll() is None


def test_ready_within_one_poll_of_marker(spawned, tmp_path):
    """Waiting returns no later than one polling interval after the marker is written"""
    delay = 1.0
    slack = 0.3

    before = time.time()
    launch_script(
        spawned,
        tmp_path,
        "import time\n"
        f"time.sleep({delay})\n"
        "print(f'Server Ready. {time.time()}', flush=True)\n"
        "time.sleep(60)\n",
    )
    after = time.time()

    with open(tmp_path / STDOUT_LOG, "r", encoding="utf-8") as f:
        marker_time = float(f.read().split("Server Ready.")[1].split()[0])

    assert marker_time - before >= delay
    assert after - marker_time <= POLL_INTERVAL + slack


def test_exit_before_ready_captures_all_output(tmp_path):
    """A process exiting early raises LaunchError with everything it wrote"""
    executable, args = python(
        "import sys\n"
        "sys.stdout.write('starting\\nloading config\\n')\n"
        "sys.stderr.write('bad config\\n')\n"
        "sys.exit(3)\n"
    )

    with pytest.raises(LaunchError) as exc_info:
        launch_process(Process.ZAINOD, executable, args, str(tmp_path), CRITERIA)

    err = exc_info.value
    assert err.process_name == "zainod"
    assert err.exit_status == 3
    assert err.stdout == "starting\nloading config\n"
    assert err.stderr == "bad config\n"
    assert "zainod failed during launch" in str(err)


def test_exit_with_zero_before_ready(tmp_path):
    """A clean exit without the marker is still a failed launch"""
    executable, args = python("print('nothing to do')")

    with pytest.raises(LaunchError) as exc_info:
        launch_process(Process.ZCASHD, executable, args, str(tmp_path), CRITERIA)

    assert exc_info.value.exit_status == 0
    assert exc_info.value.stdout == "nothing to do\n"


def test_success_marker_on_stderr_is_ignored(tmp_path):
    """Only stdout (and the additional log) can signal readiness"""
    executable, args = python(
        "import sys, time\n"
        "print('Server Ready.', file=sys.stderr, flush=True)\n"
        "time.sleep(0.5)\n"
    )

    with pytest.raises(LaunchError) as exc_info:
        launch_process(Process.ZAINOD, executable, args, str(tmp_path), CRITERIA)

    assert exc_info.value.stderr == "Server Ready.\n"


@pytest.mark.parametrize("stream", ["stdout", "stderr"])
def test_error_marker_without_exit_aborts(spawned, tmp_path, stream):
    """An error marker while the process keeps running does not hang"""
    executable, args = python(
        "import sys, time\n"
        f"print('Error: cannot bind port', file=sys.{stream}, flush=True)\n"
        "time.sleep(600)\n"
    )
    handle = spawn(Process.ZAINOD, executable, args)
    spawned.append(handle)
    tee = write_logs(handle, str(tmp_path), "zainod")

    with pytest.raises(FatalLaunchError) as exc_info:
        wait(Process.ZAINOD, handle, str(tmp_path), CRITERIA, tee)

    assert not isinstance(exc_info.value, LaunchError)
    assert exc_info.value.pid == handle.pid
    assert "shut the daemon down manually" in str(exc_info.value)
    # the process is left for the caller
    assert handle.poll() is None


def test_ready_from_additional_log(spawned, tmp_path):
    """The success marker can come from a log file the process writes itself"""
    extra_log = tmp_path / "own.log"
    extra_log.touch()
    criteria = ReadinessCriteria(
        success_indicator="Server Ready.",
        error_indicator="Error:",
        additional_log_path=str(extra_log),
    )

    handle = launch_script(
        spawned,
        tmp_path,
        "import time\n"
        "print('not here', flush=True)\n"
        f"with open({str(extra_log)!r}, 'a') as f:\n"
        "    f.write('level=info Server Ready.\\n')\n"
        "time.sleep(60)\n",
        criteria,
    )

    assert handle.poll() is None


def test_large_output_does_not_block(spawned, tmp_path):
    """Output larger than a pipe buffer is drained while waiting"""
    handle = launch_script(
        spawned,
        tmp_path,
        "import sys, time\n"
        "line = 'x' * 1023 + '\\n'\n"
        "for _ in range(2048):\n"
        "    sys.stdout.write(line)\n"
        "    sys.stderr.write(line)\n"
        "sys.stdout.write('Server Ready.\\n'); sys.stdout.flush()\n"
        "time.sleep(60)\n",
    )

    assert handle.poll() is None
    assert os.path.getsize(tmp_path / STDOUT_LOG) >= 2048 * 1024


def test_scratch_dirs_cleanup():
    """All three directories exist until cleanup, which can run twice"""
    dirs = ScratchDirs("zcashd")
    assert all(os.path.isdir(path) for path in dirs.paths)
    assert len(set(dirs.paths)) == 3

    dirs.cleanup()
    dirs.cleanup()
    assert not any(os.path.exists(path) for path in dirs.paths)


def test_resolve_executable(tmp_path, monkeypatch):
    """Explicit path, then the bin dir variable, then $PATH"""
    binary = tmp_path / "zainod"
    binary.write_text("")

    assert resolve_executable("zainod", str(binary)) == str(binary)
    with pytest.raises(FileNotFoundError):
        resolve_executable("zainod", str(tmp_path / "missing"))

    monkeypatch.setenv(BIN_DIR_ENV, str(tmp_path))
    monkeypatch.setenv("PATH", "")
    assert resolve_executable("zainod") == str(binary)

    with pytest.raises(FileNotFoundError):
        resolve_executable("lightwalletd")
