"""
Tests for the log copy of a process output.
"""

import sys
from subprocess import Popen, PIPE

import pytest

from zcash_local_net.logs import STDERR_LOG, STDOUT_LOG, log, print_log, write_logs


def test_write_logs(tmp_path):
    """Both streams end up in their own file"""
    # pylint: disable=consider-using-with
    handle = Popen(
        [
            sys.executable,
            "-c",
            "import sys; sys.stdout.write('out\\n'); sys.stderr.write('err\\n')",
        ],
        stdout=PIPE,
        stderr=PIPE,
        bufsize=0,
    )
    tee = write_logs(handle, str(tmp_path), "writer")

    # files exist as soon as the copy starts
    assert (tmp_path / STDOUT_LOG).exists()
    assert (tmp_path / STDERR_LOG).exists()

    handle.wait()
    tee.join(5)

    assert not tee.is_alive
    assert (tmp_path / STDOUT_LOG).read_bytes() == b"out\n"
    assert (tmp_path / STDERR_LOG).read_bytes() == b"err\n"


def test_write_logs_needs_pipes(tmp_path):
    """A process without piped output cannot be copied"""
    with Popen([sys.executable, "-c", "pass"]) as handle:
        with pytest.raises(ValueError):
            write_logs(handle, str(tmp_path), "writer")


def test_print_log(tmp_path, capsys):
    """A log file is printed whole"""
    path = tmp_path / STDOUT_LOG
    path.write_text("line 1\nline 2\n", encoding="utf-8")

    print_log(str(path))

    assert capsys.readouterr().out == "line 1\nline 2\n\n"


def test_log_format(capsys):
    """Console messages are tagged with their source"""
    log("zcashd", "hello")

    out = capsys.readouterr().out
    assert out.startswith("[ZCASHD ")
    assert out.endswith("] hello\n")
