"""
Pytest configuration and fixtures for process testing.

Most tests run against small Python stand-ins for zcashd, zcash-cli,
zainod and lightwalletd (see tests/stubs) installed as executables in a
temporary bin directory. Tests marked `integration` need the real
binaries and are skipped when they cannot be found.
"""

# pylint: disable=redefined-outer-name

import os
import signal
import stat
import sys
import contextlib
from subprocess import Popen
from typing import List

import pytest

from zcash_local_net.launch import BIN_DIR_ENV, resolve_executable
from zcash_local_net.validator import Zcashd, ZcashdConfig

STUBS_DIR = os.path.join(os.path.dirname(__file__), "stubs")

STUBS = {
    "zcashd": "zcashd.py",
    "zcash-cli": "zcash_cli.py",
    "zainod": "zainod.py",
    "lightwalletd": "lightwalletd.py",
}


def install_stub(bin_dir: str, name: str, source: str) -> str:
    """Copy a stub into `bin_dir` as an executable called `name`"""
    with open(os.path.join(STUBS_DIR, source), "r", encoding="utf-8") as f:
        code = f.read()

    path = os.path.join(bin_dir, name)
    with open(path, "w", encoding="utf-8") as f:
        f.write(f"#!{sys.executable}\n{code}")
    os.chmod(path, os.stat(path).st_mode | stat.S_IXUSR | stat.S_IXGRP | stat.S_IXOTH)
    return path


def kill_pid(pid: int):
    """Kill a process left running on purpose by a failed launch"""
    with contextlib.suppress(ProcessLookupError):
        os.kill(pid, signal.SIGKILL)


@pytest.fixture
def stub_bin_dir(tmp_path, monkeypatch) -> str:
    """Bin directory holding all stubs, used for binary lookup"""
    bin_dir = tmp_path / "bin"
    bin_dir.mkdir()
    for name, source in STUBS.items():
        install_stub(str(bin_dir), name, source)

    monkeypatch.setenv(BIN_DIR_ENV, str(bin_dir))
    monkeypatch.delenv("STUB_MODE", raising=False)
    monkeypatch.delenv("STUB_CLI_MODE", raising=False)
    return str(bin_dir)


@pytest.fixture
def zcashd(stub_bin_dir):
    """A stub zcashd launched with default configurations, closed after the test"""
    node = Zcashd.launch(ZcashdConfig())
    yield node
    node.close()


@pytest.fixture
def spawned():
    """Collects processes spawned by a test and kills them afterwards"""
    handles: List[Popen] = []
    yield handles
    for handle in handles:
        if handle.poll() is None:
            handle.kill()
            handle.wait()


@pytest.fixture
def require_binaries():
    """Skip the test unless the given real binaries can be found"""

    def _require(*names: str):
        for name in names:
            try:
                resolve_executable(name)
            except FileNotFoundError:
                pytest.skip(f"{name} binary not found")

    return _require
