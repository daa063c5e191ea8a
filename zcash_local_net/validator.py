"""
zcash_local_net/validator.py

Classes that represent and manage the validator/full-node processes, i.e. zcashd.
"""

import subprocess
import time
from abc import abstractmethod
from typing import Optional

from zcash_local_net import Process, config, network
from zcash_local_net.base import BaseProcess
from zcash_local_net.launch import (
    ReadinessCriteria,
    ScratchDirs,
    launch_process,
    resolve_executable,
)

# Pause after mining the genesis block, before handing zcashd out
GENESIS_DELAY = 1  # seconds

# How long zcashd gets to exit after `zcash-cli stop`
STOP_TIMEOUT = 60  # seconds

ZCASHD_CRITERIA = ReadinessCriteria(
    success_indicator="init message: Done loading",
    error_indicator="Error:",
)


# pylint: disable=too-few-public-methods too-many-arguments
class ZcashdConfig:
    """
    Zcashd configuration

    Use `zcashd_bin` and `zcash_cli_bin` to specify the paths to the binaries.
    If they are None, "zcashd" / "zcash-cli" are looked up on
    `$ZCASH_LOCAL_NET_BIN_DIR` and $PATH.

    Use `rpc_port` to specify a port for zcashd. Otherwise, a port is
    picked at random between 15000-25000.

    Use `activation_heights` to specify custom network upgrade activation heights.

    Use `miner_address` to specify the target address for the block
    rewards when blocks are generated.
    """

    def __init__(
        self,
        zcashd_bin: Optional[str] = None,
        zcash_cli_bin: Optional[str] = None,
        rpc_port: Optional[int] = None,
        activation_heights: Optional[network.ActivationHeights] = None,
        miner_address: Optional[str] = None,
    ):
        self.zcashd_bin = zcashd_bin
        self.zcash_cli_bin = zcash_cli_bin
        self.rpc_port = rpc_port
        self.activation_heights = activation_heights or network.ActivationHeights()
        self.miner_address = miner_address


class Validator(BaseProcess):
    """
    Functionality for validator/full-node processes.
    """

    @abstractmethod
    def generate_blocks(self, n: int) -> subprocess.CompletedProcess:
        """
        Generate `n` blocks.
        """


class Zcashd(Validator):
    """
    Represent and manage a zcashd process running in regtest mode.

    Launch it with `Zcashd.launch(ZcashdConfig(...))`. The returned
    instance already mined the genesis block.
    """

    PROCESS = Process.ZCASHD

    def __init__(
        self,
        handle: subprocess.Popen,
        port: int,
        dirs: ScratchDirs,
        zcash_cli_bin: Optional[str] = None,
    ):
        super().__init__(handle, port, dirs)
        self._zcash_cli_bin: Optional[str] = zcash_cli_bin

    @property
    def zcash_cli_bin(self) -> Optional[str]:
        """Getter for `zcash_cli_bin` property"""
        return self._zcash_cli_bin

    @classmethod
    def launch(cls, zcashd_config: Optional[ZcashdConfig] = None) -> "Zcashd":
        """
        Launch zcashd and return a `Zcashd` holding its handle and directories.

        Raises LaunchError if zcashd exits while starting.
        """
        if zcashd_config is None:
            zcashd_config = ZcashdConfig()

        dirs = ScratchDirs(str(cls.PROCESS))
        port = None
        try:
            port = network.pick_unused_port(zcashd_config.rpc_port)
            config_file_path = config.zcashd(
                dirs.config,
                port,
                zcashd_config.activation_heights,
                zcashd_config.miner_address,
            )

            executable = resolve_executable("zcashd", zcashd_config.zcashd_bin)
            handle = launch_process(
                cls.PROCESS,
                executable,
                [
                    "--printtoconsole",
                    f"--conf={config_file_path}",
                    f"--datadir={dirs.data}",
                    "-debug=1",
                ],
                dirs.logs,
                ZCASHD_CRITERIA,
            )
        except BaseException:
            dirs.cleanup()
            if port is not None:
                network.release_port(port)
            raise

        zcashd = cls(handle, port, dirs, zcashd_config.zcash_cli_bin)

        # generate genesis block
        try:
            output = zcashd.generate_blocks(1)
        except BaseException:
            zcashd.close()
            raise
        if output.returncode != 0:
            zcashd.close()
            raise RuntimeError(
                f"Failed to generate the genesis block: {output.stderr or output.stdout}"
            )
        time.sleep(GENESIS_DELAY)

        return zcashd

    def zcash_cli_command(self, *args: str) -> subprocess.CompletedProcess:
        """
        Run a zcash-cli command with the given `args` against this zcashd.

        Example usage for generating blocks:
        ```
        zcashd.zcash_cli_command("generate", "1")
        ```
        """
        executable = resolve_executable("zcash-cli", self._zcash_cli_bin)
        cmd = [executable, f"-conf={self.config_path}"] + list(args)
        return subprocess.run(cmd, capture_output=True, text=True, check=False)

    def generate_blocks(self, n: int) -> subprocess.CompletedProcess:
        return self.zcash_cli_command("generate", str(n))

    def get_chain_height(self) -> int:
        """
        Get the height of the best chain, via `zcash-cli getblockcount`.
        """
        output = self.zcash_cli_command("getblockcount")
        if output.returncode != 0:
            raise RuntimeError(f"getblockcount failed: {output.stderr}")
        return int(output.stdout.strip())

    def _stop_process(self):
        try:
            output = self.zcash_cli_command("stop")
        except OSError as exc:
            self.log(f"Can't stop zcashd from zcash-cli: {exc}\nSending SIGKILL to zcashd.")
            self.kill()
            return

        if output.returncode != 0:
            self.log(
                f"zcash-cli stop failed ({output.returncode}): {output.stderr}\n"
                "Sending SIGKILL to zcashd."
            )
            self.kill()
            return

        try:
            self.handle.wait(timeout=STOP_TIMEOUT)
        except subprocess.TimeoutExpired:
            self.log(f"zcashd still running {STOP_TIMEOUT}s after stop. Sending SIGKILL.")
            self.kill()
            return

        self.log("zcashd successfully shut down")
