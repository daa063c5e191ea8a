"""
zcash_local_net/indexer.py

Classes that represent and manage the indexer processes, i.e. zainod.

Processes which are not strictly indexers but have a similar role in
serving light-clients/light-wallets (i.e. lightwalletd) are also included
in this category and are referred to as "light-nodes".
"""

import os
from subprocess import Popen
from typing import Optional

from zcash_local_net import Process, config, network
from zcash_local_net.base import BaseProcess
from zcash_local_net.crypto.pkcs8 import create_tls_key_cert
from zcash_local_net.launch import (
    ReadinessCriteria,
    ScratchDirs,
    launch_process,
    resolve_executable,
)
from zcash_local_net.logs import LIGHTWALLETD_LOG, print_log

ZAINOD_CRITERIA = ReadinessCriteria(
    success_indicator="Server Ready.",
    error_indicator="Error:",
)

LIGHTWALLETD_SUCCESS = "Starting insecure no-TLS (plaintext) server"
LIGHTWALLETD_TLS_SUCCESS = "Starting gRPC server"
LIGHTWALLETD_ERROR = "Error:"


# pylint: disable=too-few-public-methods
class ZainodConfig:
    """
    Zainod configuration

    Use `listen_port` to specify a port for zainod. Otherwise, a port is
    picked at random between 15000-25000.

    The `validator_port` must be specified and the validator process must
    be running before launching zainod.
    """

    def __init__(
        self,
        validator_port: int,
        zainod_bin: Optional[str] = None,
        listen_port: Optional[int] = None,
    ):
        self.validator_port = validator_port
        self.zainod_bin = zainod_bin
        self.listen_port = listen_port


# pylint: disable=too-few-public-methods
class LightwalletdConfig:
    """
    Lightwalletd configuration

    Use `listen_port` to specify a port for lightwalletd. Otherwise, a port
    is picked at random between 15000-25000.

    The `validator_conf` (path to the validator config file) must be
    specified and the validator process must be running before launching
    lightwalletd.

    With `tls` set, a self-signed certificate for localhost is created
    and the gRPC server is served over TLS.
    """

    def __init__(
        self,
        validator_conf: str,
        lightwalletd_bin: Optional[str] = None,
        listen_port: Optional[int] = None,
        tls: bool = False,
    ):
        self.validator_conf = validator_conf
        self.lightwalletd_bin = lightwalletd_bin
        self.listen_port = listen_port
        self.tls = tls


class Indexer(BaseProcess):
    """
    Functionality for indexer/light-node processes.

    There is no graceful shutdown for these processes, they are killed.
    """

    def _stop_process(self):
        self.kill()


class Zainod(Indexer):
    """
    Represent and manage a zainod process.
    """

    PROCESS = Process.ZAINOD

    @classmethod
    def launch(cls, zainod_config: ZainodConfig) -> "Zainod":
        """
        Launch zainod and return a `Zainod` holding its handle and directories.

        Raises LaunchError if zainod exits while starting.
        """
        dirs = ScratchDirs(str(cls.PROCESS))
        port = None
        try:
            port = network.pick_unused_port(zainod_config.listen_port)
            config_file_path = config.zainod(
                dirs.config, port, zainod_config.validator_port
            )

            executable = resolve_executable("zainod", zainod_config.zainod_bin)
            handle = launch_process(
                cls.PROCESS,
                executable,
                ["--config", config_file_path],
                dirs.logs,
                ZAINOD_CRITERIA,
            )
        except BaseException:
            dirs.cleanup()
            if port is not None:
                network.release_port(port)
            raise

        return cls(handle, port, dirs)


class Lightwalletd(Indexer):
    """
    Represent and manage a lightwalletd process.

    lightwalletd writes its own log file (`lwd.log` in the logs
    directory) besides its stdout and stderr.
    """

    PROCESS = Process.LIGHTWALLETD

    def __init__(self, handle: Popen, port: int, dirs: ScratchDirs, tls: bool = False):
        super().__init__(handle, port, dirs)
        self._tls: bool = tls

    @property
    def tls(self) -> bool:
        """Getter for `tls` property"""
        return self._tls

    @property
    def lwd_log_path(self) -> str:
        """Path to the log file written by lightwalletd itself"""
        return os.path.join(self.logs_dir, LIGHTWALLETD_LOG)

    @classmethod
    def launch(cls, lightwalletd_config: LightwalletdConfig) -> "Lightwalletd":
        """
        Launch lightwalletd and return a `Lightwalletd` holding its handle
        and directories.

        Raises LaunchError if lightwalletd exits while starting.
        """
        dirs = ScratchDirs(str(cls.PROCESS))
        port = None
        try:
            lwd_log_file_path = os.path.join(dirs.logs, LIGHTWALLETD_LOG)
            with open(lwd_log_file_path, "wb"):
                pass

            port = network.pick_unused_port(lightwalletd_config.listen_port)
            config_file_path = config.lightwalletd(
                dirs.config,
                port,
                lwd_log_file_path,
                lightwalletd_config.validator_conf,
            )

            if lightwalletd_config.tls:
                key_path, cert_path = create_tls_key_cert(dirs.config)
                tls_args = ["--tls-cert", cert_path, "--tls-key", key_path]
                success = LIGHTWALLETD_TLS_SUCCESS
            else:
                tls_args = ["--no-tls-very-insecure"]
                success = LIGHTWALLETD_SUCCESS

            executable = resolve_executable(
                "lightwalletd", lightwalletd_config.lightwalletd_bin
            )
            handle = launch_process(
                cls.PROCESS,
                executable,
                tls_args
                + [
                    "--data-dir",
                    dirs.data,
                    "--log-file",
                    lwd_log_file_path,
                    "--zcash-conf-path",
                    lightwalletd_config.validator_conf,
                    "--config",
                    config_file_path,
                ],
                dirs.logs,
                ReadinessCriteria(
                    success_indicator=success,
                    error_indicator=LIGHTWALLETD_ERROR,
                    additional_log_path=lwd_log_file_path,
                ),
            )
        except BaseException:
            dirs.cleanup()
            if port is not None:
                network.release_port(port)
            raise

        return cls(handle, port, dirs, lightwalletd_config.tls)

    def print_lwd_log(self):
        """Prints the lightwalletd log"""
        print_log(self.lwd_log_path)
