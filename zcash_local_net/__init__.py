"""
zcash_local_net/__init__.py

A test utility package to launch and manage Zcash processes on a local
network (regtest mode). It is intended for integration tests of
light-clients/light-wallets, indexers/light-nodes and validators/full-nodes:

- zcashd (validator)
- zainod (indexer)
- lightwalletd (light-node)

Binaries are looked up on $PATH, on `$ZCASH_LOCAL_NET_BIN_DIR`, or can be
given explicitly in each process config.
"""

from enum import Enum

from zcash_local_net import config


class Process(Enum):
    """
    Enum for the processes this package can launch.
    """

    ZCASHD = "zcashd"
    ZAINOD = "zainod"
    LIGHTWALLETD = "lightwalletd"

    def __str__(self) -> str:
        return self.value

    @property
    def config_filename(self) -> str:
        """Name of the config file written for this process"""
        return {
            Process.ZCASHD: config.ZCASHD_FILENAME,
            Process.ZAINOD: config.ZAINOD_FILENAME,
            Process.LIGHTWALLETD: config.LIGHTWALLETD_FILENAME,
        }[self]
