"""
zcash_local_net/config.py

Functions for writing the configuration file of each process.
Every function writes the file into `config_dir` and returns its path.
"""

import os
from typing import Optional

ZCASHD_FILENAME = "zcash.conf"
ZAINOD_FILENAME = "zindexer.toml"
LIGHTWALLETD_FILENAME = "lightwalletd.yml"


def zcashd(
    config_dir: str,
    rpc_port: int,
    activation_heights,
    miner_address: Optional[str] = None,
) -> str:
    """
    Writes the zcashd config file to the specified config directory.
    `activation_heights` is a `network.ActivationHeights`.
    """
    heights = activation_heights
    contents = f"""\
### Blockchain Configuration
regtest=1
nuparams=5ba81b19:{heights.overwinter} # Overwinter
nuparams=76b809bb:{heights.sapling} # Sapling
nuparams=2bb40e60:{heights.blossom} # Blossom
nuparams=f5b9230b:{heights.heartwood} # Heartwood
nuparams=e9ff75a6:{heights.canopy} # Canopy
nuparams=c2d6d0b4:{heights.nu5} # NU5 (Orchard)

### MetaData Storage and Retrieval
# txindex:
# https://zcash.readthedocs.io/en/latest/rtd_pages/zcash_conf_guide.html#miscellaneous-options
txindex=1
# insightexplorer:
# https://zcash.readthedocs.io/en/latest/rtd_pages/insight_explorer.html?highlight=insightexplorer#additional-getrawtransaction-fields
insightexplorer=1
experimentalfeatures=1

### RPC Server Interface Options:
# https://zcash.readthedocs.io/en/latest/rtd_pages/zcash_conf_guide.html#json-rpc-options
rpcuser=xxxxxx
rpcpassword=xxxxxx
rpcport={rpc_port}
rpcallowip=127.0.0.1

# Buried config option to allow non-canonical RPC-PORT:
# https://zcash.readthedocs.io/en/latest/rtd_pages/zcash_conf_guide.html#zcash-conf-guide
listen=0"""

    if miner_address is not None:
        # pylint: disable=line-too-long
        contents += f"""

### Zcashd Help provides documentation of the following:
mineraddress={miner_address}
minetolocalwallet=0 # This is set to false so that we can mine to a wallet, other than the zcashd wallet."""

    return _write(config_dir, ZCASHD_FILENAME, contents)


def zainod(config_dir: str, listen_port: int, validator_port: int) -> str:
    """
    Writes the zainod config file to the specified config directory.
    """
    contents = f"""\
# Configuration for Zaino

# Sets the TcpIngestor's status (true or false)
tcp_active = true

# Optional TcpIngestors listen port (use None or specify a port number)
listen_port = {listen_port}

# Sets the NymIngestor's and NymDispatchers status (true or false)
nym_active = false

# Optional Nym conf path used for micnet client conf
nym_conf_path = "/tmp/indexer/nym"

# LightWalletD listen port [DEPRECATED]
lightwalletd_port = 9067

# Full node / validator listen port
zebrad_port = {validator_port}

# Optional full node Username
node_user = "xxxxxx"

# Optional full node Password
node_password = "xxxxxx"

# Maximum requests allowed in the request queue
max_queue_size = 1024

# Maximum workers allowed in the worker pool
max_worker_pool_size = 64

# Minimum number of workers held in the worker pool when idle
idle_worker_pool_size = 4"""

    return _write(config_dir, ZAINOD_FILENAME, contents)


def lightwalletd(
    config_dir: str,
    grpc_bind_addr_port: int,
    log_file: str,
    validator_conf: str,
) -> str:
    """
    Writes the lightwalletd config file to the specified config directory.
    """
    contents = f"""\
grpc-bind-addr: 127.0.0.1:{grpc_bind_addr_port}
cache-size: 10
log-file: {log_file}
log-level: 10
zcash-conf-path: {validator_conf}"""

    return _write(config_dir, LIGHTWALLETD_FILENAME, contents)


def _write(config_dir: str, filename: str, contents: str) -> str:
    config_file_path = os.path.join(config_dir, filename)
    with open(config_file_path, "w", encoding="utf-8", newline="\n") as config_file:
        config_file.write(contents)
    return config_file_path
