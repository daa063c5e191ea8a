"""
zcash_local_net/network.py

Structs and utility functions associated with local network configuration.
"""

import fcntl
import os
import random
import socket
import tempfile
import threading
from typing import IO, Dict, Optional

LOCALHOST_IPV4 = "http://127.0.0.1"

# Candidate range for randomly picked ports, inclusive
PORT_RANGE = (15000, 25000)

# One lock file per port, shared by every harness instance on this machine
PORT_LOCK_DIR = os.path.join(tempfile.gettempdir(), "zcash-local-net-ports")

# Ports handed to live processes of this interpreter, with their held lock file
_RESERVED_PORTS: Dict[int, IO] = {}
_RESERVED_LOCK = threading.Lock()


# pylint: disable=too-few-public-methods too-many-arguments
class ActivationHeights:
    """
    Activation heights for local network upgrades.

    Every upgrade activates at height 1 unless told otherwise.
    """

    def __init__(
        self,
        overwinter: int = 1,
        sapling: int = 1,
        blossom: int = 1,
        heartwood: int = 1,
        canopy: int = 1,
        nu5: int = 1,
    ):
        self.overwinter = overwinter
        self.sapling = sapling
        self.blossom = blossom
        self.heartwood = heartwood
        self.canopy = canopy
        self.nu5 = nu5

    def __eq__(self, other) -> bool:
        if not isinstance(other, ActivationHeights):
            return NotImplemented
        return vars(self) == vars(other)

    def __repr__(self) -> str:
        heights = ", ".join(f"{k}={v}" for k, v in vars(self).items())
        return f"ActivationHeights({heights})"


def is_port_free(port: int) -> bool:
    """
    Check that `port` can be bound for both TCP and UDP on all interfaces.
    """
    for kind, proto in (
        (socket.SOCK_STREAM, socket.IPPROTO_TCP),
        (socket.SOCK_DGRAM, socket.IPPROTO_UDP),
    ):
        with socket.socket(socket.AF_INET, kind, proto) as sock:
            if kind == socket.SOCK_STREAM:
                sock.setsockopt(socket.SOL_SOCKET, socket.SO_REUSEADDR, 1)
            try:
                sock.bind(("", port))
            except OSError:
                return False
    return True


def _lock_port(port: int) -> Optional[IO]:
    """
    Take the machine wide lock of `port`, held until the returned file is closed.

    Returns None when another process holds it. The lock goes away with
    its holder, so a crashed harness never leaves a port locked.
    """
    os.makedirs(PORT_LOCK_DIR, exist_ok=True)
    # pylint: disable=consider-using-with
    lock_file = open(os.path.join(PORT_LOCK_DIR, f"{port}.lock"), "a", encoding="utf-8")
    try:
        fcntl.flock(lock_file.fileno(), fcntl.LOCK_EX | fcntl.LOCK_NB)
    except BlockingIOError:
        lock_file.close()
        return None
    return lock_file


def _reserve(port: int) -> bool:
    """Reserve `port` if no harness holds it and it can be bound"""
    if port in _RESERVED_PORTS:
        return False

    lock_file = _lock_port(port)
    if lock_file is None:
        return False
    if not is_port_free(port):
        lock_file.close()
        return False

    _RESERVED_PORTS[port] = lock_file
    return True


def pick_unused_port(fixed_port: Optional[int] = None) -> int:
    """
    Checks `fixed_port` is not in use and reserves it.

    If `fixed_port` is None, returns (and reserves) a random free port
    between 15000 and 25000 that no other live process of this or any
    other harness on the machine holds. Raises RuntimeError when no
    port can be used.
    """
    with _RESERVED_LOCK:
        if fixed_port is not None:
            if not _reserve(fixed_port):
                raise RuntimeError(f"Fixed port {fixed_port} is not free!")
            return fixed_port

        start, end = PORT_RANGE
        candidates = list(range(start, end + 1))
        random.shuffle(candidates)
        for port in candidates:
            if _reserve(port):
                return port

    raise RuntimeError("No ports free!")


def release_port(port: int):
    """Give back a port reserved by `pick_unused_port`"""
    with _RESERVED_LOCK:
        lock_file = _RESERVED_PORTS.pop(port, None)
        if lock_file is not None:
            lock_file.close()


def localhost_uri(port: int) -> str:
    """Constructs a URI with the localhost IPv4 address and the specified port."""
    return f"{LOCALHOST_IPV4}:{port}"
