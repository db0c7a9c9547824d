"""Control socket address resolution."""

import logging
import os
import sys
from pathlib import Path
from typing import Optional, Union

from wayvncctl.ctl.errors import AddressTooLong

logger = logging.getLogger(__name__)

# sizeof(sockaddr_un.sun_path); the path also needs room for its NUL terminator.
SUN_PATH_MAX = 104 if sys.platform == "darwin" or "bsd" in sys.platform else 108


def default_socket_path() -> Path:
    """
    Get the default control socket path.

    Uses $XDG_RUNTIME_DIR/wayvncctl when the runtime dir is known,
    otherwise a per-user path in /tmp.
    """
    runtime_dir = os.environ.get("XDG_RUNTIME_DIR")
    if runtime_dir:
        return Path(runtime_dir) / "wayvncctl"
    return Path(f"/tmp/wayvncctl-{os.getuid()}")


class Address:
    """
    Validated filesystem path of a control socket.

    Length is checked here, once, so an oversized path is reported up front
    instead of as an obscure error from connect().
    """

    def __init__(self, path: Union[str, Path]):
        path = Path(path)
        encoded = os.fsencode(path)
        if len(encoded) >= SUN_PATH_MAX:
            raise AddressTooLong(
                f"Socket path is {len(encoded)} bytes, limit is {SUN_PATH_MAX - 1}: {path}"
            )
        self.path = path

    def __str__(self) -> str:
        return str(self.path)

    def __repr__(self) -> str:
        return f"Address({str(self.path)!r})"

    def __eq__(self, other: object) -> bool:
        if not isinstance(other, Address):
            return NotImplemented
        return self.path == other.path

    def __hash__(self) -> int:
        return hash(self.path)


def resolve_address(path: Optional[Union[str, Path]] = None) -> Address:
    """
    Produce a validated Address.

    Args:
        path: Explicit socket path, or None for the default

    Raises:
        AddressTooLong: If the path does not fit the platform limit
    """
    if not path:
        path = default_socket_path()
    address = Address(path)
    logger.debug(f"Using control socket {address}")
    return address
