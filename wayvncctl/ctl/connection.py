"""Socket discovery and connection establishment.

The server creates its socket path before it starts accepting, so waiting
for the path and connecting to it are two separate steps, each with its
own retry loop.
"""

import logging
import socket
import stat
import time
from typing import Optional

from wayvncctl.core.signals import CancellationFlag
from wayvncctl.ctl.address import Address
from wayvncctl.ctl.errors import (
    Cancelled,
    ConnectFailed,
    NotASocket,
    SocketNotFound,
)

logger = logging.getLogger(__name__)

# Fixed retry interval for discovery and connect, in seconds. No backoff.
POLL_INTERVAL = 0.05

NO_WAIT = 0
WAIT_FOREVER = -1


def _check_timeout(timeout: int) -> None:
    if timeout not in (NO_WAIT, WAIT_FOREVER):
        raise ValueError(f"timeout must be NO_WAIT (0) or WAIT_FOREVER (-1), got {timeout}")


def _pause(cancellation: Optional[CancellationFlag]) -> None:
    if cancellation is not None and cancellation.requested:
        raise Cancelled("Cancelled while waiting for the control socket")
    time.sleep(POLL_INTERVAL)


def wait_for_socket(
    address: Address,
    timeout: int = NO_WAIT,
    cancellation: Optional[CancellationFlag] = None,
) -> None:
    """
    Wait for the socket path to exist and be a socket.

    Args:
        address: Control socket address
        timeout: NO_WAIT to check once, WAIT_FOREVER to poll until it appears
        cancellation: Flag checked between polls

    Raises:
        SocketNotFound: Path cannot be stat'ed and timeout is NO_WAIT
        NotASocket: Path exists but is some other kind of file
        Cancelled: Cancellation requested while polling
    """
    _check_timeout(timeout)
    needs_log = True
    while True:
        try:
            mode = address.path.stat().st_mode
            break
        except OSError as e:
            # Any stat failure (missing, ENOTDIR, EACCES, ...) counts as "not there yet"
            if timeout == NO_WAIT:
                logger.warning(f'Failed to find socket path "{address}": {e.strerror}')
                raise SocketNotFound(
                    f'Failed to find socket path "{address}": {e.strerror}'
                ) from e
        if needs_log:
            needs_log = False
            logger.debug(f'Waiting for socket path "{address}" to appear')
        _pause(cancellation)

    if not stat.S_ISSOCK(mode):
        logger.warning(f'Path "{address}" exists but is not a socket ({mode:#o})')
        raise NotASocket(f'Path "{address}" exists but is not a socket')
    logger.debug(f'Found socket "{address}"')


class ConnectionManager:
    """
    Owns the single stream connection to the control socket.

    Every call to connect() closes the previous handle before opening a new
    one, so reconnecting never leaks a descriptor.
    """

    def __init__(
        self,
        address: Address,
        cancellation: Optional[CancellationFlag] = None,
    ):
        self.address = address
        self.cancellation = cancellation
        self.sock: Optional[socket.socket] = None

    @property
    def connected(self) -> bool:
        return self.sock is not None

    def connect(self, timeout: int = NO_WAIT) -> socket.socket:
        """
        Discover the socket and open a new connection to it.

        Args:
            timeout: NO_WAIT fails on the first error, WAIT_FOREVER retries
                     while the server is not yet listening

        Returns:
            The connected socket (also stored on self.sock)
        """
        _check_timeout(timeout)
        self.close()
        wait_for_socket(self.address, timeout, self.cancellation)

        while True:
            try:
                sock = socket.socket(socket.AF_UNIX, socket.SOCK_STREAM)
            except OSError as e:
                logger.warning(f"Failed to create unix socket: {e.strerror}")
                raise ConnectFailed(f"Failed to create unix socket: {e.strerror}") from e
            try:
                sock.connect(str(self.address))
            except (FileNotFoundError, ConnectionRefusedError) as e:
                sock.close()
                if timeout == NO_WAIT:
                    logger.warning(f'Failed to connect to unix socket "{self.address}": {e.strerror}')
                    raise ConnectFailed(f'Failed to connect to "{self.address}": {e.strerror}') from e
                logger.debug(f"Connect failed ({e.strerror}), retrying")
                _pause(self.cancellation)
                continue
            except OSError as e:
                sock.close()
                logger.warning(f'Failed to connect to unix socket "{self.address}": {e.strerror}')
                raise ConnectFailed(f'Failed to connect to "{self.address}": {e.strerror}') from e
            break

        logger.debug(f'Connected to "{self.address}"')
        self.sock = sock
        return sock

    def close(self) -> None:
        """Close the current connection, if any."""
        if self.sock is not None:
            self.sock.close()
            self.sock = None
