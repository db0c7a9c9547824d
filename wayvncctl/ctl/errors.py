"""Error taxonomy for the control-socket client.

Every failure the client can report derives from CtlError. Two members are
not ordinary failures:

- NoData: the receive buffer does not hold a complete message yet. It never
  leaves ClientSession.
- Cancelled: the operator interrupted a blocking wait. The event loop
  swallows it, but a cancelled ClientSession.connect(WAIT_FOREVER) raises
  it to the caller, which the CLI reports as "Cancelled" with exit code 1.
"""


class CtlError(Exception):
    """Base class for all control client failures."""


class AddressTooLong(CtlError):
    """Socket path does not fit in sockaddr_un.sun_path."""


class SocketNotFound(CtlError):
    """Socket path cannot be found and we were not asked to wait."""


class NotASocket(CtlError):
    """Something other than a socket occupies the socket path."""


class ConnectFailed(CtlError):
    """Stream connection to the control socket could not be opened."""


class EncodeError(CtlError):
    """Request cannot be represented on the wire."""


class SendFailed(CtlError):
    """Writing a request to the connection failed."""


class ReadFailed(CtlError):
    """Reading from the connection or waiting on it failed."""


class Timeout(CtlError):
    """No complete message arrived within the allotted time."""


class Disconnected(CtlError):
    """Peer closed the connection."""


class ProtocolError(CtlError):
    """Malformed or oversized message; the connection must be dropped."""


class RequestPending(CtlError):
    """A request was sent while a previous response is still outstanding."""


class NoData(CtlError):
    """More bytes are needed before a message can be decoded."""


class Cancelled(CtlError):
    """A blocking wait was abandoned because cancellation was requested."""
