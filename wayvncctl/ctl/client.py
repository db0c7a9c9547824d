"""Control client session.

ClientSession ties together the connection, the receive buffer and the
output sink. It supports exactly one outstanding request at a time: the
wire format carries no correlation id, so a response is always the reply
to the most recent request.

Usage:
    with ClientSession(resolve_address(), flags=ClientFlags.RAW_OUTPUT) as session:
        session.connect()
        exit_code = session.run_command(request_from_args("version"))
"""

import enum
import logging
import select
import time
from typing import Any, Optional

from wayvncctl.core.signals import CancellationFlag
from wayvncctl.ctl.address import Address
from wayvncctl.ctl.args import EVENT_RECEIVE
from wayvncctl.ctl.connection import NO_WAIT, WAIT_FOREVER, ConnectionManager
from wayvncctl.ctl.errors import (
    Cancelled,
    Disconnected,
    NoData,
    ProtocolError,
    ReadFailed,
    RequestPending,
    SendFailed,
    Timeout,
)
from wayvncctl.ctl.protocol import (
    DEFAULT_BUFFER_SIZE,
    EVT_LOCAL_SHUTDOWN,
    EVT_LOCAL_STARTUP,
    Event,
    ReceiveBuffer,
    Request,
    Response,
    decode_one,
)

logger = logging.getLogger(__name__)

COMMAND_TIMEOUT_MS = 1000

# Longest single blocking wait, in seconds. Unbounded waits are built from
# slices of this size so the cancellation flag is noticed promptly.
WAIT_SLICE = 0.05


class ClientFlags(enum.Flag):
    NONE = 0
    RAW_OUTPUT = enum.auto()
    AUTO_RECONNECT = enum.auto()


class State(enum.Enum):
    DISCONNECTED = "disconnected"
    CONNECTING = "connecting"
    SUBSCRIBING = "subscribing"
    LISTENING = "listening"
    RECONNECTING = "reconnecting"
    TERMINATED = "terminated"


class PendingResponse:
    """
    Token for a sent request whose response has not been read yet.

    Must be consumed by exactly one wait() before the session accepts
    another send().
    """

    def __init__(self, session: "ClientSession", request: Request):
        self.session = session
        self.request = request
        self._consumed = False

    @property
    def consumed(self) -> bool:
        return self._consumed

    def wait(self, timeout_ms: Optional[int] = None) -> Response:
        """
        Block for the response.

        Args:
            timeout_ms: Milliseconds to wait, defaults to the session's
                        command timeout

        Raises:
            Timeout, Disconnected, ReadFailed, ProtocolError
        """
        if self._consumed:
            raise RuntimeError(f"Response to '{self.request.method}' was already received")
        self._consumed = True
        if timeout_ms is None:
            timeout_ms = self.session.command_timeout_ms
        logger.debug("Waiting for a response")
        try:
            value = self.session.receive_one(timeout_ms)
        finally:
            self.session._pending = None
        try:
            response = Response.from_json(value)
        except ProtocolError as e:
            logger.warning(f"Could not parse response: {e}")
            self.session.disconnect()
            raise
        self.session.last_code = response.code
        logger.debug(f"Response code: {response.code}")
        return response


class ClientSession:
    """
    One client process's view of the control socket.

    Attributes:
        address: Validated control socket address
        flags: Behavior flags (raw output, auto-reconnect)
        buffer: Receive buffer for the current connection
        wait_for_events: True while subscribed and listening for events
        state: Current event subscription state
        last_code: Last response code observed
    """

    def __init__(
        self,
        address: Address,
        flags: ClientFlags = ClientFlags.NONE,
        sink: Optional[Any] = None,
        cancellation: Optional[CancellationFlag] = None,
        buffer_size: int = DEFAULT_BUFFER_SIZE,
        command_timeout_ms: int = COMMAND_TIMEOUT_MS,
    ):
        if sink is None:
            from wayvncctl.ui.output import OutputPrinter

            sink = OutputPrinter(raw=ClientFlags.RAW_OUTPUT in flags)
        self.address = address
        self.flags = flags
        self.sink = sink
        self.cancellation = cancellation
        self.command_timeout_ms = command_timeout_ms
        self.connection = ConnectionManager(address, cancellation)
        self.buffer = ReceiveBuffer(buffer_size)
        self.wait_for_events = False
        self.state = State.DISCONNECTED
        self.last_code = 0
        self._pending: Optional[PendingResponse] = None

    def __enter__(self) -> "ClientSession":
        return self

    def __exit__(self, *exc_info) -> None:
        self.close()

    # ------------------------------------------------------------------
    # Connection
    # ------------------------------------------------------------------

    def connect(self, timeout: int = NO_WAIT) -> None:
        """Open a fresh connection, discarding the old one and its buffered bytes."""
        self.state = State.CONNECTING
        self.disconnect()
        self.connection.connect(timeout)

    def disconnect(self) -> None:
        self.connection.close()
        self.buffer.clear()
        self._pending = None

    def close(self) -> None:
        self.disconnect()
        self.state = State.TERMINATED

    def _cancel_requested(self) -> bool:
        return self.cancellation is not None and self.cancellation.requested

    # ------------------------------------------------------------------
    # Request/response exchange
    # ------------------------------------------------------------------

    def send(self, request: Request) -> PendingResponse:
        """
        Encode and write a request.

        Returns:
            PendingResponse that must be waited on before the next send

        Raises:
            RequestPending: Previous response not read yet
            EncodeError: Request cannot be encoded
            SendFailed: Not connected, or the write failed
        """
        if self._pending is not None:
            raise RequestPending(
                f"Response to '{self._pending.request.method}' has not been received"
            )
        data = request.encode()
        sock = self.connection.sock
        if sock is None:
            raise SendFailed("Not connected")
        logger.debug(f">> {data.decode('utf-8')}")
        try:
            sock.sendall(data)
        except OSError as e:
            logger.warning(f"Failed to send request: {e}")
            raise SendFailed(f"Failed to send request: {e}") from e
        self._pending = PendingResponse(self, request)
        return self._pending

    def receive_one(self, timeout_ms: Optional[int]) -> Any:
        """
        Read exactly one decoded message.

        Tries already-buffered bytes first, then waits for more data.

        Args:
            timeout_ms: Milliseconds to wait, 0 to poll once, None to wait
                        until a message arrives or cancellation is requested

        Raises:
            Timeout: Nothing complete arrived in time
            Disconnected: Peer closed the connection
            ReadFailed: Waiting or reading failed
            ProtocolError: Malformed or oversized message
            Cancelled: Cancellation was requested during an unbounded wait
        """
        try:
            return decode_one(self.buffer)
        except NoData:
            pass
        except ProtocolError as e:
            logger.warning(str(e))
            self.disconnect()
            raise

        sock = self.connection.sock
        if sock is None:
            raise Disconnected("Not connected")

        deadline = None if timeout_ms is None else time.monotonic() + timeout_ms / 1000.0
        while True:
            if deadline is None:
                if self._cancel_requested():
                    raise Cancelled("Cancelled while waiting for data")
                wait = WAIT_SLICE
            else:
                wait = max(0.0, min(WAIT_SLICE, deadline - time.monotonic()))

            try:
                readable, _, _ = select.select([sock], [], [], wait)
            except (OSError, ValueError) as e:
                logger.warning(f"Error waiting for a response: {e}")
                self.disconnect()
                raise ReadFailed(f"Error waiting for a response: {e}") from e

            if not readable:
                if deadline is not None and time.monotonic() >= deadline:
                    logger.warning("Timeout waiting for a response")
                    raise Timeout("Timeout waiting for a response")
                continue

            try:
                message = self._read_available(sock)
            except (ProtocolError, ReadFailed) as e:
                logger.warning(str(e))
                self.disconnect()
                raise
            if message is not None:
                return message

    def _read_available(self, sock) -> Optional[Any]:
        if self.buffer.free == 0:
            raise ProtocolError(
                f"Message exceeds receive buffer capacity of {self.buffer.capacity} bytes"
            )
        try:
            chunk = sock.recv(self.buffer.free)
        except OSError as e:
            raise ReadFailed(f"Read failed: {e}") from e
        if not chunk:
            logger.warning("Disconnected")
            self.disconnect()
            raise Disconnected("Connection closed by server")

        logger.debug(f"Read {len(chunk)} bytes")
        logger.debug(f"<< {chunk.decode('utf-8', errors='replace')}")
        self.buffer.append(chunk)
        try:
            return decode_one(self.buffer)
        except NoData:
            return None

    def run_single_command(self, request: Request) -> Response:
        """Send a request and wait for its response with the command timeout."""
        return self.send(request).wait(self.command_timeout_ms)

    # ------------------------------------------------------------------
    # Event subscription
    # ------------------------------------------------------------------

    def _send_local_event(self, name: str) -> None:
        self.sink.print_event(Event.event(name))

    def _register_for_events(self, request: Request) -> int:
        self.state = State.SUBSCRIBING
        response = self.run_single_command(request)
        if response.code == 0:
            self._send_local_event(EVT_LOCAL_STARTUP)
        return response.code

    def _reconnect(self, request: Request) -> int:
        self.state = State.RECONNECTING
        self.connect(WAIT_FOREVER)
        return self._register_for_events(request)

    def event_loop(self, request: Request) -> int:
        """
        Subscribe and print events until cancelled or disconnected.

        With AUTO_RECONNECT set, a disconnect is followed by reconnecting
        with an unbounded wait and resending the same subscription request.

        Returns:
            The last response code observed
        """
        try:
            result = self._register_for_events(request)
            if result != 0:
                return result

            self.wait_for_events = True
            while self.wait_for_events and not self._cancel_requested():
                self.state = State.LISTENING
                logger.debug("Waiting for an event")
                try:
                    value = self.receive_one(None)
                except Disconnected:
                    self._send_local_event(EVT_LOCAL_SHUTDOWN)
                    if ClientFlags.AUTO_RECONNECT not in self.flags:
                        break
                    result = self._reconnect(request)
                    if result != 0:
                        return result
                    continue
                try:
                    event = Event.from_json(value, is_event=True)
                except ProtocolError as e:
                    logger.warning(f"Could not parse event: {e}")
                    self.disconnect()
                    raise
                self.sink.print_event(event)
        except Cancelled:
            logger.debug("Event loop cancelled")
        finally:
            self.wait_for_events = False
            self.state = State.TERMINATED
        return self.last_code

    def run_command(self, request: Request) -> int:
        """
        Run one request: either a single command or the event loop.

        Returns:
            Process exit code (the last response code)
        """
        if request.method == EVENT_RECEIVE:
            return self.event_loop(request)
        response = self.run_single_command(request)
        self.sink.print_response(request, response)
        return response.code
