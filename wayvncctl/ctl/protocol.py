"""JSON-based wire protocol for the control socket.

Every message is a single JSON object, with no delimiter between
messages. A single read may carry several messages back to back, and one
message may be split over several reads.

Request / event format (same shape in both directions):
    {
        "method": str,
        "params": {str: str, ...}    # omitted for synthetic events
    }

Response format:
    {
        "code": int,                 # 0 = success
        "data": str | dict | list    # optional
    }
"""

import codecs
import json
import re
from dataclasses import dataclass, field
from typing import Any, Dict, Optional

from wayvncctl.ctl.errors import EncodeError, NoData, ProtocolError

DEFAULT_BUFFER_SIZE = 512
MAX_REQUEST_SIZE = 512

EVT_LOCAL_STARTUP = "wayvnc-startup"
EVT_LOCAL_SHUTDOWN = "wayvnc-shutdown"

_WHITESPACE = b" \t\r\n"

_decoder = json.JSONDecoder()


@dataclass
class Request:
    """
    Method call envelope.

    Events use the same envelope; `is_event` records which direction the
    message travelled (client to server, or server/client-local to output)
    so the decoder can stay generic.
    """

    method: str
    params: Optional[Dict[str, Any]] = field(default_factory=dict)
    is_event: bool = False
    _encoded: Optional[bytes] = field(default=None, init=False, repr=False, compare=False)

    @classmethod
    def event(cls, method: str, params: Optional[Dict[str, Any]] = None) -> "Request":
        return cls(method=method, params=params, is_event=True)

    def to_json(self) -> Dict[str, Any]:
        obj: Dict[str, Any] = {"method": self.method}
        if self.params is not None:
            obj["params"] = self.params
        return obj

    def encode(self) -> bytes:
        """
        Encode to compact UTF-8 JSON, caching the result.

        Raises:
            EncodeError: If the request is not serializable or too large
        """
        if self._encoded is None:
            if not isinstance(self.method, str) or not self.method:
                raise EncodeError(f"Invalid method name: {self.method!r}")
            try:
                text = json.dumps(self.to_json(), separators=(",", ":"), ensure_ascii=False)
            except (TypeError, ValueError) as e:
                raise EncodeError(f"Could not encode json: {e}") from e
            encoded = text.encode("utf-8")
            if len(encoded) > MAX_REQUEST_SIZE:
                raise EncodeError(
                    f"Encoded request is {len(encoded)} bytes, limit is {MAX_REQUEST_SIZE}"
                )
            self._encoded = encoded
        return self._encoded

    @classmethod
    def from_json(cls, value: Any, is_event: bool = True) -> "Request":
        """
        Build a Request/Event from a decoded JSON value.

        Raises:
            ProtocolError: If the value does not have the request shape
        """
        if not isinstance(value, dict):
            raise ProtocolError(f"Expected an object, got {type(value).__name__}")
        method = value.get("method")
        if not isinstance(method, str):
            raise ProtocolError("Message has no string 'method'")
        params = value.get("params")
        if params is not None and not isinstance(params, dict):
            raise ProtocolError("'params' must be an object")
        return cls(method=method, params=params, is_event=is_event)


Event = Request


@dataclass(frozen=True)
class Response:
    """Decoded reply to a Request."""

    code: int
    data: Any = None

    @property
    def ok(self) -> bool:
        return self.code == 0

    @classmethod
    def from_json(cls, value: Any) -> "Response":
        """
        Build a Response from a decoded JSON value.

        Raises:
            ProtocolError: If the value does not have the response shape
        """
        if not isinstance(value, dict):
            raise ProtocolError(f"Expected an object, got {type(value).__name__}")
        code = value.get("code")
        if isinstance(code, bool) or not isinstance(code, int):
            raise ProtocolError("Response has no integer 'code'")
        return cls(code=code, data=value.get("data"))


class ReceiveBuffer:
    """
    Bounded FIFO of received bytes.

    New data is appended at the tail; decoded messages are removed from the
    head and the remainder shifts to the front.
    """

    def __init__(self, capacity: int = DEFAULT_BUFFER_SIZE):
        if capacity <= 0:
            raise ValueError("capacity must be positive")
        self.capacity = capacity
        self._data = bytearray()

    def __len__(self) -> int:
        return len(self._data)

    def __bytes__(self) -> bytes:
        return bytes(self._data)

    @property
    def free(self) -> int:
        return self.capacity - len(self._data)

    def append(self, data: bytes) -> None:
        if len(data) > self.free:
            raise ProtocolError(
                f"Message exceeds receive buffer capacity of {self.capacity} bytes"
            )
        self._data += data

    def consume(self, count: int) -> None:
        del self._data[:count]

    def clear(self) -> None:
        self._data.clear()

    def view(self) -> bytes:
        return bytes(self._data)


# What may be left at the error position when a valid message was merely
# cut short: the start of a literal, or an unfinished number.
_PARTIAL_TAIL = re.compile(
    r"t(r(ue?)?)?|f(a(l(se?)?)?)?|n(u(ll?)?)?|N(aN?)?"
    r"|-?I(n(f(i(n(i(ty?)?)?)?)?)?)?|-|\.|[eE][-+]?"
)


def _is_truncated(text: str, err: json.JSONDecodeError) -> bool:
    """True if `err` was caused by running out of input, not by bad content."""
    if err.pos >= len(text):
        return True
    tail = text[err.pos:]
    if err.msg.startswith("Unterminated string"):
        return True
    if err.msg.startswith("Invalid \\uXXXX escape"):
        return len(tail) <= 6 and '"' not in tail
    return _PARTIAL_TAIL.fullmatch(tail) is not None


def decode_one(buffer: ReceiveBuffer) -> Any:
    """
    Decode exactly one message from the head of the buffer.

    Only the bytes of the decoded message (and any whitespace before it)
    are consumed. A multi-byte character split at the end of the buffer is
    held back until the rest of it arrives.

    Raises:
        NoData: Buffer is empty or holds only a partial message
        ProtocolError: Buffer starts with malformed content (left untouched)
    """
    data = buffer.view()
    start = 0
    while start < len(data) and data[start] in _WHITESPACE:
        start += 1
    if start == len(data):
        buffer.clear()
        raise NoData("Read buffer is empty")

    if data[start] not in (0x7B, 0x5B):
        raise ProtocolError(f"Json parsing failed: unexpected byte {data[start:start + 1]!r}")

    try:
        text = codecs.getincrementaldecoder("utf-8")().decode(data[start:], final=False)
    except UnicodeDecodeError as e:
        raise ProtocolError(f"Json parsing failed: {e}") from e

    try:
        value, end = _decoder.raw_decode(text)
    except json.JSONDecodeError as e:
        if _is_truncated(text, e):
            raise NoData("Awaiting more data") from e
        raise ProtocolError(f"Json parsing failed: {e}") from e

    buffer.consume(start + len(text[:end].encode("utf-8")))
    return value
