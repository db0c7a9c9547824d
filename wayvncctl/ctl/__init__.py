"""Control socket client.

Architecture:
- Address / resolve_address: validated socket path
- ConnectionManager: socket discovery and (re)connection
- ReceiveBuffer / decode_one: framing of concatenated JSON messages
- ClientSession: request/response exchange and the event subscription loop
"""

from wayvncctl.ctl.address import Address, resolve_address
from wayvncctl.ctl.args import request_from_args
from wayvncctl.ctl.client import ClientFlags, ClientSession, PendingResponse, State
from wayvncctl.ctl.connection import NO_WAIT, WAIT_FOREVER, ConnectionManager
from wayvncctl.ctl.protocol import Event, ReceiveBuffer, Request, Response, decode_one

__all__ = [
    "Address",
    "resolve_address",
    "request_from_args",
    "ClientFlags",
    "ClientSession",
    "PendingResponse",
    "State",
    "NO_WAIT",
    "WAIT_FOREVER",
    "ConnectionManager",
    "Event",
    "ReceiveBuffer",
    "Request",
    "Response",
    "decode_one",
]
