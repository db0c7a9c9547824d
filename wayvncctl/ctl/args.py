"""Shape command-line style arguments into a Request."""

from typing import Dict, Sequence

from wayvncctl.ctl.protocol import Request

EVENT_RECEIVE = "event-receive"


class ArgumentError(ValueError):
    """Arguments could not be turned into a request."""


def request_from_args(method: str, args: Sequence[str] = ()) -> Request:
    """
    Build a Request from `<method> [--key=value | --key value]...`.

    A bare --help/-h anywhere turns the call into `help --command=<method>`.

    Raises:
        ArgumentError: If a key has no value
    """
    params: Dict[str, str] = {}
    show_usage = False
    i = 0
    while i < len(args):
        key = args[i]
        i += 1
        if key in ("--help", "-h"):
            show_usage = True
            continue
        if key.startswith("--"):
            key = key[2:]
        if "=" in key:
            key, value = key.split("=", 1)
        elif i < len(args):
            value = args[i]
            i += 1
        else:
            raise ArgumentError("Argument must be of the format --key=value or --key value")
        params[key] = value

    if show_usage:
        return Request(method="help", params={"command": method})
    return Request(method=method, params=params)
