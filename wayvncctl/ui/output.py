"""
Terminal output for responses and events.
Raw mode prints compact JSON; pretty mode renders help, version and events
as readable text.
"""

import json
import sys
from typing import Any, Optional, TextIO

from wayvncctl.ctl.protocol import Request, Response


TEXT_COLOR_MAPPING = {
    "blue": "36;1",
    "yellow": "33;1",
    "green": "32;1",
    "red": "31;1",
    "cyan": "96;1",
    "gray": "90",
}


def get_colored_text(text: str, color: str) -> str:
    """
    Get colored text.

    Raises:
        ValueError: If the specified color is not supported
    """
    if color not in TEXT_COLOR_MAPPING:
        raise ValueError(
            f"Unsupported color: {color}. Available colors: {', '.join(TEXT_COLOR_MAPPING.keys())}"
        )
    return f"\u001b[{TEXT_COLOR_MAPPING[color]}m{text}\u001b[0m"


def compact_json(value: Any) -> str:
    return json.dumps(value, separators=(",", ":"), ensure_ascii=False)


def indented_json(value: Any) -> str:
    return json.dumps(value, indent=2, ensure_ascii=False)


def has_content(value: Any) -> bool:
    """True unless the value is null, an empty string, or a container of such."""
    if value is None:
        return False
    if isinstance(value, str):
        return value != ""
    if isinstance(value, dict):
        return any(has_content(v) for v in value.values())
    if isinstance(value, list):
        return any(has_content(v) for v in value)
    return True


def _scalar(value: Any) -> str:
    if value is None:
        return "<null>"
    if value is True:
        return "true"
    if value is False:
        return "false"
    if isinstance(value, float):
        return f"{value:f}"
    return str(value)


def format_yaml(value: Any, level: int = 0, leading_newline: bool = False) -> str:
    """Render a JSON value as YAML-like text, skipping empty members."""
    indent = "  " * level
    if isinstance(value, dict):
        out = "\n" if value and leading_newline else ""
        needs_indent = leading_newline
        for key, item in value.items():
            if not has_content(item):
                continue
            if needs_indent:
                out += indent
            needs_indent = True
            out += f"{key}: " + format_yaml(item, level + 1, True)
        return out
    if isinstance(value, list):
        out = "\n" if value and leading_newline else ""
        for item in value:
            if not has_content(item):
                continue
            out += f"{indent}- " + format_yaml(item, level + 1, isinstance(item, list))
        return out
    return _scalar(value) + "\n"


class OutputPrinter:
    """Prints responses and events to a stream."""

    def __init__(self, raw: bool = False, color: bool = False, stream: Optional[TextIO] = None):
        self.raw = raw
        self.color = color
        self._stream = stream

    @property
    def stream(self) -> TextIO:
        return self._stream if self._stream is not None else sys.stdout

    def _write(self, text: str = "", end: str = "\n") -> None:
        print(text, end=end, file=self.stream)

    def _paint(self, text: str, color: str) -> str:
        return get_colored_text(text, color) if self.color else text

    # ------------------------------------------------------------------
    # Responses
    # ------------------------------------------------------------------

    def print_response(self, request: Request, response: Response) -> None:
        """Print response data; responses without data print nothing."""
        if response.data is None:
            return
        if self.raw:
            self._write(compact_json(response.data))
        elif response.code == 0:
            self.pretty_print(response.data, request)
        else:
            self.print_error(response)

    def print_error(self, response: Response) -> None:
        text = self._paint(f"Error ({response.code})", "red")
        data = response.data
        if isinstance(data, str):
            text += f": {data}"
        elif isinstance(data, dict) and isinstance(data.get("error"), str):
            text += f": {data['error']}"
        elif data is not None:
            text += ": " + indented_json(data)
        self._write(text)

    def pretty_print(self, data: Any, request: Request) -> None:
        if request.method == "help":
            self.print_help(data, request.params or {})
        elif request.method == "version":
            self.print_version(data)
        else:
            self._write(indented_json(data))

    def print_version(self, data: Any) -> None:
        self._write("wayvnc is running:")
        if isinstance(data, dict):
            for key, value in data.items():
                self._write(f"  {key}: {_scalar(value)}")

    def print_help(self, data: Any, params: dict) -> None:
        if not isinstance(data, dict):
            self._write(indented_json(data))
            return

        if "commands" in data:
            self._write("Allowed commands:")
            for name in data.get("commands") or []:
                self._write(f"  - {name}")
            self._write("\nRun 'wayvncctl command-name --help' for command-specific details.")
            self._write("\nSupported events:")
            for name in data.get("events") or []:
                self._write(f"  - {name}")
            self._write("\nRun 'wayvncctl help --event=event-name' for event-specific details.")
            return

        is_command = "command" in params
        for name, details in data.items():
            if is_command:
                self.print_command_usage(name, details)
            else:
                self.print_event_details(name, details)

    def print_command_usage(self, name: str, details: Any) -> None:
        details = details if isinstance(details, dict) else {}
        params = details.get("params")
        self._write(
            f"Usage: wayvncctl [options] {name}{' [params]' if params else ''}\n\n"
            f"{details.get('description', '')}"
        )
        if params:
            self._write("\nParameters:", end="")
            for param_name, param_desc in params.items():
                self._write(f"\n  --{param_name}=...\n    {param_desc}")
        self._write("\nRun 'wayvncctl --help' for allowed Options")

    def print_event_details(self, name: str, details: Any) -> None:
        details = details if isinstance(details, dict) else {}
        params = details.get("params")
        self._write(f"Event: {name}\n\n{details.get('description', '')}")
        if params:
            self._write("\nParameters:", end="")
            for param_name, param_desc in params.items():
                self._write(f"\n  {param_name}:...\n    {param_desc}")

    # ------------------------------------------------------------------
    # Events
    # ------------------------------------------------------------------

    def print_event(self, event: Request) -> None:
        if self.raw:
            self._write(compact_json(event.to_json()))
        else:
            self._write(f"\n{self._paint(event.method, 'cyan')}:", end="")
            rendered = format_yaml(event.params, 1, True) if event.params is not None else ""
            self._write(rendered or " <null>\n", end="")
        self.stream.flush()
