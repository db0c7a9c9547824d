"""
Threaded fake control server for tests.

Each accepted connection is handed to the next script in the list; a
script is a callable taking a ServerConnection. The listening socket is
created in __init__ so the socket path exists before the client connects.
"""

import json
import os
import shutil
import socket
import tempfile
import threading
from pathlib import Path
from typing import Callable, List, Optional


def make_socket_dir() -> Path:
    """Short temp dir so socket paths stay under the sun_path limit."""
    base = "/tmp" if os.path.isdir("/tmp") else None
    return Path(tempfile.mkdtemp(prefix="wvc", dir=base))


class ServerConnection:
    def __init__(self, conn: socket.socket):
        self.conn = conn
        self._pending = ""
        self._decoder = json.JSONDecoder()

    def recv_json(self, timeout: float = 5.0):
        """Read one JSON value from the client."""
        self.conn.settimeout(timeout)
        while True:
            text = self._pending.lstrip()
            if text:
                try:
                    value, end = self._decoder.raw_decode(text)
                    self._pending = text[end:]
                    return value
                except json.JSONDecodeError:
                    pass
            chunk = self.conn.recv(4096)
            if not chunk:
                raise ConnectionError("client closed the connection")
            self._pending += chunk.decode("utf-8")

    def send_json(self, value) -> None:
        self.send_raw(json.dumps(value).encode("utf-8"))

    def send_raw(self, data: bytes) -> None:
        self.conn.sendall(data)

    def close(self) -> None:
        self.conn.close()


class FakeServer:
    def __init__(self, path: Path, scripts: List[Callable[[ServerConnection], None]]):
        self.path = path
        self.scripts = list(scripts)
        self.requests: List[dict] = []
        self.errors: List[BaseException] = []
        self.connections = 0
        self.sock = socket.socket(socket.AF_UNIX, socket.SOCK_STREAM)
        self.sock.bind(str(path))
        self.sock.listen(4)
        self._thread: Optional[threading.Thread] = None

    def start(self) -> "FakeServer":
        self._thread = threading.Thread(target=self._serve, daemon=True)
        self._thread.start()
        return self

    def _serve(self) -> None:
        for script in self.scripts:
            try:
                conn, _ = self.sock.accept()
            except OSError:
                return
            self.connections += 1
            server_conn = ServerConnection(conn)
            try:
                script(server_conn)
            except BaseException as e:  # surfaced to the test through self.errors
                self.errors.append(e)
            finally:
                server_conn.close()

    def stop(self, unlink: bool = True) -> None:
        # shutdown() wakes a thread blocked in accept(); close() alone may not
        try:
            self.sock.shutdown(socket.SHUT_RDWR)
        except OSError:
            pass
        self.sock.close()
        if unlink and self.path.exists():
            self.path.unlink()

    def join(self, timeout: float = 5.0) -> None:
        if self._thread is not None:
            self._thread.join(timeout)


def reply(code: int = 0, data=None, expect_method: Optional[str] = None, record: Optional[list] = None):
    """Script: read one request, answer it, then hang up."""

    def script(conn: ServerConnection) -> None:
        request = conn.recv_json()
        if record is not None:
            record.append(request)
        if expect_method is not None:
            assert request["method"] == expect_method, request
        response = {"code": code}
        if data is not None:
            response["data"] = data
        conn.send_json(response)

    return script


def remove_dir(path: Path) -> None:
    shutil.rmtree(path, ignore_errors=True)
