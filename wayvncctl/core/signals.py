"""Operator cancellation for blocking waits.

Signal handlers only flip a boolean. Blocking waits in the ctl package are
sliced into short polls and check the flag between slices, because Python
transparently restarts select() and sleep() after a handler returns.
"""

import signal
from typing import Dict, Iterable, Optional


class CancellationFlag:
    """
    Process-wide cancellation state.

    `request()` is safe to call from a signal handler: it performs no I/O,
    takes no locks and allocates nothing.
    """

    def __init__(self) -> None:
        self.requested = False
        self._previous: Dict[int, object] = {}

    def request(self) -> None:
        self.requested = True

    def reset(self) -> None:
        self.requested = False

    def _handle(self, signum, frame) -> None:
        self.requested = True

    def install(self, signals: Iterable[int] = (signal.SIGINT, signal.SIGTERM)) -> None:
        """Route the given signals to this flag, remembering previous handlers."""
        for sig in signals:
            if sig not in self._previous:
                self._previous[sig] = signal.getsignal(sig)
            signal.signal(sig, self._handle)

    def uninstall(self) -> None:
        """Restore the handlers that were active before install()."""
        for sig, handler in self._previous.items():
            signal.signal(sig, handler)
        self._previous.clear()

    @property
    def installed(self) -> bool:
        return bool(self._previous)

    def __enter__(self) -> "CancellationFlag":
        self.install()
        return self

    def __exit__(self, *exc_info) -> None:
        self.uninstall()


_cancellation: Optional[CancellationFlag] = None


def get_cancellation() -> CancellationFlag:
    """Get the process-wide cancellation flag."""
    global _cancellation
    if _cancellation is None:
        _cancellation = CancellationFlag()
    return _cancellation
