# -*- test-case-name: tcpchat.test.test_signals -*-
# Copyright (c) Twisted Matrix Laboratories.
# See LICENSE for details.

"""
Signal handling for the relay.

C{SIGINT} and C{SIGTERM} cancel the loop's L{Cancellation}, which wakes the
multiplexor up and lets the loop drain.  A handful of other signals which
would otherwise terminate the process are logged and ignored.
"""

from __future__ import annotations

import signal
from types import FrameType
from typing import Callable, Dict, Optional, Union

from attrs import define, field

from twisted.logger import Logger

from tcpchat.multiplexor import Cancellation

_log = Logger()

SHUTDOWN_SIGNALS = (signal.SIGINT, signal.SIGTERM)
IGNORED_SIGNALS = tuple(
    getattr(signal, name)
    for name in ("SIGHUP", "SIGUSR1", "SIGUSR2")
    if hasattr(signal, name)
)

_Handler = Union[Callable[[int, Optional[FrameType]], object], int, None]


@define
class SignalHandling:
    """
    Installs the relay's signal handlers and restores the previous ones.

    @ivar _cancellation: Cancelled when a shutdown signal arrives.
    @ivar _previous: The handlers replaced by L{install}.
    """

    _cancellation: Cancellation
    _previous: Dict[int, _Handler] = field(factory=dict)

    def _shutdown(self, signum: int, frame: Optional[FrameType]) -> None:
        _log.warn("Received signal {signum}, shutting down...", signum=signum)
        self._cancellation.cancel()

    def _ignore(self, signum: int, frame: Optional[FrameType]) -> None:
        _log.warn("Received signal {signum}, ignoring...", signum=signum)

    def install(self) -> None:
        """
        Install the handlers.
        """
        for signum in SHUTDOWN_SIGNALS:
            self._previous[signum] = signal.signal(signum, self._shutdown)
        for signum in IGNORED_SIGNALS:
            self._previous[signum] = signal.signal(signum, self._ignore)

    def uninstall(self) -> None:
        """
        Restore the handlers which were in place before L{install}.
        """
        while self._previous:
            signum, handler = self._previous.popitem()
            if handler is None:
                handler = signal.SIG_DFL
            signal.signal(signum, handler)


__all__ = ["SignalHandling", "SHUTDOWN_SIGNALS", "IGNORED_SIGNALS"]
