# -*- test-case-name: tcpchat.test.test_loop -*-
# Copyright (c) Twisted Matrix Laboratories.
# See LICENSE for details.

"""
The relay's control loop.

Each turn of L{EventLoop} waits for readiness on the listening socket, the
operator console and every registered client, and then services exactly one
of them, in that order of priority.  When several clients are ready only the
first is read; the others are still ready on the next turn.  This keeps the
loop simple, but it is not a fairness guarantee.
"""

from __future__ import annotations

from typing import Optional, Union

from constantly import NamedConstant, Names

from twisted.internet.error import ConnectionDone, ConnectionLost
from twisted.logger import Logger

from tcpchat._logging import notices
from tcpchat.broadcast import Broadcaster, Message, Origins
from tcpchat.console import OperatorConsole
from tcpchat.error import MessageTooLong
from tcpchat.listener import Listener
from tcpchat.multiplexor import Cancellation, Multiplexor
from tcpchat.registry import Client, ClientRegistry
from tcpchat.sanitize import sanitize


class LoopState(Names):
    """
    The states of an L{EventLoop}.

    @cvar RUNNING: Accepting connections and relaying messages.
    @cvar DRAINING: Shutdown has been requested; nothing more is read or
        accepted.
    @cvar STOPPED: The listening socket and all client sockets are closed.
    """

    RUNNING = NamedConstant()
    DRAINING = NamedConstant()
    STOPPED = NamedConstant()


class EventLoop:
    """
    Multiplex a L{Listener}, an L{OperatorConsole} and the clients of a
    L{ClientRegistry}, relaying messages through a L{Broadcaster}.

    @ivar state: The current L{LoopState}.
    """

    _log = Logger()

    def __init__(
        self,
        multiplexor: Multiplexor,
        listener: Listener,
        console: Optional[OperatorConsole],
        registry: ClientRegistry,
        broadcaster: Broadcaster,
        cancellation: Cancellation,
    ) -> None:
        self.multiplexor = multiplexor
        self.listener = listener
        self.console = console
        self.registry = registry
        self.broadcaster = broadcaster
        self.cancellation = cancellation
        self.state = LoopState.RUNNING

        multiplexor.addReader(listener)
        if console is not None:
            multiplexor.addReader(console)

    def run(self) -> int:
        """
        Relay messages until shutdown is requested, then drain.

        @return: The process exit status.

        @raise OSError: On any unrecoverable socket or input error.
        """
        while self.state is LoopState.RUNNING:
            self.iterate()
        self.drain()
        return 0

    def stop(self) -> None:
        """
        Request shutdown.  The loop drains at its next turn.
        """
        self.cancellation.cancel()

    def iterate(self, timeout: Optional[float] = None) -> None:
        """
        Run one turn of the loop.

        @param timeout: The longest time to wait for readiness, or L{None}
            to wait indefinitely.
        """
        if self.state is not LoopState.RUNNING:
            return
        ready = self.multiplexor.wait(self.cancellation, timeout)
        if self.cancellation.cancelled:
            self._beginDraining()
            return

        if self.listener in ready:
            self.listener.doRead()
        elif self.console is not None and self.console in ready:
            self._readConsole()
        else:
            for reader in ready:
                if isinstance(reader, Client) and reader in self.registry:
                    self._readClient(reader)
                    break

    def drain(self) -> None:
        """
        Stop accepting and reading, and close every socket.
        """
        if self.state is LoopState.STOPPED:
            return
        self._beginDraining()
        self.multiplexor.removeReader(self.listener)
        self.listener.close()
        if self.console is not None:
            self.multiplexor.removeReader(self.console)
        self.registry.closeAll()
        self.state = LoopState.STOPPED
        self._log.info("Relay stopped")

    def _beginDraining(self) -> None:
        if self.state is LoopState.RUNNING:
            self._log.info("Draining")
            self.state = LoopState.DRAINING

    def _readConsole(self) -> None:
        try:
            lines = self.console.readLines()
        except ConnectionDone:
            self._log.info("End of operator input, shutting down")
            self._beginDraining()
            return
        for line in lines:
            self._relay(line, Origins.OPERATOR)

    def _readClient(self, client: Client) -> None:
        try:
            data = client.receive()
        except InterruptedError:
            return
        except (ConnectionDone, ConnectionLost):
            self.registry.disconnect(client)
            return
        self._relay(data, client)

    def _relay(self, data: bytes, origin: Union[Client, NamedConstant]) -> None:
        source = origin.peer if isinstance(origin, Client) else "operator"
        try:
            content = sanitize(data)
        except MessageTooLong as e:
            self._log.warn("Dropped message from {source}: {error}",
                           source=source, error=e)
            return
        if not content:
            return
        if isinstance(origin, Client):
            notices.info("{peer} >> {message}", peer=source,
                         message=content[:-1].decode("ascii"))
        self.broadcaster.broadcast(Message(content, origin))


__all__ = ["EventLoop", "LoopState"]
