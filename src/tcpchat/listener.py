# -*- test-case-name: tcpchat.test.test_listener -*-
# Copyright (c) Twisted Matrix Laboratories.
# See LICENSE for details.

"""
The listening socket, which admits new clients into the registry.
"""

from __future__ import annotations

import errno
import socket

from zope.interface import implementer

from twisted.internet.address import IPv4Address
from twisted.logger import Logger

from tcpchat._logging import notices
from tcpchat.interfaces import ISelectable
from tcpchat.registry import Client, ClientRegistry

LISTEN_BACKLOG = 32

# Errors from accept(2) which mean "nothing to accept right now".
_RETRY_ACCEPT = frozenset({errno.EINTR, errno.EAGAIN, errno.EWOULDBLOCK})


def createListeningSocket(
    port: int, interface: str = "0.0.0.0", backlog: int = LISTEN_BACKLOG
) -> socket.socket:
    """
    Create a TCP/IPv4 socket listening on C{interface} and C{port}.

    C{SO_REUSEPORT} is set where the platform supports it.  The socket is
    non-blocking, so a readiness notification which turns out to be spurious
    cannot stall the loop in C{accept}.

    @raise OSError: If the socket cannot be created, bound or put into the
        listening state.
    """
    skt = socket.socket(socket.AF_INET, socket.SOCK_STREAM, socket.IPPROTO_TCP)
    try:
        if hasattr(socket, "SO_REUSEPORT"):
            skt.setsockopt(socket.SOL_SOCKET, socket.SO_REUSEPORT, 1)
        skt.bind((interface, port))
        skt.listen(backlog)
        skt.setblocking(False)
    except OSError:
        skt.close()
        raise
    return skt


@implementer(ISelectable)
class Listener:
    """
    Accept connections on a listening socket, one per readiness
    notification, and register each one with a L{ClientRegistry}.
    """

    _log = Logger()

    def __init__(self, skt: socket.socket, registry: ClientRegistry) -> None:
        self.socket = skt
        self.registry = registry

    def fileno(self) -> int:
        return self.socket.fileno()

    def getHost(self) -> IPv4Address:
        """
        @return: The address this listener is bound to.
        """
        host, port = self.socket.getsockname()[:2]
        return IPv4Address("TCP", host, port)

    def doRead(self) -> Client | None:
        """
        Accept exactly one pending connection.

        @return: The newly registered L{Client}, or L{None} if nothing could
            be accepted this time around; the loop will try again on its next
            turn.

        @raise OSError: If C{accept} failed for any reason other than being
            interrupted or finding nothing to accept.
        """
        try:
            skt, (host, port) = self.socket.accept()
        except OSError as e:
            if e.errno in _RETRY_ACCEPT:
                return None
            raise
        skt.setblocking(True)
        client = self.registry.insert(skt, IPv4Address("TCP", host, port))
        notices.info("{peer} connected", peer=client.peer)
        self._log.debug("Registered {client!r}", client=client)
        return client

    def close(self) -> None:
        """
        Close the listening socket.  The caller must already have stopped
        watching it.
        """
        self.socket.close()


__all__ = ["LISTEN_BACKLOG", "Listener", "createListeningSocket"]
