# Copyright (c) Twisted Matrix Laboratories.
# See LICENSE for details.

"""
Helpers for the tcpchat tests.
"""

from __future__ import annotations

import socket
import struct
from typing import List, Tuple

from zope.interface import implementer

from twisted.internet.address import IPv4Address
from twisted.logger import LogEvent, formatEvent

from tcpchat._logging import NOTICE_NAMESPACE
from tcpchat.interfaces import ISelectable, IWatchSet


def connectedPair(testCase) -> Tuple[socket.socket, socket.socket]:
    """
    Return the two sockets which make up a new loopback TCP connection.
    Both are closed when C{testCase} finishes.
    """
    serverSocket = socket.socket()
    serverSocket.bind(("127.0.0.1", 0))
    serverSocket.listen(1)
    testCase.addCleanup(serverSocket.close)

    client = socket.socket()
    testCase.addCleanup(client.close)
    client.connect(serverSocket.getsockname())
    server, addr = serverSocket.accept()
    testCase.addCleanup(server.close)
    return client, server


def abort(skt: socket.socket) -> None:
    """
    Close C{skt} so that its peer sees the connection reset.
    """
    skt.setsockopt(socket.SOL_SOCKET, socket.SO_LINGER, struct.pack("ii", 1, 0))
    skt.close()


def peerAddress(skt: socket.socket) -> IPv4Address:
    """
    The address of C{skt} as its peer sees it.
    """
    host, port = skt.getsockname()[:2]
    return IPv4Address("TCP", host, port)


def noticesIn(events: List[LogEvent]) -> List[str]:
    """
    The text of the notices among C{events}.
    """
    return [
        formatEvent(event)
        for event in events
        if event.get("log_namespace") == NOTICE_NAMESPACE
    ]


@implementer(IWatchSet)
class MemoryWatchSet:
    """
    An L{IWatchSet} which only records what it has been asked to watch.
    """

    def __init__(self) -> None:
        self.readers: List[ISelectable] = []

    def addReader(self, reader: ISelectable) -> None:
        if reader not in self.readers:
            self.readers.append(reader)

    def removeReader(self, reader: ISelectable) -> None:
        if reader in self.readers:
            self.readers.remove(reader)

    def getReaders(self) -> List[ISelectable]:
        return list(self.readers)


class FakeSocket:
    """
    Enough of a socket for a L{tcpchat.registry.Client}.

    @ivar sent: Everything passed to C{sendall}.
    @ivar sendErrors: Exceptions to raise from the next calls to C{sendall},
        in order.
    """

    def __init__(self, sendErrors=()) -> None:
        self.sent: List[bytes] = []
        self.sendErrors = list(sendErrors)
        self.closed = False

    def fileno(self) -> int:
        return -1 if self.closed else 99

    def sendall(self, data: bytes) -> None:
        if self.sendErrors:
            raise self.sendErrors.pop(0)
        self.sent.append(data)

    def close(self) -> None:
        self.closed = True
