# -*- test-case-name: tcpchat.test.test_registry -*-
# Copyright (c) Twisted Matrix Laboratories.
# See LICENSE for details.

"""
The registry of connected clients.

A L{ClientRegistry} is the authoritative set of live connections.  It is also
the only thing which adds clients to, or removes them from, the multiplexor's
watch set, so that the two never disagree.
"""

from __future__ import annotations

import itertools
import socket
from typing import Dict, Iterator, List, Optional, Union

from attrs import field, frozen
from zope.interface import implementer

from twisted.internet.address import IPv4Address
from twisted.internet.error import ConnectionDone, ConnectionLost
from twisted.python.util import untilConcludes

from tcpchat._logging import notices
from tcpchat.interfaces import ISelectable, IWatchSet

RECEIVE_SIZE = 1023


@implementer(ISelectable)
@frozen(eq=False)
class Client:
    """
    One connected peer.

    Clients compare and hash by identity.  Two connections from the same
    address and port are still two different clients.

    @ivar handle: An identifier unique among all clients ever admitted to
        the registry which created this client.
    @ivar socket: The connected socket.
    @ivar address: The peer's address.
    """

    handle: int
    socket: socket.socket = field(repr=False)
    address: IPv4Address

    @property
    def peer(self) -> str:
        """
        The peer address formatted as C{host:port}.
        """
        return f"{self.address.host}:{self.address.port}"

    def fileno(self) -> int:
        return self.socket.fileno()

    def receive(self, size: int = RECEIVE_SIZE) -> bytes:
        """
        Read whatever the peer has sent, up to C{size} bytes.

        @raise ConnectionDone: If the peer closed the connection.
        @raise ConnectionLost: If the connection was reset.
        @raise OSError: For any other failure.
        """
        try:
            data = self.socket.recv(size)
        except ConnectionResetError as e:
            raise ConnectionLost(str(e)) from e
        if not data:
            raise ConnectionDone()
        return data

    def send(self, data: bytes) -> None:
        """
        Write all of C{data} to the peer, retrying if interrupted.

        @raise ConnectionLost: If the connection was reset or the pipe is
            broken.
        @raise OSError: For any other failure.
        """
        try:
            untilConcludes(self.socket.sendall, data)
        except (BrokenPipeError, ConnectionResetError) as e:
            raise ConnectionLost(str(e)) from e


class ClientRegistry:
    """
    Clients keyed by handle, in the order they connected.

    @ivar _watchSet: The L{IWatchSet} every registered client is watched by.
    """

    def __init__(self, watchSet: IWatchSet) -> None:
        self._watchSet = watchSet
        self._clients: Dict[int, Client] = {}
        self._handles = itertools.count(1)

    def __iter__(self) -> Iterator[Client]:
        """
        Iterate over a snapshot of the registered clients.

        Clients may be removed while the iteration is in progress.  A client
        removed before the iteration reaches it is not visited; every other
        client registered when the iteration began is visited exactly once.
        """
        for client in list(self._clients.values()):
            if self._clients.get(client.handle) is client:
                yield client

    def __len__(self) -> int:
        return len(self._clients)

    def __contains__(self, client: object) -> bool:
        if not isinstance(client, Client):
            return False
        return self._clients.get(client.handle) is client

    def get(self, handle: int) -> Optional[Client]:
        return self._clients.get(handle)

    def insert(self, skt: socket.socket, address: IPv4Address) -> Client:
        """
        Admit a newly accepted connection and start watching it.

        @return: The new L{Client}.
        """
        client = Client(next(self._handles), skt, address)
        self._clients[client.handle] = client
        self._watchSet.addReader(client)
        return client

    def remove(self, client: Union[Client, int]) -> Optional[Client]:
        """
        Remove a client, stop watching it and close its socket.

        @param client: The L{Client} or its handle.

        @return: The removed client, or L{None} if it was not registered.
        """
        handle = client.handle if isinstance(client, Client) else client
        removed = self._clients.pop(handle, None)
        if removed is None:
            return None
        self._watchSet.removeReader(removed)
        removed.socket.close()
        return removed

    def disconnect(self, client: Client) -> None:
        """
        Remove a client whose connection has gone away and announce it.
        """
        if self.remove(client) is not None:
            notices.info("{peer} disconnected", peer=client.peer)

    def closeAll(self) -> List[Client]:
        """
        Remove every client without announcing anything.

        @return: The clients which were removed.
        """
        removed = list(self)
        for client in removed:
            self.remove(client)
        return removed


__all__ = ["Client", "ClientRegistry", "RECEIVE_SIZE"]
