# -*- test-case-name: tcpchat.test.test_broadcast -*-
# Copyright (c) Twisted Matrix Laboratories.
# See LICENSE for details.

"""
Relaying messages to every registered client but the one they came from.
"""

from __future__ import annotations

from typing import List, Union

from attrs import frozen
from constantly import NamedConstant, Names

from twisted.internet.error import ConnectionLost
from twisted.logger import Logger

from tcpchat.registry import Client, ClientRegistry


class Origins(Names):
    """
    Message origins which are not clients.

    @cvar OPERATOR: The message was typed at the server's own console.
    """

    OPERATOR = NamedConstant()


@frozen
class Message:
    """
    A sanitized message on its way to the clients.

    @ivar content: One line of printable ASCII, terminated by a line feed.
    @ivar origin: The L{Client} which sent it, or L{Origins.OPERATOR}.
    """

    content: bytes
    origin: Union[Client, NamedConstant]

    def isFrom(self, client: Client) -> bool:
        """
        Is C{client} the origin of this message?

        Origins are compared by connection handle, never by address: a new
        connection may well reuse the address and port of an old one.
        """
        if not isinstance(self.origin, Client):
            return False
        return self.origin.handle == client.handle


class Broadcaster:
    """
    Deliver messages to the clients of a L{ClientRegistry}.
    """

    _log = Logger()

    def __init__(self, registry: ClientRegistry) -> None:
        self.registry = registry

    def broadcast(self, message: Message) -> List[Client]:
        """
        Send C{message} to every registered client except its origin.

        A client whose connection turns out to be reset or broken is
        disconnected, and delivery carries on with the rest.

        @return: The clients the message was delivered to.

        @raise OSError: If sending failed for any other reason.
        """
        delivered = []
        for client in self.registry:
            if message.isFrom(client):
                continue
            try:
                client.send(message.content)
            except ConnectionLost as e:
                self._log.debug(
                    "Delivery to {peer} failed: {error}", peer=client.peer, error=e
                )
                self.registry.disconnect(client)
            else:
                delivered.append(client)
        return delivered


__all__ = ["Broadcaster", "Message", "Origins"]
