# -*- test-case-name: tcpchat.test.test_sanitize -*-
# Copyright (c) Twisted Matrix Laboratories.
# See LICENSE for details.

"""
Exceptions raised by the chat relay.

Peer lifecycle events (a client closing its connection, or a connection
being reset) are not represented here; they are reported with
L{twisted.internet.error.ConnectionDone} and
L{twisted.internet.error.ConnectionLost}.
"""


class RelayError(Exception):
    """
    Base class for errors raised by the chat relay.
    """


class MessageTooLong(RelayError):
    """
    A message exceeded the maximum length accepted by the relay.

    @ivar length: The length of the rejected message.
    @ivar maximum: The largest length which would have been accepted.
    """

    def __init__(self, length: int, maximum: int) -> None:
        RelayError.__init__(self, length, maximum)
        self.length = length
        self.maximum = maximum

    def __str__(self) -> str:
        return f"message too long ({self.length} > {self.maximum} bytes)"


__all__ = ["RelayError", "MessageTooLong"]
