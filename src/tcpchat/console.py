# -*- test-case-name: tcpchat.test.test_console -*-
# Copyright (c) Twisted Matrix Laboratories.
# See LICENSE for details.

"""
The operator's console: standard input as a source of broadcast messages.
"""

from __future__ import annotations

import os
from typing import List

from zope.interface import implementer

from twisted.internet.error import ConnectionDone

from tcpchat.interfaces import ISelectable
from tcpchat.sanitize import MAX_MESSAGE_LENGTH


@implementer(ISelectable)
class OperatorConsole:
    """
    Split the bytes read from a file descriptor into lines.

    The descriptor is read directly rather than through a buffered file, so
    that no complete line can sit in a user-space buffer while the
    multiplexor believes there is nothing to read.

    A line which grows past L{MAX_MESSAGE_LENGTH} without a line feed is
    handed out once, oversized, so that the caller rejects it; the rest of
    it, up to the next line feed, is discarded.

    @ivar delimiter: The line terminator.
    """

    delimiter = b"\n"

    def __init__(self, fd: int = 0, readSize: int = MAX_MESSAGE_LENGTH) -> None:
        self._fd = fd
        self._readSize = readSize
        self._buffer = b""
        self._discarding = False

    def fileno(self) -> int:
        return self._fd

    def readLines(self) -> List[bytes]:
        """
        Read what is available and return the complete lines found so far,
        each still carrying its terminator.

        At end of input any unterminated remainder is returned as a final
        line; the next call raises.

        @raise ConnectionDone: At end of input.
        """
        try:
            data = os.read(self._fd, self._readSize)
        except InterruptedError:
            return []
        if not data:
            if self._buffer and not self._discarding:
                lines = [self._buffer]
                self._buffer = b""
                return lines
            raise ConnectionDone("operator input closed")
        return self._dataReceived(data)

    def _dataReceived(self, data: bytes) -> List[bytes]:
        lines = []
        self._buffer += data
        while True:
            line, sep, rest = self._buffer.partition(self.delimiter)
            if not sep:
                break
            self._buffer = rest
            if self._discarding:
                self._discarding = False
                continue
            lines.append(line + sep)
        if len(self._buffer) > MAX_MESSAGE_LENGTH:
            if not self._discarding:
                lines.append(self._buffer)
                self._discarding = True
            self._buffer = b""
        return lines


__all__ = ["OperatorConsole"]
