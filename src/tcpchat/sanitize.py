# -*- test-case-name: tcpchat.test.test_sanitize -*-
# Copyright (c) Twisted Matrix Laboratories.
# See LICENSE for details.

"""
Message sanitization.

Every message the relay displays or forwards, whether it arrived from a
client or from the operator's console, is passed through L{sanitize}.
"""

from __future__ import annotations

from typing import Optional

from tcpchat.error import MessageTooLong

MAX_MESSAGE_LENGTH = 1024

_UNPRINTABLE = bytes(c for c in range(256) if not 0x20 <= c <= 0x7E)


def sanitize(data: bytes, length: Optional[int] = None) -> bytes:
    """
    Reduce C{data} to a single line of printable ASCII.

    Bytes outside C{0x20} to C{0x7E} (control characters, including CR and
    LF, DEL and anything non-ASCII) are dropped without substitution.  If
    anything survives, a single line feed is appended.

    @param data: The raw bytes.
    @param length: How many bytes of C{data} to consider.  Defaults to all
        of it.

    @raise MessageTooLong: If C{length} exceeds L{MAX_MESSAGE_LENGTH}.  The
        message is rejected rather than truncated.

    @return: The sanitized line, or C{b""} if nothing printable was found;
        callers must treat the empty result as no message at all.
    """
    if length is None:
        length = len(data)
    if length > MAX_MESSAGE_LENGTH:
        raise MessageTooLong(length, MAX_MESSAGE_LENGTH)
    printable = bytes(data[:length]).translate(None, _UNPRINTABLE)
    if not printable:
        return b""
    return printable + b"\n"


__all__ = ["MAX_MESSAGE_LENGTH", "sanitize"]
