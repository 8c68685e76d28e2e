# -*- test-case-name: tcpchat.test.test_multiplexor -*-
# Copyright (c) Twisted Matrix Laboratories.
# See LICENSE for details.

"""
Readiness multiplexing for the relay's single control loop.

L{Multiplexor} keeps the watch set: every L{ISelectable} the loop is
interested in.  L{Multiplexor.wait} blocks until at least one of them is
readable, or until the L{Cancellation} it was given is cancelled.
"""

from __future__ import annotations

import errno
import os
import selectors
from typing import Dict, List, Optional, Set

from zope.interface import implementer

from twisted.internet import fdesc
from twisted.python.util import untilConcludes

from tcpchat.interfaces import ISelectable, IWatchSet


@implementer(ISelectable)
class Cancellation:
    """
    A cancellation token which can interrupt L{Multiplexor.wait}.

    This is the I{self-pipe trick<http://cr.yp.to/docs/selfpipe.html>}:
    L{cancel} writes a byte to a pipe whose other end is watched alongside
    everything else, so a blocked wait returns promptly even when
    L{cancel} is called from a signal handler.

    @ivar cancelled: C{True} once L{cancel} has been called.
    """

    cancelled = False

    def __init__(self) -> None:
        self._readFD: Optional[int]
        self._writeFD: Optional[int]
        self._readFD, self._writeFD = os.pipe()
        fdesc.setNonBlocking(self._readFD)
        fdesc.setNonBlocking(self._writeFD)

    def fileno(self) -> int:
        if self._readFD is None:
            return -1
        return self._readFD

    def cancel(self) -> None:
        """
        Request cancellation and wake up any wait in progress.

        Calling this more than once has no further effect.
        """
        if self.cancelled:
            return
        self.cancelled = True
        if self._writeFD is None:
            return
        try:
            untilConcludes(os.write, self._writeFD, b"x")
        except OSError as e:
            # The pipe is full, so a wakeup is already pending.
            if e.errno != errno.EAGAIN:
                raise

    def doRead(self) -> None:
        """
        Discard whatever wakeup bytes are pending.
        """
        fdesc.readFromFD(self.fileno(), lambda data: None)

    def close(self) -> None:
        """
        Close both ends of the pipe.
        """
        for fd in self._readFD, self._writeFD:
            if fd is not None:
                os.close(fd)
        self._readFD = self._writeFD = None


@implementer(IWatchSet)
class Multiplexor:
    """
    A watch set of L{ISelectable} providers backed by L{selectors}.

    Some descriptors, such as regular files and C{/dev/null}, cannot be
    registered with every selector; C{epoll(7)} refuses them with C{EPERM}.
    Those are polled continuously instead: they are always reported as
    ready, and L{wait} does not block while any are watched.

    @ivar _readers: Watched readers mapped to the file descriptor they were
        registered with, in the order they were added.  The descriptor is
        remembered so that a reader can be unregistered after its socket has
        been closed.
    @ivar _polled: The watched readers which are polled continuously rather
        than registered with the selector.
    """

    def __init__(self, selector: Optional[selectors.BaseSelector] = None) -> None:
        if selector is None:
            selector = selectors.DefaultSelector()
        self._selector = selector
        self._readers: Dict[ISelectable, int] = {}
        self._polled: Set[ISelectable] = set()
        self._cancellations: Dict[Cancellation, int] = {}

    def addReader(self, reader: ISelectable) -> None:
        if reader in self._readers:
            return
        fd = reader.fileno()
        try:
            self._selector.register(fd, selectors.EVENT_READ, reader)
        except OSError as e:
            if e.errno != errno.EPERM:
                raise
            # epoll(7) does not support regular files, so poll them.
            self._polled.add(reader)
        self._readers[reader] = fd

    def removeReader(self, reader: ISelectable) -> None:
        fd = self._readers.pop(reader, None)
        if fd is None:
            return
        if reader in self._polled:
            self._polled.discard(reader)
        else:
            self._selector.unregister(fd)

    def getReaders(self) -> List[ISelectable]:
        return list(self._readers)

    def _watchCancellation(self, cancellation: Cancellation) -> None:
        if cancellation in self._cancellations:
            return
        fd = cancellation.fileno()
        self._selector.register(fd, selectors.EVENT_READ, cancellation)
        self._cancellations[cancellation] = fd

    def wait(
        self, cancellation: Cancellation, timeout: Optional[float] = None
    ) -> List[ISelectable]:
        """
        Block until some watched reader is readable.

        @param cancellation: Cancelling this wakes the wait up; once it is
            cancelled no readers are reported at all.
        @param timeout: The longest time to wait, in seconds, or L{None} to
            wait indefinitely.

        @return: The readers which are ready, in the order they were added.
            Continuously polled readers are always included.  Apart from
            those, this is empty if the wait timed out or was interrupted by
            a signal.  It is always empty once C{cancellation} is cancelled.
        """
        if cancellation.cancelled:
            return []
        self._watchCancellation(cancellation)
        if self._polled:
            timeout = 0
        try:
            events = self._selector.select(timeout)
        except InterruptedError:
            return []

        ready = set(self._polled)
        for key, mask in events:
            if key.data is cancellation:
                cancellation.doRead()
            else:
                ready.add(key.data)

        if cancellation.cancelled:
            return []
        return [reader for reader in self._readers if reader in ready]

    def close(self) -> None:
        """
        Stop watching everything and release the underlying selector.
        """
        self._readers.clear()
        self._polled.clear()
        self._cancellations.clear()
        self._selector.close()


__all__ = ["Cancellation", "Multiplexor"]
