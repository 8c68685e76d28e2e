# Copyright (c) Twisted Matrix Laboratories.
# See LICENSE for details.

"""
Interface documentation.

Maintainer: the tcpchat developers
"""

from zope.interface import Interface


class ISelectable(Interface):
    """
    An object which can be watched for read readiness.
    """

    def fileno() -> int:
        """
        @return: The platform-specified representation of a file descriptor
            number.  Or C{-1} if the descriptor no longer has a valid file
            descriptor number associated with it.
        """


class IWatchSet(Interface):
    """
    The set of L{ISelectable} providers a multiplexor is waiting on.
    """

    def addReader(reader: ISelectable) -> None:
        """
        Start watching C{reader} for read readiness.

        Adding a reader which is already being watched has no effect.
        """

    def removeReader(reader: ISelectable) -> None:
        """
        Stop watching C{reader}.

        Removing a reader which is not being watched has no effect.
        """

    def getReaders() -> list:
        """
        Return the list of readers currently being watched, in the order they
        were added.
        """
