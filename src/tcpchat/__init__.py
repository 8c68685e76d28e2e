# -*- test-case-name: tcpchat -*-

# Copyright (c) Twisted Matrix Laboratories.
# See LICENSE for details.

"""
tcpchat: a line-oriented TCP chat relay.

A single reactor-style loop multiplexes a listening socket, the operator's
standard input and every connected client, and relays each message to all
clients other than the one it came from.
"""

from tcpchat._version import __version__ as version

__version__ = version.short()
