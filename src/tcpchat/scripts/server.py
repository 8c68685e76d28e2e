# -*- test-case-name: tcpchat.test.test_server -*-
# Copyright (c) Twisted Matrix Laboratories.
# See LICENSE for details.

"""
The chat relay server.

Usage: tcpchat-server <local port>
"""

from __future__ import annotations

import sys
from typing import IO, List, Optional

from twisted.logger import Logger
from twisted.python import usage

import tcpchat
from tcpchat._logging import startLogging
from tcpchat._signals import SignalHandling
from tcpchat.broadcast import Broadcaster
from tcpchat.console import OperatorConsole
from tcpchat.listener import Listener, createListeningSocket
from tcpchat.loop import EventLoop
from tcpchat.multiplexor import Cancellation, Multiplexor
from tcpchat.registry import ClientRegistry

MIN_PORT = 1024
MAX_PORT = 65535

_log = Logger()


class ServerOptions(usage.Options):
    synopsis = "Usage: tcpchat-server [options] <local port>"

    longdesc = """
    Relay lines of text between every client connected to <local port>.
    Lines typed on standard input are sent to all clients.  End of input,
    SIGINT or SIGTERM shut the server down.
    """

    def opt_version(self):
        """
        Print version information and exit.
        """
        print(f"tcpchat version: {tcpchat.__version__}")
        sys.exit(0)

    def parseArgs(self, port):
        try:
            port = int(port)
        except ValueError:
            raise usage.UsageError(f"invalid port number: {port!r}")
        if not MIN_PORT <= port <= MAX_PORT:
            raise usage.UsageError(
                f"invalid port number: {port} "
                f"(must be between {MIN_PORT} and {MAX_PORT})"
            )
        self["port"] = port


def serve(port: int, interface: str = "0.0.0.0", stdin: int = 0) -> int:
    """
    Run the relay on C{port} until it is shut down.

    @return: The process exit status.
    """
    cancellation = Cancellation()
    multiplexor = Multiplexor()
    signals = SignalHandling(cancellation)
    try:
        registry = ClientRegistry(multiplexor)
        listener = Listener(createListeningSocket(port, interface), registry)
        loop = EventLoop(
            multiplexor,
            listener,
            OperatorConsole(stdin),
            registry,
            Broadcaster(registry),
            cancellation,
        )
        signals.install()
        _log.info("Relaying on {address}", address=listener.getHost())
        return loop.run()
    finally:
        signals.uninstall()
        multiplexor.close()
        cancellation.close()


def main(
    argv: Optional[List[str]] = None,
    stdout: Optional[IO[str]] = None,
    stderr: Optional[IO[str]] = None,
) -> int:
    """
    Parse C{argv} and run the server.

    @param stdout: Where notices are written; L{sys.stdout} by default.
    @param stderr: Where usage errors and diagnostics are written;
        L{sys.stderr} by default.

    @return: The process exit status: C{0} after a clean shutdown, C{1} on a
        usage error or any fatal error.
    """
    if argv is None:
        argv = sys.argv[1:]
    if stdout is None:
        stdout = sys.stdout
    if stderr is None:
        stderr = sys.stderr
    options = ServerOptions()
    try:
        options.parseOptions(argv)
    except usage.UsageError as e:
        stderr.write(f"{options}\n{e}\n")
        return 1

    startLogging(stdout, stderr)
    try:
        return serve(options["port"])
    except OSError:
        _log.failure("Fatal error")
        return 1


def run():
    sys.exit(main())


__all__ = ["ServerOptions", "main", "run", "serve"]
