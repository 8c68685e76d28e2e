# -*- test-case-name: tcpchat.test.test_logging -*-
# Copyright (c) Twisted Matrix Laboratories.
# See LICENSE for details.

"""
Log observers for the relay.

The relay's user-visible output (connection notices and echoed messages) is
emitted as log events in the L{NOTICE_NAMESPACE} namespace.  Those events are
written to standard output as bare lines; diagnostics of level
C{warn} and above go to standard error with the usual timestamp prefix.
"""

from __future__ import annotations

from typing import IO, Optional

from twisted.logger import (
    FileLogObserver,
    FilteringLogObserver,
    ILogObserver,
    LogEvent,
    LogLevel,
    LogLevelFilterPredicate,
    Logger,
    PredicateResult,
    formatEvent,
    globalLogBeginner,
    textFileLogObserver,
)

NOTICE_NAMESPACE = "tcpchat.notice"

notices = Logger(namespace=NOTICE_NAMESPACE)


def _isNotice(event: LogEvent) -> bool:
    return event.get("log_namespace") == NOTICE_NAMESPACE


def _onlyNotices(event: LogEvent) -> PredicateResult:
    if _isNotice(event):
        return PredicateResult.maybe
    return PredicateResult.no


def _noNotices(event: LogEvent) -> PredicateResult:
    if _isNotice(event):
        return PredicateResult.no
    return PredicateResult.maybe


def formatNotice(event: LogEvent) -> Optional[str]:
    """
    Format a notice as a single line, with no timestamp or system prefix.
    """
    text = formatEvent(event)
    if not text:
        return None
    return text + "\n"


def noticeObserver(outFile: IO[str]) -> ILogObserver:
    """
    Create an observer which writes notices, and nothing else, to C{outFile}.
    """
    return FilteringLogObserver(
        FileLogObserver(outFile, formatNotice), [_onlyNotices]
    )


def diagnosticObserver(
    outFile: IO[str], level: LogLevel = LogLevel.warn
) -> ILogObserver:
    """
    Create an observer which writes events of at least C{level}, other than
    notices, to C{outFile}.
    """
    return FilteringLogObserver(
        textFileLogObserver(outFile),
        [_noNotices, LogLevelFilterPredicate(defaultLogLevel=level)],
    )


def startLogging(stdout: IO[str], stderr: IO[str]) -> None:
    """
    Begin logging notices to C{stdout} and diagnostics to C{stderr}.
    """
    globalLogBeginner.beginLoggingTo(
        [noticeObserver(stdout), diagnosticObserver(stderr)],
        redirectStandardIO=False,
    )


__all__ = ["NOTICE_NAMESPACE", "notices", "startLogging"]
