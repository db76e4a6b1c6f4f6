"""Reporters that receive batches of finished span records."""

from __future__ import annotations

import abc
import pprint
import sys
from collections.abc import Sequence
from typing import Optional, TextIO

from tracekit.records import SpanRecord


class Reporter(abc.ABC):
    """Handles batches of span records, typically by sending them to a remote service."""

    @abc.abstractmethod
    def report(self, spans: Sequence[SpanRecord]) -> None:
        """Report a batch of spans."""


class ConsoleReporter(Reporter):
    """Prints each span record, pretty-formatted, to a text stream (stderr by default)."""

    def __init__(self, stream: Optional[TextIO] = None) -> None:
        self._stream = stream

    @property
    def stream(self) -> TextIO:
        """The stream records are written to."""
        return self._stream if self._stream is not None else sys.stderr

    def report(self, spans: Sequence[SpanRecord]) -> None:
        out = self.stream
        for span in spans:
            print(pprint.pformat(span), file=out)
        out.flush()