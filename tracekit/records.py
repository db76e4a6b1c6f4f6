"""Collected span records, span contexts and collector configuration."""

from __future__ import annotations

import dataclasses
import re
import secrets
from dataclasses import dataclass, field
from datetime import timedelta
from typing import Optional

from tracekit.ids import SpanId, TraceId

Property = tuple[str, str]

_HEX = re.compile(r"\+?[0-9a-fA-F]+")


@dataclass
class EventRecord:
    """A record of an event that occurred during the execution of a span."""

    name: str = ""
    timestamp_unix_ns: int = 0
    properties: list[Property] = field(default_factory=list)


@dataclass
class SpanRecord:
    """A finished span with its identifiers, timing, name, properties and events."""

    trace_id: TraceId = field(default_factory=TraceId)
    span_id: SpanId = field(default_factory=SpanId)
    parent_id: SpanId = field(default_factory=SpanId)
    begin_time_unix_ns: int = 0
    duration_ns: int = 0
    name: str = ""
    properties: list[Property] = field(default_factory=list)
    events: list[EventRecord] = field(default_factory=list)


@dataclass(frozen=True)
class CollectTokenItem:
    """One destination a set of spans is collected into."""

    trace_id: TraceId
    parent_id: SpanId
    collect_id: int
    is_root: bool


def _parse_hex(text: str, bits: int) -> int:
    if not _HEX.fullmatch(text):
        raise ValueError(f"invalid hexadecimal number: {text!r}")
    value = int(text, 16)
    if value >= 1 << bits:
        raise ValueError(f"hexadecimal number does not fit in {bits} bits: {text!r}")
    return value


@dataclass(frozen=True)
class SpanContext:
    """The trace id and span id that identify a position in a trace."""

    trace_id: TraceId = field(default_factory=TraceId)
    span_id: SpanId = field(default_factory=SpanId)

    @classmethod
    def random(cls) -> SpanContext:
        """Create a context with a random trace id and a zero span id."""
        return cls(TraceId(secrets.randbits(128)), SpanId())

    @classmethod
    def decode_w3c_traceparent(cls, traceparent: str) -> SpanContext:
        """Decode a W3C ``traceparent`` header value.

        Raises ValueError when the value is malformed.
        """
        parts = traceparent.split("-")
        if len(parts) != 4 or parts[0] != "00":
            raise ValueError(f"malformed traceparent: {traceparent!r}")
        trace_id = _parse_hex(parts[1], 128)
        span_id = _parse_hex(parts[2], 64)
        return cls(TraceId(trace_id), SpanId(span_id))

    def encode_w3c_traceparent(self) -> str:
        """Encode as a W3C ``traceparent`` header value with the sampled flag set."""
        return self.encode_w3c_traceparent_with_sampled(True)

    def encode_w3c_traceparent_with_sampled(self, sampled: bool) -> str:
        """Encode as a W3C ``traceparent`` header value with the given sampled flag."""
        return f"00-{self.trace_id.value:032x}-{self.span_id.value:016x}-{int(bool(sampled)):02x}"


@dataclass(frozen=True)
class Config:
    """Behaviour of the global collector."""

    max_spans_per_trace: Optional[int] = None
    batch_report_interval: timedelta = timedelta(milliseconds=500)
    batch_report_max_spans: Optional[int] = None

    def with_max_spans_per_trace(self, max_spans_per_trace: Optional[int]) -> Config:
        """Soft limit on spans and events per trace; the root span is always kept."""
        return dataclasses.replace(self, max_spans_per_trace=max_spans_per_trace)

    def with_batch_report_interval(self, batch_report_interval: timedelta) -> Config:
        """Time between two batch reports."""
        return dataclasses.replace(self, batch_report_interval=batch_report_interval)

    def with_batch_report_max_spans(self, batch_report_max_spans: Optional[int]) -> Config:
        """Soft limit on the number of spans in one batch report."""
        return dataclasses.replace(self, batch_report_max_spans=batch_report_max_spans)