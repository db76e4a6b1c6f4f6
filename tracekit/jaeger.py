"""Reporter that ships spans to a Jaeger agent over UDP."""

from __future__ import annotations

import ipaddress
import socket
import sys
from collections.abc import Sequence
from typing import Any, Optional

from tracekit.records import SpanRecord
from tracekit.reporter import Reporter
from tracekit.thrift import Batch, EmitBatchNotification, JaegerSpan, Log, Process, Tag

MAX_UDP_PACKAGE_SIZE = 8000

_U64_MASK = (1 << 64) - 1


def _to_i64(number: int) -> int:
    number &= _U64_MASK
    return number - (1 << 64) if number >= 1 << 63 else number


def _parse_addr(agent_addr: tuple[str, int]) -> tuple[ipaddress.IPv4Address | ipaddress.IPv6Address, int]:
    host, port = agent_addr
    address = ipaddress.ip_address(host)
    port = int(port)
    if not 0 <= port <= 0xFFFF:
        raise ValueError(f"port out of range: {port}")
    return address, port


class JaegerReporter(Reporter):
    """Sends span batches to a Jaeger agent's compact-Thrift UDP endpoint."""

    def __init__(self, agent_addr: tuple[str, int], service_name: str) -> None:
        address, port = _parse_addr(agent_addr)
        if address.version == 4:
            family, local = socket.AF_INET, ("0.0.0.0", 0)
        else:
            family, local = socket.AF_INET6, ("::", 0)
        sock = socket.socket(family, socket.SOCK_DGRAM)
        try:
            sock.bind(local)
        except OSError:
            sock.close()
            raise
        self._agent_addr = (str(address), port)
        self._service_name = service_name
        self._socket = sock

    @property
    def agent_addr(self) -> tuple[str, int]:
        return self._agent_addr

    @property
    def service_name(self) -> str:
        return self._service_name

    def convert(self, spans: Sequence[SpanRecord]) -> list[JaegerSpan]:
        """Turn span records into Jaeger spans, with times in microseconds."""
        return [
            JaegerSpan(
                trace_id_low=_to_i64(span.trace_id.value),
                trace_id_high=_to_i64(span.trace_id.value >> 64),
                span_id=_to_i64(span.span_id.value),
                parent_span_id=_to_i64(span.parent_id.value),
                operation_name=span.name,
                flags=1,
                start_time=_to_i64(span.begin_time_unix_ns // 1_000),
                duration=_to_i64(span.duration_ns // 1_000),
                tags=[Tag(key, value) for key, value in span.properties],
                logs=[
                    Log(
                        timestamp=_to_i64(event.timestamp_unix_ns // 1_000),
                        fields=[
                            Tag(key, value)
                            for key, value in [("name", event.name), *event.properties]
                        ],
                    )
                    for event in span.events
                ],
            )
            for span in spans
        ]

    def serialize(self, spans: list[JaegerSpan]) -> bytes:
        """Encode spans as one ``emitBatch`` message."""
        batch = Batch(Process(self._service_name), spans)
        return EmitBatchNotification(batch).encode()

    def try_report(self, spans: Sequence[SpanRecord]) -> None:
        """Send spans in datagrams below the UDP size limit.

        Batches are halved until they fit; a single span that does not fit is dropped.
        """
        spans_per_batch = len(spans)
        sent = 0
        while sent < len(spans):
            batch_size = min(spans_per_batch, len(spans) - sent)
            data = self.serialize(self.convert(spans[sent:sent + batch_size]))
            if len(data) >= MAX_UDP_PACKAGE_SIZE:
                if batch_size <= 1:
                    sent += 1
                else:
                    spans_per_batch //= 2
                continue
            self._socket.sendto(data, self._agent_addr)
            sent += batch_size

    def report(self, spans: Sequence[SpanRecord]) -> None:
        if not spans:
            return
        try:
            self.try_report(spans)
        except (OSError, ValueError, TypeError) as err:
            print(f"report to jaeger failed: {err}", file=sys.stderr)

    def close(self) -> None:
        """Close the UDP socket."""
        self._socket.close()

    def __enter__(self) -> JaegerReporter:
        return self

    def __exit__(self, *args: Any) -> Optional[bool]:
        self.close()
        return None