"""Reporter that ships spans to a Datadog agent in msgpack format."""

from __future__ import annotations

import ipaddress
import sys
import urllib.error
import urllib.request
from collections.abc import Sequence
from typing import Any

import msgpack

from tracekit.records import SpanRecord
from tracekit.reporter import Reporter

_U64_MASK = (1 << 64) - 1
_TIMEOUT_SECONDS = 30


def _to_i64(number: int) -> int:
    number &= _U64_MASK
    return number - (1 << 64) if number >= 1 << 63 else number


class DatadogReporter(Reporter):
    """Posts span batches to a Datadog agent's ``/v0.4/traces`` endpoint."""

    def __init__(
        self,
        agent_addr: tuple[str, int],
        service_name: str,
        resource: str,
        trace_type: str,
    ) -> None:
        host, port = agent_addr
        address = ipaddress.ip_address(host)
        port = int(port)
        if not 0 <= port <= 0xFFFF:
            raise ValueError(f"port out of range: {port}")
        self.agent_addr = (str(address), port)
        self.service_name = service_name
        self.resource = resource
        self.trace_type = trace_type

    @property
    def url(self) -> str:
        host, port = self.agent_addr
        if ":" in host:
            host = f"[{host}]"
        return f"http://{host}:{port}/v0.4/traces"

    def convert(self, spans: Sequence[SpanRecord]) -> list[dict[str, Any]]:
        """Turn span records into Datadog span maps."""
        converted = []
        for span in spans:
            item: dict[str, Any] = {
                "name": span.name,
                "service": self.service_name,
                "type": self.trace_type,
                "resource": self.resource,
                "start": _to_i64(span.begin_time_unix_ns),
                "duration": _to_i64(span.duration_ns),
            }
            if span.properties:
                item["meta"] = dict(span.properties)
            item["error_code"] = 0
            item["span_id"] = span.span_id.value
            item["trace_id"] = span.trace_id.value & _U64_MASK
            item["parent_id"] = span.parent_id.value
            converted.append(item)
        return converted

    def serialize(self, spans: list[dict[str, Any]]) -> bytes:
        """Encode spans as a msgpack list holding a single trace."""
        return b"\x91" + msgpack.packb(spans, use_bin_type=True)

    def try_report(self, spans: Sequence[SpanRecord]) -> None:
        """Post spans to the agent; the response status is not inspected."""
        body = self.serialize(self.convert(spans))
        request = urllib.request.Request(
            self.url,
            data=body,
            method="POST",
            headers={
                "Datadog-Meta-Tracer-Version": "v1.27.0",
                "Content-Type": "application/msgpack",
            },
        )
        opener = urllib.request.build_opener(urllib.request.ProxyHandler({}))
        try:
            with opener.open(request, timeout=_TIMEOUT_SECONDS) as response:
                response.read()
        except urllib.error.HTTPError as err:
            err.close()

    def report(self, spans: Sequence[SpanRecord]) -> None:
        if not spans:
            return
        try:
            self.try_report(spans)
        except (OSError, ValueError, TypeError) as err:
            print(f"report to datadog failed: {err}", file=sys.stderr)