# tracekit

Span records, identifiers and reporters for timeline tracing.

tracekit holds the data that a tracer produces: trace and span
identifiers, finished span and event records, and collector settings.
It also has reporters that send finished span records to a Jaeger or
Datadog agent, or print them to a stream.

## Installing

```
pip install tracekit
```

## Identifiers and contexts (`tracekit.ids`, `tracekit.records`)

`TraceId` holds a 128-bit trace identifier and `SpanId` holds a 64-bit span
identifier; both are frozen, ordered, and raise `ValueError` for values out
of range. `int(...)` gives the number back.

`SpanId.next_id()` returns a fresh span id built from a random 32-bit
prefix chosen once per thread and a per-thread counter, so ids from
different threads are unique with high probability.

`SpanContext` pairs a trace id with a span id and reads and writes the W3C
`traceparent` header:

```python
from tracekit.records import SpanContext

context = SpanContext.decode_w3c_traceparent(
    "00-0af7651916cd43dd8448eb211c80319c-b7ad6b7169203331-01"
)
context.encode_w3c_traceparent()
# '00-0af7651916cd43dd8448eb211c80319c-b7ad6b7169203331-01'
context.encode_w3c_traceparent_with_sampled(False)
# '00-0af7651916cd43dd8448eb211c80319c-b7ad6b7169203331-00'
```

`decode_w3c_traceparent` raises `ValueError` when the header does not have
four parts, its version is not `00`, or an id is not valid hexadecimal of
the right size. The flags part is not checked.

`SpanContext.random()` starts a new trace with a random trace id and a zero
span id.

## Records

A `SpanRecord` is one finished span: trace id, span id, parent id, start
time and duration in nanoseconds, a name, a list of `(key, value)` string
properties and a list of `EventRecord`s. An `EventRecord` is a named point
in time with its own properties. `CollectTokenItem` names one place a set
of spans is collected into (trace id, parent id, collect id, root flag).

## Configuration

`Config` holds collector settings:

- `max_spans_per_trace`: soft limit on spans per trace (`None`, no limit, by default),
- `batch_report_interval`: time between batch reports (500 ms by default),
- `batch_report_max_spans`: soft limit on spans in one batch (`None` by default).

`Config` is frozen; each `with_...` method returns a changed copy:

```python
from datetime import timedelta
from tracekit.records import Config

config = (
    Config()
    .with_max_spans_per_trace(100)
    .with_batch_report_interval(timedelta(seconds=1))
)
```

## Reporters

Every reporter subclasses `tracekit.reporter.Reporter` and implements
`report(spans)`, which takes a sequence of `SpanRecord`s.

`ConsoleReporter` pretty-prints each record to a text stream, standard
error unless another stream is given:

```python
import io
from tracekit.reporter import ConsoleReporter

buffer = io.StringIO()
ConsoleReporter(buffer).report(spans)
```

### Jaeger (`tracekit.jaeger`)

`JaegerReporter(agent_addr, service_name)` binds a UDP socket and sends
spans to a Jaeger agent as a Thrift compact-protocol `emitBatch` one-way
message. `agent_addr` is a `(host, port)` pair whose host is an IPv4 or
IPv6 address literal (host names are not resolved). Times are sent in
microseconds; span properties become string tags, and each event becomes a
log whose first field is its name. A batch that encodes to 8000 bytes or
more is halved until it fits; a single span that still does not fit is
dropped. Use it as a context manager, or call `close()`, to close the
socket:

```python
from tracekit.jaeger import JaegerReporter

with JaegerReporter(("127.0.0.1", 6831), "my-service") as reporter:
    reporter.report(spans)
```

`convert()` and `serialize()` expose the two steps separately. The Jaeger
data model (`JaegerSpan`, `Tag`, `Log`, `SpanRef`, `Process`, `Batch`,
`EmitBatchNotification`) and its compact encoder (`ThriftStruct`, `Field`,
`encode_oneway_message`) live in `tracekit.thrift`.

### Datadog (`tracekit.datadog`)

`DatadogReporter(agent_addr, service_name, resource, trace_type)` posts
the spans as one trace, msgpack-encoded, to `http://<agent>/v0.4/traces`.
Span properties become the `meta` map, which is left out when empty; only
the low 64 bits of the trace id are sent. An HTTP error status from the
agent is not treated as a failure.

```python
from tracekit.datadog import DatadogReporter

reporter = DatadogReporter(("127.0.0.1", 8126), "my-service", "db", "select")
reporter.report(spans)
```

### Errors

`report()` does nothing for an empty batch. When sending or encoding fails
with an `OSError`, `ValueError` or `TypeError`, it prints
`report to jaeger failed: ...` or `report to datadog failed: ...` on
standard error instead of raising. Call `try_report()` to get the
exception instead.

## What it does not do

tracekit has no API for starting, timing or nesting spans, no thread-local
parent context, no function decorator and no global collector. Nothing
produces `SpanRecord`s for you and nothing acts on a `Config`: you build
the records yourself and hand them to a reporter's `report()`.