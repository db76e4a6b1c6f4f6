import threading

import pytest

from tracekit.ids import SpanId, TraceId


def test_unique_id_across_threads():
    results: list[list[SpanId]] = []
    lock = threading.Lock()

    def worker():
        ids = [SpanId.next_id() for _ in range(1000)]
        with lock:
            results.append(ids)

    threads = [threading.Thread(target=worker) for _ in range(32)]
    for t in threads:
        t.start()
    for t in threads:
        t.join()

    main_ids = [SpanId.next_id() for _ in range(1000)]
    assert all(span_id.value != 0 for span_id in main_ids)

    unique = {span_id for batch in results for span_id in batch}
    assert len(unique) == 32 * 1000
    assert len(unique | set(main_ids)) == 33 * 1000


def test_next_id_is_non_zero_and_sequential_in_thread():
    first = SpanId.next_id()
    second = SpanId.next_id()
    assert first.value != 0
    assert second.value >> 32 == first.value >> 32
    assert (second.value & 0xFFFFFFFF) == ((first.value + 1) & 0xFFFFFFFF)


def test_defaults_are_zero():
    assert SpanId() == SpanId(0)
    assert TraceId() == TraceId(0)
    assert int(TraceId(12)) == 12


@pytest.mark.parametrize("value", [-1, 1 << 64])
def test_span_id_range(value):
    with pytest.raises(ValueError):
        SpanId(value)


@pytest.mark.parametrize("value", [-1, 1 << 128])
def test_trace_id_range(value):
    with pytest.raises(ValueError):
        TraceId(value)


def test_ids_hashable_and_equal_by_value():
    assert {SpanId(5), SpanId(5), SpanId(6)} == {SpanId(5), SpanId(6)}
    assert TraceId((1 << 128) - 1).value == (1 << 128) - 1