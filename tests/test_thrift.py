import struct

import pytest

from tracekit.thrift import (
    Batch,
    EmitBatchNotification,
    Field,
    JaegerSpan,
    Log,
    Process,
    SpanRef,
    SpanRefKind,
    Tag,
    TagKind,
    ThriftStruct,
    ThriftType,
    encode_oneway_message,
)


def _varint(buf, pos):
    result = shift = 0
    while True:
        byte = buf[pos]
        pos += 1
        result |= (byte & 0x7F) << shift
        if not byte & 0x80:
            return result, pos
        shift += 7


def _unzigzag(number):
    return (number >> 1) ^ -(number & 1)


def _value(buf, pos, ttype):
    if ttype in (1, 2):
        return buf[pos] == 1, pos + 1
    if ttype == 3:
        return int.from_bytes(buf[pos:pos + 1], "little", signed=True), pos + 1
    if ttype in (4, 5, 6):
        number, pos = _varint(buf, pos)
        return _unzigzag(number), pos
    if ttype == 7:
        return struct.unpack_from("<d", buf, pos)[0], pos + 8
    if ttype == 8:
        size, pos = _varint(buf, pos)
        return bytes(buf[pos:pos + size]), pos + size
    if ttype == 9:
        header = buf[pos]
        pos += 1
        size, elem = header >> 4, header & 0x0F
        if size == 15:
            size, pos = _varint(buf, pos)
        items = []
        for _ in range(size):
            item, pos = _value(buf, pos, elem)
            items.append(item)
        return items, pos
    if ttype == 12:
        return _struct(buf, pos)
    raise AssertionError(f"unknown type {ttype}")


def _struct(buf, pos):
    fields = {}
    last = 0
    while True:
        header = buf[pos]
        pos += 1
        if header == 0:
            return fields, pos
        ttype, delta = header & 0x0F, header >> 4
        if delta:
            field_id = last + delta
        else:
            number, pos = _varint(buf, pos)
            field_id = _unzigzag(number)
        if ttype in (1, 2):
            value = ttype == 1
        else:
            value, pos = _value(buf, pos, ttype)
        fields[field_id] = value
        last = field_id


def decode(data):
    fields, pos = _struct(data, 0)
    assert pos == len(data)
    return fields


def decode_message(data):
    assert data[0] == 0x82
    seq_id, pos = _varint(data, 2)
    size, pos = _varint(data, pos)
    name = bytes(data[pos:pos + size])
    body, pos = _struct(data, pos + size)
    assert pos == len(data)
    return data[1], seq_id, name, body


def test_message_header_bytes():
    data = encode_oneway_message("emitBatch", 0, ThriftStruct())
    assert data == b"\x82\x81\x00\x09emitBatch\x00"


def test_message_round_trip_with_seq_id():
    body = ThriftStruct([Field(1, ThriftType.I32, 7)])
    type_version, seq_id, name, fields = decode_message(encode_oneway_message("call", 300, body))
    assert type_version >> 5 == 4
    assert seq_id == 300
    assert name == b"call"
    assert fields == {1: 7}


def test_message_seq_id_out_of_range():
    with pytest.raises(ValueError):
        encode_oneway_message("call", 1 << 31, ThriftStruct())


@pytest.mark.parametrize("number", [0, 1, -1, 2**63 - 1, -(2**63), 123456789])
def test_i64_round_trip(number):
    assert decode(ThriftStruct([Field(1, ThriftType.I64, number)]).encode()) == {1: number}


def test_i64_out_of_range():
    with pytest.raises(ValueError):
        ThriftStruct([Field(1, ThriftType.I64, 2**63)]).encode()


def test_i32_rejects_non_integer():
    with pytest.raises(TypeError):
        ThriftStruct([Field(1, ThriftType.I32, "1")]).encode()


def test_field_id_gaps_and_bools():
    fields = ThriftStruct(
        [
            Field(1, ThriftType.BOOL, True),
            Field(2, ThriftType.BOOL, False),
            Field(40, ThriftType.BYTE, -5),
            Field(41, ThriftType.I16, -300),
            Field(3, ThriftType.DOUBLE, 2.5),
        ]
    )
    assert decode(fields.encode()) == {1: True, 2: False, 40: -5, 41: -300, 3: 2.5}


def test_long_list_round_trip():
    items = list(range(-10, 10))
    data = ThriftStruct([Field(1, ThriftType.LIST, items, ThriftType.I32)]).encode()
    assert decode(data) == {1: items}


def test_list_field_needs_element_type():
    with pytest.raises(ValueError):
        Field(1, ThriftType.LIST, [])


@pytest.mark.parametrize(
    ("value", "kind", "field_id", "decoded"),
    [
        ("v", TagKind.STRING, 3, b"v"),
        (1.5, TagKind.DOUBLE, 4, 1.5),
        (True, TagKind.BOOL, 5, True),
        (-42, TagKind.LONG, 6, -42),
        (b"\x00\x01", TagKind.BINARY, 7, b"\x00\x01"),
    ],
)
def test_tag_struct(value, kind, field_id, decoded):
    tag = Tag("k", value)
    assert tag.kind() is kind
    assert decode(tag.to_struct().encode()) == {1: b"k", 2: int(kind), field_id: decoded}


def test_tag_rejects_unsupported_value():
    with pytest.raises(TypeError):
        Tag("k", [1, 2])


def test_log_struct():
    log = Log(99, [Tag("name", "ev"), Tag("a", "b")])
    assert decode(log.to_struct().encode()) == {
        1: 99,
        2: [{1: b"name", 2: 0, 3: b"ev"}, {1: b"a", 2: 0, 3: b"b"}],
    }


def test_span_ref_struct():
    ref = SpanRef(SpanRefKind.FOLLOWS_FROM, 1, 2, 3)
    assert decode(ref.to_struct().encode()) == {1: 1, 2: 1, 3: 2, 4: 3}


def test_span_omits_empty_lists():
    span = JaegerSpan(1, 2, 3, 4, "op", start_time=10, duration=20)
    assert decode(span.to_struct().encode()) == {
        1: 1, 2: 2, 3: 3, 4: 4, 5: b"op", 7: 1, 8: 10, 9: 20,
    }


def test_span_with_all_lists():
    span = JaegerSpan(
        1, 2, 3, 4, "op",
        references=[SpanRef(SpanRefKind.FOLLOWS_FROM, 5, 6, 7)],
        tags=[Tag("k", "v")],
        logs=[Log(8, [Tag("name", "e")])],
    )
    decoded = decode(span.to_struct().encode())
    assert sorted(decoded) == list(range(1, 12))
    assert decoded[6] == [{1: 1, 2: 5, 3: 6, 4: 7}]
    assert decoded[10] == [{1: b"k", 2: 0, 3: b"v"}]
    assert decoded[11] == [{1: 8, 2: [{1: b"name", 2: 0, 3: b"e"}]}]


def test_process_tags_optional():
    assert decode(Process("svc").to_struct().encode()) == {1: b"svc"}
    with_tags = Process("svc", [Tag("n", 1)])
    assert decode(with_tags.to_struct().encode()) == {1: b"svc", 2: [{1: b"n", 2: 3, 6: 1}]}


def test_emit_batch_round_trip():
    batch = Batch(Process("svc"), [JaegerSpan(1, 0, 2, 0, "op")])
    _, seq_id, name, body = decode_message(EmitBatchNotification(batch).encode())
    assert (seq_id, name) == (0, b"emitBatch")
    assert body == {
        1: {1: {1: b"svc"}, 2: [{1: 1, 2: 0, 3: 2, 4: 0, 5: b"op", 7: 1, 8: 0, 9: 0}]}
    }