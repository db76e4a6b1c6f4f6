"""Jaeger data model and the Thrift compact encoding used to ship it."""

from __future__ import annotations

import struct
from collections.abc import Sequence
from dataclasses import dataclass, field
from enum import IntEnum
from typing import Any, Optional, Union

_PROTOCOL_ID = 0x82
_VERSION = 1
_MESSAGE_ONEWAY = 4


class ThriftType(IntEnum):
    """Value types of the compact protocol, numbered by their wire codes."""

    BOOL = 1
    BYTE = 3
    I16 = 4
    I32 = 5
    I64 = 6
    DOUBLE = 7
    BINARY = 8
    LIST = 9
    STRUCT = 12


_INT_BITS = {
    ThriftType.BYTE: 8,
    ThriftType.I16: 16,
    ThriftType.I32: 32,
    ThriftType.I64: 64,
}


def _check_int(value: Any, bits: int) -> int:
    if isinstance(value, bool) or not isinstance(value, int):
        raise TypeError(f"expected an integer, got {value!r}")
    limit = 1 << (bits - 1)
    if not -limit <= value < limit:
        raise ValueError(f"{value} does not fit in a signed {bits}-bit integer")
    return value


def _write_varint(out: bytearray, number: int) -> None:
    while True:
        byte = number & 0x7F
        number >>= 7
        if number:
            out.append(byte | 0x80)
        else:
            out.append(byte)
            return


def _zigzag(number: int) -> int:
    return number << 1 if number >= 0 else ((-number) << 1) - 1


def _write_binary(out: bytearray, value: Any) -> None:
    if isinstance(value, str):
        data = value.encode("utf-8")
    elif isinstance(value, (bytes, bytearray, memoryview)):
        data = bytes(value)
    else:
        raise TypeError(f"expected str or bytes, got {value!r}")
    _write_varint(out, len(data))
    out += data


def _write_list(out: bytearray, element_type: ThriftType, items: Sequence[Any]) -> None:
    size = len(items)
    if size < 15:
        out.append((size << 4) | element_type)
    else:
        out.append(0xF0 | element_type)
        _write_varint(out, size)
    for item in items:
        _write_value(out, element_type, item, None)


def _write_value(
    out: bytearray, ttype: ThriftType, value: Any, element_type: Optional[ThriftType]
) -> None:
    if ttype is ThriftType.BOOL:
        out.append(1 if value else 2)
    elif ttype is ThriftType.BYTE:
        out.append(_check_int(value, 8) & 0xFF)
    elif ttype in _INT_BITS:
        _write_varint(out, _zigzag(_check_int(value, _INT_BITS[ttype])))
    elif ttype is ThriftType.DOUBLE:
        out += struct.pack("<d", float(value))
    elif ttype is ThriftType.BINARY:
        _write_binary(out, value)
    elif ttype is ThriftType.LIST:
        if element_type is None:
            raise ValueError("a list needs an element type")
        _write_list(out, element_type, value)
    elif ttype is ThriftType.STRUCT:
        if not isinstance(value, ThriftStruct):
            raise TypeError(f"expected a ThriftStruct, got {value!r}")
        value.write_to(out)
    else:
        raise ValueError(f"unsupported thrift type: {ttype!r}")


@dataclass(frozen=True)
class Field:
    """One numbered, typed field of a Thrift struct."""

    field_id: int
    ttype: ThriftType
    value: Any
    element_type: Optional[ThriftType] = None

    def __post_init__(self) -> None:
        _check_int(self.field_id, 16)
        if self.ttype is ThriftType.LIST and self.element_type is None:
            raise ValueError("a list field needs an element type")


@dataclass
class ThriftStruct:
    """A Thrift struct: an ordered sequence of fields."""

    fields: list[Field] = field(default_factory=list)

    def write_to(self, out: bytearray) -> None:
        """Append the compact encoding of this struct to ``out``."""
        last_id = 0
        for item in self.fields:
            code = int(item.ttype)
            if item.ttype is ThriftType.BOOL:
                code = 1 if item.value else 2
            delta = item.field_id - last_id
            if 0 < delta <= 15:
                out.append((delta << 4) | code)
            else:
                out.append(code)
                _write_varint(out, _zigzag(item.field_id))
            if item.ttype is not ThriftType.BOOL:
                _write_value(out, item.ttype, item.value, item.element_type)
            last_id = item.field_id
        out.append(0)

    def encode(self) -> bytes:
        """Return the compact encoding of this struct."""
        out = bytearray()
        self.write_to(out)
        return bytes(out)


def encode_oneway_message(name: str, seq_id: int, body: ThriftStruct) -> bytes:
    """Encode a one-way call message in the compact protocol."""
    _check_int(seq_id, 32)
    out = bytearray([_PROTOCOL_ID, (_MESSAGE_ONEWAY << 5) | _VERSION])
    _write_varint(out, seq_id & 0xFFFFFFFF)
    _write_binary(out, name)
    body.write_to(out)
    return bytes(out)


def _struct_list(field_id: int, items: Sequence[Any]) -> Field:
    return Field(field_id, ThriftType.LIST, [item.to_struct() for item in items], ThriftType.STRUCT)


class TagKind(IntEnum):
    """The kind of a tag's value."""

    STRING = 0
    DOUBLE = 1
    BOOL = 2
    LONG = 3
    BINARY = 4


_TAG_VALUE_FIELDS = {
    TagKind.STRING: (3, ThriftType.BINARY),
    TagKind.DOUBLE: (4, ThriftType.DOUBLE),
    TagKind.BOOL: (5, ThriftType.BOOL),
    TagKind.LONG: (6, ThriftType.I64),
    TagKind.BINARY: (7, ThriftType.BINARY),
}

TagValue = Union[str, float, bool, int, bytes]


@dataclass(frozen=True)
class Tag:
    """A strongly typed key/value pair; the kind follows from the value's type."""

    key: str
    value: TagValue

    def __post_init__(self) -> None:
        self.kind()

    def kind(self) -> TagKind:
        """Return the kind of this tag."""
        value = self.value
        if isinstance(value, bool):
            return TagKind.BOOL
        if isinstance(value, str):
            return TagKind.STRING
        if isinstance(value, int):
            return TagKind.LONG
        if isinstance(value, float):
            return TagKind.DOUBLE
        if isinstance(value, (bytes, bytearray, memoryview)):
            return TagKind.BINARY
        raise TypeError(f"unsupported tag value: {value!r}")

    def to_struct(self) -> ThriftStruct:
        kind = self.kind()
        field_id, ttype = _TAG_VALUE_FIELDS[kind]
        return ThriftStruct(
            [
                Field(1, ThriftType.BINARY, self.key),
                Field(2, ThriftType.I32, int(kind)),
                Field(field_id, ttype, self.value),
            ]
        )


@dataclass
class Log:
    """A timed event with an arbitrary set of tags."""

    timestamp: int
    fields: list[Tag] = field(default_factory=list)

    def to_struct(self) -> ThriftStruct:
        return ThriftStruct(
            [Field(1, ThriftType.I64, self.timestamp), _struct_list(2, self.fields)]
        )


class SpanRefKind(IntEnum):
    """Kind of a causal reference between spans."""

    FOLLOWS_FROM = 1


@dataclass
class SpanRef:
    """A causal relationship of the current span to another span."""

    kind: SpanRefKind
    trace_id_low: int
    trace_id_high: int
    span_id: int

    def to_struct(self) -> ThriftStruct:
        return ThriftStruct(
            [
                Field(1, ThriftType.I32, int(self.kind)),
                Field(2, ThriftType.I64, self.trace_id_low),
                Field(3, ThriftType.I64, self.trace_id_high),
                Field(4, ThriftType.I64, self.span_id),
            ]
        )


@dataclass
class JaegerSpan:
    """A named unit of work performed by a service."""

    trace_id_low: int
    trace_id_high: int
    span_id: int
    parent_span_id: int
    operation_name: str
    references: list[SpanRef] = field(default_factory=list)
    flags: int = 1
    start_time: int = 0
    duration: int = 0
    tags: list[Tag] = field(default_factory=list)
    logs: list[Log] = field(default_factory=list)

    def to_struct(self) -> ThriftStruct:
        fields = [
            Field(1, ThriftType.I64, self.trace_id_low),
            Field(2, ThriftType.I64, self.trace_id_high),
            Field(3, ThriftType.I64, self.span_id),
            Field(4, ThriftType.I64, self.parent_span_id),
            Field(5, ThriftType.BINARY, self.operation_name),
        ]
        if self.references:
            fields.append(_struct_list(6, self.references))
        fields += [
            Field(7, ThriftType.I32, self.flags),
            Field(8, ThriftType.I64, self.start_time),
            Field(9, ThriftType.I64, self.duration),
        ]
        if self.tags:
            fields.append(_struct_list(10, self.tags))
        if self.logs:
            fields.append(_struct_list(11, self.logs))
        return ThriftStruct(fields)


@dataclass
class Process:
    """The traced process or service that emits spans."""

    service_name: str
    tags: list[Tag] = field(default_factory=list)

    def to_struct(self) -> ThriftStruct:
        fields = [Field(1, ThriftType.BINARY, self.service_name)]
        if self.tags:
            fields.append(_struct_list(2, self.tags))
        return ThriftStruct(fields)


@dataclass
class Batch:
    """A collection of spans reported out of process."""

    process: Process
    spans: list[JaegerSpan] = field(default_factory=list)

    def to_struct(self) -> ThriftStruct:
        return ThriftStruct(
            [
                Field(1, ThriftType.STRUCT, self.process.to_struct()),
                _struct_list(2, self.spans),
            ]
        )


@dataclass
class EmitBatchNotification:
    """The one-way ``emitBatch`` call carrying a batch."""

    batch: Batch

    def encode(self) -> bytes:
        """Encode as a compact-protocol one-way message."""
        body = ThriftStruct([Field(1, ThriftType.STRUCT, self.batch.to_struct())])
        return encode_oneway_message("emitBatch", 0, body)