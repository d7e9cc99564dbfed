"""
The bit engine: extraction and assignment of the fields of a Layout against
a buffer of bytes.

Every function here borrows the buffer only for the duration of the call,
nothing is cached and nothing is retained, so a Layout can be used with as
many buffers as needed. Writing is done in two steps: first everything is
validated, then the bits are deposited; if something is wrong the buffer is
not touched at all.

The position of a field is computed in this way: the bit number k of the
structure lives in the byte k // 8; inside that byte it's the bit 7 - k % 8
(counting from the least significant one) when the field is MSB_FIRST and
the bit k % 8 when it's LSB_FIRST. The field is cut at the byte boundaries
and each piece is read following the bit order; the pieces are then glued
together following the byte order (the first piece is the most significant
one for BIG_ENDIAN, the last one for LITTLE_ENDIAN). For fields of eight bits
or less the byte order is not considered and the pieces follow the bit order.
"""
import logging
import math
from contextlib import contextmanager
from typing import Dict, Iterator, List, Mapping, Optional, Tuple

from bitstring import Bits

from .enum import ValueKind, BitOrder, ByteOrder
from .fields import FieldDescriptor, Value, _is_int
from .layout import Layout
from .exceptions import (
    BufferTooShort,
    BufferNotWritable,
    InvalidBuffer,
    TypeMismatch,
    ValueOutOfRange,
)


logger = logging.getLogger(__name__)

# values from here on round to infinity when converted to a 32 bits float
FLOAT32_OVERFLOW = 2 ** 128 - 2 ** 103


@contextmanager
def _borrow(buffer) -> Iterator[memoryview]:
    '''Byte oriented view of the buffer, released as soon as the call is done.'''
    try:
        view = memoryview(buffer)
    except TypeError:
        raise InvalidBuffer(buffer, 'it does not support the buffer protocol') from None

    with view:
        try:
            octets = view.cast('B')
        except TypeError:
            raise InvalidBuffer(buffer, 'it is not C-contiguous') from None

        with octets:
            yield octets


def _pieces(field: FieldDescriptor) -> List[Tuple[int, int, int]]:
    '''The pieces of the field ordered from the most significant one.'''
    if field.bit_width <= 8:
        most_significant_first = field.bit_order == BitOrder.MSB_FIRST
    else:
        most_significant_first = field.byte_order == ByteOrder.BIG_ENDIAN

    pieces = field.pieces()
    if not most_significant_first:
        pieces.reverse()

    return pieces


def _extract(field: FieldDescriptor, octets: memoryview) -> int:
    raw = 0
    for index, shift, n in _pieces(field):
        raw = (raw << n) | ((octets[index] >> shift) & ((1 << n) - 1))

    return raw


def _deposit(field: FieldDescriptor, octets: memoryview, raw: int) -> None:
    remaining = field.bit_width
    for index, shift, n in _pieces(field):
        remaining -= n
        mask = (1 << n) - 1
        piece = (raw >> remaining) & mask
        octets[index] = (octets[index] & ~(mask << shift) & 0xff) | (piece << shift)


def _check_length(layout: Layout, field: FieldDescriptor, octets: memoryview, whole=True) -> None:
    '''By default the buffer must contain the whole structure; with whole=False
    it's enough that it covers the bytes of the field.'''
    needed = layout.size_bytes() if whole else field.byte_span[1]
    if len(octets) < needed:
        raise BufferTooShort(field, needed, len(octets))


def _check_writable(field: FieldDescriptor, octets: memoryview) -> None:
    if octets.readonly:
        raise BufferNotWritable(field)


def _decode(field: FieldDescriptor, raw: int) -> Value:
    kind = field.kind

    if kind == ValueKind.UNSIGNED:
        return Value(kind, raw)
    elif kind == ValueKind.SIGNED:
        if raw >> (field.bit_width - 1):
            raw -= 1 << field.bit_width
        return Value(kind, raw)
    elif kind == ValueKind.BOOLEAN:
        return Value(kind, raw == 1)
    elif kind == ValueKind.FLOAT:
        return Value(kind, Bits(uint=raw, length=field.bit_width).float)
    elif kind == ValueKind.ENUMERATION:
        label = field.label_for(raw)
        if label is None:
            logger.warning("enumeration '%s' doesn't have an element with value 0x%x", field.name, raw)
        return Value(kind, raw, label=label)

    raise AssertionError(f'unknown kind {kind!r}')


def _encode(field: FieldDescriptor, value) -> int:
    '''Check that the value is compatible with the field and return the raw bits.'''
    if isinstance(value, Value):
        value = value.value

    kind = field.kind

    if kind == ValueKind.BOOLEAN:
        if not isinstance(value, bool):
            raise TypeMismatch(field, value)
        return int(value)

    if kind == ValueKind.FLOAT:
        return _encode_float(field, value)

    if kind == ValueKind.ENUMERATION and isinstance(value, str):
        raw = field.value_for(value)
        if raw is None:
            raise ValueOutOfRange(field, value, 'unknown label')
        return raw

    if not _is_int(value):
        raise TypeMismatch(field, value)

    if not field.min_value <= value <= field.max_value:
        raise ValueOutOfRange(field, value, f'range is [{field.min_value}, {field.max_value}]')

    # two's complement for the negative ones
    return value & ((1 << field.bit_width) - 1)


def _encode_float(field: FieldDescriptor, value) -> int:
    if isinstance(value, bool) or not isinstance(value, (int, float)):
        raise TypeMismatch(field, value)

    try:
        value = float(value)
    except OverflowError:
        raise ValueOutOfRange(field, value, 'too large for a float') from None

    if field.bit_width == 32 and math.isfinite(value) and abs(value) >= FLOAT32_OVERFLOW:
        raise ValueOutOfRange(field, value, 'too large for a 32 bits float')

    return Bits(float=value, length=field.bit_width).uint


def read(layout: Layout, name: str, buffer) -> Value:
    '''Return the value of the field named "name" contained in the buffer.'''
    field = layout.field(name)

    with _borrow(buffer) as octets:
        _check_length(layout, field, octets)
        raw = _extract(field, octets)

    logger.debug("read field '%s' from bytes [%d:%d]: 0x%x", name, *field.byte_span, raw)

    return _decode(field, raw)


def read_bits(layout: Layout, name: str, buffer) -> str:
    '''Return the bits of the field as a string of "0" and "1", most significant first.'''
    field = layout.field(name)

    with _borrow(buffer) as octets:
        _check_length(layout, field, octets)
        raw = _extract(field, octets)

    return Bits(uint=raw, length=field.bit_width).bin


def write(layout: Layout, name: str, value, buffer) -> None:
    '''Set the field named "name" in the buffer leaving untouched all the other bits.'''
    field = layout.field(name)

    with _borrow(buffer) as octets:
        _check_length(layout, field, octets)
        _check_writable(field, octets)
        raw = _encode(field, value)

        logger.debug("write field '%s' into bytes [%d:%d]: 0x%x", name, *field.byte_span, raw)
        _deposit(field, octets, raw)


def unpack(layout: Layout, buffer, strict=True) -> Dict[str, Value]:
    '''Read all the fields of the layout, in order.

    When strict is False a buffer shorter than the structure is accepted and
    the fields falling (even partially) outside of it are skipped.
    '''
    values: Dict[str, Value] = {}

    with _borrow(buffer) as octets:
        for field in layout.iter_fields():
            try:
                _check_length(layout, field, octets, whole=strict)
            except BufferTooShort:
                if strict:
                    raise
                logger.debug("skipping field '%s' outside of the buffer", field.name)
                continue

            values[field.name] = _decode(field, _extract(field, octets))

    return values


def pack(layout: Layout, values: Mapping[str, object], buffer: Optional[bytearray] = None):
    '''Write several fields at once: if any of them is invalid nothing is written.

    Without a buffer a new one, zeroed, is created and returned.
    '''
    if buffer is None:
        buffer = bytearray(layout.size_bytes())

    fields = [(layout.field(name), value) for name, value in values.items()]

    with _borrow(buffer) as octets:
        encoded = []
        for field, value in fields:
            _check_length(layout, field, octets)
            _check_writable(field, octets)
            encoded.append((field, _encode(field, value)))

        for field, raw in encoded:
            logger.debug("pack field '%s' into bytes [%d:%d]: 0x%x", field.name, *field.byte_span, raw)
            _deposit(field, octets, raw)

    return buffer
