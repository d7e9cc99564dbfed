"""
# Bitlayout: binary structures described at run time.

A structure is described as data: an ordered set of named bit-ranges, each
one with its own interpretation (unsigned, signed, boolean, float or
enumeration) and its own bit and byte ordering. No code is generated for
a given format, the description can be built while the program runs and
queried immediately.

There are three layers

 1. fields: the immutable description of a single bit-range.

 2. layout: the validated collection of fields composing a structure, with
    its total size; overlapping fields, fields out of the structure and
    repeated names are refused when the layout is built.

 3. engine: read() and write() a field of a layout from/to a buffer of bytes,
    plus unpack() and pack() to handle all the fields at once.

On top of them Structure allows to declare a layout as a class, like
an ORM does, and to access the fields as attributes of its instances.
"""
from .enum import ValueKind, BitOrder, ByteOrder
from .fields import FieldDescriptor, Reserved, Value
from .layout import Layout
from .engine import read, read_bits, write, unpack, pack
from .core import Structure
from .exceptions import (
    BitLayoutException,
    InvalidFieldDefinition,
    LayoutError,
    InvalidLayout,
    OverlappingFields,
    FieldOutOfBounds,
    DuplicateFieldName,
    FieldNotFound,
    AccessError,
    BufferTooShort,
    InvalidBuffer,
    WriteError,
    BufferNotWritable,
    TypeMismatch,
    ValueOutOfRange,
)
