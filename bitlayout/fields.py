"""
A field is the description of a single named bit-range: where it starts, how
many bits it spans, how those bits have to be interpreted and in which order
they are laid out in memory.

Descriptors are pure values: they don't know anything about buffers, the
bit engine (see engine.py) is the one doing the actual access.
"""
import dataclasses
from types import MappingProxyType
from typing import List, Mapping, Optional, Tuple

from .enum import ValueKind, BitOrder, ByteOrder
from .exceptions import InvalidFieldDefinition


MAX_BIT_WIDTH = 64
FLOAT_WIDTHS = (32, 64)


def _is_int(value) -> bool:
    # bool is a subclass of int but True as a width makes no sense
    return isinstance(value, int) and not isinstance(value, bool)


@dataclasses.dataclass(frozen=True)
class FieldDescriptor:
    """Immutable description of one bit-range of a structure.

    The width is checked against the kind: a BOOLEAN is always one bit wide
    (and gets that width when none is passed), a FLOAT is 32 or 64 bits,
    an ENUMERATION needs the mapping between raw values and labels.

    Fields marked as alias are allowed to overlap other fields of the same
    layout, like the headers of some formats viewing the same bytes twice.
    """
    name: str
    bit_offset: int
    bit_width: Optional[int] = None
    kind: ValueKind = ValueKind.UNSIGNED
    bit_order: BitOrder = BitOrder.MSB_FIRST
    byte_order: ByteOrder = ByteOrder.LITTLE_ENDIAN
    alias: bool = False
    choices: Optional[Mapping[int, str]] = dataclasses.field(default=None, hash=False)

    def __post_init__(self):
        if not isinstance(self.name, str) or not self.name:
            raise InvalidFieldDefinition(f'field name must be a non empty string, not {self.name!r}')

        if not isinstance(self.kind, ValueKind):
            raise InvalidFieldDefinition(f"field '{self.name}': {self.kind!r} is not a ValueKind")
        if not isinstance(self.bit_order, BitOrder):
            raise InvalidFieldDefinition(f"field '{self.name}': {self.bit_order!r} is not a BitOrder")
        if not isinstance(self.byte_order, ByteOrder):
            raise InvalidFieldDefinition(f"field '{self.name}': {self.byte_order!r} is not a ByteOrder")

        if self.bit_width is None and self.kind == ValueKind.BOOLEAN:
            object.__setattr__(self, 'bit_width', 1)

        if not _is_int(self.bit_offset) or self.bit_offset < 0:
            raise InvalidFieldDefinition(
                f"field '{self.name}': offset must be a non negative integer, not {self.bit_offset!r}")

        if not _is_int(self.bit_width) or not 1 <= self.bit_width <= MAX_BIT_WIDTH:
            raise InvalidFieldDefinition(
                f"field '{self.name}': width must be an integer between 1 and {MAX_BIT_WIDTH}, "
                f"not {self.bit_width!r}")

        if self.kind == ValueKind.BOOLEAN and self.bit_width != 1:
            raise InvalidFieldDefinition(f"field '{self.name}': a boolean is one bit wide, not {self.bit_width}")

        if self.kind == ValueKind.FLOAT and self.bit_width not in FLOAT_WIDTHS:
            raise InvalidFieldDefinition(
                f"field '{self.name}': a float must be 32 or 64 bits wide, not {self.bit_width}")

        self._check_choices()

    def _check_choices(self):
        if self.kind != ValueKind.ENUMERATION:
            if self.choices is not None:
                raise InvalidFieldDefinition(f"field '{self.name}': only enumerations have choices")
            return

        if not isinstance(self.choices, Mapping):
            raise InvalidFieldDefinition(f"field '{self.name}': an enumeration needs a mapping of choices")

        for raw, label in self.choices.items():
            if not _is_int(raw) or not self.min_value <= raw <= self.max_value:
                raise InvalidFieldDefinition(
                    f"field '{self.name}': choice {raw!r} doesn't fit in {self.bit_width} bits")
            if not isinstance(label, str):
                raise InvalidFieldDefinition(f"field '{self.name}': label for {raw} must be a string")

        if len(set(self.choices.values())) != len(self.choices):
            raise InvalidFieldDefinition(f"field '{self.name}': labels must be unique")

        # freeze a private copy so that the caller's dict can't change under us
        object.__setattr__(self, 'choices', MappingProxyType(dict(self.choices)))

    @property
    def bit_end(self) -> int:
        return self.bit_offset + self.bit_width

    @property
    def byte_span(self) -> Tuple[int, int]:
        '''Indexes (start, end) of the bytes touched by this field, end excluded.'''
        return self.bit_offset // 8, (self.bit_end + 7) // 8

    @property
    def min_value(self) -> int:
        if self.kind == ValueKind.SIGNED:
            return -(1 << (self.bit_width - 1))
        return 0

    @property
    def max_value(self) -> int:
        if self.kind == ValueKind.SIGNED:
            return (1 << (self.bit_width - 1)) - 1
        return (1 << self.bit_width) - 1

    def pieces(self) -> List[Tuple[int, int, int]]:
        '''Cut the field at the byte boundaries: return, in address order, the
        triples (byte index, shift, number of bits) where shift is the position
        of the lowest bit of the piece counting from the least significant bit.'''
        pieces = []
        offset = self.bit_offset
        end = self.bit_end

        while offset < end:
            index, start = divmod(offset, 8)
            n = min(8 - start, end - offset)
            shift = 8 - start - n if self.bit_order == BitOrder.MSB_FIRST else start
            pieces.append((index, shift, n))
            offset += n

        return pieces

    def physical_ranges(self) -> List[Tuple[int, int]]:
        '''Bits actually occupied in memory, numbered from the most significant
        bit of the first byte. For MSB_FIRST it's the same as the logical range.'''
        if self.bit_order == BitOrder.MSB_FIRST:
            return [(self.bit_offset, self.bit_end)]

        return [(index * 8 + 8 - shift - n, index * 8 + 8 - shift) for index, shift, n in self.pieces()]

    def overlaps(self, other: "FieldDescriptor") -> bool:
        return self.bit_offset < other.bit_end and other.bit_offset < self.bit_end

    def moved(self, bit_offset: int) -> "FieldDescriptor":
        return dataclasses.replace(self, bit_offset=bit_offset)

    def label_for(self, raw: int) -> Optional[str]:
        if self.choices is None:
            return None
        return self.choices.get(raw)

    def value_for(self, label: str) -> Optional[int]:
        '''Reverse lookup of an enumeration label.'''
        for raw, _label in self.choices.items():
            if _label == label:
                return raw
        return None


class Value(object):
    """Decoded content of a field, tagged with the kind of the field it comes from.

    It compares equal to plain python values so that the common case reads
    naturally; an enumeration also compares equal to its label.
    """
    __slots__ = ('kind', 'value', 'label')

    def __init__(self, kind: ValueKind, value, label: Optional[str] = None):
        self.kind = kind
        self.value = value
        self.label = label

    def __repr__(self):
        if self.kind == ValueKind.ENUMERATION:
            return '<%s(%s, %d, %r)>' % (self.__class__.__name__, self.kind.name, self.value, self.label)
        return '<%s(%s, %r)>' % (self.__class__.__name__, self.kind.name, self.value)

    def __str__(self):
        if self.label is not None:
            return self.label
        return str(self.value)

    def __eq__(self, other):
        if isinstance(other, Value):
            return self.kind == other.kind and self.value == other.value
        if isinstance(other, str):
            return self.label is not None and self.label == other
        return self.value == other

    def __hash__(self):
        # consistent with the comparison against plain values
        return hash(self.value)

    def __int__(self):
        return int(self.value)

    def __float__(self):
        return float(self.value)

    def __bool__(self):
        return bool(self.value)


def unsigned(name, bit_offset, bit_width, **kwargs) -> FieldDescriptor:
    return FieldDescriptor(name, bit_offset, bit_width, kind=ValueKind.UNSIGNED, **kwargs)


def signed(name, bit_offset, bit_width, **kwargs) -> FieldDescriptor:
    return FieldDescriptor(name, bit_offset, bit_width, kind=ValueKind.SIGNED, **kwargs)


def boolean(name, bit_offset, **kwargs) -> FieldDescriptor:
    return FieldDescriptor(name, bit_offset, 1, kind=ValueKind.BOOLEAN, **kwargs)


def floating(name, bit_offset, bit_width=32, **kwargs) -> FieldDescriptor:
    return FieldDescriptor(name, bit_offset, bit_width, kind=ValueKind.FLOAT, **kwargs)


def enumeration(name, bit_offset, bit_width, choices, **kwargs) -> FieldDescriptor:
    return FieldDescriptor(name, bit_offset, bit_width, kind=ValueKind.ENUMERATION, choices=choices, **kwargs)


class Declaration(object):
    """Base class for the fields declared in the body of a Structure.

    A declaration doesn't know its own name nor its position, both are assigned
    by the metaclass that places the declarations one after the other.
    """
    kind: Optional[ValueKind] = None

    def __init__(self, bit_width=None, bit_order=None, byte_order=None, choices=None):
        self.bit_width = bit_width
        self.bit_order = bit_order
        self.byte_order = byte_order
        self.choices = choices

    def __repr__(self):
        return '<%s(%s)>' % (self.__class__.__name__, self.bit_width)

    def contribute_to_structure(self, cls, name):
        cls._meta.add_declaration(name, self)

    def to_entry(self, name, bit_order=None, byte_order=None):
        '''Build the descriptor for this declaration, at offset zero.'''
        kwargs = {}
        if self.bit_order or bit_order:
            kwargs['bit_order'] = self.bit_order or bit_order
        if self.byte_order or byte_order:
            kwargs['byte_order'] = self.byte_order or byte_order
        if self.choices is not None:
            kwargs['choices'] = self.choices

        return FieldDescriptor(name, 0, self.bit_width, kind=self.kind, **kwargs)


class Unsigned(Declaration):
    kind = ValueKind.UNSIGNED


class Signed(Declaration):
    kind = ValueKind.SIGNED


class Boolean(Declaration):
    kind = ValueKind.BOOLEAN

    def __init__(self, **kwargs):
        super().__init__(bit_width=1, **kwargs)


class Float(Declaration):
    kind = ValueKind.FLOAT

    def __init__(self, bit_width=32, **kwargs):
        super().__init__(bit_width=bit_width, **kwargs)


class Enumeration(Declaration):
    kind = ValueKind.ENUMERATION

    def __init__(self, bit_width, choices, **kwargs):
        super().__init__(bit_width=bit_width, choices=choices, **kwargs)


class Reserved(Declaration):
    """Anonymous run of bits nobody is interested in.

    It can be used both in a Structure body and as an entry of
    Layout.sequential(): in both cases it only moves the next field forward.
    """

    def __init__(self, bit_width):
        if not _is_int(bit_width) or bit_width < 1:
            raise InvalidFieldDefinition(f'reserved width must be a positive integer, not {bit_width!r}')
        super().__init__(bit_width=bit_width)

    def __eq__(self, other):
        return isinstance(other, Reserved) and self.bit_width == other.bit_width

    def __hash__(self):
        return hash((Reserved, self.bit_width))

    def to_entry(self, name, bit_order=None, byte_order=None):
        return self
