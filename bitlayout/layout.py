"""
Core module for the description of a binary structure: a Layout is the
validated, ordered and named collection of the fields composing it.
"""
import logging
from typing import Dict, Iterable, Iterator, List, Optional, Tuple, Union

from .fields import FieldDescriptor, Reserved, _is_int
from .exceptions import (
    InvalidLayout,
    OverlappingFields,
    FieldOutOfBounds,
    DuplicateFieldName,
    FieldNotFound,
)


logger = logging.getLogger(__name__)


class Layout(object):
    """The shape of a structure: its total size in bits and its fields.

    The fields are validated when the layout is created, Layout.build() and
    Layout.sequential() are the usual entry points; once built it can't
    change, so it can be shared between any number of buffers (and threads).
    """
    __slots__ = ('_name', '_total_bits', '_fields', '_by_name')

    def __init__(self, total_bits: int, fields: Iterable[FieldDescriptor], name: Optional[str] = None):
        '''Validate the fields or raise a LayoutError.

        The checks are done in this order: names, bounds and overlapping.
        '''
        if not _is_int(total_bits) or total_bits < 0:
            raise InvalidLayout(f'total bits must be a non negative integer, not {total_bits!r}')

        fields = tuple(fields)

        for field in fields:
            if not isinstance(field, FieldDescriptor):
                raise InvalidLayout(f'{field!r} is not a FieldDescriptor')

        self._check_names(fields)
        self._check_bounds(total_bits, fields)
        self._check_overlapping(fields)

        logger.debug('built layout %s of %d bits with %d fields', name or '<anonymous>', total_bits, len(fields))

        object.__setattr__(self, '_name', name)
        object.__setattr__(self, '_total_bits', total_bits)
        object.__setattr__(self, '_fields', fields)
        object.__setattr__(self, '_by_name', {field.name: field for field in fields})

    def __setattr__(self, name, value):
        raise AttributeError(f"'{self.__class__.__name__}' is immutable")

    @classmethod
    def build(cls, total_bits: int, fields: Iterable[FieldDescriptor], name: Optional[str] = None) -> "Layout":
        '''Return the validated layout, or raise a LayoutError.'''
        return cls(total_bits, fields, name=name)

    @classmethod
    def sequential(cls, entries: Iterable[Union[FieldDescriptor, Reserved]],
                   total_bits: Optional[int] = None, name: Optional[str] = None) -> "Layout":
        '''Place the entries one after the other starting from bit zero.

        The offsets of the descriptors passed are ignored; Reserved entries
        only skip bits. If total_bits is not indicated it's the sum of the widths.
        '''
        placed: List[FieldDescriptor] = []
        offset = 0

        for entry in entries:
            if isinstance(entry, Reserved):
                logger.debug('reserving %d bits at offset %d', entry.bit_width, offset)
            elif isinstance(entry, FieldDescriptor):
                logger.debug("placing field '%s' at offset %d", entry.name, offset)
                placed.append(entry.moved(offset))
            else:
                raise InvalidLayout(f'{entry!r} is neither a FieldDescriptor nor Reserved')

            offset += entry.bit_width

        return cls.build(offset if total_bits is None else total_bits, placed, name=name)

    @staticmethod
    def _check_names(fields):
        seen = set()
        for field in fields:
            if field.name in seen:
                raise DuplicateFieldName(field.name)
            seen.add(field.name)

    @staticmethod
    def _check_bounds(total_bits, fields):
        for field in fields:
            if field.bit_end > total_bits:
                raise FieldOutOfBounds(field, total_bits)

    @staticmethod
    def _sweep(ranges):
        '''Sweep the ranges (start, end, field) ordered by start remembering the one reaching further.'''
        furthest = None
        for start, end, field in sorted(ranges, key=lambda _: (_[0], _[1])):
            if furthest is not None and start < furthest[1]:
                raise OverlappingFields(furthest[2], field)

            if furthest is None or end > furthest[1]:
                furthest = (start, end, field)

    @classmethod
    def _check_overlapping(cls, fields):
        candidates = [_ for _ in fields if not _.alias]

        cls._sweep((_.bit_offset, _.bit_end, _) for _ in candidates)

        # with different bit orders sharing a byte the logical ranges can be
        # disjoint while the bits in memory are not
        if len({_.bit_order for _ in candidates}) > 1:
            cls._sweep(
                (start, end, field)
                for field in candidates
                for start, end in field.physical_ranges()
            )

    @property
    def name(self) -> Optional[str]:
        return self._name

    @property
    def total_bits(self) -> int:
        return self._total_bits

    def size_bytes(self) -> int:
        '''Minimum length of a buffer containing this structure.'''
        return (self._total_bits + 7) // 8

    def field(self, name: str) -> FieldDescriptor:
        try:
            return self._by_name[name]
        except KeyError:
            raise FieldNotFound(name) from None

    def iter_fields(self) -> Iterator[FieldDescriptor]:
        return iter(self._fields)

    def field_names(self) -> List[str]:
        return [_.name for _ in self._fields]

    @property
    def layout(self) -> Dict[str, Tuple[int, int]]:
        return {_.name: (_.bit_offset, _.bit_width) for _ in self._fields}

    def __getitem__(self, name):
        return self.field(name)

    def __contains__(self, name):
        return name in self._by_name

    def __len__(self):
        return len(self._fields)

    def __eq__(self, other):
        if not isinstance(other, Layout):
            return NotImplemented
        return (self._name, self._total_bits, self._fields) == (other._name, other._total_bits, other._fields)

    def __hash__(self):
        return hash((self._name, self._total_bits, self._fields))

    def __repr__(self):
        msg = []
        for field in self._fields:
            msg.append('%s=[%d:%d]' % (field.name, field.bit_offset, field.bit_end))
        return '<%s%s(%d bits, %s)>' % (
            self.__class__.__name__,
            f' {self._name}' if self._name else '',
            self._total_bits,
            ','.join(msg),
        )
