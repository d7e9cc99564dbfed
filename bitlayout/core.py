"""
Declarative structures: a class whose body lists the fields, one after the
other, and whose instances read and write them directly from a buffer.

    class IPv4Prefix(Structure):
        __byte_order__ = ByteOrder.BIG_ENDIAN

        version = fields.Unsigned(4)
        ihl     = fields.Unsigned(4)
        _       = fields.Reserved(8)
        length  = fields.Unsigned(16)

    header = IPv4Prefix(b'\\x45\\x00\\x00\\x54')
    header.version  # 4
    header.length = 20
"""
import logging
from typing import Dict, List, Tuple

from . import engine
from .fields import Value
from .meta import MetaStructure
from .layout import Layout


class Structure(metaclass=MetaStructure):
    """
    Base class for the declarative structures: the layout is built once, when
    the class is created, and it's available as the class attribute "_layout".

    An instance works on a buffer: if the data passed is writable it's used
    in place, otherwise it's copied; without data a zeroed buffer of the right
    size is created.
    """

    def __init__(self, data=None):
        self.logger = logging.getLogger(f"{self.__module__}.{self.__class__.__name__}")

        if data is None:
            data = bytearray(self._layout.size_bytes())
        else:
            with memoryview(data) as view:
                readonly = view.readonly
            if readonly:
                data = bytearray(data)

        self._buffer = data

    @classmethod
    def get_layout(cls) -> Layout:
        return cls._layout

    def get_ordered_fields_name(self) -> List[str]:
        return self._meta.fields

    def get_fields(self) -> List[Tuple[str, Value]]:
        '''It returns a list of couples (name, value) for each field.'''
        return list(self.unpack().items())

    def unpack(self) -> Dict[str, Value]:
        return engine.unpack(self._layout, self._buffer)

    def pack(self, **values) -> bytes:
        '''Set more fields at once: if one of the values is wrong nothing is changed.'''
        self.logger.debug('packing %s' % ', '.join(values))
        engine.pack(self._layout, values, self._buffer)

        return self.raw

    @property
    def raw(self) -> bytes:
        return bytes(self._buffer)

    @property
    def size(self) -> int:
        return self._layout.size_bytes()

    @property
    def layout(self) -> Dict[str, Tuple[int, int]]:
        return self._layout.layout

    def __repr__(self):
        msg = []
        for field_name, value in self.get_fields():
            msg.append('%s=%s' % (field_name, repr(value.value)))
        return '<%s(%s)>' % (self.__class__.__name__, ','.join(msg))

    def __str__(self):
        msg = ''
        for field_name, value in self.get_fields():
            msg += '%s: %s\n' % (field_name, value)
        return msg
