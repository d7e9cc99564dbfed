from enum import Enum, auto


class ValueKind(Enum):
    '''The closed set of interpretations a bit-range can have'''
    UNSIGNED    = auto()
    SIGNED      = auto()
    BOOLEAN     = auto()
    FLOAT       = auto()
    ENUMERATION = auto()


class BitOrder(Enum):
    '''How the bits inside a single byte are numbered for a field.'''
    MSB_FIRST = auto()
    LSB_FIRST = auto()


class ByteOrder(Enum):
    BIG_ENDIAN    = auto()
    LITTLE_ENDIAN = auto()
