class BitLayoutException(Exception):
    '''Base class to extend in order to throw exception in bitlayout.

    Subclasses keep the offending objects as attributes so that the caller
    can decide what to do with them (skip the field, abort, ...).
    '''
    pass


class InvalidFieldDefinition(BitLayoutException):
    pass


class LayoutError(BitLayoutException):
    pass


class InvalidLayout(LayoutError):
    pass


class OverlappingFields(LayoutError):

    def __init__(self, a, b):
        self.a = a
        self.b = b
        super().__init__(
            f"field '{b.name}' [{b.bit_offset}, {b.bit_end}) overlaps "
            f"field '{a.name}' [{a.bit_offset}, {a.bit_end})")


class FieldOutOfBounds(LayoutError):

    def __init__(self, field, total_bits):
        self.field = field
        self.total_bits = total_bits
        super().__init__(
            f"field '{field.name}' [{field.bit_offset}, {field.bit_end}) "
            f"doesn't fit in {total_bits} bits")


class DuplicateFieldName(LayoutError):

    def __init__(self, name):
        self.name = name
        super().__init__(f"field '{name}' is defined more than once")


class FieldNotFound(BitLayoutException, KeyError):

    def __init__(self, name):
        self.name = name
        super().__init__(f"no field named '{name}'")

    def __str__(self):
        # KeyError would repr() the message
        return self.args[0]


class AccessError(BitLayoutException):
    '''Raised by the engine when reading or writing a field.'''
    pass


class BufferTooShort(AccessError):

    def __init__(self, field, needed, available):
        self.field = field
        self.needed = needed
        self.available = available
        super().__init__(
            f"buffer of {available} bytes is too short to access field "
            f"'{field.name}' ({needed} bytes needed)")


class InvalidBuffer(AccessError):

    def __init__(self, buffer, reason):
        self.buffer = buffer
        super().__init__(f"cannot use an object of type {type(buffer).__name__} as buffer: {reason}")


class WriteError(AccessError):
    pass


class BufferNotWritable(WriteError):

    def __init__(self, field):
        self.field = field
        super().__init__(f"cannot write field '{field.name}' into a read-only buffer")


class TypeMismatch(WriteError, TypeError):

    def __init__(self, field, value):
        self.field = field
        self.value = value
        super().__init__(
            f"field '{field.name}' of kind {field.kind.name} cannot hold "
            f"a value of type {type(value).__name__}")


class ValueOutOfRange(WriteError, ValueError):

    def __init__(self, field, value, reason=None):
        self.field = field
        self.value = value
        super().__init__(
            f"value {value!r} doesn't fit field '{field.name}'"
            + (f": {reason}" if reason else ''))
