import logging

from . import engine
from .fields import Reserved
from .layout import Layout


class FieldAccessor(object):
    """Wrapper around field access of a Structure related class.

    Reading the attribute decodes the field from the buffer of the instance,
    assigning it encodes the value back in place.
    """

    def __init__(self, field_name: str):
        self.logger = logging.getLogger(f"{self.__module__}.{self.__class__.__name__}")
        self.name = field_name

    def __get__(self, instance, type=None):
        # from the class we return the descriptor, useful to inspect the position
        if instance is None:
            return type._layout.field(self.name)

        self.logger.debug("__get__ from %s for field named '%s'", instance.__class__.__name__, self.name)
        return engine.read(instance._layout, self.name, instance._buffer).value

    def __set__(self, instance, value):
        self.logger.debug("__set__ from %s for field named '%s'", instance.__class__.__name__, self.name)
        engine.write(instance._layout, self.name, value, instance._buffer)


class Meta(object):
    """Class containing metadata about the structure"""

    def __init__(self):
        self.fields = []
        self.declarations = []

    def add_declaration(self, name, declaration):
        if name in (_name for _name, _ in self.declarations):
            raise AttributeError(f"field {name} is already present")

        self.declarations.append((name, declaration))
        if not isinstance(declaration, Reserved):
            self.fields.append(name)


class MetaStructure(type):

    def __new__(cls, names, bases, attrs):
        '''Collect the declarations in order, place them and build the layout.'''
        module = attrs.pop('__module__')
        classcell = attrs.pop('__classcell__', None)

        new_attrs = {
            '__module__': module,
        }
        if classcell is not None:
            new_attrs['__classcell__'] = classcell
        new_cls = super(MetaStructure, cls).__new__(cls, names, bases, new_attrs)

        new_cls._meta = Meta()

        cls.logger = logging.getLogger(__name__)

        # handle inheritance: the fields of the parents come first
        parents = [_ for _ in bases if isinstance(_, MetaStructure)]
        for parent in parents:
            for obj_name, obj in parent._meta.declarations:
                new_cls._meta.add_declaration(obj_name, obj)

        for obj_name, obj in attrs.items():
            new_cls.add_to_class(obj_name, obj)

        new_cls._layout = new_cls.build_layout()

        for field_name in new_cls._meta.fields:
            setattr(new_cls, field_name, FieldAccessor(field_name))

        return new_cls

    def add_to_class(cls, name, value):
        if hasattr(value, 'contribute_to_structure'):
            cls.logger.debug('contribute_to_structure() found for field \'%s\'' % name)
            value.contribute_to_structure(cls, name)
        else:
            setattr(cls, name, value)

    def build_layout(cls) -> Layout:
        bit_order = getattr(cls, '__bit_order__', None)
        byte_order = getattr(cls, '__byte_order__', None)

        entries = [
            declaration.to_entry(name, bit_order=bit_order, byte_order=byte_order)
            for name, declaration in cls._meta.declarations
        ]

        return Layout.sequential(entries, total_bits=getattr(cls, '__total_bits__', None), name=cls.__name__)
