import dataclasses

import pytest

from bitlayout import fields
from bitlayout.enum import ValueKind, BitOrder, ByteOrder
from bitlayout.exceptions import InvalidFieldDefinition
from bitlayout.fields import FieldDescriptor, Reserved, Value


def test_boolean_width_is_forced():
    field = FieldDescriptor('flag', 3, kind=ValueKind.BOOLEAN)

    assert field.bit_width == 1
    assert field.min_value == 0
    assert field.max_value == 1

    with pytest.raises(InvalidFieldDefinition):
        FieldDescriptor('flag', 3, 2, kind=ValueKind.BOOLEAN)


@pytest.mark.parametrize('width', [8, 16, 31, 33, 63])
def test_float_width(width):
    with pytest.raises(InvalidFieldDefinition):
        fields.floating('f', 0, width)


def test_float_valid_widths():
    assert fields.floating('f', 0).bit_width == 32
    assert fields.floating('d', 0, 64).bit_width == 64


@pytest.mark.parametrize('offset,width', [
    (0, 0),
    (0, 65),
    (0, None),
    (0, True),
    (0, 8.0),
    (-1, 8),
    (1.5, 8),
    (False, 8),
])
def test_invalid_position(offset, width):
    with pytest.raises(InvalidFieldDefinition):
        FieldDescriptor('x', offset, width)


def test_invalid_attributes():
    with pytest.raises(InvalidFieldDefinition):
        FieldDescriptor('', 0, 8)

    with pytest.raises(InvalidFieldDefinition):
        FieldDescriptor('x', 0, 8, kind='unsigned')

    with pytest.raises(InvalidFieldDefinition):
        FieldDescriptor('x', 0, 8, bit_order=ByteOrder.BIG_ENDIAN)

    with pytest.raises(InvalidFieldDefinition):
        FieldDescriptor('x', 0, 8, byte_order=BitOrder.MSB_FIRST)


def test_widest_field():
    field = fields.unsigned('x', 0, 64)

    assert field.max_value == 2 ** 64 - 1


def test_enumeration_choices():
    choices = {0: 'idle', 1: 'busy'}
    field = fields.enumeration('state', 0, 2, choices)

    # the descriptor keeps its own copy
    choices[2] = 'error'
    assert 2 not in field.choices
    assert field.label_for(1) == 'busy'
    assert field.label_for(3) is None
    assert field.value_for('idle') == 0
    assert field.value_for('error') is None


@pytest.mark.parametrize('choices', [
    None,
    [(0, 'idle')],
    {4: 'too-big'},
    {-1: 'negative'},
    {0: 0},
    {0: 'same', 1: 'same'},
])
def test_enumeration_invalid_choices(choices):
    with pytest.raises(InvalidFieldDefinition):
        fields.enumeration('state', 0, 2, choices)


def test_choices_only_for_enumerations():
    with pytest.raises(InvalidFieldDefinition):
        FieldDescriptor('x', 0, 2, choices={0: 'zero'})


def test_descriptor_is_immutable():
    field = fields.unsigned('x', 0, 8)

    with pytest.raises(dataclasses.FrozenInstanceError):
        field.bit_width = 3

    with pytest.raises(TypeError):
        fields.enumeration('e', 0, 2, {0: 'a'}).choices[1] = 'b'


def test_ranges():
    assert (fields.signed('s', 0, 8).min_value, fields.signed('s', 0, 8).max_value) == (-128, 127)
    assert (fields.signed('s', 0, 1).min_value, fields.signed('s', 0, 1).max_value) == (-1, 0)
    assert (fields.unsigned('u', 0, 8).min_value, fields.unsigned('u', 0, 8).max_value) == (0, 255)


def test_byte_span():
    assert fields.unsigned('x', 4, 12).byte_span == (0, 2)
    assert fields.unsigned('x', 8, 8).byte_span == (1, 2)
    assert fields.unsigned('x', 7, 2).byte_span == (0, 2)
    assert fields.unsigned('x', 3, 64).byte_span == (0, 9)


def test_pieces():
    assert fields.unsigned('x', 4, 12).pieces() == [(0, 0, 4), (1, 0, 8)]
    assert fields.unsigned('x', 1, 3).pieces() == [(0, 4, 3)]
    assert fields.unsigned('x', 4, 12, bit_order=BitOrder.LSB_FIRST).pieces() == [(0, 4, 4), (1, 0, 8)]
    assert fields.unsigned('x', 1, 3, bit_order=BitOrder.LSB_FIRST).pieces() == [(0, 1, 3)]


def test_physical_ranges():
    assert fields.unsigned('x', 4, 12).physical_ranges() == [(4, 16)]
    assert fields.unsigned('x', 4, 12, bit_order=BitOrder.LSB_FIRST).physical_ranges() == [(0, 4), (8, 16)]


def test_overlaps():
    a = fields.unsigned('a', 0, 8)

    assert a.overlaps(fields.unsigned('b', 4, 8))
    assert fields.unsigned('b', 4, 8).overlaps(a)
    assert not a.overlaps(fields.unsigned('c', 8, 8))


def test_moved():
    field = fields.signed('x', 0, 12, byte_order=ByteOrder.BIG_ENDIAN)
    moved = field.moved(20)

    assert moved.bit_offset == 20
    assert field.bit_offset == 0
    assert dataclasses.replace(moved, bit_offset=0) == field


def test_value():
    assert Value(ValueKind.UNSIGNED, 3) == 3
    assert Value(ValueKind.UNSIGNED, 3) == Value(ValueKind.UNSIGNED, 3)
    assert Value(ValueKind.UNSIGNED, 3) != Value(ValueKind.SIGNED, 3)
    assert int(Value(ValueKind.SIGNED, -3)) == -3
    assert float(Value(ValueKind.FLOAT, 1.5)) == 1.5
    assert not Value(ValueKind.BOOLEAN, False)
    assert str(Value(ValueKind.UNSIGNED, 10)) == '10'
    assert repr(Value(ValueKind.UNSIGNED, 10)) == '<Value(UNSIGNED, 10)>'

    state = Value(ValueKind.ENUMERATION, 1, label='busy')

    assert state == 'busy'
    assert state == 1
    assert state != 'idle'
    assert str(state) == 'busy'
    assert repr(state) == "<Value(ENUMERATION, 1, 'busy')>"
    assert Value(ValueKind.UNSIGNED, 1) != 'busy'


def test_value_hash_follows_equality():
    for value in (Value(ValueKind.UNSIGNED, 3), Value(ValueKind.SIGNED, -3), Value(ValueKind.FLOAT, 1.5),
                  Value(ValueKind.BOOLEAN, True), Value(ValueKind.ENUMERATION, 1, label='busy')):
        assert hash(value) == hash(value.value)

    assert Value(ValueKind.UNSIGNED, 3) in {3, 4}
    assert 3 in {Value(ValueKind.UNSIGNED, 3)}
    assert {Value(ValueKind.UNSIGNED, 3): 'x'}[3] == 'x'


def test_reserved():
    assert Reserved(3) == Reserved(3)
    assert Reserved(3) != Reserved(4)

    with pytest.raises(InvalidFieldDefinition):
        Reserved(0)


def test_declaration_to_entry():
    declaration = fields.Signed(12, byte_order=ByteOrder.BIG_ENDIAN)

    entry = declaration.to_entry('x', bit_order=BitOrder.LSB_FIRST, byte_order=ByteOrder.LITTLE_ENDIAN)

    assert entry == fields.signed('x', 0, 12, bit_order=BitOrder.LSB_FIRST, byte_order=ByteOrder.BIG_ENDIAN)
    assert fields.Boolean().to_entry('b') == fields.boolean('b', 0)
    assert fields.Enumeration(2, {0: 'a'}).to_entry('e').choices == {0: 'a'}
