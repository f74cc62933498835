from dataclasses import dataclass, field
from datetime import timedelta
from enum import Enum
from typing import Dict, List, Literal, Optional, Set, Tuple, Union

import pytest

from ..values import (
    BoundValue,
    WrapperType,
    analyse_type,
    enum_type_fn,
    format_duration,
    parse_bool,
    parse_duration,
    parse_int,
)


class LogLevel(Enum):
    DEBUG = 'debug'
    WARNING = 'warning'


class Color(Enum):
    RED = 1
    GREEN = 2


@dataclass
class Holder:
    items: List[int] = field(default_factory=lambda: [7])
    mapping: Optional[Dict[str, int]] = None
    count: int = 0


def test_parse_bool():
    for text in ('1', 't', 'T', 'TRUE', 'true', 'True'):
        assert parse_bool(text) is True
    for text in ('0', 'f', 'F', 'FALSE', 'false', 'False'):
        assert parse_bool(text) is False
    with pytest.raises(ValueError):
        parse_bool('yes')


def test_parse_int_bases():
    assert parse_int('42') == 42
    assert parse_int('0x10') == 16
    assert parse_int('-0b11') == -3
    with pytest.raises(ValueError):
        parse_int('4.2')


def test_parse_duration():
    assert parse_duration('1h30m') == timedelta(hours=1, minutes=30)
    assert parse_duration('250ms') == timedelta(milliseconds=250)
    assert parse_duration('1.5s') == timedelta(seconds=1.5)
    assert parse_duration('.5s') == timedelta(milliseconds=500)
    assert parse_duration('-2m') == timedelta(minutes=-2)
    assert parse_duration('+3us') == timedelta(microseconds=3)
    assert parse_duration('0') == timedelta(0)

    for text in ('', '-', '5', '1x', 'h', '1h 2m'):
        with pytest.raises(ValueError):
            parse_duration(text)


def test_format_duration():
    assert format_duration(timedelta(0)) == '0s'
    assert format_duration(timedelta(hours=1, minutes=30)) == '1h30m0s'
    assert format_duration(timedelta(milliseconds=250)) == '250ms'
    assert format_duration(timedelta(microseconds=5)) == '5us'
    assert format_duration(timedelta(seconds=1.5)) == '1.5s'
    assert format_duration(timedelta(minutes=-2)) == '-2m0s'
    assert parse_duration(format_duration(timedelta(minutes=-2))) == timedelta(minutes=-2)


def test_enum_type_fn():
    assert enum_type_fn('WARNING', LogLevel) is LogLevel.WARNING
    assert enum_type_fn('debug', LogLevel) is LogLevel.DEBUG
    assert enum_type_fn('2', Color) is Color.GREEN
    with pytest.raises(ValueError):
        enum_type_fn('nope', LogLevel)


def test_analyse_scalars():
    assert analyse_type(str).type_name == 'string'
    assert analyse_type(Optional[int]).type_name == 'int'
    assert analyse_type(bool).wrapper_type is WrapperType.Bool
    assert analyse_type(bytes).parse('abc') == b'abc'
    assert analyse_type(timedelta).type_name == 'duration'

    info = analyse_type(LogLevel)
    assert info.wrapper_type is WrapperType.Enum
    assert info.choices == ('debug', 'warning')
    assert info.parse('warning') is LogLevel.WARNING
    assert info.format(LogLevel.DEBUG) == 'debug'

    info = analyse_type(Literal[1, 2])
    assert info.wrapper_type is WrapperType.Literal
    assert info.parse('2') == 2
    with pytest.raises(ValueError):
        info.parse('3')


def test_analyse_collections():
    info = analyse_type(List[int])
    assert info.type_name == 'intSlice'
    assert info.parse('1,2') == [1, 2]
    assert info.parse('') == []
    assert info.format([1, 2]) == '1,2'

    assert analyse_type(Tuple[str, ...]).parse('a,"b,c"') == ('a', 'b,c')
    assert analyse_type(list).parse('a,b') == ['a', 'b']

    info = analyse_type(Set[int])
    assert info.parse('2,1,2') == {1, 2}
    assert info.format({2, 1}) == '1,2'

    info = analyse_type(Dict[str, int])
    assert info.type_name == 'stringToInt'
    assert info.parse('a=1,b=2') == {'a': 1, 'b': 2}
    assert info.format({'a': 1}) == 'a=1'
    with pytest.raises(ValueError):
        info.parse('a')


def test_analyse_unsupported():
    assert analyse_type(List[List[int]]) is None
    assert analyse_type(Tuple[int, str]) is None
    assert analyse_type(Union[int, str]) is None
    assert analyse_type(Dict[str, List[int]]) is None
    assert analyse_type(Holder) is None


def test_bound_value_aliases_the_field():
    holder = Holder()
    value = BoundValue(holder, 'count', analyse_type(int))

    value.set('0x2a')
    assert holder.count == 42

    holder.count = 7
    assert value.get() == 7
    assert str(value) == '7'
    assert value.type() == 'int'
    assert not value.is_bool_flag()


def test_bound_collection_replaces_then_appends():
    holder = Holder()
    value = BoundValue(holder, 'items', analyse_type(List[int]))

    value.set_default('4,5')
    assert holder.items == [4, 5]
    value.set('1,2')
    assert holder.items == [1, 2]
    value.set('3')
    assert holder.items == [1, 2, 3]
    assert str(value) == '1,2,3'

    mapping = BoundValue(holder, 'mapping', analyse_type(Optional[Dict[str, int]]))
    assert str(mapping) == ''
    mapping.set('a=1')
    mapping.set('b=2')
    assert holder.mapping == {'a': 1, 'b': 2}
