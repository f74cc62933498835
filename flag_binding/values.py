'''
Flag values: the `Value` protocol, the analysis of field annotations into string
converters and the `BoundValue` that stores a flag's value in a dataclass attribute.
'''
import csv
import io
import re
import types
from dataclasses import dataclass
from datetime import timedelta
from enum import Enum
from inspect import isclass
from pathlib import Path
from typing import (
    Any,
    Callable,
    Dict,
    Iterable,
    List,
    Literal,
    Optional,
    Protocol,
    Tuple,
    Union,
    get_args,
    get_origin,
    runtime_checkable,
)


@runtime_checkable
class Value(Protocol):
    '''
        A value that can be set from command-line text.

        Classes implementing this protocol can be used as dataclass field annotations,
        the field then holds the value object and the flag set updates it with `set`.
        A value may also define `is_bool_flag()` returning True to be usable without an
        argument on the command-line.
    '''

    def set(self, text: str) -> None:
        ...

    def get(self) -> Any:
        ...

    def type(self) -> str:
        ...


class WrapperType(Enum):
    '''
        How the converted text is wrapped into the final field value.

        - Basic: scalars, converted directly.
        - Bool: booleans, usable as switches.
        - Enum / Literal: a fixed set of choices.
        - List / Tuple / Set: comma separated scalars.
        - Dict: comma separated `key=value` pairs.
        - Value: user types implementing `Value`.
    '''
    Basic = 'basic'
    Bool = 'bool'
    Enum = 'enum'
    Literal = 'literal'
    List = 'list'
    Tuple = 'tuple'
    Set = 'set'
    Dict = 'dict'
    Value = 'value'

    @staticmethod
    def is_basic_collection(type: 'WrapperType') -> bool:
        return type in (WrapperType.List, WrapperType.Tuple, WrapperType.Set)


_TRUE_LITERALS = ('1', 't', 'T', 'TRUE', 'true', 'True')
_FALSE_LITERALS = ('0', 'f', 'F', 'FALSE', 'false', 'False')


def parse_bool(text: str) -> bool:
    if text in _TRUE_LITERALS:
        return True
    if text in _FALSE_LITERALS:
        return False
    raise ValueError(f'invalid boolean literal: {text!r}')


def format_bool(val: bool) -> str:
    return 'true' if val else 'false'


def parse_int(text: str) -> int:
    return int(text, 0)


def parse_bytes(text: str) -> bytes:
    return text.encode('utf-8')


def format_bytes(val: bytes) -> str:
    return val.decode('utf-8')


_DURATION_UNITS = {
    'ns': 0.001,
    'us': 1,
    'µs': 1,
    'ms': 1000,
    's': 1000000,
    'm': 60 * 1000000,
    'h': 3600 * 1000000,
}
_DURATION_PART = re.compile(r'(\d+\.?\d*|\.\d+)(ns|us|µs|ms|s|m|h)')


def parse_duration(text: str) -> timedelta:
    '''
        Parse a duration string such as `1h30m`, `250ms` or `-1.5s`.

        A duration is an optional sign followed by a sequence of decimal numbers,
        each with a unit suffix: `ns`, `us` (or `µs`), `ms`, `s`, `m`, `h`.
        The single literal `0` is accepted without a unit.

        Raises:
        - `ValueError`: if the text is not a valid duration.
    '''
    orig = text
    sign = 1
    if text[:1] in ('-', '+'):
        sign = -1 if text[0] == '-' else 1
        text = text[1:]
    if text == '0':
        return timedelta(0)
    if not text:
        raise ValueError(f'invalid duration: {orig!r}')
    total = timedelta(0)
    pos = 0
    while pos < len(text):
        match = _DURATION_PART.match(text, pos)
        if match is None:
            raise ValueError(f'invalid duration: {orig!r}')
        total += timedelta(
            microseconds=float(match.group(1)) * _DURATION_UNITS[match.group(2)]
        )
        pos = match.end()
    return sign * total


def format_duration(val: timedelta) -> str:
    if not val:
        return '0s'
    sign = '-' if val < timedelta(0) else ''
    micros = abs(val) // timedelta(microseconds=1)
    if micros < 1000000:
        if micros % 1000 == 0:
            return f'{sign}{micros // 1000}ms'
        return f'{sign}{micros}us'
    hours, micros = divmod(micros, 3600 * 1000000)
    minutes, micros = divmod(micros, 60 * 1000000)
    seconds = f'{micros / 1000000:f}'.rstrip('0').rstrip('.')
    out = sign
    if hours:
        out += f'{hours}h'
    if hours or minutes:
        out += f'{minutes}m'
    return f'{out}{seconds}s'


def split_csv(text: str) -> List[str]:
    if text == '':
        return []
    return next(csv.reader([text]))


def join_csv(items: Iterable[str]) -> str:
    '''
        Join items into one comma separated line, quoting them the way `split_csv` reads them back.
    '''
    items = list(items)
    if not items:
        return ''
    buf = io.StringIO()
    csv.writer(buf, lineterminator='').writerow(items)
    return buf.getvalue()


def enum_type_fn(val: str, enum_type: type) -> Enum:
    '''
        Convert a string to an enum member by member name or by the string form of its value.

        Raises:
        - `ValueError`: if no member matches.
    '''
    if val in enum_type.__members__:
        return enum_type[val]
    for item in enum_type:
        if str(item.value) == val:
            return item

    raise ValueError(f'No matching enum value found for the string: {val}')


@dataclass
class TypeInfo:
    '''
        The analysed form of a field annotation.

        Attributes:
        - parse (`Callable[[str], Any]`): converts command-line text into the field value.
        - format (`Callable[[Any], str]`): renders a field value back to command-line text.
        - type_name (`str`): the name shown to users, e.g. in usage text.
        - wrapper_type (`WrapperType`): the kind of value.
        - choices (`Optional[Tuple[str, ...]]`): the accepted literals for enums and literals.
    '''
    parse: Callable[[str], Any]
    format: Callable[[Any], str] = str
    type_name: str = 'string'
    wrapper_type: WrapperType = WrapperType.Basic
    choices: Optional[Tuple[str, ...]] = None

    @property
    def multiple(self) -> bool:
        return WrapperType.is_basic_collection(self.wrapper_type) or \
            self.wrapper_type is WrapperType.Dict

    @property
    def is_switch(self) -> bool:
        return self.wrapper_type is WrapperType.Bool

    def extend(self, current: Any, more: Any) -> Any:
        '''
            Merge a newly parsed collection into the current one.
        '''
        if current is None:
            return more
        if self.wrapper_type is WrapperType.List:
            return list(current) + list(more)
        if self.wrapper_type is WrapperType.Tuple:
            return tuple(current) + tuple(more)
        if self.wrapper_type is WrapperType.Set:
            return set(current) | set(more)
        if self.wrapper_type is WrapperType.Dict:
            merged = dict(current)
            merged.update(more)
            return merged
        return more


_SCALARS: Dict[Any, TypeInfo] = {
    str: TypeInfo(parse=str, type_name='string'),
    int: TypeInfo(parse=parse_int, type_name='int'),
    float: TypeInfo(parse=float, type_name='float'),
    bytes: TypeInfo(parse=parse_bytes, format=format_bytes, type_name='bytes'),
    Path: TypeInfo(parse=Path, type_name='path'),
    timedelta: TypeInfo(
        parse=parse_duration, format=format_duration, type_name='duration'
    ),
    bool: TypeInfo(
        parse=parse_bool,
        format=format_bool,
        type_name='bool',
        wrapper_type=WrapperType.Bool
    ),
}


def _is_union(origin) -> bool:
    return origin is Union or origin is getattr(types, 'UnionType', Union)


def _scalar_info(dtype) -> Optional[TypeInfo]:
    if dtype in _SCALARS:
        return _SCALARS[dtype]
    if isclass(dtype) and issubclass(dtype, Enum):
        choices = tuple(str(item.value) for item in dtype)
        return TypeInfo(
            parse=lambda x: enum_type_fn(x, dtype),
            format=lambda x: str(x.value),
            type_name=dtype.__name__.lower(),
            wrapper_type=WrapperType.Enum,
            choices=choices
        )
    if get_origin(dtype) is Literal:
        str2choice = {str(choice): choice for choice in get_args(dtype)}

        def parse_choice(x: str):
            if x not in str2choice:
                raise ValueError(
                    f'invalid choice: {x!r} (choose from {", ".join(str2choice)})'
                )
            return str2choice[x]

        return TypeInfo(
            parse=parse_choice,
            type_name='choice',
            wrapper_type=WrapperType.Literal,
            choices=tuple(str2choice)
        )
    return None


def _collection_info(elem: TypeInfo, wrapper_type: WrapperType) -> TypeInfo:
    wrapper_cls = {
        WrapperType.List: list,
        WrapperType.Tuple: tuple,
        WrapperType.Set: set,
    }[wrapper_type]

    def parse(val: str):
        return wrapper_cls(map(elem.parse, split_csv(val)))

    def format(val) -> str:
        items = sorted(val, key=str) if wrapper_type is WrapperType.Set else val
        return join_csv(map(elem.format, items))

    return TypeInfo(
        parse=parse,
        format=format,
        type_name=f'{elem.type_name}Slice',
        wrapper_type=wrapper_type,
        choices=elem.choices
    )


def _dict_info(k_info: TypeInfo, v_info: TypeInfo) -> TypeInfo:

    def parse(val: str):
        res = {}
        for pair in split_csv(val):
            key, sep, item = pair.partition('=')
            if not sep:
                raise ValueError(f'{pair!r} must be formatted as key=value')
            res[k_info.parse(key)] = v_info.parse(item)
        return res

    def format(val) -> str:
        return join_csv(
            f'{k_info.format(k)}={v_info.format(v)}' for k, v in val.items()
        )

    return TypeInfo(
        parse=parse,
        format=format,
        type_name=f'{k_info.type_name}To{v_info.type_name.capitalize()}',
        wrapper_type=WrapperType.Dict
    )


def unwrap_optional(dtype):
    '''
        Return `X` for `Optional[X]` (or `X | None`), otherwise `dtype` unchanged.
    '''
    if _is_union(get_origin(dtype)):
        args = [arg for arg in get_args(dtype) if arg is not type(None)]
        if len(args) == 1:
            return args[0]
    return dtype


def analyse_type(dtype) -> Optional[TypeInfo]:
    '''
        Analyse a field annotation into the `TypeInfo` used to convert flag text.

        Parameters:
        - dtype: the annotation of the dataclass field.

        Returns:
        - `Optional[TypeInfo]`: None when the annotation is not supported.
    '''
    dtype = unwrap_optional(dtype)
    scalar = _scalar_info(dtype)
    if scalar is not None:
        return scalar
    if isclass(dtype) and issubclass(dtype, Value):
        return TypeInfo(
            parse=str,
            type_name=dtype.__name__.lower(),
            wrapper_type=WrapperType.Value
        )

    origin = get_origin(dtype) or dtype
    dtype_generics = [arg for arg in get_args(dtype) if arg is not Ellipsis]
    if origin in (list, tuple, set):
        wrapper_type = {
            list: WrapperType.List,
            tuple: WrapperType.Tuple,
        }.get(origin, WrapperType.Set)
        if not dtype_generics:
            dtype_generics = [str]
        if len(dtype_generics) > 1:
            return None
        elem = _scalar_info(dtype_generics[0])
        if elem is None:
            return None
        return _collection_info(elem, wrapper_type)
    if origin is dict:
        if not dtype_generics:
            dtype_generics = [str, str]
        k_info = _scalar_info(dtype_generics[0])
        v_info = _scalar_info(dtype_generics[1])
        if k_info is None or v_info is None:
            return None
        return _dict_info(k_info, v_info)

    return None


def converter_info(fn: Callable[[str], Any]) -> TypeInfo:
    '''
        Build a `TypeInfo` from an explicit convert function given in a field's tag.
    '''
    return TypeInfo(parse=fn, type_name=getattr(fn, '__name__', 'value'))


class BoundValue:
    '''
        A flag value whose storage is an attribute of a dataclass instance.

        Setting the flag assigns the converted value to `owner.<name>`; reading the flag
        reads the attribute, so the flag set and the dataclass always observe the same value.

        Collections follow the usual command-line convention: the first `set` replaces the
        default and every later `set` appends to the collection.

        Parameters:
        - owner (`Any`): the dataclass instance that owns the field.
        - name (`str`): the name of the field.
        - info (`TypeInfo`): the converter analysed from the field's annotation.
    '''

    def __init__(self, owner: Any, name: str, info: TypeInfo) -> None:
        self.owner = owner
        self.name = name
        self.info = info
        self.changed = False

    def _parse(self, text: str) -> Any:
        if self.info.wrapper_type is WrapperType.Value:
            inner = self.get()
            inner.set(text)
            return inner
        return self.info.parse(text)

    def set_default(self, text: str) -> None:
        '''
            Assign a default literal without marking the value as changed.
        '''
        setattr(self.owner, self.name, self._parse(text))

    def set(self, text: str) -> None:
        value = self._parse(text)
        if self.info.multiple and self.changed:
            value = self.info.extend(self.get(), value)
        setattr(self.owner, self.name, value)
        self.changed = True

    def get(self) -> Any:
        return getattr(self.owner, self.name)

    def type(self) -> str:
        if self.info.wrapper_type is WrapperType.Value:
            return self.get().type()
        return self.info.type_name

    def is_bool_flag(self) -> bool:
        if self.info.wrapper_type is WrapperType.Value:
            return bool(getattr(self.get(), 'is_bool_flag', lambda: False)())
        return self.info.is_switch

    def __str__(self) -> str:
        val = self.get()
        if val is None:
            return ''
        if self.info.wrapper_type is WrapperType.Value:
            return str(val)
        return self.info.format(val)

    def __repr__(self) -> str:
        return f'BoundValue({type(self.owner).__name__}.{self.name}={self.get()!r})'
