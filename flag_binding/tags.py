'''
The flag tag attached to dataclass fields, parsed into a `TagDescriptor`.

A tag lives in the field metadata under the `flag` key, either as a tag string:

```python
port: int = field(default=0, metadata={'flag': "name=port short=p default=8080 usage='TCP port'"})
```

or as the mapping built by `BindingField`:

```python
port: int = BindingField(default=8080, short='p', usage='TCP port')
```
'''
import re
import shlex
from copy import copy
from dataclasses import MISSING, Field, dataclass, field
from datetime import timedelta
from enum import Enum
from functools import partial
from typing import Any, Callable, Mapping, Optional

from .errors import TagSyntaxError
from .values import format_bool, format_duration, join_csv

TAG_KEY = 'flag'

_VALUED_KEYS = ('name', 'short', 'default', 'usage', 'override', 'prefix')
_BARE_WORDS = ('skip', 'hidden', 'override')
_MAPPING_KEYS = _VALUED_KEYS + ('skip', 'hidden', 'type')

_CAMEL_BOUNDARY = re.compile(r'(?<=[a-z0-9])(?=[A-Z])|(?<=[A-Z])(?=[A-Z][a-z])')


def flag_name_from_field(name: str) -> str:
    '''
        Derive the flag name of a field without an explicit name: the kebab-case form of
        the field name.

        Example:
        ```python
        flag_name_from_field('max_steps')  # 'max-steps'
        flag_name_from_field('MaxSteps')   # 'max-steps'
        flag_name_from_field('HTTPPort')   # 'http-port'
        ```
    '''
    parts = re.split('_+', _CAMEL_BOUNDARY.sub('_', name))
    return '-'.join(part.lower() for part in parts if part)


def render_literal(val: Any) -> str:
    '''
        Render a python default into the literal syntax accepted on the command-line.
    '''
    if isinstance(val, str):
        return val
    if isinstance(val, bool):
        return format_bool(val)
    if isinstance(val, Enum):
        return str(val.value)
    if isinstance(val, timedelta):
        return format_duration(val)
    if isinstance(val, bytes):
        return val.decode('utf-8')
    if isinstance(val, Mapping):
        return join_csv(
            f'{render_literal(k)}={render_literal(v)}' for k, v in val.items()
        )
    if isinstance(val, (list, tuple, set, frozenset)):
        return join_csv(map(render_literal, val))
    return str(val)


@dataclass(frozen=True)
class TagDescriptor:
    '''
        The parsed flag tag of a dataclass field.

        Attributes:
        - name (`Optional[str]`): the flag name, derived from the field name when None.
        - shorthand (`Optional[str]`): a single character alias.
        - default (`Optional[str]`): the default literal, converted when the field is bound.
        - usage (`str`): the help text.
        - override (`Optional[str]`): bind to this existing flag instead of defining a new one.
        - skip (`bool`): do not bind the field at all.
        - hidden (`bool`): keep the flag out of the usage message.
        - prefix (`Optional[str]`): prefix for the flag names of a nested dataclass.
        - type (`Optional[Callable]`): explicit convert function for the field.
    '''
    name: Optional[str] = None
    shorthand: Optional[str] = None
    default: Optional[str] = None
    usage: str = ''
    override: Optional[str] = None
    skip: bool = False
    hidden: bool = False
    prefix: Optional[str] = None
    type: Optional[Callable] = None

    def flag_name(self, field_name: str, prefix: str = '') -> str:
        name = self.name if self.name else flag_name_from_field(field_name)
        return f'{prefix}-{name}' if prefix else name

    def override_name(self, field_name: str, prefix: str = '') -> Optional[str]:
        if self.override is None:
            return None
        if self.override == '':
            return self.flag_name(field_name, prefix)
        return self.override

    @classmethod
    def parse(cls, field_name: str, tag: Any) -> 'TagDescriptor':
        '''
            Parse the tag of a field.

            Parameters:
            - field_name (`str`): the name of the field, used in errors.
            - tag (`Union[None, str, Mapping]`): the tag string or the mapping built by `BindingField`.

            Raises:
            - `TagSyntaxError`: if the tag is malformed.
        '''
        if tag is None:
            return cls()
        if isinstance(tag, str):
            return cls._parse_string(field_name, tag)
        if isinstance(tag, Mapping):
            return cls._parse_mapping(field_name, tag)
        raise TagSyntaxError(
            field_name, tag, 'expected a tag string or a mapping'
        )

    @classmethod
    def _parse_string(cls, field_name: str, tag: str) -> 'TagDescriptor':
        if tag.strip() == '-':
            return cls(skip=True)
        try:
            tokens = shlex.split(tag)
        except ValueError as e:
            raise TagSyntaxError(field_name, tag, str(e)) from e

        options = {}
        for token in tokens:
            key, sep, val = token.partition('=')
            if not sep:
                if key not in _BARE_WORDS:
                    raise TagSyntaxError(
                        field_name, tag, f'unknown option {key!r}'
                    )
                val = '' if key == 'override' else True
            elif key not in _VALUED_KEYS:
                raise TagSyntaxError(field_name, tag, f'unknown key {key!r}')
            if key in options:
                raise TagSyntaxError(field_name, tag, f'duplicate key {key!r}')
            options[key] = val

        return cls._build(field_name, tag, options)

    @classmethod
    def _parse_mapping(cls, field_name: str, tag: Mapping) -> 'TagDescriptor':
        options = {}
        for key, val in tag.items():
            if key not in _MAPPING_KEYS:
                raise TagSyntaxError(field_name, tag, f'unknown key {key!r}')
            if val is None:
                continue
            if key == 'default':
                val = render_literal(val)
            elif key == 'override':
                if val is False:
                    continue
                val = '' if val is True else val
            options[key] = val

        return cls._build(field_name, tag, options)

    @classmethod
    def _build(cls, field_name: str, tag: Any, options: dict) -> 'TagDescriptor':
        for key in ('name', 'short', 'usage', 'override', 'prefix'):
            if key in options and not isinstance(options[key], str):
                raise TagSyntaxError(
                    field_name, tag, f'{key} must be a string'
                )
        short = options.get('short')
        if short is not None and len(short) != 1:
            raise TagSyntaxError(
                field_name, tag, f'shorthand {short!r} must be a single character'
            )
        for key in ('name', 'prefix'):
            if key in options and not options[key]:
                raise TagSyntaxError(field_name, tag, f'empty {key}')
        fn = options.get('type')
        if fn is not None and not callable(fn):
            raise TagSyntaxError(field_name, tag, 'type must be callable')

        return cls(
            name=options.get('name'),
            shorthand=short,
            default=options.get('default'),
            usage=options.get('usage', ''),
            override=options.get('override'),
            skip=bool(options.get('skip', False)),
            hidden=bool(options.get('hidden', False)),
            prefix=options.get('prefix'),
            type=fn
        )

    @classmethod
    def from_field(cls, field: Field) -> 'TagDescriptor':
        return cls.parse(field.name, field.metadata.get(TAG_KEY))


def BindingField(
    default: Optional[Any] = MISSING,
    default_factory: Optional[Callable] = MISSING,
    name: Optional[str] = None,
    short: Optional[str] = None,
    usage: Optional[str] = None,
    override: Any = None,
    skip: bool = False,
    hidden: bool = False,
    prefix: Optional[str] = None,
    type: Optional[Callable] = None
):
    '''
        Create a dataclass field carrying a flag tag.

        Parameters:
        - default (`Optional[Any]`, optional):
            The default of the flag. It is also the dataclass default of the field, and is
            converted again through the flag's type when the field is bound.
        - default_factory (`Optional[Callable]`, optional):
            Default factory for the dataclass field. Not used as the flag default.
        - name (`Optional[str]`, optional):
            The flag name. Defaults to the kebab-case form of the field name.
        - short (`Optional[str]`, optional):
            A single character alias, only honoured by flag sets supporting shorthands.
        - usage (`Optional[str]`, optional):
            Help text for the flag.
        - override (`Union[bool, str]`, optional):
            Bind the field to an already defined flag instead of defining a new one.
            True overrides the flag with the field's own name, a string names the flag.
        - skip (`bool`, optional): Do not bind the field.
        - hidden (`bool`, optional): Keep the flag out of the usage message.
        - prefix (`Optional[str]`, optional):
            For nested dataclass fields, prefix every nested flag name with `<prefix>-`.
        - type (`Optional[Callable]`, optional):
            Type conversion function for the field. Use type hint if this is not provided.

        Returns:
        - `dataclasses.Field`: A dataclass field with the tag in its metadata.
    '''
    meta_info = {}
    if default is not MISSING and default is not None:
        meta_info['default'] = default
    if name is not None:
        meta_info['name'] = name
    if short is not None:
        meta_info['short'] = short
    if usage is not None:
        meta_info['usage'] = usage
    if override is not None and override is not False:
        meta_info['override'] = override
    if skip:
        meta_info['skip'] = True
    if hidden:
        meta_info['hidden'] = True
    if prefix is not None:
        meta_info['prefix'] = prefix
    if type is not None:
        meta_info['type'] = type

    metadata = {TAG_KEY: meta_info}
    if default_factory is not MISSING:
        return field(default_factory=default_factory, metadata=metadata)
    if default is MISSING:
        return field(default=None, metadata=metadata)
    if isinstance(default, (list, dict, set)):
        return field(default_factory=partial(copy, default), metadata=metadata)
    return field(default=default, metadata=metadata)
