'''
Bind the fields of a dataclass instance to the flags of a flag set.

Example:
```python
from argparse import ArgumentParser
from dataclasses import dataclass

from flag_binding import Field, bind


@dataclass
class Options:
    port: int = Field(default=8080, short='p', usage='The port to listen on.')
    verbose: bool = False


options = Options()
parser = ArgumentParser()
bind(options, parser)
parser.parse_args(['-p', '80'])
assert options.port == 80
```
'''
import sys
import warnings
from dataclasses import dataclass, fields, is_dataclass
from inspect import isclass
from typing import Any, Dict, Iterator, Optional, Tuple, get_type_hints

from .errors import (
    DefaultValueError,
    FlagOverrideUndefinedError,
    InvalidTypeError,
    UnsupportedTypeError,
    nested_struct_error,
)
from .flagset import Flag, PFlagSet, STDFlagSet, as_flag_set
from .tags import TagDescriptor
from .values import (
    BoundValue,
    WrapperType,
    analyse_type,
    converter_info,
    unwrap_optional,
)


@dataclass
class BoundField:
    '''
        A bindable field yielded by `walk_fields`.

        Attributes:
        - path (`Tuple[str, ...]`): field names from the walked dataclass down to this field.
        - name (`str`): the field name.
        - annotation (`Any`): the resolved annotation of the field.
        - owner (`Any`): the dataclass instance holding the field.
        - tag (`TagDescriptor`): the parsed flag tag.
        - nested (`bool`): whether the field is a nested dataclass to recurse into.
    '''
    path: Tuple[str, ...]
    name: str
    annotation: Any
    owner: Any
    tag: TagDescriptor
    nested: bool = False

    @property
    def dotted_path(self) -> str:
        return '.'.join(self.path)


def _resolve_annotation(cls, annotation: Any) -> Any:
    if not isinstance(annotation, str):
        return annotation
    module = sys.modules.get(cls.__module__)
    globalns = dict(vars(module)) if module is not None else {}
    try:
        return eval(annotation, globalns, dict(vars(cls)))
    except NameError:
        # a name only known locally or under TYPE_CHECKING, keep the raw annotation
        return annotation


def _field_types(cls) -> Dict[str, Any]:
    try:
        return get_type_hints(cls)
    except NameError:
        return {
            field.name: _resolve_annotation(cls, field.type)
            for field in fields(cls)
        }


def _nested_type(annotation) -> Optional[type]:
    annotation = unwrap_optional(annotation)
    if isclass(annotation) and is_dataclass(annotation):
        return annotation
    return None


def _is_nested(owner: Any, name: str, annotation: Any) -> bool:
    value = getattr(owner, name, None)
    if value is not None:
        return is_dataclass(value) and not isinstance(value, type)
    return _nested_type(annotation) is not None


def walk_fields(target: Any, path: Tuple[str, ...] = ()) -> Iterator[BoundField]:
    '''
        Iterate the bindable fields of a dataclass instance in declaration order.

        Private fields (a leading underscore) and fields tagged to be skipped are left out.
        Nested dataclass fields are yielded with `nested=True` and are not descended into,
        the caller decides whether to recurse.

        Raises:
        - `TagSyntaxError`: when a field's tag is malformed.
    '''
    hints = _field_types(type(target))
    for field in fields(target):
        if field.name.startswith('_'):
            continue
        tag = TagDescriptor.from_field(field)
        if tag.skip:
            continue
        annotation = hints.get(field.name, field.type)
        nested = tag.type is None and analyse_type(annotation) is None and \
            _is_nested(target, field.name, annotation)
        yield BoundField(
            path=path + (field.name, ),
            name=field.name,
            annotation=annotation,
            owner=target,
            tag=tag,
            nested=nested
        )


def bind(target: Any, flag_set: Any, prefix: str = '') -> None:
    '''
        Bind every field of the dataclass instance `target` to a flag of `flag_set`.

        Each field becomes a flag whose value is stored in the field itself, so that parsing
        the command-line with the flag set updates `target` directly. Nested dataclass fields
        are bound recursively into the same flag set.

        Binding stops at the first error. Flags registered before the error stay registered.

        Parameters:
        - target (`Any`): a dataclass instance.
        - flag_set (`Any`): an `STDFlagSet`, a `PFlagSet` or an `argparse.ArgumentParser`.
        - prefix (`str`, optional): prepended with a dash to every flag name.

        Raises:
        - `InvalidFlagSetError`: when `flag_set` is not a flag set.
        - `InvalidTypeError`: when `target` is None or not a dataclass instance.
        - `NestedStructError`: when binding a nested dataclass fails.
        - `DefaultValueError`: when a default from a tag cannot be converted.
        - `FlagOverrideUndefinedError`: when an override names an undefined flag.
        - `FlagRedefinedError`: when two fields resolve to the same flag name.
        - `TagSyntaxError`, `UnsupportedTypeError`: for malformed tags and unsupported field types.
    '''
    flag_set = as_flag_set(flag_set)
    if target is None:
        raise InvalidTypeError(type(target), nil=True)
    if not is_dataclass(target) or isinstance(target, type):
        raise InvalidTypeError(type(target))
    _bind_dataclass(target, flag_set, prefix)


def _join_prefix(prefix: str, more: Optional[str]) -> str:
    if not more:
        return prefix
    return f'{prefix}-{more}' if prefix else more


def _bind_dataclass(target: Any, flag_set: STDFlagSet, prefix: str) -> None:
    for bound in walk_fields(target):
        if not bound.nested:
            bind_field(bound, flag_set, prefix)
            continue

        nested = getattr(target, bound.name)
        if nested is None:
            nested = _nested_type(bound.annotation)()
            setattr(target, bound.name, nested)
        try:
            _bind_dataclass(
                nested, flag_set, _join_prefix(prefix, bound.tag.prefix)
            )
        except Exception as e:
            err = nested_struct_error(bound.name, e)
            raise err from err.err


def bind_field(bound: BoundField, flag_set: STDFlagSet, prefix: str = '') -> Flag:
    '''
        Bind a single leaf field, either to a new flag or to the existing flag it overrides.

        Returns:
        - `Flag`: the flag the field is bound to.
    '''
    tag = bound.tag
    info = analyse_type(bound.annotation)
    if tag.type is not None:
        if info is not None:
            warnings.warn(
                f'The type for "{bound.name}" will be occupied with the tag.',
                UserWarning
            )
        info = converter_info(tag.type)
    if info is None:
        raise UnsupportedTypeError(bound.name, bound.annotation)

    if info.wrapper_type is WrapperType.Value and getattr(
        bound.owner, bound.name
    ) is None:
        setattr(bound.owner, bound.name, unwrap_optional(bound.annotation)())
    value = BoundValue(bound.owner, bound.name, info)

    override = tag.override_name(bound.name, prefix)
    flag = None
    if override is not None:
        flag = flag_set.lookup(override)
        if flag is None:
            raise FlagOverrideUndefinedError(override)

    if tag.default is not None:
        try:
            value.set_default(tag.default)
        except (TypeError, ValueError) as e:
            raise DefaultValueError(bound.name, tag.default, e) from e

    if flag is not None:
        rebind = getattr(flag_set, 'rebind', None)
        if rebind is not None:
            return rebind(flag, value, tag.usage)
        flag.value = value
        flag.default = str(value)
        if tag.usage:
            flag.usage = tag.usage
        return flag

    name = tag.flag_name(bound.name, prefix)
    if isinstance(flag_set, PFlagSet):
        return flag_set.var_p(value, name, tag.shorthand, tag.usage, tag.hidden)
    if tag.shorthand is not None:
        warnings.warn(
            f'The flag set does not support shorthands, "-{tag.shorthand}" for '
            f'"{name}" is ignored.', UserWarning
        )
    return flag_set.var(value, name, tag.usage, tag.hidden)
