'''
Errors raised while binding dataclass fields to a flag set.
'''
from typing import Any, Optional


class BindError(Exception):
    '''
        Base class of every error raised by `bind`.
    '''

    def unwrap(self) -> Optional[BaseException]:
        return None

    def root_cause(self) -> BaseException:
        '''
            Follow `unwrap` down to the innermost error.

            Returns:
            - `BaseException`: the deepest wrapped error, or `self` when nothing is wrapped.
        '''
        err: BaseException = self
        while isinstance(err, BindError) and err.unwrap() is not None:
            err = err.unwrap()
        return err


class InvalidTypeError(BindError, TypeError):
    '''
        Raised when the bind target is `None` or not a dataclass instance.

        Attributes:
        - type (`type`): the type of the rejected target.
        - nil (`bool`): whether the target was `None`.
    '''

    def __init__(self, type: Any, nil: bool = False) -> None:
        self.type = type
        self.nil = nil
        if nil:
            msg = 'cannot bind flags to None'
        else:
            msg = f'type {getattr(type, "__name__", type)} is not a dataclass instance'
        super(InvalidTypeError, self).__init__(msg)


class InvalidFlagSetError(BindError, TypeError):
    '''
        Raised when the flag set implements neither `STDFlagSet` nor `PFlagSet`.
        Only the single `ERROR_INVALID_FLAG_SET` instance is ever raised.
    '''


ERROR_INVALID_FLAG_SET = InvalidFlagSetError(
    'flag_set must implement STDFlagSet or PFlagSet'
)


class NestedStructError(BindError):
    '''
        Raised when binding a nested dataclass fails.

        `field_name` is the dotted path of nested dataclass fields, from the outermost
        bound dataclass down to the one whose binding failed. `err` is the leaf error.
    '''

    def __init__(self, field_name: str, err: BaseException) -> None:
        self.field_name = field_name
        self.err = err
        super(NestedStructError, self).__init__(f'{field_name}: {err}')

    @property
    def path(self) -> str:
        '''
            The dotted path down to the failing field, including the leaf field name when
            the wrapped error carries one.
        '''
        leaf_name = getattr(self.err, 'field_name', None)
        if leaf_name:
            return f'{self.field_name}.{leaf_name}'
        return self.field_name

    def unwrap(self) -> BaseException:
        return self.err


def nested_struct_error(field_name: str, err: BaseException) -> NestedStructError:
    '''
        Qualify `err` with the name of the nested field it was raised from.

        An error that already is a `NestedStructError` gets the name prepended to
        its path, so any depth of nesting unwraps to the leaf error in one step.
    '''
    if isinstance(err, NestedStructError):
        return NestedStructError(f'{field_name}.{err.field_name}', err.err)
    return NestedStructError(field_name, err)


class DefaultValueError(BindError, ValueError):
    '''
        Raised when the default given in a tag cannot be converted and assigned to the field.

        Attributes:
        - field_name (`str`): the field, local to its dataclass.
        - value (`str`): the default literal from the tag.
        - err (`Exception`): the conversion error.
    '''

    def __init__(self, field_name: str, value: str, err: BaseException) -> None:
        self.field_name = field_name
        self.value = value
        self.err = err
        super(DefaultValueError, self).__init__(
            f'{field_name}: cannot assign default value from tag: {value!r}'
        )

    def unwrap(self) -> BaseException:
        return self.err


class FlagOverrideUndefinedError(BindError, LookupError):
    '''
        Raised when an override tag names a flag that is not defined in the flag set yet.
    '''

    def __init__(self, flag_name: str) -> None:
        self.flag_name = flag_name
        super(FlagOverrideUndefinedError, self).__init__(
            f'cannot override undefined flag: {flag_name!r}'
        )


class FlagRedefinedError(BindError):
    '''
        Raised by a flag set when a flag name is registered twice.
    '''

    def __init__(self, flag_name: str) -> None:
        self.flag_name = flag_name
        super(FlagRedefinedError, self).__init__(f'flag redefined: {flag_name!r}')


class TagSyntaxError(BindError, ValueError):

    def __init__(self, field_name: str, tag: Any, reason: str) -> None:
        self.field_name = field_name
        self.tag = tag
        self.reason = reason
        super(TagSyntaxError, self).__init__(
            f'{field_name}: malformed flag tag {tag!r}: {reason}'
        )


class UnsupportedTypeError(BindError, TypeError):

    def __init__(self, field_name: str, annotation: Any) -> None:
        self.field_name = field_name
        self.annotation = annotation
        super(UnsupportedTypeError, self).__init__(
            f'{field_name}: unsupported type {annotation!r}, '
            'specify a type convert function in the tag'
        )
