from ..errors import (
    ERROR_INVALID_FLAG_SET,
    BindError,
    DefaultValueError,
    FlagOverrideUndefinedError,
    FlagRedefinedError,
    InvalidTypeError,
    NestedStructError,
    nested_struct_error,
)


def test_messages():
    assert str(InvalidTypeError(type(None), nil=True)) == 'cannot bind flags to None'
    assert str(InvalidTypeError(int)) == 'type int is not a dataclass instance'
    assert str(ERROR_INVALID_FLAG_SET) == 'flag_set must implement STDFlagSet or PFlagSet'
    assert str(FlagOverrideUndefinedError('port')) == "cannot override undefined flag: 'port'"
    assert str(FlagRedefinedError('port')) == "flag redefined: 'port'"
    assert str(DefaultValueError('x', 'bad', ValueError())) == \
        "x: cannot assign default value from tag: 'bad'"


def test_builtin_bases():
    assert isinstance(InvalidTypeError(int), TypeError)
    assert isinstance(ERROR_INVALID_FLAG_SET, TypeError)
    assert isinstance(DefaultValueError('x', '', ValueError()), ValueError)
    assert isinstance(FlagOverrideUndefinedError('port'), LookupError)


def test_nested_struct_error_collapses():
    leaf = FlagOverrideUndefinedError('port')
    err = nested_struct_error('c', leaf)
    err = nested_struct_error('b', err)
    err = nested_struct_error('a', err)

    assert isinstance(err, NestedStructError)
    assert err.field_name == 'a.b.c'
    assert err.path == 'a.b.c'
    assert err.unwrap() is leaf
    assert err.root_cause() is leaf
    assert str(err) == "a.b.c: cannot override undefined flag: 'port'"


def test_root_cause():
    cause = ValueError('invalid literal')
    err = nested_struct_error('a', DefaultValueError('x', 'bad', cause))
    assert err.path == 'a.x'
    assert err.root_cause() is cause

    plain = BindError('plain')
    assert plain.unwrap() is None
    assert plain.root_cause() is plain
