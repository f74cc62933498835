'''
Bind the fields of dataclasses to command-line flags.
'''
from .binder import bind, walk_fields
from .errors import (
    ERROR_INVALID_FLAG_SET,
    BindError,
    DefaultValueError,
    FlagOverrideUndefinedError,
    FlagRedefinedError,
    InvalidFlagSetError,
    InvalidTypeError,
    NestedStructError,
    TagSyntaxError,
    UnsupportedTypeError,
)
from .flagset import ArgumentParserFlagSet, Flag, FlagSet, PFlagSet, STDFlagSet
from .parser import BindingParser, parse_args
from .tags import BindingField, TagDescriptor
from .values import BoundValue, Value

Field = BindingField
