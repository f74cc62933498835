'''
Flag sets the binder registers fields with.

The binder only depends on the `STDFlagSet` / `PFlagSet` protocols. Two flag sets are
provided: `FlagSet`, a minimal registry of long flag names, and `ArgumentParserFlagSet`,
which registers flags with an `argparse.ArgumentParser` and supports shorthands.
'''
import sys
from argparse import SUPPRESS, Action, ArgumentError, ArgumentParser
from dataclasses import dataclass
from typing import (
    IO,
    Any,
    Callable,
    Dict,
    Iterator,
    List,
    Optional,
    Protocol,
    Sequence,
    runtime_checkable,
)

from .errors import ERROR_INVALID_FLAG_SET, FlagRedefinedError
from .values import Value


@dataclass
class Flag:
    '''
        A registered flag.

        Attributes:
        - name (`str`): the long name, unique within a flag set.
        - value (`Value`): the flag's value, its storage is owned by the value.
        - usage (`str`): help text.
        - shorthand (`Optional[str]`): single character alias.
        - default (`str`): the default rendered as command-line text.
        - hidden (`bool`): whether the flag is left out of usage messages.
    '''
    name: str
    value: Value
    usage: str = ''
    shorthand: Optional[str] = None
    default: str = ''
    hidden: bool = False

    @property
    def is_bool_flag(self) -> bool:
        return bool(getattr(self.value, 'is_bool_flag', lambda: False)())


@runtime_checkable
class STDFlagSet(Protocol):
    '''
        The minimal flag set: long flag names bound to a value.
    '''

    def var(
        self, value: Value, name: str, usage: str, hidden: bool = False
    ) -> Flag:
        ...

    def lookup(self, name: str) -> Optional[Flag]:
        ...


@runtime_checkable
class PFlagSet(STDFlagSet, Protocol):
    '''
        A flag set supporting single character shorthands as well.
    '''

    def var_p(
        self,
        value: Value,
        name: str,
        shorthand: Optional[str],
        usage: str,
        hidden: bool = False
    ) -> Flag:
        ...


class FlagSet:
    '''
        A minimal flag registry keyed by long flag names.

        Example:
        ```python
        flags = FlagSet('server')
        bind(options, flags)
        rest = flags.parse(['--port=80', 'serve'])
        ```
    '''

    def __init__(self, name: str = '') -> None:
        self.name = name
        self._flags: Dict[str, Flag] = {}

    def var(
        self, value: Value, name: str, usage: str, hidden: bool = False
    ) -> Flag:
        if name in self._flags:
            raise FlagRedefinedError(name)
        flag = Flag(
            name=name,
            value=value,
            usage=usage,
            default=str(value),
            hidden=hidden
        )
        self._flags[name] = flag
        return flag

    def lookup(self, name: str) -> Optional[Flag]:
        return self._flags.get(name)

    def rebind(self, flag: Flag, value: Value, usage: str = '') -> Flag:
        '''
            Bind an already defined flag to another value, keeping its name.
        '''
        flag.value = value
        flag.default = str(value)
        if usage:
            flag.usage = usage
        return flag

    def set(self, name: str, text: str) -> None:
        '''
            Set the value of the named flag from command-line text.

            Raises:
            - `KeyError`: if no flag has that name.
        '''
        flag = self._flags.get(name)
        if flag is None:
            raise KeyError(f'no such flag: {name!r}')
        flag.value.set(text)

    def visit_all(self, fn: Callable[[Flag], Any]) -> None:
        for name in sorted(self._flags):
            fn(self._flags[name])

    def __iter__(self) -> Iterator[Flag]:
        return iter(self._flags.values())

    def __len__(self) -> int:
        return len(self._flags)

    def parse(self, args: Sequence[str]) -> List[str]:
        '''
            Parse flags from `args` and return the remaining arguments.

            Accepted forms are `--name=value`, `--name value`, `-name value`, and a bare
            `--name` for boolean flags. Parsing stops at `--` or at the first argument which
            is not a flag.

            Raises:
            - `ValueError`: for an unknown flag, a missing value or a value that cannot be converted.
        '''
        args = list(args)
        while args:
            arg = args[0]
            if len(arg) < 2 or not arg.startswith('-'):
                break
            args.pop(0)
            if arg == '--':
                break
            name = arg[2:] if arg.startswith('--') else arg[1:]
            name, sep, text = name.partition('=')
            flag = self._flags.get(name)
            if flag is None:
                raise ValueError(f'flag provided but not defined: -{name}')
            if not sep:
                if flag.is_bool_flag:
                    text = 'true'
                elif not args:
                    raise ValueError(f'flag needs an argument: -{name}')
                else:
                    text = args.pop(0)
            try:
                flag.value.set(text)
            except ValueError as e:
                raise ValueError(
                    f'invalid value {text!r} for flag -{name}: {e}'
                ) from e
        return args

    def print_defaults(self, file: Optional[IO[str]] = None) -> None:
        file = file if file is not None else sys.stderr
        for flag in self:
            if flag.hidden:
                continue
            line = f'  -{flag.name} {flag.value.type()}'
            if flag.is_bool_flag:
                line = f'  -{flag.name}'
            line += f'\n    \t{flag.usage}'
            if flag.default:
                line += f' (default {flag.default})'
            print(line, file=file)


class BindingAction(Action):
    '''
        An argparse action that sets the bound flag value instead of storing into the namespace.
    '''

    def __init__(self, option_strings, dest, flag: Flag = None, **kwargs) -> None:
        super(BindingAction, self).__init__(option_strings, dest, **kwargs)
        self.flag = flag

    def __call__(self, parser, namespace, values, option_string=None) -> None:
        text = 'true' if values is None else values
        try:
            self.flag.value.set(text)
        except (TypeError, ValueError) as e:
            raise ArgumentError(self, f'invalid {self.metavar} value: {text!r} ({e})')


class ArgumentParserFlagSet:
    '''
        A flag set that registers every flag with an `argparse.ArgumentParser`.

        Parsing is done by the parser itself: `parser.parse_args()` sets the bound values,
        which in turn update the dataclass fields they are bound to.

        Parameters:
        - parser (`ArgumentParser`): the parser to add the options to.
    '''

    def __init__(self, parser: ArgumentParser) -> None:
        self.parser = parser
        self._flags: Dict[str, Flag] = {}
        self._actions: Dict[str, Action] = {}

    def var(
        self, value: Value, name: str, usage: str, hidden: bool = False
    ) -> Flag:
        return self.var_p(value, name, None, usage, hidden)

    def var_p(
        self,
        value: Value,
        name: str,
        shorthand: Optional[str],
        usage: str,
        hidden: bool = False
    ) -> Flag:
        if name in self._flags:
            raise FlagRedefinedError(name)
        flag = Flag(
            name=name,
            value=value,
            usage=usage,
            shorthand=shorthand,
            default=str(value),
            hidden=hidden
        )
        action = self.parser.add_argument(
            *self.options(flag),
            action=BindingAction,
            flag=flag,
            dest=name.replace('-', '_'),
            default=SUPPRESS,
            nargs='?' if flag.is_bool_flag else None,
            metavar=value.type(),
            help=SUPPRESS if hidden else self.help_text(flag)
        )
        self._flags[name] = flag
        self._actions[name] = action
        return flag

    def lookup(self, name: str) -> Optional[Flag]:
        return self._flags.get(name)

    def rebind(self, flag: Flag, value: Value, usage: str = '') -> Flag:
        '''
            Bind an already defined flag to another value.

            The argparse action registered for the flag is updated as well, so the help
            message and the number of accepted arguments follow the new value.
        '''
        flag.value = value
        flag.default = str(value)
        if usage:
            flag.usage = usage
        action = self._actions.get(flag.name)
        if action is not None:
            action.nargs = '?' if flag.is_bool_flag else None
            action.metavar = value.type()
            if not flag.hidden:
                action.help = self.help_text(flag)
        return flag

    def __iter__(self) -> Iterator[Flag]:
        return iter(self._flags.values())

    def __len__(self) -> int:
        return len(self._flags)

    @staticmethod
    def options(flag: Flag) -> List[str]:
        final_options = ['--' + flag.name]
        if '-' in flag.name:
            final_options.append('--' + flag.name.replace('-', '_'))
        if flag.shorthand is not None:
            final_options.insert(0, '-' + flag.shorthand)
        return final_options

    @staticmethod
    def help_text(flag: Flag) -> str:
        doc_suffix = []
        if flag.usage:
            doc_suffix.append(flag.usage)
        if flag.default:
            doc_suffix.append(f'Default `{flag.default}`.')
        return ' '.join(doc_suffix).replace('%', '%%')


_PARSER_FLAG_SET_ATTR = '_binding_flag_set'


def as_flag_set(flag_set: Any) -> STDFlagSet:
    '''
        Resolve the flag set passed to `bind`.

        An `ArgumentParser` is wrapped in the `ArgumentParserFlagSet` kept on the parser, so
        every bind against the same parser shares one registry.

        Raises:
        - `InvalidFlagSetError`: `ERROR_INVALID_FLAG_SET` for anything else that is not a flag set.
    '''
    if isinstance(flag_set, ArgumentParser):
        wrapped = getattr(flag_set, _PARSER_FLAG_SET_ATTR, None)
        if wrapped is None:
            wrapped = ArgumentParserFlagSet(flag_set)
            setattr(flag_set, _PARSER_FLAG_SET_ATTR, wrapped)
        return wrapped
    if isinstance(flag_set, (PFlagSet, STDFlagSet)):
        return flag_set
    # shared instance, drop whatever a previous raise attached to it
    ERROR_INVALID_FLAG_SET.__context__ = None
    raise ERROR_INVALID_FLAG_SET.with_traceback(None) from None
