'''
An ArgumentParser that binds dataclass instances and updates them while parsing the command-line.
'''
from argparse import ArgumentParser, HelpFormatter
from dataclasses import is_dataclass
from inspect import isclass
from typing import Any, Optional, Sequence, Tuple, Union

from .binder import bind


class BindingParser(ArgumentParser):
    '''
        A command-line argument parser whose options are bound to the fields of dataclass instances.
        Every field is registered as an option when the dataclass is added, and parsing the
        command-line assigns the parsed values to the fields directly.

        Parameters:
        - targets (`iterable`): dataclass instances, or dataclass types to be instantiated with
            their defaults.

        Example:
        ```python
        from dataclasses import dataclass

        @dataclass
        class MyDataClass:
            arg1: int = 0
            arg2: str = ''

        options = MyDataClass()
        parser = BindingParser(options)
        parser.parse_args(['--arg1', '3'])

        print(options.arg1, options.arg2)
        ```
    '''

    def __init__(
        self,
        *targets: Any,
        prog: Optional[str] = None,
        usage: Optional[str] = None,
        description: Optional[str] = None,
        epilog: Optional[str] = None,
        parents: Sequence[ArgumentParser] = [],
        formatter_class=HelpFormatter,
        prefix_chars: str = "-",
        fromfile_prefix_chars: Optional[str] = None,
        argument_default: Any = None,
        conflict_handler: str = "error",
        add_help: bool = True,
        allow_abbrev: bool = True
    ) -> None:
        super(BindingParser, self).__init__(
            prog=prog,
            usage=usage,
            description=description,
            epilog=epilog,
            parents=parents,
            formatter_class=formatter_class,
            prefix_chars=prefix_chars,
            fromfile_prefix_chars=fromfile_prefix_chars,
            argument_default=argument_default,
            conflict_handler=conflict_handler,
            add_help=add_help,
            allow_abbrev=allow_abbrev
        )
        self._targets = []
        for target in targets:
            self.add_dataclass(target)

    @property
    def targets(self) -> Tuple[Any, ...]:
        return tuple(self._targets)

    def add_dataclass(self, target: Any, prefix: str = '') -> Any:
        '''
            Bind one more dataclass to the parser.

            Parameters:
            - target (`Any`): a dataclass instance, or a dataclass type which is instantiated first.
            - prefix (`str`, optional): prepended to the flag names of the dataclass.

            Returns:
            - the bound dataclass instance.
        '''
        if isclass(target) and is_dataclass(target):
            target = target()
        bind(target, self, prefix=prefix)
        self._targets.append(target)

        return target

    def parse_into_dataclasses(
        self, args: Optional[Sequence[str]] = None
    ) -> Union[Any, Tuple[Any, ...]]:
        '''
            Parse the command-line and return the bound dataclass instances.

            Parameters:
            - args (`Optional[Sequence[str]]`, optional):
                Command-line arguments to be parsed. If not provided, sys.argv is used.

            Returns:
            - the only bound instance when a single dataclass was added, otherwise a tuple
                of the instances in the order they were added.
        '''
        self.parse_args(args=args)
        if len(self._targets) == 1:
            return self._targets[0]
        return tuple(self._targets)


def parse_args(
    *targets: Any, args: Optional[Sequence[str]] = None
) -> Union[Any, Tuple[Any, ...]]:
    parser = BindingParser(*targets)
    return parser.parse_into_dataclasses(args)
