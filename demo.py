from dataclasses import dataclass, field
from datetime import timedelta
from enum import Enum
from typing import List

from flag_binding import BindingParser, Field


class LogLevel(Enum):
    DEBUG = 'debug'
    INFO = 'info'
    WARNING = 'warning'
    ERROR = 'error'


@dataclass
class DatabaseOptions:
    host: str = 'localhost'
    port: int = 5432


@dataclass
class TestOptions:

    input_file: str = Field(short='i', usage='The input file to read.')
    workers: int = Field(default='1', short='w')
    timeout: timedelta = Field(default='30s', usage='Give up after this long.')
    logging_level: LogLevel = LogLevel.WARNING
    include: List[str] = field(default_factory=list)
    database: DatabaseOptions = Field(default_factory=DatabaseOptions, prefix='db')

    verbose: bool = False


if __name__ == '__main__':
    parser = BindingParser(TestOptions)

    options = parser.parse_into_dataclasses()

    print(options)
