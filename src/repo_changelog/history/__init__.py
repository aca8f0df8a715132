"""プロジェクト履歴（git log）の取得と解析."""

from .query import (
    FIELD_SEPARATOR,
    HISTORY_FORMAT,
    RECORD_SEPARATOR,
    build_history_command,
    parse_history_output,
    parse_raw_diff_line,
)
from .runner import CommandResult, CommandRunner, SubprocessRunner

__all__ = [
    "RECORD_SEPARATOR",
    "FIELD_SEPARATOR",
    "HISTORY_FORMAT",
    "build_history_command",
    "parse_history_output",
    "parse_raw_diff_line",
    "CommandResult",
    "CommandRunner",
    "SubprocessRunner",
]
