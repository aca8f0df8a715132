"""外部コマンド実行の最小インターフェース.

履歴取得は「args を cwd で実行して stdout と終了コードを得る」だけに依存する。
テストではこのプロトコルを満たすフェイクを差し替える。
"""

from __future__ import annotations

import subprocess
from collections.abc import Sequence
from dataclasses import dataclass
from pathlib import Path
from typing import Protocol


@dataclass(frozen=True)
class CommandResult:
    stdout: bytes
    returncode: int
    stderr: bytes = b""

    @property
    def ok(self) -> bool:
        return self.returncode == 0


class CommandRunner(Protocol):
    def execute(self, args: Sequence[str], cwd: Path) -> CommandResult:
        """コマンドを実行して結果を返す.

        Raises:
            OSError: 実行ファイルや作業ディレクトリが存在しない場合
            subprocess.TimeoutExpired: タイムアウトした場合
        """
        ...


class SubprocessRunner:
    """subprocess.run によるローカル実行."""

    def __init__(self, timeout: float | None = None) -> None:
        self.timeout = timeout

    def execute(self, args: Sequence[str], cwd: Path) -> CommandResult:
        result = subprocess.run(
            list(args),
            cwd=cwd,
            capture_output=True,
            timeout=self.timeout,
        )
        return CommandResult(stdout=result.stdout, returncode=result.returncode, stderr=result.stderr)
