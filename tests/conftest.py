"""共通フィクスチャ（コマンド実行のフェイク、git log 出力の組み立て）."""

from __future__ import annotations

from collections.abc import Callable, Sequence
from pathlib import Path

import pytest

from repo_changelog.history.query import FIELD_SEPARATOR, RECORD_SEPARATOR
from repo_changelog.history.runner import CommandResult


class FakeRunner:
    """実行したコマンドを記録し、(cwd, args) に応じた結果を返すフェイク."""

    def __init__(self, handler: Callable[[Sequence[str], Path], CommandResult] | None = None) -> None:
        self.calls: list[tuple[list[str], Path]] = []
        self._handler = handler

    def execute(self, args: Sequence[str], cwd: Path) -> CommandResult:
        self.calls.append((list(args), Path(cwd)))
        if self._handler is None:
            return CommandResult(stdout=b"", returncode=0)
        return self._handler(args, Path(cwd))


def format_commit(
    revision: str,
    subject: str,
    body: str = "",
    raw_lines: Sequence[str] = (),
    author: tuple[str, str] = ("Alice", "alice@example.com"),
    committer: tuple[str, str] = ("Bob", "bob@example.com"),
    date: str = "Mon, 6 Jan 2025 10:00:00 +0900",
) -> str:
    """git log --raw --format=<HISTORY_FORMAT> 相当の1コミット分の出力を作る."""
    fields = [
        revision,
        author[0],
        author[1],
        date,
        committer[0],
        committer[1],
        date,
        f"{subject}\n{body}",
    ]
    text = RECORD_SEPARATOR + FIELD_SEPARATOR.join(fields) + FIELD_SEPARATOR
    if raw_lines:
        text += "\n\n" + "\n".join(raw_lines)
    return text + "\n"


@pytest.fixture
def fake_runner() -> FakeRunner:
    return FakeRunner()


MANIFEST_ONE = (
    "<manifest>"
    '<project name="a" path="a" revision="c9039e9649d133d80073e432816b9b4915776b41"/>'
    '<project name="b" path="b" revision="c27d6b02c859b291878db67f256cefac3adb26df"/>'
    '<project name="c" path="c" revision="fa822eff984195ec8923718cd025fd44b77a26ef"/>'
    "</manifest>"
)

# a と c が新しいコミットになり、d が追加される
MANIFEST_TWO = (
    "<manifest>"
    '<project name="a" path="a" revision="9297f42afa37eaabf1328b44f9f583fc12638c58"/>'
    '<project name="b" path="b" revision="c27d6b02c859b291878db67f256cefac3adb26df"/>'
    '<project name="c" path="c" revision="7086d7305fa6c7c1930de1e7d96fffc9c819b479"/>'
    '<project name="d" path="d" revision="a9def1a887d12c9a63df1d47a77d4cf4baeb7867"/>'
    "</manifest>"
)

# c が削除され、b が新しいコミットになる
MANIFEST_THREE = (
    "<manifest>"
    '<project name="a" path="a" revision="9297f42afa37eaabf1328b44f9f583fc12638c58"/>'
    '<project name="b" path="b" revision="2943f21d673d102f580efb9d8fe52770a57d2632"/>'
    '<project name="d" path="d" revision="a9def1a887d12c9a63df1d47a77d4cf4baeb7867"/>'
    "</manifest>"
)
