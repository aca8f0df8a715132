"""git log による履歴取得コマンドの組み立てと出力解析.

出力形式は外部バイナリ（git）との固定の取り決めで、変更しないこと:

    <RECORD_SEPARATOR>%H<F>%an<F>%ae<F>%aD<F>%cn<F>%ce<F>%cD<F>%s\\n%b<F>
    :<old-mode> <new-mode> <old-hash> <new-hash> <status><score>\\t<path>[\\t<path2>]
    ...

F は FIELD_SEPARATOR。最後のフィールド区切りの後ろに --raw のファイル行が続く。
"""

from __future__ import annotations

from loguru import logger

from repo_changelog.models import ChangeLogEntry, EditKind, FileEdit

RECORD_SEPARATOR = "[[<as7d9m1R_MARK_A>]]"
FIELD_SEPARATOR = "[[<as7d9m1R_MARK_B>]"

# hash, author name/email/date, committer name/email/date, subject+body, raw lines
EXPECTED_FIELDS = 9

HISTORY_FORMAT = (
    RECORD_SEPARATOR
    + "%H"
    + FIELD_SEPARATOR
    + "%an"
    + FIELD_SEPARATOR
    + "%ae"
    + FIELD_SEPARATOR
    + "%aD"
    + FIELD_SEPARATOR
    + "%cn"
    + FIELD_SEPARATOR
    + "%ce"
    + FIELD_SEPARATOR
    + "%cD"
    + FIELD_SEPARATOR
    + "%s\n%b"
    + FIELD_SEPARATOR
)

RAW_DIFF_PREFIX = ":"

_SINGLE_PATH_KINDS = {
    "M": EditKind.MODIFIED,
    "A": EditKind.ADDED,
    "D": EditKind.DELETED,
}


def build_history_command(
    old_revision: str,
    new_revision: str,
    *,
    first_parent_only: bool = True,
    git_executable: str = "git",
) -> list[str]:
    """old..new の履歴を取得する git log コマンドを組み立てる.

    Args:
        old_revision: 前回ビルド時のリビジョン
        new_revision: 今回ビルド時のリビジョン
        first_parent_only: True なら --first-parent を付ける
        git_executable: git 実行ファイル

    Returns:
        コマンド引数リスト
    """
    command = [git_executable, "log", "--raw"]
    if first_parent_only:
        command.append("--first-parent")
    # TODO: pass -M once rename/copy detection output is verified against stored changelogs
    command.append(f"--format={HISTORY_FORMAT}")
    command.append(f"{old_revision}..{new_revision}")
    return command


def parse_raw_diff_line(line: str) -> list[FileEdit]:
    """--raw のファイル行1行をファイル変更に変換する.

    リネームは削除（旧パス）＋追加（新パス）の2件、コピーは新パスの追加1件になる。
    U（unmerged）や未知のステータス、形式不正の行は空リストを返す。

    Args:
        line: git log --raw の出力行

    Returns:
        ファイル変更のリスト
    """
    if not line.startswith(RAW_DIFF_PREFIX):
        return []

    meta, sep, path_part = line.partition("\t")
    if not sep:
        return []
    fields = meta[len(RAW_DIFF_PREFIX):].split()
    if len(fields) != 5 or not fields[4]:
        return []

    status = fields[4][0]
    paths = [p for p in path_part.rstrip("\r").split("\t") if p]
    if not paths:
        return []

    if status in _SINGLE_PATH_KINDS:
        return [FileEdit(paths[0], _SINGLE_PATH_KINDS[status])]
    if status == "R" and len(paths) == 2:
        return [FileEdit(paths[0], EditKind.DELETED), FileEdit(paths[1], EditKind.ADDED)]
    if status == "C" and len(paths) == 2:
        return [FileEdit(paths[1], EditKind.ADDED)]
    return []


def parse_history_output(output: str, client_path: str, server_path: str) -> list[ChangeLogEntry]:
    """git log の出力をコミットごとの ChangeLogEntry に変換する.

    フィールド数が足りないチャンクは壊れているとみなしてスキップする。

    Args:
        output: git log の標準出力
        client_path: プロジェクトのクライアントパス
        server_path: プロジェクトのサーバーパス

    Returns:
        コミット順の ChangeLogEntry リスト
    """
    entries: list[ChangeLogEntry] = []

    for chunk in output.split(RECORD_SEPARATOR):
        parts = chunk.split(FIELD_SEPARATOR)
        if len(parts) < EXPECTED_FIELDS:
            continue

        file_edits: list[FileEdit] = []
        for file_line in parts[8].split("\n"):
            file_edits.extend(parse_raw_diff_line(file_line))

        entry = ChangeLogEntry(
            client_path=client_path,
            server_path=server_path,
            revision=parts[0].strip(),
            author_name=parts[1],
            author_email=parts[2],
            author_date=parts[3],
            committer_name=parts[4],
            committer_email=parts[5],
            committer_date=parts[6],
            commit_text=parts[7].rstrip("\n"),
            file_edits=tuple(file_edits),
        )
        entries.append(entry)
        logger.trace(str(entry))

    return entries
