"""changelogのCSVレポート出力.

コミット単位・ファイル単位の表を Polars DataFrame にして CSV として出力します。
"""

from __future__ import annotations

from pathlib import Path

import polars as pl

from repo_changelog.models import ChangeLogSet

COMMIT_SCHEMA = {
    "path": pl.String,
    "server_path": pl.String,
    "revision": pl.String,
    "author_name": pl.String,
    "author_email": pl.String,
    "author_date": pl.String,
    "committer_name": pl.String,
    "committer_email": pl.String,
    "committer_date": pl.String,
    "subject": pl.String,
    "files_changed": pl.Int64,
}

FILE_SCHEMA = {
    "path": pl.String,
    "revision": pl.String,
    "file": pl.String,
    "kind": pl.String,
}


def changelog_to_frames(changelog: ChangeLogSet) -> dict[str, pl.DataFrame]:
    """changelogをコミット表とファイル表に変換する.

    Args:
        changelog: 変換するchangelog

    Returns:
        - "commits": 1エントリ1行（subject はコミットメッセージの1行目）
        - "files": 1ファイル変更1行
    """
    commit_rows = []
    file_rows = []
    for entry in changelog:
        subject = (entry.message or "").split("\n", 1)[0]
        commit_rows.append(
            {
                "path": entry.client_path,
                "server_path": entry.server_path,
                "revision": entry.revision,
                "author_name": entry.author_name,
                "author_email": entry.author_email,
                "author_date": entry.author_date,
                "committer_name": entry.committer_name,
                "committer_email": entry.committer_email,
                "committer_date": entry.committer_date,
                "subject": subject,
                "files_changed": len(entry.file_edits),
            }
        )
        for edit in entry.file_edits:
            file_rows.append(
                {
                    "path": entry.client_path,
                    "revision": entry.revision,
                    "file": edit.path,
                    "kind": edit.kind.value,
                }
            )

    return {
        "commits": pl.DataFrame(commit_rows, schema=COMMIT_SCHEMA),
        "files": pl.DataFrame(file_rows, schema=FILE_SCHEMA),
    }


def export_changelog_report(
    changelog: ChangeLogSet,
    output_dir: Path | str,
) -> dict[str, Path | None]:
    """changelogレポートをCSVファイルとして出力する.

    Args:
        changelog: 出力するchangelog
        output_dir: 出力ディレクトリ

    Returns:
        出力したCSVのパス（行が無ければ None）
        - "commits": changelog_commits.csv
        - "files": changelog_files.csv
    """
    output_dir = Path(output_dir)
    output_dir.mkdir(parents=True, exist_ok=True)

    frames = changelog_to_frames(changelog)
    result_paths: dict[str, Path | None] = {}

    for name, df in frames.items():
        csv_path = output_dir / f"changelog_{name}.csv"
        if len(df) > 0:
            df.write_csv(csv_path)
            result_paths[name] = csv_path
        else:
            result_paths[name] = None

    return result_paths
