"""ビルド間のchangelog生成.

前回スナップショットとの差分から変化したプロジェクトを求め、プロジェクトごとに
git log を実行して ChangeLogEntry のリストを作る。
"""

from __future__ import annotations

from concurrent.futures import ThreadPoolExecutor
from pathlib import Path

from loguru import logger

from repo_changelog.core.differ import NO_BASELINE, Baseline, what_changed
from repo_changelog.core.exceptions import HistoryQueryError
from repo_changelog.core.project import ProjectRecord, ProjectRecordCache
from repo_changelog.core.snapshot import Snapshot
from repo_changelog.history.query import build_history_command, parse_history_output
from repo_changelog.history.runner import CommandRunner
from repo_changelog.models import (
    PROJECT_ADDED_MESSAGE,
    PROJECT_REMOVED_MESSAGE,
    ChangeLogEntry,
    ChangeLogSet,
)


def query_project_history(
    change: ProjectRecord,
    new_revision: str,
    runner: CommandRunner,
    workspace: Path,
    *,
    first_parent_only: bool = True,
    git_executable: str = "git",
) -> list[ChangeLogEntry]:
    """1プロジェクトの old..new の履歴を取得する.

    Args:
        change: 前回ビルド時のプロジェクト状態
        new_revision: 今回ビルド時のリビジョン
        runner: コマンド実行
        workspace: repo のワークスペース（プロジェクトは workspace/client_path）
        first_parent_only: --first-parent を付けるか
        git_executable: git 実行ファイル

    Returns:
        コミットごとの ChangeLogEntry

    Raises:
        HistoryQueryError: git log が失敗した、または起動できなかった場合
    """
    if change.revision is None:
        raise ValueError(f"Project {change.client_path} has no previous revision")

    command = build_history_command(
        change.revision,
        new_revision,
        first_parent_only=first_parent_only,
        git_executable=git_executable,
    )
    gitdir = Path(workspace) / change.client_path

    try:
        result = runner.execute(command, gitdir)
    except OSError as e:
        raise HistoryQueryError(change.client_path, command, None, str(e)) from e

    if result.returncode != 0:
        raise HistoryQueryError(
            change.client_path,
            command,
            result.returncode,
            result.stderr.decode("utf-8", errors="replace"),
        )

    output = result.stdout.decode("utf-8", errors="replace")
    logger.debug(f"git log for {change.client_path}: {len(output)} chars")
    return parse_history_output(output, change.client_path, change.server_path)


def _entries_for_change(
    change: ProjectRecord,
    current: Snapshot,
    runner: CommandRunner,
    workspace: Path,
    first_parent_only: bool,
    git_executable: str,
) -> list[ChangeLogEntry]:
    if change.revision is None:
        return [ChangeLogEntry.marker(change.client_path, change.server_path, PROJECT_ADDED_MESSAGE)]

    new_revision = current.revision(change.client_path)
    if new_revision is None:
        return [ChangeLogEntry.marker(change.client_path, change.server_path, PROJECT_REMOVED_MESSAGE)]

    try:
        return query_project_history(
            change,
            new_revision,
            runner,
            workspace,
            first_parent_only=first_parent_only,
            git_executable=git_executable,
        )
    except HistoryQueryError as e:
        logger.error(f"Skipping history for {change.client_path}: {e}")
        return []


def generate_changelog(
    current: Snapshot,
    previous: Snapshot | None,
    runner: CommandRunner,
    workspace: Path | str,
    *,
    first_parent_only: bool = True,
    git_executable: str = "git",
    max_workers: int = 1,
    cache: ProjectRecordCache | None = None,
    changes: list[ProjectRecord] | Baseline | None = None,
) -> ChangeLogSet | None:
    """2つのスナップショット間のchangelogを生成する.

    Args:
        current: 今回ビルドのスナップショット
        previous: 前回ビルドのスナップショット（初回は None）
        runner: コマンド実行
        workspace: repo のワークスペース
        first_parent_only: --first-parent を付けるか
        git_executable: git 実行ファイル
        max_workers: 2以上ならプロジェクト単位で並列に git log を実行する
        cache: ProjectRecordのインターンキャッシュ
        changes: 計算済みの what_changed の結果（None なら内部で計算する）

    Returns:
        changelog。初回ビルド、または変更がない場合は None
    """
    if changes is None:
        changes = what_changed(current, previous, cache=cache)
    if changes is NO_BASELINE:
        logger.info("No previous state to compare against, skipping changelog")
        return None
    if not changes:
        logger.info("No changes detected")
        return None

    logger.debug(f"Changed projects: {[str(c) for c in changes]}")
    workspace = Path(workspace)

    def collect(change: ProjectRecord) -> list[ChangeLogEntry]:
        return _entries_for_change(
            change, current, runner, workspace, first_parent_only, git_executable
        )

    if max_workers > 1 and len(changes) > 1:
        with ThreadPoolExecutor(max_workers=max_workers) as executor:
            per_project = list(executor.map(collect, changes))
    else:
        per_project = [collect(change) for change in changes]

    entries = tuple(entry for project_entries in per_project for entry in project_entries)
    logger.info(f"Changelog: {len(entries)} entries across {len(changes)} projects")
    return ChangeLogSet(entries=entries)
