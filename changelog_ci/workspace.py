"""同期済み repo ワークスペースからの入力取得.

repo init / repo sync は外部のジョブが実行する前提で、ここでは
静的マニフェストとマニフェストリポジトリのリビジョンだけを読み出す。
"""

from __future__ import annotations

from pathlib import Path

from loguru import logger

from repo_changelog.core.snapshot import MANIFEST_PROJECT_PATH
from repo_changelog.history.runner import CommandRunner


def read_static_manifest(
    workspace: Path,
    runner: CommandRunner,
    repo_executable: str = "repo",
) -> str:
    """`repo manifest -o - -r` で全プロジェクトのリビジョン固定マニフェストを取得.

    Args:
        workspace: repo のワークスペース
        runner: コマンド実行
        repo_executable: repo 実行ファイル

    Returns:
        マニフェストXML（失敗時は取得できた範囲の出力。解析側で空スナップショットになる）
    """
    command = [repo_executable, "manifest", "-o", "-", "-r"]
    result = runner.execute(command, workspace)
    if result.returncode != 0:
        logger.warning(
            f"repo manifest exited with {result.returncode}: "
            f"{result.stderr.decode('utf-8', errors='replace').strip()}"
        )
    return result.stdout.decode("utf-8", errors="replace")


def read_manifest_revision(
    workspace: Path,
    runner: CommandRunner,
    git_executable: str = "git",
) -> str | None:
    """マニフェストリポジトリ（.repo/manifests）のHEADリビジョンを取得.

    Args:
        workspace: repo のワークスペース
        runner: コマンド実行
        git_executable: git 実行ファイル

    Returns:
        commit hash（取得できなければ None）
    """
    manifest_dir = workspace / MANIFEST_PROJECT_PATH
    try:
        result = runner.execute([git_executable, "rev-parse", "HEAD"], manifest_dir)
    except OSError as e:
        logger.warning(f"Could not read manifest revision in {manifest_dir}: {e}")
        return None

    revision = result.stdout.decode("utf-8", errors="replace").strip()
    if result.returncode != 0 or not revision:
        logger.warning(f"Could not read manifest revision in {manifest_dir}")
        return None

    logger.info(f"Manifest repository at commit {revision[:8]}")
    return revision
