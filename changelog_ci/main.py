"""CI orchestrator: snapshot the synced manifest, diff against the previous build, and write the changelog."""

from __future__ import annotations

import argparse
import sys
from dataclasses import replace
from pathlib import Path

from loguru import logger

from changelog_ci.history_store import (
    CHANGELOG_FILENAME,
    find_last_snapshot,
    write_build_record,
)
from changelog_ci.workspace import read_manifest_revision, read_static_manifest
from repo_changelog.changelog import generate_changelog
from repo_changelog.config import ChangeLogConfig, load_config
from repo_changelog.core.differ import NO_BASELINE, classify_changes, polling_change, what_changed
from repo_changelog.core.exceptions import ChangeLogWriteError, ManifestValidationError
from repo_changelog.core.project import ProjectRecordCache
from repo_changelog.core.snapshot import parse_manifest
from repo_changelog.core.validator import validate_manifest
from repo_changelog.environment import build_environment, write_env_file
from repo_changelog.history.runner import CommandRunner, SubprocessRunner
from repo_changelog.report import export_changelog_report
from repo_changelog.serialization import write_changelog


def run_build(
    workspace: Path,
    history_dir: Path,
    build_id: str,
    config: ChangeLogConfig,
    *,
    manifest_xml: Path | None = None,
    manifest_revision: str | None = None,
    report_dir: Path | None = None,
    env_file: Path | None = None,
    runner: CommandRunner | None = None,
    cache: ProjectRecordCache | None = None,
) -> dict:
    """1ビルド分のスナップショット記録とchangelog生成を行う.

    Args:
        workspace: 同期済み repo ワークスペース
        history_dir: ビルド記録のベースディレクトリ
        build_id: 今回のビルドID
        config: 設定
        manifest_xml: 静的マニフェストXMLのファイル（None なら repo manifest で取得）
        manifest_revision: マニフェストリポジトリのリビジョン（None なら git rev-parse で取得）
        report_dir: CSVレポートの出力先（None なら出力しない）
        env_file: ビルド環境変数ファイルの出力先（None なら出力しない）
        runner: コマンド実行
        cache: ProjectRecordのインターンキャッシュ

    Returns:
        ビルド結果の概要辞書

    Raises:
        ManifestValidationError: マニフェストがローカルディレクトリを参照している場合
        ChangeLogWriteError: changelogを書き込めなかった場合
    """
    workspace = Path(workspace)
    history_dir = Path(history_dir)
    runner = runner or SubprocessRunner(timeout=config.timeout)

    logger.info(f"=== Build start: {build_id} ===")

    if manifest_xml is not None:
        manifest = Path(manifest_xml).read_text(encoding="utf-8")
    else:
        manifest = read_static_manifest(workspace, runner, config.repo_executable)

    if manifest_revision is None:
        manifest_revision = read_manifest_revision(workspace, runner, config.git_executable)

    validate_manifest(manifest, config.manifest_url, config.allow_local_checkout)

    parsed = parse_manifest(
        manifest,
        manifest_revision,
        url=config.manifest_url,
        branch=config.manifest_branch,
        file=config.manifest_file,
        cache=cache,
    )
    current = parsed.snapshot
    logger.info(f"Snapshot: {len(current.projects)} projects")

    previous = find_last_snapshot(history_dir, current.branch, before=build_id, cache=cache)
    polling = polling_change(current, previous)
    logger.info(f"Polling result: {polling.value}")

    changes = what_changed(current, previous, cache=cache)
    counts: dict[str, int] = {}
    if changes is not NO_BASELINE:
        counts = {kind: len(records) for kind, records in classify_changes(current, changes).items()}

    changelog = generate_changelog(
        current,
        previous,
        runner,
        workspace,
        first_parent_only=config.first_parent_only,
        git_executable=config.git_executable,
        max_workers=config.max_workers,
        cache=cache,
        changes=changes,
    )

    record_dir = write_build_record(history_dir, build_id, current)
    changelog_path = write_changelog(changelog, record_dir / CHANGELOG_FILENAME)

    report_paths: dict[str, Path | None] = {}
    if report_dir is not None and changelog is not None:
        report_paths = export_changelog_report(changelog, report_dir)

    if env_file is not None:
        write_env_file(build_environment(current), env_file)

    logger.info(f"=== Build done: {build_id} ===")
    return {
        "build_id": build_id,
        "polling": polling.value,
        "projects": len(current.projects),
        "changelog": changelog_path,
        "changes": counts,
        "entries": 0 if changelog is None else len(changelog),
        "changed_projects": [] if changelog is None else list(changelog.by_project()),
        "files": [] if changelog is None else changelog.affected_paths(),
        "reports": report_paths,
        "diagnostics": list(parsed.diagnostics),
    }


def main() -> None:
    p = argparse.ArgumentParser(description="Repo manifest changelog generator")
    p.add_argument("--workspace", type=Path, default=Path.cwd(), help="synced repo workspace")
    p.add_argument("--history-dir", type=Path, required=True, help="directory of build records")
    p.add_argument("--build-id", required=True, help="identifier of this build")
    p.add_argument("--config", type=Path, default=None, help="changelog.yml path")
    p.add_argument(
        "--manifest-xml",
        type=Path,
        default=None,
        help="static manifest file (default: run 'repo manifest -o - -r')",
    )
    p.add_argument(
        "--manifest-revision",
        default=None,
        help="manifest repository revision (default: git rev-parse HEAD in .repo/manifests)",
    )
    p.add_argument("--branch", default=None, help="manifest branch (overrides config)")
    p.add_argument("--manifest-url", default=None, help="manifest repository URL (overrides config)")
    p.add_argument("--manifest-file", default=None, help="manifest file name (overrides config)")
    p.add_argument(
        "--show-all-changes",
        action="store_true",
        help="include commits from merged branches (omit --first-parent)",
    )
    p.add_argument("--report-dir", type=Path, default=None, help="output directory for CSV reports")
    p.add_argument("--env-file", type=Path, default=None, help="write REPO_MANIFEST_* variables here")
    p.add_argument("--log-level", default="INFO", help="loguru log level")

    args = p.parse_args()

    logger.remove()
    logger.add(sys.stderr, level=args.log_level.upper())

    config = load_config(args.config) if args.config else ChangeLogConfig().with_environment()
    overrides = {
        "manifest_branch": args.branch,
        "manifest_url": args.manifest_url,
        "manifest_file": args.manifest_file,
    }
    config = replace(config, **{k: v for k, v in overrides.items() if v is not None})
    if args.show_all_changes:
        config = replace(config, first_parent_only=False)

    try:
        summary = run_build(
            workspace=args.workspace,
            history_dir=args.history_dir,
            build_id=args.build_id,
            config=config,
            manifest_xml=args.manifest_xml,
            manifest_revision=args.manifest_revision,
            report_dir=args.report_dir,
            env_file=args.env_file,
        )
    except (ManifestValidationError, ChangeLogWriteError) as e:
        logger.error(f"Build step failed: {e}")
        raise SystemExit(1) from e

    print(f"Changelog entries: {summary['entries']} ({summary['polling']})")


if __name__ == "__main__":
    main()
