"""ビルド記録（snapshot.json / changelog.xml）の保存と検索.

ディレクトリ構成:
    <history_dir>/<build_id>/snapshot.json
    <history_dir>/<build_id>/changelog.xml
"""

from __future__ import annotations

import json
import re
from dataclasses import dataclass
from pathlib import Path

from loguru import logger

from repo_changelog.core.project import ProjectRecordCache
from repo_changelog.core.snapshot import Snapshot

SNAPSHOT_FILENAME = "snapshot.json"
CHANGELOG_FILENAME = "changelog.xml"


@dataclass(frozen=True)
class StaticManifest:
    """表示用の静的マニフェスト情報."""

    build_id: str
    file: str | None
    branch: str | None
    url: str | None
    manifest: str


def _build_sort_key(build_id: str) -> tuple[tuple[str | int, ...], str]:
    # 数字部分は数値として比較する（"build-9" < "build-10"、数字だけのIDが先頭）
    parts = re.split(r"(\d+)", build_id)
    natural = tuple(int(part) if i % 2 else part for i, part in enumerate(parts))
    return (natural, build_id)


def build_dir(history_dir: Path, build_id: str) -> Path:
    return history_dir / build_id


def list_build_ids(history_dir: Path) -> list[str]:
    """スナップショットを持つビルドIDを古い順に返す."""
    if not history_dir.exists():
        return []
    ids = [
        p.name
        for p in history_dir.iterdir()
        if p.is_dir() and (p / SNAPSHOT_FILENAME).exists()
    ]
    return sorted(ids, key=_build_sort_key)


def write_snapshot(snapshot: Snapshot, output_path: Path) -> None:
    """スナップショットをJSONファイルとして保存.

    Args:
        snapshot: 保存するスナップショット
        output_path: 出力JSONファイルパス
    """
    output_path.parent.mkdir(parents=True, exist_ok=True)

    with open(output_path, "w", encoding="utf-8") as f:
        json.dump(snapshot.to_dict(), f, indent=2, ensure_ascii=False)

    logger.info(f"Snapshot written to {output_path}")


def load_snapshot(snapshot_path: Path, cache: ProjectRecordCache | None = None) -> Snapshot | None:
    """保存済みスナップショットを読み込む.

    Args:
        snapshot_path: スナップショットJSONファイルパス
        cache: ProjectRecordのインターンキャッシュ

    Returns:
        スナップショット。ファイルが無い、または壊れている場合は None
    """
    if not snapshot_path.exists():
        logger.warning(f"Snapshot not found: {snapshot_path}")
        return None

    try:
        with open(snapshot_path, encoding="utf-8") as f:
            data = json.load(f)
        snapshot = Snapshot.from_dict(data, cache=cache)
    except (json.JSONDecodeError, ValueError, AttributeError) as e:
        logger.error(f"Failed to load snapshot {snapshot_path}: {e}")
        return None

    logger.debug(f"Loaded snapshot from {snapshot_path}")
    return snapshot


def write_build_record(history_dir: Path, build_id: str, snapshot: Snapshot) -> Path:
    """ビルドのスナップショットを保存してビルドディレクトリを返す."""
    record_dir = build_dir(history_dir, build_id)
    write_snapshot(snapshot, record_dir / SNAPSHOT_FILENAME)
    return record_dir


def find_last_snapshot(
    history_dir: Path,
    branch: str | None,
    before: str | None = None,
    cache: ProjectRecordCache | None = None,
) -> Snapshot | None:
    """同じブランチで記録された直近のスナップショットを探す.

    新しいビルドから順にたどり、ブランチが一致する最初のスナップショットを返す。

    Args:
        history_dir: ビルド記録のベースディレクトリ
        branch: マニフェストのブランチ
        before: このビルドIDより前のビルドだけを対象にする（None なら全件）
        cache: ProjectRecordのインターンキャッシュ

    Returns:
        直近のスナップショット（見つからなければ None）
    """
    build_ids = list_build_ids(history_dir)
    if before is not None:
        limit = _build_sort_key(before)
        build_ids = [b for b in build_ids if _build_sort_key(b) < limit]

    for build_id in reversed(build_ids):
        snapshot = load_snapshot(build_dir(history_dir, build_id) / SNAPSHOT_FILENAME, cache=cache)
        if snapshot is not None and snapshot.branch == branch:
            logger.info(f"Using build {build_id} as the previous state")
            return snapshot

    logger.info(f"No previous build found for branch {branch!r}")
    return None


def list_manifests(history_dir: Path) -> list[StaticManifest]:
    """保存済みの全ビルドの静的マニフェストを古い順に返す."""
    manifests = []
    for build_id in list_build_ids(history_dir):
        snapshot = load_snapshot(build_dir(history_dir, build_id) / SNAPSHOT_FILENAME)
        if snapshot is None:
            continue
        manifests.append(
            StaticManifest(
                build_id=build_id,
                file=snapshot.file,
                branch=snapshot.branch,
                url=snapshot.url,
                manifest=snapshot.manifest,
            )
        )
    return manifests
