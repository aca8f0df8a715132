"""スナップショット間の差分検出.

前回ビルドのスナップショットと比較して、変更・追加・削除されたプロジェクトを求める。
"""

from __future__ import annotations

from enum import Enum
from typing import Literal

from loguru import logger

from .project import ProjectRecord, ProjectRecordCache, resolve_cache
from .snapshot import Snapshot


class Baseline(Enum):
    """比較対象（前回スナップショット）の状態."""

    MISSING = "missing"


# 比較不能（初回ビルド）を表すセンチネル。空リスト（変更なし）とは区別する。
NO_BASELINE = Baseline.MISSING


class PollingChange(Enum):
    """ポーリング時の判定結果."""

    NONE = "none"
    SIGNIFICANT = "significant"
    INCOMPARABLE = "incomparable"
    BUILD_NOW = "build_now"


def what_changed(
    current: Snapshot,
    previous: Snapshot | None,
    cache: ProjectRecordCache | None = None,
) -> list[ProjectRecord] | Literal[Baseline.MISSING]:
    """前回スナップショットから変化したプロジェクトを求める.

    - 新規プロジェクト: 現在のパス/サーバーパスで revision=None の合成レコード
    - リビジョン変更: **前回** のレコード（changelogで old..new の範囲を作るため）
    - 削除されたプロジェクト: 前回のレコードをそのまま末尾に追加

    Args:
        current: 現在のスナップショット
        previous: 前回のスナップショット（初回ビルドでは None）
        cache: ProjectRecordのインターンキャッシュ

    Returns:
        変化したプロジェクトのリスト（変更・追加をパス昇順、続けて削除をパス昇順）。
        previous が None の場合は NO_BASELINE
    """
    if previous is None:
        # 全プロジェクトが新規扱いになり、changelogが巨大になるだけなので比較しない
        return NO_BASELINE

    cache = resolve_cache(cache)
    changes: list[ProjectRecord] = []
    previous_copy = dict(previous.projects)

    for path, record in current.projects.items():
        old = previous_copy.pop(path, None)
        if old is None:
            changes.append(cache.get(record.client_path, record.server_path, None))
        elif old != record:
            changes.append(old)

    changes.extend(previous_copy[path] for path in sorted(previous_copy))
    return changes


def classify_changes(
    current: Snapshot, changes: list[ProjectRecord]
) -> dict[str, list[ProjectRecord]]:
    """what_changed の結果を変更・追加・削除に分類する.

    Args:
        current: 現在のスナップショット
        changes: what_changed の結果

    Returns:
        {"changed": [...], "added": [...], "removed": [...]}
    """
    changed: list[ProjectRecord] = []
    added: list[ProjectRecord] = []
    removed: list[ProjectRecord] = []

    for record in changes:
        if record.revision is None:
            added.append(record)
        elif current.revision(record.client_path) is None:
            removed.append(record)
        else:
            changed.append(record)

    logger.info(
        f"Revision comparison: {len(changed)} changed, {len(added)} added, "
        f"{len(removed)} removed"
    )

    return {"changed": changed, "added": added, "removed": removed}


def polling_change(current: Snapshot | None, baseline: Snapshot | None) -> PollingChange:
    """ポーリング用に現在状態と基準状態を比較する.

    Args:
        current: 現在のスナップショット（取得に失敗した場合は None）
        baseline: 基準となるスナップショット（初回ビルドなどで None）

    Returns:
        PollingChange
    """
    if baseline is None:
        return PollingChange.BUILD_NOW
    if current is None:
        return PollingChange.INCOMPARABLE
    if current == baseline:
        return PollingChange.NONE
    return PollingChange.SIGNIFICANT
