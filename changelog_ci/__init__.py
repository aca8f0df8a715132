"""changelog_ci: CIジョブ統合レイヤ.

同期済みワークスペースからの入力取得、ビルド記録の保存・検索、オーケストレーションを提供する。
"""

from changelog_ci.history_store import (
    StaticManifest,
    find_last_snapshot,
    list_build_ids,
    list_manifests,
    load_snapshot,
    write_build_record,
    write_snapshot,
)
from changelog_ci.workspace import read_manifest_revision, read_static_manifest

__version__ = "0.1.0"

__all__ = [
    # history_store
    "StaticManifest",
    "write_snapshot",
    "load_snapshot",
    "write_build_record",
    "find_last_snapshot",
    "list_build_ids",
    "list_manifests",
    # workspace
    "read_static_manifest",
    "read_manifest_revision",
]
