"""repo マニフェストのビルド間changelog生成.

- マニフェスト → スナップショット
- スナップショット差分 → 変化したプロジェクト
- プロジェクトごとの git log → ChangeLogEntry
- changelog の XML 保存 / CSV レポート
"""

from .changelog import generate_changelog, query_project_history
from .config import ChangeLogConfig, load_config
from .core import (
    NO_BASELINE,
    PollingChange,
    ProjectRecord,
    ProjectRecordCache,
    Snapshot,
    parse_manifest,
    polling_change,
    validate_manifest,
    what_changed,
)
from .models import ChangeLogEntry, ChangeLogSet, EditKind, FileEdit
from .serialization import read_changelog, save_changelog, write_changelog

__version__ = "0.1.0"

__all__ = [
    "ProjectRecord",
    "ProjectRecordCache",
    "Snapshot",
    "parse_manifest",
    "what_changed",
    "polling_change",
    "PollingChange",
    "NO_BASELINE",
    "validate_manifest",
    "ChangeLogEntry",
    "ChangeLogSet",
    "EditKind",
    "FileEdit",
    "generate_changelog",
    "query_project_history",
    "write_changelog",
    "read_changelog",
    "save_changelog",
    "ChangeLogConfig",
    "load_config",
]
