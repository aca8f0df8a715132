"""マニフェスト状態管理のコア処理群.

- ProjectRecord（プロジェクト状態）とインターンキャッシュ
- スナップショット（マニフェスト解析）
- 差分検出（変更・追加・削除）
- マニフェスト検証
"""

from .differ import NO_BASELINE, Baseline, PollingChange, classify_changes, polling_change, what_changed
from .exceptions import (
    ChangeLogParseError,
    ChangeLogWriteError,
    HistoryQueryError,
    ManifestValidationError,
)
from .project import PROCESS_CACHE, ProjectRecord, ProjectRecordCache
from .snapshot import (
    MANIFEST_PROJECT_NAME,
    MANIFEST_PROJECT_PATH,
    ManifestParseResult,
    Snapshot,
    parse_manifest,
)
from .validator import validate_manifest

__all__ = [
    "ProjectRecord",
    "ProjectRecordCache",
    "PROCESS_CACHE",
    "Snapshot",
    "ManifestParseResult",
    "parse_manifest",
    "MANIFEST_PROJECT_PATH",
    "MANIFEST_PROJECT_NAME",
    "what_changed",
    "classify_changes",
    "polling_change",
    "Baseline",
    "NO_BASELINE",
    "PollingChange",
    "validate_manifest",
    "ManifestValidationError",
    "HistoryQueryError",
    "ChangeLogWriteError",
    "ChangeLogParseError",
]
