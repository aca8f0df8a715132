"""プロジェクト状態（ProjectRecord）とインターンキャッシュ.

マニフェストは多数のプロジェクトを列挙し、各ビルドはその状態（パス・サーバーパス・リビジョン）の
集合を保持する。長いビルド履歴では同一の状態が何度も現れるため、同じ三つ組は
1つのインスタンスを共有する。
"""

from __future__ import annotations

import threading
from dataclasses import dataclass

from loguru import logger


@dataclass(frozen=True)
class ProjectRecord:
    """1プロジェクトの状態.

    Attributes:
        client_path: チェックアウト先の相対パス
        server_path: サーバー側のプロジェクト名（client_pathと同じ場合もある）
        revision: リビジョン（SHA-1）。追加/削除を表す合成レコードでは None
    """

    client_path: str
    server_path: str
    revision: str | None

    @property
    def is_placeholder(self) -> bool:
        """リビジョンを持たない合成レコードなら True."""
        return self.revision is None

    def __str__(self) -> str:
        return f"{self.client_path}@{self.revision}"


class ProjectRecordCache:
    """ProjectRecordのインターンキャッシュ.

    並列ビルドから同時に参照されるため、参照と登録はロックで直列化する。
    エントリは破棄しない（プロセス寿命の間、単調増加）。
    """

    def __init__(self) -> None:
        self._records: dict[tuple[str, str, str | None], ProjectRecord] = {}
        self._lock = threading.Lock()

    def get(self, client_path: str, server_path: str, revision: str | None) -> ProjectRecord:
        """三つ組に対応する共有インスタンスを返す（なければ作成）.

        Args:
            client_path: クライアントパス
            server_path: サーバーパス
            revision: リビジョン（None可）

        Returns:
            インターン済みのProjectRecord
        """
        key = (client_path, server_path, revision)
        with self._lock:
            record = self._records.get(key)
            if record is None:
                record = ProjectRecord(client_path, server_path, revision)
                self._records[key] = record
                logger.trace(
                    f"path: {client_path} serverPath: {server_path} revision: {revision}"
                )
            return record

    def intern(self, record: ProjectRecord) -> ProjectRecord:
        """既存のレコードを正規インスタンスに置き換える（復元時に使用）."""
        key = (record.client_path, record.server_path, record.revision)
        with self._lock:
            return self._records.setdefault(key, record)

    def __len__(self) -> int:
        with self._lock:
            return len(self._records)

    def __contains__(self, record: object) -> bool:
        if not isinstance(record, ProjectRecord):
            return False
        with self._lock:
            return (record.client_path, record.server_path, record.revision) in self._records


# 呼び出し側が cache を渡さない場合に使うプロセス共有キャッシュ
PROCESS_CACHE = ProjectRecordCache()


def resolve_cache(cache: ProjectRecordCache | None) -> ProjectRecordCache:
    return PROCESS_CACHE if cache is None else cache
