"""Repo changelog exceptions.

カスタム例外クラスを定義します。
"""

from __future__ import annotations

from collections.abc import Sequence
from pathlib import Path


class ManifestValidationError(Exception):
    """マニフェストが安全でない、または検証できない場合の例外.

    remote要素のfetch属性がローカルディレクトリ（file://）を参照している場合、
    チェックアウトを中止するために送出します。

    Attributes:
        manifest_repository_url: マニフェストリポジトリのURL
    """

    def __init__(self, message: str, manifest_repository_url: str | None = None) -> None:
        self.manifest_repository_url = manifest_repository_url
        super().__init__(message)


class HistoryQueryError(Exception):
    """プロジェクト単位の履歴取得（git log）失敗を表す例外.

    changelog生成中はログに記録してそのプロジェクトだけをスキップします。

    Attributes:
        client_path: 対象プロジェクトのクライアントパス
        command: 実行したコマンド
        returncode: 終了コード（起動できなかった場合は None）
        stderr: 標準エラー出力
    """

    def __init__(
        self,
        client_path: str,
        command: Sequence[str],
        returncode: int | None,
        stderr: str = "",
    ) -> None:
        """例外初期化.

        Args:
            client_path: 対象プロジェクトのクライアントパス
            command: 実行したコマンド
            returncode: 終了コード
            stderr: 標準エラー出力
        """
        self.client_path = client_path
        self.command = list(command)
        self.returncode = returncode
        self.stderr = stderr
        detail = stderr.strip() or "no output"
        if returncode is None:
            message = f"History query could not be started for {client_path}: {detail}"
        else:
            message = f"History query failed for {client_path} (exit={returncode}): {detail}"
        super().__init__(message)


class ChangeLogWriteError(OSError):
    """changelogファイルを書き込めなかった場合の例外.

    ビルドメタデータの欠落を意味するため、呼び出し側のビルドステップを失敗させます。
    """

    def __init__(self, path: Path, reason: str) -> None:
        self.path = path
        super().__init__(f"Failed to write changelog: {path} ({reason})")


class ChangeLogParseError(ValueError):
    """保存済みchangelogファイルを読み込めなかった場合の例外."""

    def __init__(self, path: Path, reason: str) -> None:
        self.path = path
        super().__init__(f"Invalid changelog document: {path} ({reason})")
