"""マニフェストのスナップショット（ビルド時点のプロジェクト・リビジョン集合）.

`repo manifest -o - -r` が出力する静的マニフェストを解析し、クライアントパス順に並んだ
比較可能なスナップショットを作る。マニフェストリポジトリ自身のリビジョンは
センチネルパス（.repo/manifests）の合成プロジェクトとして保持する。

解析エラーは例外にせず、空のスナップショットと診断メッセージとして返す
（1つの壊れたマニフェストでビルドの記録処理を止めないため）。
"""

from __future__ import annotations

import xml.etree.ElementTree as ET
from collections.abc import Mapping
from dataclasses import dataclass, field
from types import MappingProxyType
from typing import Any

from loguru import logger

from .project import ProjectRecord, ProjectRecordCache, resolve_cache

MANIFEST_ROOT_TAG = "manifest"
PROJECT_TAG = "project"

# マニフェストリポジトリ自身を表す合成プロジェクト
MANIFEST_PROJECT_PATH = ".repo/manifests"
MANIFEST_PROJECT_NAME = "manifests"


def _fix_empty_and_trim(value: str | None) -> str | None:
    if value is None:
        return None
    value = value.strip()
    return value or None


@dataclass(frozen=True, eq=False)
class Snapshot:
    """1ビルド時点のリポジトリ状態.

    等価性は branch と projects のみで判定する（url/file/manifest は説明用の情報）。

    Attributes:
        manifest: 静的マニフェストXML（原文のまま保持）
        projects: クライアントパス -> ProjectRecord（パス昇順、読み取り専用）
        branch: マニフェストリポジトリのブランチ
        url: マニフェストリポジトリのURL
        file: マニフェストファイル名
    """

    manifest: str
    projects: Mapping[str, ProjectRecord] = field(default_factory=dict)
    branch: str | None = None
    url: str | None = None
    file: str | None = None

    def __post_init__(self) -> None:
        ordered = {path: self.projects[path] for path in sorted(self.projects)}
        object.__setattr__(self, "projects", MappingProxyType(ordered))

    @classmethod
    def from_manifest(
        cls,
        manifest: str,
        manifest_revision: str | None,
        *,
        url: str | None = None,
        branch: str | None = None,
        file: str | None = None,
        cache: ProjectRecordCache | None = None,
    ) -> Snapshot:
        """マニフェストを解析してスナップショットだけを返す（診断はログのみ）."""
        return parse_manifest(
            manifest, manifest_revision, url=url, branch=branch, file=file, cache=cache
        ).snapshot

    def revision(self, path: str) -> str | None:
        """指定パスのリポジトリのリビジョンを返す（存在しなければ None）."""
        project = self.projects.get(path)
        return None if project is None else project.revision

    @property
    def manifest_revision(self) -> str | None:
        return self.revision(MANIFEST_PROJECT_PATH)

    def __eq__(self, other: object) -> bool:
        if not isinstance(other, Snapshot):
            return NotImplemented
        return self.branch == other.branch and dict(self.projects) == dict(other.projects)

    def __hash__(self) -> int:
        return hash((self.branch, frozenset(self.projects.items())))

    def to_dict(self) -> dict[str, Any]:
        """JSON保存用の辞書に変換."""
        return {
            "branch": self.branch,
            "url": self.url,
            "file": self.file,
            "manifest": self.manifest,
            "projects": [
                {
                    "path": record.client_path,
                    "name": record.server_path,
                    "revision": record.revision,
                }
                for record in self.projects.values()
            ],
        }

    @classmethod
    def from_dict(cls, data: Mapping[str, Any], cache: ProjectRecordCache | None = None) -> Snapshot:
        """to_dict() の出力からスナップショットを復元する.

        Args:
            data: to_dict() 形式の辞書
            cache: ProjectRecordのインターンキャッシュ

        Returns:
            復元したスナップショット

        Raises:
            ValueError: 必須キーが欠けている場合
        """
        cache = resolve_cache(cache)
        try:
            projects = {
                item["path"]: cache.get(item["path"], item["name"], item.get("revision"))
                for item in data.get("projects", [])
            }
        except (KeyError, TypeError) as e:
            raise ValueError(f"Invalid snapshot data: {e}") from e

        return cls(
            manifest=data.get("manifest") or "",
            projects=projects,
            branch=data.get("branch"),
            url=data.get("url"),
            file=data.get("file"),
        )


@dataclass(frozen=True)
class ManifestParseResult:
    """parse_manifest の結果.

    Attributes:
        snapshot: 解析結果（失敗時はプロジェクトが空）
        diagnostics: 解析中に発生した問題のメッセージ
    """

    snapshot: Snapshot
    diagnostics: tuple[str, ...] = ()

    @property
    def ok(self) -> bool:
        return not self.diagnostics


def parse_manifest(
    manifest: str,
    manifest_revision: str | None,
    *,
    url: str | None = None,
    branch: str | None = None,
    file: str | None = None,
    cache: ProjectRecordCache | None = None,
) -> ManifestParseResult:
    """静的マニフェストXMLを解析してスナップショットを作る.

    path / name / revision が揃った project 要素のみを記録する。path が省略されている場合は
    name を使う（`repo manifest -o` は path が name と同じなら出力しない）。

    Args:
        manifest: 静的マニフェストXML文字列
        manifest_revision: マニフェストリポジトリ自身のリビジョン（取得失敗時は None）
        url: マニフェストリポジトリのURL
        branch: マニフェストリポジトリのブランチ
        file: マニフェストファイル名
        cache: ProjectRecordのインターンキャッシュ

    Returns:
        スナップショットと診断メッセージ
    """
    cache = resolve_cache(cache)
    diagnostics: list[str] = []
    projects: dict[str, ProjectRecord] = {}

    try:
        root = ET.fromstring(manifest)
    except (ET.ParseError, ValueError) as e:
        diagnostics.append(f"Error - could not parse manifest: {e}")
        root = None

    if root is not None and root.tag != MANIFEST_ROOT_TAG:
        diagnostics.append("Error - malformed manifest")
        root = None

    if root is not None:
        for element in root.iter(PROJECT_TAG):
            path = _fix_empty_and_trim(element.get("path"))
            server_path = _fix_empty_and_trim(element.get("name"))
            revision = _fix_empty_and_trim(element.get("revision"))
            if path is None:
                path = server_path
            if path is None or server_path is None or revision is None:
                continue
            projects[path] = cache.get(path, server_path, revision)
            logger.debug(f"Added a project: {path} at revision: {revision}")

        projects[MANIFEST_PROJECT_PATH] = cache.get(
            MANIFEST_PROJECT_PATH, MANIFEST_PROJECT_NAME, manifest_revision
        )

    for message in diagnostics:
        logger.warning(message)

    snapshot = Snapshot(manifest=manifest, projects=projects, branch=branch, url=url, file=file)
    return ManifestParseResult(snapshot=snapshot, diagnostics=tuple(diagnostics))
