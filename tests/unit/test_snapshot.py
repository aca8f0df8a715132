"""snapshot.py のユニットテスト（マニフェスト解析・等価性・保存形式）."""

import pytest
from conftest import MANIFEST_ONE, MANIFEST_THREE, MANIFEST_TWO

from repo_changelog.core.project import ProjectRecordCache
from repo_changelog.core.snapshot import (
    MANIFEST_PROJECT_NAME,
    MANIFEST_PROJECT_PATH,
    Snapshot,
    parse_manifest,
)

URL = "https://my.gerrit.com/myrepo"


def _snapshot(manifest: str, manifest_revision: str | None = "a", branch: str | None = "master") -> Snapshot:
    return Snapshot.from_manifest(
        manifest, manifest_revision, url=URL, branch=branch, file="default.xml", cache=ProjectRecordCache()
    )


class TestParseManifest:
    """parse_manifest関数のテスト."""

    def test_projects_and_manifest_entry(self) -> None:
        """project要素ごとに1件＋マニフェストリポジトリの合成エントリが入ること."""
        result = parse_manifest(MANIFEST_ONE, "m1", cache=ProjectRecordCache())

        assert result.ok
        projects = result.snapshot.projects
        assert len(projects) == 4
        assert projects["a"].revision == "c9039e9649d133d80073e432816b9b4915776b41"
        manifest_entry = projects[MANIFEST_PROJECT_PATH]
        assert manifest_entry.server_path == MANIFEST_PROJECT_NAME
        assert manifest_entry.revision == "m1"
        assert result.snapshot.manifest_revision == "m1"

    def test_manifest_revision_may_be_none(self) -> None:
        """マニフェストのリビジョンが取得できなくても合成エントリは入ること."""
        snapshot = _snapshot(MANIFEST_ONE, manifest_revision=None)

        assert MANIFEST_PROJECT_PATH in snapshot.projects
        assert snapshot.manifest_revision is None

    def test_path_defaults_to_name(self) -> None:
        """path 属性が無い場合は name をパスとして使うこと."""
        manifest = '<manifest><project name="platform/build" revision="abc"/></manifest>'

        snapshot = _snapshot(manifest)

        record = snapshot.projects["platform/build"]
        assert record.client_path == "platform/build"
        assert record.server_path == "platform/build"

    def test_partial_projects_are_skipped(self) -> None:
        """name/revision が欠けた project は記録されないこと."""
        manifest = (
            "<manifest>"
            '<project name="ok" path="ok" revision="1"/>'
            '<project path="no-name" revision="2"/>'
            '<project name="no-revision" path="no-revision"/>'
            '<project name="blank" path="blank" revision="   "/>'
            "</manifest>"
        )

        snapshot = _snapshot(manifest)

        assert sorted(snapshot.projects) == [MANIFEST_PROJECT_PATH, "ok"]

    def test_attributes_are_trimmed(self) -> None:
        """属性値の前後空白が除去されること."""
        manifest = '<manifest><project name=" a " path="  " revision=" 123 "/></manifest>'

        snapshot = _snapshot(manifest)

        assert snapshot.projects["a"].revision == "123"

    def test_nested_projects_are_found(self) -> None:
        """ルート直下以外の project 要素も対象になること."""
        manifest = (
            '<manifest><remote name="origin" fetch=".."/>'
            '<group><project name="nested" revision="1"/></group></manifest>'
        )

        snapshot = _snapshot(manifest)

        assert "nested" in snapshot.projects

    def test_wrong_root_tag(self) -> None:
        """ルート要素が manifest でない場合は空のスナップショットと診断を返すこと."""
        result = parse_manifest('<notmanifest><project name="a" revision="1"/></notmanifest>', "m1")

        assert not result.ok
        assert result.diagnostics == ("Error - malformed manifest",)
        assert dict(result.snapshot.projects) == {}

    def test_unparseable_manifest(self) -> None:
        """XMLとして解析できない場合も例外にならないこと."""
        result = parse_manifest("<manifest><project", "m1")

        assert not result.ok
        assert "could not parse manifest" in result.diagnostics[0]
        assert dict(result.snapshot.projects) == {}
        assert result.snapshot.manifest == "<manifest><project"

    def test_empty_manifest(self) -> None:
        """空文字列のマニフェストは空のスナップショットになること."""
        result = parse_manifest("", None)

        assert not result.ok
        assert dict(result.snapshot.projects) == {}

    def test_projects_sorted_by_path(self) -> None:
        """projects がパス昇順で並ぶこと."""
        manifest = (
            "<manifest>"
            '<project name="z" revision="1"/>'
            '<project name="b" revision="1"/>'
            '<project name="m" revision="1"/>'
            "</manifest>"
        )

        snapshot = _snapshot(manifest)

        assert list(snapshot.projects) == sorted(snapshot.projects)

    def test_records_are_interned(self) -> None:
        """同じキャッシュを使うと同一プロジェクト状態は同じインスタンスになること."""
        cache = ProjectRecordCache()
        first = Snapshot.from_manifest(MANIFEST_ONE, "a", cache=cache)
        second = Snapshot.from_manifest(MANIFEST_TWO, "a", cache=cache)

        assert first.projects["b"] is second.projects["b"]


class TestSnapshotEquality:
    """Snapshot の等価性テスト."""

    def test_equal_copies(self) -> None:
        assert _snapshot(MANIFEST_ONE) == _snapshot(MANIFEST_ONE)
        assert hash(_snapshot(MANIFEST_ONE)) == hash(_snapshot(MANIFEST_ONE))

    def test_different_projects(self) -> None:
        assert _snapshot(MANIFEST_ONE) != _snapshot(MANIFEST_TWO)
        assert _snapshot(MANIFEST_TWO) != _snapshot(MANIFEST_THREE)

    def test_different_manifest_revision(self) -> None:
        """マニフェストリポジトリのリビジョンが違えば等しくないこと."""
        assert _snapshot(MANIFEST_THREE, "a") != _snapshot(MANIFEST_THREE, "b")

    def test_different_branch(self) -> None:
        assert _snapshot(MANIFEST_ONE, branch="master") != _snapshot(MANIFEST_ONE, branch="stable")
        assert _snapshot(MANIFEST_ONE, branch=None) != _snapshot(MANIFEST_ONE, branch="master")

    def test_url_and_file_are_ignored(self) -> None:
        """url / file / マニフェスト原文は等価性に影響しないこと."""
        cache = ProjectRecordCache()
        one = Snapshot.from_manifest(MANIFEST_ONE, "a", url="u1", branch="master", file="a.xml", cache=cache)
        other = Snapshot.from_manifest(
            MANIFEST_ONE.replace("<manifest>", "<manifest >"),
            "a",
            url="u2",
            branch="master",
            file="b.xml",
            cache=cache,
        )

        assert one == other


class TestSnapshotPersistence:
    """to_dict / from_dict のテスト."""

    def test_round_trip(self) -> None:
        """辞書に変換して戻すと等しいスナップショットになること."""
        cache = ProjectRecordCache()
        snapshot = Snapshot.from_manifest(MANIFEST_TWO, "m1", url=URL, branch="master", file="default.xml", cache=cache)

        restored = Snapshot.from_dict(snapshot.to_dict(), cache=cache)

        assert restored == snapshot
        assert restored.url == URL
        assert restored.file == "default.xml"
        assert restored.manifest == MANIFEST_TWO
        assert restored.projects["a"] is snapshot.projects["a"]

    def test_invalid_data(self) -> None:
        """必須キーが欠けている場合は ValueError になること."""
        with pytest.raises(ValueError, match="Invalid snapshot data"):
            Snapshot.from_dict({"projects": [{"path": "a"}]})

    def test_revision_lookup(self) -> None:
        snapshot = _snapshot(MANIFEST_ONE)

        assert snapshot.revision("b") == "c27d6b02c859b291878db67f256cefac3adb26df"
        assert snapshot.revision("missing") is None
