"""serialization.py のユニットテスト（changelog XMLの保存と読み込み）."""

from pathlib import Path

import pytest
from conftest import MANIFEST_ONE, MANIFEST_TWO, FakeRunner, format_commit

from repo_changelog.core.exceptions import ChangeLogParseError, ChangeLogWriteError
from repo_changelog.core.project import ProjectRecordCache
from repo_changelog.core.snapshot import Snapshot
from repo_changelog.history.query import parse_history_output
from repo_changelog.history.runner import CommandResult
from repo_changelog.models import (
    PROJECT_ADDED_MESSAGE,
    ChangeLogEntry,
    ChangeLogSet,
    EditKind,
    FileEdit,
)
from repo_changelog.serialization import (
    XML_HEADER,
    dumps_changelog,
    read_changelog,
    save_changelog,
    write_changelog,
)


@pytest.fixture
def changelog() -> ChangeLogSet:
    commit = ChangeLogEntry(
        client_path="platform/build",
        server_path="platform/build-server",
        revision="9297f42afa37eaabf1328b44f9f583fc12638c58",
        author_name="Alice",
        author_email="alice@example.com",
        author_date="Mon, 6 Jan 2025 10:00:00 +0900",
        committer_name="Bob",
        committer_email="bob@example.com",
        committer_date="Mon, 6 Jan 2025 11:00:00 +0900",
        commit_text="Fix <build> & \"quotes\"\n\nBody line.",
        file_edits=(
            FileEdit("Makefile", EditKind.MODIFIED),
            FileEdit("docs/日本語.md", EditKind.ADDED),
        ),
    )
    marker = ChangeLogEntry.marker("d", "d", PROJECT_ADDED_MESSAGE)
    return ChangeLogSet(entries=(commit, marker))


class TestWriteChangelog:
    """write_changelog関数のテスト."""

    def test_write_and_read(self, tmp_path: Path, changelog: ChangeLogSet) -> None:
        """書き込んだ内容を読み戻すと同じエントリになること."""
        path = tmp_path / "builds" / "1" / "changelog.xml"

        written = write_changelog(changelog, path)

        assert written == path
        assert path.read_text(encoding="utf-8").startswith(XML_HEADER)
        restored = read_changelog(path)
        assert restored.entries == changelog.entries
        assert not (path.parent / ".changelog.xml.tmp").exists()

    def test_marker_omits_missing_fields(self, tmp_path: Path, changelog: ChangeLogSet) -> None:
        """None のフィールドは要素として出力されないこと."""
        marker_only = ChangeLogSet(entries=(changelog.entries[1],))

        text = dumps_changelog(marker_only)

        assert "<revision" not in text
        assert "<authorName" not in text
        assert PROJECT_ADDED_MESSAGE in text
        restored = read_changelog(write_changelog(marker_only, tmp_path / "c.xml"))
        assert restored.entries[0].revision is None
        assert restored.entries[0].is_marker

    def test_nothing_to_write(self, tmp_path: Path) -> None:
        """None や空のchangelogではファイルを作らないこと."""
        path = tmp_path / "changelog.xml"

        assert write_changelog(None, path) is None
        assert write_changelog(ChangeLogSet(), path) is None
        assert not path.exists()

    def test_overwrite(self, tmp_path: Path, changelog: ChangeLogSet) -> None:
        path = tmp_path / "changelog.xml"
        path.write_text("old", encoding="utf-8")

        write_changelog(changelog, path)

        assert len(read_changelog(path)) == 2

    def test_write_failure(self, tmp_path: Path, changelog: ChangeLogSet) -> None:
        """書き込めない場合は ChangeLogWriteError になること."""
        blocker = tmp_path / "not_a_dir"
        blocker.write_text("x", encoding="utf-8")

        with pytest.raises(ChangeLogWriteError) as exc_info:
            write_changelog(changelog, blocker / "changelog.xml")

        assert isinstance(exc_info.value, OSError)
        assert "Failed to write changelog" in str(exc_info.value)

    def test_control_characters_round_trip(self, tmp_path: Path) -> None:
        """XMLで表現できない制御文字を含むコミットも読み戻せること."""
        output = format_commit(
            "abc",
            "Colorize \x1b[31mred\x1b[0m output",
            body="form\x0cfeed and nul\x00\n",
            raw_lines=[":100644 100644 aaaaaaa bbbbbbb M\tbin/\x07bell"],
        )
        entries = parse_history_output(output, "a", "a")
        changelog = ChangeLogSet(entries=tuple(entries))

        path = write_changelog(changelog, tmp_path / "c.xml")

        restored = read_changelog(path)
        assert restored.entries == changelog.entries
        assert restored.entries[0].commit_text == "Colorize \x1b[31mred\x1b[0m output\nform\x0cfeed and nul\x00"
        assert restored.entries[0].affected_paths == ["bin/\x07bell"]
        text = path.read_text(encoding="utf-8")
        assert "\x1b" not in text
        assert 'encoding="base64"' in text
        assert 'pathEncoding="base64"' in text

    def test_carriage_return_round_trip(self, tmp_path: Path) -> None:
        """\\r を含むコミットメッセージが改行の正規化で変わらないこと."""
        entry = ChangeLogEntry(
            client_path="a",
            server_path="a",
            revision="1",
            commit_text="Windows subject\nline1\r\nline2",
        )

        path = write_changelog(ChangeLogSet(entries=(entry,)), tmp_path / "c.xml")

        assert read_changelog(path).entries[0].commit_text == "Windows subject\nline1\r\nline2"

    def test_plain_text_is_not_encoded(self, changelog: ChangeLogSet) -> None:
        """改行や日本語などの通常の文字はそのまま書かれること."""
        text = dumps_changelog(changelog)

        assert "encoding=\"base64\"" not in text
        assert "docs/日本語.md" in text


class TestReadChangelog:
    """read_changelog関数のテスト."""

    def test_missing_file(self, tmp_path: Path) -> None:
        with pytest.raises(ChangeLogParseError):
            read_changelog(tmp_path / "missing.xml")

    def test_invalid_xml(self, tmp_path: Path) -> None:
        path = tmp_path / "changelog.xml"
        path.write_text("<changelog><entry>", encoding="utf-8")

        with pytest.raises(ChangeLogParseError, match="Invalid changelog document"):
            read_changelog(path)

    def test_wrong_root(self, tmp_path: Path) -> None:
        path = tmp_path / "changelog.xml"
        path.write_text("<log/>", encoding="utf-8")

        with pytest.raises(ChangeLogParseError, match="unexpected root element"):
            read_changelog(path)

    def test_entry_without_path(self, tmp_path: Path) -> None:
        path = tmp_path / "changelog.xml"
        path.write_text("<changelog><entry><serverPath>a</serverPath></entry></changelog>", encoding="utf-8")

        with pytest.raises(ChangeLogParseError):
            read_changelog(path)

    def test_unknown_file_kind(self, tmp_path: Path) -> None:
        """未知の kind は UNKNOWN として読み込まれること."""
        path = tmp_path / "changelog.xml"
        path.write_text(
            "<changelog><entry><path>a</path><serverPath>a</serverPath>"
            '<files><file path="x" kind="typechange"/><file path="y"/></files>'
            "</entry></changelog>",
            encoding="utf-8",
        )

        entry = read_changelog(path).entries[0]

        assert [edit.kind for edit in entry.file_edits] == [EditKind.UNKNOWN, EditKind.UNKNOWN]

    def test_empty_text_is_not_none(self, tmp_path: Path) -> None:
        """空要素は None ではなく空文字列として読み込まれること."""
        path = tmp_path / "changelog.xml"
        path.write_text(
            "<changelog><entry><path>a</path><serverPath>a</serverPath>"
            "<revision>1</revision><commitText/></entry></changelog>",
            encoding="utf-8",
        )

        entry = read_changelog(path).entries[0]

        assert entry.commit_text == ""
        assert entry.author_name is None

    def test_unsupported_encoding(self, tmp_path: Path) -> None:
        path = tmp_path / "changelog.xml"
        path.write_text(
            "<changelog><entry><path>a</path><serverPath>a</serverPath>"
            '<commitText encoding="rot13">nopq</commitText></entry></changelog>',
            encoding="utf-8",
        )

        with pytest.raises(ChangeLogParseError, match="unsupported encoding"):
            read_changelog(path)

    def test_broken_base64(self, tmp_path: Path) -> None:
        path = tmp_path / "changelog.xml"
        path.write_text(
            "<changelog><entry><path>a</path><serverPath>a</serverPath>"
            '<commitText encoding="base64">!!not base64!!</commitText></entry></changelog>',
            encoding="utf-8",
        )

        with pytest.raises(ChangeLogParseError):
            read_changelog(path)


def _commit_for_range(args, cwd: Path) -> CommandResult:
    new = args[-1].split("..")[1]
    output = format_commit(new, f"Update {cwd.name}", raw_lines=[f":100644 100644 a b M\t{cwd.name}.txt"])
    return CommandResult(stdout=output.encode("utf-8"), returncode=0)


class TestSaveChangelog:
    """save_changelog関数のテスト."""

    def test_no_baseline(self, tmp_path: Path) -> None:
        """初回ビルドではファイルを作らないこと."""
        runner = FakeRunner(_commit_for_range)
        current = Snapshot.from_manifest(MANIFEST_ONE, "m1", cache=ProjectRecordCache())
        path = tmp_path / "changelog.xml"

        assert save_changelog(current, None, path, runner, tmp_path) is None
        assert not path.exists()
        assert runner.calls == []

    def test_unchanged(self, tmp_path: Path) -> None:
        cache = ProjectRecordCache()
        previous = Snapshot.from_manifest(MANIFEST_ONE, "m1", cache=cache)
        current = Snapshot.from_manifest(MANIFEST_ONE, "m1", cache=cache)
        path = tmp_path / "changelog.xml"

        assert save_changelog(current, previous, path, FakeRunner(_commit_for_range), tmp_path, cache=cache) is None
        assert not path.exists()

    def test_changes_are_written(self, tmp_path: Path) -> None:
        """変更があれば生成したchangelogが書き込まれること."""
        cache = ProjectRecordCache()
        previous = Snapshot.from_manifest(MANIFEST_ONE, "m1", cache=cache)
        current = Snapshot.from_manifest(MANIFEST_TWO, "m1", cache=cache)
        path = tmp_path / "builds" / "2" / "changelog.xml"

        written = save_changelog(
            current, previous, path, FakeRunner(_commit_for_range), tmp_path, first_parent_only=False, cache=cache
        )

        assert written == path
        restored = read_changelog(path)
        assert [e.client_path for e in restored] == ["a", "c", "d"]
        assert restored.entries[0].commit_text == "Update a"
        assert restored.entries[2].commit_text == PROJECT_ADDED_MESSAGE
