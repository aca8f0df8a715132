"""changelogのXML保存と読み込み.

形式:

    <?xml version='1.0' encoding='UTF-8'?>
    <changelog version="1">
      <entry>
        <path>...</path>
        <serverPath>...</serverPath>
        <revision>...</revision>
        ...
        <files>
          <file path="..." kind="edit" />
        </files>
      </entry>
    </changelog>

None のフィールドは要素自体を出力しない（空文字列とは区別する）。

XML 1.0 で表現できない制御文字（ANSIエスケープ、NULなど）や \\r を含む値は、
UTF-8 の base64 で格納し、要素に encoding="base64"（file要素では
pathEncoding="base64"）を付ける。
"""

from __future__ import annotations

import base64
import re
import xml.etree.ElementTree as ET
from pathlib import Path

from loguru import logger

from repo_changelog.changelog import generate_changelog
from repo_changelog.core.exceptions import ChangeLogParseError, ChangeLogWriteError
from repo_changelog.core.snapshot import Snapshot
from repo_changelog.history.runner import CommandRunner
from repo_changelog.models import ChangeLogEntry, ChangeLogSet, EditKind, FileEdit

XML_HEADER = "<?xml version='1.0' encoding='UTF-8'?>\n"
FORMAT_VERSION = "1"

# ChangeLogEntry の属性名 -> XML要素名
FIELD_TAGS = [
    ("client_path", "path"),
    ("server_path", "serverPath"),
    ("revision", "revision"),
    ("author_name", "authorName"),
    ("author_email", "authorEmail"),
    ("author_date", "authorDate"),
    ("committer_name", "committerName"),
    ("committer_email", "committerEmail"),
    ("committer_date", "committerDate"),
    ("commit_text", "commitText"),
]

BASE64_ENCODING = "base64"

# XML 1.0 の Char に含まれない文字と、読み込み時に改行へ正規化される \r
_NEEDS_ENCODING = re.compile("[^\t\n\x20-\ud7ff\ue000-\ufffd\U00010000-\U0010ffff]")


def _encode_value(value: str) -> tuple[str, str | None]:
    """XMLにそのまま書けない値を base64 にする.

    Returns:
        (格納する文字列, エンコーディング名。そのまま書ける場合は None)
    """
    if _NEEDS_ENCODING.search(value) is None:
        return value, None
    encoded = base64.b64encode(value.encode("utf-8", errors="surrogatepass"))
    return encoded.decode("ascii"), BASE64_ENCODING


def _decode_value(text: str, encoding: str | None) -> str:
    if encoding is None:
        return text
    if encoding != BASE64_ENCODING:
        raise ValueError(f"unsupported encoding {encoding!r}")
    return base64.b64decode(text, validate=True).decode("utf-8", errors="surrogatepass")


def _entry_to_element(entry: ChangeLogEntry) -> ET.Element:
    element = ET.Element("entry")
    for attr, tag in FIELD_TAGS:
        value = getattr(entry, attr)
        if value is None:
            continue
        text, encoding = _encode_value(value)
        child = ET.SubElement(element, tag)
        child.text = text
        if encoding is not None:
            child.set("encoding", encoding)

    files = ET.SubElement(element, "files")
    for edit in entry.file_edits:
        path, encoding = _encode_value(edit.path)
        file_element = ET.SubElement(files, "file", {"path": path, "kind": edit.kind.value})
        if encoding is not None:
            file_element.set("pathEncoding", encoding)
    return element


def _element_to_entry(element: ET.Element) -> ChangeLogEntry:
    values: dict[str, str | None] = {}
    for attr, tag in FIELD_TAGS:
        child = element.find(tag)
        if child is None:
            values[attr] = None
        else:
            values[attr] = _decode_value(child.text or "", child.get("encoding"))

    if values["client_path"] is None or values["server_path"] is None:
        raise ValueError("entry without path/serverPath")

    file_edits = []
    files = element.find("files")
    if files is not None:
        for file_element in files.iter("file"):
            path = file_element.get("path")
            if path is None:
                raise ValueError("file without path")
            path = _decode_value(path, file_element.get("pathEncoding"))
            file_edits.append(FileEdit(path, EditKind.from_value(file_element.get("kind"))))

    return ChangeLogEntry(**values, file_edits=tuple(file_edits))


def dumps_changelog(changelog: ChangeLogSet) -> str:
    """changelogをXML文字列（ヘッダー付き）に変換する."""
    root = ET.Element("changelog", {"version": FORMAT_VERSION})
    for entry in changelog:
        root.append(_entry_to_element(entry))
    ET.indent(root)
    return XML_HEADER + ET.tostring(root, encoding="unicode") + "\n"


def write_changelog(changelog: ChangeLogSet | None, path: Path | str) -> Path | None:
    """changelogをXMLファイルとして保存.

    変更なし・初回ビルド（None または空）の場合はファイルを作らない。
    書き込みは同じディレクトリの一時ファイル経由で置き換える。

    Args:
        changelog: 保存するchangelog
        path: 出力ファイルパス

    Returns:
        書き込んだパス。書き込まなかった場合は None

    Raises:
        ChangeLogWriteError: ファイルを書き込めなかった場合
    """
    if changelog is None or changelog.is_empty:
        logger.info("No logs found")
        return None

    path = Path(path)
    tmp_path = path.with_name(f".{path.name}.tmp")
    try:
        path.parent.mkdir(parents=True, exist_ok=True)
        with open(tmp_path, "w", encoding="utf-8") as f:
            f.write(dumps_changelog(changelog))
        tmp_path.replace(path)
    except OSError as e:
        if tmp_path.exists():
            tmp_path.unlink()
        raise ChangeLogWriteError(path, str(e)) from e

    logger.info(f"Changelog written to {path} ({len(changelog)} entries)")
    return path


def read_changelog(path: Path | str) -> ChangeLogSet:
    """write_changelog で保存したXMLを読み込む.

    Args:
        path: changelogファイルパス

    Returns:
        ChangeLogSet

    Raises:
        ChangeLogParseError: 読み込めない、または形式が不正な場合
    """
    path = Path(path)
    try:
        root = ET.parse(path).getroot()
    except (OSError, ET.ParseError) as e:
        raise ChangeLogParseError(path, str(e)) from e

    if root.tag != "changelog":
        raise ChangeLogParseError(path, f"unexpected root element <{root.tag}>")

    try:
        entries = tuple(_element_to_entry(element) for element in root.findall("entry"))
    except ValueError as e:
        raise ChangeLogParseError(path, str(e)) from e

    return ChangeLogSet(entries=entries)


def save_changelog(
    current: Snapshot,
    previous: Snapshot | None,
    path: Path | str,
    runner: CommandRunner,
    workspace: Path | str,
    **options,
) -> Path | None:
    """changelogを生成してXMLとして保存する.

    Args:
        current: 今回ビルドのスナップショット
        previous: 前回ビルドのスナップショット
        path: 出力ファイルパス
        runner: コマンド実行
        workspace: repo のワークスペース
        **options: generate_changelog へのオプション

    Returns:
        書き込んだパス（変更なし・初回ビルドでは None）
    """
    changelog = generate_changelog(current, previous, runner, workspace, **options)
    return write_changelog(changelog, path)
