"""ビルド環境変数（REPO_MANIFEST_*）の生成."""

from __future__ import annotations

import json
from pathlib import Path

from loguru import logger

from repo_changelog.core.snapshot import Snapshot

ENV_MANIFEST_URL = "REPO_MANIFEST_URL"
ENV_MANIFEST_BRANCH = "REPO_MANIFEST_BRANCH"
ENV_MANIFEST_FILE = "REPO_MANIFEST_FILE"
ENV_MANIFEST_XML = "REPO_MANIFEST_XML"


def build_environment(snapshot: Snapshot) -> dict[str, str]:
    """スナップショットからビルド環境変数を作る（None の値は含めない）."""
    values = {
        ENV_MANIFEST_URL: snapshot.url,
        ENV_MANIFEST_BRANCH: snapshot.branch,
        ENV_MANIFEST_FILE: snapshot.file,
        ENV_MANIFEST_XML: snapshot.manifest or None,
    }
    return {key: value for key, value in values.items() if value is not None}


def write_env_file(env: dict[str, str], output_path: Path) -> None:
    """KEY=value 形式で環境変数ファイルを書き出す.

    改行を含む値（マニフェストXMLなど）はJSON文字列としてクォートする。

    Args:
        env: 環境変数
        output_path: 出力ファイルパス
    """
    output_path.parent.mkdir(parents=True, exist_ok=True)

    lines = []
    for key, value in env.items():
        if "\n" in value or '"' in value:
            value = json.dumps(value, ensure_ascii=False)
        lines.append(f"{key}={value}")

    output_path.write_text("\n".join(lines) + "\n", encoding="utf-8")
    logger.info(f"Build environment written to {output_path}")
