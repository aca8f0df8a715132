"""changelog.yml の読み込み.

使用例:
    >>> config = load_config(Path("changelog.yml"))
    >>> config.git_executable
    'git'

YAML形式:
    repo:
      executable: repo
      manifest_url: https://example.com/platform/manifest.git
      manifest_branch: main
      manifest_file: default.xml
    git:
      executable: git
      first_parent_only: true
      timeout: 600
      max_workers: 1
    allow_local_checkout: false
"""

from __future__ import annotations

import os
from collections.abc import Mapping
from dataclasses import dataclass, replace
from pathlib import Path
from typing import Any

import yaml
from loguru import logger

from repo_changelog.core.validator import ALLOW_LOCAL_CHECKOUT_ENV

_TRUE_VALUES = {"1", "true", "yes", "on"}


@dataclass(frozen=True)
class ChangeLogConfig:
    repo_executable: str = "repo"
    manifest_url: str | None = None
    manifest_branch: str | None = None
    manifest_file: str | None = None
    git_executable: str = "git"
    first_parent_only: bool = True
    timeout: float | None = None
    max_workers: int = 1
    allow_local_checkout: bool = False

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> ChangeLogConfig:
        """YAMLから読み込んだ辞書を設定に変換.

        Args:
            data: 設定辞書

        Returns:
            設定オブジェクト

        Raises:
            ValueError: セクションや値の型が不正な場合
        """
        repo = _section(data, "repo")
        git = _section(data, "git")

        timeout = git.get("timeout")
        # YAML の true/false は int として通ってしまうので除外する
        if timeout is not None and (
            isinstance(timeout, bool) or not isinstance(timeout, int | float) or timeout <= 0
        ):
            raise ValueError(f"git.timeout must be a positive number, got {timeout!r}")

        max_workers = git.get("max_workers", 1)
        if isinstance(max_workers, bool) or not isinstance(max_workers, int) or max_workers < 1:
            raise ValueError(f"git.max_workers must be a positive integer, got {max_workers!r}")

        return cls(
            repo_executable=_fix_empty(repo.get("executable")) or "repo",
            manifest_url=_fix_empty(repo.get("manifest_url")),
            manifest_branch=_fix_empty(repo.get("manifest_branch")),
            manifest_file=_fix_empty(repo.get("manifest_file")),
            git_executable=_fix_empty(git.get("executable")) or "git",
            first_parent_only=bool(git.get("first_parent_only", True)),
            timeout=timeout,
            max_workers=max_workers,
            allow_local_checkout=bool(data.get("allow_local_checkout", False)),
        )

    def with_environment(self, environ: Mapping[str, str] | None = None) -> ChangeLogConfig:
        """環境変数 REPO_ALLOW_LOCAL_CHECKOUT で allow_local_checkout を上書きする."""
        environ = os.environ if environ is None else environ
        value = environ.get(ALLOW_LOCAL_CHECKOUT_ENV)
        if value is None:
            return self
        allowed = value.strip().lower() in _TRUE_VALUES
        return replace(self, allow_local_checkout=allowed)


def _fix_empty(value: Any) -> str | None:
    if value is None:
        return None
    value = str(value).strip()
    return value or None


def _section(data: dict[str, Any], name: str) -> dict[str, Any]:
    section = data.get(name) or {}
    if not isinstance(section, dict):
        raise ValueError(f"Config section '{name}' must be a mapping, got {type(section)}")
    return section


def load_config(config_path: Path | str) -> ChangeLogConfig:
    """changelog.yml を読み込む.

    Args:
        config_path: 設定ファイルのパス

    Returns:
        設定オブジェクト（環境変数の上書きを適用済み）

    Raises:
        FileNotFoundError: ファイルが存在しない場合
        ValueError: YAML形式が不正、または値が不正な場合
    """
    config_path = Path(config_path)

    if not config_path.exists():
        raise FileNotFoundError(f"Config file not found: {config_path}")

    try:
        with open(config_path, encoding="utf-8") as f:
            data = yaml.safe_load(f) or {}
    except yaml.YAMLError as e:
        msg = f"Invalid YAML in config file: {config_path}"
        raise ValueError(msg) from e

    if not isinstance(data, dict):
        msg = f"Config file must contain a mapping, got {type(data)}"
        raise ValueError(msg)

    config = ChangeLogConfig.from_dict(data).with_environment()
    logger.info(f"Loaded config from {config_path}")
    return config
