"""マニフェストの安全性チェック.

remote の fetch 属性がローカルディレクトリ（file://）を指すマニフェストは、
明示的に許可されていない限りチェックアウトを中止する。
"""

from __future__ import annotations

import xml.etree.ElementTree as ET

from .exceptions import ManifestValidationError

ALLOW_LOCAL_CHECKOUT_ENV = "REPO_ALLOW_LOCAL_CHECKOUT"


def validate_manifest(
    manifest: str | bytes,
    manifest_repository_url: str | None,
    allow_local_checkout: bool = False,
) -> None:
    """ローカルディレクトリを参照する remote がないか検証する.

    Args:
        manifest: マニフェストXML（空なら検証しない）
        manifest_repository_url: マニフェストリポジトリのURL（メッセージ用）
        allow_local_checkout: True なら file:// の remote も許可する

    Raises:
        ManifestValidationError: file:// を参照している、またはXMLとして解析できない場合
    """
    if not manifest or allow_local_checkout:
        return

    try:
        root = ET.fromstring(manifest)
    except ET.ParseError as e:
        raise ManifestValidationError(
            "Could not validate manifest", manifest_repository_url
        ) from e

    for remote in root.iter("remote"):
        fetch = remote.get("fetch")
        if fetch is not None and fetch.lower().startswith("file://"):
            raise ManifestValidationError(
                f"Checkout of Repo url '{manifest_repository_url}' aborted because manifest "
                "references a local directory, which may be insecure. You can allow local "
                f"checkouts anyway by setting the environment variable "
                f"'{ALLOW_LOCAL_CHECKOUT_ENV}' to true.",
                manifest_repository_url,
            )
