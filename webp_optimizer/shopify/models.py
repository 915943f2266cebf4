"""Shopify Admin GraphQL のレスポンス用モデル（簡易 dataclass）。"""
from __future__ import annotations

from dataclasses import dataclass, field
from typing import Any, Optional


def gid_suffix(gid: str) -> str:
    """gid://shopify/MediaImage/123 → 123（表示・ファイル名用）。"""
    return (gid or "").rstrip("/").rsplit("/", 1)[-1]


@dataclass
class MediaImage:
    id: str
    url: str
    alt: str
    width: Optional[int] = None
    height: Optional[int] = None

    @classmethod
    def from_api(cls, d: Optional[dict[str, Any]]) -> Optional[MediaImage]:
        """MediaImage ノードを変換。画像以外（動画・3D 等）や URL なしは None。"""
        if not d or d.get("mediaContentType") != "IMAGE":
            return None
        image = d.get("image") or {}
        url = image.get("url")
        if not d.get("id") or not url:
            return None
        return cls(
            id=d["id"],
            url=url,
            alt=image.get("altText") or "",
            width=image.get("width"),
            height=image.get("height"),
        )


@dataclass
class Product:
    id: str
    title: str
    vendor: str = ""
    product_type: str = ""
    handle: str = ""
    images: list[MediaImage] = field(default_factory=list)

    @classmethod
    def from_api(cls, d: dict[str, Any]) -> Product:
        media_edges = ((d.get("media") or {}).get("edges")) or []
        images = [MediaImage.from_api(e.get("node")) for e in media_edges]
        return cls(
            id=d["id"],
            title=(d.get("title") or "").strip(),
            vendor=(d.get("vendor") or "").strip(),
            product_type=(d.get("productType") or "").strip(),
            handle=d.get("handle") or "",
            images=[img for img in images if img],
        )


@dataclass
class UserError:
    field: Optional[list[str]]
    message: str

    @classmethod
    def from_api(cls, d: dict[str, Any]) -> UserError:
        return cls(field=d.get("field"), message=str(d.get("message") or ""))


@dataclass
class MutationResult:
    """
    mutation の結果。HTTP 200 でも userErrors / mediaUserErrors が返るので、
    呼び出し側は必ず ok を確認すること。
    """

    payload: Any
    user_errors: list[UserError] = field(default_factory=list)

    @property
    def ok(self) -> bool:
        return not self.user_errors

    def error_message(self) -> str:
        return ", ".join(e.message for e in self.user_errors)

    @classmethod
    def from_api(
        cls, root: Optional[dict[str, Any]], payload_key: str, errors_key: str = "userErrors"
    ) -> MutationResult:
        root = root or {}
        errors = [UserError.from_api(e) for e in (root.get(errors_key) or [])]
        return cls(payload=root.get(payload_key), user_errors=errors)


@dataclass
class StagedTarget:
    url: str
    resource_url: str
    parameters: list[tuple[str, str]]

    @classmethod
    def from_api(cls, d: Optional[dict[str, Any]]) -> Optional[StagedTarget]:
        if not d or not d.get("url") or not d.get("resourceUrl"):
            return None
        params = [(p["name"], p["value"]) for p in (d.get("parameters") or [])]
        return cls(url=d["url"], resource_url=d["resourceUrl"], parameters=params)


@dataclass
class CreatedMedia:
    id: str
    url: Optional[str]

    @classmethod
    def from_api(cls, d: Optional[dict[str, Any]]) -> Optional[CreatedMedia]:
        if not d or not d.get("id"):
            return None
        image = d.get("image") or {}
        return cls(id=d["id"], url=image.get("url") or d.get("url"))


@dataclass
class FileInfo:
    """Files API のファイル。url は fileStatus が READY になるまで null。"""

    id: str
    status: str
    url: Optional[str]

    @property
    def ready(self) -> bool:
        return self.status == "READY" and bool(self.url)

    @classmethod
    def from_api(cls, d: Optional[dict[str, Any]]) -> Optional[FileInfo]:
        if not d or not d.get("id"):
            return None
        return cls(id=d["id"], status=d.get("fileStatus") or "", url=d.get("url"))
