"""画像処理ユーティリティ（WebP 変換・拡張子推定）。"""
from __future__ import annotations

import io
from typing import Any
from urllib.parse import urlsplit

from PIL import Image, ImageOps

from webp_optimizer.constants import DEFAULT_IMAGE_EXTENSION, EXTENSION_MIME_TYPES


def validate_quality(quality: Any) -> int:
    """WebP 品質（0〜100 の整数）を検証。範囲外は呼び出し側のミスとして ValueError。"""
    if isinstance(quality, bool) or not isinstance(quality, int):
        raise ValueError(f"quality must be an integer, got {quality!r}")
    if not 0 <= quality <= 100:
        raise ValueError(f"quality must be between 0 and 100, got {quality}")
    return quality


def to_webp(
    raw: bytes,
    quality: int = 85,
    max_width: int = 0,
    max_height: int = 0,
    preserve_metadata: bool = False,
) -> bytes:
    """
    任意のラスター画像を WebP に変換してバイト列を返す。
    EXIF の回転を反映し、max_width / max_height を超える場合は縦横比を保って縮小する（0 は無制限）。
    透過のある画像は RGBA のまま、それ以外は RGB に変換する。
    """
    validate_quality(quality)
    img = Image.open(io.BytesIO(raw))
    img.load()
    img = ImageOps.exif_transpose(img)

    has_transparency = img.mode in ("RGBA", "LA", "PA") or (
        img.mode == "P" and "transparency" in img.info
    )
    save_img = img.convert("RGBA") if has_transparency else img.convert("RGB")

    if max_width > 0 or max_height > 0:
        bound_w = max_width if max_width > 0 else save_img.width
        bound_h = max_height if max_height > 0 else save_img.height
        if save_img.width > bound_w or save_img.height > bound_h:
            save_img.thumbnail((bound_w, bound_h), Image.Resampling.LANCZOS)

    save_kwargs: dict[str, Any] = {"format": "WEBP", "quality": quality, "method": 6}
    if preserve_metadata:
        exif = img.getexif()
        if exif:
            save_kwargs["exif"] = exif.tobytes()
        icc = img.info.get("icc_profile")
        if icc:
            save_kwargs["icc_profile"] = icc

    buf = io.BytesIO()
    save_img.save(buf, **save_kwargs)
    return buf.getvalue()


def infer_extension(url: str) -> str:
    """URL のパス末尾から拡張子を推定（クエリ文字列は除外）。不明ならデフォルト。"""
    path = urlsplit(url or "").path
    last_segment = path.rsplit("/", 1)[-1]
    if "." not in last_segment:
        return DEFAULT_IMAGE_EXTENSION
    ext = last_segment.rsplit(".", 1)[-1].lower()
    return ext if ext in EXTENSION_MIME_TYPES else DEFAULT_IMAGE_EXTENSION


def mime_type_for(extension: str) -> str:
    return EXTENSION_MIME_TYPES.get(extension.lower(), EXTENSION_MIME_TYPES[DEFAULT_IMAGE_EXTENSION])
