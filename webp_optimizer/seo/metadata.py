"""商品情報からテンプレート変数を作り、alt テキスト・ファイル名を決める。"""
from __future__ import annotations

from typing import Optional

from webp_optimizer.seo.template import render, slugify
from webp_optimizer.shopify.models import MediaImage, Product, gid_suffix
from webp_optimizer.store.models import SeoSettingsRow
from webp_optimizer.util.image import infer_extension

# テンプレートで使えるプレースホルダー（#key#）
TEMPLATE_KEYS = (
    "product_name",
    "vendor",
    "product_type",
    "product_handle",
    "image_number",
    "alt_text",
)


def build_variables(product: Product, image: MediaImage, image_number: int) -> dict[str, str]:
    return {
        "product_name": product.title,
        "vendor": product.vendor,
        "product_type": product.product_type,
        "product_handle": product.handle,
        "image_number": str(image_number),
        "alt_text": image.alt,
    }


def derive_alt_text(
    settings: Optional[SeoSettingsRow], variables: dict[str, str], fallback: str
) -> tuple[str, bool]:
    """
    (alt テキスト, テンプレートを適用したか) を返す。
    自動適用がオフ、または描画結果が空のときは fallback（元の alt）。
    """
    if settings and settings.auto_apply_on_optimize:
        rendered = render(settings.alt_text_template, variables)
        if rendered:
            return rendered, True
    return fallback, False


def default_file_name(image_id: str) -> str:
    return f"optimized-{gid_suffix(image_id)}.webp"


def derive_file_name(
    settings: Optional[SeoSettingsRow], variables: dict[str, str], image_id: str
) -> str:
    """WebP のファイル名。スラッグが空になる場合は optimized-{id}.webp。"""
    if settings and settings.auto_apply_on_optimize:
        slug = slugify(render(settings.file_name_template, variables))
        if slug:
            return f"{slug}.webp"
    return default_file_name(image_id)


def backup_file_name(image_id: str, source_url: str) -> str:
    """バックアップのファイル名。拡張子は元画像 URL から推定。"""
    return f"backup-{gid_suffix(image_id)}.{infer_extension(source_url)}"
