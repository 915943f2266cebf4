"""alt テキストテンプレートを全商品の画像に一括適用する。"""
from __future__ import annotations

import logging
import sqlite3
from dataclasses import dataclass
from typing import Any, Optional

from webp_optimizer.errors import OptimizerError
from webp_optimizer.seo.metadata import build_variables
from webp_optimizer.seo.template import render
from webp_optimizer.store import repo
from webp_optimizer.store.models import SeoSettingsRow

logger = logging.getLogger(__name__)


@dataclass
class AltTextSummary:
    updated: int = 0
    errors: int = 0
    skipped: int = 0  # 描画結果が空、または既に同じ alt


def apply_alt_text(
    conn: sqlite3.Connection,
    client: Any,
    shop: str,
    settings: Optional[SeoSettingsRow] = None,
) -> AltTextSummary:
    """
    全商品の画像メディアに alt テンプレートを描画して反映する。
    1件の失敗（userErrors を含む）はカウントして続行。
    台帳にレコードがある画像は alt_text_updated を立てる。
    """
    seo = settings or repo.get_or_create_settings(conn, shop)
    summary = AltTextSummary()
    for product in client.list_products():
        for number, image in enumerate(product.images, start=1):
            alt = render(seo.alt_text_template, build_variables(product, image, number))
            if not alt or alt == image.alt:
                summary.skipped += 1
                continue
            try:
                result = client.update_media_alt(product.id, image.id, alt)
                if not result.ok:
                    raise OptimizerError(result.error_message())
                record = repo.get_image(conn, shop, image.id) or repo.get_image_by_webp_gid(
                    conn, shop, image.id
                )
                if record:
                    repo.update_image(conn, record.id, {"alt_text_updated": 1})
                summary.updated += 1
            except Exception as e:
                logger.warning("alt 更新失敗: image=%s product=%s error=%s", image.id, product.id, e)
                summary.errors += 1
    logger.info(
        "alt テキスト適用: updated=%d skipped=%d errors=%d",
        summary.updated,
        summary.skipped,
        summary.errors,
    )
    return summary
