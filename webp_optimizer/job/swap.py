"""商品メディアの差し替え（旧メディア削除 → 新メディア作成）。"""
from __future__ import annotations

import logging
from typing import Any, Optional

from webp_optimizer.errors import SwapError

logger = logging.getLogger(__name__)


def delete_quietly(client: Any, product_id: str, media_id: Optional[str]) -> bool:
    """
    メディアを削除。mediaUserErrors は警告ログのみで続行する
    （削除に失敗しても新しいメディアの追加は妨げない）。
    """
    if not media_id:
        return False
    result = client.delete_media(product_id, [media_id])
    if not result.ok:
        logger.warning(
            "メディア削除エラー（続行）: product=%s media=%s errors=%s",
            product_id,
            media_id,
            result.error_message(),
        )
        return False
    return True


def create_or_raise(client: Any, product_id: str, source: str, alt: str) -> tuple[str, str]:
    """メディアを作成して (media_id, url) を返す。userErrors があれば SwapError。"""
    result = client.create_media(product_id, source, alt)
    if not result.ok:
        raise SwapError(result.error_message())
    created = result.payload
    if created is None:
        raise SwapError(f"productCreateMedia returned no media for {product_id}")
    return created.id, created.url or source


def swap_media(
    client: Any, product_id: str, old_media_id: Optional[str], resource_url: str, alt: str
) -> tuple[str, str]:
    """
    旧メディアを削除し、resource_url から新メディアを作る。(新メディア ID, 配信 URL) を返す。
    作成に失敗した SwapError には、旧メディアが削除済みかどうかを載せる。
    """
    deleted = delete_quietly(client, product_id, old_media_id)
    try:
        return create_or_raise(client, product_id, resource_url, alt)
    except SwapError as e:
        e.original_deleted = deleted
        raise
    except Exception as e:
        raise SwapError(f"productCreateMedia failed: {e}", original_deleted=deleted) from e
