"""ジョブ実行パラメータ。"""
from __future__ import annotations

import logging
from dataclasses import dataclass
from typing import Any

from webp_optimizer.util.image import validate_quality

logger = logging.getLogger(__name__)

# Shopify の products(first:) / media(first:) の上限
MAX_PAGE_SIZE = 250
# 1クエリの要求コスト上限。商品一覧は およそ 商品数 + 商品数 × メディア数 で見積もられる
MAX_QUERY_COST = 1000

DEFAULT_PRODUCTS_PAGE_SIZE = 50
DEFAULT_MEDIA_PAGE_SIZE = 10


def estimate_products_query_cost(products_page_size: int, media_page_size: int) -> int:
    return products_page_size + products_page_size * media_page_size


@dataclass(frozen=True)
class OptimizeParams:
    """1回の最適化ジョブのパラメータ。"""

    quality: int
    max_width: int
    max_height: int
    preserve_metadata: bool
    products_page_size: int
    media_page_size: int

    def __post_init__(self) -> None:
        validate_quality(self.quality)
        if self.max_width < 0 or self.max_height < 0:
            raise ValueError("max_width / max_height must be >= 0")

    @classmethod
    def from_config(cls, config: dict[str, Any]) -> OptimizeParams:
        opt_cfg = config.get("optimize", {})
        shop_cfg = config.get("shopify", {})

        products_page_size = int(shop_cfg.get("products_page_size", DEFAULT_PRODUCTS_PAGE_SIZE))
        media_page_size = int(shop_cfg.get("media_page_size", DEFAULT_MEDIA_PAGE_SIZE))
        if not 0 < products_page_size <= MAX_PAGE_SIZE:
            logger.warning(
                "products_page_size=%d は範囲外です。%dに補正しました。",
                products_page_size,
                DEFAULT_PRODUCTS_PAGE_SIZE,
            )
            products_page_size = DEFAULT_PRODUCTS_PAGE_SIZE
        if not 0 < media_page_size <= MAX_PAGE_SIZE:
            logger.warning(
                "media_page_size=%d は範囲外です。%dに補正しました。",
                media_page_size,
                DEFAULT_MEDIA_PAGE_SIZE,
            )
            media_page_size = DEFAULT_MEDIA_PAGE_SIZE
        # コスト超過（MAX_COST_EXCEEDED）は再試行しても通らないので、メディア側を削って収める
        if estimate_products_query_cost(products_page_size, media_page_size) > MAX_QUERY_COST:
            corrected = max(1, MAX_QUERY_COST // products_page_size - 1)
            logger.warning(
                "products_page_size=%d × media_page_size=%d はクエリコスト上限 %d を超えます。"
                "media_page_size を %d に補正しました。",
                products_page_size,
                media_page_size,
                MAX_QUERY_COST,
                corrected,
            )
            media_page_size = corrected

        return cls(
            quality=opt_cfg.get("quality", 85),
            max_width=int(opt_cfg.get("max_width", 0) or 0),
            max_height=int(opt_cfg.get("max_height", 0) or 0),
            preserve_metadata=bool(opt_cfg.get("preserve_metadata", False)),
            products_page_size=products_page_size,
            media_page_size=media_page_size,
        )
