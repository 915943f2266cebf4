"""商品一覧と商品メディアの取得（カーソルページネーション）。"""
from __future__ import annotations

import logging
from typing import Any, Optional

from webp_optimizer.shopify import models
from webp_optimizer.shopify.api_client import GraphQLClient

logger = logging.getLogger(__name__)

_MEDIA_FIELDS = """
          edges {
            node {
              mediaContentType
              ... on MediaImage {
                id
                image {
                  url
                  altText
                  width
                  height
                }
              }
            }
          }
          pageInfo {
            hasNextPage
            endCursor
          }
"""

PRODUCTS_QUERY = """
query getProducts($first: Int!, $after: String, $mediaFirst: Int!) {
  products(first: $first, after: $after, sortKey: ID) {
    edges {
      node {
        id
        title
        vendor
        productType
        handle
        media(first: $mediaFirst) {%s}
      }
    }
    pageInfo {
      hasNextPage
      endCursor
    }
  }
}
""" % _MEDIA_FIELDS

PRODUCT_MEDIA_QUERY = """
query getProductMedia($id: ID!, $first: Int!, $after: String) {
  product(id: $id) {
    id
    media(first: $first, after: $after) {%s}
  }
}
""" % _MEDIA_FIELDS


def _page_info(conn: Optional[dict[str, Any]]) -> tuple[bool, Optional[str]]:
    info = (conn or {}).get("pageInfo") or {}
    return bool(info.get("hasNextPage")), info.get("endCursor")


def list_products(
    gql: GraphQLClient, page_size: int = 50, media_page_size: int = 10
) -> list[models.Product]:
    """
    全商品を取得し、各商品の画像メディアを全ページ分そろえて返す。
    並びは商品 ID 順 → メディアの表示順で、実行ごとに安定する。
    """
    products: list[models.Product] = []
    after: Optional[str] = None
    while True:
        data = gql.execute(
            PRODUCTS_QUERY,
            {"first": page_size, "after": after, "mediaFirst": media_page_size},
        )
        conn = data.get("products") or {}
        for edge in conn.get("edges") or []:
            node = edge.get("node") or {}
            product = models.Product.from_api(node)
            has_more_media, media_cursor = _page_info(node.get("media"))
            if has_more_media:
                product.images.extend(
                    _fetch_media_pages(gql, product.id, media_page_size, media_cursor)
                )
            products.append(product)
        has_next, after = _page_info(conn)
        if not has_next:
            break
    logger.info("商品取得完了: 商品=%d件, 画像=%d枚", len(products), sum(len(p.images) for p in products))
    return products


def get_product_media(
    gql: GraphQLClient, product_id: str, page_size: int = 50
) -> list[models.MediaImage]:
    """1商品の画像メディアを全件取得。"""
    return _fetch_media_pages(gql, product_id, page_size, None)


def _fetch_media_pages(
    gql: GraphQLClient, product_id: str, page_size: int, after: Optional[str]
) -> list[models.MediaImage]:
    images: list[models.MediaImage] = []
    while True:
        data = gql.execute(PRODUCT_MEDIA_QUERY, {"id": product_id, "first": page_size, "after": after})
        media = (data.get("product") or {}).get("media") or {}
        for edge in media.get("edges") or []:
            img = models.MediaImage.from_api(edge.get("node"))
            if img:
                images.append(img)
        has_next, after = _page_info(media)
        if not has_next:
            return images
