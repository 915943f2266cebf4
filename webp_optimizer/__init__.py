"""Shopify 商品画像の WebP 一括最適化ツール。"""

__version__ = "0.4.0"
