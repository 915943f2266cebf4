"""Shopify Admin GraphQL API クライアント。"""
from webp_optimizer.shopify.admin import ShopifyAdmin

__all__ = ["ShopifyAdmin"]
