"""Shopify カスタムアプリの Admin API アクセストークン（環境変数）。"""
from __future__ import annotations

import os

from dotenv import load_dotenv

load_dotenv()


def normalize_shop_domain(shop: str) -> str:
    """https://example.myshopify.com/ や example を example.myshopify.com に揃える。"""
    s = (shop or "").strip().lower()
    for prefix in ("https://", "http://"):
        if s.startswith(prefix):
            s = s[len(prefix):]
    s = s.split("/", 1)[0]
    if s and "." not in s:
        s = f"{s}.myshopify.com"
    return s


def get_shop_domain() -> str:
    """ショップドメインのみ（トークン不要な照会・中止用）。"""
    shop = os.getenv("SHOPIFY_SHOP_DOMAIN")
    if not shop:
        raise ValueError("SHOPIFY_SHOP_DOMAIN must be set")
    return normalize_shop_domain(shop)


def get_credentials() -> tuple[str, str]:
    """(shop ドメイン, アクセストークン) を返す。"""
    shop = os.getenv("SHOPIFY_SHOP_DOMAIN")
    token = os.getenv("SHOPIFY_ADMIN_TOKEN")
    if not shop or not token:
        raise ValueError("SHOPIFY_SHOP_DOMAIN and SHOPIFY_ADMIN_TOKEN must be set")
    return normalize_shop_domain(shop), token.strip()
