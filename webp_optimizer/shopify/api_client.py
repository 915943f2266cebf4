"""Shopify Admin GraphQL API の共通クライアント。"""
from __future__ import annotations

import logging
import os
import time
from typing import Any, Optional

import requests

from webp_optimizer.config import DEFAULT_API_VERSION
from webp_optimizer.errors import ShopifyGraphQLError
from webp_optimizer.util import http

logger = logging.getLogger(__name__)


def get_api_version(configured: Optional[str] = None) -> str:
    """API バージョン。環境変数 SHOPIFY_API_VERSION が最優先。"""
    return os.getenv("SHOPIFY_API_VERSION") or configured or DEFAULT_API_VERSION


def build_headers(token: str) -> dict[str, str]:
    return {
        "X-Shopify-Access-Token": token,
        "Content-Type": "application/json",
        "Accept": "application/json",
    }


class GraphQLClient:
    """1ショップ分の GraphQL エンドポイント。THROTTLED / 429 は指数バックオフで再試行。"""

    def __init__(
        self,
        shop: str,
        token: str,
        api_version: Optional[str] = None,
        session: Optional[requests.Session] = None,
    ) -> None:
        self.shop = shop
        self.api_version = get_api_version(api_version)
        self.endpoint = f"https://{shop}/admin/api/{self.api_version}/graphql.json"
        self.session = session or requests.Session()
        self._headers = build_headers(token)

    def execute(self, query: str, variables: Optional[dict[str, Any]] = None) -> dict[str, Any]:
        """クエリを実行して data を返す。トップレベル errors は ShopifyGraphQLError。"""
        retry_max = http.get_retry_max()
        body = {"query": query, "variables": variables or {}}
        for attempt in range(retry_max + 1):
            try:
                resp = http.post_json(self.endpoint, body, headers=self._headers, session=self.session)
            except requests.HTTPError as e:
                status = e.response.status_code if e.response is not None else None
                if status == 429 and attempt < retry_max:
                    delay = http.backoff_delay(attempt)
                    logger.warning("rate limited (429), retry in %.1fs", delay)
                    time.sleep(delay)
                    continue
                raise
            errors = resp.get("errors")
            if errors:
                if isinstance(errors, str):
                    errors = [{"message": errors}]
                err = ShopifyGraphQLError(errors)
                if err.throttled and attempt < retry_max:
                    delay = http.backoff_delay(attempt)
                    logger.warning("GraphQL throttled, retry in %.1fs", delay)
                    time.sleep(delay)
                    continue
                raise err
            return resp.get("data") or {}
        raise ShopifyGraphQLError([{"message": "retry limit exceeded"}])
