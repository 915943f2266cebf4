"""
ジョブから使う Shopify 操作の窓口。
ジョブ・差し替え・復元はこのクラスのメソッドだけに依存する（テストでは同じメソッドを持つフェイクに差し替える）。
"""
from __future__ import annotations

from typing import Optional

import requests

from webp_optimizer.shopify import auth, media, models, products
from webp_optimizer.shopify.api_client import GraphQLClient


class ShopifyAdmin:
    def __init__(
        self,
        gql: GraphQLClient,
        products_page_size: int = 50,
        media_page_size: int = 10,
    ) -> None:
        self.gql = gql
        self.shop = gql.shop
        self.products_page_size = products_page_size
        self.media_page_size = media_page_size

    @classmethod
    def from_env(
        cls,
        api_version: Optional[str] = None,
        products_page_size: int = 50,
        media_page_size: int = 10,
        session: Optional[requests.Session] = None,
    ) -> ShopifyAdmin:
        """環境変数の認証情報からクライアントを作る。"""
        shop, token = auth.get_credentials()
        gql = GraphQLClient(shop, token, api_version=api_version, session=session)
        return cls(gql, products_page_size=products_page_size, media_page_size=media_page_size)

    def list_products(self) -> list[models.Product]:
        return products.list_products(self.gql, self.products_page_size, self.media_page_size)

    def get_product_media(self, product_id: str) -> list[models.MediaImage]:
        return products.get_product_media(self.gql, product_id, self.media_page_size)

    def staged_upload(self, resource: str, filename: str, mime_type: str) -> models.StagedTarget:
        return media.staged_upload(self.gql, resource, filename, mime_type)

    def upload_to_target(
        self, target: models.StagedTarget, data: bytes, filename: str, mime_type: str
    ) -> None:
        # ステージング先は S3 等の外部ホストなので Shopify 用ヘッダは付けない
        media.upload_to_target(target, data, filename, mime_type)

    def file_create(self, resource_url: str, alt: str = "") -> models.MutationResult:
        return media.file_create(self.gql, resource_url, alt)

    def get_file(self, file_id: str) -> Optional[models.FileInfo]:
        return media.get_file(self.gql, file_id)

    def create_media(self, product_id: str, source: str, alt: str) -> models.MutationResult:
        return media.create_media(self.gql, product_id, source, alt)

    def delete_media(self, product_id: str, media_ids: list[str]) -> models.MutationResult:
        return media.delete_media(self.gql, product_id, media_ids)

    def update_media_alt(self, product_id: str, media_id: str, alt: str) -> models.MutationResult:
        return media.update_media_alt(self.gql, product_id, media_id, alt)
