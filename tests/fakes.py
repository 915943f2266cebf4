"""テスト用の Shopify フェイク（ShopifyAdmin と同じメソッドを持つ）と画像生成ヘルパ。"""
from __future__ import annotations

import copy
import io
from typing import Optional

import requests
from PIL import Image

from webp_optimizer.errors import UploadError
from webp_optimizer.shopify.models import (
    CreatedMedia,
    FileInfo,
    MediaImage,
    MutationResult,
    Product,
    StagedTarget,
    UserError,
)


def make_image_bytes(size: tuple[int, int] = (120, 80), fmt: str = "PNG") -> bytes:
    """グラデーション画像（単色だと WebP との比較が極端になるため）。"""
    img = Image.new("RGB", size)
    for x in range(size[0]):
        for y in range(size[1]):
            img.putpixel((x, y), (x * 2 % 256, y * 3 % 256, (x + y) % 256))
    buf = io.BytesIO()
    img.save(buf, format=fmt)
    return buf.getvalue()


def make_product(n: int, image_count: int = 2, title: Optional[str] = None) -> Product:
    images = [
        MediaImage(
            id=f"gid://shopify/MediaImage/{n}{i}",
            url=f"https://cdn.test/products/{n}-{i}.jpg?v=1",
            alt=f"old alt {n}-{i}",
            width=120,
            height=80,
        )
        for i in range(1, image_count + 1)
    ]
    return Product(
        id=f"gid://shopify/Product/{n}",
        title=title or f"Product {n}",
        vendor="Acme",
        product_type="Shirt",
        handle=f"product-{n}",
        images=images,
    )


class FakeShopify:
    """メモリ上の商品メディアに対して ShopifyAdmin の操作を再現する。"""

    def __init__(self, products: list[Product]) -> None:
        self.products = {p.id: p for p in products}
        self.calls: list[tuple] = []
        self.files: dict[str, bytes] = {}
        self.originals: dict[str, bytes] = {}
        self.default_original = make_image_bytes()
        # 失敗の注入
        self.fail_list = False
        self.fail_fetch: set[str] = set()
        self.fail_backup = False
        self.fail_upload = False
        self.create_errors: list[str] = []
        self.delete_errors: list[str] = []
        self.alt_errors: set[str] = set()
        # この接頭辞で始まる originalSource の productCreateMedia は失敗させる
        self.create_fail_prefixes: list[str] = []
        # None 以外なら fileCreate は url なしで返り、get_file がこの回数だけ PROCESSING を返す
        self.file_pending_polls: Optional[int] = None
        self.backup_files: dict[str, str] = {}
        self._pending: dict[str, int] = {}
        self._seq = 0

    def _next(self) -> int:
        self._seq += 1
        return self._seq

    def calls_named(self, name: str) -> list[tuple]:
        return [c for c in self.calls if c[0] == name]

    # 元画像の取得（run_optimization の fetch に渡す）
    def fetch(self, url: str) -> bytes:
        self.calls.append(("fetch", url))
        if url in self.fail_fetch:
            raise requests.ConnectionError(f"connection refused: {url}")
        return self.originals.get(url, self.default_original)

    def list_products(self) -> list[Product]:
        self.calls.append(("list_products",))
        if self.fail_list:
            raise requests.ConnectionError("shop unreachable")
        return copy.deepcopy(list(self.products.values()))

    def get_product_media(self, product_id: str) -> list[MediaImage]:
        self.calls.append(("get_product_media", product_id))
        return copy.deepcopy(self.products[product_id].images)

    def staged_upload(self, resource: str, filename: str, mime_type: str) -> StagedTarget:
        self.calls.append(("staged_upload", resource, filename, mime_type))
        key = f"tmp/{self._next()}/{filename}"
        return StagedTarget(
            url="https://uploads.test/bucket",
            resource_url=f"https://uploads.test/{key}",
            parameters=[("key", key), ("policy", "signed")],
        )

    def upload_to_target(self, target: StagedTarget, data: bytes, filename: str, mime_type: str) -> None:
        self.calls.append(("upload_to_target", filename, mime_type))
        if self.fail_upload and mime_type == "image/webp":
            raise UploadError("Upload failed: 403 Forbidden")
        self.files[target.resource_url] = data

    def file_create(self, resource_url: str, alt: str = "") -> MutationResult:
        self.calls.append(("file_create", resource_url, alt))
        if self.fail_backup:
            return MutationResult(None, [UserError(None, "File storage unavailable")])
        name = resource_url.rsplit("/", 1)[-1]
        file_id = f"gid://shopify/GenericFile/{self._next()}"
        url = f"https://cdn.test/files/{name}"
        self.backup_files[file_id] = url
        if self.file_pending_polls is not None:
            self._pending[file_id] = self.file_pending_polls
            return MutationResult(CreatedMedia(id=file_id, url=None))
        return MutationResult(CreatedMedia(id=file_id, url=url))

    def get_file(self, file_id: str) -> Optional[FileInfo]:
        self.calls.append(("get_file", file_id))
        if file_id not in self.backup_files:
            return None
        remaining = self._pending.get(file_id, 0)
        if remaining > 0:
            self._pending[file_id] = remaining - 1
            return FileInfo(id=file_id, status="PROCESSING", url=None)
        return FileInfo(id=file_id, status="READY", url=self.backup_files[file_id])

    def finish_file_processing(self) -> None:
        self._pending.clear()

    def create_media(self, product_id: str, source: str, alt: str) -> MutationResult:
        self.calls.append(("create_media", product_id, source, alt))
        if self.create_errors:
            return MutationResult(None, [UserError(["media"], m) for m in self.create_errors])
        if any(source.startswith(p) for p in self.create_fail_prefixes):
            return MutationResult(None, [UserError(["media", "0", "originalSource"], "Source unreachable")])
        seq = self._next()
        media_id = f"gid://shopify/MediaImage/9{seq:03d}"
        url = f"https://cdn.test/media/{seq}/{source.rsplit('/', 1)[-1]}"
        self.products[product_id].images.append(MediaImage(id=media_id, url=url, alt=alt))
        return MutationResult(CreatedMedia(id=media_id, url=url))

    def delete_media(self, product_id: str, media_ids: list[str]) -> MutationResult:
        self.calls.append(("delete_media", product_id, tuple(media_ids)))
        if self.delete_errors:
            return MutationResult([], [UserError(["mediaIds"], m) for m in self.delete_errors])
        product = self.products[product_id]
        product.images = [m for m in product.images if m.id not in media_ids]
        return MutationResult(list(media_ids))

    def update_media_alt(self, product_id: str, media_id: str, alt: str) -> MutationResult:
        self.calls.append(("update_media_alt", product_id, media_id, alt))
        if media_id in self.alt_errors:
            return MutationResult(None, [UserError(["media", "0", "alt"], "Alt is too long")])
        for m in self.products[product_id].images:
            if m.id == media_id:
                m.alt = alt
        return MutationResult([{"id": media_id, "alt": alt}])
