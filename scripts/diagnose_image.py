#!/usr/bin/env python3
"""
1枚の画像について、台帳レコードと商品の現在のメディアを並べて表示する診断スクリプト。

使用例:
    python scripts/diagnose_image.py gid://shopify/MediaImage/123456789
"""
from __future__ import annotations

import sys
from pathlib import Path

# プロジェクトルートをパスに追加
ROOT = Path(__file__).resolve().parent.parent
if str(ROOT) not in sys.path:
    sys.path.insert(0, str(ROOT))

from dotenv import load_dotenv
load_dotenv(ROOT / ".env")

from webp_optimizer.queries import normalize_image_id
from webp_optimizer.shopify import ShopifyAdmin
from webp_optimizer.store import db, repo


def main() -> None:
    if len(sys.argv) != 2:
        print("使い方: python scripts/diagnose_image.py <画像ID>")
        sys.exit(1)

    client = ShopifyAdmin.from_env()
    image_id = normalize_image_id(sys.argv[1])
    conn = db.get_connection()
    db.init_schema(conn)
    try:
        record = repo.get_image(conn, client.shop, image_id) or repo.get_image_by_webp_gid(
            conn, client.shop, image_id
        )
    finally:
        conn.close()

    print("=" * 70)
    print(f"画像: {image_id}")
    print("=" * 70)
    if record is None:
        print("台帳にレコードはありません。")
        return
    for key in (
        "status", "product_id", "image_id", "original_url", "backup_url", "backup_gid", "webp_url",
        "webp_gid", "file_size", "webp_file_size", "restored_media_gid", "original_deleted",
        "last_error",
    ):
        print(f"  {key:<20} {getattr(record, key)}")

    print("\n現在の商品メディア:")
    tracked = {record.image_id, record.webp_gid, record.restored_media_gid}
    for media in client.get_product_media(record.product_id):
        mark = "*" if media.id in tracked else " "
        print(f" {mark} {media.id}  {media.url}")


if __name__ == "__main__":
    main()
