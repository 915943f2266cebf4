"""読み取り専用の照会（進捗スナップショット・WebP 画像・ダッシュボード集計）。"""
from __future__ import annotations

import sqlite3
from dataclasses import asdict
from typing import Any

import pandas as pd

from webp_optimizer.constants import STATUS_COMPLETED
from webp_optimizer.errors import ImageNotOptimizedError
from webp_optimizer.store import repo

MEDIA_IMAGE_GID_PREFIX = "gid://shopify/MediaImage/"
RECENT_LIMIT = 50


def normalize_image_id(image_id: str) -> str:
    """数値だけの ID は MediaImage の GID に展開する。"""
    image_id = (image_id or "").strip()
    if image_id.isdigit():
        return f"{MEDIA_IMAGE_GID_PREFIX}{image_id}"
    return image_id


def savings_percent(file_size: int | None, webp_file_size: int | None) -> float:
    if not file_size or webp_file_size is None:
        return 0.0
    return round((file_size - webp_file_size) / file_size * 100, 2)


def get_status_snapshot(conn: sqlite3.Connection, shop: str) -> dict[str, Any]:
    """
    直近ジョブ・ステータス別件数・最近更新された画像 50 件。
    ジョブが一度もなければ {"has_job": False}。
    """
    job = repo.get_latest_job(conn, shop)
    if job is None:
        return {"has_job": False}
    recent = repo.get_recent_images(conn, shop, limit=RECENT_LIMIT)
    return {
        "has_job": True,
        "job": {
            "id": job.id,
            "status": job.status,
            "mode": job.mode,
            "total_images": job.total_images,
            "processed_count": job.processed_count,
            "error_count": job.error_count,
            "skipped_count": job.skipped_count,
            "total_saved": job.total_saved,
            "current_image": job.current_image,
            "cancelled": job.cancelled,
            "notes": job.notes,
            "finished_at": job.finished_at,
        },
        "stats": repo.count_by_status(conn, shop),
        "recent_optimizations": [asdict(r) for r in recent],
    }


def get_webp_image(conn: sqlite3.Connection, shop: str, image_id: str) -> dict[str, Any]:
    """テーマから使う WebP 画像情報。最適化済みでなければ ImageNotOptimizedError。"""
    gid = normalize_image_id(image_id)
    record = repo.get_image(conn, shop, gid)
    if record is None or record.status != STATUS_COMPLETED:
        raise ImageNotOptimizedError(f"Image not optimized: {gid}")
    return {
        "image_id": record.image_id,
        "original_url": record.original_url,
        "webp_url": record.webp_url,
        "file_size": record.file_size,
        "webp_file_size": record.webp_file_size,
        "savings": savings_percent(record.file_size, record.webp_file_size),
    }


def get_dashboard_stats(conn: sqlite3.Connection, shop: str) -> dict[str, int]:
    counts = repo.count_by_status(conn, shop)
    return {
        "total_images": sum(counts.values()),
        "total_optimized": counts.get(STATUS_COMPLETED, 0),
        "total_savings": repo.get_total_savings(conn, shop),
    }


def get_recent_dataframe(conn: sqlite3.Connection, shop: str, limit: int = RECENT_LIMIT) -> pd.DataFrame:
    """最近の画像レコードを DataFrame で取得（CLI の --status 表示用）。"""
    records = repo.get_recent_images(conn, shop, limit=limit)
    if not records:
        return pd.DataFrame()
    data = [
        {
            "画像ID": r.image_id,
            "商品ID": r.product_id,
            "ステータス": r.status,
            "元サイズ": r.file_size,
            "WebPサイズ": r.webp_file_size,
            "削減率(%)": savings_percent(r.file_size, r.webp_file_size),
            "alt更新": r.alt_text_updated,
            "エラー": r.last_error or "",
            "更新日時": r.updated_at,
        }
        for r in records
    ]
    return pd.DataFrame(data)
