"""
画像台帳のステータス遷移。

    pending → processing → completed / failed
    failed → processing（再試行）
    completed → reverted → restored
    failed（元メディア削除済み）→ restored

processing → processing は中断後の再実行や並行ジョブで起こり得るため許可する。
failed → restored は original_deleted のレコードに限る（mark_restored で確認）。
"""
from __future__ import annotations

import sqlite3
from typing import Any, Optional

from webp_optimizer.constants import (
    STATUS_COMPLETED,
    STATUS_FAILED,
    STATUS_PENDING,
    STATUS_PROCESSING,
    STATUS_RESTORED,
    STATUS_REVERTED,
)
from webp_optimizer.errors import InvalidTransitionError, OptimizerError
from webp_optimizer.shopify.models import MediaImage
from webp_optimizer.store import repo
from webp_optimizer.store.models import ImageOptimizationRow

ALLOWED_TRANSITIONS: dict[Optional[str], frozenset[str]] = {
    None: frozenset({STATUS_PROCESSING, STATUS_FAILED}),
    STATUS_PENDING: frozenset({STATUS_PROCESSING, STATUS_FAILED}),
    STATUS_PROCESSING: frozenset({STATUS_PROCESSING, STATUS_COMPLETED, STATUS_FAILED}),
    STATUS_FAILED: frozenset({STATUS_PROCESSING, STATUS_FAILED, STATUS_RESTORED}),
    STATUS_COMPLETED: frozenset({STATUS_REVERTED}),
    STATUS_REVERTED: frozenset({STATUS_RESTORED}),
    STATUS_RESTORED: frozenset(),
}


def can_transition(current: Optional[str], target: str) -> bool:
    return target in ALLOWED_TRANSITIONS.get(current, frozenset())


def check_transition(image_id: str, current: Optional[str], target: str) -> None:
    if not can_transition(current, target):
        raise InvalidTransitionError(image_id, current, target)


def _require(updated: Optional[ImageOptimizationRow], record_id: str) -> ImageOptimizationRow:
    if updated is None:
        raise OptimizerError(f"image record disappeared: {record_id}")
    return updated


def mark_processing(
    conn: sqlite3.Connection, shop: str, product_id: str, image: MediaImage
) -> ImageOptimizationRow:
    """処理開始。(shop, image_id) で upsert するので再試行でもレコードは1件。"""
    existing = repo.get_image(conn, shop, image.id)
    check_transition(image.id, existing.status if existing else None, STATUS_PROCESSING)
    return repo.upsert_image(
        conn, shop, image.id, product_id, image.url, image.alt, STATUS_PROCESSING
    )


def mark_completed(
    conn: sqlite3.Connection,
    record: ImageOptimizationRow,
    *,
    webp_url: str,
    webp_gid: Optional[str],
    backup_url: str,
    file_size: int,
    webp_file_size: int,
    alt_text_updated: bool,
    backup_gid: Optional[str] = None,
) -> ImageOptimizationRow:
    """差し替え成功後にのみ呼ぶ。completed には webp_url と両サイズが必須。"""
    check_transition(record.image_id, record.status, STATUS_COMPLETED)
    if not webp_url or file_size is None or webp_file_size is None:
        raise ValueError("completed records require webp_url, file_size and webp_file_size")
    updated = repo.update_image(
        conn,
        record.id,
        {
            "status": STATUS_COMPLETED,
            "webp_url": webp_url,
            "webp_gid": webp_gid,
            "backup_url": backup_url,
            "backup_gid": backup_gid,
            "file_size": file_size,
            "webp_file_size": webp_file_size,
            "alt_text_updated": 1 if alt_text_updated else 0,
            "last_error": None,
            "original_deleted": 0,
        },
    )
    return _require(updated, record.id)


def mark_failed(
    conn: sqlite3.Connection,
    shop: str,
    product_id: str,
    image: MediaImage,
    error: str,
    *,
    backup_url: Optional[str] = None,
    backup_gid: Optional[str] = None,
    original_deleted: bool = False,
) -> ImageOptimizationRow:
    """
    処理失敗。WebP 関連の値は持たせない。

    バックアップ済みならその URL を残す。original_deleted=True は商品から元メディアが
    消えた状態で、restore_missing がバックアップから作り直す。
    """
    existing = repo.get_image(conn, shop, image.id)
    check_transition(image.id, existing.status if existing else None, STATUS_FAILED)
    record = repo.upsert_image(
        conn, shop, image.id, product_id, image.url, image.alt, STATUS_FAILED, last_error=error
    )
    fields: dict[str, Any] = {
        "webp_url": None,
        "webp_gid": None,
        "file_size": None,
        "webp_file_size": None,
        "original_deleted": 1 if original_deleted else 0,
    }
    if backup_url:
        fields["backup_url"] = backup_url
        fields["backup_gid"] = backup_gid
    updated = repo.update_image(conn, record.id, fields)
    return _require(updated, record.id)


def mark_reverted(
    conn: sqlite3.Connection, record: ImageOptimizationRow, restored_media_gid: Optional[str]
) -> ImageOptimizationRow:
    """元画像の再作成・WebP 削除の後に呼ぶ。"""
    check_transition(record.image_id, record.status, STATUS_REVERTED)
    updated = repo.update_image(
        conn,
        record.id,
        {
            "status": STATUS_REVERTED,
            "alt_text_updated": 0,
            "restored_media_gid": restored_media_gid,
            "last_error": None,
        },
    )
    return _require(updated, record.id)


def mark_restored(
    conn: sqlite3.Connection, record: ImageOptimizationRow, restored_media_gid: Optional[str]
) -> ImageOptimizationRow:
    """復元漏れの画像、または差し替え途中で消えた元画像を再作成した後に呼ぶ。"""
    check_transition(record.image_id, record.status, STATUS_RESTORED)
    if record.status == STATUS_FAILED and not record.original_deleted:
        raise InvalidTransitionError(record.image_id, record.status, STATUS_RESTORED)
    updated = repo.update_image(
        conn,
        record.id,
        {
            "status": STATUS_RESTORED,
            "restored_media_gid": restored_media_gid,
            "last_error": None,
            "original_deleted": 0,
        },
    )
    return _require(updated, record.id)
