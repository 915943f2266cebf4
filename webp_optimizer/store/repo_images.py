"""image_optimizations テーブルの CRUD。ステータス遷移の検証は job.ledger で行う。"""
from __future__ import annotations

import sqlite3
from typing import Any, Optional

from webp_optimizer.errors import OptimizerError
from webp_optimizer.store.models import ImageOptimizationRow
from webp_optimizer.util.datetime_utils import new_id, utc_now_iso

# update_image で更新できる列
_UPDATABLE_COLUMNS = {
    "product_id",
    "original_url",
    "original_alt",
    "webp_url",
    "webp_gid",
    "backup_url",
    "backup_gid",
    "file_size",
    "webp_file_size",
    "status",
    "alt_text_updated",
    "last_error",
    "restored_media_gid",
    "original_deleted",
}


def _row_to_image(row: sqlite3.Row) -> ImageOptimizationRow:
    return ImageOptimizationRow(
        id=row["id"],
        shop=row["shop"],
        product_id=row["product_id"],
        image_id=row["image_id"],
        original_url=row["original_url"],
        original_gid=row["original_gid"],
        original_alt=row["original_alt"] or "",
        webp_url=row["webp_url"],
        webp_gid=row["webp_gid"],
        backup_url=row["backup_url"],
        backup_gid=row["backup_gid"],
        file_size=row["file_size"],
        webp_file_size=row["webp_file_size"],
        status=row["status"],
        alt_text_updated=bool(row["alt_text_updated"]),
        last_error=row["last_error"],
        restored_media_gid=row["restored_media_gid"],
        original_deleted=bool(row["original_deleted"]),
        created_at=row["created_at"],
        updated_at=row["updated_at"],
    )


def get_image(conn: sqlite3.Connection, shop: str, image_id: str) -> Optional[ImageOptimizationRow]:
    """(shop, image_id) でレコードを取得。"""
    row = conn.execute(
        "SELECT * FROM image_optimizations WHERE shop = ? AND image_id = ?",
        (shop, image_id),
    ).fetchone()
    return _row_to_image(row) if row else None


def get_image_by_id(conn: sqlite3.Connection, record_id: str) -> Optional[ImageOptimizationRow]:
    row = conn.execute("SELECT * FROM image_optimizations WHERE id = ?", (record_id,)).fetchone()
    return _row_to_image(row) if row else None


def upsert_image(
    conn: sqlite3.Connection,
    shop: str,
    image_id: str,
    product_id: str,
    original_url: str,
    original_alt: str,
    status: str,
    last_error: Optional[str] = None,
) -> ImageOptimizationRow:
    """
    画像レコードを登録または更新。既存レコードはステータスとエラーのみ更新し、
    original_* は最初に記録した値を保持する。
    """
    now = utc_now_iso()
    conn.execute(
        """
        INSERT INTO image_optimizations (
            id, shop, product_id, image_id, original_url, original_gid, original_alt,
            status, last_error, created_at, updated_at
        ) VALUES (?, ?, ?, ?, ?, ?, ?, ?, ?, ?, ?)
        ON CONFLICT(shop, image_id) DO UPDATE SET
            status = excluded.status,
            last_error = excluded.last_error,
            updated_at = excluded.updated_at
        """,
        (
            new_id(), shop, product_id, image_id, original_url, image_id, original_alt or "",
            status, last_error, now, now,
        ),
    )
    conn.commit()
    record = get_image(conn, shop, image_id)
    if record is None:
        raise OptimizerError(f"image record missing after upsert: {image_id}")
    return record


def update_image(
    conn: sqlite3.Connection, record_id: str, fields: dict[str, Any]
) -> Optional[ImageOptimizationRow]:
    """id で画像レコードを更新。None を渡した列は NULL になる。"""
    unknown = set(fields) - _UPDATABLE_COLUMNS
    if unknown:
        raise ValueError(f"unknown columns: {sorted(unknown)}")
    if not fields:
        return get_image_by_id(conn, record_id)
    columns = list(fields)
    args: list[Any] = [fields[c] for c in columns]
    args.extend([utc_now_iso(), record_id])
    assignments = ", ".join(f"{c} = ?" for c in columns)
    conn.execute(
        f"UPDATE image_optimizations SET {assignments}, updated_at = ? WHERE id = ?",
        args,
    )
    conn.commit()
    return get_image_by_id(conn, record_id)


def list_images_by_status(
    conn: sqlite3.Connection, shop: str, status: str
) -> list[ImageOptimizationRow]:
    """ステータスで絞り込んだレコード一覧（登録順）。"""
    rows = conn.execute(
        "SELECT * FROM image_optimizations WHERE shop = ? AND status = ? ORDER BY created_at, id",
        (shop, status),
    ).fetchall()
    return [_row_to_image(r) for r in rows]


def get_recent_images(
    conn: sqlite3.Connection, shop: str, limit: int = 50
) -> list[ImageOptimizationRow]:
    """更新日時の新しい順に limit 件。"""
    rows = conn.execute(
        "SELECT * FROM image_optimizations WHERE shop = ? ORDER BY updated_at DESC LIMIT ?",
        (shop, limit),
    ).fetchall()
    return [_row_to_image(r) for r in rows]


def count_by_status(conn: sqlite3.Connection, shop: str) -> dict[str, int]:
    """ステータスごとの件数。"""
    rows = conn.execute(
        "SELECT status, COUNT(*) AS n FROM image_optimizations WHERE shop = ? GROUP BY status",
        (shop,),
    ).fetchall()
    return {r["status"]: r["n"] for r in rows}


def get_total_savings(conn: sqlite3.Connection, shop: str) -> int:
    """最適化済み（completed）画像の削減バイト数の合計。"""
    row = conn.execute(
        """
        SELECT COALESCE(SUM(file_size - webp_file_size), 0)
        FROM image_optimizations
        WHERE shop = ? AND status = 'completed'
          AND file_size IS NOT NULL AND webp_file_size IS NOT NULL
        """,
        (shop,),
    ).fetchone()
    return int(row[0] or 0)


def get_image_by_webp_gid(
    conn: sqlite3.Connection, shop: str, webp_gid: str
) -> Optional[ImageOptimizationRow]:
    """差し替え後のメディア ID からレコードを引く。"""
    row = conn.execute(
        "SELECT * FROM image_optimizations WHERE shop = ? AND webp_gid = ?",
        (shop, webp_gid),
    ).fetchone()
    return _row_to_image(row) if row else None
