"""optimization_jobs テーブルの CRUD。"""
from __future__ import annotations

import sqlite3
from typing import Any, Optional

from webp_optimizer.constants import JOB_FAILED, JOB_MODE_BULK, JOB_RUNNING
from webp_optimizer.errors import JobAlreadyRunningError, OptimizerError
from webp_optimizer.store.models import OptimizationJobRow
from webp_optimizer.util.datetime_utils import new_id, utc_now_iso

_UNSET: Any = object()


def _row_to_job(row: sqlite3.Row) -> OptimizationJobRow:
    return OptimizationJobRow(
        id=row["id"],
        shop=row["shop"],
        status=row["status"],
        mode=row["mode"],
        total_images=row["total_images"] or 0,
        processed_count=row["processed_count"] or 0,
        error_count=row["error_count"] or 0,
        skipped_count=row["skipped_count"] or 0,
        total_saved=row["total_saved"] or 0,
        current_image=row["current_image"],
        cancelled=bool(row["cancelled"]),
        notes=row["notes"],
        created_at=row["created_at"],
        updated_at=row["updated_at"],
        finished_at=row["finished_at"],
    )


def create_job(
    conn: sqlite3.Connection, shop: str, mode: str = JOB_MODE_BULK, total_images: int = 0
) -> OptimizationJobRow:
    """
    実行中ジョブを新規登録。同じショップで running のジョブがあれば
    部分ユニークインデックスで弾かれ JobAlreadyRunningError。
    """
    job_id = new_id()
    now = utc_now_iso()
    try:
        conn.execute(
            "INSERT INTO optimization_jobs (id, shop, status, mode, total_images, created_at, updated_at) "
            "VALUES (?, ?, ?, ?, ?, ?, ?)",
            (job_id, shop, JOB_RUNNING, mode, total_images, now, now),
        )
        conn.commit()
    except sqlite3.IntegrityError as e:
        conn.rollback()
        raise JobAlreadyRunningError(shop) from e
    job = get_job(conn, job_id)
    if job is None:
        raise OptimizerError(f"job missing after insert: {job_id}")
    return job


def update_job(
    conn: sqlite3.Connection,
    job_id: str,
    *,
    status: Optional[str] = None,
    total_images: Optional[int] = None,
    processed_count: Optional[int] = None,
    error_count: Optional[int] = None,
    skipped_count: Optional[int] = None,
    total_saved: Optional[int] = None,
    current_image: Optional[str] = _UNSET,
    notes: Optional[str] = None,
    finished_at: Optional[str] = None,
) -> Optional[OptimizationJobRow]:
    """ジョブを更新。current_image は None を渡すとクリアされる。"""
    updates: list[str] = []
    args: list[Any] = []
    if status is not None:
        updates.append("status = ?")
        args.append(status)
    if total_images is not None:
        updates.append("total_images = ?")
        args.append(total_images)
    if processed_count is not None:
        updates.append("processed_count = ?")
        args.append(processed_count)
    if error_count is not None:
        updates.append("error_count = ?")
        args.append(error_count)
    if skipped_count is not None:
        updates.append("skipped_count = ?")
        args.append(skipped_count)
    if total_saved is not None:
        updates.append("total_saved = ?")
        args.append(total_saved)
    if current_image is not _UNSET:
        updates.append("current_image = ?")
        args.append(current_image)
    if notes is not None:
        updates.append("notes = ?")
        args.append(notes)
    if finished_at is not None:
        updates.append("finished_at = ?")
        args.append(finished_at)
    if not updates:
        return get_job(conn, job_id)
    updates.append("updated_at = ?")
    args.append(utc_now_iso())
    args.append(job_id)
    conn.execute(f"UPDATE optimization_jobs SET {', '.join(updates)} WHERE id = ?", args)
    conn.commit()
    return get_job(conn, job_id)


def get_job(conn: sqlite3.Connection, job_id: str) -> Optional[OptimizationJobRow]:
    row = conn.execute("SELECT * FROM optimization_jobs WHERE id = ?", (job_id,)).fetchone()
    return _row_to_job(row) if row else None


def get_latest_job(conn: sqlite3.Connection, shop: str) -> Optional[OptimizationJobRow]:
    """直近に作成されたジョブ（状態を問わない）。"""
    row = conn.execute(
        "SELECT * FROM optimization_jobs WHERE shop = ? ORDER BY created_at DESC, rowid DESC LIMIT 1",
        (shop,),
    ).fetchone()
    return _row_to_job(row) if row else None


def get_running_job(conn: sqlite3.Connection, shop: str) -> Optional[OptimizationJobRow]:
    row = conn.execute(
        "SELECT * FROM optimization_jobs WHERE shop = ? AND status = ?",
        (shop, JOB_RUNNING),
    ).fetchone()
    return _row_to_job(row) if row else None


def is_cancel_requested(conn: sqlite3.Connection, job_id: str) -> bool:
    """中止フラグを DB から読み直す（別プロセスからの中止にも対応）。"""
    row = conn.execute("SELECT cancelled FROM optimization_jobs WHERE id = ?", (job_id,)).fetchone()
    return bool(row and row["cancelled"])


def request_cancel(conn: sqlite3.Connection, shop: str) -> bool:
    """実行中ジョブに中止フラグを立てる。実行中ジョブがなければ False。"""
    cursor = conn.execute(
        "UPDATE optimization_jobs SET cancelled = 1, updated_at = ? WHERE shop = ? AND status = ?",
        (utc_now_iso(), shop, JOB_RUNNING),
    )
    conn.commit()
    return cursor.rowcount > 0


def abandon_running_job(conn: sqlite3.Connection, shop: str, notes: str) -> bool:
    """
    プロセスが落ちて running のまま残ったジョブを failed にして枠を解放する。
    実行中のワーカーがいる場合は request_cancel を使うこと。
    """
    now = utc_now_iso()
    cursor = conn.execute(
        "UPDATE optimization_jobs SET status = ?, current_image = NULL, notes = ?, "
        "finished_at = ?, updated_at = ? WHERE shop = ? AND status = ?",
        (JOB_FAILED, notes, now, now, shop, JOB_RUNNING),
    )
    conn.commit()
    return cursor.rowcount > 0
