"""
最適化の取り消し（元画像に戻す）と、復元漏れの再作成。

元画像はバックアップ（ファイル ID から引き直した URL → 保存済み URL）を優先し、
作成に失敗したら最適化前の URL で作り直す。
"""
from __future__ import annotations

import logging
import sqlite3
from dataclasses import dataclass
from typing import Any

from webp_optimizer.constants import STATUS_COMPLETED, STATUS_FAILED, STATUS_REVERTED
from webp_optimizer.errors import SwapError
from webp_optimizer.job import ledger
from webp_optimizer.job.swap import create_or_raise, delete_quietly
from webp_optimizer.store import repo
from webp_optimizer.store.models import ImageOptimizationRow

logger = logging.getLogger(__name__)


@dataclass
class RevertSummary:
    reverted: int = 0
    errors: int = 0
    skipped: int = 0


def _original_sources(client: Any, record: ImageOptimizationRow) -> list[str]:
    """元画像の作成元を優先順に返す。"""
    sources: list[str] = []
    if record.backup_gid:
        try:
            info = client.get_file(record.backup_gid)
        except Exception as e:
            logger.warning("バックアップ URL の解決に失敗: file=%s error=%s", record.backup_gid, e)
            info = None
        if info and info.ready:
            sources.append(info.url)
    for source in (record.backup_url, record.original_url):
        if source and source not in sources:
            sources.append(source)
    if not sources:
        raise SwapError(f"{record.image_id}: no backup_url or original_url to restore from")
    return sources


def _create_original(client: Any, record: ImageOptimizationRow, sources: list[str]) -> str:
    """元画像を商品メディアとして作り直し、新メディア ID を返す。候補を順に試す。"""
    errors: list[str] = []
    for source in sources:
        try:
            media_id, _ = create_or_raise(client, record.product_id, source, record.original_alt)
            return media_id
        except SwapError as e:
            logger.warning(
                "元画像の作成に失敗、次の候補を試します: image=%s source=%s error=%s",
                record.image_id,
                source,
                e,
            )
            errors.append(str(e))
    raise SwapError("; ".join(errors))


def _revert_record(conn: sqlite3.Connection, client: Any, record: ImageOptimizationRow) -> None:
    """WebP メディアを削除し、元画像を再作成して reverted にする。"""
    sources = _original_sources(client, record)
    delete_quietly(client, record.product_id, record.webp_gid)
    new_media_id = _create_original(client, record, sources)
    ledger.mark_reverted(conn, record, new_media_id)


def revert_all(conn: sqlite3.Connection, client: Any, shop: str) -> RevertSummary:
    """completed の全レコードを元画像に戻す。失敗したものは completed のまま。"""
    summary = RevertSummary()
    records = repo.list_images_by_status(conn, shop, STATUS_COMPLETED)
    logger.info("元画像への復元開始: %d件", len(records))
    for record in records:
        try:
            _revert_record(conn, client, record)
            summary.reverted += 1
        except Exception as e:
            logger.warning("復元失敗: image=%s error=%s", record.image_id, e)
            summary.errors += 1
    logger.info(
        "復元完了: reverted=%d errors=%d", summary.reverted, summary.errors
    )
    return summary


def revert_single(conn: sqlite3.Connection, client: Any, shop: str, image_id: str) -> RevertSummary:
    """1件だけ元に戻す。completed 以外（未登録を含む）は何もしない。"""
    summary = RevertSummary()
    record = repo.get_image(conn, shop, image_id)
    if record is None or record.status != STATUS_COMPLETED:
        logger.info(
            "復元対象外: image=%s status=%s", image_id, record.status if record else "(none)"
        )
        summary.skipped += 1
        return summary
    try:
        _revert_record(conn, client, record)
        summary.reverted += 1
    except Exception as e:
        logger.warning("復元失敗: image=%s error=%s", image_id, e)
        summary.errors += 1
    return summary


def restore_missing(
    conn: sqlite3.Connection, client: Any, shop: str, check_existing: bool = True
) -> RevertSummary:
    """
    reverted のレコード、および差し替え途中で元メディアが消えた failed のレコードについて
    元画像を作り直し restored にする。

    check_existing=True のときは商品の現在のメディアを確認し、
    復元時に作ったメディア（failed なら元メディア）がまだ残っていればスキップする（重複作成防止）。
    """
    summary = RevertSummary()
    records = repo.list_images_by_status(conn, shop, STATUS_REVERTED)
    records += [
        r for r in repo.list_images_by_status(conn, shop, STATUS_FAILED) if r.original_deleted
    ]
    media_cache: dict[str, set[str]] = {}
    for record in records:
        try:
            expected = record.image_id if record.status == STATUS_FAILED else record.restored_media_gid
            if check_existing and expected:
                if record.product_id not in media_cache:
                    current = client.get_product_media(record.product_id)
                    media_cache[record.product_id] = {m.id for m in current}
                if expected in media_cache[record.product_id]:
                    summary.skipped += 1
                    continue
            new_media_id = _create_original(client, record, _original_sources(client, record))
            ledger.mark_restored(conn, record, new_media_id)
            summary.reverted += 1
        except Exception as e:
            logger.warning("再作成失敗: image=%s error=%s", record.image_id, e)
            summary.errors += 1
    logger.info(
        "復元漏れの再作成: restored=%d skipped=%d errors=%d",
        summary.reverted,
        summary.skipped,
        summary.errors,
    )
    return summary
