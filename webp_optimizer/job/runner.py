"""最適化ジョブのオーケストレーション。"""
from __future__ import annotations

import logging
import sqlite3
from dataclasses import dataclass
from typing import Any, Callable, Optional

from webp_optimizer.constants import (
    JOB_CANCELLED,
    JOB_COMPLETED,
    JOB_FAILED,
    JOB_MODE_BULK,
    JOB_MODE_SINGLE,
    STATUS_COMPLETED,
    STATUS_PROCESSING,
)
from webp_optimizer.errors import InvalidTransitionError, OptimizerError, SwapError
from webp_optimizer.job import ledger
from webp_optimizer.job.params import OptimizeParams
from webp_optimizer.job.pipeline import Fetcher, PipelineResult, backup_and_transcode
from webp_optimizer.job.swap import swap_media
from webp_optimizer.seo.metadata import build_variables, derive_alt_text, derive_file_name
from webp_optimizer.shopify.models import MediaImage, Product
from webp_optimizer.store import repo
from webp_optimizer.store.models import OptimizationJobRow, SeoSettingsRow
from webp_optimizer.util.datetime_utils import utc_now_iso
from webp_optimizer.util.log import log_job_summary

logger = logging.getLogger(__name__)

ProgressCallback = Callable[[OptimizationJobRow], None]


@dataclass
class Candidate:
    product: Product
    image: MediaImage
    image_number: int  # 商品内での 1 始まりの番号

    @property
    def label(self) -> str:
        return f"{self.product.title} (image {self.image_number})"


@dataclass
class JobCounters:
    processed: int = 0
    errors: int = 0
    skipped: int = 0
    total_saved: int = 0

    def as_fields(self) -> dict[str, int]:
        return {
            "processed_count": self.processed,
            "error_count": self.errors,
            "skipped_count": self.skipped,
            "total_saved": self.total_saved,
        }


def collect_candidates(products: list[Product], image_id: Optional[str] = None) -> list[Candidate]:
    """商品 → メディアの順に候補を並べる。image_id 指定時はその1件だけ。"""
    candidates: list[Candidate] = []
    for product in products:
        for index, image in enumerate(product.images, start=1):
            if image_id and image.id != image_id:
                continue
            candidates.append(Candidate(product=product, image=image, image_number=index))
    return candidates


def run_optimization(
    conn: sqlite3.Connection,
    client: Any,
    shop: str,
    params: OptimizeParams,
    *,
    image_id: Optional[str] = None,
    settings: Optional[SeoSettingsRow] = None,
    fetch: Optional[Fetcher] = None,
    progress_callback: Optional[ProgressCallback] = None,
) -> OptimizationJobRow:
    """
    1回の最適化ジョブ。商品一覧 → 画像ごとにバックアップ・変換・差し替え → 台帳更新。

    image_id 未指定なら全画像（completed・取り消し済みはスキップ）、指定時はその1件を再処理する。
    画像単位の失敗はカウントして続行し、中止フラグは画像と画像の間でのみ確認する。
    """
    mode = JOB_MODE_SINGLE if image_id else JOB_MODE_BULK
    if image_id:
        existing = repo.get_image(conn, shop, image_id)
        if existing and not ledger.can_transition(existing.status, STATUS_PROCESSING):
            raise InvalidTransitionError(image_id, existing.status, STATUS_PROCESSING)

    seo = settings or repo.get_or_create_settings(conn, shop)
    job = repo.create_job(conn, shop, mode=mode)
    counters = JobCounters()

    try:
        products = client.list_products()
        candidates = collect_candidates(products, image_id)
        total = len(candidates)
        job = repo.update_job(conn, job.id, total_images=total) or job
        logger.info("処理開始: job_id=%s 対象=%d枚 mode=%s", job.id, total, mode)
        if progress_callback:
            progress_callback(job)

        if image_id and not candidates:
            logger.warning("Image %s not found in product media", image_id)
            notes = f"Image {image_id} not found"
            existing = repo.get_image(conn, shop, image_id)
            if existing and existing.original_deleted:
                notes += " (original media was deleted; run --restore-missing)"
            job = _finish(conn, job.id, JOB_FAILED, counters, notes=notes)
            return job

        for candidate in candidates:
            if repo.is_cancel_requested(conn, job.id):
                done = counters.processed + counters.errors + counters.skipped
                logger.info("実行が中止されました。処理済み: %d / %d 枚", done, total)
                job = _finish(
                    conn, job.id, JOB_CANCELLED, counters,
                    notes=f"User cancelled. Processed {done}/{total} images",
                )
                return job

            repo.update_job(conn, job.id, current_image=candidate.label)
            _process_candidate(
                conn,
                client,
                shop,
                candidate,
                params,
                seo,
                fetch,
                counters,
                skip_done=(mode == JOB_MODE_BULK),
            )
            job = repo.update_job(conn, job.id, **counters.as_fields()) or job
            if progress_callback:
                progress_callback(job)

        job = _finish(conn, job.id, JOB_COMPLETED, counters)
    except Exception as e:
        logger.exception("Job error: %s", e)
        job = _finish(conn, job.id, JOB_FAILED, counters, notes=str(e))
    finally:
        log_job_summary(
            logger,
            job.id,
            job.status,
            job.total_images,
            job.processed_count,
            job.skipped_count,
            job.error_count,
            job.total_saved,
            job.notes or "",
        )
    return job


def preview_candidates(
    conn: sqlite3.Connection, client: Any, shop: str, image_id: Optional[str] = None
) -> dict[str, int]:
    """ドライラン用。商品メディアを数えるだけで、Shopify・台帳には書き込まない。"""
    candidates = collect_candidates(client.list_products(), image_id)
    completed = sum(1 for c in candidates if _should_skip(conn, shop, c.image.id))
    summary = {
        "total": len(candidates),
        "already_completed": completed,
        "to_process": len(candidates) - completed,
    }
    logger.info(
        "[DRY-RUN] 対象=%d枚 最適化済み=%d枚 処理予定=%d枚",
        summary["total"],
        summary["already_completed"],
        summary["to_process"],
    )
    return summary


def request_cancel(conn: sqlite3.Connection, shop: str) -> bool:
    """実行中ジョブの中止をリクエスト。次の画像に進む前に反映される。"""
    requested = repo.request_cancel(conn, shop)
    if requested:
        logger.info("中止リクエストを送信しました: shop=%s", shop)
    else:
        logger.info("実行中のジョブはありません: shop=%s", shop)
    return requested


def _should_skip(conn: sqlite3.Connection, shop: str, media_id: str) -> bool:
    """
    一括モードで処理しない画像なら True。

    completed の元画像、取り消し済み（reverted / restored）で処理中に戻せない画像、
    差し替えで作った WebP メディアそのもの。
    """
    existing = repo.get_image(conn, shop, media_id)
    if existing and not ledger.can_transition(existing.status, STATUS_PROCESSING):
        return True
    produced = repo.get_image_by_webp_gid(conn, shop, media_id)
    return bool(produced and produced.status == STATUS_COMPLETED)


def _process_candidate(
    conn: sqlite3.Connection,
    client: Any,
    shop: str,
    candidate: Candidate,
    params: OptimizeParams,
    settings: Optional[SeoSettingsRow],
    fetch: Optional[Fetcher],
    counters: JobCounters,
    skip_done: bool,
) -> None:
    """画像1件を処理してカウンタを更新する。例外は外に出さない（台帳は failed）。"""
    product, image = candidate.product, candidate.image
    if skip_done and _should_skip(conn, shop, image.id):
        counters.skipped += 1
        return

    result: Optional[PipelineResult] = None
    try:
        record = ledger.mark_processing(conn, shop, product.id, image)
        variables = build_variables(product, image, candidate.image_number)
        alt, alt_applied = derive_alt_text(settings, variables, image.alt)
        file_name = derive_file_name(settings, variables, image.id)

        result = backup_and_transcode(client, image, params, file_name, fetch)
        new_media_id, new_url = swap_media(client, product.id, image.id, result.resource_url, alt)

        ledger.mark_completed(
            conn,
            record,
            webp_url=new_url,
            webp_gid=new_media_id,
            backup_url=result.backup_url,
            file_size=result.original_size,
            webp_file_size=result.webp_size,
            alt_text_updated=alt_applied,
            backup_gid=result.backup_gid,
        )
        counters.processed += 1
        counters.total_saved += result.original_size - result.webp_size
    except Exception as e:
        logger.warning(
            "画像処理失敗: image=%s product=%s error=%s", image.id, product.id, e
        )
        counters.errors += 1
        original_deleted = isinstance(e, SwapError) and e.original_deleted
        if original_deleted:
            logger.error(
                "元メディアが削除済みです。--restore-missing でバックアップから作り直せます: image=%s backup=%s",
                image.id,
                result.backup_url if result else None,
            )
        try:
            ledger.mark_failed(
                conn,
                shop,
                product.id,
                image,
                str(e),
                backup_url=result.backup_url if result else None,
                backup_gid=result.backup_gid if result else None,
                original_deleted=original_deleted,
            )
        except InvalidTransitionError as te:
            logger.warning("台帳を failed にできません: %s", te)


def _finish(
    conn: sqlite3.Connection,
    job_id: str,
    status: str,
    counters: JobCounters,
    notes: Optional[str] = None,
) -> OptimizationJobRow:
    job = repo.update_job(
        conn,
        job_id,
        status=status,
        current_image=None,
        notes=notes,
        finished_at=utc_now_iso(),
        **counters.as_fields(),
    )
    if job is None:
        raise OptimizerError(f"job missing: {job_id}")
    return job
