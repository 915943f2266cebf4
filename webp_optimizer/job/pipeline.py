"""
画像1件の前処理：元画像取得 → バックアップ → WebP 変換 → ステージングアップロード。

商品メディアには一切触らない。バックアップが成功するまで変換に進まないので、
差し替え（削除）の前に必ず元画像のコピーが存在する。
"""
from __future__ import annotations

import logging
import time
from dataclasses import dataclass
from typing import Any, Callable, Optional

from webp_optimizer.constants import WEBP_MIME_TYPE
from webp_optimizer.errors import BackupError, FetchError, TranscodeError, UploadError
from webp_optimizer.job.params import OptimizeParams
from webp_optimizer.seo.metadata import backup_file_name
from webp_optimizer.shopify.models import MediaImage
from webp_optimizer.util import http
from webp_optimizer.util.image import infer_extension, mime_type_for, to_webp, validate_quality

logger = logging.getLogger(__name__)

Fetcher = Callable[[str], bytes]


# fileCreate 直後は url が null。READY になるまで問い合わせる回数
BACKUP_READY_ATTEMPTS = 5


@dataclass
class Backup:
    url: str
    file_id: Optional[str]  # GenericFile の ID。url がステージング先のままでも後から解決できる


@dataclass
class PipelineResult:
    backup_url: str
    backup_gid: Optional[str]
    webp_bytes: bytes
    original_size: int
    webp_size: int
    resource_url: str  # WebP のステージング先（productCreateMedia の originalSource）
    file_name: str


def fetch_original(url: str, fetch: Optional[Fetcher] = None) -> bytes:
    """元画像をダウンロード。失敗・空データは FetchError。"""
    use_fetch = fetch or http.download_bytes
    try:
        raw = use_fetch(url)
    except Exception as e:
        raise FetchError(f"download failed: {e}") from e
    if not raw:
        raise FetchError(f"empty image data: {url[:100]}")
    return raw


def backup_original(client: Any, image_id: str, source_url: str, raw: bytes) -> Backup:
    """元画像のバイト列を Files API に保存し、恒久 URL とファイル ID を返す。"""
    filename = backup_file_name(image_id, source_url)
    mime_type = mime_type_for(infer_extension(source_url))
    try:
        target = client.staged_upload("FILE", filename, mime_type)
        client.upload_to_target(target, raw, filename, mime_type)
        result = client.file_create(target.resource_url, alt=f"Backup of {image_id}")
    except Exception as e:
        raise BackupError(f"backup failed for {image_id}: {e}") from e
    if not result.ok:
        raise BackupError(f"backup failed for {image_id}: {result.error_message()}")
    created = result.payload
    if created is None:
        raise BackupError(f"backup failed for {image_id}: fileCreate returned no file")
    if created.url:
        return Backup(url=created.url, file_id=created.id)
    url = wait_for_file_url(client, created.id)
    if url:
        return Backup(url=url, file_id=created.id)
    # 期限付きのステージング URL。復元時は file_id から URL を引き直す
    logger.warning(
        "バックアップの処理が終わっていません。ファイル ID で後から解決します: image=%s file=%s",
        image_id,
        created.id,
    )
    return Backup(url=target.resource_url, file_id=created.id)


def wait_for_file_url(client: Any, file_id: str, attempts: Optional[int] = None) -> Optional[str]:
    """ファイルが READY になるまで待って恒久 URL を返す。間に合わなければ None。"""
    attempts = BACKUP_READY_ATTEMPTS if attempts is None else attempts
    for attempt in range(attempts):
        info = client.get_file(file_id)
        if info and info.ready:
            return info.url
        if info and info.status == "FAILED":
            raise BackupError(f"backup file {file_id} failed processing")
        if attempt < attempts - 1:
            time.sleep(http.backoff_delay(attempt))
    return None


def transcode(raw: bytes, params: OptimizeParams) -> bytes:
    try:
        return to_webp(
            raw,
            quality=params.quality,
            max_width=params.max_width,
            max_height=params.max_height,
            preserve_metadata=params.preserve_metadata,
        )
    except Exception as e:
        raise TranscodeError(f"WebP conversion failed: {e}") from e


def upload_webp(client: Any, data: bytes, file_name: str) -> str:
    """WebP をステージングアップロードし、resourceUrl を返す。"""
    try:
        target = client.staged_upload("IMAGE", file_name, WEBP_MIME_TYPE)
        client.upload_to_target(target, data, file_name, WEBP_MIME_TYPE)
    except UploadError:
        raise
    except Exception as e:
        raise UploadError(f"Upload failed: {e}") from e
    return target.resource_url


def backup_and_transcode(
    client: Any,
    image: MediaImage,
    params: OptimizeParams,
    file_name: str,
    fetch: Optional[Fetcher] = None,
) -> PipelineResult:
    """画像1件の前処理。各段階の失敗は PipelineError のサブクラスで送出する。"""
    validate_quality(params.quality)
    raw = fetch_original(image.url, fetch)
    backup = backup_original(client, image.id, image.url, raw)
    webp = transcode(raw, params)
    resource_url = upload_webp(client, webp, file_name)
    logger.debug(
        "pipeline ok: image=%s original=%d webp=%d backup=%s", image.id, len(raw), len(webp), backup.url
    )
    return PipelineResult(
        backup_url=backup.url,
        backup_gid=backup.file_id,
        webp_bytes=webp,
        original_size=len(raw),
        webp_size=len(webp),
        resource_url=resource_url,
        file_name=file_name,
    )
