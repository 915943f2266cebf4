"""
ストアリポジトリの集約エントリポイント。
image_optimizations / optimization_jobs / seo_settings の CRUD を一元提供。
"""
from __future__ import annotations

from webp_optimizer.store.repo_images import (
    count_by_status,
    get_image,
    get_image_by_id,
    get_image_by_webp_gid,
    get_recent_images,
    get_total_savings,
    list_images_by_status,
    update_image,
    upsert_image,
)
from webp_optimizer.store.repo_jobs import (
    abandon_running_job,
    create_job,
    get_job,
    get_latest_job,
    get_running_job,
    is_cancel_requested,
    request_cancel,
    update_job,
)
from webp_optimizer.store.repo_settings import get_or_create_settings, update_settings

__all__ = [
    "count_by_status",
    "get_image",
    "get_image_by_id",
    "get_image_by_webp_gid",
    "get_recent_images",
    "get_total_savings",
    "list_images_by_status",
    "update_image",
    "upsert_image",
    "abandon_running_job",
    "create_job",
    "get_job",
    "get_latest_job",
    "get_running_job",
    "is_cancel_requested",
    "request_cancel",
    "update_job",
    "get_or_create_settings",
    "update_settings",
]
