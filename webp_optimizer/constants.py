"""ステータス値などの定数。"""
from __future__ import annotations

# 画像台帳（image_optimizations.status）
STATUS_PENDING = "pending"
STATUS_PROCESSING = "processing"
STATUS_COMPLETED = "completed"
STATUS_FAILED = "failed"
STATUS_REVERTED = "reverted"
STATUS_RESTORED = "restored"

# ジョブ（optimization_jobs.status）
JOB_RUNNING = "running"
JOB_COMPLETED = "completed"
JOB_CANCELLED = "cancelled"
JOB_FAILED = "failed"  # 商品一覧が取れない等、ジョブ全体の失敗

JOB_MODE_BULK = "bulk"
JOB_MODE_SINGLE = "single"

WEBP_MIME_TYPE = "image/webp"

# URL から推定できないときのバックアップ拡張子
DEFAULT_IMAGE_EXTENSION = "jpg"

EXTENSION_MIME_TYPES: dict[str, str] = {
    "jpg": "image/jpeg",
    "jpeg": "image/jpeg",
    "png": "image/png",
    "gif": "image/gif",
    "webp": "image/webp",
    "avif": "image/avif",
    "heic": "image/heic",
    "bmp": "image/bmp",
    "tif": "image/tiff",
    "tiff": "image/tiff",
}
