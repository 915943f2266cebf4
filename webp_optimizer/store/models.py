"""ストア用データモデル。"""
from __future__ import annotations

from dataclasses import dataclass
from typing import Optional


@dataclass
class ImageOptimizationRow:
    id: str
    shop: str
    product_id: str
    image_id: str
    original_url: str
    original_gid: Optional[str]
    original_alt: str
    webp_url: Optional[str]
    webp_gid: Optional[str]
    backup_url: Optional[str]  # 元画像の恒久コピー（Files API）
    backup_gid: Optional[str]  # バックアップファイルの GenericFile ID（URL の再解決用）
    file_size: Optional[int]
    webp_file_size: Optional[int]
    status: str  # pending / processing / completed / failed / reverted / restored
    alt_text_updated: bool
    last_error: Optional[str]
    restored_media_gid: Optional[str]  # 復元時に作成したメディア ID
    original_deleted: bool  # 差し替え途中で元メディアだけ消えた（--restore-missing の対象）
    created_at: str
    updated_at: str

    @property
    def saved_bytes(self) -> int:
        if self.file_size is None or self.webp_file_size is None:
            return 0
        return self.file_size - self.webp_file_size


@dataclass
class OptimizationJobRow:
    id: str
    shop: str
    status: str  # running / completed / cancelled / failed
    mode: str  # bulk / single
    total_images: int
    processed_count: int
    error_count: int
    skipped_count: int
    total_saved: int
    current_image: Optional[str]
    cancelled: bool
    notes: Optional[str]
    created_at: str
    updated_at: str
    finished_at: Optional[str]


@dataclass
class SeoSettingsRow:
    shop: str
    alt_text_template: str
    file_name_template: str
    auto_apply_on_optimize: bool
    created_at: str
    updated_at: str
