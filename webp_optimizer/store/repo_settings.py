"""seo_settings テーブルの CRUD（ショップごとに1行）。"""
from __future__ import annotations

import sqlite3
from typing import Any, Optional

from webp_optimizer.store.models import SeoSettingsRow
from webp_optimizer.util.datetime_utils import utc_now_iso


def _row_to_settings(row: sqlite3.Row) -> SeoSettingsRow:
    return SeoSettingsRow(
        shop=row["shop"],
        alt_text_template=row["alt_text_template"],
        file_name_template=row["file_name_template"],
        auto_apply_on_optimize=bool(row["auto_apply_on_optimize"]),
        created_at=row["created_at"],
        updated_at=row["updated_at"],
    )


def get_or_create_settings(
    conn: sqlite3.Connection, shop: str, defaults: Optional[dict[str, Any]] = None
) -> SeoSettingsRow:
    """設定を取得。未作成ならデフォルト値（config.yaml の seo セクション）で作成する。"""
    d = defaults or {}
    now = utc_now_iso()
    conn.execute(
        """
        INSERT OR IGNORE INTO seo_settings (
            shop, alt_text_template, file_name_template, auto_apply_on_optimize, created_at, updated_at
        ) VALUES (?, ?, ?, ?, ?, ?)
        """,
        (
            shop,
            d.get("alt_text_template", "#product_name# - #vendor#"),
            d.get("file_name_template", "#product_name#-#image_number#"),
            1 if d.get("auto_apply_on_optimize") else 0,
            now,
            now,
        ),
    )
    conn.commit()
    row = conn.execute("SELECT * FROM seo_settings WHERE shop = ?", (shop,)).fetchone()
    return _row_to_settings(row)


def update_settings(
    conn: sqlite3.Connection,
    shop: str,
    *,
    alt_text_template: Optional[str] = None,
    file_name_template: Optional[str] = None,
    auto_apply_on_optimize: Optional[bool] = None,
    defaults: Optional[dict[str, Any]] = None,
) -> SeoSettingsRow:
    """設定を保存。指定した項目のみ更新。"""
    get_or_create_settings(conn, shop, defaults)
    updates: list[str] = []
    args: list[Any] = []
    if alt_text_template is not None:
        updates.append("alt_text_template = ?")
        args.append(alt_text_template)
    if file_name_template is not None:
        updates.append("file_name_template = ?")
        args.append(file_name_template)
    if auto_apply_on_optimize is not None:
        updates.append("auto_apply_on_optimize = ?")
        args.append(1 if auto_apply_on_optimize else 0)
    if updates:
        updates.append("updated_at = ?")
        args.append(utc_now_iso())
        args.append(shop)
        conn.execute(f"UPDATE seo_settings SET {', '.join(updates)} WHERE shop = ?", args)
        conn.commit()
    return get_or_create_settings(conn, shop, defaults)
