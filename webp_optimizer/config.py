"""設定の読み込み・保存。CLI / サーバーで共有。"""
from __future__ import annotations

import os
from pathlib import Path
from typing import Any, Optional

import yaml
from dotenv import load_dotenv

load_dotenv()

ROOT = Path(__file__).resolve().parent.parent

DEFAULT_API_VERSION = "2024-10"


def default_config() -> dict[str, Any]:
    """デフォルト設定を返す。"""
    return {
        "optimize": {
            "quality": 85,
            "max_width": 2048,  # 0 でリサイズなし
            "max_height": 2048,
            "preserve_metadata": False,
        },
        "shopify": {
            "api_version": DEFAULT_API_VERSION,
            "products_page_size": 50,
            "media_page_size": 10,
        },
        "seo": {
            "alt_text_template": "#product_name# - #vendor#",
            "file_name_template": "#product_name#-#image_number#",
            "auto_apply_on_optimize": False,
        },
    }


def load_config(config_path: Optional[str] = None) -> dict[str, Any]:
    """config.yaml を読み込む。存在しなければデフォルトを返す。読み込みエラー時もデフォルトを返す。"""
    path = config_path or os.getenv("CONFIG_PATH") or str(ROOT / "config.yaml")
    if not os.path.isfile(path):
        return default_config()
    try:
        with open(path, "r", encoding="utf-8") as f:
            loaded = yaml.safe_load(f) or {}
    except (OSError, yaml.YAMLError):
        return default_config()
    return _merge(default_config(), loaded)


def save_config(config: dict[str, Any], config_path: Optional[str] = None) -> None:
    """config.yaml に保存する。"""
    path = config_path or os.getenv("CONFIG_PATH") or str(ROOT / "config.yaml")
    with open(path, "w", encoding="utf-8") as f:
        yaml.dump(config, f, allow_unicode=True, default_flow_style=False)


def _merge(base: dict[str, Any], override: dict[str, Any]) -> dict[str, Any]:
    """セクション単位でデフォルトに上書きする（一部キーだけの config.yaml を許容）。"""
    for key, value in override.items():
        if isinstance(value, dict) and isinstance(base.get(key), dict):
            base[key] = {**base[key], **value}
        else:
            base[key] = value
    return base
