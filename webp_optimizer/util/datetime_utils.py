"""日時ユーティリティ。"""
from __future__ import annotations

import uuid
from datetime import datetime, timezone


def new_id() -> str:
    """ジョブ・台帳レコードの ID（uuid4 hex）。"""
    return uuid.uuid4().hex


def utc_now_iso() -> str:
    """UTC 現在時刻の ISO 形式文字列。"""
    return datetime.now(timezone.utc).strftime("%Y-%m-%dT%H:%M:%S.%fZ")
