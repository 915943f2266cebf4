"""SQLite テーブル作成と接続。"""
import os
import sqlite3
from pathlib import Path
from typing import Optional

# デフォルトはプロジェクトルートの data/state.db
def _default_db_path() -> str:
    base = Path(__file__).resolve().parent.parent.parent
    data_dir = base / "data"
    data_dir.mkdir(parents=True, exist_ok=True)
    return str(data_dir / "state.db")

def get_connection(db_path: Optional[str] = None) -> sqlite3.Connection:
    path = db_path or os.getenv("STATE_DB_PATH") or _default_db_path()
    Path(path).parent.mkdir(parents=True, exist_ok=True)
    # 別プロセスからの中止リクエストと書き込みが重なるため、ロック待ちを長めに取る
    conn = sqlite3.connect(path, timeout=30, check_same_thread=False)
    conn.row_factory = sqlite3.Row
    return conn

def init_schema(conn: sqlite3.Connection) -> None:
    conn.executescript("""
        CREATE TABLE IF NOT EXISTS image_optimizations (
            id TEXT PRIMARY KEY,
            shop TEXT NOT NULL,
            product_id TEXT NOT NULL,
            image_id TEXT NOT NULL,
            original_url TEXT NOT NULL,
            original_gid TEXT,
            original_alt TEXT NOT NULL DEFAULT '',
            webp_url TEXT,
            webp_gid TEXT,
            backup_url TEXT,
            backup_gid TEXT,
            file_size INTEGER,
            webp_file_size INTEGER,
            status TEXT NOT NULL DEFAULT 'pending',
            alt_text_updated INTEGER NOT NULL DEFAULT 0,
            last_error TEXT,
            restored_media_gid TEXT,
            original_deleted INTEGER NOT NULL DEFAULT 0,
            created_at TEXT NOT NULL,
            updated_at TEXT NOT NULL,
            UNIQUE(shop, image_id)
        );

        CREATE TABLE IF NOT EXISTS optimization_jobs (
            id TEXT PRIMARY KEY,
            shop TEXT NOT NULL,
            status TEXT NOT NULL DEFAULT 'running',
            mode TEXT NOT NULL DEFAULT 'bulk',
            total_images INTEGER NOT NULL DEFAULT 0,
            processed_count INTEGER NOT NULL DEFAULT 0,
            error_count INTEGER NOT NULL DEFAULT 0,
            skipped_count INTEGER NOT NULL DEFAULT 0,
            total_saved INTEGER NOT NULL DEFAULT 0,
            current_image TEXT,
            cancelled INTEGER NOT NULL DEFAULT 0,
            notes TEXT,
            created_at TEXT NOT NULL,
            updated_at TEXT NOT NULL,
            finished_at TEXT
        );

        CREATE TABLE IF NOT EXISTS seo_settings (
            shop TEXT PRIMARY KEY,
            alt_text_template TEXT NOT NULL,
            file_name_template TEXT NOT NULL,
            auto_apply_on_optimize INTEGER NOT NULL DEFAULT 0,
            created_at TEXT NOT NULL,
            updated_at TEXT NOT NULL
        );

        CREATE INDEX IF NOT EXISTS idx_image_optimizations_shop_status
            ON image_optimizations(shop, status);
        CREATE INDEX IF NOT EXISTS idx_optimization_jobs_shop_created
            ON optimization_jobs(shop, created_at);
        -- 1ショップにつき実行中ジョブは1件まで
        CREATE UNIQUE INDEX IF NOT EXISTS idx_optimization_jobs_one_running
            ON optimization_jobs(shop) WHERE status = 'running';
    """)
    _add_missing_columns(conn)
    conn.commit()


# 既存 DB に後から足した列（列名 → 定義）
_ADDED_IMAGE_COLUMNS = {
    "backup_gid": "TEXT",
    "original_deleted": "INTEGER NOT NULL DEFAULT 0",
}


def _add_missing_columns(conn: sqlite3.Connection) -> None:
    existing = {r["name"] for r in conn.execute("PRAGMA table_info(image_optimizations)")}
    for name, ddl in _ADDED_IMAGE_COLUMNS.items():
        if name not in existing:
            conn.execute(f"ALTER TABLE image_optimizations ADD COLUMN {name} {ddl}")
