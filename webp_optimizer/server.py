"""
読み取り API（進捗ポーリング・テーマ向け WebP 画像照会）。

    uvicorn webp_optimizer.server:app
"""
from __future__ import annotations

from typing import Iterator, Optional

from fastapi import Depends, FastAPI, HTTPException
from fastapi.middleware.cors import CORSMiddleware

from webp_optimizer import __version__, queries
from webp_optimizer.errors import ImageNotOptimizedError
from webp_optimizer.store import db

app = FastAPI(title="Shopify WebP Optimizer", version=__version__)
app.add_middleware(
    CORSMiddleware,
    allow_origins=["*"],
    allow_methods=["GET"],
    allow_headers=["*"],
)


def get_conn() -> Iterator:
    conn = db.get_connection()
    db.init_schema(conn)
    try:
        yield conn
    finally:
        conn.close()


def _require_shop(shop: Optional[str]) -> str:
    if not shop:
        raise HTTPException(status_code=400, detail="Missing shop parameter")
    return shop


@app.get("/")
def health():
    return {"ok": True, "version": __version__}


@app.get("/api/optimization-status")
def optimization_status(shop: Optional[str] = None, conn=Depends(get_conn)):
    return queries.get_status_snapshot(conn, _require_shop(shop))


@app.get("/api/dashboard")
def dashboard(shop: Optional[str] = None, conn=Depends(get_conn)):
    return queries.get_dashboard_stats(conn, _require_shop(shop))


@app.get("/api/webp-image/{image_id:path}")
def webp_image(image_id: str, shop: Optional[str] = None, conn=Depends(get_conn)):
    shop = _require_shop(shop)
    try:
        return queries.get_webp_image(conn, shop, image_id)
    except ImageNotOptimizedError:
        raise HTTPException(status_code=404, detail="Image not optimized")
