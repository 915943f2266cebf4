"""読み取り照会のテスト。"""
import pytest

from tests.conftest import SHOP
from webp_optimizer.errors import ImageNotOptimizedError
from webp_optimizer.job.runner import run_optimization
from webp_optimizer.queries import (
    get_dashboard_stats,
    get_recent_dataframe,
    get_status_snapshot,
    get_webp_image,
    normalize_image_id,
    savings_percent,
)


def test_snapshot_without_job(conn):
    assert get_status_snapshot(conn, SHOP) == {"has_job": False}


def test_snapshot_after_run(conn, shopify, params):
    shopify.fail_fetch.add("https://cdn.test/products/2-2.jpg?v=1")
    job = run_optimization(conn, shopify, SHOP, params, fetch=shopify.fetch)

    snapshot = get_status_snapshot(conn, SHOP)

    assert snapshot["has_job"] is True
    assert snapshot["job"]["id"] == job.id
    assert snapshot["job"]["status"] == "completed"
    assert snapshot["job"]["processed_count"] == 3
    assert snapshot["stats"] == {"completed": 3, "failed": 1}
    assert len(snapshot["recent_optimizations"]) == 4


def test_webp_image_lookup(conn, shopify, params):
    run_optimization(conn, shopify, SHOP, params, fetch=shopify.fetch)

    info = get_webp_image(conn, SHOP, "11")

    assert info["image_id"] == "gid://shopify/MediaImage/11"
    assert info["webp_url"]
    assert info["savings"] == savings_percent(info["file_size"], info["webp_file_size"])


def test_webp_image_not_optimized(conn):
    with pytest.raises(ImageNotOptimizedError):
        get_webp_image(conn, SHOP, "gid://shopify/MediaImage/11")


def test_normalize_image_id():
    assert normalize_image_id("123") == "gid://shopify/MediaImage/123"
    assert normalize_image_id("gid://shopify/MediaImage/123") == "gid://shopify/MediaImage/123"


def test_savings_percent():
    assert savings_percent(1000, 250) == 75.0
    assert savings_percent(0, 0) == 0.0
    assert savings_percent(None, 10) == 0.0


def test_dashboard_and_dataframe(conn, shopify, params):
    job = run_optimization(conn, shopify, SHOP, params, fetch=shopify.fetch)

    stats = get_dashboard_stats(conn, SHOP)
    assert stats == {"total_images": 4, "total_optimized": 4, "total_savings": job.total_saved}

    df = get_recent_dataframe(conn, SHOP)
    assert len(df) == 4
    assert set(df["ステータス"]) == {"completed"}


def test_dataframe_empty(conn):
    assert get_recent_dataframe(conn, SHOP).empty
