"""元画像への復元・復元漏れ再作成のテスト。"""
from tests.conftest import SHOP
from webp_optimizer.job.revert import restore_missing, revert_all, revert_single
from webp_optimizer.job.runner import run_optimization
from webp_optimizer.store import repo


def _optimize(conn, shopify, params):
    return run_optimization(conn, shopify, SHOP, params, fetch=shopify.fetch)


def test_revert_all_restores_from_backup(conn, shopify, params):
    _optimize(conn, shopify, params)
    completed = {r.image_id: r for r in repo.list_images_by_status(conn, SHOP, "completed")}

    summary = revert_all(conn, shopify, SHOP)

    assert summary.reverted == 4
    assert summary.errors == 0
    creates = shopify.calls_named("create_media")[-4:]
    assert all(c[2].startswith("https://cdn.test/files/backup-") for c in creates)
    assert creates[0][3] == "old alt 1-1"
    for image_id, before in completed.items():
        after = repo.get_image(conn, SHOP, image_id)
        assert after.status == "reverted"
        assert after.backup_url == before.backup_url
        assert after.restored_media_gid
    # WebP メディアは削除されている
    remaining = {m.id for p in shopify.products.values() for m in p.images}
    assert not remaining & {r.webp_gid for r in completed.values()}


def test_revert_uses_original_url_without_backup(conn, shopify, params):
    _optimize(conn, shopify, params)
    record = repo.get_image(conn, SHOP, "gid://shopify/MediaImage/11")
    repo.update_image(conn, record.id, {"backup_url": None, "backup_gid": None})

    revert_single(conn, shopify, SHOP, "gid://shopify/MediaImage/11")

    assert shopify.calls_named("create_media")[-1][2] == record.original_url


def test_revert_falls_back_to_original_url_when_backup_is_rejected(conn, shopify, params):
    _optimize(conn, shopify, params)
    record = repo.get_image(conn, SHOP, "gid://shopify/MediaImage/11")
    shopify.create_fail_prefixes = ["https://cdn.test/files/"]

    summary = revert_single(conn, shopify, SHOP, "gid://shopify/MediaImage/11")

    assert summary.reverted == 1
    sources = [c[2] for c in shopify.calls_named("create_media")[-2:]]
    assert sources == [record.backup_url, record.original_url]
    reverted = repo.get_image(conn, SHOP, "gid://shopify/MediaImage/11")
    assert reverted.status == "reverted"
    assert reverted.restored_media_gid


def test_revert_failure_keeps_completed(conn, shopify, params):
    _optimize(conn, shopify, params)
    shopify.create_errors = ["Invalid source"]

    summary = revert_all(conn, shopify, SHOP)

    assert summary.reverted == 0
    assert summary.errors == 4
    assert len(repo.list_images_by_status(conn, SHOP, "completed")) == 4


def test_revert_single_skips_non_completed(conn, shopify, params):
    summary = revert_single(conn, shopify, SHOP, "gid://shopify/MediaImage/11")

    assert (summary.reverted, summary.errors, summary.skipped) == (0, 0, 1)
    assert shopify.calls_named("create_media") == []


def test_restore_missing_skips_existing_media(conn, shopify, params):
    _optimize(conn, shopify, params)
    revert_all(conn, shopify, SHOP)

    summary = restore_missing(conn, shopify, SHOP)

    assert summary.skipped == 4
    assert summary.reverted == 0
    assert len(repo.list_images_by_status(conn, SHOP, "reverted")) == 4


def test_restore_missing_recreates_deleted_media(conn, shopify, params):
    _optimize(conn, shopify, params)
    revert_all(conn, shopify, SHOP)
    # 復元したメディアが手動で削除された
    record = repo.get_image(conn, SHOP, "gid://shopify/MediaImage/21")
    shopify.delete_media(record.product_id, [record.restored_media_gid])

    summary = restore_missing(conn, shopify, SHOP)

    assert summary.reverted == 1
    assert summary.skipped == 3
    restored = repo.get_image(conn, SHOP, "gid://shopify/MediaImage/21")
    assert restored.status == "restored"
    assert restored.backup_url == record.backup_url
    assert restored.restored_media_gid != record.restored_media_gid


def test_restore_missing_without_check_recreates_all(conn, shopify, params):
    _optimize(conn, shopify, params)
    revert_all(conn, shopify, SHOP)

    summary = restore_missing(conn, shopify, SHOP, check_existing=False)

    assert summary.reverted == 4
    assert shopify.calls_named("get_product_media") == []
    assert len(repo.list_images_by_status(conn, SHOP, "restored")) == 4
