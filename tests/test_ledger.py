"""画像台帳のステータス遷移のテスト。"""
import pytest

from tests.conftest import SHOP
from tests.fakes import make_product
from webp_optimizer.errors import InvalidTransitionError, OptimizerError
from webp_optimizer.job import ledger
from webp_optimizer.store import repo

PRODUCT = make_product(1)
IMAGE = PRODUCT.images[0]


def _complete(conn):
    record = ledger.mark_processing(conn, SHOP, PRODUCT.id, IMAGE)
    return ledger.mark_completed(
        conn,
        record,
        webp_url="https://cdn.test/media/1.webp",
        webp_gid="gid://shopify/MediaImage/901",
        backup_url="https://cdn.test/files/backup-11.jpg",
        file_size=1000,
        webp_file_size=400,
        alt_text_updated=False,
    )


def test_processing_is_idempotent_upsert(conn):
    first = ledger.mark_processing(conn, SHOP, PRODUCT.id, IMAGE)
    second = ledger.mark_processing(conn, SHOP, PRODUCT.id, IMAGE)

    assert first.id == second.id
    assert second.status == "processing"
    assert second.original_url == IMAGE.url
    assert second.original_alt == IMAGE.alt
    assert repo.count_by_status(conn, SHOP) == {"processing": 1}


def test_completed_record_has_sizes(conn):
    record = _complete(conn)

    assert record.status == "completed"
    assert record.saved_bytes == 600
    assert record.backup_url == "https://cdn.test/files/backup-11.jpg"


def test_completed_requires_webp_url(conn):
    record = ledger.mark_processing(conn, SHOP, PRODUCT.id, IMAGE)
    with pytest.raises(ValueError):
        ledger.mark_completed(
            conn,
            record,
            webp_url="",
            webp_gid=None,
            backup_url="b",
            file_size=1,
            webp_file_size=1,
            alt_text_updated=False,
        )


def test_failed_then_retry(conn):
    failed = ledger.mark_failed(conn, SHOP, PRODUCT.id, IMAGE, "download failed")
    assert failed.status == "failed"
    assert failed.last_error == "download failed"

    retried = ledger.mark_processing(conn, SHOP, PRODUCT.id, IMAGE)
    assert retried.id == failed.id
    assert retried.status == "processing"
    assert retried.last_error is None


def test_failed_clears_webp_fields(conn):
    record = ledger.mark_processing(conn, SHOP, PRODUCT.id, IMAGE)
    repo.update_image(conn, record.id, {"webp_url": "stale", "file_size": 10})

    failed = ledger.mark_failed(conn, SHOP, PRODUCT.id, IMAGE, "boom")

    assert failed.webp_url is None
    assert failed.file_size is None


def test_completed_cannot_go_back_to_processing(conn):
    _complete(conn)
    with pytest.raises(InvalidTransitionError):
        ledger.mark_processing(conn, SHOP, PRODUCT.id, IMAGE)


def test_revert_and_restore(conn):
    record = _complete(conn)

    reverted = ledger.mark_reverted(conn, record, "gid://shopify/MediaImage/950")
    assert reverted.status == "reverted"
    assert reverted.alt_text_updated is False
    assert reverted.restored_media_gid == "gid://shopify/MediaImage/950"
    assert reverted.backup_url == record.backup_url

    restored = ledger.mark_restored(conn, reverted, "gid://shopify/MediaImage/951")
    assert restored.status == "restored"
    assert restored.restored_media_gid == "gid://shopify/MediaImage/951"


def test_restore_requires_reverted(conn):
    record = _complete(conn)
    with pytest.raises(InvalidTransitionError):
        ledger.mark_restored(conn, record, None)


@pytest.mark.parametrize(
    "current,target,allowed",
    [
        (None, "processing", True),
        ("pending", "processing", True),
        ("processing", "processing", True),
        ("processing", "completed", True),
        ("failed", "processing", True),
        ("failed", "completed", False),
        ("failed", "restored", True),
        ("completed", "reverted", True),
        ("completed", "failed", False),
        ("reverted", "restored", True),
        ("reverted", "completed", False),
        ("restored", "reverted", False),
    ],
)
def test_can_transition(current, target, allowed):
    assert ledger.can_transition(current, target) is allowed


def test_failed_with_original_deleted_keeps_backup(conn):
    ledger.mark_processing(conn, SHOP, PRODUCT.id, IMAGE)
    failed = ledger.mark_failed(
        conn,
        SHOP,
        PRODUCT.id,
        IMAGE,
        "Invalid image",
        backup_url="https://cdn.test/files/backup-11.jpg",
        backup_gid="gid://shopify/GenericFile/1",
        original_deleted=True,
    )

    assert failed.status == "failed"
    assert failed.original_deleted is True
    assert failed.backup_url == "https://cdn.test/files/backup-11.jpg"
    assert failed.backup_gid == "gid://shopify/GenericFile/1"

    restored = ledger.mark_restored(conn, failed, "gid://shopify/MediaImage/952")
    assert restored.status == "restored"
    assert restored.original_deleted is False


def test_restore_rejects_plain_failure(conn):
    ledger.mark_processing(conn, SHOP, PRODUCT.id, IMAGE)
    failed = ledger.mark_failed(conn, SHOP, PRODUCT.id, IMAGE, "download failed")

    assert failed.original_deleted is False
    assert failed.backup_url is None
    with pytest.raises(InvalidTransitionError):
        ledger.mark_restored(conn, failed, "gid://shopify/MediaImage/953")


def test_vanished_record_raises_optimizer_error(conn, monkeypatch):
    record = ledger.mark_processing(conn, SHOP, PRODUCT.id, IMAGE)
    monkeypatch.setattr(repo, "update_image", lambda *args, **kwargs: None)

    with pytest.raises(OptimizerError):
        ledger.mark_completed(
            conn,
            record,
            webp_url="https://cdn.test/media/1.webp",
            webp_gid="gid://shopify/MediaImage/901",
            backup_url="https://cdn.test/files/backup-11.jpg",
            file_size=1000,
            webp_file_size=400,
            alt_text_updated=False,
        )
