import pytest

from tests.fakes import FakeShopify, make_product
from webp_optimizer.job.params import OptimizeParams
from webp_optimizer.store import db

SHOP = "test-shop.myshopify.com"


@pytest.fixture
def conn(tmp_path):
    c = db.get_connection(str(tmp_path / "state.db"))
    db.init_schema(c)
    yield c
    c.close()


@pytest.fixture
def shopify():
    """2商品 × 2画像。"""
    return FakeShopify([make_product(1), make_product(2)])


@pytest.fixture
def params():
    return OptimizeParams(
        quality=80,
        max_width=0,
        max_height=0,
        preserve_metadata=False,
        products_page_size=50,
        media_page_size=50,
    )
