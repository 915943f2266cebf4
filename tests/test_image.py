"""WebP 変換ユーティリティのテスト。"""
import io

import pytest
from PIL import Image

from tests.fakes import make_image_bytes
from webp_optimizer.util.image import infer_extension, mime_type_for, to_webp, validate_quality


def _open(data: bytes) -> Image.Image:
    return Image.open(io.BytesIO(data))


def test_to_webp_produces_webp():
    out = to_webp(make_image_bytes((40, 30)), quality=85)
    img = _open(out)
    assert img.format == "WEBP"
    assert img.size == (40, 30)


def test_to_webp_downscales_keeping_aspect_ratio():
    out = to_webp(make_image_bytes((200, 100)), quality=80, max_width=100, max_height=100)
    assert _open(out).size == (100, 50)


def test_to_webp_zero_bounds_disable_resize():
    out = to_webp(make_image_bytes((200, 100)), max_width=0, max_height=0)
    assert _open(out).size == (200, 100)


def test_to_webp_keeps_transparency():
    img = Image.new("RGBA", (10, 10), (255, 0, 0, 0))
    buf = io.BytesIO()
    img.save(buf, format="PNG")
    assert _open(to_webp(buf.getvalue())).mode == "RGBA"


def test_to_webp_rejects_garbage():
    with pytest.raises(Exception):
        to_webp(b"definitely not an image")


@pytest.mark.parametrize("quality", [-1, 101, 85.0, "85", True, None])
def test_validate_quality_rejects_invalid(quality):
    with pytest.raises(ValueError):
        validate_quality(quality)


@pytest.mark.parametrize("quality", [0, 1, 85, 100])
def test_validate_quality_accepts_range(quality):
    assert validate_quality(quality) == quality


def test_infer_extension():
    assert infer_extension("https://cdn.test/files/a.JPEG?v=1") == "jpeg"
    assert infer_extension("https://cdn.test/files/a.png") == "png"
    assert infer_extension("https://cdn.test/files/noext") == "jpg"
    assert infer_extension("https://cdn.test/files.d/noext") == "jpg"
    assert infer_extension("") == "jpg"
    assert mime_type_for("png") == "image/png"
    assert mime_type_for("unknown") == "image/jpeg"
