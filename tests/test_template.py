"""テンプレート描画・スラッグ・ファイル名のテスト。"""
from tests.fakes import make_product
from webp_optimizer.seo.metadata import (
    backup_file_name,
    build_variables,
    derive_alt_text,
    derive_file_name,
)
from webp_optimizer.seo.template import render, slugify
from webp_optimizer.store.models import SeoSettingsRow


def _settings(auto_apply=True, alt="#product_name# - #vendor#", file_name="#product_name#-#image_number#"):
    return SeoSettingsRow(
        shop="s",
        alt_text_template=alt,
        file_name_template=file_name,
        auto_apply_on_optimize=auto_apply,
        created_at="",
        updated_at="",
    )


def test_render_replaces_placeholders():
    assert render("#product_name# - #vendor#", {"product_name": "Shirt", "vendor": "Acme"}) == "Shirt - Acme"


def test_render_strips_dangling_separator():
    assert render("#vendor#", {"vendor": ""}) == ""
    assert render("#product_name# - #vendor#", {"product_name": "Shirt", "vendor": ""}) == "Shirt"
    assert render("#product_name# - | , #vendor#", {"product_name": "A", "vendor": ""}) == "A"


def test_render_collapses_whitespace():
    assert render("  #a#   and   #b#  ", {"a": "x", "b": "y"}) == "x and y"


def test_render_does_not_expand_substituted_values():
    assert render("#a#", {"a": "#b#", "b": "nested"}) == "#b#"


def test_render_leaves_unknown_placeholders():
    assert render("#product_name# #missing#", {"product_name": "Shirt"}) == "Shirt #missing#"


def test_render_prefers_longest_key():
    assert render("#product_name#", {"product": "P", "product_name": "Shirt"}) == "Shirt"


def test_slugify():
    assert slugify("Shirt - Acme Co.!!") == "shirt-acme-co"
    assert slugify("  Hello   World  ") == "hello-world"
    assert slugify("#missing#") == "missing"
    assert slugify("日本語") == ""


def test_build_variables_uses_one_based_number():
    product = make_product(3)
    variables = build_variables(product, product.images[1], 2)
    assert variables["product_name"] == "Product 3"
    assert variables["product_handle"] == "product-3"
    assert variables["image_number"] == "2"
    assert variables["alt_text"] == "old alt 3-2"


def test_derive_alt_text_falls_back_when_disabled_or_empty():
    variables = {"product_name": "Shirt", "vendor": "Acme"}
    assert derive_alt_text(_settings(), variables, "orig") == ("Shirt - Acme", True)
    assert derive_alt_text(_settings(auto_apply=False), variables, "orig") == ("orig", False)
    assert derive_alt_text(_settings(alt="#vendor#"), {"vendor": ""}, "orig") == ("orig", False)
    assert derive_alt_text(None, variables, "orig") == ("orig", False)


def test_derive_file_name_never_empty():
    image_id = "gid://shopify/MediaImage/123"
    variables = {"product_name": "Blue Shirt", "image_number": "1"}
    assert derive_file_name(_settings(), variables, image_id) == "blue-shirt-1.webp"
    assert derive_file_name(_settings(file_name="#product_name#"), {"product_name": "日本語"}, image_id) == (
        "optimized-123.webp"
    )
    assert derive_file_name(_settings(auto_apply=False), variables, image_id) == "optimized-123.webp"


def test_backup_file_name_infers_extension():
    image_id = "gid://shopify/MediaImage/55"
    assert backup_file_name(image_id, "https://cdn.test/a/b.png?v=123") == "backup-55.png"
    assert backup_file_name(image_id, "https://cdn.test/a/noext?v=1") == "backup-55.jpg"
    assert backup_file_name(image_id, "https://cdn.test/a/file.xyz") == "backup-55.jpg"
