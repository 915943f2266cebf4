"""
alt テキスト・ファイル名用の簡易テンプレート。
#key# 形式のプレースホルダーを置換するだけで、置換結果の再展開はしない。
"""
from __future__ import annotations

import re
from typing import Mapping

_WHITESPACE_RE = re.compile(r"\s+")
# 末尾の区切り文字（- _ | ,）と前後の空白
_TRAILING_SEPARATORS_RE = re.compile(r"(?:\s*[-_|,])+\s*$")
_SLUG_INVALID_RE = re.compile(r"[^a-z0-9-]")
_HYPHENS_RE = re.compile(r"-{2,}")


def render(template: str, variables: Mapping[str, str]) -> str:
    """
    template 内の #key# を variables の値で置換する。
    1パスで置換するため、値に含まれる #...# は展開されない。
    未知のプレースホルダーはそのまま残す。
    """
    if not template:
        return ""
    if variables:
        keys = sorted(variables, key=len, reverse=True)
        pattern = re.compile("#(" + "|".join(re.escape(k) for k in keys) + ")#")
        text = pattern.sub(lambda m: str(variables[m.group(1)] or ""), template)
    else:
        text = template
    text = _WHITESPACE_RE.sub(" ", text).strip()
    return _TRAILING_SEPARATORS_RE.sub("", text).strip()


def slugify(text: str) -> str:
    """ファイル名用スラッグ。英小文字・数字・ハイフンのみ。"""
    slug = _WHITESPACE_RE.sub("-", (text or "").lower())
    slug = _SLUG_INVALID_RE.sub("", slug)
    slug = _HYPHENS_RE.sub("-", slug)
    return slug.strip("-")
