"""HTTP クライアント：タイムアウト・リトライ・指数バックオフ。"""
import os
import time
from typing import Any, Optional

import requests

USER_AGENT = "shopify-webp-optimizer/0.4"


def get_timeout_sec() -> int:
    return int(os.getenv("HTTP_TIMEOUT_SEC", "30"))


def get_retry_max() -> int:
    return int(os.getenv("HTTP_RETRY_MAX", "3"))


def get_retry_backoff_sec() -> float:
    return float(os.getenv("HTTP_RETRY_BACKOFF_SEC", "2"))


def backoff_delay(attempt: int, base: Optional[float] = None) -> float:
    """attempt 回目（0 始まり）の待ち秒数。"""
    base = get_retry_backoff_sec() if base is None else base
    return base * (2 ** attempt)


def _is_retryable(exc: Exception) -> bool:
    # 4xx（404 や 403）は何度取りに行っても同じ
    if isinstance(exc, requests.HTTPError) and exc.response is not None:
        return exc.response.status_code == 429 or exc.response.status_code >= 500
    return True


def download_bytes(
    url: str,
    timeout_sec: Optional[int] = None,
    retry_max: Optional[int] = None,
    retry_backoff_sec: Optional[float] = None,
    session: Optional[requests.Session] = None,
) -> bytes:
    """画像 URL からバイト列を取得。接続エラー・5xx・429 はリトライ。"""
    timeout_sec = timeout_sec or get_timeout_sec()
    retry_max = get_retry_max() if retry_max is None else retry_max
    use_session = session or requests
    last_exc: Optional[Exception] = None
    for attempt in range(retry_max + 1):
        try:
            r = use_session.get(url, timeout=timeout_sec, headers={"User-Agent": USER_AGENT})
            r.raise_for_status()
            return r.content
        except (requests.RequestException, OSError) as e:
            last_exc = e
            if attempt >= retry_max or not _is_retryable(e):
                break
            time.sleep(backoff_delay(attempt, retry_backoff_sec))
    raise last_exc  # type: ignore


def post_json(
    url: str,
    json_body: Any,
    headers: Optional[dict[str, str]] = None,
    timeout_sec: Optional[int] = None,
    session: Optional[requests.Session] = None,
) -> dict[str, Any]:
    """POST application/json。リトライ（429 / THROTTLED）は GraphQL クライアント側で行う。"""
    timeout_sec = timeout_sec or get_timeout_sec()
    use_session = session or requests
    h = {"Content-Type": "application/json", "User-Agent": USER_AGENT}
    h.update(headers or {})
    r = use_session.post(url, json=json_body, headers=h, timeout=timeout_sec)
    r.raise_for_status()
    return r.json() if r.content else {}


def post_multipart(
    url: str,
    fields: list[tuple[str, str]],
    file_field: str,
    filename: str,
    data: bytes,
    mime_type: str,
    timeout_sec: Optional[int] = None,
    session: Optional[requests.Session] = None,
) -> requests.Response:
    """
    multipart/form-data で POST。fields は順序どおり送り、ファイルは最後に付ける
    （署名付きアップロード先はファイルが末尾であることを要求する）。
    """
    timeout_sec = timeout_sec or get_timeout_sec()
    use_session = session or requests
    r = use_session.post(
        url,
        data=fields,
        files={file_field: (filename, data, mime_type)},
        timeout=timeout_sec,
    )
    r.raise_for_status()
    return r
