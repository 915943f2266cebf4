"""例外クラス。

画像1件の失敗（PipelineError 系）はジョブ側で捕捉して台帳に記録し、
バッチ全体は止めない。それ以外は呼び出し元へ伝播する。
"""
from __future__ import annotations


class OptimizerError(Exception):
    """このパッケージの例外の基底。"""


class PipelineError(OptimizerError):
    """画像1件の処理失敗。"""


class FetchError(PipelineError):
    """元画像のダウンロード失敗。"""


class BackupError(PipelineError):
    """元画像のバックアップ失敗。変換・差し替えには進まない。"""


class TranscodeError(PipelineError):
    """WebP 変換失敗。"""


class UploadError(PipelineError):
    """ステージングアップロード失敗。"""


class SwapError(PipelineError):
    """商品メディアの差し替え失敗。original_deleted は旧メディアの削除まで済んでいたか。"""

    def __init__(self, message: str, original_deleted: bool = False) -> None:
        super().__init__(message)
        self.original_deleted = original_deleted


class ShopifyGraphQLError(OptimizerError):
    """GraphQL レスポンスのトップレベル errors。"""

    def __init__(self, errors: list[dict]) -> None:
        self.errors = errors
        messages = [str(e.get("message", e)) for e in errors] or ["unknown error"]
        super().__init__("; ".join(messages))

    @property
    def throttled(self) -> bool:
        return any(
            (e.get("extensions") or {}).get("code") == "THROTTLED" for e in self.errors
        )


class InvalidTransitionError(OptimizerError):
    """台帳ステータスの不正な遷移。"""

    def __init__(self, image_id: str, current: str | None, target: str) -> None:
        self.image_id = image_id
        self.current = current
        self.target = target
        super().__init__(f"{image_id}: cannot move from {current or '(none)'} to {target}")


class JobAlreadyRunningError(OptimizerError):
    """同じショップで実行中のジョブがある。"""

    def __init__(self, shop: str) -> None:
        self.shop = shop
        super().__init__(f"a job is already running for {shop}")


class ImageNotOptimizedError(OptimizerError):
    """最適化済みレコードが存在しない。"""
