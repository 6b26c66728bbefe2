"""検索処理の例外定義.

利用者に見せるのは「ネットワークエラー」1種類だけだが、
ログ・テスト用に種類ごとのクラスを分けている。
"""

from __future__ import annotations


class StoreSearchError(Exception):
    """全エラーの基底クラス."""


class InvalidInputError(StoreSearchError):
    """検索 URL を組み立てられない入力（空文字など）."""


class SearchCancelledError(StoreSearchError):
    """後続の検索で置き換えられた、または明示的に中止されたリクエスト."""


class TransportError(StoreSearchError):
    """DNS・接続・タイムアウトなどネットワーク層の失敗."""


class HTTPStatusError(StoreSearchError):
    """200 以外の HTTP ステータス."""

    def __init__(self, status_code: int, url: str = "") -> None:
        super().__init__(f"HTTP {status_code}: {url}")
        self.status_code = status_code
        self.url = url


class MalformedResponseError(StoreSearchError):
    """JSON デコード失敗、またはスキーマ不一致."""
