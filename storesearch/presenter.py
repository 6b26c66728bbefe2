"""表示用の整形ルール.

一覧の行・詳細ポップアップに出す文字列をここで決める。
画面部品には依存しない。
"""

from __future__ import annotations

from dataclasses import dataclass
from decimal import Decimal

from storesearch.models import SearchResult

NOTHING_FOUND = "(Nothing found)"
UNKNOWN_ARTIST = "Unknown"
FREE = "Free"
NETWORK_ERROR_MESSAGE = (
    "Whoops... There was an error accessing the iTunes Store. Please try again."
)

_CURRENCY_SYMBOLS = {
    "USD": "$",
    "CAD": "CA$",
    "AUD": "A$",
    "EUR": "€",
    "GBP": "£",
    "JPY": "¥",
}
# 小数を使わない通貨
_ZERO_DECIMAL = {"JPY", "KRW"}


def artist_text(result: SearchResult) -> str:
    return result.artist_name or UNKNOWN_ARTIST


def row_subtitle(result: SearchResult) -> str:
    """一覧の2行目. アーティスト名が空なら "Unknown" だけを出す."""
    if not result.artist_name:
        return UNKNOWN_ARTIST
    return f"{result.artist_name} ({result.kind})"


def price_text(price: Decimal, currency: str) -> str:
    """価格を表示用文字列にする. 0 は "Free"."""
    if price == 0:
        return FREE

    amount = f"{price:,.0f}" if currency in _ZERO_DECIMAL else f"{price:,.2f}"
    symbol = _CURRENCY_SYMBOLS.get(currency)
    if symbol:
        return f"{symbol}{amount}"
    if currency:
        return f"{amount} {currency}"
    return amount


class ResultListModel:
    """検索結果一覧の行データ.

    検索前は0行、結果なしは "(Nothing found)" の1行、
    それ以外は結果の件数分の行になる。
    """

    def __init__(self) -> None:
        self.has_searched = False
        self.results: list[SearchResult] = []

    def update(self, results: list[SearchResult], has_searched: bool = True) -> None:
        self.results = list(results)
        self.has_searched = has_searched

    @property
    def row_count(self) -> int:
        if not self.has_searched:
            return 0
        if not self.results:
            return 1
        return len(self.results)

    def row(self, index: int) -> tuple[str, str]:
        """(タイトル, サブタイトル) を返す."""
        if not self.results:
            return NOTHING_FOUND, ""
        result = self.results[index]
        return result.name, row_subtitle(result)

    def is_selectable(self, index: int) -> bool:
        return 0 <= index < len(self.results)

    def result_at(self, index: int) -> SearchResult | None:
        if not self.is_selectable(index):
            return None
        return self.results[index]


@dataclass(frozen=True)
class DetailModel:
    """詳細ポップアップに表示する内容."""

    name: str
    artist: str
    kind: str
    genre: str
    price: str
    store_url: str
    image_url: str

    @classmethod
    def from_result(cls, result: SearchResult) -> DetailModel:
        return cls(
            name=result.name,
            artist=artist_text(result),
            kind=result.kind,
            genre=result.genre,
            price=price_text(result.price, result.currency),
            store_url=result.store_url,
            image_url=result.image_large,
        )
