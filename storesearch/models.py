"""データモデル定義."""

from __future__ import annotations

from dataclasses import dataclass
from decimal import Decimal
from enum import Enum


class Category(Enum):
    """検索カテゴリ。値は iTunes API の entity パラメータ."""

    ALL = ""
    MUSIC = "musicTrack"
    SOFTWARE = "software"
    EBOOKS = "ebook"

    @property
    def entity(self) -> str:
        return self.value

    @classmethod
    def from_entity(cls, entity: str) -> Category:
        """entity 文字列からカテゴリを復元する.

        Raises:
            ValueError: 未知の entity の場合
        """
        return cls(entity)


class SearchState(Enum):
    """検索セッションの状態."""

    IDLE = "idle"
    SEARCHING = "searching"
    COMPLETED = "completed"
    FAILED = "failed"
    CANCELLED = "cancelled"


@dataclass(frozen=True)
class SearchResult:
    """検索結果の1件を表す. デコード後は変更しない."""

    name: str
    artist_name: str  # 空文字あり（表示側で "Unknown"）
    kind: str  # 表示ラベル (例: "Song", "App")
    genre: str
    price: Decimal  # 0 以上。0 は "Free"
    currency: str  # 例: "USD"
    image_small: str  # artworkUrl60
    image_large: str  # artworkUrl100
    store_url: str

    @property
    def is_free(self) -> bool:
        return self.price == 0
