"""iTunes Search API の URL 組み立て・レスポンス解析・並び替えモジュール.

処理の流れ:
  1. build_search_url で検索 URL を作る
  2. fetch_search_results で取得し parse_search_results で SearchResult に変換
  3. sort_results で名前順に並べる
"""

from __future__ import annotations

import json
import logging
from decimal import Decimal
from functools import cmp_to_key
from urllib.parse import quote

import requests

from storesearch.config import REQUEST_TIMEOUT, SEARCH_LIMIT, SEARCH_URL, USER_AGENT
from storesearch.errors import (
    HTTPStatusError,
    InvalidInputError,
    MalformedResponseError,
    TransportError,
)
from storesearch.models import Category, SearchResult

logger = logging.getLogger(__name__)

# kind / wrapperType → 表示ラベル
KIND_LABELS = {
    "album": "Album",
    "audiobook": "Audio Book",
    "book": "Book",
    "ebook": "EBook",
    "feature-movie": "Movie",
    "music-video": "Music Video",
    "podcast": "Podcast",
    "software": "App",
    "song": "Song",
    "tv-episode": "TV Episode",
}
UNKNOWN_KIND = "Unknown"


def build_search_url(
    text: str,
    category: Category = Category.ALL,
    *,
    base_url: str = SEARCH_URL,
    limit: int = SEARCH_LIMIT,
) -> str:
    """検索テキストとカテゴリから iTunes 検索 URL を作る.

    Args:
        text: 検索テキスト（前後の空白もそのまま送る）
        category: 検索カテゴリ

    Returns:
        エンコード済みの URL 文字列

    Raises:
        InvalidInputError: 空文字・空白のみ、または URL にエンコードできない場合
    """
    if not text or not text.strip():
        raise InvalidInputError("検索テキストが空です")

    try:
        term = quote(text, safe="")
    except UnicodeEncodeError as e:
        # surrogateescape で渡された不正なバイト列など
        raise InvalidInputError(f"検索テキストをエンコードできません: {e}") from e
    return f"{base_url}?term={term}&limit={limit}&entity={category.entity}"


def kind_label(raw_kind: str | None) -> str:
    """API のカテゴリコードを表示ラベルに変換する. 未知のコードは "Unknown"."""
    if not raw_kind:
        return UNKNOWN_KIND
    return KIND_LABELS.get(raw_kind, UNKNOWN_KIND)


def parse_search_results(body: bytes | str) -> list[SearchResult]:
    """レスポンス本文を SearchResult のリストに変換する.

    要素が1件でも壊れていれば全体を破棄する（部分的な結果は返さない）。

    Raises:
        MalformedResponseError: JSON として読めない、results がない、要素が不正
    """
    try:
        data = json.loads(body, parse_constant=_reject_constant)
    except (ValueError, RecursionError) as e:
        raise MalformedResponseError(f"JSON デコードエラー: {e}") from e

    if not isinstance(data, dict):
        raise MalformedResponseError("トップレベルがオブジェクトではありません")

    items = data.get("results")
    if not isinstance(items, list):
        raise MalformedResponseError("results 配列がありません")

    return [_parse_item(item, i) for i, item in enumerate(items)]


def _reject_constant(name: str):
    raise ValueError(f"未対応の定数: {name}")


def _parse_item(item, index: int) -> SearchResult:
    """results の1要素を SearchResult に変換する."""
    if not isinstance(item, dict):
        raise MalformedResponseError(f"results[{index}] がオブジェクトではありません")

    genre = _first_str(item, index, "primaryGenreName")
    if genre is None:
        genres = item.get("genres")
        if genres is not None:
            if not isinstance(genres, list) or not all(isinstance(g, str) for g in genres):
                raise MalformedResponseError(f"results[{index}].genres が不正です")
            genre = ", ".join(genres)

    return SearchResult(
        name=_first_str(item, index, "trackName", "collectionName") or "",
        artist_name=_first_str(item, index, "artistName") or "",
        kind=kind_label(_first_str(item, index, "kind", "wrapperType")),
        genre=genre or "",
        price=_parse_price(item, index),
        currency=_first_str(item, index, "currency") or "",
        image_small=_first_str(item, index, "artworkUrl60") or "",
        image_large=_first_str(item, index, "artworkUrl100") or "",
        store_url=_first_str(item, index, "trackViewUrl", "collectionViewUrl") or "",
    )


def _first_str(item: dict, index: int, *keys: str) -> str | None:
    """keys の順に探し、最初に見つかった文字列を返す. null は未設定扱い."""
    for key in keys:
        value = item.get(key)
        if value is None:
            continue
        if not isinstance(value, str):
            raise MalformedResponseError(f"results[{index}].{key} が文字列ではありません")
        return value
    return None


def _parse_price(item: dict, index: int) -> Decimal:
    """trackPrice → collectionPrice → price の順で価格を取得する. 負の値は 0."""
    for key in ("trackPrice", "collectionPrice", "price"):
        value = item.get(key)
        if value is None:
            continue
        # bool は int のサブクラスなので除外
        if isinstance(value, bool) or not isinstance(value, (int, float)):
            raise MalformedResponseError(f"results[{index}].{key} が数値ではありません")
        price = Decimal(str(value))
        return price if price > 0 else Decimal(0)
    return Decimal(0)


def compare_results(a: SearchResult, b: SearchResult) -> int:
    """名前の昇順で比較する（大文字小文字を区別）.

    Returns:
        a < b なら -1、等しければ 0、a > b なら 1
    """
    if a.name < b.name:
        return -1
    if a.name > b.name:
        return 1
    return 0


def sort_results(results: list[SearchResult]) -> list[SearchResult]:
    """compare_results の順に並べ替える. 同名はデコード順を保つ（安定ソート）."""
    return sorted(results, key=cmp_to_key(compare_results))


def fetch_search_results(
    http: requests.Session,
    url: str,
    timeout: float | None = REQUEST_TIMEOUT,
) -> list[SearchResult]:
    """検索 URL を取得し、並べ替え済みの結果を返す.

    Raises:
        TransportError: 通信エラー
        HTTPStatusError: 200 以外のステータス
        MalformedResponseError: レスポンスが壊れている
    """
    headers = {
        "User-Agent": USER_AGENT,
        "Accept": "application/json",
    }

    try:
        resp = http.get(url, headers=headers, timeout=timeout)
    except requests.RequestException as e:
        raise TransportError(str(e)) from e

    if resp.status_code != 200:
        raise HTTPStatusError(resp.status_code, url)

    results = parse_search_results(resp.content)
    logger.debug("検索結果: %d 件", len(results))
    return sort_results(results)
