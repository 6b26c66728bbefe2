"""iTunes 検索 — ターミナル用エントリーポイント.

処理フロー:
  1. 検索テキスト・カテゴリで SearchSession を実行
  2. 結果一覧を表示（結果なしは "(Nothing found)"）
  3. --detail 指定時は詳細を表示し、--artwork-out にアートワークを保存
"""

from __future__ import annotations

import argparse
import logging
import queue
import sys
import webbrowser
from datetime import datetime
from pathlib import Path

import requests
from PIL import Image

from storesearch.config import LOG_DIR
from storesearch.errors import StoreSearchError
from storesearch.images import ImageLoader
from storesearch.models import Category
from storesearch.presenter import NETWORK_ERROR_MESSAGE, DetailModel, ResultListModel
from storesearch.session import SearchSession

CATEGORY_CHOICES = {
    "all": Category.ALL,
    "music": Category.MUSIC,
    "software": Category.SOFTWARE,
    "ebooks": Category.EBOOKS,
}


def setup_logging(verbose: bool = False) -> None:
    """ロギングの初期設定."""
    LOG_DIR.mkdir(parents=True, exist_ok=True)
    log_file = LOG_DIR / f"storesearch_{datetime.now().strftime('%Y%m%d')}.log"
    logging.basicConfig(
        level=logging.DEBUG if verbose else logging.INFO,
        format="%(asctime)s [%(levelname)s] %(name)s: %(message)s",
        handlers=[
            logging.StreamHandler(sys.stderr),
            logging.FileHandler(log_file, encoding="utf-8"),
        ],
    )


def _parse_args(argv: list[str] | None) -> argparse.Namespace:
    parser = argparse.ArgumentParser(prog="storesearch", description="iTunes Store を検索する")
    parser.add_argument("text", help="検索テキスト")
    parser.add_argument(
        "-c", "--category", choices=sorted(CATEGORY_CHOICES), default="all",
        help="検索カテゴリ (default: all)",
    )
    parser.add_argument("-d", "--detail", type=int, help="詳細を表示する行番号（1始まり）")
    parser.add_argument("--artwork-out", type=Path, help="詳細のアートワークの保存先")
    parser.add_argument("--open", action="store_true", help="詳細のストアページをブラウザで開く")
    parser.add_argument("-v", "--verbose", action="store_true", help="DEBUG ログを出す")
    return parser.parse_args(argv)


def run(argv: list[str] | None = None) -> int:
    """メイン処理. 終了コードを返す."""
    args = _parse_args(argv)
    setup_logging(args.verbose)
    logger = logging.getLogger(__name__)

    # メインスレッドを表示用コンテキストとして使う
    inbox: queue.Queue = queue.Queue()
    list_model = ResultListModel()
    errors: list[StoreSearchError] = []

    def on_results(results):
        list_model.update(results)

    def on_error(error: StoreSearchError) -> None:
        errors.append(error)
        list_model.update([])

    http = requests.Session()
    session = SearchSession(http, on_results, on_error, dispatch=inbox.put)
    loader = ImageLoader(http, dispatch=inbox.put)

    try:
        session.search(args.text, CATEGORY_CHOICES[args.category])
        # search 1回につき dispatch はちょうど1回
        inbox.get()()

        if errors:
            print(NETWORK_ERROR_MESSAGE, file=sys.stderr)
            return 1

        for i in range(list_model.row_count):
            title, subtitle = list_model.row(i)
            if list_model.is_selectable(i):
                print(f"{i + 1:3d}. {title}")
                print(f"     {subtitle}")
            else:
                print(title)

        if args.detail is None:
            return 0

        result = list_model.result_at(args.detail - 1)
        if result is None:
            print(f"行番号が範囲外です: {args.detail}", file=sys.stderr)
            return 2

        detail = DetailModel.from_result(result)
        print()
        print(f"Name:   {detail.name}")
        print(f"Artist: {detail.artist}")
        print(f"Type:   {detail.kind}")
        print(f"Genre:  {detail.genre}")
        print(f"Price:  {detail.price}")
        print(f"Store:  {detail.store_url}")

        if args.artwork_out is not None:
            _save_artwork(loader, inbox, detail.image_url, args.artwork_out)

        if args.open and detail.store_url:
            webbrowser.open(detail.store_url)
        return 0
    finally:
        session.close()
        loader.close()
        http.close()
        logger.debug("終了")


def _save_artwork(loader: ImageLoader, inbox: queue.Queue, url: str, path: Path) -> None:
    """アートワークを取得して保存する. 取得失敗時は何も保存しない."""
    saved: list[Path] = []

    def on_loaded(image: Image.Image) -> None:
        image.save(path)
        saved.append(path)

    handle = loader.fetch(url, on_loaded)
    while not saved:
        try:
            inbox.get(timeout=0.2)()
        except queue.Empty:
            # dispatch は future 完了より先に行われる
            if handle.done and inbox.empty():
                break

    if saved:
        print(f"Artwork: {path}")
    else:
        print("Artwork: (取得できませんでした)", file=sys.stderr)


def main() -> None:
    sys.exit(run())


if __name__ == "__main__":
    main()
