"""検索セッション — 実行中のリクエストを常に1つまでに保つ.

新しい検索を始めると実行中のリクエストは中止され、その結果は
コールバックに届かない。ネットワーク処理は executor 上で行い、
状態の更新とコールバック呼び出しは dispatch に渡した関数の中でだけ行う。
"""

from __future__ import annotations

import logging
import threading
from concurrent.futures import Executor, Future, ThreadPoolExecutor
from functools import partial
from typing import Callable

import requests

from storesearch.config import REQUEST_TIMEOUT
from storesearch.errors import InvalidInputError, StoreSearchError
from storesearch.itunes import build_search_url, fetch_search_results
from storesearch.models import Category, SearchResult, SearchState

logger = logging.getLogger(__name__)

# 表示側のスレッド（UI スレッドなど）で関数を実行させるための関数
Dispatch = Callable[[Callable[[], None]], None]


def run_inline(fn: Callable[[], None]) -> None:
    """呼び出し元のスレッドでそのまま実行する dispatch."""
    fn()


class SearchHandle:
    """1回の search 呼び出しに対応するハンドル."""

    def __init__(self, session: SearchSession, generation: int) -> None:
        self._session = session
        self.generation = generation

    def cancel(self) -> None:
        """このリクエストを中止する. すでに置き換え済み・完了済みなら何もしない."""
        self._session._cancel_generation(self.generation)


class SearchSession:
    """iTunes 検索を1本ずつ実行し、結果を dispatch 経由で通知する."""

    def __init__(
        self,
        http: requests.Session,
        on_results: Callable[[list[SearchResult]], None],
        on_error: Callable[[StoreSearchError], None],
        *,
        executor: Executor | None = None,
        dispatch: Dispatch = run_inline,
        log: logging.Logger | None = None,
        timeout: float | None = REQUEST_TIMEOUT,
    ) -> None:
        self._http = http
        self._on_results = on_results
        self._on_error = on_error
        self._owns_executor = executor is None
        self._executor = executor or ThreadPoolExecutor(
            max_workers=1, thread_name_prefix="storesearch-search"
        )
        self._dispatch = dispatch
        self._logger = log or logger
        self._timeout = timeout

        self._lock = threading.RLock()
        self._generation = 0
        # 結果を受け付ける世代。None なら受け付けない
        self._active: int | None = None
        self._future: Future | None = None
        self._state = SearchState.IDLE
        self._results: list[SearchResult] = []
        self._has_searched = False

    @property
    def state(self) -> SearchState:
        return self._state

    @property
    def results(self) -> list[SearchResult]:
        return list(self._results)

    @property
    def has_searched(self) -> bool:
        """一度でも検索したか. 失敗しても True のまま."""
        return self._has_searched

    @property
    def is_searching(self) -> bool:
        return self._state is SearchState.SEARCHING

    def search(self, text: str, category: Category = Category.ALL) -> SearchHandle:
        """検索を開始する. 実行中の検索があれば先に中止する.

        結果は on_results、失敗は on_error に dispatch 経由で届く。
        """
        with self._lock:
            self._abort_in_flight()
            self._generation += 1
            generation = self._generation
            handle = SearchHandle(self, generation)

            self._active = generation
            self._state = SearchState.SEARCHING
            self._results = []
            self._has_searched = True

            try:
                url = build_search_url(text, category)
            except InvalidInputError as e:
                self._logger.warning("検索 URL を作成できません: text=%r, error=%s", text, e)
                self._state = SearchState.FAILED
                self._dispatch(partial(self._deliver, generation, None, e))
                return handle

            self._logger.info("検索開始: text=%s, category=%s", text, category.name)
            self._future = self._executor.submit(self._run, generation, url)
            return handle

    def cancel(self) -> None:
        """実行中の検索を中止する."""
        with self._lock:
            if self._active is not None:
                self._cancel_generation(self._active)

    def close(self) -> None:
        """実行中の検索を中止し、自前の executor を停止する."""
        self.cancel()
        if self._owns_executor:
            self._executor.shutdown(wait=False, cancel_futures=True)

    def _cancel_generation(self, generation: int) -> None:
        with self._lock:
            if generation != self._active:
                return
            self._abort_in_flight()
            self._state = SearchState.CANCELLED
            self._logger.debug("検索を中止: generation=%d", generation)

    def _abort_in_flight(self) -> None:
        # 通信自体は止まらないことがあるが、_active を外せば結果は届かない
        if self._future is not None:
            self._future.cancel()
            self._future = None
        self._active = None

    def _run(self, generation: int, url: str) -> None:
        """executor 上で実行される. 取得・解析・並べ替えまで行う."""
        try:
            results = fetch_search_results(self._http, url, self._timeout)
        except StoreSearchError as e:
            self._dispatch(partial(self._deliver, generation, None, e))
            return
        except Exception as e:
            # ワーカーで落ちても SEARCHING のまま残さない
            self._logger.exception("検索処理で予期しないエラー: generation=%d", generation)
            error = StoreSearchError(f"予期しないエラー: {e}")
            error.__cause__ = e
            self._dispatch(partial(self._deliver, generation, None, error))
            return
        self._dispatch(partial(self._deliver, generation, results, None))

    def _deliver(
        self,
        generation: int,
        results: list[SearchResult] | None,
        error: StoreSearchError | None,
    ) -> None:
        """dispatch 先で実行される. 最新かつ中止されていない検索だけを通知する."""
        with self._lock:
            if generation != self._active:
                self._logger.debug("古い検索結果を破棄: generation=%d", generation)
                return
            self._active = None
            self._future = None

            if error is not None:
                self._state = SearchState.FAILED
                self._results = []
                self._logger.error(
                    "検索失敗: generation=%d, kind=%s, error=%s",
                    generation, type(error).__name__, error,
                )
                self._on_error(error)
                return

            self._state = SearchState.COMPLETED
            self._results = list(results or [])
            self._logger.info("検索完了: %d 件", len(self._results))
            self._on_results(list(self._results))
