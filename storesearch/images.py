"""アートワーク画像の非同期取得モジュール.

行・詳細ビューごとに1つの ImageHandle を持ち、ビューが消える前に
cancel() を呼ぶ。キャッシュ・リトライ・重複排除は行わない。
失敗はログに残すだけで、コールバックは呼ばれない。
"""

from __future__ import annotations

import logging
import threading
from concurrent.futures import Executor, Future, ThreadPoolExecutor
from functools import partial
from io import BytesIO
from typing import Callable

import requests
from PIL import Image

from storesearch.config import IMAGE_WORKERS, REQUEST_TIMEOUT, USER_AGENT
from storesearch.session import Dispatch, run_inline

logger = logging.getLogger(__name__)

OnLoaded = Callable[[Image.Image], None]


class ImageHandle:
    """画像取得1回分のハンドル. cancel() 後はコールバックが呼ばれない."""

    def __init__(self, url: str) -> None:
        self.url = url
        self._lock = threading.RLock()
        self._cancelled = False
        self._future: Future | None = None

    @property
    def cancelled(self) -> bool:
        return self._cancelled

    @property
    def done(self) -> bool:
        """取得処理が終わったか（成功・失敗・中止を問わない）."""
        if self._cancelled or self._future is None:
            return True
        return self._future.done()

    def cancel(self) -> None:
        with self._lock:
            self._cancelled = True
            if self._future is not None:
                self._future.cancel()

    def _deliver(self, on_loaded: OnLoaded, image: Image.Image) -> None:
        # コールバック実行中に cancel() が呼ばれても、戻った後には発火しない
        with self._lock:
            if self._cancelled:
                logger.debug("中止済みのため画像を破棄: %s", self.url)
                return
            on_loaded(image)


class ImageLoader:
    """URL から画像を取得し、Pillow でデコードして dispatch 経由で渡す."""

    def __init__(
        self,
        http: requests.Session,
        *,
        executor: Executor | None = None,
        dispatch: Dispatch = run_inline,
        log: logging.Logger | None = None,
        timeout: float | None = REQUEST_TIMEOUT,
    ) -> None:
        self._http = http
        self._owns_executor = executor is None
        self._executor = executor or ThreadPoolExecutor(
            max_workers=IMAGE_WORKERS, thread_name_prefix="storesearch-image"
        )
        self._dispatch = dispatch
        self._logger = log or logger
        self._timeout = timeout

    def fetch(self, url: str, on_loaded: OnLoaded) -> ImageHandle:
        """画像の取得を開始する.

        Args:
            url: 画像 URL（artworkUrl60 / artworkUrl100）
            on_loaded: デコード済み画像を受け取るコールバック

        Returns:
            取得を中止するためのハンドル
        """
        handle = ImageHandle(url)
        if not url:
            self._logger.debug("画像 URL が空のためスキップ")
            return handle

        with handle._lock:
            handle._future = self._executor.submit(self._load, handle, on_loaded)
        return handle

    def close(self) -> None:
        if self._owns_executor:
            self._executor.shutdown(wait=False, cancel_futures=True)

    def _load(self, handle: ImageHandle, on_loaded: OnLoaded) -> None:
        """executor 上で実行される."""
        if handle.cancelled:
            return

        try:
            resp = self._http.get(
                handle.url, headers={"User-Agent": USER_AGENT}, timeout=self._timeout
            )
        except requests.RequestException as e:
            self._logger.debug("画像取得失敗: url=%s, error=%s", handle.url, e)
            return

        if resp.status_code != 200:
            self._logger.debug("画像取得失敗: url=%s, status=%d", handle.url, resp.status_code)
            return

        try:
            image = Image.open(BytesIO(resp.content))
            image.load()
        except Exception as e:  # Pillow はデータ次第で ValueError や struct.error も出す
            self._logger.debug("画像デコード失敗: url=%s, error=%s", handle.url, e)
            return

        self._dispatch(partial(handle._deliver, on_loaded, image))
