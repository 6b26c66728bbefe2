"""テスト共通のフィクスチャ."""

from __future__ import annotations

from concurrent.futures import Future
from io import BytesIO
from pathlib import Path
from unittest.mock import MagicMock

import pytest
from PIL import Image

FIXTURES_DIR = Path(__file__).parent / "fixtures"


class ManualExecutor:
    """submit された処理を run_all() まで保留する executor."""

    def __init__(self) -> None:
        self.pending: list[tuple[Future, object, tuple]] = []

    def submit(self, fn, *args):
        future: Future = Future()
        self.pending.append((future, fn, args))
        return future

    def run_all(self, force: bool = False) -> None:
        """保留中の処理を実行する.

        force=True なら中止済みの future も実行する（通信が止まらずに
        完了してしまったケース）。
        """
        pending, self.pending = self.pending, []
        for future, fn, args in pending:
            if force:
                fn(*args)
                continue
            if not future.set_running_or_notify_cancel():
                continue
            fn(*args)
            future.set_result(None)


class Inbox:
    """dispatch された関数を溜めておき、drain() で表示側として実行する."""

    def __init__(self) -> None:
        self.items: list = []

    def put(self, fn) -> None:
        self.items.append(fn)

    def drain(self) -> None:
        while self.items:
            self.items.pop(0)()


def load_fixture_bytes(name: str) -> bytes:
    return (FIXTURES_DIR / name).read_bytes()


def make_response(status_code: int = 200, content: bytes = b"") -> MagicMock:
    resp = MagicMock()
    resp.status_code = status_code
    resp.content = content
    return resp


def png_bytes(size: tuple[int, int] = (2, 2)) -> bytes:
    buf = BytesIO()
    Image.new("RGB", size, (255, 0, 0)).save(buf, "PNG")
    return buf.getvalue()


@pytest.fixture
def executor() -> ManualExecutor:
    return ManualExecutor()


@pytest.fixture
def inbox() -> Inbox:
    return Inbox()


@pytest.fixture
def http() -> MagicMock:
    return MagicMock()
