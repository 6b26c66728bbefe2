"""設定モジュール — 環境変数・定数定義."""

import os
from pathlib import Path

from dotenv import load_dotenv

# .env はプロジェクトルートに配置
_PROJECT_ROOT = Path(__file__).resolve().parent.parent
load_dotenv(_PROJECT_ROOT / ".env")

# --- iTunes 検索 ---
SEARCH_URL: str = os.environ.get("STORESEARCH_SEARCH_URL", "https://itunes.apple.com/search")
SEARCH_LIMIT: int = int(os.environ.get("STORESEARCH_LIMIT", "200"))

# --- User-Agent ---
USER_AGENT = "StoreSearch/0.1 (+https://itunes.apple.com/search)"

# --- リクエスト設定 ---
# 未設定なら requests のデフォルト（タイムアウトなし）
_timeout = os.environ.get("STORESEARCH_REQUEST_TIMEOUT")
REQUEST_TIMEOUT: float | None = float(_timeout) if _timeout else None

# --- 画像取得 ---
IMAGE_WORKERS: int = int(os.environ.get("STORESEARCH_IMAGE_WORKERS", "4"))

# --- ログ ---
LOG_DIR = Path(os.environ.get("STORESEARCH_LOG_DIR", _PROJECT_ROOT / "logs"))
