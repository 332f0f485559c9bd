"""設定モジュール — 環境変数・定数定義."""

import os
from dataclasses import dataclass
from pathlib import Path

from dotenv import load_dotenv

# .env はプロジェクトルートに配置
_PROJECT_ROOT = Path(__file__).resolve().parent.parent.parent
load_dotenv(_PROJECT_ROOT / ".env")

# --- DataForSEO ---
DATAFORSEO_BASE_URL = "https://api.dataforseo.com/v3"
HISTORICAL_SERPS_PATH = "/dataforseo_labs/google/historical_serps/live"

# --- 検索条件 ---
DEFAULT_LOCATION_CODE = 2250  # France
DEFAULT_LANGUAGE_CODE = "fr"

# --- リクエスト設定 ---
REQUEST_TIMEOUT = 60  # 秒

# --- ログ ---
LOG_DIR = Path(__file__).resolve().parent.parent / "logs"


@dataclass(frozen=True)
class DataForSEOConfig:
    """DataForSEO API の接続設定."""

    login: str
    password: str
    base_url: str = DATAFORSEO_BASE_URL
    timeout: float = REQUEST_TIMEOUT


def load_dataforseo_config() -> DataForSEOConfig:
    """環境変数から DataForSEO の接続設定を組み立てる.

    DATAFORSEO_LOGIN / DATAFORSEO_PASSWORD は必須。未設定なら KeyError。
    """
    return DataForSEOConfig(
        login=os.environ["DATAFORSEO_LOGIN"],
        password=os.environ["DATAFORSEO_PASSWORD"],
        base_url=os.environ.get("DATAFORSEO_URL", DATAFORSEO_BASE_URL).rstrip("/"),
    )
