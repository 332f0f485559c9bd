"""DataForSEO 履歴 SERP 取得モジュール.

接続設定は DataForSEOConfig で受け取り、環境変数は読まない。
"""

from __future__ import annotations

import logging
import re

import requests

from serp_history.config import HISTORICAL_SERPS_PATH, DataForSEOConfig

logger = logging.getLogger(__name__)

MAX_KEYWORD_LENGTH = 700
MAX_TAG_LENGTH = 255
STATUS_OK = 20000

_DATE_PATTERN = re.compile(r"^\d{4}-\d{2}-\d{2}$")


def validate_date(name: str, value: str | None) -> None:
    """日付が yyyy-mm-dd 形式でなければ ValueError."""
    if value and not _DATE_PATTERN.match(value):
        raise ValueError(f'{name} must be formatted as "yyyy-mm-dd"')


def build_payload(
    keyword: str,
    location_code: int,
    language_code: str,
    date_from: str | None = None,
    date_to: str | None = None,
    tag: str | None = None,
) -> list[dict]:
    """リクエスト本文を組み立てる. 入力が不正なら ValueError."""
    keyword = keyword.strip()
    if not keyword:
        raise ValueError("keyword is required")
    if len(keyword) > MAX_KEYWORD_LENGTH:
        raise ValueError(f"keyword must be at most {MAX_KEYWORD_LENGTH} characters")
    validate_date("date_from", date_from)
    validate_date("date_to", date_to)
    if tag and len(tag) > MAX_TAG_LENGTH:
        raise ValueError(f"tag must be at most {MAX_TAG_LENGTH} characters")

    task = {
        "keyword": keyword,
        "location_code": location_code,
        "language_code": language_code,
    }
    if date_from:
        task["date_from"] = date_from
    if date_to:
        task["date_to"] = date_to
    if tag:
        task["tag"] = tag
    return [task]


def fetch_historical_serp(
    config: DataForSEOConfig,
    keyword: str,
    location_code: int,
    language_code: str,
    date_from: str | None = None,
    date_to: str | None = None,
    tag: str | None = None,
) -> dict | None:
    """キーワードの履歴 SERP を取得する.

    Args:
        config: 接続設定
        keyword: 検索キーワード（最大 700 文字）
        location_code: ロケーションコード (例: 2250 = フランス)
        language_code: 言語コード (例: "fr")
        date_from, date_to: "yyyy-mm-dd"
        tag: タスク識別用のタグ（最大 255 文字）

    Returns:
        レスポンス JSON。通信失敗・API エラー時は None。
    """
    payload = build_payload(keyword, location_code, language_code, date_from, date_to, tag)
    url = f"{config.base_url}{HISTORICAL_SERPS_PATH}"

    try:
        resp = requests.post(
            url,
            json=payload,
            auth=(config.login, config.password),
            timeout=config.timeout,
        )
        resp.raise_for_status()
        data = resp.json()
    except requests.RequestException as e:
        logger.error("履歴 SERP 取得失敗: keyword=%s, error=%s", keyword, e)
        return None
    except ValueError as e:
        logger.error("履歴 SERP レスポンスが JSON ではありません: keyword=%s, error=%s", keyword, e)
        return None

    if data.get("status_code") != STATUS_OK:
        logger.error(
            "DataForSEO エラー: keyword=%s, status=%s, message=%s",
            keyword, data.get("status_code"), data.get("status_message"),
        )
        return None

    # タスク単位のエラー（例: 40501 Invalid Field）はトップレベルが 20000 でも起こる
    tasks = data.get("tasks") or []
    task = tasks[0] if tasks and isinstance(tasks[0], dict) else None
    if task is not None and task.get("status_code") != STATUS_OK:
        logger.error(
            "DataForSEO タスクエラー: keyword=%s, status=%s, message=%s",
            keyword, task.get("status_code"), task.get("status_message"),
        )
        return None

    return data
