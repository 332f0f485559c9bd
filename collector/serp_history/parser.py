"""DataForSEO 履歴 SERP レスポンスのパースモジュール.

レスポンス構造:
  tasks[0].result[0].items[]          … スナップショット（datetime ごと）
  tasks[0].result[0].items[].items[]  … SERP 要素（organic, paid, featured_snippet, ...）

オーガニック要素だけを SnapshotItem にし、organic / paid 以外の要素は
SERP 機能として種類別に件数を数える。
"""

from __future__ import annotations

import logging
import re
from collections import Counter
from datetime import datetime, time, timezone
from urllib.parse import urlparse

from serp_history.models import Snapshot, SnapshotItem

logger = logging.getLogger(__name__)

# 例: "2024-03-01 08:15:42 +00:00"
_DATAFORSEO_DATETIME_FORMAT = "%Y-%m-%d %H:%M:%S %z"

_DOMAIN_PREFIX_PATTERN = re.compile(r"^(https?://)?(www\.)?")

_NON_FEATURE_TYPES = {"organic", "paid"}


def parse_historical_serp(payload: dict) -> list[Snapshot]:
    """履歴 SERP レスポンスからスナップショット一覧を作る.

    Returns:
        取得日時の昇順に並んだ Snapshot のリスト。結果がなければ空リスト。
    """
    result = _first_result(payload)
    if not result:
        logger.warning("履歴 SERP レスポンスに結果がありません")
        return []

    snapshots: list[Snapshot] = []
    for entry in result.get("items") or []:
        if not isinstance(entry, dict):
            logger.warning("スナップショットが dict ではないためスキップ: %r", entry)
            continue
        captured_at = parse_datetime(entry.get("datetime"))
        if captured_at is None:
            logger.warning("datetime を解釈できないスナップショットをスキップ: %r", entry.get("datetime"))
            continue
        snapshots.append(_parse_snapshot(entry, captured_at))

    snapshots.sort(key=lambda s: s.captured_at)
    return snapshots


def _first_result(payload: dict) -> dict | None:
    """tasks[0].result[0] を安全に取り出す."""
    tasks = payload.get("tasks") if isinstance(payload, dict) else None
    if not tasks or not isinstance(tasks, list):
        return None
    results = tasks[0].get("result") if isinstance(tasks[0], dict) else None
    if not results or not isinstance(results, list):
        return None
    first = results[0]
    return first if isinstance(first, dict) else None


def _parse_snapshot(entry: dict, captured_at: datetime) -> Snapshot:
    items: list[SnapshotItem] = []
    features: Counter[str] = Counter()

    for raw in entry.get("items") or []:
        if not isinstance(raw, dict):
            logger.warning("SERP 要素が dict ではないためスキップ: %r", raw)
            continue

        item_type = raw.get("type")
        if not isinstance(item_type, str):
            item_type = ""
        if item_type != "organic":
            if item_type and item_type not in _NON_FEATURE_TYPES:
                features[item_type] += 1
            continue

        url = raw.get("url") or ""
        try:
            rank = int(raw.get("rank_absolute"))
        except (TypeError, ValueError):
            rank = 0
        if rank < 1:
            logger.warning("rank_absolute が不正なオーガニック要素をスキップ: %s (%r)",
                           url, raw.get("rank_absolute"))
            continue

        domain = raw.get("domain")
        if not isinstance(domain, str) or not domain:
            domain = _extract_host(url) if isinstance(url, str) else ""
        if not domain:
            logger.warning("ドメインを特定できないオーガニック要素をスキップ: rank=%d", rank)
            continue

        items.append(SnapshotItem(
            domain=domain,
            rank_absolute=rank,
            title=raw.get("title") or "",
            url=url,
            rank_group=_optional_int(raw.get("rank_group")),
        ))

    return Snapshot(
        captured_at=captured_at,
        items=items,
        keyword=entry.get("keyword", ""),
        se_results_count=entry.get("se_results_count"),
        item_types=list(entry.get("item_types") or []),
        feature_counts=dict(features),
    )


def parse_datetime(value: str | None) -> datetime | None:
    """DataForSEO の日時文字列（または ISO 8601）を aware な datetime にする."""
    if not value or not isinstance(value, str):
        return None
    try:
        return datetime.strptime(value, _DATAFORSEO_DATETIME_FORMAT)
    except ValueError:
        pass
    try:
        parsed = datetime.fromisoformat(value)
    except ValueError:
        return None
    if parsed.tzinfo is None:
        parsed = parsed.replace(tzinfo=timezone.utc)
    return parsed


def _optional_int(value) -> int | None:
    try:
        return int(value)
    except (TypeError, ValueError):
        return None


def _extract_host(url: str) -> str:
    """URL からホスト名を取り出す. 取れなければ空文字."""
    return urlparse(url).netloc.lower()


def normalize_domain(value: str) -> str:
    """比較用にドメインを正規化する（小文字化、スキーム・www・末尾 / を除去）."""
    return _DOMAIN_PREFIX_PATTERN.sub("", value.lower()).rstrip("/")


def find_domain_item(snapshot: Snapshot, domain: str) -> SnapshotItem | None:
    """スナップショット内で指定ドメインに一致する最初のオーガニック結果を返す.

    サブドメインはどちら向きでも一致とみなす（blog.example.com ⇔ example.com）。
    見つからなければ None（圏外）。
    """
    target = normalize_domain(domain)
    for item in snapshot.items:
        candidate = normalize_domain(item.domain)
        if (
            candidate == target
            or candidate.endswith(f".{target}")
            or target.endswith(f".{candidate}")
        ):
            return item
    return None


def organic_position(item: SnapshotItem | None) -> int | None:
    """CTR 推定に使うオーガニック順位.

    rank_group（オーガニック内の順位）を優先し、なければ rank_absolute。
    """
    if item is None:
        return None
    if item.rank_group is not None:
        return item.rank_group
    return item.rank_absolute


def find_domain_rank(snapshot: Snapshot, domain: str) -> int | None:
    """スナップショット内の指定ドメインの順位 (rank_absolute). 圏外なら None."""
    item = find_domain_item(snapshot, domain)
    return item.rank_absolute if item is not None else None


def _day_start(value: datetime) -> datetime:
    return datetime.combine(value.date(), time.min, tzinfo=value.tzinfo or timezone.utc)


def _day_end(value: datetime) -> datetime:
    return datetime.combine(value.date(), time(23, 59, 59), tzinfo=value.tzinfo or timezone.utc)


def _closest_index(snapshots: list[Snapshot], target: datetime) -> int:
    """target に最も近いスナップショットの位置（同距離なら先に出たもの）."""
    return min(range(len(snapshots)), key=lambda i: abs(snapshots[i].captured_at - target))


def select_snapshots(
    snapshots: list[Snapshot],
    date_from: datetime | None = None,
    date_to: datetime | None = None,
) -> list[Snapshot]:
    """日付範囲でスナップショットを絞り込む.

    date_from は当日 00:00:00、date_to は当日 23:59:59 として扱う
    （naive な値は UTC）。範囲内に1件もなければ最も近いものを使う:
      - 両方指定: date_from / date_to それぞれに最も近いものの間を全て
      - date_from のみ: date_from に最も近い1件
      - date_to のみ: date_to に最も近い1件

    Returns:
        取得日時の昇順のリスト。
    """
    ordered = sorted(snapshots, key=lambda s: s.captured_at)
    if not ordered or (date_from is None and date_to is None):
        return ordered

    start = _day_start(date_from) if date_from is not None else None
    end = _day_end(date_to) if date_to is not None else None

    if start is not None and end is not None:
        selected = [s for s in ordered if start <= s.captured_at <= end]
        if selected:
            return selected
        from_index = _closest_index(ordered, start)
        to_index = _closest_index(ordered, end)
        low, high = sorted((from_index, to_index))
        return ordered[low:high + 1]

    if start is not None:
        selected = [s for s in ordered if s.captured_at >= start]
        return selected or [ordered[_closest_index(ordered, start)]]

    selected = [s for s in ordered if s.captured_at <= end]
    return selected or [ordered[_closest_index(ordered, end)]]
