"""SERP 履歴比較 — メインエントリーポイント.

処理フロー:
  1. 履歴 SERP を取得（--input 指定時は保存済み JSON を読む）
  2. スナップショットにパースし、日付範囲で絞り込む
  3. 最新2件を比較、系列全体のボラティリティを分析
  4. ドメイン別・SERP 機能別に集計
  5. --domain 指定時は対象ドメインの順位と推定指標を算出
  6. --output 指定時はレポートを JSON で書き出す
"""

from __future__ import annotations

import argparse
import json
import logging
import sys
import time
from dataclasses import asdict
from datetime import datetime
from pathlib import Path

from serp_history.analytics import count_serp_features, summarize_domains
from serp_history.client import fetch_historical_serp, validate_date
from serp_history.compare import compare_serps
from serp_history.config import (
    DEFAULT_LANGUAGE_CODE,
    DEFAULT_LOCATION_CODE,
    LOG_DIR,
    load_dataforseo_config,
)
from serp_history.metrics import estimated_ctr, estimated_traffic, visibility_score
from serp_history.parser import (
    find_domain_item,
    organic_position,
    parse_historical_serp,
    select_snapshots,
)
from serp_history.volatility import analyze_serp_volatility, volatility_level


def setup_logging() -> None:
    """ロギングの初期設定."""
    LOG_DIR.mkdir(exist_ok=True)
    log_file = LOG_DIR / f"serp_history_{datetime.now().strftime('%Y%m%d')}.log"
    logging.basicConfig(
        level=logging.INFO,
        format="%(asctime)s [%(levelname)s] %(name)s: %(message)s",
        handlers=[
            logging.StreamHandler(sys.stdout),
            logging.FileHandler(log_file, encoding="utf-8"),
        ],
    )


def parse_args(argv: list[str] | None = None) -> argparse.Namespace:
    parser = argparse.ArgumentParser(description="Compare historical SERP snapshots for a keyword.")
    parser.add_argument("keyword")
    parser.add_argument("--location", type=int, default=DEFAULT_LOCATION_CODE)
    parser.add_argument("--language", default=DEFAULT_LANGUAGE_CODE)
    parser.add_argument("--date-from", help="yyyy-mm-dd")
    parser.add_argument("--date-to", help="yyyy-mm-dd")
    parser.add_argument("--input", type=Path, help="saved historical_serps response (JSON)")
    parser.add_argument("--domain", help="domain to report rank and estimated metrics for")
    parser.add_argument("--search-volume", type=int)
    parser.add_argument("--output", type=Path, help="write the report as JSON")
    return parser.parse_args(argv)


def _parse_date(name: str, value: str | None) -> datetime | None:
    """yyyy-mm-dd を datetime にする. 不正なら ValueError."""
    validate_date(name, value)
    return datetime.strptime(value, "%Y-%m-%d") if value else None


def _load_payload(path: Path) -> dict:
    """保存済みレスポンスを読む. 読めなければ OSError / ValueError."""
    payload = json.loads(path.read_text(encoding="utf-8"))
    if not isinstance(payload, dict):
        raise ValueError(f"{path} does not contain a JSON object")
    return payload


def _json_default(value):
    if isinstance(value, datetime):
        return value.isoformat()
    raise TypeError(f"Object of type {type(value).__name__} is not JSON serializable")


def run(argv: list[str] | None = None) -> int:
    """メイン処理. 終了コードを返す."""
    args = parse_args(argv)
    setup_logging()
    logger = logging.getLogger(__name__)
    logger.info("=== SERP 履歴比較 開始: keyword=%s ===", args.keyword)
    start_time = time.time()

    try:
        date_from = _parse_date("date_from", args.date_from)
        date_to = _parse_date("date_to", args.date_to)
    except ValueError as e:
        logger.error("日付指定が不正です: %s", e)
        return 1

    # 1. 履歴 SERP の取得
    if args.input:
        try:
            payload = _load_payload(args.input)
        except (OSError, ValueError) as e:
            logger.error("入力ファイルを読めません: %s, error=%s", args.input, e)
            return 1
    else:
        payload = fetch_historical_serp(
            load_dataforseo_config(),
            args.keyword,
            args.location,
            args.language,
            date_from=args.date_from,
            date_to=args.date_to,
        )
    if payload is None:
        logger.warning("履歴 SERP を取得できませんでした。終了します。")
        return 1

    # 2. パース・絞り込み
    snapshots = select_snapshots(
        parse_historical_serp(payload),
        date_from=date_from,
        date_to=date_to,
    )
    logger.info("対象スナップショット: %d 件", len(snapshots))
    if not snapshots:
        logger.warning("スナップショットがありません。終了します。")
        return 1

    # 3. 比較・ボラティリティ
    latest_comparison = None
    if len(snapshots) >= 2:
        latest_comparison = compare_serps(snapshots[-2], snapshots[-1])
        logger.info(
            "最新比較 %s → %s: 新規=%d, 消失=%d, 変動=%d, スコア=%.2f",
            latest_comparison.from_timestamp.isoformat(),
            latest_comparison.to_timestamp.isoformat(),
            len(latest_comparison.new_domains),
            len(latest_comparison.lost_domains),
            sum(1 for c in latest_comparison.position_changes if c.delta != 0),
            latest_comparison.volatility_score,
        )
    else:
        logger.info("スナップショットが1件のみのため比較をスキップ")

    report = analyze_serp_volatility(snapshots)
    logger.info(
        "ボラティリティ: 平均=%.2f (%s), 最大=%.2f, 最小=%.2f, 傾向=%s",
        report.average_volatility, volatility_level(report.average_volatility),
        report.max_volatility, report.min_volatility, report.trend,
    )

    # 4. ドメイン別・SERP 機能別集計
    domains = summarize_domains(snapshots)
    features = count_serp_features(snapshots)
    logger.info("ドメイン数: %d, SERP 機能: %s", len(domains),
                ", ".join(f"{name}={count}" for name, count in features) or "なし")

    # 5. 対象ドメインの推定指標
    domain_metrics = None
    if args.domain:
        item = find_domain_item(snapshots[-1], args.domain)
        # 推定指標はオーガニック内の順位で計算する
        position = organic_position(item)
        ctr = estimated_ctr(position)
        domain_metrics = {
            "domain": args.domain,
            "rank_group": position,
            "rank_absolute": item.rank_absolute if item is not None else None,
            "estimated_ctr": ctr,
            "estimated_traffic": estimated_traffic(args.search_volume, ctr),
            "visibility_score": visibility_score(position, args.search_volume),
        }
        status = f"{position}位" if position else "圏外"
        logger.info("  %s → %s, 推定トラフィック=%s, 可視性=%s",
                    args.domain, status,
                    domain_metrics["estimated_traffic"], domain_metrics["visibility_score"])

    # 6. レポート出力
    if args.output:
        output = {
            "keyword": args.keyword,
            "latest_comparison": asdict(latest_comparison) if latest_comparison else None,
            "volatility": asdict(report),
            "volatility_level": volatility_level(report.average_volatility),
            "domains": [asdict(d) for d in domains],
            "features": dict(features),
            "domain_metrics": domain_metrics,
        }
        args.output.write_text(
            json.dumps(output, ensure_ascii=False, indent=2, default=_json_default),
            encoding="utf-8",
        )
        logger.info("レポートを書き出しました: %s", args.output)

    elapsed = time.time() - start_time
    logger.info("=== SERP 履歴比較 完了 (%.1f 秒) ===", elapsed)
    return 0


if __name__ == "__main__":
    sys.exit(run())
