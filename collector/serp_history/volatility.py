"""SERP ボラティリティ集計モジュール."""

from __future__ import annotations

from serp_history.compare import compare_serps
from serp_history.models import Snapshot, VolatilityReport

# トレンド判定に使う系列の先頭・末尾の件数
TREND_WINDOW = 3
TREND_INCREASE_RATIO = 1.2
TREND_DECREASE_RATIO = 0.8

# ボラティリティ水準の閾値
LOW_VOLATILITY = 0.3
MODERATE_VOLATILITY = 0.6


def _mean(values: list[float]) -> float:
    return sum(values) / len(values)


def _classify_trend(scores: list[float]) -> str:
    """先頭と末尾の平均を比べて傾向を判定する.

    比較数が 6 未満のときは先頭・末尾の窓が重なる。
    """
    recent_avg = _mean(scores[-TREND_WINDOW:])
    early_avg = _mean(scores[:TREND_WINDOW])

    if recent_avg > early_avg * TREND_INCREASE_RATIO:
        return "increasing"
    if recent_avg < early_avg * TREND_DECREASE_RATIO:
        return "decreasing"
    return "stable"


def analyze_serp_volatility(snapshots: list[Snapshot]) -> VolatilityReport:
    """スナップショット系列のボラティリティを分析する.

    隣り合うスナップショット（取得日時順）を順に比較し、スコアの
    平均・最大・最小と傾向をまとめる。2件未満なら全項目 0 / "stable"。
    """
    if len(snapshots) < 2:
        return VolatilityReport()

    ordered = sorted(snapshots, key=lambda s: s.captured_at)
    comparisons = [
        compare_serps(previous, current)
        for previous, current in zip(ordered, ordered[1:])
    ]
    scores = [c.volatility_score for c in comparisons]

    return VolatilityReport(
        average_volatility=_mean(scores),
        max_volatility=max(scores),
        min_volatility=min(scores),
        trend=_classify_trend(scores),
        comparisons=comparisons,
    )


def volatility_level(score: float) -> str:
    """ボラティリティスコアを "low" / "moderate" / "high" に分類する."""
    if score < LOW_VOLATILITY:
        return "low"
    if score < MODERATE_VOLATILITY:
        return "moderate"
    return "high"
