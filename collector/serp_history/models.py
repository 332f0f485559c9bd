"""データモデル定義."""

from __future__ import annotations

from dataclasses import dataclass, field
from datetime import datetime


@dataclass
class SnapshotItem:
    """SERP スナップショット内の1オーガニック結果を表す."""

    domain: str  # 結果 URL のドメイン (例: example.com)
    rank_absolute: int  # 全 SERP 要素内の順位（1始まり）
    title: str
    url: str
    rank_group: int | None = None  # 同種要素内の順位
    item_type: str = "organic"


@dataclass
class Snapshot:
    """ある時点で観測した SERP の状態."""

    captured_at: datetime  # 取得日時 (timezone aware)
    items: list[SnapshotItem] = field(default_factory=list)
    keyword: str = ""
    se_results_count: int | None = None
    item_types: list[str] = field(default_factory=list)
    feature_counts: dict[str, int] = field(default_factory=dict)  # 非オーガニック要素の種類別件数


@dataclass
class NewDomain:
    """比較先にだけ存在するドメイン."""

    domain: str
    position: int
    title: str
    url: str


@dataclass
class LostDomain:
    """比較元にだけ存在するドメイン."""

    domain: str
    previous_position: int
    title: str
    url: str


@dataclass
class PositionChange:
    """両スナップショットに存在するドメインの順位変動."""

    domain: str
    old_position: int
    new_position: int
    delta: int  # old - new（正 = 上昇）
    direction: str  # "up", "down" or "stable"
    title: str  # 比較先の値
    url: str


@dataclass
class ComparisonResult:
    """2つのスナップショットの比較結果."""

    from_timestamp: datetime
    to_timestamp: datetime
    new_domains: list[NewDomain] = field(default_factory=list)
    lost_domains: list[LostDomain] = field(default_factory=list)
    position_changes: list[PositionChange] = field(default_factory=list)  # |delta| 降順
    volatility_score: float = 0.0  # 0〜1
    average_position_change: float = 0.0
    total_changes: int = 0


@dataclass
class VolatilityReport:
    """スナップショット系列のボラティリティ集計."""

    average_volatility: float = 0.0
    max_volatility: float = 0.0
    min_volatility: float = 0.0
    trend: str = "stable"  # "increasing", "decreasing" or "stable"
    comparisons: list[ComparisonResult] = field(default_factory=list)


@dataclass
class DomainHistoryEntry:
    """ドメイン履歴の1時点."""

    captured_at: datetime
    position: int | None  # None = 圏外
    title: str | None = None
    url: str | None = None


@dataclass
class DomainSummary:
    """系列全体でのドメイン別集計."""

    domain: str
    appearances: int
    positions: list[int]
    average_position: float
    best_position: int
    worst_position: int
    trend: str  # "up", "down" or "stable"
    history: list[DomainHistoryEntry] = field(default_factory=list)
