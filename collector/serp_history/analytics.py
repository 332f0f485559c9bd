"""スナップショット系列のドメイン別・SERP 機能別集計."""

from __future__ import annotations

from collections import Counter

from serp_history.models import DomainHistoryEntry, DomainSummary, Snapshot

# 先頭・末尾 3 件の平均順位がこの幅を超えて動いたら上昇／下降とみなす
POSITION_TREND_MARGIN = 2


def _position_trend(positions: list[int]) -> str:
    recent = positions[-3:]
    early = positions[:3]
    recent_avg = sum(recent) / len(recent)
    early_avg = sum(early) / len(early)

    if recent_avg < early_avg - POSITION_TREND_MARGIN:
        return "up"
    if recent_avg > early_avg + POSITION_TREND_MARGIN:
        return "down"
    return "stable"


def summarize_domains(snapshots: list[Snapshot]) -> list[DomainSummary]:
    """系列全体のドメイン別集計を作る.

    同一スナップショットに複数ページがあるドメインは、その全順位を
    positions に含める。history は各スナップショットにつき1件以上で、
    不在のスナップショットは position=None になる。

    Returns:
        平均順位の昇順に並んだ DomainSummary のリスト。
    """
    ordered = sorted(snapshots, key=lambda s: s.captured_at)
    positions: dict[str, list[int]] = {}
    histories: dict[str, list[DomainHistoryEntry]] = {}

    for snapshot in ordered:
        seen: set[str] = set()
        for item in snapshot.items:
            positions.setdefault(item.domain, []).append(item.rank_absolute)
            histories.setdefault(item.domain, []).append(DomainHistoryEntry(
                captured_at=snapshot.captured_at,
                position=item.rank_absolute,
                title=item.title,
                url=item.url,
            ))
            seen.add(item.domain)

        # 既出ドメインでこの時点に不在のものは圏外として記録
        for domain, history in histories.items():
            if domain not in seen:
                history.append(DomainHistoryEntry(captured_at=snapshot.captured_at, position=None))

    summaries = []
    for domain, domain_positions in positions.items():
        summaries.append(DomainSummary(
            domain=domain,
            appearances=len(domain_positions),
            positions=domain_positions,
            average_position=sum(domain_positions) / len(domain_positions),
            best_position=min(domain_positions),
            worst_position=max(domain_positions),
            trend=_position_trend(domain_positions),
            history=histories[domain],
        ))

    summaries.sort(key=lambda s: s.average_position)
    return summaries


def count_serp_features(snapshots: list[Snapshot]) -> list[tuple[str, int]]:
    """SERP 機能（organic / paid 以外の要素）の出現数を多い順に返す."""
    totals: Counter[str] = Counter()
    for snapshot in snapshots:
        totals.update(snapshot.feature_counts)
    return totals.most_common()
