"""SERP スナップショット比較モジュール.

2つのスナップショットのオーガニック結果をドメイン単位で突き合わせ、
新規・消失ドメインと順位変動、ボラティリティスコアを算出する。

ボラティリティスコア:
  (新規ドメイン数 + 消失ドメイン数 + 順位が動いたドメイン数) / 全ドメイン数
  変動幅は考慮しない（2→3 位と 2→99 位は同じ 1 件）。
"""

from __future__ import annotations

from serp_history.models import (
    ComparisonResult,
    LostDomain,
    NewDomain,
    PositionChange,
    Snapshot,
)


def _domain_map(snapshot: Snapshot) -> dict[str, tuple[int, str, str]]:
    """ドメイン -> (順位, タイトル, URL). 同一ドメインは後勝ち."""
    domains: dict[str, tuple[int, str, str]] = {}
    for item in snapshot.items:
        domains[item.domain] = (item.rank_absolute, item.title, item.url)
    return domains


def _direction(delta: int) -> str:
    if delta > 0:
        return "up"
    if delta < 0:
        return "down"
    return "stable"


def compare_serps(before: Snapshot, after: Snapshot) -> ComparisonResult:
    """2つのスナップショットを比較する.

    Args:
        before: 比較元（古い方）のスナップショット
        after: 比較先（新しい方）のスナップショット

    Returns:
        ComparisonResult。position_changes は |delta| 降順（同値は出現順）。
    """
    domains_before = _domain_map(before)
    domains_after = _domain_map(after)

    # 比較元の出現順 → 比較先にだけあるドメインの出現順
    all_domains = list(domains_before)
    all_domains.extend(d for d in domains_after if d not in domains_before)

    new_domains: list[NewDomain] = []
    lost_domains: list[LostDomain] = []
    position_changes: list[PositionChange] = []
    total_position_change = 0
    changed_count = 0

    for domain in all_domains:
        old = domains_before.get(domain)
        new = domains_after.get(domain)

        if old is None:
            position, title, url = new
            new_domains.append(NewDomain(domain=domain, position=position, title=title, url=url))
        elif new is None:
            position, title, url = old
            lost_domains.append(
                LostDomain(domain=domain, previous_position=position, title=title, url=url)
            )
        else:
            delta = old[0] - new[0]
            if delta != 0:
                total_position_change += abs(delta)
                changed_count += 1
            position_changes.append(PositionChange(
                domain=domain,
                old_position=old[0],
                new_position=new[0],
                delta=delta,
                direction=_direction(delta),
                title=new[1],
                url=new[2],
            ))

    position_changes.sort(key=lambda c: abs(c.delta), reverse=True)

    churn = len(new_domains) + len(lost_domains) + changed_count
    volatility_score = churn / len(all_domains) if all_domains else 0.0
    average_position_change = (
        total_position_change / changed_count if changed_count else 0.0
    )

    return ComparisonResult(
        from_timestamp=before.captured_at,
        to_timestamp=after.captured_at,
        new_domains=new_domains,
        lost_domains=lost_domains,
        position_changes=position_changes,
        volatility_score=volatility_score,
        average_position_change=average_position_change,
        total_changes=churn,
    )
