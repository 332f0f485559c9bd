"""compare モジュールのユニットテスト."""

from datetime import datetime, timezone

import pytest

from serp_history.compare import compare_serps
from serp_history.models import Snapshot, SnapshotItem


def _snapshot(day: int, *ranked: tuple[str, int]) -> Snapshot:
    return Snapshot(
        captured_at=datetime(2024, 1, day, tzinfo=timezone.utc),
        items=[
            SnapshotItem(domain=domain, rank_absolute=rank, title=f"{domain} title", url=f"https://{domain}/")
            for domain, rank in ranked
        ],
    )


class TestCompareSerps:
    """compare_serps のテスト."""

    def test_new_lost_and_moved(self):
        """新規・消失・順位上昇がそれぞれ検出されること."""
        before = _snapshot(1, ("x.com", 1), ("y.com", 2))
        after = _snapshot(2, ("y.com", 1), ("z.com", 2))

        result = compare_serps(before, after)

        assert [(d.domain, d.position) for d in result.new_domains] == [("z.com", 2)]
        assert [(d.domain, d.previous_position) for d in result.lost_domains] == [("x.com", 1)]
        assert len(result.position_changes) == 1
        change = result.position_changes[0]
        assert (change.domain, change.old_position, change.new_position) == ("y.com", 2, 1)
        assert change.delta == 1
        assert change.direction == "up"
        assert result.volatility_score == pytest.approx(1.0)
        assert result.total_changes == 3
        assert result.average_position_change == pytest.approx(1.0)

    def test_timestamps_echoed(self):
        before = _snapshot(1, ("x.com", 1))
        after = _snapshot(5, ("x.com", 1))

        result = compare_serps(before, after)

        assert result.from_timestamp == before.captured_at
        assert result.to_timestamp == after.captured_at

    def test_sorted_by_absolute_delta(self):
        """position_changes が |delta| の降順に並ぶこと."""
        before = _snapshot(1, ("c.com", 3), ("b.com", 10), ("a.com", 5))
        after = _snapshot(2, ("c.com", 3), ("b.com", 9), ("a.com", 1))

        result = compare_serps(before, after)

        assert [c.domain for c in result.position_changes] == ["a.com", "b.com", "c.com"]
        assert [c.delta for c in result.position_changes] == [4, 1, 0]
        assert result.position_changes[2].direction == "stable"

    def test_ties_keep_input_order(self):
        before = _snapshot(1, ("a.com", 1), ("b.com", 2), ("c.com", 3))
        after = _snapshot(2, ("b.com", 1), ("a.com", 2), ("c.com", 3))

        result = compare_serps(before, after)

        assert [c.domain for c in result.position_changes] == ["a.com", "b.com", "c.com"]
        assert [c.direction for c in result.position_changes] == ["down", "up", "stable"]

    def test_identical_snapshots(self):
        """同一スナップショット同士では変化なし."""
        snapshot = _snapshot(1, ("a.com", 1), ("b.com", 2), ("c.com", 3))

        result = compare_serps(snapshot, snapshot)

        assert result.new_domains == []
        assert result.lost_domains == []
        assert all(c.delta == 0 for c in result.position_changes)
        assert result.volatility_score == 0
        assert result.average_position_change == 0
        assert result.total_changes == 0

    def test_empty_snapshots(self):
        result = compare_serps(_snapshot(1), _snapshot(2))

        assert result.new_domains == []
        assert result.lost_domains == []
        assert result.position_changes == []
        assert result.volatility_score == 0

    def test_duplicate_domain_last_rank_wins(self):
        """同一ドメインが複数ある場合は後に出た順位を使うこと."""
        before = _snapshot(1, ("a.com", 1), ("b.com", 2), ("a.com", 5))
        after = _snapshot(2, ("a.com", 3), ("b.com", 2))

        result = compare_serps(before, after)

        change = next(c for c in result.position_changes if c.domain == "a.com")
        assert change.old_position == 5
        assert change.new_position == 3
        assert change.delta == 2

    def test_title_and_url_from_newer_snapshot(self):
        before = _snapshot(1, ("a.com", 2))
        after = Snapshot(
            captured_at=datetime(2024, 1, 2, tzinfo=timezone.utc),
            items=[SnapshotItem(domain="a.com", rank_absolute=1, title="New title", url="https://a.com/new")],
        )

        change = compare_serps(before, after).position_changes[0]

        assert change.title == "New title"
        assert change.url == "https://a.com/new"

    def test_movement_magnitude_not_weighted(self):
        """小さな変動も大きな変動も同じ 1 件として数えること."""
        before = _snapshot(1, ("a.com", 2), ("b.com", 3))
        small = compare_serps(before, _snapshot(2, ("a.com", 3), ("b.com", 2)))
        large = compare_serps(before, _snapshot(2, ("a.com", 99), ("b.com", 2)))

        assert small.volatility_score == large.volatility_score == pytest.approx(1.0)
        assert large.average_position_change > small.average_position_change


class TestCompareProperties:
    """比較結果の性質のテスト."""

    PAIRS = [
        (
            _snapshot(1, ("a.com", 1), ("b.com", 2), ("c.com", 3)),
            _snapshot(2, ("b.com", 1), ("d.com", 2), ("e.com", 3)),
        ),
        (
            _snapshot(1, ("a.com", 1)),
            _snapshot(2),
        ),
        (
            _snapshot(1, ("a.com", 4), ("b.com", 7), ("c.com", 1)),
            _snapshot(2, ("c.com", 2), ("a.com", 4), ("b.com", 1), ("a.com", 9)),
        ),
    ]

    @pytest.mark.parametrize("first,second", PAIRS)
    def test_churn_symmetry(self, first, second):
        forward = compare_serps(first, second)
        backward = compare_serps(second, first)

        assert {d.domain for d in forward.new_domains} == {d.domain for d in backward.lost_domains}
        assert {d.domain for d in forward.lost_domains} == {d.domain for d in backward.new_domains}

    @pytest.mark.parametrize("first,second", PAIRS)
    def test_volatility_bounds(self, first, second):
        for result in (compare_serps(first, second), compare_serps(second, first)):
            assert 0 <= result.volatility_score <= 1
