"""順位・検索ボリュームからの推定指標.

CTR カーブは Google Search Console の平均値に基づく経験値。
推定トラフィックと可視性スコアはこの表と整合している前提なので、
区間と係数は変更しないこと。
"""

from __future__ import annotations

import math


def _round_half_up(value: float) -> int:
    """0.5 を切り上げる丸め（ダッシュボード表示と同じ）."""
    return math.floor(value + 0.5)


def estimated_ctr(position: int | None) -> float | None:
    """順位から推定 CTR を返す. 順位不明なら None."""
    if position is None:
        return None

    if position == 1:
        return 0.316
    if position == 2:
        return 0.244
    if position == 3:
        return 0.186
    if 4 <= position <= 10:
        return 0.05 + (10 - position) * 0.015  # 5%〜14%
    if 11 <= position <= 20:
        return 0.02 + (20 - position) * 0.002  # 2%〜4%
    if 21 <= position <= 30:
        return 0.01 + (30 - position) * 0.0005
    if 31 <= position <= 50:
        return 0.005 + (50 - position) * 0.0001
    if 51 <= position <= 100:
        return 0.001 + (100 - position) * 0.00001

    return 0.001  # 圏外（100位超）


def estimated_traffic(search_volume: int | None, ctr: float | None) -> int | None:
    """月間推定トラフィック = 検索ボリューム × CTR."""
    if search_volume is None or ctr is None:
        return None
    return _round_half_up(search_volume * ctr)


def _position_score(position: int) -> float:
    if position == 1:
        return 100
    if position == 2:
        return 80
    if position == 3:
        return 65
    if 4 <= position <= 10:
        return 50 - (position - 4) * 5
    if 11 <= position <= 20:
        return 30 - (position - 11) * 2
    if 21 <= position <= 30:
        return 15 - (position - 21) * 0.5
    if 31 <= position <= 50:
        return 10 - (position - 31) * 0.2
    if 51 <= position <= 100:
        return 5 - (position - 51) * 0.05
    return 0


def visibility_score(position: int | None, search_volume: int | None) -> int | None:
    """可視性スコア (0〜100).

    順位スコア × ボリューム重み。重みは log10(volume + 1) / 6 を 1 で頭打ち
    （検索ボリューム 100 万で 1）。
    """
    if position is None or search_volume is None:
        return None

    volume_weight = min(1.0, math.log10(search_volume + 1) / 6)
    return _round_half_up(_position_score(position) * volume_weight)
