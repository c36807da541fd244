"""
DXレーティング計算モジュール。

譜面定数(level)と達成率から1譜面分のレーティング値を算出する。
あわせて、描画で用いる評価ランク(SSS+ 等)と難易度カラーを提供する。

計算式:
    floor(|level| * min(achievement, 100.5) * factor)

factor は達成率の閾値表から上位の閾値を優先して決定する。
"""

from __future__ import annotations

import math
from typing import Optional, Tuple

ACHIEVEMENT_CAP = 100.5

# (閾値, 係数, ランク) を高い順に並べる
_RANK_TABLE: Tuple[Tuple[float, float, str], ...] = (
    (100.5, 0.224, "SSS+"),
    (100.0, 0.216, "SSS"),
    (99.5, 0.211, "SS+"),
    (99.0, 0.208, "SS"),
    (98.0, 0.203, "S+"),
    (97.0, 0.200, "S"),
    (94.0, 0.168, "AAA"),
    (90.0, 0.152, "AA"),
    (80.0, 0.136, "A"),
)

_LOWEST_RANK = "B"

_DIFFICULTY_COLORS = {
    0: "#81d955",  # BASIC
    1: "#ffb400",  # ADVANCED
    2: "#ff008a",  # EXPERT
    3: "#c002f0",  # MASTER
    4: "#e1beff",  # Re:MASTER
}

_DEFAULT_COLOR = "#1477e6"


def rating_threshold(achievement: float) -> float:
    """
    達成率が到達している最上位の閾値を返す。

    Args:
        achievement: 達成率(%)。

    Returns:
        閾値(100.5, 100, ... 80)。80未満の場合は 0。
    """
    for threshold, _, _ in _RANK_TABLE:
        if achievement >= threshold:
            return threshold
    return 0


def achievement_factor(achievement: float) -> float:
    """
    達成率に対応するレーティング係数を返す。

    Args:
        achievement: 達成率(%)。

    Returns:
        係数。80未満の場合は 0.0。
    """
    for threshold, factor, _ in _RANK_TABLE:
        if achievement >= threshold:
            return factor
    return 0.0


def compute_rating(level: Optional[float], achievement: float) -> int:
    """
    譜面定数と達成率からレーティング値を算出する。

    level が None または 0 の場合、および level・達成率が有限値でない場合は 0 を返す。
    達成率は 100.5 を上限として扱う。

    Args:
        level: 譜面定数。曲マスタに一致しない場合は None または 0。
        achievement: 達成率(%)。

    Returns:
        レーティング値(整数)。
    """
    if not level or not math.isfinite(level) or not math.isfinite(achievement):
        return 0

    capped = min(achievement, ACHIEVEMENT_CAP)
    factor = achievement_factor(capped)
    return math.floor(abs(level) * capped * factor)


def achievement_label(achievement: float) -> str:
    """
    達成率に対応する評価ランク文字列(SSS+ / SSS / ... / A / B)を返す。

    Args:
        achievement: 達成率(%)。

    Returns:
        ランク文字列。80未満は "B"。
    """
    for threshold, _, label in _RANK_TABLE:
        if achievement >= threshold:
            return label
    return _LOWEST_RANK


def difficulty_color(tier: Optional[int]) -> str:
    """難易度に対応するタイル背景色を返す。未知・プレースホルダは青。"""
    if tier is None:
        return _DEFAULT_COLOR
    return _DIFFICULTY_COLORS.get(int(tier), _DEFAULT_COLOR)
