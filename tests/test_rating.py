"""DXレーティング計算のテスト。"""

from __future__ import annotations

import pytest

from dxrating.rating import (
    achievement_factor,
    achievement_label,
    compute_rating,
    difficulty_color,
    rating_threshold,
)

BREAKPOINTS = [80, 90, 94, 97, 98, 99, 99.5, 100, 100.5]


@pytest.mark.light
@pytest.mark.parametrize("level", [0, None, 0.0])
def test_zero_or_missing_level_gives_zero(level):
    """譜面定数が無い場合はレーティング 0 になることを確認する。"""
    for achievement in (0, 80, 99.2, 100.5, 150):
        assert compute_rating(level, achievement) == 0


@pytest.mark.light
def test_known_value_for_master_chart():
    """13.5 / 99.2% は floor(13.5 * 99.2 * 0.208) = 278 になることを確認する。"""
    assert compute_rating(13.5, 99.2) == 278


@pytest.mark.light
@pytest.mark.parametrize("level", [1, 12.7, 13, 15])
def test_achievement_above_cap_behaves_like_cap(level):
    """100.5% を超える達成率は 100.5% と同じ扱いになることを確認する。"""
    assert compute_rating(level, 150) == compute_rating(level, 100.5)
    assert compute_rating(level, 101) == compute_rating(level, 100.5)


@pytest.mark.light
def test_factor_jumps_exactly_at_breakpoint():
    """97.00% で係数が切り替わり、96.99% では切り替わらないことを確認する。"""
    assert achievement_factor(96.99) == 0.168
    assert achievement_factor(97.0) == 0.200
    assert compute_rating(13, 96.99) == int(13 * 96.99 * 0.168)
    assert compute_rating(13, 97.0) == int(13 * 97.0 * 0.200)
    assert compute_rating(13, 97.0) > compute_rating(13, 96.99)


@pytest.mark.light
def test_rating_is_monotonic_across_breakpoints():
    """閾値をまたぐごとにレーティングが減少しないことを確認する。"""
    previous = -1
    for bp in BREAKPOINTS:
        below = compute_rating(13, bp - 0.0001)
        at = compute_rating(13, bp)
        assert below <= at
        assert previous <= below
        previous = at


@pytest.mark.light
def test_below_80_is_zero():
    assert compute_rating(14, 79.9999) == 0
    assert achievement_factor(0) == 0.0


@pytest.mark.light
def test_negative_level_uses_absolute_value():
    assert compute_rating(-13.5, 99.2) == compute_rating(13.5, 99.2)


@pytest.mark.light
@pytest.mark.parametrize(
    "achievement, label",
    [
        (101.0, "SSS+"),
        (100.5, "SSS+"),
        (100.4999, "SSS"),
        (100.0, "SSS"),
        (99.5, "SS+"),
        (99.0, "SS"),
        (98.0, "S+"),
        (97.0, "S"),
        (94.0, "AAA"),
        (90.0, "AA"),
        (80.0, "A"),
        (79.99, "B"),
        (0.0, "B"),
    ],
)
def test_achievement_label(achievement, label):
    """評価ランクが閾値どおりに決まることを確認する。"""
    assert achievement_label(achievement) == label


@pytest.mark.light
def test_rating_threshold():
    assert rating_threshold(99.7) == 99.5
    assert rating_threshold(100.8) == 100.5
    assert rating_threshold(12.0) == 0


@pytest.mark.light
def test_difficulty_color_fallback():
    """未知の難易度やプレースホルダは青になることを確認する。"""
    assert difficulty_color(3) == "#c002f0"
    assert difficulty_color(None) == "#1477e6"
    assert difficulty_color(-1) == "#1477e6"


@pytest.mark.light
@pytest.mark.parametrize(
    "level, achievement",
    [
        (13.5, float("nan")),
        (13.5, float("inf")),
        (13.5, float("-inf")),
        (float("nan"), 99.0),
        (float("inf"), 99.0),
    ],
)
def test_non_finite_values_give_zero(level, achievement):
    """NaN / 無限大が渡されても例外にならず 0 を返すことを確認する。"""
    assert compute_rating(level, achievement) == 0
