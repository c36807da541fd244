"""
データモデル定義モジュール。

アップロードされたプレイ記録(RawInputRecord)、識別子の解析結果、
曲マスタと突き合わせた記録(EnrichedRecord)、および選曲結果(SelectionResult)を定義する。
"""

from __future__ import annotations

from dataclasses import dataclass, field
from enum import IntEnum
from typing import Optional, Tuple, Union

from dxrating.rating import compute_rating


class ChartVariant(IntEnum):
    """譜面種別。STD(スタンダード)とDXの2種類。"""

    STD = 0
    DX = 1

    @property
    def label(self) -> str:
        return self.name


class DifficultyTier(IntEnum):
    """難易度。BASIC から Re:MASTER までの5段階。"""

    BASIC = 0
    ADVANCED = 1
    EXPERT = 2
    MASTER = 3
    REMASTER = 4


@dataclass(frozen=True)
class RawInputRecord:
    """
    アップロードされた1プレイ分の記録。

    Attributes:
        identifier: `曲名__x__譜面種別__y__難易度` 形式の識別子(mai-tools の sheetId)。
        achievement_rate: 達成率(%)。
    """

    identifier: str
    achievement_rate: float


@dataclass(frozen=True)
class ParsedIdentifier:
    """識別子を分解した結果。曲名は正規化しない。"""

    song_name: str
    chart_variant: ChartVariant
    difficulty_tier: DifficultyTier


@dataclass(frozen=True)
class EnrichedRecord:
    """
    曲マスタと突き合わせ、レーティング値を付与した記録。

    rating は level と achievement から常に算出され、外部から指定できない。
    曲マスタに一致しない場合 level は 0 となり、rating も 0 になる。

    difficulty_tier が None のレコードは描画用のプレースホルダ(NO DATA)を表す。
    """

    song_name: str
    chart_variant: ChartVariant
    difficulty_tier: Optional[DifficultyTier]
    achievement: float
    level: Optional[float]
    version: Union[int, float]
    rating: int = field(init=False)

    def __post_init__(self) -> None:
        object.__setattr__(self, "rating", compute_rating(self.level, self.achievement))

    @property
    def is_placeholder(self) -> bool:
        return self.difficulty_tier is None

    def to_dict(self) -> dict:
        """JSON出力用の辞書(camelCaseキー)に変換する。"""
        return {
            "songName": self.song_name,
            "chartVariant": self.chart_variant.label,
            "difficultyTier": self.difficulty_tier.name if self.difficulty_tier is not None else None,
            "achievement": self.achievement,
            "level": self.level,
            "version": self.version,
            "rating": self.rating,
        }


@dataclass(frozen=True)
class SelectionResult:
    """
    新曲枠・旧曲枠それぞれの上位記録。

    どちらもレーティング降順・達成率降順に並び、容量で切り詰め済み。
    容量に満たない場合も埋め草は入れない(描画側の責務)。
    """

    recent: Tuple[EnrichedRecord, ...] = ()
    older: Tuple[EnrichedRecord, ...] = ()

    @property
    def recent_total(self) -> int:
        return sum(r.rating for r in self.recent)

    @property
    def older_total(self) -> int:
        return sum(r.rating for r in self.older)

    @property
    def total(self) -> int:
        return self.recent_total + self.older_total
