"""
曲マスタ(参照テーブル)の索引モジュール。

otoge-db の music-ex-intl.json の各行から、正規化済み曲名をキーとして
以下の索引を構築する。

- 曲名 -> バージョン
- 曲名 -> ジャケット画像ファイル名
- 曲名 -> 行そのもの(譜面定数の参照に使う)

索引は構築後に変更されないため、複数の呼び出しから共有してよい。
"""

from __future__ import annotations

import logging
import math
import re
from types import MappingProxyType
from typing import Any, Dict, Iterable, Mapping, Optional, Tuple, Union

from dxrating.models import ChartVariant, DifficultyTier
from dxrating.normalize import normalize_title

logger = logging.getLogger(__name__)

# (主フィールド, 代替フィールド)
# DX の BASIC / ADVANCED には "_i" 付きフィールドが存在しないため同一フィールドを指す
LEVEL_FIELD_PAIRS: Dict[Tuple[ChartVariant, DifficultyTier], Tuple[str, str]] = {
    (ChartVariant.STD, DifficultyTier.BASIC): ("lev_bas_i", "lev_bas"),
    (ChartVariant.STD, DifficultyTier.ADVANCED): ("lev_adv_i", "lev_adv"),
    (ChartVariant.STD, DifficultyTier.EXPERT): ("lev_exp_i", "lev_exp"),
    (ChartVariant.STD, DifficultyTier.MASTER): ("lev_mas_i", "lev_mas"),
    (ChartVariant.STD, DifficultyTier.REMASTER): ("lev_remas_i", "lev_remas"),
    (ChartVariant.DX, DifficultyTier.BASIC): ("dx_lev_bas", "dx_lev_bas"),
    (ChartVariant.DX, DifficultyTier.ADVANCED): ("dx_lev_adv", "dx_lev_adv"),
    (ChartVariant.DX, DifficultyTier.EXPERT): ("dx_lev_exp_i", "dx_lev_exp"),
    (ChartVariant.DX, DifficultyTier.MASTER): ("dx_lev_mas_i", "dx_lev_mas"),
    (ChartVariant.DX, DifficultyTier.REMASTER): ("dx_lev_remas_i", "dx_lev_remas"),
}

_LEADING_NUMBER = re.compile(r"^[+-]?(\d+(\.\d*)?|\.\d+)")


def _is_blank(value: Any) -> bool:
    return value is None or str(value).strip() == ""


def parse_level(text: Any) -> float:
    """
    譜面定数の文字列を数値へ変換する。

    "13.7" のような小数表記や "13+" のような末尾記号付きの表記を許容し、
    先頭の数値部分のみを採用する。数値として読めない場合は 0 を返す。

    Args:
        text: 曲マスタのレベル欄の値。

    Returns:
        譜面定数(float)。
    """
    if _is_blank(text):
        return 0.0

    match = _LEADING_NUMBER.match(str(text).strip())
    if not match:
        return 0.0
    return float(match.group(0))


def _to_version(value: Any) -> Union[int, float]:
    """バージョン欄("25500" や 25500)を数値に変換する。読めなければ 0。"""
    try:
        number = float(value)
    except (TypeError, ValueError):
        return 0
    if not math.isfinite(number):
        return 0
    return int(number) if number.is_integer() else number


class ReferenceIndex:
    """
    曲マスタの索引。

    `ReferenceIndex.build(table)` で構築し、以降は読み取り専用として扱う。
    曲名・属性が欠けた行はその索引から除外する(曲マスタの欠損はよくあるため例外にしない)。
    """

    def __init__(
        self,
        entries: Mapping[str, Mapping[str, Any]],
        versions: Mapping[str, Union[int, float]],
        image_refs: Mapping[str, str],
    ):
        self._entries = MappingProxyType(dict(entries))
        self._versions = MappingProxyType(dict(versions))
        self._image_refs = MappingProxyType(dict(image_refs))

    @classmethod
    def build(cls, table: Iterable[Mapping[str, Any]]) -> "ReferenceIndex":
        """
        曲マスタの行リストから索引を構築する。

        譜面定数の索引は同名の曲が複数ある場合に先頭の行を採用し、
        バージョン・画像の索引は後の行で上書きする。

        Args:
            table: 曲マスタ(JSON配列をパースしたもの)。

        Returns:
            ReferenceIndex。
        """
        entries: Dict[str, Mapping[str, Any]] = {}
        versions: Dict[str, Union[int, float]] = {}
        image_refs: Dict[str, str] = {}

        skipped = 0
        for row in table:
            if not isinstance(row, Mapping):
                skipped += 1
                continue

            title = row.get("title")
            if _is_blank(title):
                skipped += 1
                continue

            key = normalize_title(title)
            entries.setdefault(key, row)

            # 0 は未設定と同じ扱いとし、先行する行の値を上書きしない
            version = _to_version(row.get("version"))
            if version:
                versions[key] = version

            image_ref = row.get("image_url")
            if not _is_blank(image_ref):
                image_refs[key] = str(image_ref)

        if skipped:
            logger.debug("Skipped %d reference rows without a title", skipped)

        logger.info(
            "Reference index built: %d titles, %d versions, %d images",
            len(entries),
            len(versions),
            len(image_refs),
        )
        return cls(entries, versions, image_refs)

    def __len__(self) -> int:
        return len(self._entries)

    def __contains__(self, title: object) -> bool:
        return isinstance(title, str) and normalize_title(title) in self._entries

    def lookup_level(
        self,
        title: str,
        chart_variant: ChartVariant,
        difficulty_tier: DifficultyTier,
    ) -> float:
        """
        曲名・譜面種別・難易度から譜面定数を返す。

        主フィールドが空なら代替フィールドを参照し、どちらも空なら 0 を返す。
        曲マスタに曲が存在しない場合も 0 を返す。

        Args:
            title: 曲名(正規化前で可)。
            chart_variant: 譜面種別。
            difficulty_tier: 難易度。

        Returns:
            譜面定数(float)。
        """
        row = self._entries.get(normalize_title(title))
        if row is None:
            return 0.0

        primary, fallback = LEVEL_FIELD_PAIRS[(chart_variant, difficulty_tier)]

        value = row.get(primary)
        if _is_blank(value):
            value = row.get(fallback)
        return parse_level(value)

    def lookup_version(self, title: str) -> Union[int, float]:
        """曲名に対応するバージョン番号を返す。存在しなければ 0。"""
        return self._versions.get(normalize_title(title), 0)

    def lookup_image_ref(self, title: str) -> Optional[str]:
        """曲名に対応するジャケット画像参照を返す。存在しなければ None。"""
        return self._image_refs.get(normalize_title(title))

    def image_ref_map(self) -> Dict[str, str]:
        """正規化済み曲名 -> ジャケット画像参照 の辞書(コピー)を返す。"""
        return dict(self._image_refs)
