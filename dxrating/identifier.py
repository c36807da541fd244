"""
識別子パーサ。

mai-tools がエクスポートする sheetId (`曲名__x__譜面種別__y__難易度`) を分解し、
曲名・譜面種別・難易度を取り出す責務を持つ。

想定仕様:
- 区切り文字は "__" で、分割結果は必ず5要素
- 3要素目が "dx" なら DX 譜面、それ以外は STD 譜面
- 5要素目は easy / advanced / expert / master / remaster のいずれか
- 曲名の正規化は行わない(照合時に呼び出し側で行う)
"""

from __future__ import annotations

from dxrating.errors import FormatError, UnknownDifficultyError
from dxrating.models import ChartVariant, DifficultyTier, ParsedIdentifier

DELIMITER = "__"
FIELD_COUNT = 5

DIFFICULTY_MAP = {
    "easy": DifficultyTier.BASIC,
    "advanced": DifficultyTier.ADVANCED,
    "expert": DifficultyTier.EXPERT,
    "master": DifficultyTier.MASTER,
    "remaster": DifficultyTier.REMASTER,
}

_DX_TOKEN = "dx"


def parse_identifier(identifier: str) -> ParsedIdentifier:
    """
    識別子文字列を解析し ParsedIdentifier を返す。

    Args:
        identifier: `曲名__x__譜面種別__y__難易度` 形式の文字列。

    Returns:
        ParsedIdentifier。

    Raises:
        FormatError: "__" で5要素に分割できない場合。
        UnknownDifficultyError: 難易度トークンが未知の場合。
    """
    parts = identifier.split(DELIMITER)
    if len(parts) != FIELD_COUNT:
        raise FormatError(f"Invalid identifier format: {identifier}")

    song_name = parts[0]
    variant_code = parts[2]
    difficulty_code = parts[4]

    chart_variant = ChartVariant.DX if variant_code == _DX_TOKEN else ChartVariant.STD

    difficulty_tier = DIFFICULTY_MAP.get(difficulty_code)
    if difficulty_tier is None:
        raise UnknownDifficultyError(f"Unknown difficulty: {difficulty_code}")

    return ParsedIdentifier(
        song_name=song_name,
        chart_variant=chart_variant,
        difficulty_tier=difficulty_tier,
    )
