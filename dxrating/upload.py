"""
アップロードJSONの読み込み処理。

mai-tools の rating-calculator から「Export as JSON」で出力したファイルを読み込み、
RawInputRecord のリストへ変換する。

想定仕様:
- トップレベルはJSON配列であること
- 各要素は `sheetId`(または `identifier`)と `achievementRate` を持つオブジェクトであること
- いずれかの条件を満たさない場合は全体を InputShapeError とし、部分的な取り込みは行わない
"""

from __future__ import annotations

import json
import logging
import math
from typing import Any, List

from dxrating.errors import InputShapeError
from dxrating.models import RawInputRecord

logger = logging.getLogger(__name__)

IDENTIFIER_KEYS = ("sheetId", "identifier")


def _to_record(position: int, item: Any) -> RawInputRecord:
    """配列の1要素を RawInputRecord に変換する。"""
    if not isinstance(item, dict):
        raise InputShapeError(f"Element #{position} is not an object: {type(item).__name__}")

    identifier = None
    for key in IDENTIFIER_KEYS:
        if key in item:
            identifier = item[key]
            break

    if not isinstance(identifier, str):
        raise InputShapeError(f"Element #{position} has no string sheetId")

    rate = item.get("achievementRate")
    # bool は int のサブクラスなので除外する
    if isinstance(rate, bool) or not isinstance(rate, (int, float)):
        raise InputShapeError(f"Element #{position} has no numeric achievementRate")
    # json は NaN / Infinity を受け付けるため、ここで除外する
    if not math.isfinite(rate):
        raise InputShapeError(f"Element #{position} has a non-finite achievementRate: {rate}")

    return RawInputRecord(identifier=identifier, achievement_rate=float(rate))


def parse_upload(text: str) -> List[RawInputRecord]:
    """
    アップロードされたJSON文字列をパースし RawInputRecord のリストを返す。

    Args:
        text: JSON文字列。

    Returns:
        RawInputRecord のリスト。

    Raises:
        InputShapeError: JSONとして不正、配列でない、または要素の形式が不正な場合。
    """
    try:
        data = json.loads(text)
    except ValueError as e:
        raise InputShapeError(f"Upload is not valid JSON: {e}") from e

    if not isinstance(data, list):
        raise InputShapeError(f"Upload must be a JSON array, got {type(data).__name__}")

    records = [_to_record(i, item) for i, item in enumerate(data)]
    logger.info("Parsed %d uploaded records", len(records))
    return records


def load_upload_file(path: str) -> List[RawInputRecord]:
    """
    アップロードJSONファイルを読み込む。

    Args:
        path: JSONファイルパス。

    Returns:
        RawInputRecord のリスト。

    Raises:
        FileNotFoundError: ファイルが存在しない場合。
        InputShapeError: UTF-8 として読めない、または内容が不正な場合。
    """
    with open(path, "r", encoding="utf-8-sig") as f:
        try:
            text = f.read()
        except UnicodeDecodeError as e:
            raise InputShapeError(f"Upload is not UTF-8 text: {e}") from e
    return parse_upload(text)
