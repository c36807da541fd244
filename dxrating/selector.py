"""
ベスト枠の選曲処理。

EnrichedRecord をバージョン閾値で新曲枠(recent)と旧曲枠(older)に分け、
それぞれをレーティング降順・達成率降順で並べ、枠数で切り詰める。

並び替えは安定ソートで行うため、両キーが同値のレコードは入力順を保つ。
枠数に満たない場合の埋め草は描画側(presenter)で行う。
"""

from __future__ import annotations

from typing import Iterable, List, Tuple

from dxrating.models import EnrichedRecord, SelectionResult

LATEST_VERSION = 25500
RECENT_CAPACITY = 15
OLDER_CAPACITY = 35


def sort_key(record: EnrichedRecord) -> Tuple[int, float]:
    """レーティング降順、達成率降順に並べるためのソートキーを返す。"""
    return (-record.rating, -record.achievement)


def rank_records(records: Iterable[EnrichedRecord], capacity: int) -> Tuple[EnrichedRecord, ...]:
    """
    レコードを並び替え、先頭から capacity 件を返す。

    Args:
        records: 対象レコード。
        capacity: 最大件数。

    Returns:
        並び替え・切り詰め済みのタプル。
    """
    ranked = sorted(records, key=sort_key)
    return tuple(ranked[: max(capacity, 0)])


def select_best(
    records: Iterable[EnrichedRecord],
    version_threshold: float = LATEST_VERSION,
    recent_capacity: int = RECENT_CAPACITY,
    older_capacity: int = OLDER_CAPACITY,
) -> SelectionResult:
    """
    新曲枠・旧曲枠のベスト記録を選出する。

    version が version_threshold 以上のレコードを新曲枠、それ以外を旧曲枠とする。

    Args:
        records: EnrichedRecord の列。
        version_threshold: 新曲とみなすバージョンの下限。
        recent_capacity: 新曲枠の件数(既定 15)。
        older_capacity: 旧曲枠の件数(既定 35)。

    Returns:
        SelectionResult。入力が空の場合は両枠とも空。
    """
    recent: List[EnrichedRecord] = []
    older: List[EnrichedRecord] = []

    for record in records:
        if record.version >= version_threshold:
            recent.append(record)
        else:
            older.append(record)

    return SelectionResult(
        recent=rank_records(recent, recent_capacity),
        older=rank_records(older, older_capacity),
    )
