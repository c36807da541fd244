"""
プレイ記録の補完処理。

識別子を解析し、曲マスタから譜面定数とバージョンを引き当て、
レーティング値を付与した EnrichedRecord を生成する。

例外方針:
- 1件分の変換(enrich_record)では識別子の解析エラーをそのまま送出する。
- 一括変換(enrich_records)は strict=False の場合、不正なレコードを記録して残りを処理する。
"""

from __future__ import annotations

import logging
from dataclasses import dataclass, field
from typing import Iterable, List

from dxrating.errors import RecordError
from dxrating.identifier import parse_identifier
from dxrating.models import EnrichedRecord, RawInputRecord
from dxrating.reference import ReferenceIndex

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class RecordFailure:
    """
    変換できなかったレコードの情報。

    Attributes:
        position: アップロード配列内の位置(0始まり)。
        identifier: 対象レコードの識別子。
        error: 発生した例外。
    """

    position: int
    identifier: str
    error: RecordError

    def to_dict(self) -> dict:
        return {
            "index": self.position,
            "identifier": self.identifier,
            "error": type(self.error).__name__,
            "details": str(self.error),
        }


@dataclass
class EnrichmentReport:
    """一括変換の結果。成功したレコードと失敗したレコードを保持する。"""

    records: List[EnrichedRecord] = field(default_factory=list)
    failures: List[RecordFailure] = field(default_factory=list)


def enrich_record(raw: RawInputRecord, index: ReferenceIndex) -> EnrichedRecord:
    """
    1件のプレイ記録を EnrichedRecord に変換する。

    曲マスタに一致しない場合、level と version は 0 となり rating も 0 になる。

    Args:
        raw: アップロードされたプレイ記録。
        index: 曲マスタの索引。

    Returns:
        EnrichedRecord。

    Raises:
        FormatError: 識別子のフィールド数が不正な場合。
        UnknownDifficultyError: 難易度トークンが未知の場合。
    """
    parsed = parse_identifier(raw.identifier)

    level = index.lookup_level(parsed.song_name, parsed.chart_variant, parsed.difficulty_tier)
    version = index.lookup_version(parsed.song_name)

    return EnrichedRecord(
        song_name=parsed.song_name,
        chart_variant=parsed.chart_variant,
        difficulty_tier=parsed.difficulty_tier,
        achievement=raw.achievement_rate,
        level=level,
        version=version,
    )


def enrich_records(
    raws: Iterable[RawInputRecord],
    index: ReferenceIndex,
    strict: bool = False,
) -> EnrichmentReport:
    """
    プレイ記録を一括で変換する。

    strict=True の場合は最初の不正レコードで例外を送出する。
    strict=False の場合は不正レコードを failures に記録し、残りの変換を続ける。

    Args:
        raws: プレイ記録の列。
        index: 曲マスタの索引。
        strict: 不正レコードで処理全体を失敗させるかどうか。

    Returns:
        EnrichmentReport。

    Raises:
        RecordError: strict=True で不正レコードがあった場合。
    """
    report = EnrichmentReport()
    unmatched = 0

    for position, raw in enumerate(raws):
        try:
            record = enrich_record(raw, index)
        except RecordError as e:
            if strict:
                raise
            logger.warning("Skipping record #%d (%s): %s", position, raw.identifier, e)
            report.failures.append(RecordFailure(position, raw.identifier, e))
            continue

        if not record.level:
            unmatched += 1
        report.records.append(record)

    if unmatched:
        logger.info("%d records did not match the reference table", unmatched)

    return report
