"""
レーティング計算の一連の処理をまとめるモジュール。

アップロード記録の補完、ベスト枠の選出、結果のJSON化、
およびエラー応答(`{error, details}`)の生成を行う。

呼び出し側は成功時に選曲結果、失敗時に単一のエラーのみを受け取り、
成功と失敗が混在した応答は返さない。
"""

from __future__ import annotations

from dataclasses import dataclass, field
from typing import List, Sequence

from dxrating.config import SelectionConfig
from dxrating.enrich import RecordFailure, enrich_records
from dxrating.errors import (
    FormatError,
    InputShapeError,
    RatingToolError,
    ReferenceUnavailableError,
    UnknownDifficultyError,
)
from dxrating.models import RawInputRecord, SelectionResult
from dxrating.reference import ReferenceIndex
from dxrating.selector import select_best

_ERROR_TITLES = {
    FormatError: "Invalid record identifier",
    UnknownDifficultyError: "Unknown chart difficulty",
    InputShapeError: "Invalid upload",
    ReferenceUnavailableError: "Song database unavailable",
}


@dataclass(frozen=True)
class ScoringResult:
    """
    スコア計算の結果。

    Attributes:
        selection: 新曲枠・旧曲枠の選曲結果。
        failures: 変換できずに除外したレコード(lenient モード時のみ)。
        processed: 変換に成功したレコード数。
    """

    selection: SelectionResult
    failures: List[RecordFailure] = field(default_factory=list)
    processed: int = 0


def score_records(
    raws: Sequence[RawInputRecord],
    index: ReferenceIndex,
    selection: SelectionConfig = SelectionConfig(),
    strict: bool = False,
) -> ScoringResult:
    """
    アップロード記録から選曲結果を算出する。

    Args:
        raws: アップロード記録。
        index: 曲マスタの索引。
        selection: 選曲設定(バージョン閾値・枠数)。
        strict: 不正レコードで全体を失敗させるかどうか。

    Returns:
        ScoringResult。

    Raises:
        ReferenceUnavailableError: 索引が空の場合。
        RecordError: strict=True で不正レコードがあった場合。
    """
    if index is None or len(index) == 0:
        raise ReferenceUnavailableError("Reference index is empty")

    report = enrich_records(raws, index, strict=strict)
    result = select_best(
        report.records,
        version_threshold=selection.latest_version,
        recent_capacity=selection.recent_capacity,
        older_capacity=selection.older_capacity,
    )
    return ScoringResult(
        selection=result,
        failures=report.failures,
        processed=len(report.records),
    )


def result_to_dict(result: ScoringResult) -> dict:
    """ScoringResult をJSON出力用の辞書に変換する。"""
    selection = result.selection
    return {
        "recentList": [r.to_dict() for r in selection.recent],
        "olderList": [r.to_dict() for r in selection.older],
        "totals": {
            "recent": selection.recent_total,
            "older": selection.older_total,
            "total": selection.total,
        },
        "processed": result.processed,
        "errors": [f.to_dict() for f in result.failures],
    }


def error_payload(exc: RatingToolError) -> dict:
    """
    例外をエラー応答の辞書(`{"error": ..., "details": ...}`)に変換する。

    Args:
        exc: 発生した例外。

    Returns:
        エラー応答の辞書。
    """
    title = "Failed to generate rating"
    for klass, text in _ERROR_TITLES.items():
        if isinstance(exc, klass):
            title = text
            break
    return {"error": title, "details": str(exc)}
