from __future__ import annotations

import json
import sys
from pathlib import Path

import pytest

PROJECT_ROOT = Path(__file__).resolve().parents[1]
if str(PROJECT_ROOT) not in sys.path:
    sys.path.insert(0, str(PROJECT_ROOT))

from dxrating.models import ChartVariant, DifficultyTier, EnrichedRecord
from dxrating.reference import ReferenceIndex

FIXTURE_DIR = Path(__file__).resolve().parent / "fixtures"


def _make_record(
    name: str = "Song",
    level: float = 13.0,
    achievement: float = 99.0,
    version: int = 20000,
    variant: ChartVariant = ChartVariant.DX,
    tier: DifficultyTier = DifficultyTier.MASTER,
) -> EnrichedRecord:
    """テスト用の EnrichedRecord を生成する。"""
    return EnrichedRecord(
        song_name=name,
        chart_variant=variant,
        difficulty_tier=tier,
        achievement=achievement,
        level=level,
        version=version,
    )


@pytest.fixture
def make_record():
    return _make_record


@pytest.fixture
def reference_table_path() -> Path:
    return FIXTURE_DIR / "reference_mini.json"


@pytest.fixture
def scores_path() -> Path:
    return FIXTURE_DIR / "scores_mini.json"


@pytest.fixture
def reference_table(reference_table_path: Path) -> list:
    with reference_table_path.open("r", encoding="utf-8") as file_obj:
        return json.load(file_obj)


@pytest.fixture
def reference_index(reference_table: list) -> ReferenceIndex:
    return ReferenceIndex.build(reference_table)
