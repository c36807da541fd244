"""アップロードJSON読み込みのテスト。"""

from __future__ import annotations

from pathlib import Path

import pytest

from dxrating.errors import InputShapeError
from dxrating.models import RawInputRecord
from dxrating.upload import load_upload_file, parse_upload


@pytest.mark.light
def test_parse_mai_tools_export():
    records = parse_upload(
        '[{"sheetId": "Foo__dxrt__dx__dxrt__master", "achievementRate": 99.2},'
        ' {"identifier": "Bar__x__std__y__expert", "achievementRate": 100}]'
    )
    assert records == [
        RawInputRecord("Foo__dxrt__dx__dxrt__master", 99.2),
        RawInputRecord("Bar__x__std__y__expert", 100.0),
    ]


@pytest.mark.light
def test_empty_array_is_valid():
    assert parse_upload("[]") == []


@pytest.mark.light
@pytest.mark.parametrize("text", ['{"sheetId": "a"}', '"text"', "42", "null"])
def test_non_array_is_rejected(text):
    with pytest.raises(InputShapeError, match="JSON array"):
        parse_upload(text)


@pytest.mark.light
def test_invalid_json_is_rejected():
    with pytest.raises(InputShapeError, match="not valid JSON"):
        parse_upload("[{")


@pytest.mark.light
@pytest.mark.parametrize(
    "text",
    [
        '[{"sheetId": "a__b__std__c__master", "achievementRate": 99}, 3]',
        '[{"achievementRate": 99}]',
        '[{"sheetId": 12, "achievementRate": 99}]',
        '[{"sheetId": "a__b__std__c__master"}]',
        '[{"sheetId": "a__b__std__c__master", "achievementRate": "99"}]',
        '[{"sheetId": "a__b__std__c__master", "achievementRate": true}]',
        '[{"sheetId": "a__b__std__c__master", "achievementRate": NaN}]',
        '[{"sheetId": "a__b__std__c__master", "achievementRate": Infinity}]',
        '[{"sheetId": "a__b__std__c__master", "achievementRate": -Infinity}]',
    ],
)
def test_malformed_element_rejects_whole_upload(text):
    """要素が1つでも不正なら全体を拒否することを確認する。"""
    with pytest.raises(InputShapeError, match="Element #"):
        parse_upload(text)


@pytest.mark.light
def test_load_upload_file_with_bom(tmp_path: Path):
    """UTF-8 BOM付きファイルを読み込めることを確認する。"""
    path = tmp_path / "scores.json"
    path.write_text('[{"sheetId": "a__b__dx__c__easy", "achievementRate": 80.5}]', encoding="utf-8-sig")
    assert load_upload_file(str(path)) == [RawInputRecord("a__b__dx__c__easy", 80.5)]


@pytest.mark.light
def test_load_upload_file_rejects_non_utf8(tmp_path: Path):
    """UTF-8 として読めないファイルは InputShapeError になることを確認する。"""
    path = tmp_path / "scores.json"
    path.write_bytes(b'[{"sheetId": "a__b__dx__c__easy", "achievementRate": 80.5}]\xff')
    with pytest.raises(InputShapeError, match="not UTF-8"):
        load_upload_file(str(path))
