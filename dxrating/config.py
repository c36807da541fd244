"""
設定ファイル(settings.yaml)の読み込み処理を提供するモジュール。

settings.yaml からレーティング画像生成に必要な各種設定を読み込み、
アプリ内で扱いやすい dataclass に変換する。
ファイルやキーが存在しない場合は既定値を用いる。
"""

from __future__ import annotations

import os
from dataclasses import dataclass, field
from typing import Any, Optional

import yaml

from dxrating.errors import ConfigError
from dxrating.reference_loader import REFERENCE_DB_URL
from dxrating.selector import LATEST_VERSION, OLDER_CAPACITY, RECENT_CAPACITY

COVER_BASE_URL = "https://otoge-db.net/maimai/jacket/"


@dataclass(frozen=True)
class SelectionConfig:
    """
    ベスト枠の選曲設定。

    Attributes:
        latest_version: 新曲枠とみなすバージョンの下限。
        recent_capacity: 新曲枠の件数。
        older_capacity: 旧曲枠の件数。
    """

    latest_version: int = LATEST_VERSION
    recent_capacity: int = RECENT_CAPACITY
    older_capacity: int = OLDER_CAPACITY


@dataclass(frozen=True)
class RenderConfig:
    """
    画像描画設定。

    Attributes:
        cover_base_url: ジャケット画像ファイル名を解決する基準URL。
        font_path: 描画に用いるTrueTypeフォントのパス。未指定なら Pillow 既定フォント。
        max_workers: ジャケット画像の並列取得数。
        cache_size: ジャケット画像キャッシュの最大件数。
        load_covers: ジャケット画像を取得するかどうか。
    """

    cover_base_url: str = COVER_BASE_URL
    font_path: Optional[str] = None
    max_workers: int = 8
    cache_size: int = 128
    load_covers: bool = True


@dataclass(frozen=True)
class OutputConfig:
    """出力先設定。"""

    json_path: str = "rating.json"
    image_path: str = "rating.png"


@dataclass(frozen=True)
class Settings:
    """
    アプリケーション全体設定。

    settings.yaml の内容を保持する。

    Attributes:
        reference_db_url: 曲マスタ(music-ex-intl.json)のURL。
        request_timeout: HTTPタイムアウト秒。
        strict: 不正なレコードがあった場合に全体を失敗させるかどうか。
        selection: 選曲設定。
        render: 描画設定。
        output: 出力先設定。
    """

    reference_db_url: str = REFERENCE_DB_URL
    request_timeout: int = 30
    strict: bool = False
    selection: SelectionConfig = field(default_factory=SelectionConfig)
    render: RenderConfig = field(default_factory=RenderConfig)
    output: OutputConfig = field(default_factory=OutputConfig)


def _section(data: dict, name: str) -> dict:
    value = data.get(name) or {}
    if not isinstance(value, dict):
        raise ConfigError(f"'{name}' must be a mapping")
    return value


def _positive_int(value: Any, name: str) -> int:
    try:
        number = int(value)
    except (TypeError, ValueError) as e:
        raise ConfigError(f"'{name}' must be an integer: {value!r}") from e
    if number < 0:
        raise ConfigError(f"'{name}' must not be negative: {number}")
    return number


def settings_from_dict(data: Optional[dict]) -> Settings:
    """
    辞書から Settings を生成する。

    Args:
        data: settings.yaml をパースした辞書。None の場合は既定値。

    Returns:
        Settingsオブジェクト。

    Raises:
        ConfigError: 値の型や範囲が不正な場合。
    """
    data = data or {}
    if not isinstance(data, dict):
        raise ConfigError("settings must be a mapping")

    selection_data = _section(data, "selection")
    render_data = _section(data, "render")
    output_data = _section(data, "output")

    font_path = render_data.get("font_path")

    return Settings(
        reference_db_url=str(data.get("reference_db_url", REFERENCE_DB_URL)).strip(),
        request_timeout=_positive_int(data.get("request_timeout", 30), "request_timeout"),
        strict=bool(data.get("strict", False)),
        selection=SelectionConfig(
            latest_version=_positive_int(
                selection_data.get("latest_version", LATEST_VERSION), "selection.latest_version"
            ),
            recent_capacity=_positive_int(
                selection_data.get("recent_capacity", RECENT_CAPACITY), "selection.recent_capacity"
            ),
            older_capacity=_positive_int(
                selection_data.get("older_capacity", OLDER_CAPACITY), "selection.older_capacity"
            ),
        ),
        render=RenderConfig(
            cover_base_url=str(render_data.get("cover_base_url", COVER_BASE_URL)),
            font_path=str(font_path) if font_path else None,
            max_workers=max(1, _positive_int(render_data.get("max_workers", 8), "render.max_workers")),
            cache_size=_positive_int(render_data.get("cache_size", 128), "render.cache_size"),
            load_covers=bool(render_data.get("load_covers", True)),
        ),
        output=OutputConfig(
            json_path=str(output_data.get("json_path", "rating.json")),
            image_path=str(output_data.get("image_path", "rating.png")),
        ),
    )


def load_settings(path: str) -> Settings:
    """
    settings.yaml を読み込み Settings に変換する。

    ファイルが存在しない場合は既定値の Settings を返す。

    Args:
        path: settings.yaml のファイルパス。

    Returns:
        Settingsオブジェクト。

    Raises:
        ConfigError: YAMLのパースに失敗した場合、または値が不正な場合。
    """
    if not os.path.exists(path):
        return Settings()

    try:
        with open(path, "r", encoding="utf-8") as f:
            data = yaml.safe_load(f)
    except yaml.YAMLError as e:
        raise ConfigError(f"settings.yaml parse failed: {path} ({e})") from e

    return settings_from_dict(data)
