"""
曲マスタ(参照テーブル)の取得処理。

otoge-db が公開している music-ex-intl.json を取得し、JSON配列として返す責務を持つ。
索引の構築は reference.py 側で行い、本モジュールは通信・読み込みのみを担当する。

例外方針:
- requests 由来の例外は ReferenceUnavailableError に変換して上位へ伝播する。
- 取得結果がJSON配列でない場合も ReferenceUnavailableError とする。
"""

from __future__ import annotations

import json
import logging
import threading
from typing import Any, Callable, List, Optional

import requests

from dxrating.errors import ReferenceUnavailableError
from dxrating.reference import ReferenceIndex

logger = logging.getLogger(__name__)

REFERENCE_DB_URL = "https://otoge-db.net/maimai/data/music-ex-intl.json"


def _ensure_table(data: Any, source: str) -> List[dict]:
    if not isinstance(data, list):
        raise ReferenceUnavailableError(
            f"Reference table is not a JSON array: {source} ({type(data).__name__})"
        )
    return data


def fetch_reference_table(url: str = REFERENCE_DB_URL, timeout: int = 30) -> List[dict]:
    """
    指定URLへHTTP GETを行い、曲マスタ(JSON配列)を返す。

    Args:
        url: 取得対象URL。
        timeout: requests.get に渡すタイムアウト秒。

    Returns:
        曲マスタの行リスト。

    Raises:
        ReferenceUnavailableError: HTTPエラー、通信失敗、JSON不正の場合。
    """
    try:
        r = requests.get(url, timeout=timeout)
        r.raise_for_status()
        data = r.json()
    except requests.RequestException as e:
        raise ReferenceUnavailableError(f"HTTP fetch failed: {url} ({e})") from e
    except ValueError as e:
        raise ReferenceUnavailableError(f"Reference table is not valid JSON: {url} ({e})") from e

    table = _ensure_table(data, url)
    logger.info("Fetched %d reference rows from %s", len(table), url)
    return table


def load_reference_table_file(path: str) -> List[dict]:
    """
    ローカルに保存した曲マスタJSONを読み込む。

    Args:
        path: JSONファイルパス。

    Returns:
        曲マスタの行リスト。

    Raises:
        ReferenceUnavailableError: ファイルが読めない、またはJSON配列でない場合。
    """
    try:
        with open(path, "r", encoding="utf-8") as f:
            data = json.load(f)
    except (OSError, ValueError) as e:
        raise ReferenceUnavailableError(f"Reference table could not be read: {path} ({e})") from e

    return _ensure_table(data, path)


class ReferenceStore:
    """
    セッション中に1度だけ曲マスタを取得し、索引を保持する。

    `load()` が成功するまで `index` は ReferenceUnavailableError を送出する。
    空の索引で計算を進めると全レーティングが 0 になるため、未取得状態では処理させない。
    """

    def __init__(self, loader: Callable[[], List[dict]]):
        self._loader = loader
        self._index: Optional[ReferenceIndex] = None
        self._lock = threading.Lock()

    @classmethod
    def from_url(cls, url: str = REFERENCE_DB_URL, timeout: int = 30) -> "ReferenceStore":
        return cls(lambda: fetch_reference_table(url, timeout=timeout))

    @classmethod
    def from_file(cls, path: str) -> "ReferenceStore":
        return cls(lambda: load_reference_table_file(path))

    @property
    def is_loaded(self) -> bool:
        return self._index is not None

    def load(self) -> ReferenceIndex:
        """
        曲マスタを取得して索引を構築する。取得済みであれば何もしない。

        Returns:
            ReferenceIndex。

        Raises:
            ReferenceUnavailableError: 取得に失敗した場合。
        """
        with self._lock:
            if self._index is None:
                self._index = ReferenceIndex.build(self._loader())
            return self._index

    @property
    def index(self) -> ReferenceIndex:
        if self._index is None:
            raise ReferenceUnavailableError("Reference table has not been loaded yet")
        return self._index
