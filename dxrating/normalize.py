"""
文字列正規化ユーティリティ。

曲マスタの曲名とアップロード記録の曲名を突き合わせるためのキーを生成する。
曲マスタ側の表記は大文字小文字や前後の空白が揺れることがあるため、
照合時は必ず本モジュールを通す。
"""

from __future__ import annotations

from typing import Optional


def normalize_title(s: Optional[str]) -> str:
    """
    曲名を照合用キーへ正規化して返す。

    正規化内容:
    - 前後の空白除去
    - 小文字化

    Args:
        s: 入力文字列。

    Returns:
        正規化済み文字列。入力が None の場合は空文字を返す。
    """
    if s is None:
        return ""

    return str(s).strip().lower()
