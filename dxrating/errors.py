"""
アプリケーション固有の例外定義モジュール。

識別子の解析、アップロードJSONの検証、曲マスタ(参照テーブル)の取得、
画像描画などの処理で発生する例外を分類して扱うために、
基底例外および派生例外を定義する。
"""


class RatingToolError(Exception):
    """レーティング画像生成システム全体の基底例外。"""


class ConfigError(RatingToolError):
    """設定ファイルの値が不正な場合の例外。"""


class RecordError(RatingToolError):
    """1レコード単位の解析に失敗した場合の例外。"""


class FormatError(RecordError):
    """識別子が想定のフィールド数(5)に分割できない場合の例外。"""


class UnknownDifficultyError(RecordError):
    """識別子の難易度トークンが未知の値である場合の例外。"""


class InputShapeError(RatingToolError):
    """アップロードされたJSONが配列でない、または要素の形式が不正な場合の例外。"""


class ReferenceUnavailableError(RatingToolError):
    """曲マスタ(参照テーブル)が未取得、または取得に失敗した場合の例外。"""


class ResourceLoadError(RatingToolError):
    """ジャケット画像などの補助リソースの取得に失敗した場合の例外。"""
