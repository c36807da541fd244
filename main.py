import argparse
import json
import logging
import sys
import traceback
from typing import List, Optional

from dxrating.config import Settings, load_settings
from dxrating.errors import RatingToolError
from dxrating.pipeline import error_payload, result_to_dict, score_records
from dxrating.presenter import CoverArtLoader, RatingChartRenderer
from dxrating.reference_loader import ReferenceStore
from dxrating.upload import load_upload_file

logger = logging.getLogger(__name__)


def build_parser() -> argparse.ArgumentParser:
    """コマンドライン引数の定義を返す。"""
    parser = argparse.ArgumentParser(
        description="maimai DX のプレイ記録からベスト枠とレーティング画像を生成する。",
    )
    parser.add_argument("scores", help="mai-tools から出力したJSONファイル")
    parser.add_argument("--settings", default="settings.yaml", help="設定ファイル")
    parser.add_argument("--reference", help="曲マスタJSONのローカルパス(未指定ならURLから取得)")
    parser.add_argument("--out-json", help="選曲結果JSONの出力先")
    parser.add_argument("--out-image", help="レーティング画像(PNG)の出力先")
    parser.add_argument("--strict", action="store_true", help="不正なレコードがあれば失敗させる")
    parser.add_argument("--no-image", action="store_true", help="画像を生成しない")
    return parser


def run(args: argparse.Namespace, settings: Settings) -> dict:
    """
    プレイ記録の読み込みから画像出力までを順に実行する。

    以下の処理を順序実行する:
    1. アップロードJSONを読み込み、配列であることを検証
    2. 曲マスタを取得して索引を構築
    3. 各記録を補完し、新曲枠・旧曲枠のベストを選出
    4. 選曲結果JSONとレーティング画像を出力

    Returns:
        dict: 選曲結果JSONの内容。
    """
    # 1. 入力検証(ここで失敗した場合は何も処理しない)
    raws = load_upload_file(args.scores)

    # 2. 曲マスタ
    if args.reference:
        store = ReferenceStore.from_file(args.reference)
    else:
        store = ReferenceStore.from_url(settings.reference_db_url, timeout=settings.request_timeout)
    index = store.load()

    # 3. 計算
    result = score_records(
        raws,
        index,
        selection=settings.selection,
        strict=args.strict or settings.strict,
    )
    payload = result_to_dict(result)

    # 4. 出力
    json_path = args.out_json or settings.output.json_path
    with open(json_path, "w", encoding="utf-8") as f:
        json.dump(payload, f, ensure_ascii=False, indent=2)
        f.write("\n")

    if not args.no_image:
        render = settings.render
        loader = CoverArtLoader(
            base_url=render.cover_base_url,
            timeout=settings.request_timeout,
            max_workers=render.max_workers,
            cache_size=render.cache_size,
        )
        renderer = RatingChartRenderer(
            config=render,
            cover_loader=loader,
            recent_capacity=settings.selection.recent_capacity,
            older_capacity=settings.selection.older_capacity,
        )
        image_path = args.out_image or settings.output.image_path
        with open(image_path, "wb") as f:
            f.write(renderer.render(result.selection, index.image_ref_map()))

    return payload


def main(argv: Optional[List[str]] = None) -> int:
    """
    コマンドラインのエントリポイント。

    処理の成功時は SUCCESS を出力して 0 を返す。
    RatingToolError の場合は `{error, details}` を標準エラーへ出力して 1 を返す。
    それ以外の例外はトレースバックを出力して再送出する。
    """
    args = build_parser().parse_args(argv)

    try:
        settings = load_settings(args.settings)
        payload = run(args, settings)
    except RatingToolError as e:
        logger.error("Rating generation failed: %s", e)
        print(json.dumps(error_payload(e), ensure_ascii=False), file=sys.stderr)
        return 1
    except Exception:
        print(traceback.format_exc(), file=sys.stderr)
        raise

    totals = payload["totals"]
    print(
        f"SUCCESS total={totals['total']} new={totals['recent']} old={totals['older']}"
        f" skipped={len(payload['errors'])}"
    )
    return 0


def cli() -> int:
    """ログ設定を行ってから main を実行する(console_scripts 用)。"""
    logging.basicConfig(
        level=logging.INFO,
        format="%(asctime)s %(levelname)s %(name)s: %(message)s",
    )
    return main()


if __name__ == "__main__":
    sys.exit(cli())
