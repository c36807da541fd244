"""
レーティング画像の描画モジュール。

選曲結果(SelectionResult)を Pillow で1枚のPNG画像に描画する。

描画方針:
- ヘッダに合計レーティング(Total / New / Old)を表示する
- 新曲枠は5列x3行、旧曲枠は5列x7行のタイルで表示する
- 枠数に満たない分は NO DATA のプレースホルダで埋める
- ジャケット画像は並列に取得し、取得できない場合は難易度カラーの背景で代替する
"""

from __future__ import annotations

import functools
import io
import logging
import math
import threading
from collections import OrderedDict
from concurrent.futures import ThreadPoolExecutor
from typing import Dict, Iterable, List, Mapping, Optional, Sequence, Tuple
from urllib.parse import urljoin

import requests
from PIL import Image, ImageColor, ImageDraw, ImageFont

from dxrating.config import RenderConfig
from dxrating.errors import ResourceLoadError
from dxrating.models import ChartVariant, EnrichedRecord, SelectionResult
from dxrating.normalize import normalize_title
from dxrating.rating import achievement_label, difficulty_color

logger = logging.getLogger(__name__)

PLACEHOLDER = EnrichedRecord(
    song_name="NO DATA",
    chart_variant=ChartVariant.STD,
    difficulty_tier=None,
    achievement=0.0,
    level=None,
    version=0,
)

CANVAS_WIDTH = 1200
COLUMNS = 5
TILE_WIDTH = 200
TILE_HEIGHT = 150
TILE_RADIUS = 12
GAP = 20
TOP_MARGIN = 50
HEADER_HEIGHT = 90
SECTION_TITLE_HEIGHT = 60
SECTION_SPACING = 40
BOTTOM_PADDING = 50

NAME_MAX_LENGTH = 20

_BG_TOP = ImageColor.getrgb("#667eea")
_BG_BOTTOM = ImageColor.getrgb("#764ba2")
_VARIANT_COLORS = {
    ChartVariant.DX: "#ff6b35",
    ChartVariant.STD: "#4a90e2",
}


def pad_records(records: Sequence[EnrichedRecord], capacity: int) -> List[EnrichedRecord]:
    """
    描画枠数に満たない分をプレースホルダで埋めたリストを返す。

    Args:
        records: 選曲済みレコード。
        capacity: 描画枠数。

    Returns:
        長さ capacity 以上のリスト(records が capacity を超える場合はそのまま)。
    """
    padded = list(records)
    while len(padded) < capacity:
        padded.append(PLACEHOLDER)
    return padded


def truncate_text(text: str, max_length: int = NAME_MAX_LENGTH) -> str:
    """max_length 文字を超える文字列を切り詰めて "..." を付ける。"""
    if len(text) > max_length:
        return text[:max_length] + "..."
    return text


def format_level(level: Optional[float]) -> str:
    """譜面定数の表示文字列。13.0 は "13"、13.7 は "13.7"。"""
    if level is None:
        return ""
    return f"Lv.{level:g}"


class CoverArtLoader:
    """
    ジャケット画像の取得を行う。

    取得済みの画像は件数上限付きのキャッシュ(LRU)に保持する。
    キャッシュはインスタンスごとに持ち、プロセス全体で共有しない。
    """

    def __init__(
        self,
        base_url: str,
        timeout: int = 10,
        max_workers: int = 8,
        cache_size: int = 128,
        session: Optional[requests.Session] = None,
    ):
        self.base_url = base_url
        self.timeout = timeout
        self.max_workers = max_workers
        self.cache_size = cache_size
        self._session = session or requests.Session()
        self._cache: "OrderedDict[str, Image.Image]" = OrderedDict()
        self._lock = threading.Lock()

    def resolve_url(self, image_ref: str) -> str:
        """画像参照(ファイル名または絶対URL)を取得先URLへ解決する。"""
        return urljoin(self.base_url, image_ref)

    def _cache_get(self, url: str) -> Optional[Image.Image]:
        with self._lock:
            image = self._cache.get(url)
            if image is not None:
                self._cache.move_to_end(url)
            return image

    def _cache_put(self, url: str, image: Image.Image) -> None:
        if self.cache_size <= 0:
            return
        with self._lock:
            self._cache[url] = image
            self._cache.move_to_end(url)
            while len(self._cache) > self.cache_size:
                self._cache.popitem(last=False)

    def fetch(self, image_ref: str) -> Image.Image:
        """
        画像を1件取得してデコードする。

        Args:
            image_ref: 画像参照。

        Returns:
            RGBA の Image。

        Raises:
            ResourceLoadError: 通信失敗、HTTPエラー、画像として読めない場合。
        """
        url = self.resolve_url(image_ref)
        cached = self._cache_get(url)
        if cached is not None:
            return cached

        try:
            r = self._session.get(url, timeout=self.timeout)
            r.raise_for_status()
        except requests.RequestException as e:
            raise ResourceLoadError(f"Cover art fetch failed: {url} ({e})") from e

        try:
            image = Image.open(io.BytesIO(r.content))
            image.load()
        except (OSError, Image.DecompressionBombError) as e:
            raise ResourceLoadError(f"Cover art is not a readable image: {url} ({e})") from e

        image = image.convert("RGBA")
        self._cache_put(url, image)
        return image

    def _fetch_or_none(self, image_ref: str) -> Optional[Image.Image]:
        try:
            return self.fetch(image_ref)
        except ResourceLoadError as e:
            logger.warning("Using fallback tile: %s", e)
            return None

    def load_many(self, image_refs: Iterable[str]) -> Dict[str, Optional[Image.Image]]:
        """
        複数の画像を並列に取得する。

        取得に失敗した画像は None とし、例外は送出しない。

        Args:
            image_refs: 画像参照の列(重複可)。

        Returns:
            画像参照 -> Image(失敗時 None) の辞書。
        """
        unique = list(dict.fromkeys(ref for ref in image_refs if ref))
        if not unique:
            return {}

        with ThreadPoolExecutor(max_workers=max(1, min(self.max_workers, len(unique)))) as pool:
            images = list(pool.map(self._fetch_or_none, unique))

        loaded = sum(1 for image in images if image is not None)
        logger.info("Loaded %d/%d cover images", loaded, len(unique))
        return dict(zip(unique, images))


class RatingChartRenderer:
    """
    選曲結果からレーティング画像を生成する。

    Attributes:
        config: 描画設定。
        cover_loader: ジャケット画像の取得に用いるローダ。None の場合は画像を使わない。
    """

    def __init__(
        self,
        config: Optional[RenderConfig] = None,
        cover_loader: Optional[CoverArtLoader] = None,
        recent_capacity: int = 15,
        older_capacity: int = 35,
    ):
        self.config = config or RenderConfig()
        self.cover_loader = cover_loader
        self.recent_capacity = recent_capacity
        self.older_capacity = older_capacity
        self._truncate = functools.lru_cache(maxsize=self.config.cache_size)(truncate_text)
        self._fonts: Dict[int, ImageFont.ImageFont] = {}

    def _font(self, size: int):
        font = self._fonts.get(size)
        if font is not None:
            return font

        font = None
        if self.config.font_path:
            try:
                font = ImageFont.truetype(self.config.font_path, size)
            except OSError:
                logger.warning("Font could not be loaded, using default: %s", self.config.font_path)
        if font is None:
            font = ImageFont.load_default(size=size)

        self._fonts[size] = font
        return font

    @staticmethod
    def _rows(capacity: int) -> int:
        return math.ceil(capacity / COLUMNS) if capacity > 0 else 0

    @staticmethod
    def _grid_height(rows: int) -> int:
        if rows <= 0:
            return 0
        return rows * TILE_HEIGHT + (rows - 1) * GAP

    def canvas_size(self) -> Tuple[int, int]:
        """描画キャンバスの (幅, 高さ) を返す。"""
        height = (
            TOP_MARGIN
            + HEADER_HEIGHT
            + SECTION_TITLE_HEIGHT
            + self._grid_height(self._rows(self.recent_capacity))
            + SECTION_SPACING
            + SECTION_TITLE_HEIGHT
            + self._grid_height(self._rows(self.older_capacity))
            + BOTTOM_PADDING
        )
        return CANVAS_WIDTH, height

    def _draw_text(self, draw, xy, text, size, fill, align="center"):
        font = self._font(size)
        left, top, right, _ = draw.textbbox((0, 0), text, font=font)
        width = right - left
        x, y = xy
        if align == "center":
            x -= width / 2
        elif align == "right":
            x -= width
        draw.text((x, y - top), text, font=font, fill=fill)

    def _draw_background(self, canvas: Image.Image) -> None:
        draw = ImageDraw.Draw(canvas)
        width, height = canvas.size
        for y in range(height):
            t = y / max(height - 1, 1)
            color = tuple(int(a + (b - a) * t) for a, b in zip(_BG_TOP, _BG_BOTTOM))
            draw.line([(0, y), (width, y)], fill=color + (255,))

    def _draw_header(self, canvas: Image.Image, selection: SelectionResult) -> None:
        draw = ImageDraw.Draw(canvas)
        cx = canvas.size[0] / 2
        self._draw_text(draw, (cx, 22), "maimai DX Rating Chart", 32, "#ffffff")
        self._draw_text(draw, (cx, 66), f"Total: {selection.total:,}", 24, "#ffffff")
        self._draw_text(draw, (cx - 150, 100), f"New: {selection.recent_total:,}", 20, "#ffffff")
        self._draw_text(draw, (cx + 150, 100), f"Old: {selection.older_total:,}", 20, "#ffffff")

    def _draw_tile(
        self,
        record: EnrichedRecord,
        rank: int,
        cover: Optional[Image.Image],
    ) -> Image.Image:
        w, h = TILE_WIDTH, TILE_HEIGHT
        tile = Image.new("RGBA", (w, h), (0, 0, 0, 0))

        mask = Image.new("L", (w, h), 0)
        ImageDraw.Draw(mask).rounded_rectangle((0, 0, w - 1, h - 1), radius=TILE_RADIUS, fill=255)

        if cover is not None:
            background = cover.resize((w, h))
            background = Image.alpha_composite(background, Image.new("RGBA", (w, h), (0, 0, 0, 153)))
        elif record.is_placeholder:
            background = Image.new("RGBA", (w, h), (255, 255, 255, 20))
        else:
            color = ImageColor.getcolor(difficulty_color(record.difficulty_tier), "RGBA")
            background = Image.new("RGBA", (w, h), color)
        tile.paste(background, (0, 0), mask)

        draw = ImageDraw.Draw(tile)
        outline = (255, 255, 255, 77) if record.is_placeholder else (255, 255, 255, 128)
        draw.rounded_rectangle((0, 0, w - 1, h - 1), radius=TILE_RADIUS, outline=outline, width=3)

        if record.is_placeholder:
            self._draw_text(draw, (w / 2, h / 2 - 8), "NO DATA", 16, (255, 255, 255, 179))
            return tile

        text_color = "#ffffff" if cover is not None else "#000000"

        self._draw_text(draw, (8, 6), str(rank), 16, text_color, align="left")
        self._draw_text(
            draw,
            (w - 8, 6),
            record.chart_variant.label,
            13,
            _VARIANT_COLORS[record.chart_variant],
            align="right",
        )
        self._draw_text(draw, (w / 2, 30), self._truncate(record.song_name), 14, text_color)
        self._draw_text(draw, (w / 2, 52), f"{record.achievement:.2f}%", 13, "#cccccc")
        self._draw_text(draw, (w / 2, 68), achievement_label(record.achievement), 25, "#ffc107")
        if record.level is not None:
            self._draw_text(draw, (w / 2, 95), format_level(record.level), 18, text_color)
        self._draw_text(draw, (w / 2, h - 45), str(record.rating), 40, "#82caff")
        return tile

    def _draw_section(
        self,
        canvas: Image.Image,
        top: int,
        title: str,
        records: Sequence[EnrichedRecord],
        capacity: int,
        covers: Mapping[str, Optional[Image.Image]],
        image_refs: Mapping[str, str],
    ) -> int:
        draw = ImageDraw.Draw(canvas)
        self._draw_text(draw, (canvas.size[0] / 2, top + 18), title, 28, "#000000")
        top += SECTION_TITLE_HEIGHT

        grid_width = COLUMNS * TILE_WIDTH + (COLUMNS - 1) * GAP
        left = (canvas.size[0] - grid_width) // 2

        for i, record in enumerate(pad_records(records, capacity)[:capacity]):
            row, col = divmod(i, COLUMNS)
            x = left + col * (TILE_WIDTH + GAP)
            y = top + row * (TILE_HEIGHT + GAP)

            cover = None
            if not record.is_placeholder:
                ref = image_refs.get(normalize_title(record.song_name))
                cover = covers.get(ref) if ref else None

            canvas.alpha_composite(self._draw_tile(record, i + 1, cover), (x, y))

        return top + self._grid_height(self._rows(capacity))

    def _collect_covers(
        self,
        selection: SelectionResult,
        image_refs: Mapping[str, str],
    ) -> Dict[str, Optional[Image.Image]]:
        if self.cover_loader is None or not self.config.load_covers:
            return {}
        refs = [
            image_refs.get(normalize_title(record.song_name))
            for record in selection.recent + selection.older
        ]
        return self.cover_loader.load_many(ref for ref in refs if ref)

    def render_image(
        self,
        selection: SelectionResult,
        image_refs: Optional[Mapping[str, str]] = None,
    ) -> Image.Image:
        """
        選曲結果を描画した Image を返す。

        Args:
            selection: 選曲結果。
            image_refs: 正規化済み曲名 -> ジャケット画像参照 の辞書。

        Returns:
            RGBA の Image。
        """
        image_refs = image_refs or {}
        covers = self._collect_covers(selection, image_refs)

        canvas = Image.new("RGBA", self.canvas_size())
        self._draw_background(canvas)
        self._draw_header(canvas, selection)

        top = TOP_MARGIN + HEADER_HEIGHT
        top = self._draw_section(
            canvas,
            top,
            f"NEW CHARTS ({self.recent_capacity} songs)",
            selection.recent,
            self.recent_capacity,
            covers,
            image_refs,
        )
        top += SECTION_SPACING
        self._draw_section(
            canvas,
            top,
            f"OLD CHARTS ({self.older_capacity} songs)",
            selection.older,
            self.older_capacity,
            covers,
            image_refs,
        )
        return canvas

    def render(
        self,
        selection: SelectionResult,
        image_refs: Optional[Mapping[str, str]] = None,
    ) -> bytes:
        """選曲結果を描画し、PNGのバイト列を返す。"""
        canvas = self.render_image(selection, image_refs)
        output = io.BytesIO()
        canvas.save(output, format="PNG")
        data = output.getvalue()
        logger.info("Rendered rating chart: %dx%d, %d bytes", canvas.size[0], canvas.size[1], len(data))
        return data
