"""横幅渲染引擎.

将布局中的图层元素按顺序合成到底图上，生成单个店铺的个性化横幅。

Features:
    - 按布局顺序自底向上绘制，后绘制者覆盖先绘制者
    - 每个元素绘制在独立的图块上，旋转、透明度互不影响
    - 文字占位符替换、字重、字间距
    - Logo 按画布宽度百分比缩放，保持原始宽高比
    - 相同输入输出逐像素一致
"""

from __future__ import annotations

import functools
import math
import os
from pathlib import Path
from typing import Iterable, Optional, Union

from PIL import Image, ImageDraw, ImageFont

from shopbanner.core.placeholders import substitute_placeholders
from shopbanner.models.app_settings import MissingLogoPolicy
from shopbanner.models.banner_layout import BannerElement, BannerLayout, LogoElement, TextElement
from shopbanner.models.recipient import Recipient
from shopbanner.utils.constants import DEFAULT_FONT_FAMILY, TEXT_SIZE_DIVISOR
from shopbanner.utils.exceptions import InvalidElementError, MissingAssetError
from shopbanner.utils.image_utils import apply_opacity, decode_image, encode_png, parse_hex_color
from shopbanner.utils.logger import setup_logger

logger = setup_logger(__name__)


# ===================
# 常量定义
# ===================

# 字体搜索路径
FONT_SEARCH_PATHS = [
    "/System/Library/Fonts/",
    "/System/Library/Fonts/Supplemental/",
    "/Library/Fonts/",
    "~/Library/Fonts/",
    "C:/Windows/Fonts/",
    "/usr/share/fonts/",
    "/usr/local/share/fonts/",
    "~/.fonts/",
    "~/.local/share/fonts/",
]

# 指定字体找不到时依次尝试的字体
FALLBACK_FONTS = ["DejaVuSans", "Arial", "LiberationSans", "Helvetica"]

FONT_EXTENSIONS = (".ttf", ".otf", ".ttc")

# 文字图块留白（字号的比例），容纳字形超出 bbox 的部分
TEXT_TILE_PADDING = 0.25

ImageSource = Union[Image.Image, bytes]


# ===================
# 字体管理
# ===================


def _font_file_names(font_family: str, bold: bool) -> list[str]:
    """生成候选字体文件名（不含扩展名）."""
    compact = font_family.replace(" ", "")
    if bold:
        stems = [
            f"{font_family}-Bold",
            f"{compact}-Bold",
            f"{font_family} Bold",
            f"{font_family}bd",
        ]
    else:
        stems = [
            f"{font_family}-Regular",
            f"{compact}-Regular",
            font_family,
            compact,
        ]
    # 去重并保持顺序
    return list(dict.fromkeys(stems))


@functools.lru_cache(maxsize=128)
def resolve_font_path(font_family: str, bold: bool = False, extra_dirs: tuple[str, ...] = ()) -> Optional[str]:
    """查找字体文件路径.

    Args:
        font_family: 字体名称
        bold: 是否粗体
        extra_dirs: 额外搜索目录（优先）

    Returns:
        字体文件路径，未找到返回 None
    """
    wanted = {
        f"{stem}{ext}".lower()
        for stem in _font_file_names(font_family, bold)
        for ext in FONT_EXTENSIONS
    }

    for search_path in (*extra_dirs, *FONT_SEARCH_PATHS):
        root = Path(os.path.expanduser(search_path))
        if not root.is_dir():
            continue
        try:
            # 按路径排序，保证多次查找结果一致
            candidates = sorted(p for p in root.rglob("*") if p.name.lower() in wanted)
        except OSError as e:
            logger.debug(f"字体目录无法读取: {root}, {e}")
            continue
        for path in candidates:
            if path.is_file():
                return str(path)

    return None


def find_font(
    font_family: Optional[str],
    font_size: int,
    bold: bool = False,
    extra_dirs: Iterable[str] = (),
    fallback_family: str = DEFAULT_FONT_FAMILY,
) -> ImageFont.FreeTypeFont | ImageFont.ImageFont:
    """查找字体.

    依次尝试：指定字体（粗体时先找粗体字形）、回退字体、Pillow 内置字体。

    Args:
        font_family: 字体名称
        font_size: 字号（像素）
        bold: 是否粗体
        extra_dirs: 额外搜索目录
        fallback_family: 回退字体

    Returns:
        ImageFont 对象
    """
    dirs = tuple(extra_dirs)
    families = [f for f in (font_family, fallback_family, *FALLBACK_FONTS) if f]

    for family in dict.fromkeys(families):
        for want_bold in ((True, False) if bold else (False,)):
            path = resolve_font_path(family, want_bold, dirs)
            if path:
                if family != font_family:
                    logger.debug(f"字体 '{font_family}' 未找到，使用 '{family}'")
                try:
                    return ImageFont.truetype(path, font_size)
                except OSError as e:
                    logger.warning(f"字体加载失败: {path}, {e}")

    logger.warning(f"字体 '{font_family}' 未找到，使用内置字体")
    return ImageFont.load_default(size=font_size)


def text_font_size(scale: float, surface_height: int) -> int:
    """计算文字字号: scale/100 * 画布高度 / TEXT_SIZE_DIVISOR."""
    return max(1, int(round(scale / 100 * surface_height / TEXT_SIZE_DIVISOR)))


def logo_draw_size(scale: float, surface_width: int, logo_size: tuple[int, int]) -> tuple[int, int]:
    """计算 Logo 绘制尺寸：宽为画布宽度的 scale%，高按 Logo 宽高比."""
    width = scale / 100 * surface_width
    logo_w, logo_h = logo_size
    height = width * logo_h / logo_w
    return (max(1, int(round(width))), max(1, int(round(height))))


# ===================
# 横幅渲染器
# ===================


class BannerRenderer:
    """横幅渲染器.

    渲染过程不修改布局和输入图片，每次调用都在新的画布上完成，可在多个线程中并发使用。

    Example:
        >>> renderer = BannerRenderer()
        >>> png = renderer.render(layout, base_png_bytes, shop, logo_bytes)
    """

    def __init__(
        self,
        missing_logo_policy: MissingLogoPolicy = MissingLogoPolicy.SKIP_RECIPIENT,
        default_font_family: str = DEFAULT_FONT_FAMILY,
        font_dirs: Iterable[str] = (),
    ) -> None:
        """初始化渲染器.

        Args:
            missing_logo_policy: 店铺缺少 Logo 时的处理策略
            default_font_family: 回退字体
            font_dirs: 额外字体目录
        """
        self._missing_logo_policy = missing_logo_policy
        self._default_font_family = default_font_family
        self._font_dirs = tuple(font_dirs)

    @property
    def missing_logo_policy(self) -> MissingLogoPolicy:
        """缺少 Logo 时的处理策略."""
        return self._missing_logo_policy

    def render(
        self,
        layout: BannerLayout,
        base_image: ImageSource,
        recipient: Recipient,
        logo: Optional[ImageSource] = None,
    ) -> bytes:
        """渲染并编码为 PNG.

        Args:
            layout: 横幅布局
            base_image: 底图（图像或原始字节）
            recipient: 店铺
            logo: 店铺 Logo（图像或原始字节），没有则为 None

        Returns:
            与底图同尺寸的 PNG 字节

        Raises:
            AssetDecodeError: 底图或 Logo 无法解码
            MissingAssetError: 需要 Logo 但店铺没有（skip_recipient 策略）
            InvalidElementError: 未知元素类型
        """
        if isinstance(base_image, bytes):
            base_image = decode_image(base_image, "底图")
        if isinstance(logo, bytes):
            logo = decode_image(logo, f"店铺 '{recipient.name}' 的 Logo")

        surface = self.compose(layout, base_image, recipient, logo)
        return encode_png(surface)

    def compose(
        self,
        layout: BannerLayout,
        base_image: Image.Image,
        recipient: Recipient,
        logo: Optional[Image.Image] = None,
        skip_missing_logo: Optional[bool] = None,
    ) -> Image.Image:
        """合成横幅图像.

        Args:
            layout: 横幅布局
            base_image: 已解码底图
            recipient: 店铺
            logo: 已解码 Logo
            skip_missing_logo: 覆盖缺少 Logo 时的策略（True 只跳过元素），预览时使用

        Returns:
            RGBA 图像
        """
        if skip_missing_logo is None:
            skip_missing_logo = self._missing_logo_policy == MissingLogoPolicy.SKIP_ELEMENT

        if logo is None and layout.has_logo_elements and not skip_missing_logo:
            raise MissingAssetError(recipient.name or recipient.id)

        # 1-2. 与底图同尺寸的画布，底图铺满
        surface = base_image.convert("RGBA") if base_image.mode != "RGBA" else base_image.copy()

        if logo is not None and logo.mode != "RGBA":
            logo = logo.convert("RGBA")

        # 3. 自底向上绘制
        for element in layout.elements:
            tile = self._render_element(element, surface.size, recipient, logo)
            if tile is None:
                continue
            self._place_tile(surface, tile, element)

        return surface

    # ========================
    # 元素绘制
    # ========================

    def _render_element(
        self,
        element: BannerElement,
        surface_size: tuple[int, int],
        recipient: Recipient,
        logo: Optional[Image.Image],
    ) -> Optional[Image.Image]:
        """绘制单个元素的未旋转图块，中心即元素中心。无需绘制时返回 None."""
        if isinstance(element, LogoElement):
            if logo is None:
                logger.debug(f"店铺 '{recipient.name}' 没有 Logo，跳过元素 {element.id}")
                return None
            return self._render_logo(element, surface_size, logo)
        if isinstance(element, TextElement):
            return self._render_text(element, surface_size, recipient)
        raise InvalidElementError(f"未知元素类型: {type(element).__name__}")

    def _render_logo(
        self,
        element: LogoElement,
        surface_size: tuple[int, int],
        logo: Image.Image,
    ) -> Image.Image:
        """绘制 Logo 图块."""
        size = logo_draw_size(element.scale, surface_size[0], logo.size)
        return logo.resize(size, Image.Resampling.LANCZOS)

    def _render_text(
        self,
        element: TextElement,
        surface_size: tuple[int, int],
        recipient: Recipient,
    ) -> Optional[Image.Image]:
        """绘制文字图块.

        图块中心与文字包围盒中心重合（水平、垂直均居中）。
        """
        # 单行绘制，换行按空格处理
        text = substitute_placeholders(element.text_template, recipient).replace("\n", " ")
        if not text.strip():
            return None

        font_size = text_font_size(element.scale, surface_size[1])
        font = find_font(
            element.font_family,
            font_size,
            bold=element.is_bold,
            extra_dirs=self._font_dirs,
            fallback_family=self._default_font_family,
        )
        fill = parse_hex_color(element.color)
        spacing = element.letter_spacing

        # 字形步进
        if spacing:
            advances = [font.getlength(ch) for ch in text]
            content_width = sum(advances) + spacing * (len(text) - 1)
        else:
            advances = []
            content_width = font.getlength(text)
        content_width = max(1.0, content_width)

        _, top, _, bottom = font.getbbox(text)
        content_height = max(1, int(math.ceil(bottom - top)))

        pad = int(math.ceil(font_size * TEXT_TILE_PADDING))
        tile_w = int(math.ceil(content_width)) + pad * 2
        tile_h = content_height + pad * 2
        tile = Image.new("RGBA", (tile_w, tile_h), (0, 0, 0, 0))
        draw = ImageDraw.Draw(tile)

        origin_x = pad + (tile_w - pad * 2 - content_width) / 2
        origin_y = pad - top

        if spacing:
            cursor = origin_x
            for ch, advance in zip(text, advances):
                draw.text((cursor, origin_y), ch, font=font, fill=fill)
                cursor += advance + spacing
        else:
            draw.text((origin_x, origin_y), text, font=font, fill=fill)

        return tile

    def _place_tile(self, surface: Image.Image, tile: Image.Image, element: BannerElement) -> None:
        """按元素的中心、旋转和透明度将图块合成到画布.

        图块局部完成旋转与透明度处理，不影响其它元素。
        """
        tile = apply_opacity(tile.copy(), element.opacity)
        if element.rotation:
            # Pillow 为逆时针，元素角度为顺时针
            tile = tile.rotate(-element.rotation, resample=Image.Resampling.BICUBIC, expand=True)

        center_x = element.x / 100 * surface.width
        center_y = element.y / 100 * surface.height
        left = int(round(center_x - tile.width / 2))
        top = int(round(center_y - tile.height / 2))
        composite_at(surface, tile, left, top)


def composite_at(surface: Image.Image, tile: Image.Image, left: int, top: int) -> None:
    """将图块 alpha 合成到画布的 (left, top)，超出画布的部分裁掉."""
    src_left = max(0, -left)
    src_top = max(0, -top)
    dst_left = max(0, left)
    dst_top = max(0, top)
    width = min(tile.width - src_left, surface.width - dst_left)
    height = min(tile.height - src_top, surface.height - dst_top)
    if width <= 0 or height <= 0:
        return
    surface.alpha_composite(
        tile,
        dest=(dst_left, dst_top),
        source=(src_left, src_top, src_left + width, src_top + height),
    )
