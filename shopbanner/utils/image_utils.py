"""图片工具函数模块.

提供素材解码、PNG 编码和 Data URI 处理等工具函数。
"""

from __future__ import annotations

import base64
import binascii
import io
import re
from urllib.parse import unquote_to_bytes

from PIL import Image, UnidentifiedImageError

from shopbanner.utils.constants import OUTPUT_FORMAT, OUTPUT_MIME_TYPE
from shopbanner.utils.exceptions import AssetDecodeError
from shopbanner.utils.logger import setup_logger

logger = setup_logger(__name__)

# data:[<mime>][;base64],<payload>
DATA_URI_PATTERN = re.compile(r"^data:(?P<mime>[\w.+-]+/[\w.+-]+)?(?P<b64>;base64)?,(?P<data>.*)$", re.DOTALL)

HEX_COLOR_PATTERN = re.compile(r"^#(?:[0-9a-fA-F]{3}|[0-9a-fA-F]{6})$")


def decode_image(data: bytes, what: str = "图片") -> Image.Image:
    """解码图片字节为 RGBA 图像.

    Args:
        data: 图片字节
        what: 素材描述（用于错误消息）

    Returns:
        已完全加载的 RGBA 图像

    Raises:
        AssetDecodeError: 字节为空或无法解码
    """
    if not data:
        raise AssetDecodeError(what, "数据为空")

    try:
        with Image.open(io.BytesIO(data)) as img:
            img.load()
            return img.convert("RGBA")
    except (UnidentifiedImageError, OSError, ValueError, Image.DecompressionBombError) as e:
        logger.debug(f"{what} 解码失败: {e}")
        raise AssetDecodeError(what, str(e)) from e


def encode_png(image: Image.Image) -> bytes:
    """编码图像为 PNG 字节.

    不写入任何时间戳等元数据，相同像素得到相同字节。

    Args:
        image: 图像

    Returns:
        PNG 字节
    """
    buffer = io.BytesIO()
    image.save(buffer, format=OUTPUT_FORMAT, optimize=False)
    return buffer.getvalue()


def is_data_uri(ref: str) -> bool:
    """是否为 Data URI."""
    return ref.startswith("data:")


def decode_data_uri(uri: str) -> bytes:
    """解析 Data URI 的数据部分.

    Args:
        uri: Data URI 字符串

    Returns:
        原始字节

    Raises:
        AssetDecodeError: URI 格式错误或 base64 非法
    """
    match = DATA_URI_PATTERN.match(uri)
    if not match:
        raise AssetDecodeError("Data URI", "格式错误")

    payload = match.group("data")
    if not match.group("b64"):
        return unquote_to_bytes(payload)

    try:
        return base64.b64decode(payload, validate=True)
    except (binascii.Error, ValueError) as e:
        raise AssetDecodeError("Data URI", f"base64 解码失败: {e}") from e


def to_data_uri(data: bytes, mime_type: str = OUTPUT_MIME_TYPE) -> str:
    """将字节编码为 Data URI."""
    return f"data:{mime_type};base64,{base64.b64encode(data).decode('ascii')}"


def parse_hex_color(color: str, alpha: int = 255) -> tuple[int, int, int, int]:
    """解析十六进制颜色.

    Args:
        color: "#rgb" 或 "#rrggbb"
        alpha: 透明度 (0-255)

    Returns:
        RGBA 元组

    Raises:
        ValueError: 颜色格式错误
    """
    if not HEX_COLOR_PATTERN.match(color):
        raise ValueError(f"无效的颜色值: {color}")

    value = color[1:]
    if len(value) == 3:
        value = "".join(ch * 2 for ch in value)
    r, g, b = (int(value[i:i + 2], 16) for i in (0, 2, 4))
    return (r, g, b, alpha)


def apply_opacity(image: Image.Image, opacity: float) -> Image.Image:
    """按比例缩放图像的 alpha 通道.

    Args:
        image: RGBA 图像（原地修改）
        opacity: 不透明度 (0-100)

    Returns:
        同一图像
    """
    if opacity >= 100:
        return image

    factor = max(0.0, opacity) / 100
    alpha = image.getchannel("A").point(lambda p: int(round(p * factor)))
    image.putalpha(alpha)
    return image
