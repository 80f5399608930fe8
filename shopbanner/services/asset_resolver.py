"""素材解析服务.

将店铺 Logo 等素材引用解析为原始字节。

支持的引用形式:
    - Data URI（data:image/png;base64,...）
    - 本地文件路径
    - http(s) 链接（httpx 异步下载）

HTTP 客户端由解析器持有，在应用启动时创建、关闭时释放，不会隐式重建。
"""

from __future__ import annotations

import asyncio
from pathlib import Path
from typing import Optional

import httpx

from shopbanner.utils.constants import DEFAULT_ASSET_TIMEOUT, MAX_ASSET_BYTES
from shopbanner.utils.exceptions import AssetNotFoundError
from shopbanner.utils.image_utils import decode_data_uri, is_data_uri
from shopbanner.utils.logger import setup_logger

logger = setup_logger(__name__)

HTTP_SCHEMES = ("http://", "https://")


def _short_ref(ref: str, limit: int = 60) -> str:
    """截断过长的引用（Data URI）用于日志."""
    return ref if len(ref) <= limit else ref[:limit] + "..."


class AssetResolver:
    """素材解析器.

    Example:
        >>> async with AssetResolver(timeout=10) as resolver:
        ...     logo = await resolver.resolve("https://cdn.example.com/logo.png")
    """

    def __init__(
        self,
        timeout: float = DEFAULT_ASSET_TIMEOUT,
        max_bytes: int = MAX_ASSET_BYTES,
        client: Optional[httpx.AsyncClient] = None,
    ) -> None:
        """初始化素材解析器.

        Args:
            timeout: 下载超时（秒）
            max_bytes: 单个素材最大字节数
            client: 外部提供的 HTTP 客户端（测试时注入），由解析器负责关闭
        """
        self._timeout = timeout
        self._max_bytes = max_bytes
        self._http_client = client or httpx.AsyncClient(timeout=timeout, follow_redirects=True)
        self._closed = False

    @property
    def http_client(self) -> httpx.AsyncClient:
        """HTTP 客户端."""
        return self._http_client

    @property
    def is_closed(self) -> bool:
        """是否已关闭."""
        return self._closed

    async def __aenter__(self) -> "AssetResolver":
        return self

    async def __aexit__(self, *exc_info: object) -> None:
        await self.aclose()

    async def aclose(self) -> None:
        """关闭 HTTP 客户端."""
        if not self._closed:
            self._closed = True
            await self._http_client.aclose()
            logger.debug("素材解析器已关闭")

    async def resolve(self, ref: str) -> bytes:
        """解析素材引用.

        Args:
            ref: 素材引用

        Returns:
            素材原始字节（未解码）

        Raises:
            AssetNotFoundError: 引用为空、文件不存在、下载失败或超出大小限制
            AssetDecodeError: Data URI 格式错误
        """
        if not ref or not ref.strip():
            raise AssetNotFoundError("(空)", "素材引用为空")

        ref = ref.strip()
        if is_data_uri(ref):
            data = decode_data_uri(ref)
        elif ref.lower().startswith(HTTP_SCHEMES):
            data = await self._download(ref)
        else:
            data = await self._read_file(ref)

        self._check_size(ref, len(data))
        return data

    async def _download(self, url: str) -> bytes:
        """下载远程素材."""
        if self._closed:
            raise AssetNotFoundError(url, "素材解析器已关闭")

        logger.debug(f"下载素材: {url}")
        try:
            response = await self._http_client.get(url)
        except httpx.TimeoutException as e:
            logger.warning(f"素材下载超时: {url} ({self._timeout}s)")
            raise AssetNotFoundError(url, "下载超时") from e
        except httpx.HTTPError as e:
            logger.warning(f"素材下载失败: {url}, {e}")
            raise AssetNotFoundError(url, f"网络错误: {e}") from e

        if response.status_code != 200:
            raise AssetNotFoundError(url, f"HTTP {response.status_code}")
        return response.content

    async def _read_file(self, ref: str) -> bytes:
        """读取本地素材文件."""
        path = Path(ref).expanduser()
        if not path.is_file():
            raise AssetNotFoundError(ref, "文件不存在")
        try:
            return await asyncio.to_thread(path.read_bytes)
        except OSError as e:
            raise AssetNotFoundError(ref, str(e)) from e

    def _check_size(self, ref: str, size: int) -> None:
        if size > self._max_bytes:
            raise AssetNotFoundError(
                _short_ref(ref),
                f"素材过大: {size} 字节，上限 {self._max_bytes} 字节",
            )
