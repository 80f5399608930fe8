"""批量横幅生成器模块.

为一组店铺逐个渲染个性化横幅，支持并发控制和中途放弃。

Features:
    - 底图只解码一次，所有店铺共享
    - 批量开始时对布局做快照，生成期间的编辑不影响本批结果
    - 信号量控制并发，Pillow 渲染在工作线程中执行
    - 单个店铺失败只记录结果，不影响其他店铺
    - 放弃后未开始的店铺不再渲染，已开始的照常完成
"""

from __future__ import annotations

import asyncio
from typing import Callable, Optional

from PIL import Image

from shopbanner.models.app_settings import MissingLogoPolicy
from shopbanner.models.banner_layout import BannerLayout
from shopbanner.models.recipient import Recipient
from shopbanner.models.render_result import (
    BatchReport,
    RenderFailure,
    RenderResult,
    failure_from_exception,
)
from shopbanner.services.asset_resolver import AssetResolver
from shopbanner.services.banner_renderer import BannerRenderer
from shopbanner.utils.constants import DEFAULT_CONCURRENT_LIMIT, MAX_CONCURRENT_LIMIT
from shopbanner.utils.error_handler import get_user_friendly_message
from shopbanner.utils.exceptions import (
    AppException,
    AssetDecodeError,
    BatchAbortedError,
    InvalidElementError,
    MissingAssetError,
)
from shopbanner.utils.image_utils import decode_image
from shopbanner.utils.logger import setup_logger

logger = setup_logger(__name__)

# 类型别名
ResultCallback = Callable[[int, RenderResult], None]


class BannerGenerator:
    """批量横幅生成器.

    Attributes:
        renderer: 横幅渲染器
        resolver: 素材解析器

    Example:
        >>> generator = BannerGenerator(renderer, resolver, concurrent_limit=10)
        >>> report = await generator.generate(layout, base_png, shops)
        >>> print(report.summary())
    """

    def __init__(
        self,
        renderer: BannerRenderer,
        resolver: AssetResolver,
        concurrent_limit: int = DEFAULT_CONCURRENT_LIMIT,
    ) -> None:
        """初始化生成器.

        Args:
            renderer: 横幅渲染器
            resolver: 素材解析器
            concurrent_limit: 并发渲染数量 (1-64)
        """
        if not 1 <= concurrent_limit <= MAX_CONCURRENT_LIMIT:
            raise ValueError(f"并发数必须在 1-{MAX_CONCURRENT_LIMIT} 之间: {concurrent_limit}")
        self._renderer = renderer
        self._resolver = resolver
        self._concurrent_limit = concurrent_limit
        self._is_abandoned = False
        self._is_running = False

    @property
    def renderer(self) -> BannerRenderer:
        return self._renderer

    @property
    def resolver(self) -> AssetResolver:
        return self._resolver

    @property
    def concurrent_limit(self) -> int:
        """并发数."""
        return self._concurrent_limit

    @property
    def is_running(self) -> bool:
        """是否正在生成."""
        return self._is_running

    @property
    def is_abandoned(self) -> bool:
        """当前批次是否已被放弃."""
        return self._is_abandoned

    def abandon(self) -> None:
        """放弃当前批次.

        尚未开始的店铺记为 abandoned，已开始的渲染会正常完成。
        """
        if self._is_running and not self._is_abandoned:
            self._is_abandoned = True
            logger.info("批量生成已放弃，等待进行中的店铺完成")

    async def generate(
        self,
        layout: BannerLayout,
        base_image: bytes,
        recipients: list[Recipient],
        on_result: Optional[ResultCallback] = None,
    ) -> BatchReport:
        """为每个店铺生成横幅.

        Args:
            layout: 横幅布局（使用调用时刻的快照）
            base_image: 底图字节
            recipients: 店铺列表（调用方已筛选 active 店铺）
            on_result: 单个店铺完成回调 (输入位置, 结果)，按完成顺序调用

        Returns:
            与 recipients 顺序一致的批量报告

        Raises:
            BatchAbortedError: 底图无法解码，或已有批次在运行
            InvalidElementError: 布局中含非法元素
        """
        if self._is_running:
            raise BatchAbortedError("已有批量生成在进行中")

        # 快照先于任何 await，之后对布局的编辑不影响本批
        snapshot = layout.snapshot()

        if not recipients:
            logger.warning("店铺列表为空，无需生成")
            return BatchReport()

        # 运行标记先于任何 await，解码底图期间的 abandon() 同样生效
        self._is_abandoned = False
        self._is_running = True
        try:
            return await self._run_batch(snapshot, base_image, recipients, on_result)
        finally:
            self._is_running = False

    async def _run_batch(
        self,
        snapshot: BannerLayout,
        base_image: bytes,
        recipients: list[Recipient],
        on_result: Optional[ResultCallback],
    ) -> BatchReport:
        """解码底图并并发渲染全部店铺."""
        try:
            base = await asyncio.to_thread(decode_image, base_image, "底图")
        except AssetDecodeError as e:
            logger.error(f"底图解码失败，批量生成中止: {e}")
            raise BatchAbortedError(get_user_friendly_message(e)) from e

        semaphore = asyncio.Semaphore(self._concurrent_limit)
        results: list[Optional[RenderResult]] = [None] * len(recipients)

        logger.info(
            f"开始批量生成，共 {len(recipients)} 个店铺，"
            f"{len(snapshot)} 个图层，并发 {self._concurrent_limit}"
        )

        async def run(index: int, recipient: Recipient) -> None:
            async with semaphore:
                if self._is_abandoned:
                    result = RenderResult.failed(
                        recipient.id,
                        recipient.name,
                        RenderFailure.ABANDONED,
                        "批量生成已放弃，未渲染",
                    )
                else:
                    result = await self._render_one(snapshot, base, recipient, index)
            results[index] = result
            if on_result:
                on_result(index, result)

        tasks = [asyncio.create_task(run(i, r)) for i, r in enumerate(recipients)]
        try:
            await asyncio.gather(*tasks)
        except BaseException:
            for task in tasks:
                task.cancel()
            await asyncio.gather(*tasks, return_exceptions=True)
            raise

        report = BatchReport(
            results=[r for r in results if r is not None],
            abandoned=self._is_abandoned,
        )
        logger.info(f"批量生成完成: {report.succeeded}/{report.total} 成功, {report.failed} 失败")
        return report

    async def _render_one(
        self,
        layout: BannerLayout,
        base: Image.Image,
        recipient: Recipient,
        index: int,
    ) -> RenderResult:
        """渲染单个店铺，异常转为失败结果.

        InvalidElementError 属于程序错误，不做捕获。
        """
        name = recipient.name or recipient.id
        logger.debug(f"开始渲染店铺 {index + 1}: {name}")

        try:
            logo: Optional[bytes] = None
            if layout.has_logo_elements:
                if recipient.has_logo:
                    logo = await self._resolver.resolve(recipient.logo or "")
                elif self._renderer.missing_logo_policy == MissingLogoPolicy.SKIP_RECIPIENT:
                    raise MissingAssetError(name)

            image = await asyncio.to_thread(self._renderer.render, layout, base, recipient, logo)

        except InvalidElementError:
            logger.error(f"布局含非法元素，批量生成中止 (店铺 {name})")
            raise

        except AppException as e:
            logger.warning(f"店铺 {index + 1} ({name}) 生成失败: {e}")
            return RenderResult.failed(
                recipient.id,
                recipient.name,
                failure_from_exception(e),
                get_user_friendly_message(e),
            )

        except Exception as e:
            logger.exception(f"店铺 {index + 1} ({name}) 生成出现未知错误: {e}")
            return RenderResult.failed(
                recipient.id,
                recipient.name,
                RenderFailure.OTHER,
                get_user_friendly_message(e),
            )

        logger.debug(f"店铺 {index + 1} ({name}) 生成完成: {len(image)} bytes")
        return RenderResult.succeeded(recipient.id, recipient.name, image)
