"""应用初始化和管理."""

from __future__ import annotations

from typing import Optional

from shopbanner.core.banner_generator import BannerGenerator
from shopbanner.models.app_settings import Settings
from shopbanner.services.asset_resolver import AssetResolver
from shopbanner.services.banner_renderer import BannerRenderer
from shopbanner.utils.exceptions import ConfigError
from shopbanner.utils.logger import set_log_level, setup_logger

logger = setup_logger(__name__)


class BannerApp:
    """应用管理类.

    启动时一次性创建配置、素材解析器（持有 HTTP 客户端）、渲染器和批量生成器，
    关闭时释放，运行期间不会重新创建。

    Example:
        >>> async with BannerApp() as app:
        ...     report = await app.generator.generate(layout, base_png, shops)
    """

    def __init__(self, settings: Optional[Settings] = None) -> None:
        """初始化应用管理器.

        Args:
            settings: 应用设置，默认从环境变量和 .env 加载
        """
        self._settings = settings
        self._resolver: Optional[AssetResolver] = None
        self._renderer: Optional[BannerRenderer] = None
        self._generator: Optional[BannerGenerator] = None
        self._initialized = False

    @property
    def is_initialized(self) -> bool:
        return self._initialized

    @property
    def settings(self) -> Settings:
        """应用设置."""
        return self._require(self._settings)

    @property
    def resolver(self) -> AssetResolver:
        """素材解析器."""
        return self._require(self._resolver)

    @property
    def renderer(self) -> BannerRenderer:
        """横幅渲染器."""
        return self._require(self._renderer)

    @property
    def generator(self) -> BannerGenerator:
        """批量生成器."""
        return self._require(self._generator)

    def _require(self, component):
        if not self._initialized or component is None:
            raise ConfigError("应用尚未初始化，请先调用 initialize()")
        return component

    def initialize(self) -> None:
        """初始化应用.

        执行以下初始化步骤:
        1. 加载配置
        2. 应用日志级别
        3. 创建服务
        """
        if self._initialized:
            logger.warning("应用已初始化，跳过重复初始化")
            return

        logger.info("开始初始化应用...")

        if self._settings is None:
            self._settings = Settings()
        set_log_level(self._settings.log_level)
        logger.debug(f"日志级别: {self._settings.log_level}")

        self._resolver = AssetResolver(
            timeout=self._settings.asset_timeout,
            max_bytes=self._settings.max_asset_bytes,
        )
        self._renderer = BannerRenderer(
            missing_logo_policy=self._settings.missing_logo_policy,
            default_font_family=self._settings.default_font_family,
            font_dirs=self._settings.font_dirs,
        )
        self._generator = BannerGenerator(
            self._renderer,
            self._resolver,
            concurrent_limit=self._settings.concurrent_limit,
        )

        self._initialized = True
        logger.info(
            f"应用初始化完成 (并发 {self._settings.concurrent_limit}, "
            f"缺少 Logo 策略 {self._settings.missing_logo_policy.value})"
        )

    async def cleanup(self) -> None:
        """清理资源."""
        if not self._initialized:
            return

        if self._generator is not None and self._generator.is_running:
            self._generator.abandon()
        if self._resolver is not None:
            await self._resolver.aclose()

        self._generator = None
        self._renderer = None
        self._resolver = None
        self._initialized = False
        logger.info("应用资源已清理")

    async def __aenter__(self) -> "BannerApp":
        self.initialize()
        return self

    async def __aexit__(self, *exc_info: object) -> None:
        await self.cleanup()
