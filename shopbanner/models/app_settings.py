"""应用设置模型."""

from __future__ import annotations

from enum import Enum

from pydantic import Field, field_validator
from pydantic_settings import BaseSettings, SettingsConfigDict

from shopbanner.utils.constants import (
    DEFAULT_ASSET_TIMEOUT,
    DEFAULT_CONCURRENT_LIMIT,
    DEFAULT_FONT_FAMILY,
    MAX_ASSET_BYTES,
    MAX_CONCURRENT_LIMIT,
)


class MissingLogoPolicy(str, Enum):
    """店铺缺少 Logo 时的处理策略."""

    SKIP_RECIPIENT = "skip_recipient"  # 整个店铺跳过，不发送残缺横幅
    SKIP_ELEMENT = "skip_element"  # 只跳过 Logo 元素，其余照常绘制


class Settings(BaseSettings):
    """应用设置.

    支持从环境变量（前缀 SHOPBANNER_）和 .env 文件加载配置。

    Attributes:
        log_level: 日志级别
        concurrent_limit: 批量生成并发数
        missing_logo_policy: 缺少 Logo 时的处理策略
        asset_timeout: 远程素材下载超时（秒）
        max_asset_bytes: 单个素材最大字节数
        default_font_family: 字体找不到时的回退字体
        font_dirs: 额外的字体搜索目录
    """

    model_config = SettingsConfigDict(
        env_prefix="SHOPBANNER_",
        env_file=".env",
        env_file_encoding="utf-8",
        extra="ignore",
    )

    log_level: str = Field(
        default="INFO",
        description="日志级别",
    )

    concurrent_limit: int = Field(
        default=DEFAULT_CONCURRENT_LIMIT,
        ge=1,
        le=MAX_CONCURRENT_LIMIT,
        description="批量生成并发数",
    )

    missing_logo_policy: MissingLogoPolicy = Field(
        default=MissingLogoPolicy.SKIP_RECIPIENT,
        description="缺少 Logo 时的处理策略",
    )

    asset_timeout: float = Field(
        default=DEFAULT_ASSET_TIMEOUT,
        gt=0,
        le=300,
        description="素材下载超时（秒）",
    )

    max_asset_bytes: int = Field(
        default=MAX_ASSET_BYTES,
        ge=1024,
        description="单个素材最大字节数",
    )

    default_font_family: str = Field(
        default=DEFAULT_FONT_FAMILY,
        description="回退字体",
    )

    font_dirs: list[str] = Field(
        default_factory=list,
        description="额外字体目录",
    )

    @field_validator("log_level")
    @classmethod
    def validate_log_level(cls, v: str) -> str:
        """验证日志级别."""
        valid_levels = {"DEBUG", "INFO", "WARNING", "ERROR", "CRITICAL"}
        upper_v = v.upper()
        if upper_v not in valid_levels:
            raise ValueError(f"无效的日志级别: {v}，有效值: {valid_levels}")
        return upper_v
