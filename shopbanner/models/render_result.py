"""渲染结果与批量报告模型.

Features:
    - 单个店铺的渲染结果（成功的 PNG 或失败原因）
    - 批量报告（保持输入顺序、成功/失败统计、UI 汇总）
"""

from __future__ import annotations

from enum import Enum
from typing import Any, Optional

from pydantic import BaseModel, Field

from shopbanner.utils.exceptions import AssetDecodeError, MissingAssetError


class RenderFailure(str, Enum):
    """渲染失败原因."""

    MISSING_LOGO = "missing_logo"  # 店铺没有 Logo
    ASSET_DECODE_ERROR = "asset_decode_error"  # 底图或 Logo 损坏
    OTHER = "other"  # 其他错误（网络、文件等）
    ABANDONED = "abandoned"  # 批量已放弃，未开始渲染


def failure_from_exception(error: BaseException) -> RenderFailure:
    """将异常映射为失败原因."""
    if isinstance(error, MissingAssetError):
        return RenderFailure.MISSING_LOGO
    if isinstance(error, AssetDecodeError):
        return RenderFailure.ASSET_DECODE_ERROR
    return RenderFailure.OTHER


class RenderResult(BaseModel):
    """单个店铺的渲染结果.

    Attributes:
        recipient_id: 店铺ID
        recipient_name: 店铺名称
        image: 成功时的 PNG 字节
        failure: 失败原因
        error_message: 失败时的用户可读消息
    """

    recipient_id: str
    recipient_name: str = ""
    image: Optional[bytes] = Field(default=None, repr=False)
    failure: Optional[RenderFailure] = None
    error_message: Optional[str] = None

    @property
    def success(self) -> bool:
        """是否成功."""
        return self.failure is None and self.image is not None

    @classmethod
    def succeeded(cls, recipient_id: str, recipient_name: str, image: bytes) -> "RenderResult":
        """创建成功结果."""
        return cls(recipient_id=recipient_id, recipient_name=recipient_name, image=image)

    @classmethod
    def failed(
        cls,
        recipient_id: str,
        recipient_name: str,
        failure: RenderFailure,
        error_message: str = "",
    ) -> "RenderResult":
        """创建失败结果."""
        return cls(
            recipient_id=recipient_id,
            recipient_name=recipient_name,
            failure=failure,
            error_message=error_message or None,
        )

    def to_outcome(self) -> dict[str, Any]:
        """转为 UI 汇总条目 {recipientId, success, errorReason}."""
        return {
            "recipientId": self.recipient_id,
            "success": self.success,
            "errorReason": self.failure.value if self.failure else None,
        }


class BatchReport(BaseModel):
    """批量生成报告.

    results 与输入的店铺列表一一对应、顺序一致，与完成顺序无关。

    Example:
        >>> report = BatchReport(results=[...])
        >>> report.succeeded, report.failed
        (4, 1)
    """

    results: list[RenderResult] = Field(default_factory=list)
    abandoned: bool = Field(default=False, description="是否被中途放弃")

    @property
    def total(self) -> int:
        """总数."""
        return len(self.results)

    @property
    def succeeded(self) -> int:
        """成功数."""
        return sum(1 for r in self.results if r.success)

    @property
    def failed(self) -> int:
        """失败数（含放弃）."""
        return self.total - self.succeeded

    @property
    def successes(self) -> list[RenderResult]:
        """成功结果（保持顺序）."""
        return [r for r in self.results if r.success]

    @property
    def failures(self) -> list[RenderResult]:
        """失败结果（保持顺序）."""
        return [r for r in self.results if not r.success]

    def count_by_failure(self) -> dict[RenderFailure, int]:
        """按失败原因计数."""
        counts: dict[RenderFailure, int] = {}
        for result in self.failures:
            if result.failure is not None:
                counts[result.failure] = counts.get(result.failure, 0) + 1
        return counts

    def outcomes(self) -> list[dict[str, Any]]:
        """UI 汇总列表."""
        return [r.to_outcome() for r in self.results]

    def summary(self) -> str:
        """给操作员的汇总文本，失败不会被静默丢弃."""
        text = f"共 {self.total} 个店铺：成功 {self.succeeded}，失败 {self.failed}"
        if self.abandoned:
            text += "（已中途停止）"
        lines = [text]
        for result in self.failures:
            reason = result.error_message or (result.failure.value if result.failure else "")
            lines.append(f"  - {result.recipient_name or result.recipient_id}: {reason}")
        return "\n".join(lines)
