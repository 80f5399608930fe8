"""自定义异常类."""

from __future__ import annotations


class AppException(Exception):
    """应用基础异常类.

    所有自定义异常都应继承此类。

    Attributes:
        message: 错误消息
        code: 错误代码
    """

    def __init__(self, message: str, code: str = "UNKNOWN") -> None:
        """初始化异常.

        Args:
            message: 错误消息
            code: 错误代码
        """
        self.message = message
        self.code = code
        super().__init__(self.message)

    def __str__(self) -> str:
        """返回异常字符串表示."""
        return f"[{self.code}] {self.message}"


# ===================
# 配置相关异常
# ===================
class ConfigError(AppException):
    """配置错误异常."""

    def __init__(self, message: str) -> None:
        super().__init__(message, "CONFIG_ERROR")


# ===================
# 布局相关异常
# ===================
class LayoutError(AppException):
    """布局错误异常."""

    def __init__(self, message: str, code: str = "LAYOUT_ERROR") -> None:
        super().__init__(message, code)


class ElementNotFoundError(LayoutError):
    """图层元素未找到异常."""

    def __init__(self, element_id: str) -> None:
        self.element_id = element_id
        super().__init__(f"图层元素未找到: {element_id}", "ELEMENT_NOT_FOUND")


# ===================
# 渲染相关异常
# ===================
class RenderError(AppException):
    """渲染错误异常."""

    def __init__(self, message: str, code: str = "RENDER_ERROR") -> None:
        super().__init__(message, code)


class MissingAssetError(RenderError):
    """缺少素材异常（店铺没有 Logo，但布局中含 Logo 元素）."""

    def __init__(self, recipient_name: str) -> None:
        self.recipient_name = recipient_name
        super().__init__(f"店铺 '{recipient_name}' 缺少 Logo", "MISSING_ASSET")


class AssetDecodeError(RenderError):
    """素材无法解码异常."""

    def __init__(self, what: str, reason: str = "") -> None:
        msg = f"{what} 损坏或无法解码"
        if reason:
            msg += f": {reason}"
        super().__init__(msg, "ASSET_DECODE_ERROR")


class AssetNotFoundError(RenderError):
    """素材引用无法解析异常."""

    def __init__(self, ref: str, reason: str = "") -> None:
        msg = f"素材无法获取: {ref}"
        if reason:
            msg += f" ({reason})"
        super().__init__(msg, "ASSET_NOT_FOUND")


class InvalidElementError(RenderError):
    """非法图层元素异常（程序错误，渲染器不做容错）."""

    def __init__(self, message: str) -> None:
        super().__init__(message, "INVALID_ELEMENT")


# ===================
# 批量生成相关异常
# ===================
class BatchError(AppException):
    """批量生成错误异常."""

    def __init__(self, message: str, code: str = "BATCH_ERROR") -> None:
        super().__init__(message, code)


class BatchAbortedError(BatchError):
    """批量生成整体中止异常（与具体店铺无关的致命错误）."""

    def __init__(self, reason: str) -> None:
        super().__init__(f"批量生成已中止: {reason}", "BATCH_ABORTED")
