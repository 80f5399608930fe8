"""错误处理工具模块.

提供统一的错误消息映射，用于向操作员展示批量结果。
"""

from __future__ import annotations

from typing import Any

from shopbanner.utils.exceptions import (
    AppException,
    AssetDecodeError,
    AssetNotFoundError,
    BatchAbortedError,
    ConfigError,
    ElementNotFoundError,
    InvalidElementError,
    MissingAssetError,
)

# 错误消息映射（子类在前）
ERROR_MESSAGES = {
    MissingAssetError: "店铺未上传 Logo，已跳过该店铺",
    AssetDecodeError: "图片损坏或格式不支持，请检查素材",
    AssetNotFoundError: "素材无法获取，请检查链接或文件路径",
    InvalidElementError: "图层数据异常，请重新编辑横幅",
    ElementNotFoundError: "图层不存在或已被删除",
    BatchAbortedError: "底图无法读取，批量生成已中止",
    ConfigError: "配置错误，请检查配置文件",
}


def get_user_friendly_message(exception: Exception) -> str:
    """获取用户友好的错误消息.

    Args:
        exception: 异常对象

    Returns:
        用户友好的错误消息
    """
    for exc_type, message in ERROR_MESSAGES.items():
        if isinstance(exception, exc_type):
            return message

    if isinstance(exception, AppException):
        return exception.message

    return "生成失败，请稍后重试"


def get_error_details(exception: Exception) -> dict[str, Any]:
    """获取错误详细信息.

    Args:
        exception: 异常对象

    Returns:
        包含错误详情的字典
    """
    details = {
        "type": type(exception).__name__,
        "message": str(exception),
        "user_message": get_user_friendly_message(exception),
    }

    if isinstance(exception, AppException):
        details["code"] = exception.code

    return details
