"""数据模型模块."""

from shopbanner.models.app_settings import MissingLogoPolicy, Settings
from shopbanner.models.banner_layout import (
    AnyElement,
    BannerElement,
    BannerLayout,
    ElementKind,
    LogoElement,
    TextElement,
    create_element,
)
from shopbanner.models.recipient import Recipient, RecipientStatus, filter_active
from shopbanner.models.render_result import (
    BatchReport,
    RenderFailure,
    RenderResult,
    failure_from_exception,
)

__all__ = [
    # 设置
    "MissingLogoPolicy",
    "Settings",
    # 布局
    "AnyElement",
    "BannerElement",
    "BannerLayout",
    "ElementKind",
    "LogoElement",
    "TextElement",
    "create_element",
    # 店铺
    "Recipient",
    "RecipientStatus",
    "filter_active",
    # 结果
    "BatchReport",
    "RenderFailure",
    "RenderResult",
    "failure_from_exception",
]
