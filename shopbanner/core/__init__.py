"""核心业务逻辑模块.

批量生成器依赖服务层，请从 shopbanner.core.banner_generator 直接导入。
"""

from shopbanner.core.gesture_engine import (
    CanvasBounds,
    ElementBox,
    GestureState,
    HitTarget,
    TransformEngine,
    element_box,
    hit_test,
)
from shopbanner.core.placeholders import (
    PLACEHOLDER_FIELDS,
    find_placeholders,
    substitute_placeholders,
)

__all__ = [
    # 交互变换
    "CanvasBounds",
    "ElementBox",
    "GestureState",
    "HitTarget",
    "TransformEngine",
    "element_box",
    "hit_test",
    # 占位符
    "PLACEHOLDER_FIELDS",
    "find_placeholders",
    "substitute_placeholders",
]
