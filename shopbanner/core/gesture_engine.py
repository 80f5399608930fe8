"""交互变换引擎.

将指针事件（按下、移动、抬起）转换为图层元素的平移、旋转和缩放。

Features:
    - 显式手势状态机：IDLE / DRAGGING / ROTATING / RESIZING
    - 同一时刻最多一个手势，手势进行中再次开始一律忽略
    - 像素位移按画布边界换算为百分比
    - 所有修改只通过 BannerLayout.update 完成
    - 命中测试（元素主体、旋转手柄、缩放手柄）

坐标约定：指针坐标与 CanvasBounds 处于同一坐标系（通常为视图像素），y 轴向下。
"""

from __future__ import annotations

import math
from dataclasses import dataclass
from enum import Enum
from typing import Optional

from shopbanner.core.placeholders import substitute_placeholders
from shopbanner.models.banner_layout import BannerElement, BannerLayout, TextElement
from shopbanner.models.recipient import Recipient
from shopbanner.utils.constants import (
    DRAG_THRESHOLD_PX,
    MAX_ELEMENT_SCALE,
    MAX_POSITION,
    MAX_ROTATION,
    MIN_ELEMENT_SCALE,
    MIN_POSITION,
    MIN_ROTATION,
    ROTATE_HANDLE_OFFSET_DEG,
    TEXT_SIZE_DIVISOR,
)
from shopbanner.utils.exceptions import ElementNotFoundError
from shopbanner.utils.logger import setup_logger

logger = setup_logger(__name__)

Point = tuple[float, float]

# 手柄尺寸与位置（像素）
HANDLE_RADIUS = 10.0
ROTATE_HANDLE_GAP = 24.0

# 文字包围盒估算系数（相对字号）
TEXT_CHAR_WIDTH_RATIO = 0.6
TEXT_LINE_HEIGHT_RATIO = 1.2


class GestureState(str, Enum):
    """手势状态."""

    IDLE = "idle"
    DRAGGING = "dragging"
    ROTATING = "rotating"
    RESIZING = "resizing"


class HitTarget(str, Enum):
    """指针按下位置."""

    EMPTY = "empty"  # 画布空白处
    BODY = "body"  # 元素主体
    ROTATE_HANDLE = "rotate_handle"  # 旋转手柄
    RESIZE_HANDLE = "resize_handle"  # 缩放手柄


@dataclass(frozen=True)
class CanvasBounds:
    """画布在指针坐标系中的边界框."""

    left: float
    top: float
    width: float
    height: float

    @property
    def is_valid(self) -> bool:
        """宽高均为正."""
        return self.width > 0 and self.height > 0

    def element_center(self, element: BannerElement) -> Point:
        """元素中心点的指针坐标."""
        return (
            self.left + element.x / 100 * self.width,
            self.top + element.y / 100 * self.height,
        )


@dataclass(frozen=True)
class ElementBox:
    """元素在指针坐标系中的包围盒（绕中心旋转）."""

    center: Point
    width: float
    height: float
    rotation: float

    def to_local(self, point: Point) -> Point:
        """指针坐标转为元素局部坐标（原点在中心，未旋转）."""
        dx = point[0] - self.center[0]
        dy = point[1] - self.center[1]
        theta = math.radians(self.rotation)
        cos_t, sin_t = math.cos(theta), math.sin(theta)
        return (dx * cos_t + dy * sin_t, -dx * sin_t + dy * cos_t)

    def to_global(self, local: Point) -> Point:
        """元素局部坐标转为指针坐标."""
        theta = math.radians(self.rotation)
        cos_t, sin_t = math.cos(theta), math.sin(theta)
        x, y = local
        return (
            self.center[0] + x * cos_t - y * sin_t,
            self.center[1] + x * sin_t + y * cos_t,
        )

    def contains(self, point: Point) -> bool:
        """点是否落在包围盒内."""
        lx, ly = self.to_local(point)
        return abs(lx) <= self.width / 2 and abs(ly) <= self.height / 2

    @property
    def rotate_handle(self) -> Point:
        """旋转手柄位置（上边中点正上方）."""
        return self.to_global((0.0, -self.height / 2 - ROTATE_HANDLE_GAP))

    @property
    def resize_handle(self) -> Point:
        """缩放手柄位置（右下角）."""
        return self.to_global((self.width / 2, self.height / 2))


def element_box(
    element: BannerElement,
    bounds: CanvasBounds,
    logo_aspect: float = 1.0,
    recipient: Optional[Recipient] = None,
) -> ElementBox:
    """估算元素的包围盒.

    Logo 宽为画布宽度的 scale%，高按 logo_aspect（宽/高）计算；
    文字按与渲染相同的字号公式和平均字宽估算。给出 recipient 时按替换占位符后的文字计算，
    否则按模板原文计算。
    """
    if isinstance(element, TextElement):
        font_size = element.scale / 100 * bounds.height / TEXT_SIZE_DIVISOR
        text = element.text_template
        if recipient is not None:
            text = substitute_placeholders(text, recipient).replace("\n", " ")
        chars = max(1, len(text))
        width = chars * font_size * TEXT_CHAR_WIDTH_RATIO + element.letter_spacing * (chars - 1)
        height = font_size * TEXT_LINE_HEIGHT_RATIO
    else:
        width = element.scale / 100 * bounds.width
        height = width / logo_aspect if logo_aspect > 0 else width

    return ElementBox(
        center=bounds.element_center(element),
        width=max(1.0, width),
        height=max(1.0, height),
        rotation=element.rotation,
    )


def hit_test(
    layout: BannerLayout,
    bounds: CanvasBounds,
    point: Point,
    selected_id: Optional[str] = None,
    logo_aspect: float = 1.0,
    recipient: Optional[Recipient] = None,
) -> tuple[HitTarget, Optional[str]]:
    """命中测试.

    手柄只属于当前选中元素且优先判断；元素主体按从上到下（后绘制者优先）判断。
    recipient 应与预览渲染使用的店铺一致，文字包围盒才与画面吻合。

    Returns:
        (命中类型, 元素ID)，空白处元素ID为 None
    """
    if selected_id and layout.contains(selected_id):
        box = element_box(layout.get(selected_id), bounds, logo_aspect, recipient)
        if math.dist(point, box.rotate_handle) <= HANDLE_RADIUS:
            return HitTarget.ROTATE_HANDLE, selected_id
        if math.dist(point, box.resize_handle) <= HANDLE_RADIUS:
            return HitTarget.RESIZE_HANDLE, selected_id

    for element in reversed(layout.elements):
        if element_box(element, bounds, logo_aspect, recipient).contains(point):
            return HitTarget.BODY, element.id

    return HitTarget.EMPTY, None


def _clamp(value: float, low: float, high: float) -> float:
    return max(low, min(high, value))


@dataclass
class _ActiveGesture:
    """进行中的手势，只在手势期间存在."""

    state: GestureState
    element_id: str
    start_pointer: Point
    start_x: float
    start_y: float
    start_scale: float
    center: Point
    moved: bool = False


class TransformEngine:
    """交互变换引擎.

    由编辑器持有。单线程、事件驱动，处理过程中不做任何阻塞操作；
    每次 pointer_move 的修改立即写入布局，下一次渲染或读取即可见。

    手势相关的错误（手势冲突、元素不存在、画布尺寸未知）静默忽略，只记录调试日志。

    Example:
        >>> engine = TransformEngine(layout, CanvasBounds(0, 0, 1200, 630))
        >>> engine.pointer_down(HitTarget.BODY, (600, 315), element.id)
        True
        >>> engine.pointer_move((720, 315))
        True
        >>> engine.pointer_up()
    """

    def __init__(
        self,
        layout: BannerLayout,
        bounds: Optional[CanvasBounds] = None,
        drag_threshold: float = DRAG_THRESHOLD_PX,
    ) -> None:
        """初始化引擎.

        Args:
            layout: 正在编辑的布局
            bounds: 画布边界
            drag_threshold: 拖拽生效的最小像素位移
        """
        self._layout = layout
        self._bounds = bounds
        self._drag_threshold = drag_threshold
        self._active: Optional[_ActiveGesture] = None
        self._selected_id: Optional[str] = None

    # ========================
    # 属性
    # ========================

    @property
    def layout(self) -> BannerLayout:
        """正在编辑的布局."""
        return self._layout

    @property
    def bounds(self) -> Optional[CanvasBounds]:
        """画布边界."""
        return self._bounds

    @property
    def state(self) -> GestureState:
        """当前手势状态."""
        return self._active.state if self._active else GestureState.IDLE

    @property
    def is_active(self) -> bool:
        """是否有手势进行中."""
        return self._active is not None

    @property
    def active_element_id(self) -> Optional[str]:
        """手势作用的元素ID."""
        return self._active.element_id if self._active else None

    @property
    def selected_id(self) -> Optional[str]:
        """当前选中元素ID（已删除的元素视为未选中）."""
        if self._selected_id and not self._layout.contains(self._selected_id):
            self._selected_id = None
        return self._selected_id

    def set_bounds(self, bounds: CanvasBounds) -> None:
        """更新画布边界（视图缩放或尺寸变化时调用），宽高非正的边界忽略."""
        if not bounds.is_valid:
            logger.debug(f"忽略无效的画布边界: {bounds}")
            return
        self._bounds = bounds

    def set_layout(self, layout: BannerLayout) -> None:
        """切换编辑的布局，清除选中和进行中的手势."""
        self._layout = layout
        self._active = None
        self._selected_id = None

    def select(self, element_id: Optional[str]) -> None:
        """选中元素，None 清除选中."""
        if element_id is not None and not self._layout.contains(element_id):
            logger.debug(f"选中的元素不存在: {element_id}")
            return
        self._selected_id = element_id

    # ========================
    # 指针事件
    # ========================

    def pointer_down(
        self,
        target: HitTarget,
        pointer: Point,
        element_id: Optional[str] = None,
    ) -> bool:
        """指针按下.

        空白处清除选中；元素主体选中并准备拖拽；手柄开始旋转或缩放。

        Returns:
            是否开始了手势
        """
        if self._active is not None:
            logger.debug(f"手势进行中 ({self._active.state.value})，忽略按下事件")
            return False

        if target == HitTarget.EMPTY or element_id is None:
            self._selected_id = None
            return False

        if target == HitTarget.BODY:
            self.select(element_id)
            return self.begin_drag(element_id, pointer)
        if target == HitTarget.ROTATE_HANDLE:
            return self.begin_rotate(element_id, pointer)
        if target == HitTarget.RESIZE_HANDLE:
            return self.begin_resize(element_id, pointer)
        return False

    def begin_drag(self, element_id: str, pointer: Point) -> bool:
        """开始拖拽."""
        return self._begin(GestureState.DRAGGING, element_id, pointer)

    def begin_rotate(self, element_id: str, pointer: Point) -> bool:
        """开始旋转."""
        return self._begin(GestureState.ROTATING, element_id, pointer)

    def begin_resize(self, element_id: str, pointer: Point) -> bool:
        """开始缩放."""
        return self._begin(GestureState.RESIZING, element_id, pointer)

    def pointer_move(self, pointer: Point) -> bool:
        """指针移动.

        Returns:
            元素是否被修改
        """
        gesture = self._active
        if gesture is None:
            return False

        try:
            if gesture.state == GestureState.DRAGGING:
                return self._apply_drag(gesture, pointer)
            if gesture.state == GestureState.ROTATING:
                return self._apply_rotate(gesture, pointer)
            if gesture.state == GestureState.RESIZING:
                return self._apply_resize(gesture, pointer)
        except ElementNotFoundError:
            logger.debug(f"手势元素已删除: {gesture.element_id}")
            self._active = None
        return False

    def pointer_up(self) -> GestureState:
        """指针抬起，结束手势.

        Returns:
            刚结束的手势状态（无手势时为 IDLE）
        """
        gesture = self._active
        self._active = None
        if gesture is None:
            return GestureState.IDLE
        logger.debug(f"手势结束: {gesture.state.value} {gesture.element_id}")
        return gesture.state

    def cancel(self) -> None:
        """放弃进行中的手势（已写入的修改保留）."""
        self._active = None

    # ========================
    # 内部实现
    # ========================

    def _begin(self, state: GestureState, element_id: str, pointer: Point) -> bool:
        """开始手势，已有手势或条件不满足时忽略."""
        if self._active is not None:
            logger.debug(f"手势进行中 ({self._active.state.value})，忽略 {state.value}")
            return False
        if self._bounds is None or not self._bounds.is_valid:
            logger.debug("画布尺寸未知，忽略手势")
            return False
        try:
            element = self._layout.get(element_id)
        except ElementNotFoundError:
            logger.debug(f"手势元素不存在: {element_id}")
            return False

        self._active = _ActiveGesture(
            state=state,
            element_id=element_id,
            start_pointer=pointer,
            start_x=element.x,
            start_y=element.y,
            start_scale=element.scale,
            center=self._bounds.element_center(element),
        )
        logger.debug(f"手势开始: {state.value} {element_id}")
        return True

    def _apply_drag(self, gesture: _ActiveGesture, pointer: Point) -> bool:
        """拖拽：像素位移按画布尺寸换算为百分比，位移自手势开始起算."""
        dx = pointer[0] - gesture.start_pointer[0]
        dy = pointer[1] - gesture.start_pointer[1]
        if not gesture.moved:
            if math.hypot(dx, dy) < self._drag_threshold:
                return False
            gesture.moved = True

        bounds = self._bounds
        if bounds is None:
            return False
        self._layout.update(
            gesture.element_id,
            x=_clamp(gesture.start_x + dx / bounds.width * 100, MIN_POSITION, MAX_POSITION),
            y=_clamp(gesture.start_y + dy / bounds.height * 100, MIN_POSITION, MAX_POSITION),
        )
        return True

    def _apply_rotate(self, gesture: _ActiveGesture, pointer: Point) -> bool:
        """旋转：角度由元素中心指向指针的方向决定（直接设置，不累加）."""
        angle = math.degrees(
            math.atan2(pointer[1] - gesture.center[1], pointer[0] - gesture.center[0])
        )
        rotation = _clamp(angle + ROTATE_HANDLE_OFFSET_DEG, MIN_ROTATION, MAX_ROTATION)
        self._layout.update(gesture.element_id, rotation=rotation)
        gesture.moved = True
        return True

    def _apply_resize(self, gesture: _ActiveGesture, pointer: Point) -> bool:
        """缩放：scale = 起始 scale + 水平位移 / 画布宽度 * 100.

        只使用水平位移，向右放大、向左缩小。
        """
        bounds = self._bounds
        if bounds is None:
            return False
        dx = pointer[0] - gesture.start_pointer[0]
        scale = _clamp(
            gesture.start_scale + dx / bounds.width * 100,
            MIN_ELEMENT_SCALE,
            MAX_ELEMENT_SCALE,
        )
        self._layout.update(gesture.element_id, scale=scale)
        gesture.moved = True
        return True
