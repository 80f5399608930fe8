"""横幅画布组件.

编辑器中的可视化画布：显示实时预览，并把鼠标事件交给变换引擎处理。

Features:
    - 底图按比例居中显示
    - 预览使用与批量生成相同的渲染器
    - 选中框、旋转手柄、缩放手柄
    - 拖拽、旋转、缩放（同一时刻只有一个手势）
"""

from __future__ import annotations

from typing import Optional

from PIL import Image
from PyQt6.QtCore import QPointF, QRectF, Qt, pyqtSignal
from PyQt6.QtGui import (
    QBrush,
    QColor,
    QImage,
    QMouseEvent,
    QPainter,
    QPaintEvent,
    QPen,
    QPolygonF,
    QResizeEvent,
)
from PyQt6.QtWidgets import QWidget

from shopbanner.core.gesture_engine import (
    HANDLE_RADIUS,
    CanvasBounds,
    GestureState,
    HitTarget,
    TransformEngine,
    element_box,
    hit_test,
)
from shopbanner.models.banner_layout import BannerLayout
from shopbanner.models.recipient import Recipient
from shopbanner.services.banner_renderer import BannerRenderer
from shopbanner.utils.exceptions import AppException
from shopbanner.utils.logger import setup_logger

logger = setup_logger(__name__)


# ===================
# 常量定义
# ===================

# 没有底图时的画布尺寸
DEFAULT_CANVAS_SIZE = (1200, 630)

# 画布边距
CANVAS_MARGIN = 16

BACKGROUND_COLOR = QColor(245, 245, 245)
PLACEHOLDER_COLOR = QColor(220, 220, 220)
SELECTION_COLOR = QColor(33, 150, 243)

# 预览使用的示例店铺
PREVIEW_RECIPIENT = Recipient(
    id="preview",
    name="Your Shop",
    email="shop@example.com",
    phone="555-0100",
    address="1 Market Street",
)


def pil_to_qimage(image: Image.Image) -> QImage:
    """PIL 图像转为 QImage（深拷贝，不引用 PIL 缓冲区）."""
    rgba = image if image.mode == "RGBA" else image.convert("RGBA")
    data = rgba.tobytes("raw", "RGBA")
    qimage = QImage(data, rgba.width, rgba.height, rgba.width * 4, QImage.Format.Format_RGBA8888)
    return qimage.copy()


class BannerCanvas(QWidget):
    """横幅画布.

    Signals:
        element_changed: 元素被手势修改 (element_id)
        selection_changed: 选中元素改变 (element_id 或 None)
        gesture_finished: 手势结束 (element_id, 手势状态值)

    Example:
        >>> canvas = BannerCanvas(BannerRenderer())
        >>> canvas.set_base_image(base)
        >>> canvas.set_layout(layout)
    """

    element_changed = pyqtSignal(str)
    selection_changed = pyqtSignal(object)
    gesture_finished = pyqtSignal(str, str)

    def __init__(
        self,
        renderer: BannerRenderer,
        layout: Optional[BannerLayout] = None,
        parent: Optional[QWidget] = None,
    ) -> None:
        """初始化画布.

        Args:
            renderer: 预览渲染器
            layout: 编辑中的布局，默认新建空布局
            parent: 父组件
        """
        super().__init__(parent)

        self._renderer = renderer
        self._engine = TransformEngine(layout if layout is not None else BannerLayout())
        self._base_image: Optional[Image.Image] = None
        self._preview_logo: Optional[Image.Image] = None
        self._preview_recipient = PREVIEW_RECIPIENT
        self._preview_cache: Optional[QImage] = None

        self.setMinimumSize(320, 180)
        self.setFocusPolicy(Qt.FocusPolicy.ClickFocus)
        self._update_bounds()

    # ========================
    # 属性
    # ========================

    @property
    def engine(self) -> TransformEngine:
        """变换引擎."""
        return self._engine

    @property
    def layout_model(self) -> BannerLayout:
        """编辑中的布局."""
        return self._engine.layout

    @property
    def selected_id(self) -> Optional[str]:
        return self._engine.selected_id

    @property
    def canvas_size(self) -> tuple[int, int]:
        """画布（底图）像素尺寸."""
        if self._base_image is not None:
            return self._base_image.size
        return DEFAULT_CANVAS_SIZE

    @property
    def canvas_rect(self) -> QRectF:
        """画布在组件中的显示区域."""
        bounds = self._engine.bounds
        if bounds is None:
            return QRectF()
        return QRectF(bounds.left, bounds.top, bounds.width, bounds.height)

    @property
    def logo_aspect(self) -> float:
        """预览 Logo 宽高比."""
        if self._preview_logo is None or self._preview_logo.height == 0:
            return 1.0
        return self._preview_logo.width / self._preview_logo.height

    # ========================
    # 数据设置
    # ========================

    def set_layout(self, layout: BannerLayout) -> None:
        """切换编辑的布局."""
        self._engine.set_layout(layout)
        self.selection_changed.emit(None)
        self.refresh()

    def set_base_image(self, image: Optional[Image.Image]) -> None:
        """设置底图."""
        self._base_image = image.convert("RGBA") if image is not None else None
        self._update_bounds()
        self.refresh()

    def set_preview_logo(self, logo: Optional[Image.Image]) -> None:
        """设置预览 Logo，None 时 Logo 元素不显示."""
        self._preview_logo = logo.convert("RGBA") if logo is not None else None
        self.refresh()

    def set_preview_recipient(self, recipient: Recipient) -> None:
        """设置预览用的店铺数据."""
        self._preview_recipient = recipient
        self.refresh()

    def select_element(self, element_id: Optional[str]) -> None:
        """选中元素（图层面板调用）."""
        self._engine.select(element_id)
        self.selection_changed.emit(self._engine.selected_id)
        self.update()

    def refresh(self) -> None:
        """布局被外部修改后刷新预览."""
        self._preview_cache = None
        self.update()

    # ========================
    # 预览
    # ========================

    def render_preview(self) -> Optional[QImage]:
        """渲染预览图（有缓存）."""
        if self._preview_cache is not None:
            return self._preview_cache
        if self._base_image is None:
            return None

        try:
            preview = self._renderer.compose(
                self._engine.layout,
                self._base_image,
                self._preview_recipient,
                self._preview_logo,
                skip_missing_logo=True,
            )
        except AppException as e:
            logger.warning(f"预览渲染失败: {e}")
            return None

        self._preview_cache = pil_to_qimage(preview)
        return self._preview_cache

    def _update_bounds(self) -> None:
        """按组件尺寸计算画布显示区域（保持宽高比居中）."""
        canvas_w, canvas_h = self.canvas_size
        avail_w = max(1, self.width() - CANVAS_MARGIN * 2)
        avail_h = max(1, self.height() - CANVAS_MARGIN * 2)
        ratio = min(avail_w / canvas_w, avail_h / canvas_h)
        width = canvas_w * ratio
        height = canvas_h * ratio
        self._engine.set_bounds(
            CanvasBounds(
                left=(self.width() - width) / 2,
                top=(self.height() - height) / 2,
                width=width,
                height=height,
            )
        )

    # ========================
    # 指针处理
    # ========================

    def handle_press(self, pos: QPointF) -> bool:
        """指针按下，返回是否开始了手势."""
        bounds = self._engine.bounds
        if bounds is None:
            return False

        point = (pos.x(), pos.y())
        previous = self._engine.selected_id
        target, element_id = hit_test(
            self._engine.layout,
            bounds,
            point,
            selected_id=previous,
            logo_aspect=self.logo_aspect,
            recipient=self._preview_recipient,
        )
        started = self._engine.pointer_down(target, point, element_id)

        if self._engine.selected_id != previous:
            self.selection_changed.emit(self._engine.selected_id)
        if target == HitTarget.ROTATE_HANDLE:
            self.setCursor(Qt.CursorShape.CrossCursor)
        elif target == HitTarget.RESIZE_HANDLE:
            self.setCursor(Qt.CursorShape.SizeFDiagCursor)
        elif started:
            self.setCursor(Qt.CursorShape.ClosedHandCursor)
        self.update()
        return started

    def handle_move(self, pos: QPointF) -> bool:
        """指针移动，返回元素是否被修改."""
        element_id = self._engine.active_element_id
        if element_id is None:
            return False
        if not self._engine.pointer_move((pos.x(), pos.y())):
            return False
        self.element_changed.emit(element_id)
        self.refresh()
        return True

    def handle_release(self) -> GestureState:
        """指针抬起，结束手势."""
        element_id = self._engine.active_element_id
        state = self._engine.pointer_up()
        self.unsetCursor()
        if element_id is not None and state != GestureState.IDLE:
            self.gesture_finished.emit(element_id, state.value)
        return state

    def mousePressEvent(self, event: QMouseEvent) -> None:
        """鼠标按下事件."""
        if event.button() == Qt.MouseButton.LeftButton:
            self.handle_press(event.position())
            event.accept()
            return
        super().mousePressEvent(event)

    def mouseMoveEvent(self, event: QMouseEvent) -> None:
        """鼠标移动事件（未开启鼠标追踪，只在按住按键时收到）."""
        if self._engine.is_active:
            self.handle_move(event.position())
            event.accept()
            return
        super().mouseMoveEvent(event)

    def mouseReleaseEvent(self, event: QMouseEvent) -> None:
        """鼠标释放事件."""
        if event.button() == Qt.MouseButton.LeftButton:
            self.handle_release()
            event.accept()
            return
        super().mouseReleaseEvent(event)

    def resizeEvent(self, event: QResizeEvent) -> None:
        """尺寸变化时重新计算画布区域."""
        super().resizeEvent(event)
        self._update_bounds()

    # ========================
    # 绘制
    # ========================

    def paintEvent(self, event: QPaintEvent) -> None:
        """绘制预览与选中框."""
        painter = QPainter(self)
        painter.setRenderHint(QPainter.RenderHint.Antialiasing)
        painter.setRenderHint(QPainter.RenderHint.SmoothPixmapTransform)
        painter.fillRect(self.rect(), BACKGROUND_COLOR)

        rect = self.canvas_rect
        preview = self.render_preview()
        if preview is not None:
            painter.drawImage(rect, preview)
        else:
            painter.fillRect(rect, PLACEHOLDER_COLOR)
            painter.setPen(QColor(120, 120, 120))
            painter.drawText(rect, Qt.AlignmentFlag.AlignCenter, "请先选择底图")

        self._draw_selection(painter)
        painter.end()

    def _draw_selection(self, painter: QPainter) -> None:
        """绘制选中元素的包围框和手柄."""
        selected = self._engine.selected_id
        bounds = self._engine.bounds
        if selected is None or bounds is None:
            return

        box = element_box(
            self._engine.layout.get(selected), bounds, self.logo_aspect, self._preview_recipient
        )
        half_w, half_h = box.width / 2, box.height / 2
        corners = [
            box.to_global((-half_w, -half_h)),
            box.to_global((half_w, -half_h)),
            box.to_global((half_w, half_h)),
            box.to_global((-half_w, half_h)),
        ]

        pen = QPen(SELECTION_COLOR, 1.5, Qt.PenStyle.DashLine)
        painter.setPen(pen)
        painter.setBrush(Qt.BrushStyle.NoBrush)
        painter.drawPolygon(QPolygonF([QPointF(x, y) for x, y in corners]))

        # 旋转手柄连线
        top_mid = box.to_global((0.0, -half_h))
        rotate = box.rotate_handle
        painter.setPen(QPen(SELECTION_COLOR, 1.0))
        painter.drawLine(QPointF(*top_mid), QPointF(*rotate))

        painter.setBrush(QBrush(QColor(255, 255, 255)))
        painter.setPen(QPen(SELECTION_COLOR, 1.5))
        radius = HANDLE_RADIUS * 0.6
        for x, y in (rotate, box.resize_handle):
            painter.drawEllipse(QPointF(x, y), radius, radius)
