"""横幅布局与图层元素数据模型.

坐标、尺寸均以画布百分比表示，与实际图片分辨率无关。

Features:
    - Logo / 文字两类图层元素
    - 所有数值字段越界即钳制，任何时候都不会保存非法值
    - 有序图层列表（先绘制者在下层），显式 move_to 调整层级
    - JSON 序列化/反序列化（camelCase 字段名）
"""

from __future__ import annotations

import json
import math
import uuid
from enum import Enum
from typing import Annotated, Any, Literal, Union

from pydantic import BaseModel, ConfigDict, Field, field_validator
from pydantic.alias_generators import to_camel

from shopbanner.utils.constants import (
    BOLD_FONT_WEIGHT,
    DEFAULT_FONT_FAMILY,
    DEFAULT_FONT_WEIGHT,
    DEFAULT_LOGO_SCALE,
    DEFAULT_POSITION,
    DEFAULT_TEXT_COLOR,
    DEFAULT_TEXT_SCALE,
    DEFAULT_TEXT_TEMPLATE,
    FONT_WEIGHT_STEP,
    LETTER_SPACING_LIMIT,
    MAX_ELEMENT_SCALE,
    MAX_FONT_WEIGHT,
    MAX_OPACITY,
    MAX_POSITION,
    MAX_ROTATION,
    MIN_ELEMENT_SCALE,
    MIN_FONT_WEIGHT,
    MIN_OPACITY,
    MIN_POSITION,
    MIN_ROTATION,
)
from shopbanner.utils.exceptions import ElementNotFoundError
from shopbanner.utils.image_utils import HEX_COLOR_PATTERN


# ===================
# 枚举定义
# ===================


class ElementKind(str, Enum):
    """图层元素类型."""

    LOGO = "logo"
    TEXT = "text"


# 元素类型中文名称
ELEMENT_KIND_NAMES: dict[ElementKind, str] = {
    ElementKind.LOGO: "Logo",
    ElementKind.TEXT: "文字",
}

# 不允许通过 update 修改的字段
IMMUTABLE_FIELDS = frozenset({"id", "kind"})


# ===================
# 辅助函数
# ===================


def generate_element_id() -> str:
    """生成唯一的元素ID.

    Returns:
        8位UUID字符串
    """
    return uuid.uuid4().hex[:8]


def clamp(value: Any, low: float, high: float) -> float:
    """将数值钳制到 [low, high].

    Raises:
        ValueError: 非数值或 NaN
    """
    if isinstance(value, bool):
        raise ValueError(f"数值字段不接受布尔值: {value}")
    try:
        number = float(value)
    except (TypeError, ValueError) as e:
        raise ValueError(f"无效的数值: {value!r}") from e
    if math.isnan(number):
        raise ValueError("数值不能为 NaN")
    return max(low, min(high, number))


def clamp_font_weight(value: Any) -> int:
    """字重取最接近的 100 的倍数并钳制到 100-900."""
    weight = clamp(value, MIN_FONT_WEIGHT, MAX_FONT_WEIGHT)
    # 半数向上取整，650 -> 700
    return int(math.floor(weight / FONT_WEIGHT_STEP + 0.5) * FONT_WEIGHT_STEP)


# ===================
# 图层元素
# ===================


class BannerElement(BaseModel):
    """图层元素基类.

    Attributes:
        id: 元素唯一标识符
        kind: 元素类型
        x: 中心点横坐标（画布宽度百分比，0-100）
        y: 中心点纵坐标（画布高度百分比，0-100）
        scale: 缩放百分比（1-200）
        rotation: 旋转角度（度，顺时针，-180~180）
        opacity: 不透明度（0-100）
    """

    model_config = ConfigDict(
        validate_assignment=True,
        alias_generator=to_camel,
        populate_by_name=True,
        extra="forbid",
    )

    id: str = Field(default_factory=generate_element_id, description="元素唯一ID")
    kind: ElementKind = Field(description="元素类型")

    x: float = Field(default=DEFAULT_POSITION, description="中心点X（百分比）")
    y: float = Field(default=DEFAULT_POSITION, description="中心点Y（百分比）")
    scale: float = Field(default=DEFAULT_LOGO_SCALE, description="缩放百分比")
    rotation: float = Field(default=0.0, description="旋转角度")
    opacity: float = Field(default=100.0, description="不透明度")

    @field_validator("x", "y", mode="before")
    @classmethod
    def clamp_position(cls, v: Any) -> float:
        """钳制位置."""
        return clamp(v, MIN_POSITION, MAX_POSITION)

    @field_validator("scale", mode="before")
    @classmethod
    def clamp_scale(cls, v: Any) -> float:
        """钳制缩放."""
        return clamp(v, MIN_ELEMENT_SCALE, MAX_ELEMENT_SCALE)

    @field_validator("rotation", mode="before")
    @classmethod
    def clamp_rotation(cls, v: Any) -> float:
        """钳制旋转角度."""
        return clamp(v, MIN_ROTATION, MAX_ROTATION)

    @field_validator("opacity", mode="before")
    @classmethod
    def clamp_opacity(cls, v: Any) -> float:
        """钳制不透明度."""
        return clamp(v, MIN_OPACITY, MAX_OPACITY)

    @property
    def is_logo(self) -> bool:
        """是否为 Logo 元素."""
        return self.kind == ElementKind.LOGO

    @property
    def is_text(self) -> bool:
        """是否为文字元素."""
        return self.kind == ElementKind.TEXT

    @property
    def display_name(self) -> str:
        """图层面板显示名称."""
        return ELEMENT_KIND_NAMES[self.kind]


class LogoElement(BannerElement):
    """Logo 图层.

    宽度为画布宽度的 scale%，高度按店铺 Logo 原始宽高比计算。
    """

    kind: Literal[ElementKind.LOGO] = Field(default=ElementKind.LOGO, description="元素类型")


class TextElement(BannerElement):
    """文字图层.

    字号由 scale 与画布高度决定，文字模板中的占位符在渲染时替换为店铺信息。

    Attributes:
        text_template: 文字模板，可包含 {{shopName}} 等占位符
        color: 十六进制颜色
        font_weight: 字重（100-900，100 的倍数）
        font_family: 字体名称
        letter_spacing: 字间距（像素，可为负）

    Example:
        >>> text = TextElement(text_template="Hi {{shopName}}", font_weight=720)
        >>> text.font_weight
        700
    """

    kind: Literal[ElementKind.TEXT] = Field(default=ElementKind.TEXT, description="元素类型")
    scale: float = Field(default=DEFAULT_TEXT_SCALE, description="缩放百分比")

    text_template: str = Field(default=DEFAULT_TEXT_TEMPLATE, max_length=1000, description="文字模板")
    color: str = Field(default=DEFAULT_TEXT_COLOR, description="文字颜色")
    font_weight: int = Field(default=DEFAULT_FONT_WEIGHT, description="字重")
    font_family: str = Field(default=DEFAULT_FONT_FAMILY, min_length=1, description="字体")
    letter_spacing: float = Field(default=0.0, description="字间距")

    @field_validator("color")
    @classmethod
    def validate_color(cls, v: str) -> str:
        """验证颜色值."""
        if not HEX_COLOR_PATTERN.match(v):
            raise ValueError(f"颜色必须为 #rgb 或 #rrggbb 格式，实际: {v}")
        return v.lower()

    @field_validator("font_weight", mode="before")
    @classmethod
    def clamp_weight(cls, v: Any) -> int:
        """字重取整并钳制."""
        return clamp_font_weight(v)

    @field_validator("letter_spacing", mode="before")
    @classmethod
    def validate_spacing(cls, v: Any) -> float:
        """钳制字间距."""
        return clamp(v, -LETTER_SPACING_LIMIT, LETTER_SPACING_LIMIT)

    @property
    def is_bold(self) -> bool:
        """是否使用粗体字形."""
        return self.font_weight >= BOLD_FONT_WEIGHT


# 图层联合类型
AnyElement = Annotated[Union[LogoElement, TextElement], Field(discriminator="kind")]

ELEMENT_CLASSES: dict[ElementKind, type[BannerElement]] = {
    ElementKind.LOGO: LogoElement,
    ElementKind.TEXT: TextElement,
}


def create_element(kind: ElementKind | str, **fields: Any) -> BannerElement:
    """按类型创建元素（使用默认值）.

    Args:
        kind: 元素类型
        **fields: 覆盖默认值的字段

    Returns:
        新元素

    Raises:
        ValueError: 未知元素类型
    """
    element_kind = ElementKind(kind)
    return ELEMENT_CLASSES[element_kind](**fields)


# ===================
# 横幅布局
# ===================


class BannerLayout(BaseModel):
    """横幅布局.

    有序的图层元素列表，列表顺序即合成顺序：第一个元素最先绘制（最底层），
    后面的元素覆盖在前面的元素之上。

    编辑会话开始时创建空布局，会话结束即丢弃；to_json/from_json 仅作导入导出。

    Example:
        >>> layout = BannerLayout()
        >>> logo = layout.add(ElementKind.LOGO)
        >>> text = layout.add(ElementKind.TEXT)
        >>> layout.move_to(text.id, 0)
        >>> [e.kind for e in layout.elements]
        [<ElementKind.TEXT: 'text'>, <ElementKind.LOGO: 'logo'>]
    """

    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True)

    elements: list[AnyElement] = Field(default_factory=list, description="图层元素（自底向上）")

    def __len__(self) -> int:
        return len(self.elements)

    @property
    def element_ids(self) -> list[str]:
        """按合成顺序的元素ID列表."""
        return [e.id for e in self.elements]

    @property
    def has_logo_elements(self) -> bool:
        """是否含有 Logo 元素."""
        return any(e.is_logo for e in self.elements)

    # ========================
    # 查询
    # ========================

    def index_of(self, element_id: str) -> int:
        """获取元素在合成顺序中的位置.

        Raises:
            ElementNotFoundError: 元素不存在
        """
        for i, element in enumerate(self.elements):
            if element.id == element_id:
                return i
        raise ElementNotFoundError(element_id)

    def get(self, element_id: str) -> BannerElement:
        """根据ID获取元素.

        Raises:
            ElementNotFoundError: 元素不存在
        """
        return self.elements[self.index_of(element_id)]

    def contains(self, element_id: str) -> bool:
        """元素是否存在."""
        return any(e.id == element_id for e in self.elements)

    # ========================
    # 增删改
    # ========================

    def add(self, kind: ElementKind | str) -> BannerElement:
        """添加默认元素到最顶层.

        默认居中 (50, 50)、不旋转、完全不透明；Logo 缩放 15，文字缩放 30，
        文字模板为店铺名称占位符。

        Args:
            kind: 元素类型

        Returns:
            新建的元素
        """
        element = create_element(kind)
        self.elements.append(element)
        return element

    def add_element(self, element: BannerElement) -> BannerElement:
        """追加已有元素到最顶层.

        Raises:
            ValueError: ID 重复
        """
        if self.contains(element.id):
            raise ValueError(f"元素ID重复: {element.id}")
        self.elements.append(element)
        return element

    def update(self, element_id: str, **fields: Any) -> BannerElement:
        """合并字段到元素并重新钳制.

        字段名可用 snake_case 或 camelCase。先整体校验再写入，校验失败时元素保持不变。

        Args:
            element_id: 元素ID
            **fields: 要更新的字段

        Returns:
            更新后的元素（同一对象）

        Raises:
            ElementNotFoundError: 元素不存在
            ValueError: 字段不存在、不可修改或取值非法
        """
        element = self.get(element_id)
        model_fields = type(element).model_fields
        aliases = {info.alias: name for name, info in model_fields.items() if info.alias}

        changes: dict[str, Any] = {}
        for key, value in fields.items():
            name = aliases.get(key, key)
            if name in IMMUTABLE_FIELDS:
                raise ValueError(f"字段 '{name}' 不可修改")
            if name not in model_fields:
                raise ValueError(f"{element.display_name} 元素没有字段 '{key}'")
            changes[name] = value

        # 整体校验（钳制）后再写入
        validated = type(element).model_validate({**element.model_dump(), **changes})
        for name in changes:
            setattr(element, name, getattr(validated, name))
        return element

    def duplicate(self, element_id: str) -> BannerElement:
        """复制元素到原元素的上一层（新ID）.

        Raises:
            ElementNotFoundError: 元素不存在
        """
        index = self.index_of(element_id)
        copy = self.elements[index].model_copy(update={"id": generate_element_id()}, deep=True)
        self.elements.insert(index + 1, copy)
        return copy

    def remove(self, element_id: str) -> BannerElement:
        """删除元素.

        Raises:
            ElementNotFoundError: 元素不存在
        """
        return self.elements.pop(self.index_of(element_id))

    def move_to(self, element_id: str, new_index: int) -> None:
        """调整元素的合成顺序.

        Args:
            element_id: 元素ID
            new_index: 目标位置（0 为最底层），超出范围时钳制到两端

        Raises:
            ElementNotFoundError: 元素不存在
        """
        element = self.elements.pop(self.index_of(element_id))
        index = max(0, min(len(self.elements), new_index))
        self.elements.insert(index, element)

    def clear(self) -> None:
        """清空所有元素."""
        self.elements.clear()

    def snapshot(self) -> "BannerLayout":
        """深拷贝当前布局（批量生成期间使用，与编辑中的布局互不影响）."""
        return self.model_copy(deep=True)

    # ========================
    # 序列化
    # ========================

    def to_json(self, indent: int = 2) -> str:
        """序列化为JSON字符串（camelCase 字段名）."""
        return json.dumps(self.model_dump(mode="json", by_alias=True), ensure_ascii=False, indent=indent)

    @classmethod
    def from_json(cls, json_str: str) -> "BannerLayout":
        """从JSON字符串反序列化."""
        return cls.model_validate_json(json_str)

    @classmethod
    def from_file(cls, file_path: str) -> "BannerLayout":
        """从文件加载布局."""
        with open(file_path, "r", encoding="utf-8") as f:
            return cls.from_json(f.read())

    def save_to_file(self, file_path: str) -> None:
        """保存布局到文件."""
        with open(file_path, "w", encoding="utf-8") as f:
            f.write(self.to_json())
