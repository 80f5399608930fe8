"""横幅布局与图层元素数据模型单元测试."""

import json

import pytest
from pydantic import ValidationError

from shopbanner.models.banner_layout import (
    BannerLayout,
    ElementKind,
    LogoElement,
    TextElement,
    clamp,
    clamp_font_weight,
    create_element,
    generate_element_id,
)
from shopbanner.utils.exceptions import ElementNotFoundError


@pytest.fixture
def layout():
    """含一个 Logo 和一个文字元素的布局."""
    layout = BannerLayout()
    layout.add(ElementKind.LOGO)
    layout.add(ElementKind.TEXT)
    return layout


# ===================
# 辅助函数测试
# ===================


class TestHelpers:
    """辅助函数测试."""

    def test_should_generate_8_char_hex_id(self):
        """生成的ID应为8位十六进制."""
        element_id = generate_element_id()
        assert len(element_id) == 8
        assert all(c in "0123456789abcdef" for c in element_id)

    def test_should_generate_unique_ids(self):
        """多次生成的ID应唯一."""
        assert len({generate_element_id() for _ in range(100)}) == 100

    @pytest.mark.parametrize("value,expected", [(-15, 0), (130, 100), (42.5, 42.5), ("7", 7)])
    def test_clamp(self, value, expected):
        """钳制到范围内."""
        assert clamp(value, 0, 100) == expected

    @pytest.mark.parametrize("value", [True, float("nan"), "abc", None])
    def test_clamp_rejects_invalid(self, value):
        """非数值抛出 ValueError."""
        with pytest.raises(ValueError):
            clamp(value, 0, 100)

    @pytest.mark.parametrize(
        "value,expected",
        [(720, 700), (750, 800), (650, 700), (450, 500), (250, 300), (50, 100), (1200, 900), (400, 400)],
    )
    def test_clamp_font_weight(self, value, expected):
        """字重取整到 100 的倍数并钳制."""
        assert clamp_font_weight(value) == expected


# ===================
# 元素测试
# ===================


class TestElementDefaults:
    """元素默认值测试."""

    def test_logo_defaults(self):
        """Logo 默认值."""
        logo = create_element(ElementKind.LOGO)
        assert isinstance(logo, LogoElement)
        assert (logo.x, logo.y) == (50, 50)
        assert logo.scale == 15
        assert logo.rotation == 0
        assert logo.opacity == 100

    def test_text_defaults(self):
        """文字默认值."""
        text = create_element("text")
        assert isinstance(text, TextElement)
        assert text.scale == 30
        assert text.text_template == "{{shopName}}"
        assert text.color == "#ffffff"
        assert text.font_weight == 400
        assert text.font_family == "Roboto"
        assert text.letter_spacing == 0

    def test_unknown_kind(self):
        """未知类型抛出 ValueError."""
        with pytest.raises(ValueError):
            create_element("shape")


class TestElementClamping:
    """数值字段钳制测试."""

    def test_constructor_clamps(self):
        """构造时越界值被钳制."""
        logo = LogoElement(x=-15, y=130, scale=500, rotation=-270, opacity=150)
        assert (logo.x, logo.y) == (0, 100)
        assert logo.scale == 200
        assert logo.rotation == -180
        assert logo.opacity == 100

    def test_scale_lower_bound(self):
        """缩放下限为 1."""
        assert LogoElement(scale=0).scale == 1
        assert LogoElement(scale=-20).scale == 1

    def test_assignment_clamps(self):
        """直接赋值同样被钳制."""
        logo = LogoElement()
        logo.x = 250
        logo.opacity = -5
        assert logo.x == 100
        assert logo.opacity == 0

    def test_letter_spacing_allows_negative(self):
        """字间距可为负."""
        assert TextElement(letter_spacing=-3).letter_spacing == -3

    def test_invalid_color(self):
        """非法颜色拒绝."""
        with pytest.raises(ValidationError):
            TextElement(color="red")

    def test_color_lowercased(self):
        """颜色统一为小写."""
        assert TextElement(color="#FFAA00").color == "#ffaa00"

    def test_camel_case_fields(self):
        """支持 camelCase 字段名."""
        text = TextElement.model_validate({"textTemplate": "Hi", "fontWeight": 650})
        assert text.text_template == "Hi"
        assert text.font_weight == 700

    def test_is_bold(self):
        """字重 600 及以上为粗体."""
        assert TextElement(font_weight=600).is_bold
        assert not TextElement(font_weight=500).is_bold


# ===================
# 布局测试
# ===================


class TestLayoutCrud:
    """布局增删改测试."""

    def test_add_appends_on_top(self, layout):
        """新元素追加到最顶层."""
        text = layout.add(ElementKind.TEXT)
        assert layout.elements[-1] is text
        assert len(layout) == 3

    def test_add_element_rejects_duplicate(self, layout):
        """重复ID拒绝."""
        with pytest.raises(ValueError):
            layout.add_element(layout.elements[0].model_copy())

    def test_update_merges_and_clamps(self, layout):
        """更新后重新钳制."""
        logo_id = layout.elements[0].id
        element = layout.update(logo_id, x=-15, scale=80)
        assert element.x == 0
        assert element.scale == 80
        assert element.y == 50

    def test_update_accepts_camel_case(self, layout):
        """update 支持 camelCase."""
        text_id = layout.elements[1].id
        layout.update(text_id, fontWeight=720, letterSpacing=2)
        text = layout.get(text_id)
        assert text.font_weight == 700
        assert text.letter_spacing == 2

    @pytest.mark.parametrize("field", ["id", "kind"])
    def test_update_rejects_immutable(self, layout, field):
        """id 和 kind 不可修改."""
        with pytest.raises(ValueError):
            layout.update(layout.elements[0].id, **{field: "text"})

    def test_update_rejects_unknown_field(self, layout):
        """Logo 没有文字字段."""
        with pytest.raises(ValueError):
            layout.update(layout.elements[0].id, color="#000000")

    def test_update_is_atomic(self, layout):
        """校验失败时元素不变."""
        text_id = layout.elements[1].id
        with pytest.raises(ValueError):
            layout.update(text_id, x=10, color="nope")
        assert layout.get(text_id).x == 50

    def test_remove(self, layout):
        """删除元素."""
        logo_id = layout.elements[0].id
        removed = layout.remove(logo_id)
        assert removed.id == logo_id
        assert not layout.contains(logo_id)

    @pytest.mark.parametrize("operation", ["get", "remove", "index_of"])
    def test_unknown_id_raises(self, layout, operation):
        """未知ID一律抛出 ElementNotFoundError."""
        with pytest.raises(ElementNotFoundError):
            getattr(layout, operation)("missing")

    def test_update_unknown_id_raises(self, layout):
        """更新未知ID."""
        with pytest.raises(ElementNotFoundError):
            layout.update("missing", x=1)

    def test_move_to_unknown_id_raises(self, layout):
        """移动未知ID."""
        with pytest.raises(ElementNotFoundError):
            layout.move_to("missing", 0)

    def test_clear(self, layout):
        """清空布局."""
        layout.clear()
        assert len(layout) == 0
        assert not layout.has_logo_elements


class TestLayoutOrder:
    """合成顺序测试."""

    def test_move_to_bottom(self, layout):
        """移到最底层."""
        text_id = layout.elements[1].id
        layout.move_to(text_id, 0)
        assert layout.element_ids[0] == text_id

    def test_duplicate_above_original(self, layout):
        """复制的元素在原元素上一层."""
        logo = layout.elements[0]
        layout.update(logo.id, x=20)
        copy = layout.duplicate(logo.id)
        assert copy.id != logo.id
        assert layout.element_ids[1] == copy.id
        assert copy.x == 20

    def test_move_to_clamps_index(self, layout):
        """超出范围的位置钳制到两端."""
        logo_id = layout.elements[0].id
        layout.move_to(logo_id, 99)
        assert layout.element_ids[-1] == logo_id
        layout.move_to(logo_id, -5)
        assert layout.element_ids[0] == logo_id


class TestLayoutCopyAndJson:
    """快照与序列化测试."""

    def test_snapshot_is_independent(self, layout):
        """快照与原布局互不影响."""
        snapshot = layout.snapshot()
        layout.update(layout.elements[0].id, x=10)
        layout.add(ElementKind.TEXT)
        assert snapshot.elements[0].x == 50
        assert len(snapshot) == 2

    def test_json_uses_camel_case(self, layout):
        """JSON 使用 camelCase 字段名."""
        data = json.loads(layout.to_json())
        text = data["elements"][1]
        assert text["kind"] == "text"
        assert text["textTemplate"] == "{{shopName}}"
        assert "fontWeight" in text

    def test_json_round_trip(self, layout):
        """JSON 序列化后恢复."""
        restored = BannerLayout.from_json(layout.to_json())
        assert restored.element_ids == layout.element_ids
        assert isinstance(restored.elements[0], LogoElement)
        assert isinstance(restored.elements[1], TextElement)

    def test_from_json_clamps(self):
        """导入的越界值被钳制."""
        restored = BannerLayout.from_json('{"elements": [{"id": "a1", "kind": "logo", "x": 300}]}')
        assert restored.elements[0].x == 100

    def test_file_round_trip(self, layout, tmp_path):
        """保存并加载文件."""
        path = tmp_path / "layout.json"
        layout.save_to_file(str(path))
        assert BannerLayout.from_file(str(path)).element_ids == layout.element_ids
