"""个性化规则说明.

把布局转成按顺序排列、可读的文字规则，供操作员核对或交给外部服务。
"""

from __future__ import annotations

from shopbanner.models.banner_layout import BannerElement, BannerLayout, TextElement

EMPTY_RULE_SET = "No personalization rules defined. Please add and position a logo or text element."

RULE_SET_HEADER = "Personalize the banner according to the following rules, processed in order:"


def _format_number(value: float) -> str:
    """整数不带小数点，其余保留两位."""
    if float(value).is_integer():
        return str(int(value))
    return f"{value:.2f}".rstrip("0").rstrip(".")


def describe_element(element: BannerElement, index: int) -> str:
    """单个元素的规则文字（index 从 0 开始）."""
    lines = [f"Rule for element {index + 1}:"]
    if isinstance(element, TextElement):
        lines.append(
            f'- This element is a text block containing: "{element.text_template}". '
            "Replace {{shopName}}, {{address}}, {{phone}} and {{email}} with the shop's data."
        )
        lines.append(
            f"- The text color should be {element.color} and the font weight should be "
            f"{element.font_weight} ({element.font_family}, letter spacing "
            f"{_format_number(element.letter_spacing)}px)."
        )
    else:
        lines.append("- This element is the shop's logo.")

    lines.append(
        f"- Position the element with its center at {_format_number(element.x)}% from the left "
        f"and {_format_number(element.y)}% from the top of the banner."
    )
    lines.append(
        f"- Scale the element to be {_format_number(element.scale)}% of the banner's width "
        "(for logos) or height (for text)."
    )
    lines.append(f"- Apply a rotation of {_format_number(element.rotation)} degrees.")
    lines.append(f"- Set the opacity to {_format_number(element.opacity)}%.")
    return "\n".join(lines) + "\n"


def generate_rule_set(layout: BannerLayout) -> str:
    """生成整个布局的规则说明.

    Example:
        >>> generate_rule_set(BannerLayout())
        'No personalization rules defined. Please add and position a logo or text element.'
    """
    if not layout.elements:
        return EMPTY_RULE_SET

    rules = [describe_element(element, i) for i, element in enumerate(layout.elements)]
    return f"{RULE_SET_HEADER}\n\n" + "\n".join(rules)
