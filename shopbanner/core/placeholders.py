"""占位符替换.

全系统统一识别的占位符：{{shopName}}、{{address}}、{{phone}}、{{email}}。
横幅文字、邮件标题和正文都使用同一套替换规则。
"""

from __future__ import annotations

import re

from shopbanner.models.recipient import Recipient

PLACEHOLDER_PATTERN = re.compile(r"\{\{\s*(\w+)\s*\}\}")

# 占位符 -> 店铺字段
PLACEHOLDER_FIELDS: dict[str, str] = {
    "shopName": "name",
    "address": "address",
    "phone": "phone",
    "email": "email",
}

PLACEHOLDER_TOKENS = tuple(f"{{{{{name}}}}}" for name in PLACEHOLDER_FIELDS)


def substitute_placeholders(template: str, recipient: Recipient) -> str:
    """替换模板中的全部占位符.

    每个出现位置都会替换；未知的 {{token}} 原样保留。

    Args:
        template: 文字模板
        recipient: 店铺

    Returns:
        替换后的文字

    Example:
        >>> shop = Recipient(id="1", name="Acme", phone="555-1212")
        >>> substitute_placeholders("Hi {{shopName}}, call {{phone}}", shop)
        'Hi Acme, call 555-1212'
    """

    def _replace(match: re.Match[str]) -> str:
        field = PLACEHOLDER_FIELDS.get(match.group(1))
        if field is None:
            return match.group(0)
        return getattr(recipient, field) or ""

    return PLACEHOLDER_PATTERN.sub(_replace, template)


def find_placeholders(template: str) -> list[str]:
    """列出模板中出现的占位符名称（按出现顺序，去重）."""
    seen: list[str] = []
    for match in PLACEHOLDER_PATTERN.finditer(template):
        if match.group(1) not in seen:
            seen.append(match.group(1))
    return seen
