"""店铺（横幅接收方）数据模型."""

from __future__ import annotations

from enum import Enum
from typing import Optional

from pydantic import BaseModel, ConfigDict, Field
from pydantic.alias_generators import to_camel


class RecipientStatus(str, Enum):
    """店铺状态."""

    ACTIVE = "active"
    SUSPENDED = "suspended"
    EXPIRED = "expired"


class Recipient(BaseModel):
    """店铺.

    由外部持久层提供，本模块只读。只有 active 状态的店铺才应交给批量生成器，
    状态与过期筛选由调用方负责。

    Attributes:
        id: 店铺ID
        name: 店铺名称（{{shopName}}）
        email: 邮箱（{{email}}）
        phone: 电话（{{phone}}）
        address: 地址（{{address}}）
        logo: Logo 素材引用（Data URI、文件路径或 http(s) 链接），可为空
        status: 店铺状态
    """

    model_config = ConfigDict(frozen=True, alias_generator=to_camel, populate_by_name=True)

    id: str = Field(min_length=1, description="店铺ID")
    name: str = Field(default="", description="店铺名称")
    email: str = Field(default="", description="邮箱")
    phone: str = Field(default="", description="电话")
    address: str = Field(default="", description="地址")
    logo: Optional[str] = Field(default=None, description="Logo 素材引用")
    status: RecipientStatus = Field(default=RecipientStatus.ACTIVE, description="店铺状态")

    @property
    def has_logo(self) -> bool:
        """是否有 Logo."""
        return bool(self.logo)

    @property
    def is_active(self) -> bool:
        """是否为可发送状态."""
        return self.status == RecipientStatus.ACTIVE


def filter_active(recipients: list[Recipient]) -> list[Recipient]:
    """筛选 active 状态的店铺，保持原顺序."""
    return [r for r in recipients if r.is_active]
