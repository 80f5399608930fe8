"""Pytest 配置和共享 fixtures."""

import os
import tempfile

# 日志目录和 Qt 平台需在导入 shopbanner 之前设置
os.environ.setdefault("SHOPBANNER_HOME", tempfile.mkdtemp(prefix="shopbanner-test-"))
os.environ.setdefault("QT_QPA_PLATFORM", "offscreen")

import pytest
from PIL import Image

from shopbanner.models.banner_layout import BannerLayout, ElementKind
from shopbanner.models.recipient import Recipient
from shopbanner.utils.image_utils import encode_png, to_data_uri

RED = (255, 0, 0, 255)
BLACK = (0, 0, 0, 255)


def make_png(size=(200, 100), color=BLACK) -> bytes:
    """生成纯色 PNG 字节."""
    return encode_png(Image.new("RGBA", size, color))


@pytest.fixture
def base_image() -> Image.Image:
    """200x100 黑色底图."""
    return Image.new("RGBA", (200, 100), BLACK)


@pytest.fixture
def base_png() -> bytes:
    """200x100 黑色底图 PNG 字节."""
    return make_png()


@pytest.fixture
def red_logo() -> Image.Image:
    """100x100 红色 Logo."""
    return Image.new("RGBA", (100, 100), RED)


@pytest.fixture
def logo_uri() -> str:
    """红色 Logo 的 Data URI."""
    return to_data_uri(make_png((40, 40), RED))


@pytest.fixture
def shop() -> Recipient:
    """示例店铺."""
    return Recipient(
        id="shop-1",
        name="Acme",
        email="hello@acme.test",
        phone="555-1212",
        address="1 Main St",
    )


@pytest.fixture
def make_shops(logo_uri):
    """批量店铺工厂: make_shops(5, without_logo={2})."""

    def factory(count: int, without_logo=()):
        return [
            Recipient(
                id=f"shop-{i + 1}",
                name=f"Shop {i + 1}",
                logo=None if i in without_logo else logo_uri,
            )
            for i in range(count)
        ]

    return factory


@pytest.fixture
def logo_layout() -> BannerLayout:
    """只含一个 Logo 元素的布局."""
    layout = BannerLayout()
    layout.add(ElementKind.LOGO)
    return layout
