"""批量横幅生成器单元测试."""

import asyncio
import base64
from unittest.mock import MagicMock

import pytest
import pytest_asyncio

from shopbanner.core.banner_generator import BannerGenerator
from shopbanner.models.app_settings import MissingLogoPolicy
from shopbanner.models.banner_layout import BannerElement, BannerLayout, ElementKind
from shopbanner.models.recipient import Recipient
from shopbanner.models.render_result import RenderFailure
from shopbanner.services.asset_resolver import AssetResolver
from shopbanner.services.banner_renderer import BannerRenderer
from shopbanner.utils.exceptions import BatchAbortedError, InvalidElementError
from shopbanner.utils.image_utils import decode_data_uri


@pytest_asyncio.fixture
async def resolver():
    """素材解析器（测试结束时关闭）."""
    async with AssetResolver(timeout=5) as resolver:
        yield resolver


class DelayedResolver:
    """按素材引用延迟返回同一个 Logo 的解析器."""

    def __init__(self, logo: bytes, delays: dict[str, float]):
        self._logo = logo
        self._delays = delays

    async def resolve(self, ref: str) -> bytes:
        await asyncio.sleep(self._delays.get(ref, 0))
        return self._logo


@pytest.fixture
def generator(resolver):
    """默认策略的生成器."""
    return BannerGenerator(BannerRenderer(), resolver, concurrent_limit=4)


# ===================
# 基础生成
# ===================


class TestGenerate:
    """批量生成测试."""

    @pytest.mark.asyncio
    async def test_partial_failure_isolated(self, generator, logo_layout, base_png, make_shops):
        """5 个店铺，第 3 个没有 Logo：4 成功 1 失败，顺序不变."""
        shops = make_shops(5, without_logo={2})
        report = await generator.generate(logo_layout, base_png, shops)

        assert report.total == 5
        assert report.succeeded == 4
        assert [r.recipient_id for r in report.results] == [s.id for s in shops]
        assert [r.success for r in report.results] == [True, True, False, True, True]
        assert report.results[2].failure == RenderFailure.MISSING_LOGO
        assert report.results[2].error_message
        assert not report.abandoned

    @pytest.mark.asyncio
    async def test_results_are_png(self, generator, logo_layout, base_png, make_shops):
        """成功结果为 PNG."""
        report = await generator.generate(logo_layout, base_png, make_shops(2))
        assert all(r.image.startswith(b"\x89PNG") for r in report.successes)

    @pytest.mark.asyncio
    async def test_same_input_same_output(self, generator, base_png, logo_uri):
        """同名同 Logo 的店铺结果一致."""
        layout = BannerLayout()
        layout.add(ElementKind.LOGO)
        layout.add(ElementKind.TEXT)
        shops = [Recipient(id=str(i), name="Twin", logo=logo_uri) for i in range(3)]
        report = await generator.generate(layout, base_png, shops)
        assert len({r.image for r in report.results}) == 1

    @pytest.mark.asyncio
    async def test_empty_recipients(self, generator, logo_layout, base_png):
        """空店铺列表."""
        report = await generator.generate(logo_layout, base_png, [])
        assert report.total == 0

    @pytest.mark.asyncio
    async def test_text_only_layout_needs_no_logo(self, generator, base_png, make_shops):
        """没有 Logo 元素时不需要 Logo."""
        layout = BannerLayout()
        layout.add(ElementKind.TEXT)
        report = await generator.generate(layout, base_png, make_shops(3, without_logo={0, 1, 2}))
        assert report.succeeded == 3

    @pytest.mark.asyncio
    async def test_on_result_called_for_each(self, generator, logo_layout, base_png, make_shops):
        """每个店铺完成时回调."""
        seen = []
        await generator.generate(
            logo_layout, base_png, make_shops(4, without_logo={1}), on_result=lambda i, r: seen.append(i)
        )
        assert sorted(seen) == [0, 1, 2, 3]
        assert not generator.is_running

    @pytest.mark.asyncio
    async def test_order_kept_when_completion_out_of_order(self, logo_layout, base_png, logo_uri):
        """第一个店铺最后完成，报告仍按输入顺序."""
        resolver = DelayedResolver(decode_data_uri(logo_uri), {"logo-0": 0.3})
        generator = BannerGenerator(BannerRenderer(), resolver, concurrent_limit=4)
        shops = [Recipient(id=f"shop-{i}", logo=f"logo-{i}") for i in range(4)]
        seen = []

        report = await generator.generate(
            logo_layout, base_png, shops, on_result=lambda i, r: seen.append(i)
        )

        assert seen[-1] == 0
        assert seen != sorted(seen)
        assert [r.recipient_id for r in report.results] == [s.id for s in shops]
        assert report.succeeded == 4

    def test_invalid_concurrent_limit(self):
        with pytest.raises(ValueError):
            BannerGenerator(BannerRenderer(), MagicMock(), concurrent_limit=0)


# ===================
# 失败分类
# ===================


class TestFailures:
    """单店铺失败测试."""

    @pytest.mark.asyncio
    async def test_corrupt_logo(self, generator, logo_layout, base_png):
        """Logo 损坏."""
        bad = "data:image/png;base64," + base64.b64encode(b"not a png").decode()
        report = await generator.generate(logo_layout, base_png, [Recipient(id="1", logo=bad)])
        assert report.results[0].failure == RenderFailure.ASSET_DECODE_ERROR

    @pytest.mark.asyncio
    async def test_unreachable_logo(self, generator, logo_layout, base_png, tmp_path):
        """Logo 文件不存在."""
        shop = Recipient(id="1", logo=str(tmp_path / "missing.png"))
        report = await generator.generate(logo_layout, base_png, [shop])
        assert report.results[0].failure == RenderFailure.OTHER

    @pytest.mark.asyncio
    async def test_skip_element_policy(self, resolver, logo_layout, base_png, make_shops):
        """skip_element 策略下缺少 Logo 的店铺照常生成."""
        renderer = BannerRenderer(missing_logo_policy=MissingLogoPolicy.SKIP_ELEMENT)
        generator = BannerGenerator(renderer, resolver)
        report = await generator.generate(logo_layout, base_png, make_shops(3, without_logo={1}))
        assert report.succeeded == 3

    @pytest.mark.asyncio
    async def test_corrupt_base_aborts(self, generator, logo_layout, make_shops):
        """底图损坏时整批中止."""
        with pytest.raises(BatchAbortedError):
            await generator.generate(logo_layout, b"garbage", make_shops(3))
        assert not generator.is_running

    @pytest.mark.asyncio
    async def test_invalid_element_is_fatal(self, generator, base_png, make_shops):
        """非法元素是程序错误，向上抛出."""
        layout = BannerLayout()
        layout.elements.append(BannerElement(kind=ElementKind.TEXT))
        with pytest.raises(InvalidElementError):
            await generator.generate(layout, base_png, make_shops(3))
        assert not generator.is_running


# ===================
# 放弃与快照
# ===================


class TestAbandonAndSnapshot:
    """放弃与布局快照测试."""

    @pytest.mark.asyncio
    async def test_abandon_skips_unstarted(self, resolver, logo_layout, base_png, make_shops):
        """放弃后未开始的店铺记为 abandoned."""
        generator = BannerGenerator(BannerRenderer(), resolver, concurrent_limit=1)

        def on_result(index, result):
            generator.abandon()

        report = await generator.generate(logo_layout, base_png, make_shops(4), on_result=on_result)

        assert report.abandoned
        assert report.results[0].success
        assert [r.failure for r in report.results[1:]] == [RenderFailure.ABANDONED] * 3
        assert "已中途停止" in report.summary()

    @pytest.mark.asyncio
    async def test_abandon_while_decoding_base(self, generator, logo_layout, base_png, make_shops):
        """底图解码期间放弃，所有店铺记为 abandoned."""
        task = asyncio.create_task(generator.generate(logo_layout, base_png, make_shops(4)))
        await asyncio.sleep(0)

        assert generator.is_running
        generator.abandon()
        with pytest.raises(BatchAbortedError):
            await generator.generate(logo_layout, base_png, make_shops(1))

        report = await task
        assert report.abandoned
        assert [r.failure for r in report.results] == [RenderFailure.ABANDONED] * 4
        assert not generator.is_running

    def test_abandon_when_idle_is_noop(self):
        generator = BannerGenerator(BannerRenderer(), MagicMock())
        generator.abandon()
        assert not generator.is_abandoned

    @pytest.mark.asyncio
    async def test_edits_during_batch_ignored(self, resolver, logo_layout, base_png, logo_uri):
        """生成期间删除 Logo 元素不影响本批."""
        generator = BannerGenerator(BannerRenderer(), resolver, concurrent_limit=1)
        shops = [Recipient(id="1", logo=logo_uri), Recipient(id="2")]

        def on_result(index, result):
            if index == 0:
                logo_layout.remove(logo_layout.elements[0].id)

        report = await generator.generate(logo_layout, base_png, shops, on_result=on_result)

        assert len(logo_layout) == 0
        assert report.results[0].success
        assert report.results[1].failure == RenderFailure.MISSING_LOGO

    @pytest.mark.asyncio
    async def test_new_batch_sees_edits(self, generator, logo_layout, base_png):
        """下一批使用新的布局."""
        shops = [Recipient(id="1")]
        first = await generator.generate(logo_layout, base_png, shops)
        logo_layout.clear()
        second = await generator.generate(logo_layout, base_png, shops)
        assert not first.results[0].success
        assert second.results[0].success
