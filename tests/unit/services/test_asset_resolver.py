"""素材解析服务单元测试."""

import base64

import httpx
import pytest

from shopbanner.services.asset_resolver import AssetResolver
from shopbanner.utils.exceptions import AssetDecodeError, AssetNotFoundError

PNG_BYTES = b"\x89PNG\r\n\x1a\n-fake-"


def make_resolver(handler, **kwargs) -> AssetResolver:
    """使用 MockTransport 的解析器."""
    client = httpx.AsyncClient(transport=httpx.MockTransport(handler))
    return AssetResolver(client=client, **kwargs)


def ok_handler(request: httpx.Request) -> httpx.Response:
    if request.url.path == "/logo.png":
        return httpx.Response(200, content=PNG_BYTES)
    return httpx.Response(404)


class TestResolveDataUri:
    """Data URI 测试."""

    @pytest.mark.asyncio
    async def test_base64(self):
        async with make_resolver(ok_handler) as resolver:
            uri = "data:image/png;base64," + base64.b64encode(PNG_BYTES).decode()
            assert await resolver.resolve(uri) == PNG_BYTES

    @pytest.mark.asyncio
    async def test_percent_encoded(self):
        async with make_resolver(ok_handler) as resolver:
            assert await resolver.resolve("data:text/plain,a%20b") == b"a b"

    @pytest.mark.asyncio
    async def test_invalid_base64(self):
        async with make_resolver(ok_handler) as resolver:
            with pytest.raises(AssetDecodeError):
                await resolver.resolve("data:image/png;base64,@@@")


class TestResolveFile:
    """本地文件测试."""

    @pytest.mark.asyncio
    async def test_reads_file(self, tmp_path):
        path = tmp_path / "logo.png"
        path.write_bytes(PNG_BYTES)
        async with make_resolver(ok_handler) as resolver:
            assert await resolver.resolve(str(path)) == PNG_BYTES

    @pytest.mark.asyncio
    async def test_missing_file(self, tmp_path):
        async with make_resolver(ok_handler) as resolver:
            with pytest.raises(AssetNotFoundError):
                await resolver.resolve(str(tmp_path / "nope.png"))

    @pytest.mark.asyncio
    @pytest.mark.parametrize("ref", ["", "   "])
    async def test_empty_ref(self, ref):
        async with make_resolver(ok_handler) as resolver:
            with pytest.raises(AssetNotFoundError):
                await resolver.resolve(ref)


class TestResolveHttp:
    """HTTP 下载测试."""

    @pytest.mark.asyncio
    async def test_download(self):
        async with make_resolver(ok_handler) as resolver:
            assert await resolver.resolve("https://cdn.example.com/logo.png") == PNG_BYTES

    @pytest.mark.asyncio
    async def test_not_found(self):
        async with make_resolver(ok_handler) as resolver:
            with pytest.raises(AssetNotFoundError, match="HTTP 404"):
                await resolver.resolve("https://cdn.example.com/other.png")

    @pytest.mark.asyncio
    async def test_timeout(self):
        def handler(request):
            raise httpx.ConnectTimeout("timed out", request=request)

        async with make_resolver(handler) as resolver:
            with pytest.raises(AssetNotFoundError, match="下载超时"):
                await resolver.resolve("https://cdn.example.com/logo.png")

    @pytest.mark.asyncio
    async def test_connect_error(self):
        def handler(request):
            raise httpx.ConnectError("refused", request=request)

        async with make_resolver(handler) as resolver:
            with pytest.raises(AssetNotFoundError):
                await resolver.resolve("http://cdn.example.com/logo.png")

    @pytest.mark.asyncio
    async def test_too_large(self):
        async with make_resolver(ok_handler, max_bytes=4) as resolver:
            with pytest.raises(AssetNotFoundError, match="素材过大"):
                await resolver.resolve("https://cdn.example.com/logo.png")


class TestLifecycle:
    """生命周期测试."""

    @pytest.mark.asyncio
    async def test_close(self):
        resolver = make_resolver(ok_handler)
        assert not resolver.is_closed
        await resolver.aclose()
        assert resolver.is_closed
        assert resolver.http_client.is_closed
        # 重复关闭无副作用
        await resolver.aclose()

    @pytest.mark.asyncio
    async def test_download_after_close(self):
        resolver = make_resolver(ok_handler)
        await resolver.aclose()
        with pytest.raises(AssetNotFoundError):
            await resolver.resolve("https://cdn.example.com/logo.png")
