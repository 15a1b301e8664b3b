# ABOUTME: Tests for the HoyoLab wiki content client
# ABOUTME: Uses pytest-httpx to check request shape, envelope validation and error conversion

import httpx
import pytest
import pytest_asyncio

from wiki_harvest.core.errors import ApiError, ErrorKind
from wiki_harvest.core.models import Locale
from wiki_harvest.extraction.wiki.hoyolab import DEFAULT_BASE_URL, HoyoLabContentClient


@pytest_asyncio.fixture
async def client():
    async with HoyoLabContentClient() as content_client:
        yield content_client


class TestFetch:
    """Test successful page fetches."""

    @pytest.mark.asyncio
    async def test_returns_page(self, client, httpx_mock, page_factory, envelope_factory):
        httpx_mock.add_response(json=envelope_factory(page_factory(page_id="28")))

        page = await client.fetch(28, Locale.JA_JP)

        assert page["id"] == "28"
        assert page["name"] == "フォン・ライカン"

    @pytest.mark.asyncio
    async def test_request_shape(self, client, httpx_mock, page_factory, envelope_factory):
        httpx_mock.add_response(json=envelope_factory(page_factory(page_id="28")))

        await client.fetch(28, Locale.EN_US)

        request = httpx_mock.get_request()
        assert str(request.url).startswith(DEFAULT_BASE_URL)
        assert request.url.params["entry_page_id"] == "28"
        assert request.url.params["lang"] == "en-us"
        assert request.headers["x-rpc-wiki_app"] == "zzz"
        assert request.headers["Accept"] == "application/json"


class TestErrors:
    """Test conversion of failures into ApiError."""

    @pytest.mark.asyncio
    async def test_http_error_status(self, client, httpx_mock):
        httpx_mock.add_response(status_code=503)

        with pytest.raises(ApiError) as exc_info:
            await client.fetch(28, Locale.JA_JP)

        assert "503" in str(exc_info.value)
        assert exc_info.value.kind == ErrorKind.API
        assert exc_info.value.recoverable

    @pytest.mark.asyncio
    async def test_transport_error(self, client, httpx_mock):
        httpx_mock.add_exception(httpx.ConnectTimeout("timed out"))

        with pytest.raises(ApiError) as exc_info:
            await client.fetch(28, Locale.JA_JP)

        assert isinstance(exc_info.value.cause, httpx.ConnectTimeout)

    @pytest.mark.asyncio
    async def test_invalid_json(self, client, httpx_mock):
        httpx_mock.add_response(text="<html>maintenance</html>")

        with pytest.raises(ApiError, match="not valid JSON"):
            await client.fetch(28, Locale.JA_JP)

    @pytest.mark.asyncio
    async def test_nonzero_retcode(self, client, httpx_mock, page_factory, envelope_factory):
        httpx_mock.add_response(json=envelope_factory(page_factory(page_id="28"), retcode=-1))

        with pytest.raises(ApiError, match="retcode -1"):
            await client.fetch(28, Locale.JA_JP)

    @pytest.mark.asyncio
    async def test_missing_page(self, client, httpx_mock):
        httpx_mock.add_response(json={"retcode": 0, "message": "OK", "data": {}})

        with pytest.raises(ApiError, match="no data.page"):
            await client.fetch(28, Locale.JA_JP)

    @pytest.mark.asyncio
    async def test_page_id_mismatch(self, client, httpx_mock, page_factory, envelope_factory):
        httpx_mock.add_response(json=envelope_factory(page_factory(page_id="29")))

        with pytest.raises(ApiError, match="mismatch"):
            await client.fetch(28, Locale.JA_JP)

    @pytest.mark.asyncio
    async def test_empty_modules(self, client, httpx_mock, page_factory, envelope_factory):
        page = page_factory(page_id="28")
        page["modules"] = []
        httpx_mock.add_response(json=envelope_factory(page))

        with pytest.raises(ApiError, match="no modules"):
            await client.fetch(28, Locale.JA_JP)


class TestInitialization:
    """Test client construction."""

    @pytest.mark.asyncio
    async def test_default_client_headers(self, client):
        assert client.http_client.headers["x-rpc-wiki_app"] == "zzz"

    @pytest.mark.asyncio
    async def test_custom_client_is_not_closed(self):
        custom_client = httpx.AsyncClient()

        async with HoyoLabContentClient(client=custom_client) as content_client:
            assert content_client.http_client is custom_client

        assert not custom_client.is_closed
        await custom_client.aclose()
