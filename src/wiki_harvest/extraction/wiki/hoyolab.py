# ABOUTME: HoyoLab wiki content client fetching agent entry pages over HTTP
# ABOUTME: Validates the response envelope and converts every failure into ApiError

from typing import Any

import httpx

from wiki_harvest.core.errors import ApiError
from wiki_harvest.core.models import Locale, RawPayload
from wiki_harvest.utils.logging import get_logger, log_api_call

DEFAULT_BASE_URL = "https://sg-wiki-api-static.hoyolab.com/hoyowiki/zzz/wapi/entry_page"
DEFAULT_HEADERS = {
    "User-Agent": "wiki-harvest/0.1",
    "Accept": "application/json",
    "x-rpc-wiki_app": "zzz",
}


class HoyoLabContentClient:
    """Fetches entry pages from the HoyoLab wiki API."""

    def __init__(
        self,
        base_url: str = DEFAULT_BASE_URL,
        timeout: float = 10.0,
        client: httpx.AsyncClient | None = None,
    ):
        self.base_url = base_url
        self.http_client = client or httpx.AsyncClient(  # Allow for dependency injection
            headers=DEFAULT_HEADERS,
            timeout=timeout,
        )
        self._owns_client = client is None
        self.logger = get_logger(__name__)

    async def __aenter__(self) -> "HoyoLabContentClient":
        return self

    async def __aexit__(self, exc_type, exc_val, exc_tb) -> None:
        await self.aclose()

    async def aclose(self) -> None:
        if self._owns_client:
            await self.http_client.aclose()

    @log_api_call("hoyolab_wiki")
    async def fetch(self, source_ref: int | str, locale: Locale) -> RawPayload:
        """Fetch one entry page.

        Args:
            source_ref: The wiki entry_page_id
            locale: Content language

        Returns:
            The validated `data.page` object of the response

        Raises:
            ApiError: On transport errors, non-2xx status, or an unusable response body
        """
        locale = Locale(locale)
        params = {"entry_page_id": str(source_ref), "lang": locale.value}

        self.logger.debug("Fetching entry page", source_ref=source_ref, locale=locale.value)

        try:
            response = await self.http_client.get(self.base_url, params=params)
            response.raise_for_status()
        except httpx.HTTPStatusError as e:
            raise ApiError(
                f"HTTP {e.response.status_code} fetching page {source_ref} ({locale.value})", cause=e
            ) from e
        except httpx.HTTPError as e:
            raise ApiError(f"Request for page {source_ref} ({locale.value}) failed: {e}", cause=e) from e

        try:
            document = response.json()
        except ValueError as e:
            raise ApiError(f"Page {source_ref} response is not valid JSON", cause=e) from e

        self._check_envelope(document, source_ref)
        page = document["data"]["page"]

        self.logger.debug("Fetched entry page", source_ref=source_ref, locale=locale.value, name=page["name"])
        return page

    @staticmethod
    def _check_envelope(document: Any, source_ref: int | str) -> None:
        if not isinstance(document, dict):
            raise ApiError(f"Page {source_ref} response is not a JSON object")

        retcode = document.get("retcode")
        if retcode != 0:
            raise ApiError(f"Page {source_ref} returned retcode {retcode}: {document.get('message', '')}")

        data = document.get("data")
        page = data.get("page") if isinstance(data, dict) else None
        if not isinstance(page, dict):
            raise ApiError(f"Page {source_ref} response has no data.page")

        if str(page.get("id")) != str(source_ref):
            raise ApiError(f"Page id mismatch: requested {source_ref}, got {page.get('id')}")

        if not isinstance(page.get("name"), str):
            raise ApiError(f"Page {source_ref} has no name")

        modules = page.get("modules")
        if not isinstance(modules, list) or not modules:
            raise ApiError(f"Page {source_ref} has no modules")
