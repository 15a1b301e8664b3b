# ABOUTME: Protocol interfaces for the content source and the output sink
# ABOUTME: The pipeline depends only on these, so tests can substitute in-memory fakes

from typing import Protocol

from wiki_harvest.core.models import AgentRecord, Locale, RawPayload


class ContentClient(Protocol):
    """Fetches raw wiki page payloads by source reference."""

    async def fetch(self, source_ref: int | str, locale: Locale) -> RawPayload:
        """Fetch the raw payload for one page.

        Args:
            source_ref: Page reference taken from the entry
            locale: Content locale to request

        Returns:
            The decoded response document

        Raises:
            ApiError: If the page cannot be fetched or the response is unusable
        """
        ...


class OutputSink(Protocol):
    """Receives the records of a completed run."""

    async def write(self, records: list[AgentRecord]) -> None: ...
