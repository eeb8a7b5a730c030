"""Filing document download and conversion."""

import asyncio
import logging

from sec_retrieval.converter import FilingMarkdownConverter, html_to_text
from sec_retrieval.edgar import EdgarAPI
from sec_retrieval.models import FETCH_ERROR_SENTINEL, Filing, FilingRef

logger = logging.getLogger(__name__)


class DocumentFetcher:
    """Downloads filing documents and converts them to structured text."""

    def __init__(self, api: EdgarAPI, concurrency: int = 1) -> None:
        self._api = api
        self._concurrency = concurrency
        self._converter = FilingMarkdownConverter()

    async def fetch_content(self, url: str) -> str:
        """
        Fetch and convert one document.

        Never raises: any download or parse failure is logged and turned into
        FETCH_ERROR_SENTINEL so that one bad document cannot abort a batch.
        """
        try:
            markup = await self._api.get_document(url)
            return html_to_text(markup, self._converter)
        except Exception as e:
            logger.error("Error fetching filing content from %s: %s", url, e)
            return FETCH_ERROR_SENTINEL

    async def fetch_filing(self, ref: FilingRef) -> Filing:
        full_text = await self.fetch_content(ref.url)
        return Filing(**ref.model_dump(), full_text=full_text)

    async def fetch_all(self, refs: list[FilingRef]) -> list[Filing]:
        """
        Fetch content for every located filing.

        Fetches run one at a time unless a concurrency above 1 was configured;
        either way the result order matches ``refs``.
        """
        if self._concurrency <= 1:
            return [await self.fetch_filing(ref) for ref in refs]

        semaphore = asyncio.Semaphore(self._concurrency)

        async def bounded(ref: FilingRef) -> Filing:
            async with semaphore:
                return await self.fetch_filing(ref)

        return list(await asyncio.gather(*(bounded(ref) for ref in refs)))
