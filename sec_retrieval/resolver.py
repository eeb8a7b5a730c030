"""Company name / ticker resolution against the SEC ticker catalog."""

import logging

from sec_retrieval.edgar import EdgarAPI
from sec_retrieval.errors import NotFoundError
from sec_retrieval.models import CompanyInfo

logger = logging.getLogger(__name__)


class CompanyResolver:
    """Maps a ticker symbol or partial company name to CIKs."""

    def __init__(self, api: EdgarAPI | None = None, catalog: dict[str, dict] | None = None) -> None:
        """
        Initialize with an API client, a preloaded catalog, or both.

        Args:
            api: Client used to download the catalog on every call
            catalog: Catalog mapping arbitrary keys to {cik_str, ticker, title};
                when given, no download happens
        """
        if api is None and catalog is None:
            raise ValueError("Either an api client or a catalog is required")
        self._api = api
        self._catalog = catalog

    async def _load_catalog(self) -> dict[str, dict]:
        if self._catalog is not None:
            return self._catalog
        return await self._api.get_company_tickers()

    async def resolve(self, identifier: str) -> list[CompanyInfo]:
        """
        Resolve an identifier to matching companies.

        An exact (case-insensitive) ticker match wins outright and yields a
        single company. Otherwise every company whose title contains the
        identifier is returned, in catalog order.

        Args:
            identifier: Ticker symbol or part of the company's legal name

        Returns:
            One or more matching companies

        Raises:
            ValueError: If the identifier is empty
            NotFoundError: If nothing matches
        """
        if not identifier or not identifier.strip():
            raise ValueError("Identifier cannot be empty")

        needle = identifier.strip().lower()
        companies = await self._load_catalog()

        for entry in companies.values():
            if str(entry["ticker"]).lower() == needle:
                return [_to_company(entry)]

        results = [
            _to_company(entry)
            for entry in companies.values()
            if needle in str(entry["title"]).lower()
        ]

        if not results:
            raise NotFoundError(f"CIK not found for identifier: {identifier}")

        logger.info("Identifier %r matched %d companies by title", identifier, len(results))
        return results


def _to_company(entry: dict) -> CompanyInfo:
    return CompanyInfo(
        cik=str(entry["cik_str"]),
        ticker=entry["ticker"],
        title=entry["title"],
    )
