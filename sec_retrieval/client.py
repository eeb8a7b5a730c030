"""Public entry points for company resolution and filing retrieval."""

from datetime import date

import httpx

from sec_retrieval.config import SECSettings
from sec_retrieval.edgar import EdgarAPI
from sec_retrieval.fetcher import DocumentFetcher
from sec_retrieval.locators import DateRangeLocator, RecentFilingsLocator
from sec_retrieval.models import CompanyInfo, Filing
from sec_retrieval.resolver import CompanyResolver


class SECClient:
    """Client for resolving companies and retrieving their filings as structured text."""

    def __init__(
        self,
        settings: SECSettings | None = None,
        contact: str | None = None,
        http_client: httpx.AsyncClient | None = None,
        catalog: dict[str, dict] | None = None,
    ) -> None:
        """
        Wire up the resolver, fetcher and locators around one EDGAR client.

        Args:
            settings: Retrieval settings (default: read from the environment)
            contact: Contact of the caller, used in the User-Agent header
            http_client: Pre-built httpx client, e.g. one with a mock transport
            catalog: Preloaded company catalog; skips the catalog download
        """
        self.settings = settings or SECSettings()
        self.api = EdgarAPI(self.settings, contact=contact, client=http_client)
        self.resolver = CompanyResolver(self.api, catalog=catalog)
        self.fetcher = DocumentFetcher(self.api, concurrency=self.settings.fetch_concurrency)
        self.recent = RecentFilingsLocator(
            self.api, self.fetcher, report_date_fallback=self.settings.report_date_fallback
        )
        self.date_range = DateRangeLocator(
            self.api,
            self.fetcher,
            report_date_fallback=self.settings.report_date_fallback,
            include_history=self.settings.include_submission_history,
        )

    async def __aenter__(self) -> "SECClient":
        return self

    async def __aexit__(self, *exc_info) -> None:
        await self.aclose()

    async def aclose(self) -> None:
        await self.api.aclose()

    async def resolve_company(self, identifier: str) -> list[CompanyInfo]:
        """
        Find companies by ticker or partial name.

        Raises:
            ValueError: If the identifier is empty
            NotFoundError: If no company matches
        """
        return await self.resolver.resolve(identifier)

    async def fetch_recent_filings(self, cik: str, form_type: str, limit: int = 1) -> list[Filing]:
        """
        Get the ``limit`` most recent filings of a form type, newest first.

        Args:
            cik: Company CIK (padded or not)
            form_type: Exact form code, e.g. "10-K"
            limit: Maximum number of filings to return

        Returns:
            Filings with their converted text
        """
        return await self.recent.locate(cik, form_type, limit)

    async def fetch_filings_in_range(
        self, cik: str, form_type: str, start_date: date, end_date: date
    ) -> list[Filing]:
        """Get every filing of a form type filed within [start_date, end_date]."""
        return await self.date_range.locate(cik, form_type, start_date, end_date)

    async def fetch_content(self, url: str) -> str:
        """Fetch one document as structured text (the error sentinel on failure)."""
        return await self.fetcher.fetch_content(url)
