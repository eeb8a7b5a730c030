"""HTTP access to the SEC EDGAR endpoints."""

import asyncio
import logging
import time

import httpx

from sec_retrieval.config import SECSettings
from sec_retrieval.errors import FetchError, IndexUnavailableError
from sec_retrieval.models import SubmissionRow, parse_submission_rows

logger = logging.getLogger(__name__)


def normalize_cik(cik: str) -> str:
    """Strip leading zeros: "0000320193" -> "320193"."""
    return cik.strip().lstrip("0") or "0"


def pad_cik(cik: str) -> str:
    """Zero-pad a CIK to 10 digits as used by the submissions endpoint."""
    return normalize_cik(cik).zfill(10)


class RateLimiter:
    """Spaces out requests so a client stays under the SEC's request rate."""

    def __init__(self, max_requests_per_second: float) -> None:
        self.min_interval = 1.0 / max_requests_per_second
        self._next_slot = 0.0

    async def wait(self) -> None:
        now = time.monotonic()
        slot = max(now, self._next_slot)
        # Reserve the slot before sleeping so concurrent callers queue up
        self._next_slot = slot + self.min_interval
        delay = slot - now
        if delay > 0:
            await asyncio.sleep(delay)


class EdgarAPI:
    """Thin async client over the EDGAR catalog, submissions, index and archive endpoints."""

    def __init__(
        self,
        settings: SECSettings,
        contact: str | None = None,
        client: httpx.AsyncClient | None = None,
    ) -> None:
        """
        Args:
            settings: Hosts, timeout and identification settings
            contact: Contact string of the caller on whose behalf requests are made
            client: Pre-built client (e.g. with a mock transport); owned by the caller
        """
        self.settings = settings
        self.headers = {
            "User-Agent": settings.user_agent(contact),
            "Accept-Encoding": "gzip, deflate",
        }
        self._owns_client = client is None
        if client is None:
            client = httpx.AsyncClient(follow_redirects=True, timeout=settings.timeout_seconds)
        self._client = client
        self._limiter = RateLimiter(settings.max_requests_per_second)

    async def __aenter__(self) -> "EdgarAPI":
        return self

    async def __aexit__(self, *exc_info) -> None:
        await self.aclose()

    async def aclose(self) -> None:
        if self._owns_client:
            await self._client.aclose()

    async def _get(self, url: str) -> httpx.Response:
        await self._limiter.wait()
        response = await self._client.get(
            url, headers=self.headers, timeout=self.settings.timeout_seconds
        )
        response.raise_for_status()
        return response

    def archive_url(self, path: str) -> str:
        """Absolute URL of a path under the EDGAR archive tree."""
        return f"{self.settings.www_base_url}/Archives/{path.lstrip('/')}"

    def document_url(self, cik: str, accession_number: str, primary_document: str) -> str:
        # Format: https://www.sec.gov/Archives/edgar/data/{CIK}/{accession_no}/{filename}
        accession_no_dashes = accession_number.replace("-", "")
        return self.archive_url(
            f"edgar/data/{normalize_cik(cik)}/{accession_no_dashes}/{primary_document}"
        )

    async def get_company_tickers(self) -> dict[str, dict]:
        """Fetch the SEC company catalog: {key: {cik_str, ticker, title}}."""
        response = await self._get(f"{self.settings.www_base_url}/files/company_tickers.json")
        return response.json()

    async def get_submissions(self, cik: str) -> dict:
        """Fetch the full submissions record of a company."""
        url = f"{self.settings.data_base_url}/submissions/CIK{pad_cik(cik)}.json"
        try:
            response = await self._get(url)
        except httpx.HTTPError as e:
            logger.error("Error fetching submissions for CIK %s: %s", cik, e)
            raise
        return response.json()

    async def get_submission_page(self, name: str) -> dict:
        """Fetch one of the older submissions pages listed under ``filings.files``."""
        response = await self._get(f"{self.settings.data_base_url}/submissions/{name}")
        return response.json()

    async def get_submission_rows(self, cik: str) -> list[SubmissionRow]:
        """Fetch the recent submissions block of a company as rows, most recent first."""
        submissions = await self.get_submissions(cik)
        return parse_submission_rows(submissions.get("filings", {}).get("recent", {}))

    async def get_master_index(self, year: int, quarter: int) -> str:
        """
        Fetch a quarterly master index.

        Raises:
            IndexUnavailableError: If the index cannot be downloaded
        """
        url = self.archive_url(f"edgar/full-index/{year}/QTR{quarter}/master.idx")
        try:
            response = await self._get(url)
        except httpx.HTTPStatusError as e:
            raise IndexUnavailableError(
                f"Index {year}-QTR{quarter} unavailable: HTTP {e.response.status_code}"
            ) from e
        except httpx.RequestError as e:
            raise IndexUnavailableError(f"Index {year}-QTR{quarter} unavailable: {e}") from e
        return response.text

    async def get_document(self, url: str) -> str:
        """
        Fetch a filing document's markup.

        Raises:
            FetchError: If the download fails
        """
        try:
            response = await self._get(url)
        except httpx.HTTPStatusError as e:
            raise FetchError(f"Failed to download filing: HTTP {e.response.status_code}") from e
        except httpx.RequestError as e:
            raise FetchError(f"Failed to download filing: {e}") from e
        return response.text
