"""Locating filings through the submissions feed and the quarterly master indexes."""

import logging
from datetime import date

import httpx
from pydantic import ValidationError

from sec_retrieval.edgar import EdgarAPI, normalize_cik
from sec_retrieval.errors import IndexUnavailableError
from sec_retrieval.fetcher import DocumentFetcher
from sec_retrieval.models import Filing, FilingRef, IndexEntry, SubmissionRow, parse_submission_rows

logger = logging.getLogger(__name__)

INDEX_HEADER_LINES = 11
INDEX_COLUMNS = "CIK|Company Name|Form Type|Date Filed|Filename"


def quarters_in_range(start: date, end: date) -> list[tuple[int, int]]:
    """
    List the calendar quarters touched by [start, end].

    Returns:
        (year, quarter) pairs in chronological order, quarters numbered 1-4
    """
    year, quarter = start.year, (start.month - 1) // 3 + 1
    end_year, end_quarter = end.year, (end.month - 1) // 3 + 1

    quarters = []
    while (year, quarter) <= (end_year, end_quarter):
        quarters.append((year, quarter))
        quarter += 1
        if quarter > 4:
            quarter = 1
            year += 1
    return quarters


def parse_master_index(text: str) -> list[IndexEntry]:
    """
    Parse a master.idx file.

    Raises:
        IndexUnavailableError: If the preamble does not look like a master index
    """
    lines = text.splitlines()
    if not any(line.strip() == INDEX_COLUMNS for line in lines[:INDEX_HEADER_LINES]):
        raise IndexUnavailableError("Unrecognized master index header")

    entries = []
    for line in lines[INDEX_HEADER_LINES:]:
        parts = line.split("|")
        if len(parts) < 5:
            continue
        try:
            entries.append(IndexEntry(
                cik=parts[0].strip(),
                company_name=parts[1].strip(),
                form=parts[2].strip(),
                date_filed=parts[3].strip(),
                filename=parts[4].strip(),
            ))
        except ValidationError:
            logger.debug("Skipping malformed index row: %r", line)
    return entries


class RecentFilingsLocator:
    """Finds the most recent filings of a form type in a company's submissions feed."""

    def __init__(self, api: EdgarAPI, fetcher: DocumentFetcher, report_date_fallback: bool = True) -> None:
        self._api = api
        self._fetcher = fetcher
        self._report_date_fallback = report_date_fallback

    async def find(self, cik: str, form_type: str, limit: int = 1) -> list[FilingRef]:
        """
        Scan the feed (most recent first) and stop once ``limit`` matches are found.

        Form types are compared exactly, so "10-K" does not match "10-K/A".
        """
        rows = await self._api.get_submission_rows(cik)

        refs = []
        for row in rows:
            if len(refs) >= limit:
                break
            if row.form != form_type:
                continue
            report_date = row.report_date
            if report_date is None and self._report_date_fallback:
                report_date = row.filing_date
            refs.append(FilingRef(
                accession_number=row.accession_number,
                filing_date=row.filing_date,
                report_date=report_date,
                form=row.form,
                primary_document=row.primary_document,
                url=self._api.document_url(cik, row.accession_number, row.primary_document),
            ))
        return refs

    async def locate(self, cik: str, form_type: str, limit: int = 1) -> list[Filing]:
        refs = await self.find(cik, form_type, limit)
        logger.info("Located %d recent %s filing(s) for CIK %s", len(refs), form_type, cik)
        return await self._fetcher.fetch_all(refs)


class ReportDateLookup:
    """
    Recovers report-period dates from a company's submissions, loaded at most once.

    The recent block is loaded on first use; older submission pages are only
    pulled when an accession number is missing from it.
    """

    def __init__(self, api: EdgarAPI, cik: str, include_history: bool = True) -> None:
        self._api = api
        self._cik = cik
        self._include_history = include_history
        self._rows: dict[str, SubmissionRow] | None = None
        self._history_pages: list[str] = []
        self._history_loaded = False

    async def _load_recent(self) -> None:
        self._rows = {}
        submissions = await self._api.get_submissions(self._cik)
        filings = submissions.get("filings", {})
        self._index(parse_submission_rows(filings.get("recent", {})))
        self._history_pages = [page["name"] for page in filings.get("files", []) if "name" in page]

    async def _load_history(self) -> None:
        self._history_loaded = True
        for name in self._history_pages:
            try:
                page = await self._api.get_submission_page(name)
            except (httpx.HTTPError, ValueError) as e:
                logger.warning("Could not fetch submissions page %s: %s", name, e)
                continue
            self._index(parse_submission_rows(page))

    def _index(self, rows: list[SubmissionRow]) -> None:
        for row in rows:
            self._rows[row.accession_number.replace("-", "")] = row

    async def report_date(self, accession_number: str) -> date | None:
        """Report date recorded for a filing, or None if it cannot be found."""
        key = accession_number.replace("-", "")
        if self._rows is None:
            await self._load_recent()
        row = self._rows.get(key)
        if row is None and self._include_history and not self._history_loaded:
            await self._load_history()
            row = self._rows.get(key)
        return row.report_date if row else None


class DateRangeLocator:
    """Finds filings filed within a date range by scanning quarterly master indexes."""

    def __init__(
        self,
        api: EdgarAPI,
        fetcher: DocumentFetcher,
        report_date_fallback: bool = True,
        include_history: bool = True,
    ) -> None:
        """
        Args:
            api: EDGAR client
            fetcher: Document fetcher used by locate()
            report_date_fallback: Use the filing date when the report date
                cannot be recovered; otherwise leave it empty
            include_history: Search older submission pages for report dates
        """
        self._api = api
        self._fetcher = fetcher
        self._report_date_fallback = report_date_fallback
        self._include_history = include_history

    async def _quarter_entries(self, year: int, quarter: int) -> list[IndexEntry]:
        text = await self._api.get_master_index(year, quarter)
        return parse_master_index(text)

    async def find(self, cik: str, form_type: str, start_date: date, end_date: date) -> list[FilingRef]:
        """
        Collect every filing of ``form_type`` by ``cik`` filed in [start_date, end_date].

        Quarters whose index is missing or malformed are skipped with a warning.
        """
        cik = normalize_cik(cik)
        lookup = ReportDateLookup(self._api, cik, self._include_history)

        refs = []
        for year, quarter in quarters_in_range(start_date, end_date):
            try:
                entries = await self._quarter_entries(year, quarter)
            except IndexUnavailableError as e:
                logger.warning("Could not fetch or process index for %s-QTR%s: %s", year, quarter, e)
                continue

            for entry in entries:
                if entry.cik != cik or entry.form != form_type:
                    continue
                if not start_date <= entry.date_filed <= end_date:
                    continue
                refs.append(await self._to_ref(entry, lookup))

        return refs

    async def _to_ref(self, entry: IndexEntry, lookup: ReportDateLookup) -> FilingRef:
        # edgar/data/320193/0000320193-23-000106.txt -> 0000320193-23-000106
        document = entry.filename.rsplit("/", 1)[-1]
        accession_number = document.removesuffix(".txt")

        try:
            report_date = await lookup.report_date(accession_number)
        except (httpx.HTTPError, ValueError) as e:
            logger.warning("Could not fetch submissions for CIK %s: %s", entry.cik, e)
            report_date = None

        if report_date is None:
            logger.warning("Could not recover report date for %s", accession_number)
            if self._report_date_fallback:
                report_date = entry.date_filed

        return FilingRef(
            accession_number=accession_number,
            filing_date=entry.date_filed,
            report_date=report_date,
            form=entry.form,
            primary_document=document,
            url=self._api.archive_url(entry.filename),
        )

    async def locate(self, cik: str, form_type: str, start_date: date, end_date: date) -> list[Filing]:
        refs = await self.find(cik, form_type, start_date, end_date)
        logger.info(
            "Located %d %s filing(s) for CIK %s between %s and %s",
            len(refs), form_type, cik, start_date, end_date,
        )
        return await self._fetcher.fetch_all(refs)
