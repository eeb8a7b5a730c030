"""Retrieval policy: guardrails, resolution, location, de-duplication and storage."""

import asyncio
import json
import logging
from datetime import timedelta

import httpx

from sec_retrieval.client import SECClient
from sec_retrieval.config import SECSettings
from sec_retrieval.errors import GuardrailViolation, NotFoundError, RetrievalTimeoutError
from sec_retrieval.models import (
    CompanyInfo,
    Filing,
    FilingRef,
    RetrievalRequest,
    RetrievalResult,
    RetrievalState,
)
from sec_retrieval.store import ReportStore
from sec_retrieval.summarizer import SummarizationTrigger, SummaryService

logger = logging.getLogger(__name__)


def check_guardrails(request: RetrievalRequest, current_count: int, settings: SECSettings) -> None:
    """
    Enforce the per-request, date-span and per-conversation caps, in that order.

    Raises:
        GuardrailViolation: With a message telling the caller how to retry
    """
    limit = request.limit
    max_limit = settings.max_filings_per_request
    if limit > max_limit:
        raise GuardrailViolation(
            "request_limit",
            f"LIMIT EXCEEDED: Requested {limit} reports, but maximum is {max_limit} per request.\n\n"
            f"SOLUTION: Please retry with limit: {max_limit} to fetch the first {max_limit} reports. "
            "After successful retrieval, you can make additional requests for remaining reports if needed.",
            [{"limit": max_limit}],
        )

    if request.is_date_range:
        start, end = request.start_date, request.end_date
        years = (end - start).days / 365
        if years > settings.max_date_span_years:
            midpoint = start + (end - start) / 2
            first_end = midpoint - timedelta(days=1)
            suggestions = [
                {"start_date": start.isoformat(), "end_date": first_end.isoformat()},
                {"start_date": midpoint.isoformat(), "end_date": end.isoformat()},
            ]
            raise GuardrailViolation(
                "date_span",
                f"DATE RANGE EXCEEDED: Requested range spans {years:.1f} years, "
                f"but maximum is {settings.max_date_span_years:g} years per request.\n\n"
                "SOLUTION: Break into smaller periods. Try first with:\n"
                f"- startDate: '{start.isoformat()}'\n"
                f"- endDate: '{first_end.isoformat()}'\n\n"
                "Then make a second request for:\n"
                f"- startDate: '{midpoint.isoformat()}'\n"
                f"- endDate: '{end.isoformat()}'\n\n"
                "IMPORTANT: Ask the user for confirmation before making the second request.",
                suggestions,
            )

    max_total = settings.max_filings_per_conversation
    if current_count + limit > max_total:
        remaining = max_total - current_count
        if remaining > 0:
            solution = (
                f"You can still fetch up to {remaining} more reports in this conversation. "
                f"Retry with limit: {min(remaining, limit)}."
            )
        else:
            solution = "This conversation has reached its limit."
        raise GuardrailViolation(
            "conversation_limit",
            f"CONVERSATION LIMIT: This conversation has already fetched {current_count} reports. "
            f"Maximum is {max_total} per conversation.\n\n"
            f"IMMEDIATE SOLUTION: {solution}\n\n"
            "If you need additional reports, start a new conversation.",
            [{"limit": min(remaining, limit)}] if remaining > 0 else [],
        )


class RetrievalOrchestrator:
    """Satisfies one retrieval request end to end on behalf of a user and conversation."""

    def __init__(
        self,
        client: SECClient,
        store: ReportStore,
        summarizer: SummarizationTrigger | None = None,
    ) -> None:
        self._client = client
        self._store = store
        self._settings = client.settings
        if summarizer is None and self._settings.summary_service_url:
            summarizer = SummarizationTrigger(SummaryService(self._settings.summary_service_url), store)
        self._summarizer = summarizer

    def _reject(self, result: RetrievalResult, message: str) -> RetrievalResult:
        result.message = message
        result.advance(RetrievalState.REJECTED)
        return result

    async def retrieve(self, request: RetrievalRequest, user_id: str, conversation_id: str) -> RetrievalResult:
        """
        Run guardrails, resolve the company, locate, fetch and store new filings.

        Rejections (guardrails, unknown company, unreadable EDGAR responses,
        exhausted time budget) come back as a REJECTED result carrying an
        explanatory message; nothing is stored.
        """
        result = RetrievalResult()

        current_count = self._store.conversation_fetch_count(conversation_id)
        try:
            check_guardrails(request, current_count, self._settings)
        except GuardrailViolation as e:
            logger.info("Rejected retrieval request (%s)", e.kind)
            return self._reject(result, e.message)
        result.advance(RetrievalState.GUARDRAIL_CHECKED)

        result.advance(RetrievalState.RESOLVING)
        try:
            companies = await self._client.resolve_company(request.company_identifier)
        except (NotFoundError, ValueError) as e:
            return self._reject(result, str(e))
        except httpx.HTTPError as e:
            return self._reject(result, f"Company catalog unavailable: {e}")

        if len(companies) > 1:
            result.candidates = companies
            result.message = (
                f"Multiple companies match \"{request.company_identifier}\": "
                + "; ".join(f"{c.title} ({c.ticker}, CIK {c.cik})" for c in companies)
                + ". Ask the user which one they mean."
            )
            result.advance(RetrievalState.AMBIGUOUS)
            return result

        company = companies[0]
        result.company = company

        result.advance(RetrievalState.LOCATING)
        try:
            filings = await self._within_budget(
                self._locate_and_fetch(request, company, user_id, conversation_id, result)
            )
        except RetrievalTimeoutError as e:
            return self._reject(
                result, f"Retrieval for {company.title} {e}. No filings were stored."
            )
        except GuardrailViolation as e:
            logger.info("Rejected retrieval request after location (%s)", e.kind)
            return self._reject(result, e.message)
        except (httpx.HTTPError, ValueError) as e:
            # ValueError covers bodies that are not valid JSON, e.g. a throttling page
            return self._reject(result, f"Could not load filings for {company.title}: {e}")

        if not filings:
            if result.skipped_accessions:
                result.message = (
                    f"Filing(s) {', '.join(result.skipped_accessions)} already exist in your database."
                )
            elif request.is_date_range:
                result.message = (
                    f"No {request.form_type} filings found for {company.title} between "
                    f"{request.start_date.isoformat()} and {request.end_date.isoformat()}."
                )
            else:
                result.message = f"No recent {request.form_type} filings found for {company.title}."
            result.advance(RetrievalState.COMPLETED)
            return result

        for filing in filings:
            result.report_ids.append(
                self._store.save_report(user_id, conversation_id, company, filing)
            )
        self._store.add_conversation_fetches(conversation_id, len(filings))
        result.filings = filings
        result.message = self._success_message(company, filings, result)

        if self._summarizer is not None:
            self._summarizer.schedule(user_id)

        if all(f.content_available for f in filings):
            result.advance(RetrievalState.COMPLETED)
        else:
            result.advance(RetrievalState.PARTIAL_FAILURE)
        return result

    async def _within_budget(self, coro):
        budget = self._settings.request_budget_seconds
        try:
            return await asyncio.wait_for(coro, timeout=budget)
        except asyncio.TimeoutError as exc:
            raise RetrievalTimeoutError(
                f"did not finish within {budget:g} seconds"
            ) from exc

    async def _locate_and_fetch(
        self,
        request: RetrievalRequest,
        company: CompanyInfo,
        user_id: str,
        conversation_id: str,
        result: RetrievalResult,
    ) -> list[Filing]:
        if request.is_date_range:
            refs = await self._client.date_range.find(
                company.cik, request.form_type, request.start_date, request.end_date
            )
        else:
            refs = await self._client.recent.find(company.cik, request.form_type, request.limit)

        new_refs: list[FilingRef] = []
        for ref in refs:
            if self._store.has_report(user_id, ref.accession_number):
                result.skipped_accessions.append(ref.accession_number)
            else:
                new_refs.append(ref)

        # Date-range requests locate an unknown number of filings
        current_count = self._store.conversation_fetch_count(conversation_id)
        max_total = self._settings.max_filings_per_conversation
        if current_count + len(new_refs) > max_total:
            remaining = max(max_total - current_count, 0)
            raise GuardrailViolation(
                "conversation_limit",
                f"CONVERSATION LIMIT: Found {len(new_refs)} new {request.form_type} filings for "
                f"{company.title}, but this conversation can only fetch {remaining} more "
                f"(maximum is {max_total} per conversation). No filings were fetched.\n\n"
                "SOLUTION: Narrow the date range and retry, or start a new conversation.",
                [{"limit": remaining}] if remaining > 0 else [],
            )

        result.advance(RetrievalState.FETCHING)
        return await self._client.fetcher.fetch_all(new_refs)

    def _success_message(self, company: CompanyInfo, filings: list[Filing], result: RetrievalResult) -> str:
        summaries = [
            {
                "company": company.title,
                "ticker": company.ticker,
                "cik": company.cik,
                "formType": f.form,
                "filingDate": f.filing_date.isoformat(),
                "reportDate": f.report_date.isoformat() if f.report_date else None,
                "accessionNumber": f.accession_number,
                "filingUrl": f.url,
                "contentAvailable": f.content_available,
                "reportId": report_id,
            }
            for f, report_id in zip(filings, result.report_ids)
        ]
        message = f"Successfully retrieved and stored {len(filings)} filing(s): {json.dumps(summaries, indent=2)}"
        if result.skipped_accessions:
            message += f"\nAlready stored, skipped: {', '.join(result.skipped_accessions)}"
        return message
