"""Best-effort background summarization of stored reports."""

import asyncio
import logging

import httpx

from sec_retrieval.store import ReportStore

logger = logging.getLogger(__name__)


class SummaryService:
    """Client for the external summarization service (POST {report_id, content} -> {summary})."""

    def __init__(self, url: str, client: httpx.AsyncClient | None = None, timeout: float = 30.0) -> None:
        self.url = url
        self._client = client
        self._timeout = timeout

    async def summarize(self, report_id: str, content: str) -> str | None:
        """Return the summary, or None if the service fails for any reason."""
        payload = {"report_id": report_id, "content": content}
        try:
            if self._client is not None:
                response = await self._client.post(self.url, json=payload, timeout=self._timeout)
            else:
                async with httpx.AsyncClient(timeout=self._timeout) as client:
                    response = await client.post(self.url, json=payload)
            response.raise_for_status()
            return response.json().get("summary")
        except (httpx.HTTPError, ValueError) as e:
            logger.warning("Summarization failed for report %s: %s", report_id, e)
            return None

    async def summarize_reports(self, store: ReportStore, user_id: str) -> int:
        """
        Summarize every report of a user that has no summary yet.

        Returns:
            Number of reports summarized
        """
        reports = store.reports_needing_summary(user_id)
        processed = 0
        for report in reports:
            summary = await self.summarize(report.report_id, report.filing.full_text)
            if summary:
                store.update_summary(report.report_id, summary)
                processed += 1

        logger.info("Processed %d/%d reports for user %s", processed, len(reports), user_id)
        return processed


class SummarizationTrigger:
    """Launches summarization as detached tasks; outcomes never reach the caller."""

    def __init__(self, service: SummaryService | None, store: ReportStore) -> None:
        self._service = service
        self._store = store
        self._tasks: set[asyncio.Task] = set()

    def schedule(self, user_id: str) -> asyncio.Task | None:
        if self._service is None:
            return None
        task = asyncio.create_task(self._service.summarize_reports(self._store, user_id))
        # Keep a reference until done so the task is not garbage collected
        self._tasks.add(task)
        task.add_done_callback(self._finished)
        return task

    def _finished(self, task: asyncio.Task) -> None:
        self._tasks.discard(task)
        if task.cancelled():
            return
        exc = task.exception()
        if exc is not None:
            logger.error("Background summarization failed: %s", exc)

    async def drain(self) -> None:
        """Wait for outstanding summarization tasks (used on shutdown and in tests)."""
        if self._tasks:
            await asyncio.gather(*self._tasks, return_exceptions=True)
