"""Report persistence interface used by the orchestrator."""

import uuid
from typing import Protocol

from pydantic import BaseModel

from sec_retrieval.models import CompanyInfo, Filing


class StoredReport(BaseModel):
    """A filing saved on behalf of a user."""

    report_id: str
    user_id: str
    conversation_id: str
    company: CompanyInfo
    filing: Filing
    summary: str | None = None


class ReportStore(Protocol):
    """Storage the orchestrator needs; backed by a database in production."""

    def has_report(self, user_id: str, accession_number: str) -> bool: ...

    def save_report(
        self, user_id: str, conversation_id: str, company: CompanyInfo, filing: Filing
    ) -> str: ...

    def conversation_fetch_count(self, conversation_id: str) -> int: ...

    def add_conversation_fetches(self, conversation_id: str, count: int) -> None: ...

    def reports_needing_summary(self, user_id: str) -> list[StoredReport]: ...

    def update_summary(self, report_id: str, summary: str) -> None: ...


class InMemoryReportStore:
    """Dictionary-backed ReportStore."""

    def __init__(self) -> None:
        self.reports: dict[str, StoredReport] = {}
        self.fetch_counts: dict[str, int] = {}

    def has_report(self, user_id: str, accession_number: str) -> bool:
        return any(
            r.user_id == user_id and r.filing.accession_number == accession_number
            for r in self.reports.values()
        )

    def save_report(
        self, user_id: str, conversation_id: str, company: CompanyInfo, filing: Filing
    ) -> str:
        report_id = str(uuid.uuid4())
        self.reports[report_id] = StoredReport(
            report_id=report_id,
            user_id=user_id,
            conversation_id=conversation_id,
            company=company,
            filing=filing,
        )
        return report_id

    def conversation_fetch_count(self, conversation_id: str) -> int:
        return self.fetch_counts.get(conversation_id, 0)

    def add_conversation_fetches(self, conversation_id: str, count: int) -> None:
        self.fetch_counts[conversation_id] = self.conversation_fetch_count(conversation_id) + count

    def reports_needing_summary(self, user_id: str) -> list[StoredReport]:
        return [
            r for r in self.reports.values()
            if r.user_id == user_id and r.summary is None and r.filing.content_available
        ]

    def update_summary(self, report_id: str, summary: str) -> None:
        self.reports[report_id].summary = summary
