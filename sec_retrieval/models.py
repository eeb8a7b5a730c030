"""Data models for SEC filing retrieval."""

from datetime import date
from enum import Enum

from pydantic import BaseModel, ConfigDict, Field, ValidationError, field_validator, model_validator

FETCH_ERROR_SENTINEL = "Error: Unable to fetch filing content"


class CompanyInfo(BaseModel):
    """A company as listed in the SEC ticker catalog."""

    model_config = ConfigDict(frozen=True)

    cik: str
    ticker: str
    title: str


class SubmissionRow(BaseModel):
    """One row of a company's submissions feed."""

    model_config = ConfigDict(frozen=True)

    accession_number: str
    filing_date: date
    report_date: date | None = None
    form: str
    primary_document: str

    @field_validator("report_date", mode="before")
    @classmethod
    def _blank_report_date(cls, value):
        if value == "":
            return None
        return value


class IndexEntry(BaseModel):
    """One data row of a quarterly master index."""

    model_config = ConfigDict(frozen=True)

    cik: str
    company_name: str
    form: str
    date_filed: date
    filename: str


class FilingRef(BaseModel):
    """A located filing whose document has not been fetched yet."""

    model_config = ConfigDict(frozen=True)

    accession_number: str
    filing_date: date
    report_date: date | None
    form: str
    primary_document: str
    url: str


class Filing(FilingRef):
    """A located filing together with its converted document text."""

    full_text: str

    @property
    def content_available(self) -> bool:
        return self.full_text != FETCH_ERROR_SENTINEL


class RetrievalRequest(BaseModel):
    """Parameters of one retrieval call issued by the tool-calling layer."""

    company_identifier: str
    form_type: str
    start_date: date | None = None
    end_date: date | None = None
    limit: int = Field(default=1, ge=1)

    @model_validator(mode="after")
    def _check_range(self) -> "RetrievalRequest":
        if self.start_date and self.end_date and self.end_date < self.start_date:
            raise ValueError("end_date must not be before start_date")
        return self

    @property
    def is_date_range(self) -> bool:
        return self.start_date is not None and self.end_date is not None


class RetrievalState(str, Enum):
    """States a retrieval request passes through."""

    RECEIVED = "received"
    GUARDRAIL_CHECKED = "guardrail_checked"
    RESOLVING = "resolving"
    LOCATING = "locating"
    FETCHING = "fetching"
    COMPLETED = "completed"
    REJECTED = "rejected"
    PARTIAL_FAILURE = "partial_failure"
    AMBIGUOUS = "ambiguous"


class RetrievalResult(BaseModel):
    """Outcome of a retrieval request."""

    state: RetrievalState = RetrievalState.RECEIVED
    transitions: list[RetrievalState] = Field(default_factory=lambda: [RetrievalState.RECEIVED])
    message: str = ""
    company: CompanyInfo | None = None
    candidates: list[CompanyInfo] = Field(default_factory=list)
    filings: list[Filing] = Field(default_factory=list)
    skipped_accessions: list[str] = Field(default_factory=list)
    report_ids: list[str] = Field(default_factory=list)

    def advance(self, state: RetrievalState) -> None:
        self.state = state
        self.transitions.append(state)


def parse_submission_rows(block: dict) -> list[SubmissionRow]:
    """
    Zip the parallel arrays of a submissions block into rows.

    Args:
        block: ``filings.recent`` object (or an older submissions page) with
            ``accessionNumber``, ``filingDate``, ``reportDate``, ``form`` and
            ``primaryDocument`` arrays

    Returns:
        Rows in feed order (most recent first); rows with malformed dates are skipped
    """
    accessions = block.get("accessionNumber", [])
    filing_dates = block.get("filingDate", [])
    report_dates = block.get("reportDate", [])
    forms = block.get("form", [])
    documents = block.get("primaryDocument", [])

    rows = []
    for accession, filed, reported, form, document in zip(
        accessions, filing_dates, report_dates, forms, documents
    ):
        try:
            rows.append(SubmissionRow(
                accession_number=accession,
                filing_date=filed,
                report_date=reported,
                form=form,
                primary_document=document,
            ))
        except ValidationError:
            continue

    return rows
