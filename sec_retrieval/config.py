"""Settings for the retrieval layer."""

from pydantic import field_validator
from pydantic_settings import BaseSettings, SettingsConfigDict


class SECSettings(BaseSettings):
    """
    Runtime configuration, read from ``SEC_*`` environment variables.

    The SEC requires every request to identify a responsible party in the
    User-Agent header, so either ``contact_email`` must be set or a contact
    must be passed per caller.
    """

    model_config = SettingsConfigDict(env_prefix="SEC_", env_file=".env", extra="ignore")

    # Client identification
    user_agent_template: str = "SECRetrieval/1.0 ({contact})"
    contact_email: str | None = None

    # Hosts
    www_base_url: str = "https://www.sec.gov"
    data_base_url: str = "https://data.sec.gov"

    # Transport
    timeout_seconds: float = 30.0
    max_requests_per_second: float = 10.0
    fetch_concurrency: int = 1

    # Guardrails
    max_filings_per_request: int = 10
    max_date_span_years: float = 2.0
    max_filings_per_conversation: int = 30
    request_budget_seconds: float = 60.0

    # Date-range report date recovery
    report_date_fallback: bool = True
    include_submission_history: bool = True

    # Downstream summarization
    summary_service_url: str | None = None

    @field_validator("fetch_concurrency")
    @classmethod
    def validate_concurrency(cls, v: int) -> int:
        if v < 1 or v > 4:
            raise ValueError("fetch_concurrency must be between 1 and 4")
        return v

    @field_validator("max_requests_per_second")
    @classmethod
    def validate_request_rate(cls, v: float) -> float:
        if v <= 0:
            raise ValueError("max_requests_per_second must be greater than 0")
        return v

    @field_validator("www_base_url", "data_base_url")
    @classmethod
    def strip_trailing_slash(cls, v: str) -> str:
        return v.rstrip("/")

    def user_agent(self, contact: str | None = None) -> str:
        """Build the User-Agent header for a caller, falling back to the configured contact."""
        contact = contact or self.contact_email
        if not contact:
            raise ValueError(
                "A contact is required for SEC requests. "
                "Set SEC_CONTACT_EMAIL or pass the caller's contact explicitly."
            )
        return self.user_agent_template.format(contact=contact)
