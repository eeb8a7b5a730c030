"""Shared fixtures: a fake EDGAR backend served through httpx.MockTransport."""

import json
from pathlib import Path

import httpx
import pytest

from sec_retrieval.client import SECClient
from sec_retrieval.config import SECSettings

FIXTURES_DIR = Path(__file__).parent / "fixtures"


class FakeEdgar:
    """Routes EDGAR URLs to fixture files and records every request."""

    def __init__(self) -> None:
        self.requests: list[httpx.Request] = []
        self.fail_documents = False

    def paths(self) -> list[str]:
        return [request.url.path for request in self.requests]

    def count(self, fragment: str) -> int:
        return sum(1 for path in self.paths() if fragment in path)

    def __call__(self, request: httpx.Request) -> httpx.Response:
        self.requests.append(request)
        path = request.url.path

        if request.url.host == "unreachable.invalid":
            raise httpx.ConnectError("Name or service not known", request=request)

        if path == "/files/company_tickers.json":
            return self._file("company_tickers.json")

        if path.startswith("/submissions/"):
            return self._file(path.rsplit("/", 1)[-1])

        if path.startswith("/Archives/edgar/full-index/"):
            # /Archives/edgar/full-index/2023/QTR4/master.idx
            _, year, quarter, _ = path.rsplit("/", 3)
            return self._file(f"master_{year}_q{quarter[-1]}.idx")

        if path.startswith("/Archives/edgar/data/"):
            if self.fail_documents or path.endswith("missing.htm"):
                return httpx.Response(404, text="Not Found")
            return self._file("filing_sample.htm")

        return httpx.Response(404, text="Not Found")

    def _file(self, name: str) -> httpx.Response:
        fixture = FIXTURES_DIR / name
        if not fixture.exists():
            return httpx.Response(404, text="Not Found")
        return httpx.Response(200, content=fixture.read_bytes())


@pytest.fixture
def companies_data():
    """Load company tickers fixture."""
    with open(FIXTURES_DIR / "company_tickers.json") as f:
        return json.load(f)


@pytest.fixture
def sample_html():
    return (FIXTURES_DIR / "filing_sample.htm").read_text()


@pytest.fixture
def settings():
    return SECSettings(contact_email="test@example.com", max_requests_per_second=1000)


@pytest.fixture
def fake_edgar():
    return FakeEdgar()


@pytest.fixture
def http_client(fake_edgar):
    return httpx.AsyncClient(transport=httpx.MockTransport(fake_edgar))


@pytest.fixture
def sec_client(settings, http_client):
    """Create SECClient instance backed by the fake EDGAR."""
    return SECClient(settings, http_client=http_client)
