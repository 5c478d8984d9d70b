"""Tests for SEC EDGAR provider."""

from __future__ import annotations

from typing import Any
from unittest.mock import AsyncMock, patch

import httpx
import orjson
import pytest

from pennytrace.core.ratelimit import BackoffPolicy, MinIntervalThrottle
from pennytrace.providers.sec_edgar import SECEdgarClient, pad_cik

# ---------------------------------------------------------------------------
# Sample Data
# ---------------------------------------------------------------------------

SAMPLE_SUBMISSIONS = {
    "cik": "878146",
    "name": "LEGAL ACCESS TECHNOLOGIES INC",
    "sic": "7372",
    "sicDescription": "Services-Prepackaged Software",
    "tickers": ["LGAL"],
    "exchanges": ["OTC"],
    "stateOfIncorporation": "NV",
    "fiscalYearEnd": "1231",
    "filings": {
        "recent": {
            "accessionNumber": ["0001013762-09-000123", "0001013762-08-000456"],
            "filingDate": ["2009-04-15", "2008-11-14"],
            "form": ["10-K", "10-Q"],
            "primaryDocument": ["lgal10k.htm", "lgal10q.htm"],
            "size": [120345, 80211],
        }
    },
}


def _response(payload: Any, status: int = 200) -> httpx.Response:
    return httpx.Response(
        status,
        content=orjson.dumps(payload),
        request=httpx.Request("GET", "https://data.sec.gov/submissions/CIK0000878146.json"),
    )


@pytest.fixture()
def client(no_sleep) -> SECEdgarClient:
    return SECEdgarClient(
        user_agent="PennyTraceTests/1.0 test@example.com",
        throttle=MinIntervalThrottle(0, sleep=no_sleep),
        backoff=BackoffPolicy(max_attempts=2, base_delay=0.0),
        sleep=no_sleep,
    )


@pytest.mark.parametrize(
    ("raw", "expected"),
    [("878146", "0000878146"), ("0000878146", "0000878146"), ("13156", "0000013156")],
)
def test_pad_cik(raw: str, expected: str) -> None:
    assert pad_cik(raw) == expected


# ---------------------------------------------------------------------------
# Filings
# ---------------------------------------------------------------------------


class TestGetFilings:
    async def test_parses_recent_filings(self, client: SECEdgarClient) -> None:
        with patch.object(client, "_get_http_client") as mock_http:
            mock_http.return_value.get = AsyncMock(return_value=_response(SAMPLE_SUBMISSIONS))
            filings = await client.get_filings("878146")

        assert len(filings) == 2
        first = filings[0]
        assert first.accession_number == "0001013762-09-000123"
        assert first.filing_date == "2009-04-15"
        assert first.form == "10-K"
        assert first.description == "lgal10k.htm"
        assert first.size == 120345
        assert first.document_url == (
            "https://www.sec.gov/Archives/edgar/data/0000878146/000101376209000123/lgal10k.htm"
        )

        url = mock_http.return_value.get.call_args.args[0]
        assert url.endswith("/submissions/CIK0000878146.json")

    async def test_not_found_returns_empty(self, client: SECEdgarClient) -> None:
        with patch.object(client, "_get_http_client") as mock_http:
            mock_http.return_value.get = AsyncMock(return_value=_response({}, status=404))
            assert await client.get_filings("9999999") == []

    async def test_server_error_returns_empty(self, client: SECEdgarClient) -> None:
        with patch.object(client, "_get_http_client") as mock_http:
            mock_http.return_value.get = AsyncMock(return_value=_response({}, status=503))
            assert await client.get_filings("878146") == []

    async def test_rate_limit_exhausted_returns_empty(self, client: SECEdgarClient) -> None:
        with patch.object(client, "_get_http_client") as mock_http:
            mock_http.return_value.get = AsyncMock(return_value=_response({}, status=429))
            assert await client.get_filings("878146") == []

        assert mock_http.return_value.get.await_count == 2

    async def test_missing_recent_block(self, client: SECEdgarClient) -> None:
        with patch.object(client, "_get_http_client") as mock_http:
            mock_http.return_value.get = AsyncMock(return_value=_response({"cik": "878146"}))
            assert await client.get_filings("878146") == []

    async def test_mismatched_arrays_use_shortest(self, client: SECEdgarClient) -> None:
        payload = {
            "filings": {
                "recent": {
                    "accessionNumber": ["0001-09-1", "0001-09-2"],
                    "filingDate": ["2009-01-01"],
                    "form": ["8-K", "8-K"],
                }
            }
        }
        with patch.object(client, "_get_http_client") as mock_http:
            mock_http.return_value.get = AsyncMock(return_value=_response(payload))
            filings = await client.get_filings("878146")

        assert len(filings) == 1
        assert filings[0].description == ""
        assert filings[0].size is None


# ---------------------------------------------------------------------------
# Company Info
# ---------------------------------------------------------------------------


class TestCompanyInfo:
    async def test_company_info_fields(self, client: SECEdgarClient) -> None:
        with patch.object(client, "_get_http_client") as mock_http:
            mock_http.return_value.get = AsyncMock(return_value=_response(SAMPLE_SUBMISSIONS))
            info = await client.get_company_info("878146")

        assert info is not None
        assert info.name == "LEGAL ACCESS TECHNOLOGIES INC"
        assert info.sic == "7372"
        assert info.tickers == ["LGAL"]
        assert info.state_of_incorporation == "NV"

    async def test_unknown_cik(self, client: SECEdgarClient) -> None:
        with patch.object(client, "_get_http_client") as mock_http:
            mock_http.return_value.get = AsyncMock(return_value=_response({}, status=404))
            assert await client.get_company_info("1") is None

    async def test_submissions_memoized(self, client: SECEdgarClient) -> None:
        with patch.object(client, "_get_http_client") as mock_http:
            mock_http.return_value.get = AsyncMock(return_value=_response(SAMPLE_SUBMISSIONS))
            await client.get_filings("0000878146")
            await client.get_company_info("878146")

        assert mock_http.return_value.get.await_count == 1


async def test_user_agent_header_set() -> None:
    client = SECEdgarClient(user_agent="PennyTraceTests/1.0 test@example.com")
    http = client._get_http_client()
    try:
        assert http.headers["User-Agent"] == "PennyTraceTests/1.0 test@example.com"
    finally:
        await client.close()
