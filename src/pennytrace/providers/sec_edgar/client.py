"""SEC EDGAR API client.

Free API, no key required, just a descriptive User-Agent header.
- Company submissions: https://data.sec.gov/submissions/CIK{cik}.json
- Filing documents: https://www.sec.gov/Archives/edgar/data/{cik}/{accession}/{document}

SEC allows 10 requests/second; a fixed 100ms gap keeps us under it.
"""

from __future__ import annotations

import asyncio
from typing import Any

import httpx
import orjson
from pydantic import ValidationError

from pennytrace.core.constants import (
    SEC_BASE_URL,
    SEC_EDGAR_REQUEST_INTERVAL_SECONDS,
    SEC_WWW_URL,
)
from pennytrace.core.exceptions import RateLimitExceededError
from pennytrace.core.logging import get_logger
from pennytrace.core.ratelimit import BackoffPolicy, MinIntervalThrottle, Sleep
from pennytrace.models import DataSource
from pennytrace.providers.base import HTTPProviderClient
from pennytrace.providers.sec_edgar.models import SECCompanyInfo, SECFiling

logger = get_logger(__name__)


def pad_cik(cik_number: str) -> str:
    """Normalize a CIK to the 10-digit zero-padded form the API expects."""
    return cik_number.lstrip("0").zfill(10)


class SECEdgarClient(HTTPProviderClient):
    """Client for the SEC EDGAR submissions API.

    Submissions are memoized per CIK for the client's lifetime, so fetching
    company info and filings for the same entity costs one request.

    Usage:
        client = SECEdgarClient(user_agent="HistoricalStockData/1.0")
        filings = await client.get_filings("0000878146")
        info = await client.get_company_info("0000878146")
        await client.close()
    """

    source = DataSource.sec_edgar

    def __init__(
        self,
        user_agent: str,
        *,
        throttle: MinIntervalThrottle | None = None,
        backoff: BackoffPolicy | None = None,
        sleep: Sleep = asyncio.sleep,
    ) -> None:
        super().__init__(backoff=backoff, sleep=sleep)
        self._user_agent = user_agent
        self._throttle = throttle or MinIntervalThrottle(
            SEC_EDGAR_REQUEST_INTERVAL_SECONDS, name=self.name, sleep=sleep
        )
        self._submissions: dict[str, dict[str, Any] | None] = {}

    def _client_headers(self) -> dict[str, str]:
        return {
            "User-Agent": self._user_agent,
            "Accept": "application/json",
            "Accept-Encoding": "gzip, deflate",
        }

    async def _acquire(self) -> None:
        await self._throttle.acquire()

    async def _load_submissions(self, padded_cik: str) -> dict[str, Any] | None:
        """Fetch the submissions document. None means not found or failed."""
        if padded_cik in self._submissions:
            return self._submissions[padded_cik]

        url = f"{SEC_BASE_URL}/submissions/CIK{padded_cik}.json"
        data: dict[str, Any] | None = None
        try:
            resp = await self._get(url)
            if resp.status_code == 404:
                logger.info("No SEC filings found", cik=padded_cik)
            else:
                resp.raise_for_status()
                data = orjson.loads(resp.content)
        except RateLimitExceededError as e:
            logger.error("SEC EDGAR rate limit retries exhausted", cik=padded_cik, error=str(e))
            return None
        except (httpx.HTTPError, orjson.JSONDecodeError) as e:
            logger.error("Failed to fetch SEC submissions", cik=padded_cik, error=str(e))
            return None

        if data is not None and not isinstance(data, dict):
            logger.warning("Unexpected SEC submissions payload", cik=padded_cik)
            data = None
        self._submissions[padded_cik] = data
        return data

    # ─────────────────────────────────────────────────────────────
    # Filings
    # ─────────────────────────────────────────────────────────────

    async def get_filings(self, cik_number: str) -> list[SECFiling]:
        """Get the entity's recent filings (newest first, as SEC lists them).

        Args:
            cik_number: CIK with or without leading zeros

        Returns:
            List of SECFiling objects; empty for unknown CIKs or failures
        """
        padded = pad_cik(cik_number)
        logger.info("Fetching SEC filings", cik=padded)
        data = await self._load_submissions(padded)
        if not data:
            return []

        filings = self._parse_recent_filings(data.get("filings", {}).get("recent") or {}, padded)
        logger.info("Retrieved SEC filings", cik=padded, count=len(filings))
        return filings

    @staticmethod
    def _parse_recent_filings(recent: dict[str, list[Any]], padded_cik: str) -> list[SECFiling]:
        accession_numbers = recent.get("accessionNumber") or []
        filing_dates = recent.get("filingDate") or []
        forms = recent.get("form") or []
        primary_documents = recent.get("primaryDocument") or []
        sizes = recent.get("size") or []

        filings: list[SECFiling] = []
        n = min(len(accession_numbers), len(filing_dates), len(forms))
        for i in range(n):
            accession = accession_numbers[i]
            doc = primary_documents[i] if i < len(primary_documents) else ""
            acc_path = accession.replace("-", "")
            url = f"{SEC_WWW_URL}/Archives/edgar/data/{padded_cik}/{acc_path}/{doc}"
            filings.append(
                SECFiling(
                    accession_number=accession,
                    filing_date=filing_dates[i],
                    form=forms[i],
                    description=doc,
                    document_url=url,
                    size=sizes[i] if i < len(sizes) else None,
                )
            )
        return filings

    # ─────────────────────────────────────────────────────────────
    # Company Info
    # ─────────────────────────────────────────────────────────────

    async def get_company_info(self, cik_number: str) -> SECCompanyInfo | None:
        """Get company header fields (name, SIC, tickers, exchanges, ...)."""
        padded = pad_cik(cik_number)
        data = await self._load_submissions(padded)
        if not data:
            return None

        try:
            return SECCompanyInfo(
                cik=str(data.get("cik", padded)),
                name=data.get("name") or "",
                sic=data.get("sic") or None,
                sic_description=data.get("sicDescription") or None,
                tickers=data.get("tickers") or [],
                exchanges=data.get("exchanges") or [],
                state_of_incorporation=data.get("stateOfIncorporation") or None,
                fiscal_year_end=data.get("fiscalYearEnd") or None,
            )
        except ValidationError as e:
            logger.warning("Unexpected SEC company info", cik=padded, error=str(e))
            return None
