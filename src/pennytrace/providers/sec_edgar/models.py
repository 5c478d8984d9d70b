"""Pydantic models for SEC EDGAR data."""

from __future__ import annotations

from pennytrace.models import CamelModel


class SECFiling(CamelModel):
    """A single SEC filing."""

    accession_number: str
    filing_date: str  # YYYY-MM-DD
    form: str  # "8-K", "10-K", "10-Q", "4", etc.
    description: str  # primary document name
    document_url: str
    size: int | None = None


class EntityFilings(CamelModel):
    """Cached filing list for one entity (sec-edgar/{CIK}-filings.json)."""

    cik: str
    filings: list[SECFiling]
    fetched_at: str


class PublishedFilings(CamelModel):
    """Published filing list ({CIK}-filings.json)."""

    cik: str
    company: str
    filings: list[SECFiling]
    generated_at: str


class SECCompanyInfo(CamelModel):
    """Company header fields from the submissions API."""

    cik: str
    name: str
    sic: str | None = None
    sic_description: str | None = None
    tickers: list[str] = []
    exchanges: list[str | None] = []
    state_of_incorporation: str | None = None
    fiscal_year_end: str | None = None
