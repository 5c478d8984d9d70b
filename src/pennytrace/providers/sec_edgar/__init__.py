"""SEC EDGAR provider for filings and company info.

Uses the free SEC EDGAR API (data.sec.gov), no API key required.
"""

from pennytrace.providers.sec_edgar.client import SECEdgarClient, pad_cik
from pennytrace.providers.sec_edgar.models import (
    EntityFilings,
    PublishedFilings,
    SECCompanyInfo,
    SECFiling,
)

__all__ = [
    "SECEdgarClient",
    "EntityFilings",
    "PublishedFilings",
    "SECCompanyInfo",
    "SECFiling",
    "pad_cik",
]
