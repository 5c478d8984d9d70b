"""Reader for the local penny-stock CSV archive.

Archive layout (first match wins):
    {base}/cane_entities/{TICKER}_*/{TICKER}_{YEAR}.csv
    {base}/{YEAR}/{TICKER}_{YEAR}.csv
    {base}/cane_entities/{known folder}/{TICKER}_{YEAR}.csv

Every data line is seven quoted fields:
    "DATETIME","PRICE","VOLUME","BID","BID_SIZE","ASK","ASK_SIZE"
Lines that do not match are skipped, never fatal for the file.
"""

from __future__ import annotations

import re
from dataclasses import dataclass, field
from pathlib import Path

from pennytrace.core.logging import get_logger
from pennytrace.models import DataSource, RawTradeRecord

logger = get_logger(__name__)

_ROW_PATTERN = re.compile(r'"([^"]+)",' * 6 + r'"([^"]+)"')
_FILE_PATTERN = re.compile(r"([A-Z]+)_(\d{4})\.csv$")

# Tickers whose archive folder name cannot be derived from the ticker alone
ENTITY_FOLDERS: dict[str, str] = {
    "LGAL": "LGAL_Legal_Access_Technologies",
    "GLXZ": "GLXZ_Galaxy_Gaming",
    "DAVN": "DAVN_Davi_Skin",
    "DAVNE": "DAVN_Davi_Skin",
    "FFSL": "FFSL_First_Independence",
    "SNPD": "SNPD_Southern_Products",
}


@dataclass
class CSVParseResult:
    """Records parsed from one archive file plus the count of rejected lines."""

    path: Path
    records: list[RawTradeRecord] = field(default_factory=list)
    skipped_rows: int = 0


@dataclass(frozen=True)
class ArchiveFile:
    ticker: str
    year: int
    path: Path


def parse_csv_line(line: str) -> RawTradeRecord | None:
    """Parse one quoted 7-field archive line, or None if it does not match."""
    match = _ROW_PATTERN.search(line)
    if not match:
        return None
    dt, price, volume, bid, bid_size, ask, ask_size = match.groups()
    try:
        return RawTradeRecord(
            datetime=dt,
            price=float(price),
            volume=int(float(volume)),
            bid=float(bid),
            bid_size=int(float(bid_size)),
            ask=float(ask),
            ask_size=int(float(ask_size)),
            source=DataSource.local_cache,
        )
    except ValueError:
        return None


class LocalCacheReader:
    """Reads per-ticker, per-year CSV files from the local archive."""

    source = DataSource.local_cache

    def __init__(self, base_path: Path) -> None:
        self._base_path = Path(base_path)

    @property
    def base_path(self) -> Path:
        return self._base_path

    def find_entity_csv(self, ticker: str, year: int) -> Path | None:
        """Locate the archive file for a ticker/year, if present."""
        file_name = f"{ticker}_{year}.csv"
        entities_dir = self._base_path / "cane_entities"

        candidates: list[Path] = []
        if entities_dir.is_dir():
            candidates += sorted(entities_dir.glob(f"{ticker}_*/{file_name}"))
        candidates += [self._base_path / str(year) / file_name]
        candidates += [entities_dir / ENTITY_FOLDERS.get(ticker, ticker) / file_name]

        return next((path for path in candidates if path.is_file()), None)

    def read_entity_csv(self, ticker: str, year: int) -> list[RawTradeRecord]:
        """Read all records for one ticker/year. Missing files yield []."""
        path = self.find_entity_csv(ticker, year)
        if path is None:
            logger.info("No local data found", ticker=ticker, year=year)
            return []

        result = self.parse_csv(path)
        logger.info(
            "Parsed local archive file",
            path=str(path),
            records=len(result.records),
            skipped_rows=result.skipped_rows,
        )
        return result.records

    def parse_csv(self, path: Path) -> CSVParseResult:
        result = CSVParseResult(path=path)
        content = path.read_text(encoding="utf-8", errors="replace").strip()
        if not content:
            return result

        for line in content.splitlines():
            record = parse_csv_line(line)
            if record is None:
                result.skipped_rows += 1
                logger.debug("Skipping malformed archive row", path=str(path), line=line[:120])
                continue
            result.records.append(record)
        return result

    def list_available_data(self) -> list[ArchiveFile]:
        """All TICKER_YYYY.csv files under cane_entities/, sorted by path."""
        entities_dir = self._base_path / "cane_entities"
        if not entities_dir.is_dir():
            logger.warning("Local archive directory missing", path=str(entities_dir))
            return []

        results: list[ArchiveFile] = []
        for path in sorted(entities_dir.rglob("*.csv")):
            match = _FILE_PATTERN.search(path.name)
            if match:
                results.append(
                    ArchiveFile(ticker=match.group(1), year=int(match.group(2)), path=path)
                )
        return results
