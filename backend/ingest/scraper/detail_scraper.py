"""
Recall detail page scraper - extracts distributors and recall motif.
"""

import re
import time
from urllib.parse import urlparse

import requests
from bs4 import BeautifulSoup

from models.feed import DistributorInfo
from shared.errors import DetailError

ALLOWED_HOST = "rappel.conso.gouv.fr"
DISTRIBUTEURS_LABEL = "Distributeurs"
MOTIF_LABELS = ("Motif du rappel", "Motif")

_SPLIT_PATTERN = re.compile(r"[;\n\r,]+")
_WHITESPACE = re.compile(r"\s+")


def is_allowed_url(url: str) -> bool:
    """Only https detail pages on the RappelConso host may be fetched."""
    try:
        parsed = urlparse(url)
    except ValueError:
        return False
    return parsed.scheme == "https" and parsed.hostname == ALLOWED_HOST


def normalize_split_list(raw: str) -> list[str]:
    """Split a distributor string on ';', ',' and newlines."""
    if not raw:
        return []
    return [part.strip() for part in _SPLIT_PATTERN.split(raw) if part.strip()]


def _clean_text(text: str) -> str:
    return _WHITESPACE.sub(" ", text).strip()


def extract_distributor_info(html: str) -> DistributorInfo:
    """Read the <dd> following the 'Distributeurs' and motif <dt> labels."""
    soup = BeautifulSoup(html, "html.parser")

    distributeurs_raw = ""
    motif_raw = ""
    for dt in soup.find_all("dt"):
        label = _clean_text(dt.get_text())
        dd = dt.find_next_sibling("dd")
        if dd is None:
            continue
        if label == DISTRIBUTEURS_LABEL:
            distributeurs_raw = _clean_text(dd.get_text(separator=" "))
        elif label in MOTIF_LABELS and not motif_raw:
            motif_raw = _clean_text(dd.get_text(separator=" "))

    return DistributorInfo(
        distributeurs_raw=distributeurs_raw,
        distributeurs_list=normalize_split_list(distributeurs_raw),
        motif_raw=motif_raw,
    )


class DetailScraper:
    """Fetches recall detail pages and extracts DistributorInfo"""

    def __init__(self, max_retries: int = 3, timeout: float = 30):
        self.max_retries = max_retries
        self.timeout = timeout
        self.session = requests.Session()
        self.session.headers.update(
            {
                "User-Agent": "Mozilla/5.0 (Windows NT 10.0; Win64; x64) AppleWebKit/537.36",
                "Accept": "text/html, */*",
            }
        )

    def fetch_detail(self, url: str) -> DistributorInfo:
        """Fetch and parse one detail page. Raises DetailError on failure."""
        if not is_allowed_url(url):
            raise DetailError(f"Invalid or disallowed url: {url}")

        last_error: Exception | None = None
        for attempt in range(self.max_retries):
            try:
                response = self.session.get(url, timeout=self.timeout)
                response.raise_for_status()
                return extract_distributor_info(response.text)
            except Exception as e:
                last_error = e
                if attempt < self.max_retries - 1:
                    print(f"  ⚠ Detail fetch failed (attempt {attempt + 1}): {e}")
                    time.sleep(2**attempt)

        raise DetailError(
            f"Could not fetch detail page {url}: {last_error}", context={"url": url}
        )
