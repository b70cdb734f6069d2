"""Batch scraper for FMCSA SAFER carrier snapshots."""

from safer_scraper.config import COLUMN_SETS, PROFILES, ConfigError, ScraperConfig
from safer_scraper.eligibility import EligibilityFilter, Reason, Verdict
from safer_scraper.extractor import extract_record
from safer_scraper.fetcher import FetchResult, FetchStatus, PlaywrightTransport, fetch_with_retry
from safer_scraper.orchestrator import BatchResult, Orchestrator, OutcomeState, run_batch, snapshot_url
from safer_scraper.sink import write_outputs

__version__ = "0.1.0"
