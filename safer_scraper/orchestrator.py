import asyncio
import enum
import logging
import re
from dataclasses import dataclass, field
from urllib.parse import quote

from safer_scraper.config import SNAPSHOT_URL_TEMPLATE
from safer_scraper.eligibility import EligibilityFilter, Reason, Verdict
from safer_scraper.extractor import SnapshotPage, extract_record
from safer_scraper.fetcher import PlaywrightTransport, fetch_with_retry
from safer_scraper.traversal import enrich_from_detail_pages

logger = logging.getLogger(__name__)

MIN_WINDOW_DELAY = 0.05


def snapshot_url(identifier):
    mc = re.sub(r'\s+', '', str(identifier or ''))
    return SNAPSHOT_URL_TEMPLATE.format(quote(mc, safe=''))


def chunked(lst, n):
    for i in range(0, len(lst), n):
        yield lst[i:i + n]


class OutcomeState(enum.Enum):
    ACCEPTED = "accepted"
    REJECTED = "rejected"
    ERRORED = "errored"


@dataclass(frozen=True)
class Outcome:
    identifier: str
    url: str
    state: OutcomeState
    verdict: Verdict
    record: object = None
    error: str = ''


@dataclass
class BatchResult:
    records: list = field(default_factory=list)
    urls: list = field(default_factory=list)
    outcomes: list = field(default_factory=list)

    def add(self, outcome):
        self.outcomes.append(outcome)
        if outcome.state is OutcomeState.ACCEPTED:
            self.urls.append(outcome.url)
            if outcome.record is not None:
                self.records.append(outcome.record)

    def count(self, state):
        return sum(1 for o in self.outcomes if o.state is state)


class Orchestrator:
    """
    Runs fetch -> evaluate -> extract for each identifier, `concurrency` identifiers per window.
    Windows run strictly one after another with a pause between them.
    """

    def __init__(self, config, transport, sleep=asyncio.sleep, today=None):
        self.config = config
        self.transport = transport
        self.sleep = sleep
        self.eligibility = EligibilityFilter.from_config(config, today=today)

    async def fetch(self, url, label='snapshot', timeout=None):
        return await fetch_with_retry(
            self.transport,
            url,
            timeout=timeout or self.config.fetch_timeout,
            max_attempts=self.config.max_attempts,
            backoff_base=self.config.backoff_base,
            label=label,
            sleep=self.sleep,
        )

    async def fetch_detail(self, url, label):
        return await self.fetch(url, label=label, timeout=self.config.detail_timeout)

    async def process(self, identifier):
        url = snapshot_url(identifier)
        try:
            return await self._process(identifier, url)
        except Exception as e:
            logger.exception("[SAFER] Unexpected error for MC %s", identifier)
            return Outcome(identifier, url, OutcomeState.ERRORED,
                           Verdict.reject(Reason.FETCH_ERROR, str(e)), error=f"{type(e).__name__}: {e}")

    async def _process(self, identifier, url):
        result = await self.fetch(url)
        if not result.ok:
            logger.warning("[SAFER] Fetch error MC %s -> %s", identifier, result.error)
            return Outcome(identifier, url, OutcomeState.ERRORED,
                           Verdict.reject(Reason.FETCH_ERROR, result.error), error=result.error)

        page = SnapshotPage(result.body)
        verdict = self.eligibility.evaluate(page)
        if not verdict.accepted:
            logger.info("[SAFER] SKIPPING (%s) MC %s %s", verdict.reason.value, identifier, verdict.detail)
            return Outcome(identifier, url, OutcomeState.REJECTED, verdict)

        if self.config.urls_only:
            logger.info("[SAFER] Accepted URL for MC %s", identifier)
            return Outcome(identifier, url, OutcomeState.ACCEPTED, verdict)

        record = extract_record(url, page, self.config.columns)
        if self.config.follow_detail_pages:
            record = await enrich_from_detail_pages(
                self.fetch_detail, record, page, url,
                courtesy_delay=self.config.detail_delay, sleep=self.sleep,
            )
        logger.info("[SAFER] Saved -> %s | %s",
                    record.get('mc_number') or identifier, record.get('legal_name') or '(no name)')
        return Outcome(identifier, url, OutcomeState.ACCEPTED, verdict, record=record)

    async def run(self, identifiers):
        result = BatchResult()
        windows = list(chunked(list(identifiers), self.config.concurrency))
        for index, window in enumerate(windows, 1):
            logger.info("[BATCH] Processing window %d/%d (%d MCs)", index, len(windows), len(window))
            for finished in asyncio.as_completed([self.process(mc) for mc in window]):
                result.add(await finished)
            if index < len(windows):
                await self.sleep(max(MIN_WINDOW_DELAY, self.config.delay))
        logger.info("[BATCH] Done: %d accepted, %d rejected, %d errored",
                    result.count(OutcomeState.ACCEPTED),
                    result.count(OutcomeState.REJECTED),
                    result.count(OutcomeState.ERRORED))
        return result


async def run_batch(identifiers, config, transport=None, sleep=asyncio.sleep, today=None):
    if transport is not None:
        return await Orchestrator(config, transport, sleep=sleep, today=today).run(identifiers)
    async with PlaywrightTransport() as playwright_transport:
        return await Orchestrator(config, playwright_transport, sleep=sleep, today=today).run(identifiers)
