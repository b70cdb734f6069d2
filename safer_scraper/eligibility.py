import enum
import re
from dataclasses import dataclass
from datetime import date

import pandas as pd

from safer_scraper.config import AUTH_LENIENT, AUTH_STRICT
from safer_scraper.extractor import SnapshotPage

NOT_FOUND_MARKERS = ('record not found', 'record inactive')
AUTHORITY_LABEL = 'Operating Authority Status:'
FORM_DATE_LABEL = 'MCS-150 Form Date:'
POWER_UNITS_LABEL = 'Power Units:'


class Reason(str, enum.Enum):
    ACCEPTED = "accepted"
    NOT_FOUND = "not_found"
    NOT_AUTHORIZED = "not_authorized"
    STALE = "stale"
    MISSING_DATE = "missing_date"
    EMPTY_FLEET = "empty_fleet"
    FETCH_ERROR = "fetch_error"


@dataclass(frozen=True)
class Verdict:
    accepted: bool
    reason: Reason
    detail: str = ''

    @classmethod
    def accept(cls):
        return cls(True, Reason.ACCEPTED)

    @classmethod
    def reject(cls, reason, detail=''):
        return cls(False, reason, detail)


# --- Checks: each takes a SnapshotPage and returns None (pass) or a rejecting Verdict ---

def check_not_found(page):
    low = page.html.lower()
    for marker in NOT_FOUND_MARKERS:
        if marker in low:
            return Verdict.reject(Reason.NOT_FOUND, marker)
    return None


def check_authorized(policy=AUTH_STRICT):
    """
    strict: the status must say AUTHORIZED and must not say NOT AUTHORIZED (missing status rejects).
    lenient: only an explicit NOT AUTHORIZED rejects.
    """
    if policy not in (AUTH_STRICT, AUTH_LENIENT):
        raise ValueError(f"unknown authorization policy {policy!r}")

    def check(page):
        status = page.value(AUTHORITY_LABEL).upper()
        if 'NOT AUTHORIZED' in status:
            return Verdict.reject(Reason.NOT_AUTHORIZED, status)
        if policy == AUTH_STRICT and 'AUTHORIZED' not in status:
            return Verdict.reject(Reason.NOT_AUTHORIZED, status or 'status missing')
        return None

    check.__name__ = f'check_authorized_{policy}'
    return check


def parse_form_date(raw):
    if not raw:
        return None
    parsed = pd.to_datetime(raw, errors='coerce')
    if pd.isnull(parsed):
        return None
    return parsed.date()


def check_recency(max_age_days, today=None):
    def check(page):
        raw = page.value(FORM_DATE_LABEL)
        form_date = parse_form_date(raw)
        if form_date is None:
            return Verdict.reject(Reason.MISSING_DATE, raw)
        current = today() if callable(today) else (today or date.today())
        age = abs((current - form_date).days)
        if age > max_age_days:
            return Verdict.reject(Reason.STALE, f'{age} days')
        return None

    check.__name__ = 'check_recency'
    return check


def parse_power_units(raw):
    digits = re.sub(r'[^\d]', '', raw or '')
    return int(digits) if digits else None


def check_fleet(page):
    units = parse_power_units(page.value(POWER_UNITS_LABEL))
    if units == 0:
        return Verdict.reject(Reason.EMPTY_FLEET, '0 power units')
    return None


class EligibilityFilter:
    """Ordered short-circuit chain of checks; the first rejection decides the verdict."""

    def __init__(self, checks):
        self.checks = list(checks)

    @classmethod
    def from_config(cls, config, today=None):
        checks = []
        if config.check_not_found:
            checks.append(check_not_found)
        if config.check_authorized:
            checks.append(check_authorized(config.auth_policy))
        if config.check_recency:
            checks.append(check_recency(config.max_age_days, today=today))
        if config.check_fleet:
            checks.append(check_fleet)
        return cls(checks)

    def evaluate(self, document):
        page = document if isinstance(document, SnapshotPage) else SnapshotPage(document)
        for check in self.checks:
            verdict = check(page)
            if verdict is not None:
                return verdict
        return Verdict.accept()
