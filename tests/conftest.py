"""
Shared pytest fixtures: SAFER-like snapshot markup, an in-memory transport and a
sleep replacement that records delays instead of waiting.
"""

from __future__ import annotations

import asyncio
import sys
from pathlib import Path

import pytest

REPO_ROOT = Path(__file__).resolve().parents[1]
if str(REPO_ROOT) not in sys.path:
    sys.path.insert(0, str(REPO_ROOT))

from safer_scraper.fetcher import PageResponse  # noqa: E402

HANG = object()


def _row(label, value):
    return (
        '<tr><th scope="row" class="querylabelbkg">'
        f'<a class="querylabel" href="saferhelp.aspx#x">{label}</a></th>\n'
        f'  <td class="queryfield" valign="top" colspan="3">{value}</td></tr>\n'
    )


def snapshot_html(
    mc="MC-123456",
    legal_name="ACME FREIGHT &amp; LOGISTICS LLC",
    entity_type="CARRIER&nbsp;",
    status="AUTHORIZED FOR Property<br><font>For Licensing and Insurance details "
           '<a href="https://li-public.fmcsa.dot.gov/LIVIEW/pkg_carrquery.prc_carrlist?n_dotno=1">click here.</a></font>',
    form_date="01/15/2026",
    power_units="5",
    phone="(217) 555-0142",
    physical="123 MAIN ST <br>\n   SPRINGFIELD, IL &nbsp; 62701",
    mailing="PO BOX 9<br>SPRINGFIELD, IL 62705-0009",
    extra="",
):
    rows = [
        _row("Entity Type:", entity_type),
        _row("Operating Authority Status:", status),
        _row("MC/MX/FF Number(s):", f'<a href="#">{mc}</a>' if mc else ""),
        _row("MCS-150 Form Date:", form_date),
        _row("Legal Name:", legal_name),
        _row("Physical Address:", physical),
        _row("Phone:", phone),
        _row("Mailing Address:", mailing),
        _row("USDOT Number:", "3456789"),
        _row("Power Units:", power_units),
    ]
    return (
        "<html><head><title>SAFER Web - Company Snapshot</title></head><body>\n"
        '<table border="1">\n' + "".join(rows) + "</table>\n"
        "<table><tr>\n"
        '<td class="queryfield" width="15%">X</td><td><font style="font-size:80%">Auth. For Hire</font></td>\n'
        '<td class="queryfield" width="15%"></td><td><font style="font-size:80%">Exempt For Hire</font></td>\n'
        "</tr><tr>\n"
        '<td class="queryfield">X</td><td><font style="font-size:80%">Passengers</font></td>\n'
        '<td class="queryfield">X</td><td><font style="font-size:80%">Auth. For Hire</font></td>\n'
        "</tr></table>\n"
        f"{extra}</body></html>"
    )


NOT_FOUND_HTML = (
    "<html><body><p>Record Not Found</p>"
    "<p>The record matching MC_MX = 999 was not found in the database.</p></body></html>"
)
INACTIVE_HTML = "<html><body><h2>RECORD INACTIVE</h2><p>Record Inactive</p></body></html>"


class FakeTransport:
    """
    In-memory stand-in for PlaywrightTransport.

    routes maps url -> list of responses served in order (the last one repeats).
    A response is a str (200 body), a (status, body) tuple, an exception instance, or HANG.
    """

    def __init__(self, routes=None, default=(404, "not here"), events=None):
        self.routes = {url: list(items) for url, items in (routes or {}).items()}
        self.default = default
        self.calls = []
        self.events = events if events is not None else []
        self.in_flight = 0
        self.max_in_flight = 0

    def add(self, url, *responses):
        self.routes[url] = list(responses)

    def _next(self, url):
        items = self.routes.get(url)
        if not items:
            return self.default
        if len(items) > 1:
            return items.pop(0)
        return items[0]

    async def get(self, url, timeout):
        self.calls.append(url)
        self.events.append(("start", url))
        self.in_flight += 1
        self.max_in_flight = max(self.max_in_flight, self.in_flight)
        try:
            await asyncio.sleep(0)
            response = self._next(url)
            if response is HANG:
                await asyncio.sleep(3600)
            if isinstance(response, BaseException):
                raise response
            if isinstance(response, tuple):
                status, body = response
            else:
                status, body = 200, response
            return PageResponse(status, url, body)
        finally:
            self.in_flight -= 1
            self.events.append(("end", url))


class RecordingSleep:
    def __init__(self, events=None):
        self.delays = []
        self.events = events if events is not None else []

    async def __call__(self, seconds):
        self.delays.append(seconds)
        self.events.append(("sleep", seconds))
        await asyncio.sleep(0)


@pytest.fixture
def make_snapshot():
    return snapshot_html


@pytest.fixture
def events():
    return []


@pytest.fixture
def transport(events):
    return FakeTransport(events=events)


@pytest.fixture
def recording_sleep(events):
    return RecordingSleep(events=events)


@pytest.fixture
def hang():
    return HANG


@pytest.fixture
def not_found_html():
    return NOT_FOUND_HTML


@pytest.fixture
def inactive_html():
    return INACTIVE_HTML
