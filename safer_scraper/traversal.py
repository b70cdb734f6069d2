import asyncio
import logging
from types import MappingProxyType
from urllib.parse import urljoin

from safer_scraper.extractor import SnapshotPage, find_email, find_phone

logger = logging.getLogger(__name__)


def find_detail_link(page, base_url):
    href = page.link(lambda h: 'SMS/Carrier/' in h)
    return urljoin(base_url, href) if href else ''


def find_registration_link(page, base_url):
    href = page.link(lambda h: 'CarrierRegistration.aspx' in h)
    return urljoin(base_url, href) if href else ''


async def enrich_from_detail_pages(fetch, record, html, url, courtesy_delay=1.0, sleep=asyncio.sleep):
    """
    Follows the snapshot's SMS carrier link and, from there, the registration page link.
    Email and phone are read from the deepest page that was fetched, falling back to
    shallower pages. A failed fetch anywhere just stops the walk.

    fetch is an async callable (url, label) -> FetchResult.
    """
    pages = [SnapshotPage(html) if not isinstance(html, SnapshotPage) else html]
    current_url = url
    for finder, label in ((find_detail_link, 'SMS'), (find_registration_link, 'REGISTRATION')):
        link = finder(pages[-1], current_url)
        if not link:
            break
        await sleep(courtesy_delay)
        result = await fetch(link, label)
        if not result.ok:
            logger.warning("[%s] Could not load %s: %s", label, link, result.error)
            break
        pages.append(SnapshotPage(result.body))
        current_url = link

    email = ''
    phone = ''
    for page in reversed(pages):
        if not email:
            email = find_email(page.text)
        if not phone:
            phone = page.value('Telephone:') or page.value('Phone:') or find_phone(page.text)
    enriched = dict(record)
    if email and 'email' in enriched:
        enriched['email'] = email
    if phone and 'phone' in enriched:
        enriched['phone'] = phone
    logger.debug("[SMS] %s: walked %d page(s), email=%r phone=%r", url, len(pages), email, phone)
    return MappingProxyType(enriched)
