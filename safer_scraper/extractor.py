import re
from types import MappingProxyType

from bs4 import BeautifulSoup, Comment, NavigableString, Tag


# --- Patterns ---
MC_LABEL = 'MC/MX/FF Number(s):'
# Most to least specific; the first pattern that matches wins.
MC_PATTERNS = [
    re.compile(r'\bMC-(\d{3,7})\b', re.I),
    re.compile(r'\bMC\s*#?\s*(\d{3,7})\b', re.I),
]
MC_BARE_PATTERN = re.compile(r'MC-?(\d{3,7})', re.I)
PHONE_PATTERN = re.compile(r'(?:\(\d{3}\)\s?|\b\d{3}[\s.-])?\b\d{3}[\s.-]\d{4}\b')
EMAIL_PATTERN = re.compile(r'[\w.+-]+@[\w-]+(?:\.[\w-]+)*\.[A-Za-z]{2,}')
ADDRESS_PATTERN = re.compile(r',?\s*([^,]+),\s*([A-Z]{2})\s*(\d{5}(?:-\d{4})?)')
WHITESPACE = re.compile(r'\s+')

# Checked in order, first hit decides the coarse operation type.
OPERATION_TYPES = [
    ('Auth. For Hire', 'Property'),
    ('Passengers', 'Passenger'),
    ('Broker', 'Broker'),
]


def collapse(text):
    return WHITESPACE.sub(' ', text.replace('\xa0', ' ')).strip()


#Flattens a value cell: <br> becomes ", ", markup is dropped, whitespace collapsed.
def node_text(tag):
    if tag is None:
        return ''
    parts = []
    for node in tag.descendants:
        if isinstance(node, Tag) and node.name == 'br':
            parts.append(', ')
        elif isinstance(node, NavigableString) and not isinstance(node, Comment):
            parts.append(str(node))
    text = collapse(''.join(parts))
    return text.replace(' ,', ',').strip(', ')


def normalize_label(label):
    return collapse(label).lower()


class SnapshotPage:
    """Parsed SAFER snapshot document. Parse once, query many times."""

    def __init__(self, html):
        self.html = html or ''
        self.soup = BeautifulSoup(self.html, 'html.parser')
        self._text = None
        self._labels = None

    @property
    def text(self):
        if self._text is None:
            self._text = collapse(self.soup.get_text(' '))
        return self._text

    def label_cell(self, label):
        # First <th> (snapshot tables) or <label> (SMS lists) whose text is exactly the label
        if self._labels is None:
            self._labels = {}
            for tag in self.soup.find_all(['th', 'label']):
                key = normalize_label(tag.get_text())
                if key and key not in self._labels:
                    self._labels[key] = tag
        tag = self._labels.get(normalize_label(label))
        if tag is None:
            return None
        if tag.name == 'label':
            return tag.find_next_sibling('span', class_='dat')
        td = tag.find_next_sibling('td')
        if td is None:
            td = tag.find_next('td')
        return td

    def value(self, label):
        return node_text(self.label_cell(label))

    def link(self, predicate):
        for a in self.soup.find_all('a', href=True):
            if predicate(a['href']):
                return a['href']
        return ''


def extract_by_label(page, label):
    if not isinstance(page, SnapshotPage):
        page = SnapshotPage(page)
    return page.value(label)


def find_mc_number(page):
    labelled = page.value(MC_LABEL)
    for source in (labelled, page.text):
        for pattern in MC_PATTERNS:
            m = pattern.search(source)
            if m:
                return 'MC-' + m.group(1)
    m = MC_BARE_PATTERN.search(page.html)
    if m:
        return 'MC-' + m.group(1)
    return ''


def find_phone(text):
    m = PHONE_PATTERN.search(text or '')
    return m.group(0).strip() if m else ''


def find_email(text):
    m = EMAIL_PATTERN.search(text or '')
    return m.group(0) if m else ''


def x_marked_items(page):
    items = []
    for td in page.soup.find_all('td', class_='queryfield'):
        if td.get_text(strip=True) != 'X':
            continue
        label_td = td.find_next_sibling('td')
        if label_td is None:
            continue
        font = label_td.find('font')
        if font is None:
            continue
        label = collapse(font.get_text())
        if label:
            items.append(label)
    return list(dict.fromkeys(items))


def operation_type(items):
    for marker, kind in OPERATION_TYPES:
        if marker in items:
            return kind
    return ''


def parse_address(address):
    if not address:
        return '', '', ''
    m = ADDRESS_PATTERN.search(address)
    if not m:
        return '', '', ''
    return m.group(1).strip(), m.group(2).strip(), m.group(3).strip()


def _address_parts(page):
    return parse_address(page.value('Physical Address:') or page.value('Mailing Address:'))


def _phone(page):
    return page.value('Phone:') or find_phone(page.text)


# --- Field registry: output field name -> extractor over a SnapshotPage ---
FIELD_EXTRACTORS = {
    'mc_number': find_mc_number,
    'usdot': lambda page: page.value('USDOT Number:'),
    'legal_name': lambda page: page.value('Legal Name:'),
    'dba_name': lambda page: page.value('DBA Name:'),
    'entity_type': lambda page: page.value('Entity Type:'),
    'usdot_status': lambda page: page.value('USDOT Status:'),
    'authority_status': lambda page: page.value('Operating Authority Status:'),
    'mcs_150_date': lambda page: page.value('MCS-150 Form Date:'),
    'power_units': lambda page: page.value('Power Units:'),
    'drivers': lambda page: page.value('Drivers:'),
    'operation_type': lambda page: operation_type(x_marked_items(page)),
    'phone': _phone,
    'email': lambda page: find_email(page.text),
    'physical_address': lambda page: page.value('Physical Address:'),
    'mailing_address': lambda page: page.value('Mailing Address:'),
    'city': lambda page: _address_parts(page)[0],
    'state': lambda page: _address_parts(page)[1],
    'zip': lambda page: _address_parts(page)[2],
}


def extract_record(url, html, fields=None):
    """
    Builds a read-only record of the requested fields (all known fields when None) plus 'url'.
    Unknown or unmatched fields come back as empty strings.
    """
    page = html if isinstance(html, SnapshotPage) else SnapshotPage(html)
    if fields is None:
        fields = list(FIELD_EXTRACTORS)
    record = {}
    for name in fields:
        if name == 'url':
            continue
        extractor = FIELD_EXTRACTORS.get(name)
        record[name] = extractor(page) if extractor else ''
    record['url'] = url
    return MappingProxyType(record)
