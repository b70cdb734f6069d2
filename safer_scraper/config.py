import os
from dataclasses import dataclass, field, replace


SNAPSHOT_URL_TEMPLATE = (
    "https://safer.fmcsa.dot.gov/query.asp?searchtype=ANY&query_type=queryCarrierSnapshot"
    "&query_param=MC_MX&query_string={}"
)
USER_AGENT = (
    "Mozilla/5.0 (Windows NT 10.0; Win64; x64) AppleWebKit/537.36 "
    "(KHTML, like Gecko) Chrome/124.0.0.0 Safari/537.36"
)

MODE_BOTH = "both"
MODE_URLS = "urls"
MODES = (MODE_BOTH, MODE_URLS)

AUTH_STRICT = "strict"
AUTH_LENIENT = "lenient"
AUTH_POLICIES = (AUTH_STRICT, AUTH_LENIENT)

# --- Output column sets (one per pipeline profile) ---
COLUMN_SETS = {
    "contact": [
        'mc_number', 'legal_name', 'phone', 'email', 'url',
    ],
    "deep": [
        'mc_number', 'usdot', 'legal_name', 'phone', 'email',
        'physical_address', 'city', 'state', 'zip', 'url',
    ],
    "recent": [
        'mc_number', 'legal_name', 'entity_type', 'operation_type', 'phone', 'email',
        'physical_address', 'mailing_address', 'city', 'state', 'zip', 'url',
    ],
}


class ConfigError(ValueError):
    pass


@dataclass(frozen=True)
class Profile:
    name: str
    columns: str
    check_authorized: bool = True
    auth_policy: str = AUTH_STRICT
    check_recency: bool = False
    check_fleet: bool = False
    follow_detail_pages: bool = False


PROFILES = {
    "contact": Profile("contact", columns="contact", check_fleet=True),
    "deep": Profile("deep", columns="deep", check_fleet=True, follow_detail_pages=True),
    "recent": Profile("recent", columns="recent", auth_policy=AUTH_LENIENT, check_recency=True),
}


@dataclass(frozen=True)
class ScraperConfig:
    profile: str = "recent"
    concurrency: int = 4
    delay: float = 1.0
    fetch_timeout: float = 30.0
    detail_timeout: float = 45.0
    detail_delay: float = 1.0
    max_attempts: int = 3
    backoff_base: float = 2.0
    mode: str = MODE_BOTH
    max_age_days: int = 180
    batch_index: str = "0"
    check_not_found: bool = True
    check_authorized: bool = True
    auth_policy: str = AUTH_LENIENT
    check_recency: bool = True
    check_fleet: bool = False
    follow_detail_pages: bool = False
    columns: list = field(default_factory=lambda: list(COLUMN_SETS["recent"]))
    export_json: bool = False
    output_dir: str = "output"
    input_file: str = ""
    log_level: str = "INFO"

    def __post_init__(self):
        if self.concurrency < 1:
            raise ConfigError(f"concurrency must be at least 1, got {self.concurrency}")
        if self.max_attempts < 1:
            raise ConfigError(f"max_attempts must be at least 1, got {self.max_attempts}")
        if self.mode not in MODES:
            raise ConfigError(f"unknown mode {self.mode!r}, expected one of {MODES}")
        if self.auth_policy not in AUTH_POLICIES:
            raise ConfigError(f"unknown auth policy {self.auth_policy!r}, expected one of {AUTH_POLICIES}")
        if not self.columns:
            raise ConfigError("column set is empty")

    @property
    def urls_only(self):
        return self.mode == MODE_URLS

    @classmethod
    def for_profile(cls, name, **overrides):
        """Config seeded from a named profile; keyword overrides win."""
        try:
            profile = PROFILES[name]
        except KeyError:
            raise ConfigError(f"unknown profile {name!r}, expected one of {sorted(PROFILES)}") from None
        values = dict(
            profile=profile.name,
            check_authorized=profile.check_authorized,
            auth_policy=profile.auth_policy,
            check_recency=profile.check_recency,
            check_fleet=profile.check_fleet,
            follow_detail_pages=profile.follow_detail_pages,
            columns=list(COLUMN_SETS[profile.columns]),
        )
        values.update(overrides)
        return cls(**values)

    @classmethod
    def from_env(cls, environ=None):
        """
        Reads the scraper settings from environment variables.
        Millisecond variables (DELAY, FETCH_TIMEOUT_MS, EXTRACT_TIMEOUT_MS, BACKOFF_BASE_MS)
        are converted to seconds. Unset toggles fall back to the selected profile.
        """
        env = os.environ if environ is None else environ
        overrides = {}
        ints = {'CONCURRENCY': 'concurrency', 'MAX_RETRIES': 'max_attempts', 'MAX_AGE_DAYS': 'max_age_days'}
        for var, name in ints.items():
            if env.get(var, '').strip():
                overrides[name] = _int(var, env[var])
        millis = {
            'DELAY': 'delay',
            'FETCH_TIMEOUT_MS': 'fetch_timeout',
            'EXTRACT_TIMEOUT_MS': 'detail_timeout',
            'BACKOFF_BASE_MS': 'backoff_base',
            'DETAIL_DELAY_MS': 'detail_delay',
        }
        for var, name in millis.items():
            if env.get(var, '').strip():
                overrides[name] = _int(var, env[var]) / 1000.0
        flags = {
            'CHECK_AUTHORIZED': 'check_authorized',
            'CHECK_RECENCY': 'check_recency',
            'CHECK_FLEET': 'check_fleet',
            'FOLLOW_DETAIL_PAGES': 'follow_detail_pages',
            'EXPORT_JSON': 'export_json',
        }
        for var, name in flags.items():
            if env.get(var, '').strip():
                overrides[name] = _flag(var, env[var])
        strings = {
            'MODE': 'mode',
            'AUTH_POLICY': 'auth_policy',
            'BATCH_INDEX': 'batch_index',
            'OUTPUT_DIR': 'output_dir',
            'INPUT_FILE': 'input_file',
            'LOG_LEVEL': 'log_level',
        }
        for var, name in strings.items():
            if env.get(var, '').strip():
                overrides[name] = env[var].strip()
        if 'mode' in overrides:
            overrides['mode'] = overrides['mode'].lower()
        if 'auth_policy' in overrides:
            overrides['auth_policy'] = overrides['auth_policy'].lower()
        if env.get('COLUMNS_SET', '').strip():
            set_name = env['COLUMNS_SET'].strip()
            if set_name not in COLUMN_SETS:
                raise ConfigError(f"unknown column set {set_name!r}, expected one of {sorted(COLUMN_SETS)}")
            overrides['columns'] = list(COLUMN_SETS[set_name])
        return cls.for_profile(env.get('PROFILE', 'recent').strip() or 'recent', **overrides)

    def with_overrides(self, **changes):
        return replace(self, **changes)


def _int(var, raw):
    try:
        return int(raw.strip())
    except ValueError:
        raise ConfigError(f"{var} must be an integer, got {raw!r}") from None


def _flag(var, raw):
    value = raw.strip().lower()
    if value in ('1', 'true', 'yes', 'on'):
        return True
    if value in ('0', 'false', 'no', 'off'):
        return False
    raise ConfigError(f"{var} must be a boolean flag, got {raw!r}")
