"""
Configuration settings for the DRS -> Airtable sync pipeline.

Settings are read from environment variables (and an optional .env file)
exactly once, at process start, and then passed explicitly into every
component. Nothing below the CLI / relay entry points touches os.environ.
"""
import os
from dataclasses import dataclass, field
from pathlib import Path
from typing import Dict, Mapping, Optional, Tuple

from dotenv import load_dotenv

from drs_sync.exceptions import ConfigurationError

PROJECT_ROOT = Path(__file__).parent.parent.parent

# Canonical field identifiers, in output order.
CANONICAL_FIELDS: Tuple[str, ...] = (
    'date', 'customer', 'address', 'phone', 'size', 'order_number', 'status',
)


@dataclass(frozen=True)
class FieldNames:
    """Display names of the canonical fields in the Airtable table."""

    date: str = 'Date'
    customer: str = 'Customer'
    address: str = 'Address'
    phone: str = 'Phone'
    size: str = 'Dumpster Size'
    order_number: str = 'Order #'
    status: str = 'Status'
    raw: str = ''  # optional text column holding the source JSON

    def as_dict(self) -> Dict[str, str]:
        """Map canonical field -> display name (raw included only if set)."""
        names = {name: getattr(self, name) for name in CANONICAL_FIELDS}
        if self.raw:
            names['raw'] = self.raw
        return names


# Header synonyms for scraped table rows. Headers are Title Cased by the
# table extractor, so these are written in that form.
DEFAULT_TABLE_SYNONYMS: Dict[str, Tuple[str, ...]] = {
    'customer': ('Customer', 'Name', 'Client', 'Customer Name'),
    'address': ('Address', 'Delivery Address', 'Site Address', 'Location'),
    'phone': ('Phone', 'Phone Number', 'Customer Phone', 'Mobile'),
    'size': ('Size', 'Dumpster Size', 'Container Size', 'Bin Size'),
    'order_number': ('Order', 'Order Id', 'Order #', 'Order Number', 'Id'),
    'status': ('Status', 'Order Status', 'State'),
}

# Keys of flattened relay JSON (lowercase leaf names).
DEFAULT_JSON_SYNONYMS: Dict[str, Tuple[str, ...]] = {
    'customer': ('customer', 'customer_name', 'name', 'client', 'contactname'),
    'address': ('delivery_address', 'address', 'location', 'site_address'),
    'phone': ('customer_phone', 'phone', 'contact_phone', 'mobile'),
    'size': ('dumpster_size', 'size', 'container_size', 'bin_size'),
    'order_number': (
        'order_id', 'id', 'order', 'number', 'tracking', 'ticket_id', 'invoice_id',
    ),
    'status': ('status', 'state', 'order_status'),
}


@dataclass(frozen=True)
class FieldMapping:
    """
    Source-name -> canonical-field resolution rules.

    Synonyms are tried in order (first non-empty match wins); when none
    matches, an optional 1-based column index is read as ``col<index>``.
    """

    table_synonyms: Mapping[str, Tuple[str, ...]] = field(
        default_factory=lambda: dict(DEFAULT_TABLE_SYNONYMS)
    )
    json_synonyms: Mapping[str, Tuple[str, ...]] = field(
        default_factory=lambda: dict(DEFAULT_JSON_SYNONYMS)
    )
    column_overrides: Mapping[str, int] = field(default_factory=dict)


# Conventional DRS login paths, tried after the explicit login URL and before
# the bare base URL.
DEFAULT_LOGIN_PATHS: Tuple[str, ...] = (
    '/cp/autoforward',
    '/cp/login',
    '/login',
    '/signin',
)

_FIELD_ENV = {
    'date': 'AT_FIELD_DATE',
    'customer': 'AT_FIELD_CUSTOMER',
    'address': 'AT_FIELD_ADDRESS',
    'phone': 'AT_FIELD_PHONE',
    'size': 'AT_FIELD_SIZE',
    'order_number': 'AT_FIELD_ORDER',
    'status': 'AT_FIELD_STATUS',
    'raw': 'AT_FIELD_RAW',
}

_COLUMN_ENV = {
    'customer': 'DRS_COL_CUSTOMER',
    'address': 'DRS_COL_ADDRESS',
    'phone': 'DRS_COL_PHONE',
    'size': 'DRS_COL_SIZE',
    'order_number': 'DRS_COL_ORDER',
    'status': 'DRS_COL_STATUS',
}


def _env_bool(value: Optional[str], default: bool) -> bool:
    if value is None or not value.strip():
        return default
    return value.strip().lower() not in {'0', 'false', 'no', 'off'}


def _env_int(env: Mapping[str, str], name: str, default: int) -> int:
    raw = (env.get(name) or '').strip()
    if not raw:
        return default
    try:
        return int(raw)
    except ValueError:
        raise ConfigurationError(f'{name} must be an integer, got {raw!r}')


@dataclass(frozen=True)
class Settings:
    """Application settings, immutable once built."""

    # Source site (DRS)
    drs_base: str = ''
    drs_login_url: str = ''
    drs_username: str = ''
    drs_password: str = ''
    drs_orders_url: str = ''
    drs_reports_url: str = ''
    drs_dev_key: str = ''
    drs_api_token: str = ''
    login_paths: Tuple[str, ...] = DEFAULT_LOGIN_PATHS

    # Relay
    worker_url: str = ''

    # Airtable
    airtable_api_key: str = ''
    airtable_base_id: str = ''
    airtable_table: str = ''
    airtable_typecast: bool = False
    field_names: FieldNames = field(default_factory=FieldNames)
    field_mapping: FieldMapping = field(default_factory=FieldMapping)

    # Run
    date: str = ''
    start: str = ''
    end: str = ''
    out_dir: Path = Path('exports')
    diagnostics_dir: Path = Path('diagnostics')
    headless: bool = True
    timeout: int = 30
    download_timeout: int = 30

    # Logging
    log_level: str = 'INFO'
    log_file: str = ''

    # Maps setting attribute -> environment variable, for error messages.
    ENV_NAMES = {
        'drs_base': 'DRS_BASE',
        'drs_login_url': 'DRS_LOGIN_URL',
        'drs_username': 'DRS_USERNAME',
        'drs_password': 'DRS_PASSWORD',
        'drs_orders_url': 'DRS_ORDERS_URL',
        'drs_reports_url': 'DRS_REPORTS_URL',
        'drs_dev_key': 'DRS_DEV_KEY',
        'drs_api_token': 'DRS_API_TOKEN',
        'worker_url': 'WORKER_URL',
        'airtable_api_key': 'AIRTABLE_API_KEY',
        'airtable_base_id': 'AIRTABLE_BASE_ID',
        'airtable_table': 'AIRTABLE_TABLE',
    }

    @classmethod
    def from_env(
        cls,
        environ: Optional[Mapping[str, str]] = None,
        env_file: Optional[Path] = None,
    ) -> 'Settings':
        """
        Build settings from environment variables.

        Args:
            environ: Mapping to read instead of os.environ (tests)
            env_file: .env file to load first (defaults to <project>/.env)

        Returns:
            Settings instance
        """
        if environ is None:
            env_path = env_file or PROJECT_ROOT / '.env'
            if env_path.exists():
                load_dotenv(env_path)
            environ = os.environ

        def get(name: str, default: str = '') -> str:
            return (environ.get(name) or default).strip()

        names = FieldNames(**{
            attr: get(var, getattr(FieldNames, attr))
            for attr, var in _FIELD_ENV.items()
        })

        overrides = {}
        for attr, var in _COLUMN_ENV.items():
            index = _env_int(environ, var, 0)
            if index > 0:
                overrides[attr] = index

        return cls(
            drs_base=get('DRS_BASE').rstrip('/'),
            drs_login_url=get('DRS_LOGIN_URL'),
            drs_username=get('DRS_USERNAME'),
            drs_password=environ.get('DRS_PASSWORD') or '',
            drs_orders_url=get('DRS_ORDERS_URL'),
            drs_reports_url=get('DRS_REPORTS_URL'),
            drs_dev_key=get('DRS_DEV_KEY'),
            drs_api_token=get('DRS_API_TOKEN'),
            worker_url=get('WORKER_URL'),
            airtable_api_key=get('AIRTABLE_API_KEY'),
            airtable_base_id=get('AIRTABLE_BASE_ID'),
            airtable_table=get('AIRTABLE_TABLE'),
            airtable_typecast=_env_bool(environ.get('AIRTABLE_TYPECAST'), False),
            field_names=names,
            field_mapping=FieldMapping(column_overrides=overrides),
            date=get('DATE'),
            start=get('START'),
            end=get('END'),
            out_dir=Path(get('OUT_DIR', 'exports')),
            diagnostics_dir=Path(get('DIAGNOSTICS_DIR', 'diagnostics')),
            headless=_env_bool(environ.get('HEADLESS'), True),
            timeout=_env_int(environ, 'DRS_TIMEOUT', 30),
            download_timeout=_env_int(environ, 'DOWNLOAD_TIMEOUT', 30),
            log_level=get('LOG_LEVEL', 'INFO').upper(),
            log_file=get('LOG_FILE'),
        )

    def missing(self, *attrs: str) -> list[str]:
        """Return environment names of the given settings that are empty."""
        return [self.ENV_NAMES.get(a, a.upper()) for a in attrs if not getattr(self, a)]

    def require(self, *attrs: str) -> None:
        """
        Fail fast when required settings are absent.

        Raises:
            ConfigurationError: listing every missing environment variable
        """
        missing = self.missing(*attrs)
        if missing:
            raise ConfigurationError(f'Missing env {", ".join(missing)}', missing=missing)

    def login_candidates(self) -> list[str]:
        """
        Ordered, de-duplicated login URLs to try.

        Explicit login URL first, then conventional paths under the base
        URL, then the bare base URL.
        """
        candidates = []
        if self.drs_login_url:
            candidates.append(self.drs_login_url)
        if self.drs_base:
            candidates.extend(f'{self.drs_base}{path}' for path in self.login_paths)
            candidates.append(self.drs_base)

        seen = set()
        ordered = []
        for url in candidates:
            if url not in seen:
                seen.add(url)
                ordered.append(url)
        return ordered
