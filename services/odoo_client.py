"""
Odoo XML-RPC Client

Authenticates against the Odoo external API and bulk-reads categories,
products and partners with fixed field projections. Records are returned
exactly as Odoo sends them; mapping happens in the import services.
"""

import logging
from dataclasses import dataclass
from typing import Any, Dict, List, Optional
from xmlrpc.client import Fault, ProtocolError, SafeTransport, ServerProxy, Transport

from config import Config, OdooSettings, get_odoo_settings
from services.error_handler import AuthenticationError, FetchError

logger = logging.getLogger(__name__)

CATEGORY_FIELDS = ['id', 'name', 'parent_id', 'complete_name']

# Parent paths sort lexicographically before their children
CATEGORY_ORDER = 'parent_path, id'

PRODUCT_FIELDS = [
    'id', 'name', 'default_code', 'list_price', 'standard_price',
    'qty_available', 'barcode', 'categ_id', 'image_1920', 'description',
    'description_sale', 'active', 'type', 'weight', 'volume',
    'sale_line_warn', 'purchase_line_warn',
]

PARTNER_FIELDS = [
    'id', 'name', 'email', 'phone', 'mobile', 'vat', 'street', 'street2',
    'city', 'zip', 'state_id', 'country_id', 'function', 'website', 'lang',
    'ref', 'customer_rank', 'supplier_rank', 'credit_limit',
    'property_payment_term_id', 'category_id', 'employee', 'partner_share',
    'comment', 'active', 'image_1920',
]

PRODUCT_REF_FIELDS = ['id', 'name', 'default_code']
PARTNER_REF_FIELDS = ['id', 'name', 'email']
PARTNER_IMAGE_FIELDS = ['id', 'name', 'image_1920']

SALEABLE_PRODUCTS_DOMAIN = [['sale_ok', '=', True]]
PERSON_PARTNERS_DOMAIN = [['is_company', '=', False], ['email', '!=', False]]


class TimeoutTransport(Transport):
    """HTTP transport with a socket timeout."""

    def __init__(self, timeout: int, **kwargs):
        super().__init__(**kwargs)
        self.timeout = timeout

    def make_connection(self, host):
        connection = super().make_connection(host)
        connection.timeout = self.timeout
        return connection


class SafeTimeoutTransport(SafeTransport):
    """HTTPS transport with a socket timeout."""

    def __init__(self, timeout: int, **kwargs):
        super().__init__(**kwargs)
        self.timeout = timeout

    def make_connection(self, host):
        connection = super().make_connection(host)
        connection.timeout = self.timeout
        return connection


@dataclass
class ExternalCategory:
    """Odoo product.category as seen by the reconciler."""
    external_id: int
    name: str
    parent_external_id: Optional[int]
    full_path: str

    @classmethod
    def from_record(cls, record: Dict[str, Any]) -> 'ExternalCategory':
        parent = record.get('parent_id')
        return cls(
            external_id=record['id'],
            name=record.get('name') or '',
            parent_external_id=parent[0] if parent else None,
            full_path=record.get('complete_name') or record.get('name') or '',
        )


class OdooClient:
    """Client for the Odoo external XML-RPC API."""

    def __init__(self, url: str, db: str, username: str, api_key: str,
                 timeout: int = Config.ODOO_TIMEOUT):
        self.url = url.rstrip('/')
        self.db = db
        self.username = username
        self.api_key = api_key
        self.timeout = timeout
        self.uid: Optional[int] = None
        self._common = None
        self._models = None

    @classmethod
    def from_settings(cls, settings: Optional[OdooSettings] = None) -> 'OdooClient':
        """Build a client from ODOO_* environment settings."""
        settings = settings or get_odoo_settings()
        return cls(settings.url, settings.db, settings.username, settings.api_key, settings.timeout)

    def _server(self, path: str) -> ServerProxy:
        endpoint = f"{self.url}{path}"
        if endpoint.startswith('https'):
            transport = SafeTimeoutTransport(self.timeout)
        else:
            transport = TimeoutTransport(self.timeout)
        return ServerProxy(endpoint, transport=transport, allow_none=True)

    @property
    def common(self) -> ServerProxy:
        if self._common is None:
            self._common = self._server('/xmlrpc/2/common')
        return self._common

    @property
    def models(self) -> ServerProxy:
        if self._models is None:
            self._models = self._server('/xmlrpc/2/object')
        return self._models

    def authenticate(self) -> int:
        """Log in with the API key and return the session uid.

        Raises:
            AuthenticationError: the call failed or Odoo returned a falsy uid
        """
        if not all([self.url, self.db, self.username, self.api_key]):
            raise AuthenticationError("Missing Odoo configuration: ODOO_URL, ODOO_DB, ODOO_USERNAME and ODOO_API_KEY are required")

        logger.info(f"Authenticating with Odoo at {self.url} (db={self.db}, user={self.username})")
        try:
            uid = self.common.authenticate(self.db, self.username, self.api_key, {})
        except (Fault, ProtocolError, OSError) as e:
            logger.error(f"Odoo authentication call failed: {e}")
            raise AuthenticationError(f"Failed to authenticate with Odoo: {e}") from e

        if not uid:
            logger.error("Odoo authentication returned no uid")
            raise AuthenticationError("Failed to authenticate with Odoo: invalid credentials")

        self.uid = uid
        logger.info(f"Authenticated with Odoo, uid={uid}")
        return uid

    def version(self) -> Dict[str, Any]:
        """Server version information from the common endpoint."""
        try:
            return self.common.version()
        except (Fault, ProtocolError, OSError) as e:
            raise FetchError(f"Failed to read Odoo version: {e}") from e

    def execute_kw(self, model: str, method: str, args: List[Any],
                   kwargs: Optional[Dict[str, Any]] = None) -> Any:
        """Invoke a model method on the object endpoint."""
        if self.uid is None:
            self.authenticate()

        try:
            return self.models.execute_kw(
                self.db, self.uid, self.api_key, model, method, args, kwargs or {}
            )
        except (Fault, ProtocolError, OSError) as e:
            logger.error(f"Odoo call {model}.{method} failed: {e}")
            raise FetchError(f"Failed to call {model}.{method}: {e}") from e

    def search_read(self, model: str, domain: List[Any], fields: List[str],
                    order: Optional[str] = None, limit: Optional[int] = None) -> List[Dict[str, Any]]:
        kwargs: Dict[str, Any] = {'fields': fields}
        if order:
            kwargs['order'] = order
        if limit:
            kwargs['limit'] = limit
        records = self.execute_kw(model, 'search_read', [domain], kwargs)
        logger.info(f"Fetched {len(records)} {model} records")
        return records

    def fetch_categories(self) -> List[ExternalCategory]:
        """Fetch the full product category tree, parents first."""
        records = self.search_read('product.category', [], CATEGORY_FIELDS, order=CATEGORY_ORDER)
        return [ExternalCategory.from_record(record) for record in records]

    def fetch_products(self, limit: int = Config.ODOO_PRODUCT_LIMIT) -> List[Dict[str, Any]]:
        """Fetch saleable products, oldest id first."""
        return self.search_read(
            'product.product', SALEABLE_PRODUCTS_DOMAIN, PRODUCT_FIELDS,
            order='id asc', limit=limit
        )

    def fetch_partners(self, limit: int = Config.ODOO_PARTNER_LIMIT) -> List[Dict[str, Any]]:
        """Fetch person contacts that have an email address."""
        return self.search_read(
            'res.partner', PERSON_PARTNERS_DOMAIN, PARTNER_FIELDS,
            order='id asc', limit=limit
        )

    def fetch_product_refs(self, limit: int = 10000) -> List[Dict[str, Any]]:
        """Fetch id, name and internal reference of saleable products for matching."""
        return self.search_read(
            'product.product', SALEABLE_PRODUCTS_DOMAIN, PRODUCT_REF_FIELDS,
            order='id asc', limit=limit
        )

    def fetch_partner_refs(self, limit: int = Config.ODOO_PARTNER_MATCH_LIMIT) -> List[Dict[str, Any]]:
        """Fetch id, name and email of person contacts for matching."""
        return self.search_read(
            'res.partner', PERSON_PARTNERS_DOMAIN, PARTNER_REF_FIELDS,
            order='id asc', limit=limit
        )

    def read_partner_images(self, partner_ids: List[int]) -> List[Dict[str, Any]]:
        """Read the photo of each given partner."""
        if not partner_ids:
            return []
        return self.execute_kw('res.partner', 'read', [list(partner_ids)], {'fields': PARTNER_IMAGE_FIELDS})
