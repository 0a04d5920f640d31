"""
Product Match Service

Links local products that were created outside the Odoo import to their
Odoo counterparts, first by internal reference (SKU) and then by name.
"""

import logging
import time
from dataclasses import dataclass, field
from typing import Any, Dict, List, Optional, Set

from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.orm import Session

from repositories import ProductRepository, AdminLogRepository
from services.import_stats import format_ms
from services.odoo_client import OdooClient

logger = logging.getLogger(__name__)

ADMIN_ACTION = 'MATCH_PRODUCTS_WITH_ODOO'
RESPONSE_LIMIT = 100


def _key(value: Optional[str]) -> Optional[str]:
    return value.strip().lower() if value else None


@dataclass
class ProductMatchResult:
    """Outcome of a matching pass."""
    dry_run: bool
    total: int = 0
    updated: int = 0
    matches: List[Dict[str, Any]] = field(default_factory=list)
    no_matches: List[Dict[str, Any]] = field(default_factory=list)
    duration_ms: float = 0

    def to_response(self) -> Dict[str, Any]:
        return {
            'success': True,
            'dryRun': self.dry_run,
            'stats': {
                'total': self.total,
                'matched': len(self.matches),
                'updated': 0 if self.dry_run else self.updated,
                'noMatches': len(self.no_matches),
            },
            'matches': self.matches[:RESPONSE_LIMIT],
            'noMatches': self.no_matches[:RESPONSE_LIMIT],
            'duration': format_ms(self.duration_ms),
        }


class ProductMatchService:
    """Matches unmapped local products with Odoo products."""

    def __init__(self, session: Session, odoo_client: OdooClient, admin_id: Optional[str] = None):
        self.session = session
        self.odoo = odoo_client
        self.admin_id = admin_id
        self.product_repo = ProductRepository(session)
        self.admin_log_repo = AdminLogRepository(session)

    def run(self, dry_run: bool = True) -> ProductMatchResult:
        start = time.monotonic()
        self.odoo.authenticate()

        unmapped = self.product_repo.get_unmapped()
        logger.info(f"Found {len(unmapped)} local products without an Odoo id")

        by_sku: Dict[str, Dict[str, Any]] = {}
        by_name: Dict[str, Dict[str, Any]] = {}
        for odoo_product in self.odoo.fetch_product_refs():
            sku = _key(odoo_product.get('default_code') or None)
            if sku:
                by_sku[sku] = odoo_product
            name = _key(odoo_product.get('name'))
            if name:
                by_name[name] = odoo_product

        result = ProductMatchResult(dry_run=dry_run, total=len(unmapped))
        claimed: Set[int] = set()

        for product in unmapped:
            match_type = 'SKU'
            odoo_product = by_sku.get(_key(product.sku))
            if odoo_product is None:
                match_type = 'NAME'
                odoo_product = by_name.get(_key(product.name))

            if odoo_product is None or odoo_product['id'] in claimed:
                result.no_matches.append({'id': product.id, 'name': product.name, 'sku': product.sku})
                continue

            claimed.add(odoo_product['id'])
            result.matches.append({
                'localId': product.id,
                'localName': product.name,
                'localSku': product.sku,
                'odooId': odoo_product['id'],
                'odooName': odoo_product.get('name'),
                'odooSku': odoo_product.get('default_code') or None,
                'matchType': match_type,
            })

            if not dry_run:
                result.updated += self._link(product, odoo_product['id'])

        result.duration_ms = (time.monotonic() - start) * 1000

        if not dry_run and result.updated > 0:
            self.admin_log_repo.log_action(
                self.admin_id,
                ADMIN_ACTION,
                'product',
                {
                    'matched': len(result.matches),
                    'updated': result.updated,
                    'noMatches': len(result.no_matches),
                    'duration': format_ms(result.duration_ms),
                }
            )
            self.session.commit()

        logger.info(
            f"Product matching finished: {len(result.matches)} matched, "
            f"{result.updated} updated, {len(result.no_matches)} unmatched (dry_run={dry_run})"
        )
        return result

    def _link(self, product, external_id: int) -> int:
        if self.product_repo.get_by_external_id(external_id):
            logger.warning(f"Odoo product {external_id} is already linked, not linking product {product.id}")
            return 0
        try:
            self.product_repo.set_external_id(product, external_id)
            self.session.commit()
        except SQLAlchemyError as e:
            self.session.rollback()
            logger.error(f"Error linking product {product.id} to Odoo product {external_id}: {e}")
            return 0
        return 1
