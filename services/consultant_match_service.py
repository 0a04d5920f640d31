"""
Consultant Match Service

Links consultants created outside the Odoo import (for example through the
storefront sign-up) to their Odoo partner by case-insensitive email.
"""

import logging
import time
from dataclasses import dataclass, field
from typing import Any, Dict, List, Optional, Set

from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.orm import Session

from repositories import ConsultantRepository, AdminLogRepository
from services.import_stats import format_ms
from services.odoo_client import OdooClient

logger = logging.getLogger(__name__)

ADMIN_ACTION = 'MATCH_CONSULTANTS_WITH_ODOO'
RESPONSE_LIMIT = 10


@dataclass
class ConsultantMatchResult:
    """Outcome of a consultant matching pass."""
    dry_run: bool
    total_consultants: int = 0
    total_partners: int = 0
    updated: int = 0
    matches: List[Dict[str, Any]] = field(default_factory=list)
    not_found: List[str] = field(default_factory=list)
    duration_ms: float = 0

    def to_response(self) -> Dict[str, Any]:
        return {
            'success': True,
            'dryRun': self.dry_run,
            'matched': len(self.matches),
            'updated': 0 if self.dry_run else self.updated,
            'notFound': len(self.not_found),
            'totalConsultants': self.total_consultants,
            'totalOdooPartners': self.total_partners,
            'matchResults': self.matches[:RESPONSE_LIMIT],
            'notFoundEmails': self.not_found[:RESPONSE_LIMIT],
            'duration': format_ms(self.duration_ms),
        }


class ConsultantMatchService:
    """Matches unlinked consultants with Odoo partners by email."""

    def __init__(self, session: Session, odoo_client: OdooClient, admin_id: Optional[str] = None):
        self.session = session
        self.odoo = odoo_client
        self.admin_id = admin_id
        self.consultant_repo = ConsultantRepository(session)
        self.admin_log_repo = AdminLogRepository(session)

    def run(self, dry_run: bool = False) -> ConsultantMatchResult:
        start = time.monotonic()
        self.odoo.authenticate()

        unlinked = self.consultant_repo.get_unlinked()
        partners = self.odoo.fetch_partner_refs()
        logger.info(f"Matching {len(unlinked)} unlinked consultants against {len(partners)} Odoo partners")

        by_email: Dict[str, Dict[str, Any]] = {}
        for partner in partners:
            email = (partner.get('email') or '').strip().lower()
            if email:
                by_email.setdefault(email, partner)

        result = ConsultantMatchResult(
            dry_run=dry_run, total_consultants=len(unlinked), total_partners=len(partners)
        )
        claimed: Set[int] = set()

        for consultant in unlinked:
            email = (consultant.email or '').strip().lower()
            if not email:
                continue

            partner = by_email.get(email)
            if partner is None or partner['id'] in claimed:
                result.not_found.append(consultant.email)
                continue

            claimed.add(partner['id'])
            result.matches.append({
                'consultant': consultant.full_name,
                'email': consultant.email,
                'odoo_id': partner['id'],
                'odoo_name': partner.get('name'),
            })

            if not dry_run:
                result.updated += self._link(consultant, partner['id'])

        result.duration_ms = (time.monotonic() - start) * 1000

        if not dry_run and result.updated > 0:
            self.admin_log_repo.log_action(
                self.admin_id,
                ADMIN_ACTION,
                'consultant',
                {
                    'matched': len(result.matches),
                    'updated': result.updated,
                    'notFound': len(result.not_found),
                    'duration': format_ms(result.duration_ms),
                }
            )
            self.session.commit()

        logger.info(
            f"Consultant matching finished: {len(result.matches)} matched, "
            f"{result.updated} updated, {len(result.not_found)} not found (dry_run={dry_run})"
        )
        return result

    def _link(self, consultant, external_id: int) -> int:
        if self.consultant_repo.get_by_external_id(external_id):
            logger.warning(f"Odoo partner {external_id} is already linked, not linking consultant {consultant.id}")
            return 0
        try:
            self.consultant_repo.update(consultant, external_id=external_id)
            self.session.commit()
        except SQLAlchemyError as e:
            self.session.rollback()
            logger.error(f"Error linking consultant {consultant.id} to Odoo partner {external_id}: {e}")
            return 0
        return 1
