"""
Consultant Photo Service

Copies the Odoo photo of every linked consultant into the public consultant
profiles bucket and stores the resulting URL. Consultants are processed a
page at a time; partners are read from Odoo in small batches.
"""

import logging
import time
from dataclasses import dataclass, field
from typing import Any, Dict, List, Optional

from sqlalchemy.orm import Session

from config import Config
from models import Consultant
from repositories import ConsultantRepository
from services.error_handler import ErrorCollector, ErrorSample, ImageUploadError
from services.image_storage import consultant_image_name
from services.import_stats import ImportStats, RecordAction, RecordOutcome, format_ms
from services.odoo_client import OdooClient

RESULTS_LIMIT = 20


@dataclass
class ConsultantPhotoResult:
    """Outcome of one page of photo imports."""
    stats: ImportStats
    remaining: int
    last_id: Optional[int] = None
    results: List[Dict[str, Any]] = field(default_factory=list)
    duration_ms: float = 0

    def to_response(self) -> Dict[str, Any]:
        stats = self.stats
        return {
            'success': True,
            'updated': stats.updated,
            'skipped': stats.skipped,
            'errors': stats.errors,
            'processed': stats.total,
            'imagesFailed': stats.images_failed,
            'hasMore': self.remaining > 0,
            'nextAfterId': self.last_id,
            'results': self.results[:RESULTS_LIMIT],
            'duration': format_ms(self.duration_ms),
        }


class ConsultantPhotoService:
    """Uploads Odoo partner photos for consultants linked to Odoo."""

    def __init__(self, session: Session, odoo_client: OdooClient, image_storage,
                 batch_size: int = Config.CONSULTANT_PHOTO_BATCH, logger: Optional[logging.Logger] = None):
        self.session = session
        self.odoo = odoo_client
        self.image_storage = image_storage
        self.batch_size = batch_size
        self.logger = logger or logging.getLogger(f"{__name__}.{self.__class__.__name__}")
        self.consultant_repo = ConsultantRepository(session)

    def run(self, limit: int = 50, after_id: Optional[int] = None,
            force_update: bool = False) -> ConsultantPhotoResult:
        """Import photos for the next page of linked consultants.

        Args:
            limit: Page size
            after_id: Continue after this consultant id (the previous page's nextAfterId)
            force_update: Replace photos that are already stored
        """
        start = time.monotonic()
        self.odoo.authenticate()

        missing_only = not force_update
        consultants = self.consultant_repo.get_linked(limit, after_id=after_id, missing_photo_only=missing_only)
        stats = ImportStats(total=len(consultants), error_log=ErrorCollector(name_key='consultant'))
        results: List[Dict[str, Any]] = []

        for i in range(0, len(consultants), self.batch_size):
            batch = consultants[i:i + self.batch_size]
            partners = {
                partner['id']: partner
                for partner in self.odoo.read_partner_images([c.external_id for c in batch])
            }
            for consultant in batch:
                outcome = self.process_consultant(consultant, partners.get(consultant.external_id))
                stats.record(outcome)
                results.append(self._describe(consultant, outcome))

        last_id = consultants[-1].id if consultants else after_id
        remaining = self.consultant_repo.count_linked(after_id=last_id, missing_photo_only=missing_only)

        self.logger.info(
            f"Consultant photos: {stats.updated} updated, {stats.skipped} skipped, "
            f"{stats.errors} errors of {stats.total}"
        )
        return ConsultantPhotoResult(
            stats=stats,
            remaining=remaining,
            last_id=last_id,
            results=results,
            duration_ms=(time.monotonic() - start) * 1000,
        )

    def process_consultant(self, consultant: Consultant, partner: Optional[Dict[str, Any]]) -> RecordOutcome:
        image_data = partner.get('image_1920') if partner else None
        if not image_data:
            self.logger.debug(f"No photo in Odoo for consultant {consultant.code}")
            return RecordOutcome.skipped()

        try:
            url = self.image_storage.upload_base64(image_data, consultant_image_name(consultant.external_id))
        except ImageUploadError as e:
            self.consultant_repo.update(consultant, embedded_image=image_data)
            self.session.commit()
            self.logger.warning(f"Photo upload failed for consultant {consultant.code}: {e}")
            return RecordOutcome(RecordAction.FAILED, image_failed=True, error=ErrorSample(
                name=consultant.full_name,
                external_id=consultant.external_id,
                email=consultant.email,
                error=str(e),
            ))

        self.consultant_repo.update(consultant, profile_image_url=url, embedded_image=None)
        self.session.commit()
        return RecordOutcome(RecordAction.UPDATED, image_processed=True)

    def _describe(self, consultant: Consultant, outcome: RecordOutcome) -> Dict[str, Any]:
        entry = {'name': consultant.full_name, 'status': outcome.action.value}
        if outcome.action is RecordAction.UPDATED:
            entry['imageUrl'] = consultant.profile_image_url
        elif outcome.error is not None:
            entry['error'] = outcome.error.error
        return entry
